"""Content sources for pySitemapper."""

from pysitemapper.sources.authors import AUTHOR_TYPE, AuthorProvider
from pysitemapper.sources.base import IndexLink, SitemapEntry, SitemapProvider
from pysitemapper.sources.custom import CustomSitemap, CustomSitemapProvider, SitemapRegistry
from pysitemapper.sources.images import ImageParser
from pysitemapper.sources.posts import PostTypeProvider
from pysitemapper.sources.terms import TaxonomyProvider

__all__ = [
    "AUTHOR_TYPE",
    "AuthorProvider",
    "CustomSitemap",
    "CustomSitemapProvider",
    "ImageParser",
    "IndexLink",
    "PostTypeProvider",
    "SitemapEntry",
    "SitemapProvider",
    "SitemapRegistry",
    "TaxonomyProvider",
]
