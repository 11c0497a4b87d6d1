"""Permalinks for content and file names for sitemaps."""

import re
from typing import Optional

from pysitemapper.config import Settings
from pysitemapper.exceptions import InvalidSitemapNameError
from pysitemapper.models import Author, Post, Term

INDEX_FILENAME = "sitemap_index.xml"

# post-sitemap.xml, post-sitemap2.xml, my_type-sitemap.xml.gz
SITEMAP_FILENAME_RE = re.compile(r"^(?P<type>[a-z0-9_]+(?:-[a-z0-9_]+)*?)-sitemap(?P<page>[1-9]\d*)?\.xml(?:\.gz)?$")


class UrlBuilder:
    """Build absolute URLs for posts, terms and authors from permalink templates."""

    def __init__(self, settings: Settings):
        self.base_url = settings.base_url
        self.permalinks = settings.permalinks
        self.author_base = "/" + settings.author_base.strip("/") + "/"

    def home_url(self) -> str:
        return self.base_url + "/"

    def post_url(self, post: Post) -> str:
        template = self.permalinks.get(post.post_type, "/{post_type}/{slug}/")
        published = post.published_at
        path = template.format(
            slug=post.slug,
            id=post.id,
            post_type=post.post_type,
            year=f"{published.year:04d}",
            month=f"{published.month:02d}",
            day=f"{published.day:02d}",
        )
        return self.absolute(path)

    def term_url(self, term: Term) -> str:
        template = self.permalinks.get(term.taxonomy, "/{taxonomy}/{slug}/")
        path = template.format(slug=term.slug, id=term.id, taxonomy=term.taxonomy)
        return self.absolute(path)

    def author_url(self, author: Author) -> str:
        return self.absolute(f"{self.author_base}{author.nicename}/")

    def sitemap_url(self, sitemap_type: str, page: int = 1) -> str:
        return self.absolute("/" + sitemap_filename(sitemap_type, page))

    def absolute(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        return self.base_url + path


def sitemap_filename(sitemap_type: str, page: int = 1, gzip: bool = False) -> str:
    """
    File name of one sitemap page.

    Page 1 carries no number: ``post-sitemap.xml``, ``post-sitemap2.xml``.
    The index is addressed as sitemap_type "index".
    """
    if sitemap_type == "index":
        name = INDEX_FILENAME
    elif page == 1:
        name = f"{sitemap_type}-sitemap.xml"
    else:
        name = f"{sitemap_type}-sitemap{page}.xml"
    return name + ".gz" if gzip else name


def parse_sitemap_filename(filename: str) -> tuple[str, int]:
    """
    Split a sitemap file name into (sitemap_type, page).

    Args:
        filename: e.g. "sitemap_index.xml", "category-sitemap3.xml"

    Returns:
        ("index", 1) for the index, otherwise the type and page number

    Raises:
        InvalidSitemapNameError: If the name is not a sitemap file name, or
            addresses page 1 explicitly ("post-sitemap1.xml")
    """
    name = filename.rsplit("/", 1)[-1]
    if name in (INDEX_FILENAME, INDEX_FILENAME + ".gz"):
        return "index", 1

    match = SITEMAP_FILENAME_RE.match(name)
    if not match:
        raise InvalidSitemapNameError(filename)

    page: Optional[str] = match.group("page")
    if page == "1":
        raise InvalidSitemapNameError(filename)

    return match.group("type"), int(page) if page else 1
