"""Exceptions raised by pySitemapper."""


class SitemapError(Exception):
    """Base class for sitemap generation errors."""


class InvalidSitemapNameError(SitemapError):
    """A requested file name is not a sitemap file name."""

    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"Not a sitemap file name: {filename!r}")


class SitemapNotFoundError(SitemapError):
    """The requested sitemap type or page does not exist."""

    def __init__(self, sitemap_type: str, page: int = 1):
        self.sitemap_type = sitemap_type
        self.page = page
        super().__init__(f"No sitemap {sitemap_type!r} page {page}")


class ContentImportError(SitemapError):
    """A content export file could not be read or validated."""
