"""pySitemapper - XML sitemap generation with pluggable hooks."""

__version__ = "0.1.0"
