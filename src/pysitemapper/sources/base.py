"""Common records and the provider interface for sitemap content sources."""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

import pluggy
from sqlmodel import Session

from pysitemapper.config import Settings
from pysitemapper.plugins import apply_filter
from pysitemapper.urls import UrlBuilder


def utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Convert aware datetimes to naive UTC, the form stored in the database."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


@dataclass
class SitemapEntry:
    """One <url> element of a sitemap."""

    loc: str
    lastmod: Optional[datetime] = None
    images: list[dict[str, str]] = field(default_factory=list)
    video: Optional[dict[str, Any]] = None
    entity_id: Optional[int] = None  # Post ID, for image and video hooks

    def __post_init__(self):
        self.lastmod = utc_naive(self.lastmod)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SitemapEntry":
        """
        Build an entry from a plain dict (as returned by custom sitemaps).

        Raises:
            ValueError: If "loc" is missing or empty
        """
        loc = data.get("loc")
        if not loc:
            raise ValueError(f"Sitemap entry without loc: {data!r}")

        lastmod = data.get("lastmod")
        if isinstance(lastmod, str):
            lastmod = datetime.fromisoformat(lastmod)

        return cls(
            loc=loc,
            lastmod=lastmod,
            images=list(data.get("images") or []),
            video=data.get("video"),
            entity_id=data.get("entity_id"),
        )


@dataclass
class IndexLink:
    """One <sitemap> element of the sitemap index."""

    sitemap_type: str
    page: int
    loc: str
    lastmod: Optional[datetime] = None


def page_count(total: int, max_entries: int) -> int:
    """Number of sitemap pages needed for ``total`` entries."""
    return math.ceil(total / max_entries) if total > 0 else 0


def newest(dates) -> Optional[datetime]:
    """Latest of the given datetimes, ignoring None."""
    known = [d for d in dates if d is not None]
    return max(known) if known else None


class SitemapProvider(ABC):
    """
    A source of sitemap entries for one or more sitemap types.

    Providers enumerate content in a stable order so that page N of a
    sitemap covers the same entries until the content changes.
    """

    def __init__(self, session: Session, settings: Settings, plugin_manager: pluggy.PluginManager):
        """
        Initialize provider.

        Args:
            session: Database session to read content from
            settings: Application settings
            plugin_manager: Plugin manager whose hooks are applied
        """
        self.session = session
        self.settings = settings
        self.pm = plugin_manager
        self.urls = UrlBuilder(settings)

    @abstractmethod
    def handles_type(self, sitemap_type: str) -> bool:
        """Whether this provider serves sitemaps of the given type."""

    @abstractmethod
    def get_index_links(self, max_entries: int) -> list[IndexLink]:
        """Index links for every non-empty page of every type served."""

    @abstractmethod
    def get_sitemap_links(self, sitemap_type: str, max_entries: int, page: int) -> list[SitemapEntry]:
        """Entries of one sitemap page (empty if the page does not exist)."""

    def filter_url(self, url: str, entity) -> str:
        """Run an entry URL through the sitemap_entry_url filter."""
        return apply_filter(self.pm, "sitemap_entry_url", url, entity=entity) or ""
