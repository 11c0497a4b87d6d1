"""Storage of rendered sitemaps between runs."""

import hashlib
import logging
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, func
from sqlmodel import Session, col, select

from pysitemapper.models import Post, SitemapCacheEntry
from pysitemapper.sources.authors import AUTHOR_TYPE

logger = logging.getLogger(__name__)

INDEX_TYPE = "index"


def cache_key(sitemap_type: str, page: int) -> str:
    return f"{sitemap_type}:{page}"


def make_fingerprint(*parts) -> str:
    """Short, stable hash of the values that shape sitemap output."""
    digest = hashlib.sha256("\x1f".join(str(part) for part in parts).encode("utf-8"))
    return digest.hexdigest()[:16]


class SitemapCache:
    """
    Rendered sitemaps stored in the sitemap_cache table.

    A cached sitemap is reused while its fingerprint matches and it is
    younger than the TTL. Content changes invalidate the affected sitemap
    types, and every invalidation also drops the index.
    """

    def __init__(self, session: Session, ttl_seconds: int = 86400, enabled: bool = True):
        """
        Initialize cache.

        Args:
            session: Database session holding the cache table
            ttl_seconds: Maximum age of a cached sitemap (0 disables expiry)
            enabled: When False, get() always misses and set() is a no-op
        """
        self.session = session
        self.ttl = timedelta(seconds=ttl_seconds)
        self.enabled = enabled

    def get(self, sitemap_type: str, page: int, fingerprint: str) -> Optional[str]:
        """
        Get a cached sitemap.

        Returns:
            Cached XML, or None on a miss (absent, stale fingerprint, expired)
        """
        if not self.enabled:
            return None

        row = self.session.get(SitemapCacheEntry, cache_key(sitemap_type, page))
        if row is None or row.fingerprint != fingerprint:
            return None

        if self.ttl and datetime.utcnow() - row.generated_at > self.ttl:
            logger.debug("Cache expired for %s page %s", sitemap_type, page)
            self.session.delete(row)
            self.session.commit()
            return None

        logger.debug("Cache hit for %s page %s", sitemap_type, page)
        return row.xml

    def set(self, sitemap_type: str, page: int, fingerprint: str, xml: str) -> None:
        """Store (or replace) a rendered sitemap."""
        if not self.enabled:
            return

        key = cache_key(sitemap_type, page)
        row = self.session.get(SitemapCacheEntry, key)
        if row is None:
            row = SitemapCacheEntry(key=key, sitemap_type=sitemap_type, page=page, fingerprint="", xml="")

        row.fingerprint = fingerprint
        row.xml = xml
        row.generated_at = datetime.utcnow()
        self.session.add(row)
        self.session.commit()

    def invalidate(self, sitemap_type: str) -> int:
        """
        Drop every page of one sitemap type, and the index.

        Returns:
            Number of cached sitemaps removed
        """
        return self.invalidate_types([sitemap_type])

    def invalidate_types(self, sitemap_types: Iterable[str]) -> int:
        """Drop every page of the given sitemap types, and the index."""
        types = {*sitemap_types, INDEX_TYPE}
        result = self.session.exec(
            delete(SitemapCacheEntry).where(col(SitemapCacheEntry.sitemap_type).in_(types))
        )
        self.session.commit()
        return result.rowcount or 0

    def invalidate_for_post(
        self,
        post: Post,
        taxonomies: Iterable[str] = (),
        home_type: Optional[str] = None,
    ) -> int:
        """
        Drop the sitemaps a post change can affect.

        Args:
            post: Created, changed or deleted post
            taxonomies: Taxonomies of the post's terms (before and after the change)
            home_type: Post type whose sitemap carries the home URL, if any

        Returns:
            Number of cached sitemaps removed
        """
        types = {post.post_type, AUTHOR_TYPE, *taxonomies}
        if home_type:
            types.add(home_type)
        return self.invalidate_types(types)

    def clear(self) -> int:
        """Drop all cached sitemaps."""
        result = self.session.exec(delete(SitemapCacheEntry))
        self.session.commit()
        return result.rowcount or 0

    def count(self) -> int:
        """Number of cached sitemaps."""
        return self.session.exec(select(func.count()).select_from(SitemapCacheEntry)).one()
