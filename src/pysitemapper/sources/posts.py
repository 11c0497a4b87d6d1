"""Post type sitemaps (post-sitemap.xml, page-sitemap.xml, ...)."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlmodel import col, select

from pysitemapper.models import PUBLISHED, Post
from pysitemapper.plugins import apply_filter
from pysitemapper.sources.base import IndexLink, SitemapEntry, SitemapProvider, page_count
from pysitemapper.sources.images import ImageParser

logger = logging.getLogger(__name__)


def indexable_conditions() -> list:
    """Filters selecting posts that may appear in a sitemap."""
    return [
        Post.status == PUBLISHED,
        Post.noindex == False,  # noqa: E712
        or_(col(Post.password).is_(None), Post.password == ""),
    ]


class PostTypeProvider(SitemapProvider):
    """
    One sitemap family per post type with published, indexable content.

    Entries are ordered by last modification (oldest first, ties broken by
    ID). Page 1 of the front page post type also carries the home URL.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.image_parser = ImageParser(
            self.settings.base_url, include_external=self.settings.include_external_images
        )
        self._post_types: Optional[list[str]] = None
        self._excluded_ids: Optional[set[int]] = None

    def handles_type(self, sitemap_type: str) -> bool:
        return sitemap_type in self.get_post_types()

    def get_post_types(self) -> list[str]:
        """
        Post types that get a sitemap.

        Returns:
            Sorted post type names not excluded by sitemap_exclude_post_type
        """
        if self._post_types is None:
            stmt = select(Post.post_type).where(Post.status == PUBLISHED).distinct()
            candidates = set(self.session.exec(stmt).all())
            if self.settings.include_home:
                candidates.add(self.settings.front_page_post_type)

            self._post_types = [
                post_type
                for post_type in sorted(candidates)
                if not self.is_excluded_type(post_type)
            ]
        return self._post_types

    def is_excluded_type(self, post_type: str) -> bool:
        return bool(
            apply_filter(self.pm, "sitemap_exclude_post_type", False, post_type=post_type)
        )

    def excluded_post_ids(self) -> set[int]:
        """Union of the IDs returned by every sitemap_exclude_post_ids implementation."""
        if self._excluded_ids is None:
            excluded: set[int] = set()
            for result in self.pm.hook.sitemap_exclude_post_ids():
                excluded.update(int(post_id) for post_id in result or [])
            self._excluded_ids = excluded
        return self._excluded_ids

    def get_index_links(self, max_entries: int) -> list[IndexLink]:
        links = []
        for post_type in self.get_post_types():
            stmt = (
                select(Post.modified_at)
                .where(*self._conditions(post_type))
                .order_by(Post.modified_at, Post.id)
            )
            modified = self.session.exec(stmt).all()
            pages = page_count(len(modified), max_entries)

            if pages == 0 and self._carries_home(post_type):
                links.append(
                    IndexLink(post_type, 1, self.urls.sitemap_url(post_type), self.home_lastmod())
                )
                continue

            for page in range(1, pages + 1):
                # Ordered by modified_at, so the last entry of a page is its newest
                last = min(page * max_entries, len(modified)) - 1
                links.append(
                    IndexLink(
                        sitemap_type=post_type,
                        page=page,
                        loc=self.urls.sitemap_url(post_type, page),
                        lastmod=modified[last],
                    )
                )
        return links

    def get_sitemap_links(self, sitemap_type: str, max_entries: int, page: int) -> list[SitemapEntry]:
        if not self.handles_type(sitemap_type) or page < 1:
            return []

        stmt = (
            select(Post)
            .where(*self._conditions(sitemap_type))
            .order_by(Post.modified_at, Post.id)
            .offset((page - 1) * max_entries)
            .limit(max_entries)
        )
        posts = self.session.exec(stmt).all()

        entries = []
        if page == 1 and self._carries_home(sitemap_type):
            home = self.filter_url(self.urls.home_url(), None)
            if home:
                entries.append(SitemapEntry(loc=home, lastmod=self.home_lastmod()))

        for post in posts:
            entry = self._entry(post)
            if entry is not None:
                entries.append(entry)

        return entries

    def home_lastmod(self) -> Optional[datetime]:
        """Most recent modification of any published post."""
        stmt = select(func.max(Post.modified_at)).where(Post.status == PUBLISHED)
        return self.session.exec(stmt).one()

    def _carries_home(self, post_type: str) -> bool:
        return self.settings.include_home and post_type == self.settings.front_page_post_type

    def _conditions(self, post_type: str) -> list:
        conditions = [Post.post_type == post_type, *indexable_conditions()]
        excluded = self.excluded_post_ids()
        if excluded:
            conditions.append(col(Post.id).not_in(excluded))
        return conditions

    def _entry(self, post: Post) -> Optional[SitemapEntry]:
        url = self.filter_url(self.urls.post_url(post), post)
        if not url:
            logger.debug("Post %s dropped: empty URL after filtering", post.id)
            return None

        images = []
        if self.settings.include_images:
            images = self.image_parser.images_for_post(post)
            images = apply_filter(self.pm, "sitemap_entry_images", images, entity_id=post.id) or []

        return SitemapEntry(
            loc=url,
            lastmod=post.modified_at,
            images=images,
            video=(post.meta or {}).get("video"),
            entity_id=post.id,
        )
