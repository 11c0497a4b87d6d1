"""Author archive sitemap (author-sitemap.xml)."""

from collections.abc import Callable
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlmodel import col, select

from pysitemapper.models import Author, Post
from pysitemapper.plugins import apply_filter
from pysitemapper.sources.base import IndexLink, SitemapEntry, SitemapProvider, newest, page_count
from pysitemapper.sources.posts import indexable_conditions

AUTHOR_TYPE = "author"


class AuthorProvider(SitemapProvider):
    """
    Sitemap of author archives.

    An author qualifies with at least one published, indexable post in a
    post type that has a sitemap. The qualifying list then passes through
    the sitemap_exclude_authors filter. Authors are ordered by their newest
    post modification (ties broken by ID).
    """

    def __init__(self, *args, post_types: Callable[[], list[str]], **kwargs):
        """
        Initialize provider.

        Args:
            post_types: Returns the post types that have a sitemap
        """
        super().__init__(*args, **kwargs)
        self.post_types = post_types
        self._authors: Optional[list[tuple[Author, datetime]]] = None

    def handles_type(self, sitemap_type: str) -> bool:
        return self.settings.include_author_sitemap and sitemap_type == AUTHOR_TYPE

    def get_authors(self) -> list[tuple[Author, datetime]]:
        """
        Authors listed in the sitemap, in sitemap order.

        Returns:
            List of (author, lastmod)
        """
        if self._authors is not None:
            return self._authors

        post_types = self.post_types()
        if not post_types:
            self._authors = []
            return self._authors

        stmt = (
            select(Author, func.max(Post.modified_at))
            .join(Post, Post.author_id == Author.id)
            .where(Author.noindex == False)  # noqa: E712
            .where(col(Post.post_type).in_(post_types), *indexable_conditions())
            .group_by(Author.id)
        )
        rows = self.session.exec(stmt).all()
        lastmods = {author.id: lastmod for author, lastmod in rows}

        users = apply_filter(self.pm, "sitemap_exclude_authors", [author for author, _ in rows])
        kept = [(user, lastmods.get(user.id)) for user in users or []]
        kept.sort(key=lambda item: (item[1] or datetime.min, item[0].id))

        self._authors = kept
        return self._authors

    def get_index_links(self, max_entries: int) -> list[IndexLink]:
        if not self.settings.include_author_sitemap:
            return []

        authors = self.get_authors()
        links = []
        for page in range(1, page_count(len(authors), max_entries) + 1):
            chunk = authors[(page - 1) * max_entries : page * max_entries]
            links.append(
                IndexLink(
                    sitemap_type=AUTHOR_TYPE,
                    page=page,
                    loc=self.urls.sitemap_url(AUTHOR_TYPE, page),
                    lastmod=newest(lastmod for _author, lastmod in chunk),
                )
            )
        return links

    def get_sitemap_links(self, sitemap_type: str, max_entries: int, page: int) -> list[SitemapEntry]:
        if not self.handles_type(sitemap_type) or page < 1:
            return []

        chunk = self.get_authors()[(page - 1) * max_entries : page * max_entries]

        entries = []
        for author, lastmod in chunk:
            url = self.filter_url(self.urls.author_url(author), author)
            if url:
                entries.append(SitemapEntry(loc=url, lastmod=lastmod))
        return entries
