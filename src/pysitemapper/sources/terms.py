"""Taxonomy sitemaps (category-sitemap.xml, post_tag-sitemap.xml, ...)."""

from typing import Optional

from sqlalchemy import func
from sqlmodel import col, select

from pysitemapper.models import Post, PostTermLink, Term
from pysitemapper.plugins import apply_filter
from pysitemapper.sources.base import IndexLink, SitemapEntry, SitemapProvider, page_count
from pysitemapper.sources.posts import indexable_conditions


class TaxonomyProvider(SitemapProvider):
    """
    One sitemap family per taxonomy.

    Empty terms (no published, indexable posts) and noindex terms are left
    out. Terms are ordered by ID; a term's lastmod is the newest
    modification among its posts.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._taxonomies: Optional[list[str]] = None
        self._excluded_ids: Optional[list[int]] = None

    def handles_type(self, sitemap_type: str) -> bool:
        return sitemap_type in self.get_taxonomies()

    def get_taxonomies(self) -> list[str]:
        """Taxonomies not excluded by sitemap_exclude_taxonomy, sorted by name."""
        if self._taxonomies is None:
            candidates = self.session.exec(select(Term.taxonomy).distinct()).all()
            self._taxonomies = [
                taxonomy
                for taxonomy in sorted(candidates)
                if not apply_filter(self.pm, "sitemap_exclude_taxonomy", False, taxonomy=taxonomy)
            ]
        return self._taxonomies

    def excluded_term_ids(self) -> list[int]:
        """Term IDs returned by the sitemap_exclude_term_ids filter."""
        if self._excluded_ids is None:
            result = apply_filter(self.pm, "sitemap_exclude_term_ids", [])
            self._excluded_ids = [int(term_id) for term_id in result or []]
        return self._excluded_ids

    def get_index_links(self, max_entries: int) -> list[IndexLink]:
        links = []
        for taxonomy in self.get_taxonomies():
            rows = self.session.exec(self._terms_query(taxonomy)).all()
            pages = page_count(len(rows), max_entries)

            for page in range(1, pages + 1):
                chunk = rows[(page - 1) * max_entries : page * max_entries]
                lastmods = [lastmod for _term, lastmod in chunk if lastmod is not None]
                links.append(
                    IndexLink(
                        sitemap_type=taxonomy,
                        page=page,
                        loc=self.urls.sitemap_url(taxonomy, page),
                        lastmod=max(lastmods) if lastmods else None,
                    )
                )
        return links

    def get_sitemap_links(self, sitemap_type: str, max_entries: int, page: int) -> list[SitemapEntry]:
        if not self.handles_type(sitemap_type) or page < 1:
            return []

        stmt = self._terms_query(sitemap_type).offset((page - 1) * max_entries).limit(max_entries)

        entries = []
        for term, lastmod in self.session.exec(stmt).all():
            url = self.filter_url(self.urls.term_url(term), term)
            if url:
                entries.append(SitemapEntry(loc=url, lastmod=lastmod))
        return entries

    def _terms_query(self, taxonomy: str):
        stmt = (
            select(Term, func.max(Post.modified_at))
            .join(PostTermLink, PostTermLink.term_id == Term.id)
            .join(Post, Post.id == PostTermLink.post_id)
            .where(Term.taxonomy == taxonomy, Term.noindex == False)  # noqa: E712
            .where(*indexable_conditions())
            .group_by(Term.id)
            .order_by(Term.id)
        )
        excluded = self.excluded_term_ids()
        if excluded:
            stmt = stmt.where(col(Term.id).not_in(excluded))
        return stmt
