"""Sitemaps registered by plugins through the register_sitemaps hook."""

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from typing import Any, Union

from pysitemapper.sources.base import IndexLink, SitemapEntry, SitemapProvider, newest, page_count

NAME_RE = re.compile(r"^[a-z0-9_]+(?:-[a-z0-9_]+)*$")
RESERVED_NAMES = {"index", "sitemap"}

EntrySource = Callable[[], Iterable[Union[SitemapEntry, dict[str, Any]]]]


@dataclass
class CustomSitemap:
    """A named sitemap whose entries come from a plugin callable."""

    name: str
    entries: EntrySource
    in_index: bool = True


class SitemapRegistry:
    """Registry of custom sitemaps, filled by register_sitemaps implementations."""

    def __init__(self):
        self.sitemaps: dict[str, CustomSitemap] = {}

    def register(self, name: str, entries: EntrySource, in_index: bool = True) -> CustomSitemap:
        """
        Register a custom sitemap.

        Args:
            name: Sitemap type, served as "<name>-sitemap.xml"
            entries: Callable returning SitemapEntry objects or dicts with
                "loc" and optional "lastmod", "images", "video"
            in_index: List the sitemap in sitemap_index.xml

        Returns:
            The registered CustomSitemap

        Raises:
            ValueError: If the name is invalid, reserved or already registered
        """
        if not NAME_RE.match(name) or name in RESERVED_NAMES:
            raise ValueError(f"Invalid sitemap name: {name!r}")
        if name in self.sitemaps:
            raise ValueError(f"Sitemap {name!r} is already registered")

        sitemap = CustomSitemap(name=name, entries=entries, in_index=in_index)
        self.sitemaps[name] = sitemap
        return sitemap

    def get(self, name: str) -> CustomSitemap | None:
        return self.sitemaps.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self.sitemaps

    def __len__(self) -> int:
        return len(self.sitemaps)


class CustomSitemapProvider(SitemapProvider):
    """Serves the sitemaps of a SitemapRegistry, paginated like the built-in ones."""

    def __init__(self, *args, registry: SitemapRegistry, **kwargs):
        super().__init__(*args, **kwargs)
        self.registry = registry
        self._entries: dict[str, list[SitemapEntry]] = {}

    def handles_type(self, sitemap_type: str) -> bool:
        return sitemap_type in self.registry

    def get_index_links(self, max_entries: int) -> list[IndexLink]:
        links = []
        for name, sitemap in self.registry.sitemaps.items():
            if not sitemap.in_index:
                continue

            entries = self._load(name)
            for page in range(1, page_count(len(entries), max_entries) + 1):
                chunk = entries[(page - 1) * max_entries : page * max_entries]
                links.append(
                    IndexLink(
                        sitemap_type=name,
                        page=page,
                        loc=self.urls.sitemap_url(name, page),
                        lastmod=newest(entry.lastmod for entry in chunk),
                    )
                )
        return links

    def get_sitemap_links(self, sitemap_type: str, max_entries: int, page: int) -> list[SitemapEntry]:
        if not self.handles_type(sitemap_type) or page < 1:
            return []
        return self._load(sitemap_type)[(page - 1) * max_entries : page * max_entries]

    def _load(self, name: str) -> list[SitemapEntry]:
        if name not in self._entries:
            entries = []
            for item in self.registry.get(name).entries():
                entry = item if isinstance(item, SitemapEntry) else SitemapEntry.from_dict(item)
                entry = replace(entry, loc=self.filter_url(entry.loc, None))
                if entry.loc:
                    entries.append(entry)
            self._entries[name] = entries
        return self._entries[name]
