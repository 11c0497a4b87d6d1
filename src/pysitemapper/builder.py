"""Sitemap generation engine: routing, pagination, caching and rendering."""

import logging
from typing import Optional

import pluggy
from sqlmodel import Session

from pysitemapper.cache import INDEX_TYPE, SitemapCache, make_fingerprint
from pysitemapper.config import MAX_ENTRIES_PER_SITEMAP, Settings
from pysitemapper.config import settings as default_settings
from pysitemapper.exceptions import SitemapNotFoundError
from pysitemapper.plugins import create_plugin_manager, get_plugin_manager
from pysitemapper.render import SitemapRenderer
from pysitemapper.sources import (
    AuthorProvider,
    CustomSitemapProvider,
    IndexLink,
    PostTypeProvider,
    SitemapEntry,
    SitemapProvider,
    SitemapRegistry,
    TaxonomyProvider,
)
from pysitemapper.urls import parse_sitemap_filename

logger = logging.getLogger(__name__)


class SitemapBuilder:
    """
    Build the sitemap index and individual sitemap pages.

    Providers are consulted in a fixed order (post types, taxonomies,
    authors, custom sitemaps); the first provider handling a type serves it,
    so built-in sitemaps win over custom ones registered under the same name.

    Example:
        >>> builder = SitemapBuilder(session)
        >>> xml = builder.render("post-sitemap2.xml")
    """

    def __init__(
        self,
        session: Session,
        settings: Optional[Settings] = None,
        plugin_manager: Optional[pluggy.PluginManager] = None,
        cache: Optional[SitemapCache] = None,
    ):
        """
        Initialize builder.

        Args:
            session: Database session with the content and cache tables
            settings: Application settings (defaults to the global settings)
            plugin_manager: Plugin manager (defaults to the global one, or a
                fresh one bound to ``settings`` when settings are given)
            cache: Sitemap cache (defaults to one configured from settings)
        """
        self.session = session
        self.settings = settings or default_settings

        if plugin_manager is None:
            plugin_manager = (
                create_plugin_manager(settings) if settings is not None else get_plugin_manager()
            )
        self.pm = plugin_manager

        self.cache = cache or SitemapCache(
            session,
            ttl_seconds=self.settings.cache_ttl_seconds,
            enabled=self.settings.enable_cache,
        )

        self.registry = SitemapRegistry()
        self.pm.hook.register_sitemaps(registry=self.registry)

        provider_args = (session, self.settings, self.pm)
        posts = PostTypeProvider(*provider_args)
        self.providers: list[SitemapProvider] = [
            posts,
            TaxonomyProvider(*provider_args),
            AuthorProvider(*provider_args, post_types=posts.get_post_types),
            CustomSitemapProvider(*provider_args, registry=self.registry),
        ]
        self.renderer = SitemapRenderer(self.settings, self.pm)
        self.cache_hits = 0
        self._per_page: Optional[int] = None

    def entries_per_page(self) -> int:
        """
        Maximum entries per sitemap page.

        The sitemap_entries_per_page hook wins over the configured value;
        invalid hook results are ignored. Clamped to the protocol limit.
        """
        if self._per_page is None:
            per_page = self.settings.entries_per_page
            override = self.pm.hook.sitemap_entries_per_page()

            if override is not None:
                if isinstance(override, int) and not isinstance(override, bool) and override > 0:
                    per_page = override
                else:
                    logger.warning(
                        "Ignoring invalid entries per page from plugin: %r", override
                    )

            self._per_page = min(per_page, MAX_ENTRIES_PER_SITEMAP)
        return self._per_page

    def fingerprint(self) -> str:
        """Hash of the settings and plugins that shape output, used as cache validator."""
        plugins = sorted(name for name, _plugin in self.pm.list_name_plugin())
        return make_fingerprint(
            self.settings.base_url,
            self.entries_per_page(),
            self.settings.stylesheet_url,
            self.settings.generator_comment,
            self.settings.include_home,
            self.settings.include_images,
            self.settings.include_external_images,
            self.settings.include_author_sitemap,
            ",".join(plugins),
        )

    def get_index_links(self) -> list[IndexLink]:
        """Links to every non-empty sitemap page, in provider order."""
        max_entries = self.entries_per_page()
        links = []
        for provider in self.providers:
            for link in provider.get_index_links(max_entries):
                # A type shadowed by an earlier provider is listed once
                if self.get_provider(link.sitemap_type) is not provider:
                    continue
                # sitemap_entry_url may have dropped every entry of the page
                if not provider.get_sitemap_links(link.sitemap_type, max_entries, link.page):
                    logger.debug("Skipping empty %s page %s", link.sitemap_type, link.page)
                    continue
                links.append(link)
        return links

    def get_provider(self, sitemap_type: str) -> SitemapProvider:
        """
        Find the provider serving a sitemap type.

        Raises:
            SitemapNotFoundError: If no provider handles the type
        """
        for provider in self.providers:
            if provider.handles_type(sitemap_type):
                return provider
        raise SitemapNotFoundError(sitemap_type)

    def get_entries(self, sitemap_type: str, page: int = 1) -> list[SitemapEntry]:
        """
        Entries of one sitemap page.

        Raises:
            SitemapNotFoundError: For unknown types, pages below 1, and
                pages without entries
        """
        if page < 1:
            raise SitemapNotFoundError(sitemap_type, page)

        provider = self.get_provider(sitemap_type)
        entries = provider.get_sitemap_links(sitemap_type, self.entries_per_page(), page)
        if not entries:
            raise SitemapNotFoundError(sitemap_type, page)
        return entries

    def build_index(self) -> str:
        """Render sitemap_index.xml (cached)."""
        return self._cached(INDEX_TYPE, 1, lambda: self.renderer.render_index(self.get_index_links()))

    def build_sitemap(self, sitemap_type: str, page: int = 1) -> str:
        """
        Render one sitemap page (cached).

        Raises:
            SitemapNotFoundError: If the type or page does not exist
        """
        if sitemap_type == INDEX_TYPE:
            return self.build_index()
        return self._cached(
            sitemap_type, page, lambda: self.renderer.render_sitemap(self.get_entries(sitemap_type, page))
        )

    def render(self, filename: str) -> str:
        """
        Render a sitemap by file name.

        Args:
            filename: "sitemap_index.xml" or "<type>-sitemap[N].xml"

        Raises:
            InvalidSitemapNameError: If the name is not a sitemap file name
            SitemapNotFoundError: If the type or page does not exist
        """
        sitemap_type, page = parse_sitemap_filename(filename)
        return self.build_sitemap(sitemap_type, page)

    def _cached(self, sitemap_type: str, page: int, render) -> str:
        fingerprint = self.fingerprint()
        xml = self.cache.get(sitemap_type, page, fingerprint)
        if xml is not None:
            self.cache_hits += 1
            return xml

        xml = render()
        self.cache.set(sitemap_type, page, fingerprint, xml)
        return xml
