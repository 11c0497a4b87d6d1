"""Tests for plugin system integration."""

import inspect
from unittest.mock import patch

import pytest

from pysitemapper import hookspecs
from pysitemapper.config import Settings
from pysitemapper.plugins import (
    apply_filter,
    create_plugin_manager,
    describe_plugins,
    get_plugin_manager,
    hookimpl,
    load_plugins,
)


@pytest.mark.unit
class TestPluginManager:
    """Test plugin manager functionality."""

    def test_get_plugin_manager(self):
        """Test getting plugin manager instance."""
        manager = get_plugin_manager()
        assert manager is not None
        assert manager.project_name == "pysitemapper"

    def test_plugin_manager_singleton(self):
        """Test plugin manager is a singleton."""
        manager1 = get_plugin_manager()
        manager2 = get_plugin_manager()
        assert manager1 is manager2

    def test_load_plugins_is_idempotent(self):
        """Test calling load_plugins twice does not re-register anything."""
        load_plugins()
        load_plugins()

        manager = get_plugin_manager()
        assert manager.get_plugin("builtin") is not None
        assert hasattr(manager.hook, "sitemap_entry_url")

    def test_create_plugin_manager_is_isolated(self, plugin_manager):
        """Test create_plugin_manager returns a new manager each time."""
        assert plugin_manager is not get_plugin_manager()
        assert [name for name, _ in plugin_manager.list_name_plugin()] == ["builtin"]

    def test_entrypoint_errors_are_not_fatal(self, app_settings):
        """Test that plugin loading errors are reported, not raised."""
        with patch(
            "pluggy.PluginManager.load_setuptools_entrypoints",
            side_effect=RuntimeError("broken plugin"),
        ), patch("pysitemapper.plugins.console") as mock_console:
            manager = create_plugin_manager(app_settings, load_entrypoints=True)

        assert manager.get_plugin("builtin") is not None
        assert "broken plugin" in mock_console.print.call_args.args[0]


@pytest.mark.unit
class TestApplyFilter:
    """Test filter hook execution."""

    def test_value_passes_through_every_plugin(self, plugin_manager):
        """Each implementation receives the previous one's result."""

        class AddPath:
            @hookimpl
            def sitemap_entry_url(self, url, entity):
                return url + "a/"

        class AddQuery:
            @hookimpl
            def sitemap_entry_url(self, url):
                return url + "?b"

        plugin_manager.register(AddPath())
        plugin_manager.register(AddQuery())

        # Last registered runs first
        result = apply_filter(plugin_manager, "sitemap_entry_url", "https://x/", entity=None)
        assert result == "https://x/?ba/"

    def test_none_keeps_value(self, plugin_manager):
        """Implementations returning None leave the value unchanged."""

        class Observer:
            seen = []

            @hookimpl
            def sitemap_urlset(self, urlset):
                self.seen.append(urlset)

        plugin_manager.register(Observer())

        assert apply_filter(plugin_manager, "sitemap_urlset", "<urlset>") == "<urlset>"
        assert Observer.seen == ["<urlset>"]

    def test_filter_without_implementations(self, plugin_manager):
        """A filter with no implementations returns the input."""
        assert apply_filter(plugin_manager, "sitemap_index_entries", "") == ""

    def test_plugin_exceptions_propagate(self, plugin_manager):
        """Errors raised by implementations are not swallowed."""

        class Broken:
            @hookimpl
            def sitemap_index_entries(self, entries):
                raise RuntimeError("boom")

        plugin_manager.register(Broken())

        with pytest.raises(RuntimeError, match="boom"):
            apply_filter(plugin_manager, "sitemap_index_entries", "")


@pytest.mark.unit
class TestSettingsPlugin:
    """Test the built-in settings plugin."""

    def test_exclude_post_type_from_settings(self):
        manager = create_plugin_manager(Settings(exclude_post_types=["product"]))

        assert apply_filter(manager, "sitemap_exclude_post_type", False, post_type="product") is True
        assert apply_filter(manager, "sitemap_exclude_post_type", False, post_type="post") is False

    def test_builtin_runs_after_plugins(self, plugin_manager):
        """A plugin cannot undo an exclusion made in settings."""

        class IncludeEverything:
            @hookimpl
            def sitemap_exclude_taxonomy(self, excluded, taxonomy):
                return False

        plugin_manager.register(IncludeEverything())

        assert apply_filter(
            plugin_manager, "sitemap_exclude_taxonomy", False, taxonomy="post_format"
        ) is True

    def test_exclude_term_ids_are_appended(self):
        manager = create_plugin_manager(Settings(exclude_term_ids=[5, 6]))

        assert apply_filter(manager, "sitemap_exclude_term_ids", [6, 1]) == [6, 1, 5]

    def test_exclude_post_ids_collected(self):
        manager = create_plugin_manager(Settings(exclude_post_ids=[3]))

        class MorePosts:
            @hookimpl
            def sitemap_exclude_post_ids(self):
                return [4]

        manager.register(MorePosts())

        results = manager.hook.sitemap_exclude_post_ids()
        assert sorted(post_id for result in results for post_id in result) == [3, 4]

    def test_entries_per_page_first_result(self, plugin_manager):
        assert plugin_manager.hook.sitemap_entries_per_page() is None

        class PerPage:
            @hookimpl
            def sitemap_entries_per_page(self):
                return 25

        plugin_manager.register(PerPage())
        assert plugin_manager.hook.sitemap_entries_per_page() == 25


@pytest.mark.unit
class TestHookSpecification:
    """Test hook specifications."""

    @pytest.mark.parametrize(
        "name, params",
        [
            ("sitemap_exclude_post_ids", []),
            ("sitemap_exclude_post_type", ["excluded", "post_type"]),
            ("sitemap_exclude_taxonomy", ["excluded", "taxonomy"]),
            ("sitemap_exclude_authors", ["users"]),
            ("sitemap_exclude_term_ids", ["term_ids"]),
            ("register_sitemaps", ["registry"]),
            ("sitemap_index_entries", ["entries"]),
            ("sitemap_entry_images", ["images", "entity_id"]),
            ("sitemap_entry_url", ["url", "entity"]),
            ("sitemap_entries_per_page", []),
            ("sitemap_video_property", ["property", "entity_id"]),
            ("sitemap_urlset", ["urlset"]),
        ],
    )
    def test_hookspec_signature(self, name, params):
        sig = inspect.signature(getattr(hookspecs, name))
        assert list(sig.parameters) == params

    def test_describe_plugins(self, plugin_manager):
        described = dict(describe_plugins(plugin_manager))

        assert "sitemap_exclude_post_type" in described["builtin"]
        assert "sitemap_entry_url" not in described["builtin"]
