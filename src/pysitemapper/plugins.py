"""Plugin manager for pySitemapper.

Manages plugin discovery, loading, and hook execution using pluggy.
Plugins are discovered via setuptools entry points.
"""

import logging
from typing import Any, Optional

import pluggy
from rich.console import Console

from . import hookspecs
from .builtin import SettingsPlugin
from .config import Settings, settings

console = Console()
logger = logging.getLogger(__name__)

PROJECT_NAME = "pysitemapper"

hookimpl = pluggy.HookimplMarker(PROJECT_NAME)

# Global plugin manager instance
pm = pluggy.PluginManager(PROJECT_NAME)
_loaded = False


def _setup(manager: pluggy.PluginManager, app_settings: Settings, load_entrypoints: bool) -> None:
    """Register hook specifications, the built-in plugin and (optionally) entry points."""
    manager.add_hookspecs(hookspecs)
    manager.register(SettingsPlugin(app_settings), name="builtin")

    if load_entrypoints:
        _load_entrypoints(manager)


def _load_entrypoints(manager: pluggy.PluginManager) -> None:
    """
    Discover plugins in the 'pysitemapper' entry point group.

    Entry point format in plugin's pyproject.toml:
        [project.entry-points.pysitemapper]
        plugin_name = "package.module"
    """
    try:
        count = manager.load_setuptools_entrypoints(PROJECT_NAME)
        # Hook implementations without a matching spec are almost always typos
        manager.check_pending()

        if count > 0:
            console.print(f"[dim]→ Loaded {count} plugin(s)[/dim]")
            for name, _plugin in manager.list_name_plugin():
                if name != "builtin":
                    console.print(f"[dim]  • {name}[/dim]")
    except Exception as e:
        # Non-fatal: plugins are optional
        console.print(f"[yellow]⚠ Plugin loading warning: {e}[/yellow]")


def load_plugins() -> None:
    """
    Set up the global plugin manager once.

    Registers hook specifications, the settings-driven built-in plugin and
    every plugin installed under the 'pysitemapper' entry point group.
    Calling it again is a no-op.
    """
    global _loaded
    if _loaded:
        return

    _setup(pm, settings, load_entrypoints=True)
    _loaded = True


def get_plugin_manager() -> pluggy.PluginManager:
    """
    Get the global plugin manager instance.

    Returns:
        PluginManager instance with loaded plugins
    """
    load_plugins()
    return pm


def create_plugin_manager(
    app_settings: Optional[Settings] = None, load_entrypoints: bool = False
) -> pluggy.PluginManager:
    """
    Create an isolated plugin manager.

    Used when generating with explicit settings (and in tests), so that the
    built-in plugin reads the same settings as the rest of the run.

    Args:
        app_settings: Settings for the built-in plugin (defaults to global settings)
        load_entrypoints: Also load installed entry point plugins

    Returns:
        New PluginManager with hook specifications and the built-in plugin
    """
    manager = pluggy.PluginManager(PROJECT_NAME)
    _setup(manager, app_settings or settings, load_entrypoints)
    return manager


def apply_filter(manager: pluggy.PluginManager, hook_name: str, value: Any, **context) -> Any:
    """
    Run a filter hook: pass a value through every implementation in call order.

    The first argument of the hook specification receives the current value;
    the remaining arguments come from ``context``. Implementations that
    return None leave the value unchanged. Wrappers are not called.

    Args:
        manager: Plugin manager holding the hook
        hook_name: Name of a filter hook, e.g. "sitemap_entry_url"
        value: Initial value
        **context: Remaining hook arguments

    Returns:
        Filtered value
    """
    caller = getattr(manager.hook, hook_name)
    value_name = caller.spec.argnames[0]

    # pluggy calls implementations last-registered first; filters follow suit
    for impl in reversed(caller.get_hookimpls()):
        if impl.hookwrapper or impl.wrapper:
            continue

        kwargs = {value_name: value, **context}
        result = impl.function(*[kwargs[name] for name in impl.argnames])
        if result is not None:
            logger.debug("%s changed by %s", hook_name, impl.plugin_name)
            value = result

    return value


def describe_plugins(manager: pluggy.PluginManager) -> list[tuple[str, list[str]]]:
    """
    List registered plugins with the hooks each implements.

    Returns:
        List of (plugin name, sorted hook names)
    """
    described = []
    for name, plugin in manager.list_name_plugin():
        callers = manager.get_hookcallers(plugin) or []
        described.append((name, sorted(caller.name for caller in callers)))
    return described
