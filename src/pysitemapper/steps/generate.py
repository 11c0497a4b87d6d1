"""Generate step: Write the sitemap index and every sitemap page to disk."""

import gzip
from pathlib import Path
from typing import Optional

import pluggy
from rich.console import Console
from rich.table import Table
from sqlmodel import Session

from pysitemapper.builder import SitemapBuilder
from pysitemapper.config import Settings
from pysitemapper.database import get_session
from pysitemapper.exceptions import SitemapError
from pysitemapper.urls import sitemap_filename

console = Console()

STALE_PATTERNS = ("*-sitemap*.xml", "*-sitemap*.xml.gz")


class GenerateStep:
    """Render all sitemaps listed in the index and write them to the output directory."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        plugin_manager: Optional[pluggy.PluginManager] = None,
    ):
        """
        Initialize generate step.

        Args:
            settings: Application settings (defaults to Settings())
            plugin_manager: Plugin manager (defaults to the global one)
        """
        self.settings = settings or Settings()
        self.plugin_manager = plugin_manager

    def run(
        self,
        session: Optional[Session] = None,
        output_dir: Optional[Path] = None,
        force: bool = False,
    ) -> dict:
        """
        Run the generate step.

        Args:
            session: Optional database session (for testing). If not provided, creates a new session.
            output_dir: Target directory (defaults to settings.output_dir)
            force: Clear the sitemap cache before generating

        Returns:
            Dictionary with statistics:
                - sitemaps: Files written (index included)
                - entries: URL entries across all sitemaps
                - cache_hits: Sitemaps served from the cache
                - stale_removed: Old sitemap files deleted
                - errors: Sitemaps that failed to render
        """
        console.print("\n[bold]═══ Generate Step ═══[/bold]\n")

        output = Path(output_dir or self.settings.output_dir)
        output.mkdir(parents=True, exist_ok=True)

        stats = {
            "sitemaps": 0,
            "entries": 0,
            "cache_hits": 0,
            "stale_removed": 0,
            "errors": 0,
        }

        db_session = session or next(get_session())
        should_close = session is None  # Only close if we created it

        try:
            builder = SitemapBuilder(
                db_session,
                settings=self.settings,
                plugin_manager=self.plugin_manager,
            )

            if force:
                removed = builder.cache.clear()
                console.print(f"[dim]→ Cleared {removed} cached sitemap(s)[/dim]")

            console.print(f"[blue]Entries per sitemap:[/blue] {builder.entries_per_page()}")

            written: set[str] = set()
            for link in builder.get_index_links():
                filename = sitemap_filename(link.sitemap_type, link.page, gzip=self.settings.gzip_output)
                try:
                    xml = builder.build_sitemap(link.sitemap_type, link.page)
                except SitemapError as e:
                    console.print(f"[red]✗[/red] Failed to build {filename}: {e}")
                    stats["errors"] += 1
                    continue

                self._write(output / filename, xml)
                written.add(filename)
                stats["sitemaps"] += 1
                stats["entries"] += xml.count("<url>")
                console.print(f"[green]✓[/green] {filename}")

            index_name = sitemap_filename("index", gzip=self.settings.gzip_output)
            self._write(output / index_name, builder.build_index())
            stats["sitemaps"] += 1
            console.print(f"[green]✓[/green] {index_name}")

            stats["stale_removed"] = self._remove_stale(output, written)
            stats["cache_hits"] = builder.cache_hits

        finally:
            if should_close:
                db_session.close()

        self._display_results(stats, output)
        return stats

    def _write(self, path: Path, xml: str) -> None:
        data = xml.encode("utf-8")
        if path.suffix == ".gz":
            data = gzip.compress(data)
        path.write_bytes(data)

    def _remove_stale(self, output: Path, written: set[str]) -> int:
        """Delete sitemap files from earlier runs that are no longer in the index."""
        removed = 0
        for pattern in STALE_PATTERNS:
            for path in output.glob(pattern):
                if path.name not in written:
                    path.unlink()
                    removed += 1
                    console.print(f"[dim]→ Removed stale {path.name}[/dim]")
        return removed

    def _display_results(self, stats: dict, output: Path) -> None:
        """Display generation results in a table."""
        table = Table(title="Generate Results", show_header=True, header_style="bold magenta")
        table.add_column("Metric", style="cyan")
        table.add_column("Count", justify="right", style="green")

        table.add_row("Sitemaps written", str(stats["sitemaps"]))
        table.add_row("URL entries", str(stats["entries"]))
        table.add_row("Cache hits", str(stats["cache_hits"]))
        table.add_row("Stale files removed", str(stats["stale_removed"]))
        table.add_row("Errors", str(stats["errors"]), style="red" if stats["errors"] else None)

        console.print()
        console.print(table)
        console.print(f"[dim]Output: {output.resolve()}[/dim]\n")
