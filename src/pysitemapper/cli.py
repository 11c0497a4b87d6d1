"""Command-line interface for pySitemapper."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from sqlalchemy import func
from sqlmodel import select

from pysitemapper import __version__
from pysitemapper.builder import SitemapBuilder
from pysitemapper.cache import SitemapCache
from pysitemapper.config import settings
from pysitemapper.database import get_session, init_db
from pysitemapper.models import PUBLISHED, Author, Post, Term
from pysitemapper.plugins import describe_plugins, get_plugin_manager
from pysitemapper.steps.generate import GenerateStep
from pysitemapper.steps.load import LoadStep

app = typer.Typer(
    name="pysitemapper",
    help="XML sitemap generation with pluggable exclusion and entry hooks",
    add_completion=False,
)
console = Console()


@app.callback()
def main():
    """Configure logging for all commands."""
    logging.basicConfig(
        level="DEBUG" if settings.enable_debug else settings.log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@app.command()
def init():
    """Create the content and cache tables."""
    try:
        init_db()
        console.print(f"[green]✓[/green] Database ready: {settings.database_url}")
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)


@app.command()
def load(
    path: Path = typer.Argument(..., help="JSON export with authors, terms and posts"),
):
    """Import content and invalidate the sitemaps it affects."""
    try:
        LoadStep(settings=settings).run(path)
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)


@app.command()
def build(
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-o", help="Directory to write sitemaps to (default: output.dir)"
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Ignore cached sitemaps and regenerate everything"
    ),
):
    """Write sitemap_index.xml and every sitemap page to disk."""
    try:
        step = GenerateStep(settings=settings, plugin_manager=get_plugin_manager())
        stats = step.run(output_dir=output_dir, force=force)

        if stats["errors"] > 0:
            console.print("[yellow]⚠[/yellow] Some sitemaps could not be generated")
            raise typer.Exit(code=1)

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)


@app.command()
def show(
    filename: str = typer.Argument(..., help="e.g. sitemap_index.xml, post-sitemap2.xml"),
):
    """Print one sitemap as raw XML."""
    try:
        session = next(get_session())
        builder = SitemapBuilder(session, settings=settings, plugin_manager=get_plugin_manager())
        typer.echo(builder.render(filename), nl=False)
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)


@app.command()
def index():
    """List the sitemaps referenced from the index."""
    try:
        session = next(get_session())
        builder = SitemapBuilder(session, settings=settings, plugin_manager=get_plugin_manager())
        links = builder.get_index_links()

        console.print(
            f"\n[bold cyan]Sitemap Index[/bold cyan] ({len(links)} sitemaps, "
            f"{builder.entries_per_page()} entries per page)\n"
        )

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Type", style="cyan")
        table.add_column("Page", justify="right")
        table.add_column("Location", style="yellow")
        table.add_column("Last Modified", style="green")

        for link in links:
            lastmod = link.lastmod.strftime("%Y-%m-%d %H:%M") if link.lastmod else "-"
            table.add_row(link.sitemap_type, str(link.page), link.loc, lastmod)

        console.print(table)
        console.print()

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)


@app.command()
def invalidate(
    sitemap_type: Optional[str] = typer.Argument(None, help="Sitemap type, e.g. post or category"),
    all_types: bool = typer.Option(False, "--all", "-a", help="Drop every cached sitemap"),
):
    """Drop cached sitemaps so they are regenerated."""
    if not sitemap_type and not all_types:
        console.print("[yellow]⚠[/yellow] Give a sitemap type or --all")
        raise typer.Exit(code=1)

    try:
        cache = SitemapCache(next(get_session()))
        removed = cache.clear() if all_types else cache.invalidate(sitemap_type)
        console.print(f"[green]✓[/green] Removed {removed} cached sitemap(s)")
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)


@app.command()
def plugins():
    """Show registered plugins and the hooks they implement."""
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Plugin", style="cyan")
    table.add_column("Hooks", style="yellow")

    for name, hooks in describe_plugins(get_plugin_manager()):
        table.add_row(name, "\n".join(hooks) or "-")

    console.print()
    console.print(table)
    console.print()


@app.command()
def status():
    """Show content and cache statistics."""
    console.print("\n[bold cyan]pySitemapper Status[/bold cyan]\n")

    try:
        session = next(get_session())

        def count(stmt) -> int:
            return session.exec(stmt).one()

        total_posts = count(select(func.count()).select_from(Post))
        published = count(select(func.count()).select_from(Post).where(Post.status == PUBLISHED))

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Metric", style="cyan")
        table.add_column("Count", justify="right", style="green")

        table.add_row("Total Posts", str(total_posts))
        table.add_row("  Published", str(published))
        table.add_row("Terms", str(count(select(func.count()).select_from(Term))))
        table.add_row("Authors", str(count(select(func.count()).select_from(Author))))
        table.add_row("Cached Sitemaps", str(SitemapCache(session).count()))

        console.print(table)
        console.print()

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)


@app.command()
def config():
    """Show current configuration."""
    console.print("\n[bold cyan]pySitemapper Configuration[/bold cyan]\n")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Setting", style="cyan", width=30)
    table.add_column("Value", style="yellow")

    # Site
    table.add_row("Base URL", settings.base_url)
    table.add_row("Database URL", settings.database_url)

    # Sitemap
    table.add_row("Entries per Sitemap", str(settings.entries_per_page))
    table.add_row("Home in", settings.front_page_post_type if settings.include_home else "-")
    table.add_row("Author Sitemap", str(settings.include_author_sitemap))
    table.add_row("Images", str(settings.include_images))
    table.add_row("Stylesheet", settings.stylesheet_url or "-")

    # Exclusions
    table.add_row("Excluded Post Types", ", ".join(settings.exclude_post_types) or "-")
    table.add_row("Excluded Taxonomies", ", ".join(settings.exclude_taxonomies) or "-")
    table.add_row("Excluded Posts", ", ".join(map(str, settings.exclude_post_ids)) or "-")

    # Cache & output
    table.add_row("Cache", f"{settings.enable_cache} (TTL {settings.cache_ttl_seconds}s)")
    table.add_row("Output Directory", settings.output_dir)
    table.add_row("Gzip Output", str(settings.gzip_output))

    # Application
    table.add_row("Log Level", settings.log_level)
    table.add_row("Debug Mode", str(settings.enable_debug))

    console.print(table)
    console.print()


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold cyan]pySitemapper[/bold cyan] version [green]{__version__}[/green]")


if __name__ == "__main__":
    app()
