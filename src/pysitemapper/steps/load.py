"""Load step: Import content from a JSON export and invalidate affected sitemaps."""

from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError
from rich.console import Console
from rich.table import Table
from sqlmodel import Session, SQLModel

from pysitemapper.cache import SitemapCache
from pysitemapper.config import Settings
from pysitemapper.database import get_session
from pysitemapper.exceptions import ContentImportError
from pysitemapper.models import PUBLISHED, Author, Post, Term
from pysitemapper.sources.authors import AUTHOR_TYPE
from pysitemapper.sources.base import utc_naive

console = Console()


class AuthorRecord(BaseModel):
    id: int
    login: str
    nicename: Optional[str] = None
    display_name: str = ""
    noindex: bool = False


class TermRecord(BaseModel):
    id: int
    taxonomy: str
    slug: str
    name: str = ""
    noindex: bool = False


class PostRecord(BaseModel):
    id: int
    post_type: str = "post"
    slug: str
    title: str = ""
    content: Optional[str] = None
    status: str = PUBLISHED
    password: Optional[str] = None
    noindex: bool = False
    author_id: Optional[int] = None
    published_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    meta: dict[str, Any] = Field(default_factory=dict)
    terms: list[int] = Field(default_factory=list)


class ContentExport(BaseModel):
    """Layout of a content export file."""

    authors: list[AuthorRecord] = Field(default_factory=list)
    terms: list[TermRecord] = Field(default_factory=list)
    posts: list[PostRecord] = Field(default_factory=list)


def _apply(record: SQLModel, values: dict[str, Any]) -> bool:
    """Set changed attributes on a record; return whether anything changed."""
    changed = False
    for name, value in values.items():
        if getattr(record, name) != value:
            setattr(record, name, value)
            changed = True
    return changed


class LoadStep:
    """Upsert authors, terms and posts from a JSON export file."""

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize load step.

        Args:
            settings: Application settings (defaults to Settings())
        """
        self.settings = settings or Settings()

    def read(self, path: Path) -> ContentExport:
        """
        Read and validate an export file.

        Raises:
            ContentImportError: If the file is missing or not a valid export
        """
        try:
            return ContentExport.model_validate_json(Path(path).read_text(encoding="utf-8"))
        except OSError as e:
            raise ContentImportError(f"Cannot read {path}: {e}") from e
        except ValidationError as e:
            raise ContentImportError(f"Invalid content export {path}: {e}") from e

    def run(self, path: Path, session: Optional[Session] = None) -> dict:
        """
        Run the load step.

        Args:
            path: JSON export file with "authors", "terms" and "posts"
            session: Optional database session (for testing). If not provided, creates a new session.

        Returns:
            Dictionary with statistics:
                - authors: Authors created or changed
                - terms: Terms created or changed
                - posts_created: New posts
                - posts_updated: Changed posts
                - unchanged: Records identical to what was stored
                - invalidated: Cached sitemaps removed
        """
        console.print("\n[bold]═══ Load Step ═══[/bold]\n")

        export = self.read(path)
        stats = {
            "authors": 0,
            "terms": 0,
            "posts_created": 0,
            "posts_updated": 0,
            "unchanged": 0,
            "invalidated": 0,
        }
        affected: set[str] = set()

        db_session = session or next(get_session())
        should_close = session is None  # Only close if we created it

        try:
            for record in export.authors:
                if self._store_author(db_session, record):
                    stats["authors"] += 1
                    affected.add(AUTHOR_TYPE)
                else:
                    stats["unchanged"] += 1

            for record in export.terms:
                taxonomies = self._store_term(db_session, record)
                if taxonomies:
                    stats["terms"] += 1
                    affected.update(taxonomies)
                else:
                    stats["unchanged"] += 1

            # Terms must exist before posts link to them
            db_session.flush()

            for record in export.posts:
                created, types = self._store_post(db_session, record)
                if not types:
                    stats["unchanged"] += 1
                    continue
                stats["posts_created" if created else "posts_updated"] += 1
                affected.update(types)

            db_session.commit()

            if affected:
                cache = SitemapCache(db_session)
                stats["invalidated"] = cache.invalidate_types(affected)

        finally:
            if should_close:
                db_session.close()

        self._display_results(stats, affected)
        return stats

    def _store_author(self, session: Session, record: AuthorRecord) -> bool:
        """Create or update an author; return whether it changed."""
        values = {
            "login": record.login,
            "nicename": record.nicename or record.login,
            "display_name": record.display_name,
            "noindex": record.noindex,
        }
        author = session.get(Author, record.id)
        if author is None:
            session.add(Author(id=record.id, **values))
            return True

        if _apply(author, values):
            author.updated_at = datetime.utcnow()
            session.add(author)
            return True
        return False

    def _store_term(self, session: Session, record: TermRecord) -> set[str]:
        """
        Create or update a term.

        Returns:
            Taxonomies whose sitemaps are affected (empty if unchanged)
        """
        values = {
            "taxonomy": record.taxonomy,
            "slug": record.slug,
            "name": record.name,
            "noindex": record.noindex,
        }
        term = session.get(Term, record.id)
        if term is None:
            session.add(Term(id=record.id, **values))
            return {record.taxonomy}

        previous = term.taxonomy
        if _apply(term, values):
            session.add(term)
            return {previous, record.taxonomy}
        return set()

    def _store_post(self, session: Session, record: PostRecord) -> tuple[bool, set[str]]:
        """
        Create or update a post and its term assignments.

        Returns:
            Tuple of (created, sitemap types affected). No types means unchanged.
        """
        now = datetime.utcnow()
        values = {
            "post_type": record.post_type,
            "slug": record.slug,
            "title": record.title,
            "content": record.content,
            "status": record.status,
            "password": record.password,
            "noindex": record.noindex,
            "author_id": record.author_id,
            "meta": record.meta,
        }
        if record.published_at is not None:
            values["published_at"] = utc_naive(record.published_at)
        if record.modified_at is not None:
            values["modified_at"] = utc_naive(record.modified_at)

        terms = []
        for term_id in record.terms:
            term = session.get(Term, term_id)
            if term is None:
                console.print(f"[yellow]⚠[/yellow] Post {record.id}: unknown term {term_id}, skipped")
                continue
            terms.append(term)

        post = session.get(Post, record.id)
        if post is None:
            values.setdefault("published_at", now)
            values.setdefault("modified_at", values["published_at"])
            post = Post(id=record.id, **values)
            post.terms = terms
            session.add(post)
            return True, self._affected_by(post, terms)

        before = {post.post_type, *(term.taxonomy for term in post.terms)}
        changed = _apply(post, values)

        if {term.id for term in post.terms} != {term.id for term in terms}:
            post.terms = terms
            changed = True

        if not changed:
            return False, set()

        if record.modified_at is None:
            post.modified_at = now
        session.add(post)
        return False, before | self._affected_by(post, terms)

    def _affected_by(self, post: Post, terms: list[Term]) -> set[str]:
        """Sitemap types whose output depends on a post."""
        affected = {post.post_type, AUTHOR_TYPE, *(term.taxonomy for term in terms)}
        # The home entry takes its lastmod from posts of every type
        if self.settings.include_home:
            affected.add(self.settings.front_page_post_type)
        return affected

    def _display_results(self, stats: dict, affected: set[str]) -> None:
        """Display load results in a table."""
        table = Table(title="Load Results", show_header=True, header_style="bold magenta")
        table.add_column("Metric", style="cyan")
        table.add_column("Count", justify="right", style="green")

        table.add_row("Authors changed", str(stats["authors"]))
        table.add_row("Terms changed", str(stats["terms"]))
        table.add_row("Posts created", str(stats["posts_created"]))
        table.add_row("Posts updated", str(stats["posts_updated"]))
        table.add_row("Unchanged", str(stats["unchanged"]))
        table.add_row("Cached sitemaps invalidated", str(stats["invalidated"]))

        console.print()
        console.print(table)
        if affected:
            console.print(f"[dim]Affected sitemaps: {', '.join(sorted(affected))}[/dim]")
        console.print()
