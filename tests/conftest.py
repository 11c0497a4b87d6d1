"""Pytest configuration and fixtures."""

from datetime import datetime

import pytest
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from pysitemapper.config import Settings
from pysitemapper.models import Author, Post, PostTermLink, SitemapCacheEntry, Term  # noqa: F401
from pysitemapper.plugins import create_plugin_manager


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture(name="session")
def session_fixture(engine):
    """Create a database session for testing."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="app_settings")
def app_settings_fixture(tmp_path):
    """Explicit settings independent of config.toml and the environment."""
    return Settings(
        base_url="https://example.com/",
        database_url="sqlite:///:memory:",
        output_dir=str(tmp_path / "public"),
        entries_per_page=1000,
        exclude_post_ids=[],
        exclude_post_types=["attachment"],
        exclude_taxonomies=["post_format"],
        exclude_term_ids=[],
        exclude_author_ids=[],
        stylesheet_url=None,
        gzip_output=False,
        enable_cache=True,
    )


@pytest.fixture(name="plugin_manager")
def plugin_manager_fixture(app_settings):
    """A fresh plugin manager with only the built-in plugin registered."""
    return create_plugin_manager(app_settings)


@pytest.fixture(name="content")
def content_fixture(session):
    """
    Sample site content.

    Indexable: posts 1, 9, 2 (post), page 4, product 8.
    Not indexable: draft 3, password-protected 5, noindex 6, attachment 7.
    Term 11 only holds non-indexable posts; author 3 is noindex.
    """
    alice = Author(id=1, login="alice", nicename="alice", display_name="Alice")
    bob = Author(id=2, login="bob", nicename="bob-smith", display_name="Bob")
    carol = Author(id=3, login="carol", nicename="carol", noindex=True)

    news = Term(id=10, taxonomy="category", slug="news", name="News")
    empty = Term(id=11, taxonomy="category", slug="empty", name="Empty")
    python = Term(id=12, taxonomy="post_tag", slug="python", name="Python")
    aside = Term(id=13, taxonomy="post_format", slug="aside", name="Aside")

    posts = [
        Post(
            id=1,
            post_type="post",
            slug="hello-world",
            title="Hello World",
            content=(
                '<p><img src="/uploads/a.png" alt="Diagram A"></p>'
                '<img src="https://cdn.other.com/b.png">'
            ),
            author_id=1,
            published_at=datetime(2024, 1, 1, 9, 0, 0),
            modified_at=datetime(2024, 1, 2, 10, 0, 0),
            meta={"thumbnail": "https://example.com/uploads/thumb.jpg"},
            terms=[news, python],
        ),
        Post(
            id=2,
            post_type="post",
            slug="second-post",
            title="Second",
            author_id=1,
            published_at=datetime(2024, 2, 1, 8, 0, 0),
            modified_at=datetime(2024, 2, 1, 8, 0, 0),
            terms=[news, aside],
        ),
        Post(
            id=3,
            post_type="post",
            slug="draft-post",
            status="draft",
            author_id=1,
            modified_at=datetime(2024, 3, 1),
            terms=[empty],
        ),
        Post(
            id=4,
            post_type="page",
            slug="about",
            title="About",
            author_id=1,
            published_at=datetime(2024, 1, 15),
            modified_at=datetime(2024, 1, 15),
        ),
        Post(
            id=5,
            post_type="post",
            slug="secret",
            password="hunter2",
            modified_at=datetime(2024, 1, 5),
            terms=[empty],
        ),
        Post(id=6, post_type="post", slug="hidden", noindex=True, modified_at=datetime(2024, 1, 6)),
        Post(
            id=7,
            post_type="attachment",
            slug="photo",
            author_id=2,
            modified_at=datetime(2024, 4, 1),
        ),
        Post(
            id=8,
            post_type="product",
            slug="widget",
            title="Widget",
            author_id=2,
            published_at=datetime(2024, 3, 1),
            modified_at=datetime(2024, 3, 1),
            meta={
                "video": {
                    "title": "Widget demo",
                    "thumbnail_loc": "https://example.com/uploads/widget.jpg",
                    "content_loc": "https://example.com/uploads/widget.mp4",
                    "duration": 95,
                }
            },
        ),
        Post(
            id=9,
            post_type="post",
            slug="carols-post",
            author_id=3,
            published_at=datetime(2024, 1, 10),
            modified_at=datetime(2024, 1, 10),
            terms=[python],
        ),
    ]

    session.add_all([alice, bob, carol, news, empty, python, aside, *posts])
    session.commit()
    return {post.id: post for post in posts}
