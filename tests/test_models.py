"""Tests for database models."""

from datetime import datetime

from sqlmodel import select

from pysitemapper.models import PUBLISHED, Author, Post, SitemapCacheEntry, Term


def test_post_model_defaults():
    """Test Post model defaults."""
    post = Post(id=100, slug="test")

    assert post.post_type == "post"
    assert post.status == PUBLISHED
    assert post.noindex is False
    assert post.password is None
    assert post.meta == {}
    assert isinstance(post.modified_at, datetime)


def test_post_meta_roundtrip(session):
    """Test JSON meta is stored as text and read back as a dict."""
    post = Post(
        id=100,
        slug="gallery",
        meta={"images": [{"src": "https://example.com/a.png", "alt": "A"}]},
    )
    session.add(post)
    session.commit()
    session.expire_all()

    stored = session.get(Post, 100)
    assert stored.meta["images"][0]["alt"] == "A"


def test_post_terms_relationship(session, content):
    """Test posts and terms are linked through post_terms."""
    post = session.get(Post, 1)
    term = session.get(Term, 12)

    assert {t.slug for t in post.terms} == {"news", "python"}
    assert {p.id for p in term.posts} == {1, 9}


def test_author_posts_relationship(session, content):
    """Test author back-reference to posts."""
    author = session.exec(select(Author).where(Author.login == "alice")).first()

    assert {p.id for p in author.posts} == {1, 2, 3, 4}


def test_cache_entry_insert(session):
    """Test SitemapCacheEntry can be stored."""
    session.add(
        SitemapCacheEntry(key="post:1", sitemap_type="post", page=1, fingerprint="abc", xml="<x/>")
    )
    session.commit()

    row = session.get(SitemapCacheEntry, "post:1")
    assert row.xml == "<x/>"
    assert isinstance(row.generated_at, datetime)
