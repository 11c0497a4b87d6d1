"""Tests for database connection and operations."""

from sqlmodel import select

from pysitemapper.models import Post, Term


def test_database_connection(session):
    """Test that database session is created successfully."""
    assert session is not None
    # Should be able to query without errors
    assert session.exec(select(Post)).all() == []


def test_database_session_commits(session, content):
    """Test that database session can commit changes."""
    post = session.exec(select(Post).where(Post.slug == "hello-world")).first()
    assert post is not None
    assert post.title == "Hello World"

    categories = session.exec(select(Term).where(Term.taxonomy == "category")).all()
    assert {term.slug for term in categories} == {"news", "empty"}
