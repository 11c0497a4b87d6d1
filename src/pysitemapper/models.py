"""Database models for pySitemapper."""

import json
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import Text, TypeDecorator
from sqlmodel import Column, Field, Relationship, SQLModel

# Post statuses that are publicly visible
PUBLISHED = "publish"


class JSONText(TypeDecorator):
    """Custom type to store JSON as TEXT in SQLite."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        """Serialize dict to JSON string before storing."""
        if value is not None:
            return json.dumps(value)
        return None

    def process_result_value(self, value, dialect):
        """Deserialize JSON string to dict when retrieving."""
        if value is not None:
            return json.loads(value)
        return None


class PostTermLink(SQLModel, table=True):
    """Assignment of a post to a taxonomy term."""

    __tablename__ = "post_terms"

    post_id: int = Field(foreign_key="posts.id", primary_key=True)
    term_id: int = Field(foreign_key="terms.id", primary_key=True)


class Author(SQLModel, table=True):
    """Content author (author archive in the author sitemap)."""

    __tablename__ = "authors"

    id: int = Field(primary_key=True)
    login: str = Field(unique=True, index=True)
    nicename: str = Field(description="URL slug of the author archive")
    display_name: str = Field(default="")
    noindex: bool = Field(default=False, description="Keep the author archive out of sitemaps")
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    posts: list["Post"] = Relationship(back_populates="author")


class Term(SQLModel, table=True):
    """Taxonomy term (category, tag, or custom taxonomy)."""

    __tablename__ = "terms"

    id: int = Field(primary_key=True)
    taxonomy: str = Field(index=True, description="Taxonomy name, e.g. category or post_tag")
    slug: str
    name: str = Field(default="")
    noindex: bool = Field(default=False)

    posts: list["Post"] = Relationship(back_populates="terms", link_model=PostTermLink)


class Post(SQLModel, table=True):
    """A piece of content of any post type."""

    __tablename__ = "posts"

    id: int = Field(primary_key=True)
    post_type: str = Field(default="post", index=True)
    slug: str
    title: str = Field(default="")
    content: Optional[str] = Field(default=None, sa_column=Column(Text))
    status: str = Field(
        default=PUBLISHED,
        index=True,
        description="Status: publish, draft, private, future, trash",
    )
    password: Optional[str] = Field(default=None)
    noindex: bool = Field(default=False)
    author_id: Optional[int] = Field(default=None, foreign_key="authors.id", index=True)
    published_at: datetime = Field(default_factory=datetime.utcnow)
    modified_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    # JSON stored as TEXT with automatic serialization
    meta: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSONText),
        description="images, thumbnail, video",
    )

    author: Optional[Author] = Relationship(back_populates="posts")
    terms: list[Term] = Relationship(back_populates="posts", link_model=PostTermLink)


class SitemapCacheEntry(SQLModel, table=True):
    """A rendered sitemap kept for reuse until invalidated or expired."""

    __tablename__ = "sitemap_cache"

    key: str = Field(primary_key=True, description="<sitemap_type>:<page>")
    sitemap_type: str = Field(index=True)
    page: int = Field(default=1)
    fingerprint: str = Field(description="Hash of output-affecting settings")
    xml: str = Field(sa_column=Column(Text, nullable=False))
    generated_at: datetime = Field(default_factory=datetime.utcnow)
