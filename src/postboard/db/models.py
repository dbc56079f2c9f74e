"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Relationships, constraints, and indexes defined here.
Alembic auto-generates migrations by comparing these models to the actual DB.

Key concepts:
- UUID primary keys (the generic Uuid type maps to native UUID on
  PostgreSQL and CHAR(32) elsewhere)
- Python-side timestamps so ordering is stable at microsecond resolution
- author_id / post_id are set once at creation and never reassigned
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
    func,
    select,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    column_property,
    mapped_column,
    relationship,
)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


class User(Base):
    """An account. Owns posts and replies.

    Learn: refresh_token_hash holds the SHA-256 digest of the one
    refresh token currently allowed to renew this user's session.
    NULL means logged out (or never logged in). It is overwritten on
    every login/refresh, which is what invalidates older refresh tokens.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=new_uuid
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    refresh_token_hash: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # Relationships
    posts: Mapped[list["Post"]] = relationship(back_populates="author")


class Post(Base):
    """A post with an optional single attached file.

    Learn: file_url is a path under /uploads/ (set by the upload
    endpoint) or any URL the client supplied at creation. Replies are
    deleted together with their post.
    """

    __tablename__ = "posts"
    __table_args__ = (
        Index("idx_posts_created", "created_at"),
        Index("idx_posts_author", "author_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=new_uuid
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    file_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # Relationships
    author: Mapped["User"] = relationship(back_populates="posts")
    replies: Mapped[list["Reply"]] = relationship(
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="Reply.created_at",
    )


class Reply(Base):
    """A reply on a post. Only its author may delete it."""

    __tablename__ = "replies"
    __table_args__ = (
        Index("idx_replies_post", "post_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=new_uuid
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    # Relationships
    post: Mapped["Post"] = relationship(back_populates="replies")
    author: Mapped["User"] = relationship()


# Reply count for list views, computed by a correlated subquery on load.
Post.reply_count = column_property(
    select(func.count(Reply.id))
    .where(Reply.post_id == Post.id)
    .correlate_except(Reply)
    .scalar_subquery()
)
