"""Pydantic schemas for posts and replies.

Learn: Separate schemas for create/update/read keeps the API clean.
- PostCreate: what you POST to create a post
- PostUpdate: what you PATCH to modify a post (all optional)
- PostSummary: list item (author + reply count, no thread)
- PostDetail: single post with the full reply thread
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from postboard.schemas.base import ApiModel, RequestModel


# ─── Posts ───────────────────────────────────────────────

class PostCreate(RequestModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    published: bool = False
    file_url: Optional[str] = Field(None, max_length=500)


class PostUpdate(RequestModel):
    """Partial update — only non-None fields are applied."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = Field(None, min_length=1)
    published: Optional[bool] = None


class AuthorSummary(ApiModel):
    id: uuid.UUID
    email: str
    name: str


class PostRead(ApiModel):
    id: uuid.UUID
    title: str
    content: str
    published: bool
    file_url: Optional[str]
    author_id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    author: AuthorSummary


class PostSummary(PostRead):
    reply_count: int = 0


class PostPageRead(ApiModel):
    posts: list[PostSummary]
    total: int
    page: int
    limit: int
    total_pages: int


# ─── Replies ─────────────────────────────────────────────

class ReplyCreate(RequestModel):
    content: str = Field(..., min_length=1)


class ReplyRead(ApiModel):
    id: uuid.UUID
    content: str
    post_id: uuid.UUID
    author_id: uuid.UUID
    created_at: datetime
    author: AuthorSummary


class PostDetail(PostRead):
    """Post with its reply thread, oldest reply first."""
    replies: list[ReplyRead] = []
