"""Post service — business logic for posts, replies, and attachments.

Learn: Service layer separates business logic from HTTP routing.
Every mutating operation follows the same order of checks:

  1. resource exists?         → otherwise NotFoundError (404)
  2. acting user owns it?     → otherwise ForbiddenError (403)
  3. apply the change inside translate_storage_errors()

Post ownership grants nothing over replies: a reply can only be
deleted by the user who wrote it.

Reads go through _load_post(), which eager-loads the author and the
reply thread (selectinload) — async sessions cannot lazy-load.
"""

import math
import uuid
from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from postboard.auth.ownership import ensure_owner
from postboard.db.errors import translate_storage_errors
from postboard.db.models import Post, Reply
from postboard.errors import BadRequestError, NotFoundError
from postboard.services.notifier import Notifier
from postboard.services.upload_store import IncomingFile, UploadStore

logger = structlog.get_logger()


@dataclass
class PostPage:
    posts: list[Post]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit)


class PostService:
    """Business logic for posts and their reply threads."""

    def __init__(
        self,
        db: AsyncSession,
        notifier: Notifier,
        uploads: Optional[UploadStore] = None,
    ):
        self.db = db
        self.notifier = notifier
        self.uploads = uploads or UploadStore.from_settings()

    async def _load_post(self, post_id: uuid.UUID) -> Optional[Post]:
        result = await self.db.execute(
            select(Post)
            .where(Post.id == post_id)
            .options(
                selectinload(Post.author),
                selectinload(Post.replies).selectinload(Reply.author),
            )
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def _get_owned_post(
        self, post_id: uuid.UUID, user_id: uuid.UUID, action: str
    ) -> Post:
        post = await self.db.get(Post, post_id)
        if not post:
            raise NotFoundError("Post not found")
        ensure_owner(post.author_id, user_id, f"You can only {action} your own posts")
        return post

    # ─── Create ──────────────────────────────────────────

    async def create_post(
        self,
        author_id: uuid.UUID,
        title: str,
        content: str,
        published: bool = False,
        file_url: Optional[str] = None,
        file: Optional[IncomingFile] = None,
    ) -> Post:
        """Create a post owned by author_id and notify the author.

        An uploaded file is validated and stored before the row is
        inserted, and its URL takes precedence over file_url.
        """
        if file is not None:
            file_url = await self.uploads.save(file)

        with translate_storage_errors():
            post = Post(
                author_id=author_id,
                title=title,
                content=content,
                published=published,
                file_url=file_url,
            )
            self.db.add(post)
            await self.db.commit()

        post = await self._load_post(post.id)
        logger.info("post.created", post_id=str(post.id), author_id=str(author_id))
        self.notifier.post_created(
            post.author.email, post.author.name, post.title, str(post.id)
        )
        return post

    # ─── Read ────────────────────────────────────────────

    async def list_posts(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
    ) -> PostPage:
        """Newest-first page of posts, optionally filtered by substring.

        Learn: search matches title OR content with LIKE '%term%'
        (autoescape keeps % and _ literal). Case sensitivity is whatever
        the database's LIKE does.
        """
        if page < 1:
            raise BadRequestError("page must be at least 1")
        if limit < 1:
            raise BadRequestError("limit must be at least 1")

        query = (
            select(Post)
            .options(selectinload(Post.author))
            .order_by(Post.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        count_query = select(func.count()).select_from(Post)
        if search:
            match = or_(
                Post.title.contains(search, autoescape=True),
                Post.content.contains(search, autoescape=True),
            )
            query = query.where(match)
            count_query = count_query.where(match)

        with translate_storage_errors():
            result = await self.db.execute(
                query.execution_options(populate_existing=True)
            )
            posts = list(result.scalars().all())
            total = (await self.db.execute(count_query)).scalar_one()

        return PostPage(posts=posts, total=total, page=page, limit=limit)

    async def get_post(self, post_id: uuid.UUID) -> Post:
        post = await self._load_post(post_id)
        if not post:
            raise NotFoundError("Post not found")
        return post

    # ─── Update ──────────────────────────────────────────

    async def update_post(
        self,
        post_id: uuid.UUID,
        user_id: uuid.UUID,
        title: Optional[str] = None,
        content: Optional[str] = None,
        published: Optional[bool] = None,
    ) -> Post:
        """Partial update — only non-None fields are applied."""
        post = await self._get_owned_post(post_id, user_id, "update")

        changed = []
        if title is not None:
            post.title = title
            changed.append("title")
        if content is not None:
            post.content = content
            changed.append("content")
        if published is not None:
            post.published = published
            changed.append("published")

        with translate_storage_errors():
            await self.db.commit()

        logger.info("post.updated", post_id=str(post_id), fields=changed)
        return await self._load_post(post_id)

    async def attach_file(
        self,
        post_id: uuid.UUID,
        user_id: uuid.UUID,
        file: IncomingFile,
    ) -> Post:
        """Store an uploaded file and make it the post's single attachment."""
        post = await self._get_owned_post(post_id, user_id, "update")
        file_url = await self.uploads.save(file)

        with translate_storage_errors():
            post.file_url = file_url
            await self.db.commit()

        logger.info(
            "post.file_attached",
            post_id=str(post_id),
            file_url=file_url,
            original_name=file.filename,
        )
        return await self._load_post(post_id)

    # ─── Delete ──────────────────────────────────────────

    async def delete_post(self, post_id: uuid.UUID, user_id: uuid.UUID) -> dict:
        """Delete a post together with its replies."""
        await self._get_owned_post(post_id, user_id, "delete")
        # Replies must be loaded for the ORM delete cascade
        post = await self._load_post(post_id)

        with translate_storage_errors():
            await self.db.delete(post)
            await self.db.commit()

        logger.info("post.deleted", post_id=str(post_id))
        return {"message": "Post deleted successfully"}

    # ─── Replies ─────────────────────────────────────────

    async def create_reply(
        self, post_id: uuid.UUID, content: str, user_id: uuid.UUID
    ) -> Reply:
        """Reply to a post. The post author is notified unless replying to themselves."""
        result = await self.db.execute(
            select(Post).where(Post.id == post_id).options(selectinload(Post.author))
            .execution_options(populate_existing=True)
        )
        post = result.scalars().first()
        if not post:
            raise NotFoundError("Post not found")

        with translate_storage_errors():
            reply = Reply(post_id=post_id, author_id=user_id, content=content)
            self.db.add(reply)
            await self.db.commit()

        result = await self.db.execute(
            select(Reply)
            .where(Reply.id == reply.id)
            .options(selectinload(Reply.author))
            .execution_options(populate_existing=True)
        )
        reply = result.scalars().one()
        logger.info("reply.created", reply_id=str(reply.id), post_id=str(post_id))

        if post.author_id != user_id:
            self.notifier.reply_added(
                post.author.email,
                post.author.name,
                post.title,
                reply.content,
                reply.author.name,
            )
        return reply

    async def delete_reply(
        self,
        reply_id: uuid.UUID,
        user_id: uuid.UUID,
        post_id: Optional[uuid.UUID] = None,
    ) -> dict:
        """Delete a reply. Only its own author may do this."""
        reply = await self.db.get(Reply, reply_id)
        if not reply or (post_id is not None and reply.post_id != post_id):
            raise NotFoundError("Reply not found")
        ensure_owner(reply.author_id, user_id, "You can only delete your own replies")

        with translate_storage_errors():
            await self.db.delete(reply)
            await self.db.commit()

        logger.info("reply.deleted", reply_id=str(reply_id))
        return {"message": "Reply deleted successfully"}
