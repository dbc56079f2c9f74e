"""Post and Reply API routes.

Learn: Reads are public; every write requires an access token. Routes
only translate HTTP to service calls — existence and ownership checks
(404 before 403) happen in PostService, and its domain errors are
rendered by the handler registered in main.py.

Key patterns:
- POST for creation, PATCH for partial updates
- Query params for pagination and search
- POST /posts takes JSON or a form with an optional file; the file
  endpoint replaces the attachment of an existing post
- /replies paths also answer at the singular /reply used by older clients
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile as StarletteUploadFile

from postboard.auth.dependencies import CurrentIdentity, get_current_user
from postboard.config import settings
from postboard.db.engine import get_db
from postboard.schemas.base import MessageResponse
from postboard.schemas.post import (
    PostCreate,
    PostDetail,
    PostPageRead,
    PostRead,
    PostSummary,
    PostUpdate,
    ReplyCreate,
    ReplyRead,
)
from postboard.services.notifier import Notifier, get_notifier
from postboard.services.post_service import PostService
from postboard.services.upload_store import IncomingFile

router = APIRouter(prefix="/posts")


def _svc(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> PostService:
    return PostService(db, notifier)


# ═══════════════════════════════════════════════════════════
# Posts
# ═══════════════════════════════════════════════════════════


@router.get("", response_model=PostPageRead)
async def list_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    search: Optional[str] = Query(None, description="Substring of title or content"),
    svc: PostService = Depends(_svc),
):
    """List posts, newest first."""
    result = await svc.list_posts(page=page, limit=limit, search=search)
    return PostPageRead(
        posts=[PostSummary.model_validate(p) for p in result.posts],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
    )


@router.get("/{post_id}", response_model=PostDetail)
async def get_post(post_id: uuid.UUID, svc: PostService = Depends(_svc)):
    """Get a post with its author and reply thread."""
    return await svc.get_post(post_id)


_FORM_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


async def _read_upload(upload: UploadFile) -> IncomingFile:
    # At most max_upload_bytes + 1, so an oversized upload is detected
    # without buffering all of it
    data = await upload.read(settings.max_upload_bytes + 1)
    return IncomingFile(filename=upload.filename, content_type=upload.content_type, data=data)


async def post_create_payload(request: Request) -> tuple[PostCreate, Optional[IncomingFile]]:
    """Parse POST /posts from either a JSON body or a form.

    Learn: A form may carry an optional `file` part next to title,
    content and published ("true"/"false"), so a post and its
    attachment can be created in one request. Both paths validate
    through PostCreate and report failures as the usual 422.
    """
    media_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    upload = None
    if media_type in _FORM_TYPES:
        form = await request.form()
        part = form.get("file")
        # Browsers send an empty part when no file was chosen
        if isinstance(part, StarletteUploadFile) and part.filename:
            upload = await _read_upload(part)
        fields = {k: v for k, v in form.items() if k != "file"}
    else:
        try:
            fields = await request.json()
        except ValueError:
            raise RequestValidationError([{
                "type": "json_invalid",
                "loc": ("body",),
                "msg": "JSON decode error",
                "input": {},
            }])

    try:
        body = PostCreate.model_validate(fields)
    except ValidationError as e:
        raise RequestValidationError([
            {**err, "loc": ("body", *err["loc"])} for err in e.errors(include_url=False)
        ])
    return body, upload


_POST_CREATE_FORM = {
    "type": "object",
    "required": ["title", "content"],
    "properties": {
        "title": {"type": "string", "minLength": 1, "maxLength": 255},
        "content": {"type": "string", "minLength": 1},
        "published": {"type": "boolean", "default": False},
        "file": {"type": "string", "format": "binary"},
    },
}


@router.post(
    "",
    response_model=PostRead,
    status_code=201,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {
                "application/json": {"schema": PostCreate.model_json_schema(by_alias=True)},
                "multipart/form-data": {"schema": _POST_CREATE_FORM},
            },
        }
    },
)
async def create_post(
    identity: CurrentIdentity = Depends(get_current_user),
    payload: tuple[PostCreate, Optional[IncomingFile]] = Depends(post_create_payload),
    svc: PostService = Depends(_svc),
):
    """Create a post owned by the caller, optionally with its attachment."""
    body, upload = payload
    return await svc.create_post(
        author_id=identity.user_id,
        title=body.title,
        content=body.content,
        published=body.published,
        file_url=body.file_url,
        file=upload,
    )


@router.patch("/{post_id}", response_model=PostRead)
async def update_post(
    post_id: uuid.UUID,
    body: PostUpdate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: PostService = Depends(_svc),
):
    """Partially update a post (title, content, published). Owner only."""
    return await svc.update_post(
        post_id=post_id,
        user_id=identity.user_id,
        title=body.title,
        content=body.content,
        published=body.published,
    )


@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: uuid.UUID,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: PostService = Depends(_svc),
):
    """Delete a post and its replies. Owner only."""
    return await svc.delete_post(post_id, identity.user_id)


@router.post("/{post_id}/file", response_model=PostRead)
async def attach_file(
    post_id: uuid.UUID,
    file: UploadFile = File(...),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: PostService = Depends(_svc),
):
    """Upload the post's single attachment, replacing any previous one."""
    return await svc.attach_file(
        post_id=post_id,
        user_id=identity.user_id,
        file=await _read_upload(file),
    )


# ═══════════════════════════════════════════════════════════
# Replies
# ═══════════════════════════════════════════════════════════


@router.post("/{post_id}/reply", response_model=ReplyRead, status_code=201, include_in_schema=False)
@router.post("/{post_id}/replies", response_model=ReplyRead, status_code=201)
async def create_reply(
    post_id: uuid.UUID,
    body: ReplyCreate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: PostService = Depends(_svc),
):
    """Reply to a post."""
    return await svc.create_reply(post_id, body.content, identity.user_id)


@router.delete("/{post_id}/reply/{reply_id}", response_model=MessageResponse, include_in_schema=False)
@router.delete("/{post_id}/replies/{reply_id}", response_model=MessageResponse)
async def delete_reply(
    post_id: uuid.UUID,
    reply_id: uuid.UUID,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: PostService = Depends(_svc),
):
    """Delete a reply. Only the reply's author may do this."""
    return await svc.delete_reply(reply_id, identity.user_id, post_id=post_id)
