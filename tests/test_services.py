"""Service-layer tests — behaviour not reachable through HTTP validation."""

import asyncio
import uuid

import pytest

from postboard.config import DEFAULT_ACCESS_SECRET, DEFAULT_REFRESH_SECRET, Settings
from postboard.errors import BadRequestError, ConflictError, NotFoundError, UnauthorizedError
from postboard.services import auth_service
from postboard.services.auth_service import AuthService
from postboard.services.post_service import PostPage, PostService
from postboard.services.upload_store import IncomingFile, UploadStore


# ═══════════════════════════════════════════════════════════
# PostService
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
@pytest.mark.parametrize("page,limit", [(0, 10), (1, 0), (-1, 5)])
async def test_list_posts_rejects_non_positive(db_session, notifier, page, limit):
    svc = PostService(db_session, notifier)
    with pytest.raises(BadRequestError):
        await svc.list_posts(page=page, limit=limit)


def test_total_pages_rounds_up():
    assert PostPage(posts=[], total=0, page=1, limit=10).total_pages == 0
    assert PostPage(posts=[], total=10, page=1, limit=10).total_pages == 1
    assert PostPage(posts=[], total=11, page=1, limit=10).total_pages == 2


@pytest.mark.asyncio
async def test_service_flow_without_http(db_session, notifier):
    auth = AuthService(db_session, notifier)
    posts = PostService(db_session, notifier)

    result = await auth.register("svc@example.com", "password123", "Svc")
    post = await posts.create_post(result.user.id, "Title", "Body", published=True)
    reply = await posts.create_reply(post.id, "Reply", result.user.id)

    loaded = await posts.get_post(post.id)
    assert loaded.author.email == "svc@example.com"
    assert [r.id for r in loaded.replies] == [reply.id]

    page = await posts.list_posts(page=1, limit=10)
    assert page.total == 1
    assert page.posts[0].reply_count == 1


@pytest.mark.asyncio
async def test_logout_unknown_user(db_session, notifier):
    with pytest.raises(NotFoundError):
        await AuthService(db_session, notifier).logout(uuid.uuid4())


# ═══════════════════════════════════════════════════════════
# AuthService
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_race_reports_email_taken(db_session, notifier, monkeypatch):
    auth = AuthService(db_session, notifier)
    await auth.register("race@example.com", "password123", "First")

    # A concurrent request that passed the existence check before the
    # first insert committed; only the unique index stops it.
    async def not_found(self, email):
        return None

    monkeypatch.setattr(AuthService, "_get_by_email", not_found)
    with pytest.raises(ConflictError, match="^Email already exists$"):
        await auth.register("race@example.com", "password123", "Second")


@pytest.mark.asyncio
async def test_unknown_email_login_hashes_off_the_event_loop(db_session, notifier, monkeypatch):
    auth_service._dummy_password_hash.cache_clear()
    offloaded = []
    to_thread = asyncio.to_thread

    async def recording_to_thread(func, /, *args, **kwargs):
        offloaded.append(func)
        return await to_thread(func, *args, **kwargs)

    monkeypatch.setattr(auth_service.asyncio, "to_thread", recording_to_thread)
    with pytest.raises(UnauthorizedError):
        await AuthService(db_session, notifier).login("nobody@example.com", "password123")

    assert auth_service._dummy_password_hash in offloaded


# ═══════════════════════════════════════════════════════════
# UploadStore
# ═══════════════════════════════════════════════════════════


def _store(tmp_path, max_bytes=10):
    return UploadStore(tmp_path, max_bytes=max_bytes, allowed_types=["text/plain"])


@pytest.mark.asyncio
async def test_upload_store_saves_under_generated_name(tmp_path):
    store = _store(tmp_path)
    url = await store.save(IncomingFile("../../etc/passwd.txt", "text/plain", b"hello"))

    name = url.removeprefix("/uploads/")
    assert "/" not in name
    assert name.endswith(".txt")
    assert (tmp_path / name).read_bytes() == b"hello"


@pytest.mark.asyncio
@pytest.mark.parametrize("filename", ["evil.html", "run.exe", "noext", None])
async def test_upload_suffix_follows_content_type(tmp_path, filename):
    store = _store(tmp_path)
    url = await store.save(IncomingFile(filename, "text/plain", b"hi"))
    assert url.endswith(".txt")


@pytest.mark.asyncio
async def test_upload_store_rejections(tmp_path):
    store = _store(tmp_path)
    with pytest.raises(BadRequestError, match="Invalid file type"):
        await store.save(IncomingFile("a.exe", "application/octet-stream", b"x"))
    with pytest.raises(BadRequestError, match="too large"):
        await store.save(IncomingFile("a.txt", "text/plain", b"x" * 11))
    with pytest.raises(BadRequestError, match="empty"):
        await store.save(IncomingFile("a.txt", "text/plain", b""))
    assert list(tmp_path.iterdir()) == []


def test_generated_names_are_unique_and_typed(tmp_path):
    store = UploadStore(tmp_path, max_bytes=10, allowed_types=["image/png", "application/x-custom"])
    names = {store._generate_name("image/png") for _ in range(50)}
    assert len(names) == 50
    assert all(n.endswith(".png") for n in names)
    # No known suffix: stored bare so it is served as application/octet-stream
    assert "." not in store._generate_name("application/x-custom")


# ═══════════════════════════════════════════════════════════
# Settings
# ═══════════════════════════════════════════════════════════


def test_settings_defaults():
    s = Settings()
    assert s.access_token_expire_minutes == 15
    assert s.refresh_token_expire_days == 7
    assert s.jwt_access_secret != s.jwt_refresh_secret


def test_production_refuses_default_secrets():
    with pytest.raises(ValueError, match="must be set"):
        Settings(
            environment="production",
            jwt_access_secret=DEFAULT_ACCESS_SECRET,
            jwt_refresh_secret=DEFAULT_REFRESH_SECRET,
        )


def test_production_refuses_shared_secret():
    with pytest.raises(ValueError, match="must differ"):
        Settings(
            environment="production",
            jwt_access_secret="same-secret-value",
            jwt_refresh_secret="same-secret-value",
        )


def test_production_with_real_secrets():
    s = Settings(
        environment="production",
        jwt_access_secret="access-secret-value",
        jwt_refresh_secret="refresh-secret-value",
    )
    assert s.environment == "production"


def test_settings_read_from_env(monkeypatch):
    monkeypatch.setenv("POSTBOARD_ACCESS_TOKEN_EXPIRE_MINUTES", "5")
    assert Settings().access_token_expire_minutes == 5
