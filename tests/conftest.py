"""Test fixtures — a fresh in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own sqlite+aiosqlite engine. StaticPool keeps the
   single in-memory connection alive, so every session sees the same
   database, and foreign keys are switched on per connection.
2. The schema comes straight from Base.metadata.create_all — no
   migrations, no cleanup; the database disappears with the engine.
3. The app's get_db and get_notifier dependencies are overridden, so
   requests use the test session and emails land in a RecordingMailer.

Environment variables are set before postboard is imported: settings is
a module-level singleton read at import time.
"""

import os
import tempfile

os.environ.setdefault("POSTBOARD_DATABASE_URL", "sqlite+aiosqlite://")
os.environ["POSTBOARD_BCRYPT_ROUNDS"] = "4"
os.environ["POSTBOARD_UPLOAD_DIR"] = tempfile.mkdtemp(prefix="postboard-uploads-")

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from postboard.db.engine import get_db  # noqa: E402
from postboard.db.models import Base  # noqa: E402
from postboard.main import app  # noqa: E402
from postboard.services.notifier import Notifier, get_notifier  # noqa: E402

TEST_DB_URL = "sqlite+aiosqlite://"


class RecordingMailer:
    """Collects outgoing mail instead of sending it."""

    def __init__(self, fail: bool = False):
        self.sent: list[dict] = []
        self.fail = fail

    async def send(self, to: str, subject: str, html: str) -> None:
        if self.fail:
            raise ConnectionError("SMTP server unreachable")
        self.sent.append({"to": to, "subject": subject, "html": html})


@pytest_asyncio.fixture()
async def db_engine():
    engine = create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(db_engine):
    """Per-test session on the in-memory database."""
    session = AsyncSession(bind=db_engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()


@pytest_asyncio.fixture()
async def mailer():
    return RecordingMailer()


@pytest_asyncio.fixture()
async def notifier(mailer):
    n = Notifier(mailer)
    yield n
    await n.drain(timeout=5)


@pytest_asyncio.fixture()
async def client(db_session, notifier):
    """HTTP client with the app's get_db and get_notifier overridden.

    Learn: Auth is NOT overridden — tests register and log in through
    the real endpoints and send real bearer tokens.
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def register(client):
    """Factory: register a user and return the response body.

    The body carries `accessToken`, `refreshToken` and `user`, plus an
    `auth` header dict ready to pass as headers=.
    """
    counter = {"n": 0}

    async def _register(email=None, name="User", password="password123"):
        counter["n"] += 1
        email = email or f"user{counter['n']}@example.com"
        r = await client.post(
            "/api/v1/auth/register",
            json={"email": email, "password": password, "name": name},
        )
        assert r.status_code == 201, r.text
        body = r.json()
        body["auth"] = {"Authorization": f"Bearer {body['accessToken']}"}
        return body

    return _register
