"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (Redis, pending emails,
database pool). Middleware, CORS, error handling, static uploads and
routers are all registered here; each concern lives in its own module.
"""

from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from postboard import __version__
from postboard.api import api_router
from postboard.config import settings
from postboard.errors import AppError, UnauthorizedError

logger = structlog.get_logger()


def configure_logging() -> None:
    """Console output in development, one JSON object per line elsewhere.

    Learn: merge_contextvars pulls in the request_id that
    RequestIdMiddleware binds, so every event logged during a request
    carries it.
    """
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.environment == "development":
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    structlog.configure(processors=processors)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs
    at shutdown.
    """
    logger.info(
        "postboard.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from postboard.db.redis_pool import close_redis, init_redis
    try:
        await init_redis()
        logger.info("postboard.redis_connected", url=settings.redis_url)
    except Exception as e:
        logger.warning("postboard.redis_unavailable", error=str(e))
        # Redis is optional; only rate limiting depends on it

    yield

    logger.info("postboard.shutdown")

    # Let in-flight notification emails finish
    from postboard.services.notifier import notifier
    await notifier.drain(timeout=10)

    await close_redis()

    from postboard.db.engine import engine
    await engine.dispose()


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render domain errors as {"detail": message}."""
    headers = None
    if isinstance(exc, UnauthorizedError):
        headers = {"WWW-Authenticate": "Bearer"}
    if exc.status_code >= 500:
        logger.error("request.failed", path=request.url.path, error=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    configure_logging()

    app = FastAPI(
        title="Postboard",
        description="Posts, file attachments and threaded replies with JWT auth",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → RateLimit → CORS → handler

    from postboard.middleware.rate_limit import RateLimitMiddleware
    from postboard.middleware.request_id import RequestIdMiddleware
    from postboard.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(AppError, app_error_handler)

    app.include_router(api_router)

    # Attached files are served straight from the upload directory
    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=upload_dir), name="uploads")

    return app


# Default app instance (used by uvicorn: postboard.main:app)
app = create_app()
