"""Storage-error translation.

Learn: Services wrap their database work in translate_storage_errors()
so constraint violations come out as domain errors instead of driver
exceptions:

- unique violation      → ConflictError   (409)
- foreign-key violation → BadRequestError (400)
- row vanished on write → NotFoundError   (404)
- other driver failure  → InternalError   (500)

Anything else (including the domain errors the service raises itself)
passes through untouched.
"""

from contextlib import contextmanager

import structlog
from sqlalchemy.exc import DBAPIError, IntegrityError, NoResultFound
from sqlalchemy.orm.exc import StaleDataError

from postboard.errors import (
    BadRequestError,
    ConflictError,
    InternalError,
    NotFoundError,
)

logger = structlog.get_logger()

# PostgreSQL SQLSTATE codes
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def classify_integrity_error(exc: IntegrityError) -> str | None:
    """Return "unique", "foreign_key" or None for an IntegrityError.

    PostgreSQL drivers expose a SQLSTATE; SQLite only has the message.
    """
    code = _sqlstate(exc)
    if code == UNIQUE_VIOLATION:
        return "unique"
    if code == FOREIGN_KEY_VIOLATION:
        return "foreign_key"

    message = str(exc.orig).upper()
    if "UNIQUE" in message:
        return "unique"
    if "FOREIGN KEY" in message:
        return "foreign_key"
    return None


@contextmanager
def translate_storage_errors(conflict_message: str = "Duplicate field value"):
    """Map SQLAlchemy exceptions raised inside the block to AppErrors.

    conflict_message lets a caller that knows which unique column is
    involved report it the same way as its own existence check.
    """
    try:
        yield
    except IntegrityError as e:
        kind = classify_integrity_error(e)
        if kind == "unique":
            raise ConflictError(conflict_message) from e
        if kind == "foreign_key":
            raise BadRequestError("Foreign key constraint failed") from e
        logger.error("storage.integrity_error", error=str(e.orig))
        raise InternalError() from e
    except (NoResultFound, StaleDataError) as e:
        raise NotFoundError("Record not found") from e
    except DBAPIError as e:
        logger.error("storage.error", error=str(e.orig))
        raise InternalError() from e
