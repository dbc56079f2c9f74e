"""Domain error taxonomy.

Learn: Services raise these instead of HTTPException so they stay
usable outside FastAPI (CLI, scripts, tests). main.py registers one
exception handler that renders every AppError as {"detail": message}
with the matching status code.
"""


class AppError(Exception):
    """Base class for errors that map to an HTTP status."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequestError(AppError):
    status_code = 400
    default_message = "Bad request"


class UnauthorizedError(AppError):
    status_code = 401
    default_message = "Authentication required"


class ForbiddenError(AppError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Conflict"


class InternalError(AppError):
    status_code = 500
    default_message = "Database error occurred"
