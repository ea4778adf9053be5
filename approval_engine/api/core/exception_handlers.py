"""
Exception handlers for the approval API.

Maps workflow errors onto HTTP:
- NotFound: 404
- ValidationError: 422 with field details
- Unauthorized: 403 with the denial reason
- StaleOrInvalidTransition: 409, the caller should refresh and re-decide
- ConcurrentModification: 409, retries were exhausted
- DirectoryUnavailable: 503, the role directory is missing or malformed
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from approval_engine.core.errors import (
    ConcurrentModification,
    DirectoryUnavailable,
    NotFound,
    StaleOrInvalidTransition,
    Unauthorized,
    ValidationError,
)


def _error(status_code: int, error: str, exc: Exception, **extra) -> JSONResponse:
    content = {"error": error, "detail": str(exc)}
    content.update({k: v for k, v in extra.items() if v is not None})
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
        return _error(404, "not_found", exc)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        """Convert workflow validation errors to 422 with field details."""
        return _error(422, "validation_error", exc, errors=exc.errors or None)

    @app.exception_handler(Unauthorized)
    async def unauthorized_handler(request: Request, exc: Unauthorized) -> JSONResponse:
        return _error(403, "unauthorized", exc, reason=exc.reason.value)

    @app.exception_handler(StaleOrInvalidTransition)
    async def stale_transition_handler(request: Request, exc: StaleOrInvalidTransition) -> JSONResponse:
        reason = exc.reason.value if exc.reason else None
        return _error(409, "stale_or_invalid_transition", exc, reason=reason)

    @app.exception_handler(ConcurrentModification)
    async def conflict_handler(request: Request, exc: ConcurrentModification) -> JSONResponse:
        return _error(409, "concurrent_modification", exc)

    @app.exception_handler(DirectoryUnavailable)
    async def directory_unavailable_handler(request: Request, exc: DirectoryUnavailable) -> JSONResponse:
        return _error(503, "directory_unavailable", exc)
