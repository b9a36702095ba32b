"""RFC 7807 Problem Details error handling and the service error taxonomy."""

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


class ProblemDetailError(Exception):
    """Raise for RFC 7807 problem+json responses."""

    def __init__(
        self,
        status: int,
        title: str,
        detail: str,
        error_type: str | None = None,
    ):
        super().__init__(detail)
        self.status = status
        self.title = title
        self.detail = detail
        self.error_type = error_type or "about:blank"


class ServiceError(ProblemDetailError):
    """Base for errors raised by the service layer.

    Subclasses fix the HTTP status and title so services only supply the
    human-readable detail.
    """

    status_code = 500
    default_title = "Service Error"

    def __init__(self, detail: str, title: str | None = None):
        super().__init__(self.status_code, title or self.default_title, detail)


class ValidationError(ServiceError):
    """Malformed or missing input. ``errors`` maps field keys to messages."""

    status_code = 422
    default_title = "Validation Error"

    def __init__(self, detail: str, errors: dict[str, str] | None = None):
        super().__init__(detail)
        self.errors = errors or {}


class ConflictError(ServiceError):
    """Uniqueness or referential-state violation."""

    status_code = 409
    default_title = "Conflict"


class NotFoundError(ServiceError):
    status_code = 404
    default_title = "Not Found"


class StorageError(ServiceError):
    """Persistence failure; the original exception is chained as __cause__."""

    status_code = 500
    default_title = "Storage Error"


async def problem_detail_handler(request: Request, exc: ProblemDetailError) -> JSONResponse:
    content = {
        "type": exc.error_type,
        "title": exc.title,
        "status": exc.status,
        "detail": exc.detail,
        "instance": str(request.url.path),
    }
    errors = getattr(exc, "errors", None)
    if errors:
        content["errors"] = errors
    return JSONResponse(
        status_code=exc.status,
        content=content,
        media_type="application/problem+json",
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "type": "about:blank",
            "title": exc.detail if isinstance(exc.detail, str) else "Error",
            "status": exc.status_code,
            "detail": exc.detail,
            "instance": str(request.url.path),
        },
        media_type="application/problem+json",
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "type": "about:blank",
            "title": "Validation Error",
            "status": 422,
            "detail": jsonable_errors(exc),
            "instance": str(request.url.path),
        },
        media_type="application/problem+json",
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Strip non-serialisable ``ctx`` values (e.g. exceptions, Decimals)."""
    cleaned = []
    for error in exc.errors():
        item = {k: v for k, v in error.items() if k not in ("ctx", "input", "url")}
        cleaned.append(item)
    return cleaned
