"""Journal archive exception hierarchy and HTTP error rendering.

Every domain error carries the HTTP status it maps to.  Errors that describe
an expected outcome (a remote upload failing, a DOCX that cannot be
converted) are caught where they happen and reported as result values; the
rest reach the handlers registered by :func:`register_exception_handlers`.
"""
import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class JournalArchiveError(Exception):
    """Base exception for all journal archive failures."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(JournalArchiveError):
    """Raised when required text fields are missing or malformed."""

    status_code = 400

    def __init__(self, errors: list[str]) -> None:
        super().__init__("Validation failed", details=errors)
        self.errors = errors


class InvalidStatusError(JournalArchiveError):
    """Raised when a status update names a status the record kind lacks."""

    status_code = 400

    def __init__(self, status: str, valid_statuses: list[str]) -> None:
        super().__init__(
            "Invalid status",
            details={"status": status, "validStatuses": valid_statuses},
        )


class MissingFileError(JournalArchiveError):
    """Raised when a required file part is absent from the upload."""

    status_code = 400


class FileTypeError(JournalArchiveError):
    """Raised when a file's extension, MIME type or signature is not allowed."""

    status_code = 400


class FileTooLargeError(FileTypeError):
    """Raised when an uploaded file exceeds the configured size limit."""

    status_code = 413


class SuspiciousFileNameError(JournalArchiveError):
    """Raised when an uploaded file name looks like an attack."""

    status_code = 400


class RemoteUploadError(JournalArchiveError):
    """Raised by a storage provider when an upload fails.

    Never reaches the client: the uploader turns it into an UploadOutcome.
    """

    status_code = 502


class ConversionError(JournalArchiveError):
    """Raised when a DOCX cannot be turned into a PDF."""

    status_code = 422


class RecordPersistError(JournalArchiveError):
    """Raised when the document store rejects a write."""

    status_code = 500


class NotFoundError(JournalArchiveError):
    """Raised when a record (or a file it references) does not exist."""

    status_code = 404


class DownloadSourceExhaustedError(JournalArchiveError):
    """Raised when every download strategy failed for a record."""

    status_code = 404


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def error_body(
    request: Request,
    message: str,
    details: Optional[Any] = None,
    exc: Optional[BaseException] = None,
    production: bool = False,
) -> dict:
    """Build the JSON body shared by every error response.

    Outside production the underlying error text and stack are included.
    """
    body: dict = {
        "success": False,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "path": request.url.path,
        "method": request.method,
    }
    if details is not None:
        body["details"] = details
    if exc is not None and not production:
        body["error"] = str(exc)
        body["stack"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )
    return body


def _is_production(request: Request) -> bool:
    config = getattr(request.app.state, "config", None)
    return bool(config is not None and config.server.is_production)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the journal archive error handlers to *app*."""

    @app.exception_handler(JournalArchiveError)
    async def _domain_error(request: Request, exc: JournalArchiveError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.warning(
                "%s %s rejected (%d): %s",
                request.method, request.url.path, exc.status_code, exc.message,
            )
        body = error_body(
            request,
            exc.message,
            details=exc.details,
            exc=exc,
            production=_is_production(request),
        )
        body["error_type"] = type(exc).__name__
        return JSONResponse(body, status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            error_body(request, str(exc.detail)),
            status_code=exc.status_code,
        )

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = [
            {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        return JSONResponse(
            error_body(request, "Validation Error", details=details),
            status_code=422,
        )

    @app.exception_handler(Exception)
    async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            error_body(
                request,
                "Internal Server Error",
                exc=exc,
                production=_is_production(request),
            ),
            status_code=500,
        )
