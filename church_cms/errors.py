"""
Error taxonomy for the CMS and the FastAPI handlers that render it.

Every error the API raises on purpose derives from ``CmsError`` and carries
its HTTP status. Responses share one shape::

    {"status": "Error", "message": "...", "errors": [...]}
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class CmsError(Exception):
    """Base exception for the CMS API."""

    status_code = 500

    def __init__(self, message: str, errors: Optional[list[dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"status": "Error", "message": self.message}
        if self.errors:
            result["errors"] = self.errors
        return result


class ValidationFailed(CmsError):
    """Bad or missing fields. ``errors`` lists every failing field."""

    status_code = 400


class MissingMedia(ValidationFailed):
    """A required file was not part of the request."""

    def __init__(self, field: str, label: str = "File"):
        super().__init__(
            f"{label} is required",
            errors=[{"field": field, "message": f"{label} is required"}],
        )
        self.field = field


class InvalidMediaType(ValidationFailed):
    """The uploaded file's MIME type is not in the allow-list."""

    def __init__(self, content_type: str, kind: str):
        super().__init__(
            f"Invalid {kind} file type. Received: {content_type}",
            errors=[{"field": kind, "message": f"Unsupported type {content_type}"}],
        )
        self.content_type = content_type
        self.kind = kind


class MediaTooLarge(ValidationFailed):
    """The uploaded file exceeds the size limit for its kind."""

    def __init__(self, size: int, max_size: int, kind: str):
        max_mb = max_size // (1024 * 1024)
        super().__init__(
            f"{kind.capitalize()} file size too large (max {max_mb}MB)",
            errors=[{"field": kind, "message": f"{size} bytes exceeds {max_size}"}],
        )
        self.size = size
        self.max_size = max_size
        self.kind = kind


class NotFound(CmsError):
    """Unknown record id."""

    status_code = 404

    def __init__(self, resource: str, record_id: Optional[str] = None):
        super().__init__(f"{resource} not found")
        self.resource = resource
        self.record_id = record_id


class UpstreamFailure(CmsError):
    """Object store or database could not complete an operation."""

    status_code = 500


class StorageUploadError(UpstreamFailure):
    def __init__(self, key: str, error: str):
        super().__init__("Failed to upload file to storage")
        self.key = key
        self.error = error


class StorageDeleteError(UpstreamFailure):
    def __init__(self, url: str, error: str):
        super().__init__("Failed to delete file from storage")
        self.url = url
        self.error = error


class StorageReadError(UpstreamFailure):
    def __init__(self, url: str, error: str):
        super().__init__("Failed to read file from storage")
        self.url = url
        self.error = error


class InvalidReference(CmsError):
    """A blob URL does not match any shape the object store produces."""

    status_code = 400

    def __init__(self, url: str):
        super().__init__(f"Invalid storage URL: {url}")
        self.url = url


async def cms_error_handler(request: Request, exc: CmsError) -> JSONResponse:
    if isinstance(exc, UpstreamFailure):
        # Upstream details stay in the log.
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        body = {"status": "Error", "message": exc.message}
        return JSONResponse(status_code=exc.status_code, content=body)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]) or None,
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"status": "Error", "message": "Validation failed", "errors": errors},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"status": "Error", "message": "Internal server error"},
    )
