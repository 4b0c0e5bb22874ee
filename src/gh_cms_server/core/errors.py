"""
Error Taxonomy & Global Error Handling

This module defines the domain exceptions raised by the CMS core and the
application-wide exception handlers that turn them into HTTP responses.

Design Goals
------------
- One small, closed taxonomy shared by every layer
- Never leak internal exception details to clients
- Always return deterministic, machine-readable error responses
- Log full stack traces internally for debugging
"""

from __future__ import annotations

import logging
from typing import Dict, Any

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("cms.errors")


# ---------------------------------------------------------------------
# Domain Exceptions
# ---------------------------------------------------------------------

class CMSError(Exception):
    """
    Base class for every error the CMS core raises on purpose.

    Attributes
    ----------
    kind : str
        Stable, machine-readable error kind.
    status_code : int
        HTTP status used when the error reaches the API surface.
    message : str
        Human-readable description.
    """

    kind: str = "cms_error"
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.kind, "detail": self.message}


class ValidationError(CMSError):
    """Bad field value or shape, invalid slug, out-of-range page or position."""

    kind = "validation_error"
    status_code = 400


class ConflictError(CMSError):
    """A unique value (slug) is already taken."""

    kind = "conflict"
    status_code = 409


class NotFoundError(CMSError):
    """Missing document, collection, media file or blob."""

    kind = "not_found"
    status_code = 404


class BlobNotFoundError(NotFoundError):
    """Raised by a blob store when the requested path does not exist."""

    def __init__(self, path: str, ref: str | None = None) -> None:
        where = f" on {ref}" if ref else ""
        super().__init__(f"Blob not found: {path}{where}")
        self.path = path
        self.ref = ref


class StoreError(CMSError):
    """
    Any remote store failure: network, auth rejection, rate limiting.

    The final state of the attempted operation is unknown; callers may
    retry the whole operation.
    """

    kind = "store_error"
    status_code = 502


class MergeConflictError(StoreError):
    """The store refused to merge a transaction branch into its base."""

    kind = "merge_conflict"


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

async def cms_error_handler(
    request: Request,
    exc: CMSError,
) -> JSONResponse:
    """
    Render a domain error as ``{"error": kind, "detail": message}``.

    Store errors are logged at ERROR because the outcome of the attempted
    write is unknown; everything else is a caller problem and logged at
    INFO.
    """
    if isinstance(exc, StoreError):
        logger.error(
            "Store failure during request %s %s: %s",
            request.method,
            request.url.path,
            exc.message,
        )
    else:
        logger.info(
            "Request %s %s rejected (%s): %s",
            request.method,
            request.url.path,
            exc.kind,
            exc.message,
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_payload(),
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    This handler should be registered with FastAPI as the final safety net
    for any exception not otherwise handled by route-level or framework-level
    handlers.

    Behavior
    --------
    - Logs the full exception stack trace for internal diagnostics.
    - Returns a generic 500 error to the client with no internal details.

    Parameters
    ----------
    request : Request
        The incoming HTTP request that triggered the exception.

    exc : Exception
        The uncaught exception instance.

    Returns
    -------
    JSONResponse
        A JSON 500 response with a minimal error payload.
    """

    # Log full traceback internally (never returned to client)
    logger.exception(
        "Unhandled CMS exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    payload: Dict[str, Any] = {
        "error": "internal_server_error",
        "detail": "Internal server error",
    }

    return JSONResponse(
        status_code=500,
        content=payload,
    )
