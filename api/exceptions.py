"""
Exception types and handlers for the Media Pipeline API.

Services raise these exceptions; the library controller catches them at
its async boundary and turns them into action results, and the routers
translate failed results back into HTTP responses.
"""

import functools
import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from core.constants import ErrorMessages
from core.enums import ErrorKind

logger = logging.getLogger(__name__)


class MediaPipelineException(Exception):
    """Base exception carrying an error kind and HTTP status"""

    kind: ErrorKind = ErrorKind.EXTERNAL_IO_FAILURE
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailure(MediaPipelineException):
    """Invalid input detected before any I/O"""

    kind = ErrorKind.VALIDATION_FAILURE
    status_code = 400


class NotAuthenticatedError(MediaPipelineException):
    """No owner identity at the point a mutating action was invoked"""

    kind = ErrorKind.NOT_AUTHENTICATED
    status_code = 401

    def __init__(self, message: str = ErrorMessages.NOT_AUTHENTICATED):
        super().__init__(message)


class MediaItemNotFoundException(MediaPipelineException):
    """Media item is not in the library"""

    kind = ErrorKind.NOT_FOUND
    status_code = 404

    def __init__(self, item_id: str, message: Optional[str] = None):
        super().__init__(message or ErrorMessages.ITEM_NOT_FOUND.format(item_id=item_id))
        self.item_id = item_id


class ProcessingUnavailableError(MediaPipelineException):
    """Composition could not produce an output surface"""

    kind = ErrorKind.PROCESSING_UNAVAILABLE
    status_code = 422

    def __init__(self, message: str = ErrorMessages.PROCESSING_FAILED):
        super().__init__(message)


class ExternalIOError(MediaPipelineException):
    """Storage, network or database call failed"""

    kind = ErrorKind.EXTERNAL_IO_FAILURE
    status_code = 502


_EXCEPTIONS_BY_KIND = {
    ErrorKind.VALIDATION_FAILURE: ValidationFailure,
    ErrorKind.NOT_AUTHENTICATED: NotAuthenticatedError,
    ErrorKind.PROCESSING_UNAVAILABLE: ProcessingUnavailableError,
    ErrorKind.EXTERNAL_IO_FAILURE: ExternalIOError,
}


def exception_for_kind(kind: Optional[ErrorKind], message: str) -> MediaPipelineException:
    """
    Build the exception matching an error kind.

    Args:
        kind: Error kind reported by a failed action
        message: User-visible message

    Returns:
        Exception instance to raise from a router
    """
    if kind == ErrorKind.NOT_FOUND:
        return MediaItemNotFoundException(item_id="", message=message)
    exc_class = _EXCEPTIONS_BY_KIND.get(kind, ExternalIOError)
    return exc_class(message)


def register_exception_handlers(app: FastAPI) -> None:
    """Render pipeline exceptions as {"detail", "error_kind"} responses"""

    @app.exception_handler(MediaPipelineException)
    async def media_pipeline_exception_handler(request: Request, exc: MediaPipelineException):
        logger.warning(f"{request.method} {request.url.path} failed: {exc.kind.value}: {exc}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "error_kind": exc.kind.value},
        )


def safe_endpoint(func):
    """
    Wrap an endpoint so unexpected errors become logged 500 responses.

    Pipeline and HTTP exceptions pass through untouched.
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except (HTTPException, MediaPipelineException):
            raise
        except Exception as e:
            logger.error(f"Unhandled error in {func.__name__}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")

    return wrapper
