"""
Error types and the handlers that give every failure the same `{"error": ...}` body.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

TEMPORARY_ERROR_MARKERS = ("503", "overloaded", "rate limit", "RESOURCE_EXHAUSTED")


def is_temporary_error(message: str) -> bool:
    """Upstream overload and throttling errors are worth retrying."""
    if not message:
        return False
    lowered = message.lower()
    return any(marker.lower() in lowered for marker in TEMPORARY_ERROR_MARKERS)


class AnalysisError(Exception):
    """Raised when the AI service fails to score a resume."""

    def __init__(self, message: str, is_temporary: bool = False):
        super().__init__(message)
        self.message = message
        self.is_temporary = is_temporary


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


async def analysis_exception_handler(request: Request, exc: AnalysisError):
    if exc.is_temporary:
        return JSONResponse(
            status_code=503,
            content={
                "error": "AI service is temporarily overloaded. Please try again in a few moments.",
                "isTemporary": True,
            },
            headers={"Retry-After": "30"},
        )
    return JSONResponse(
        status_code=500,
        content={"error": exc.message or "Analysis failed", "isTemporary": False},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(AnalysisError, analysis_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
