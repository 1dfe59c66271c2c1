import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .errors import LeaseEngineError

logger = logging.getLogger(__name__)


class ValidationErrorHandler:
    async def __call__(self, request: Request, exc: RequestValidationError):
        errors = [
            {
                "loc": err.get("loc"),
                "msg": str(err.get("msg")),
                "type": err.get("type"),
            }
            for err in exc.errors()
        ]
        logger.info(f"Rejected request to {request.url.path}: {len(errors)} invalid field(s)")

        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "error": "Validation failed",
                "details": errors,
            },
        )


class LeaseEngineErrorHandler:
    """Fallback for engine errors raised outside a ``safe_handler`` route."""

    async def __call__(self, request: Request, exc: LeaseEngineError):
        logger.warning(f"[{type(exc).__name__}] {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": type(exc).__name__,
                "message": exc.message,
            },
        )
