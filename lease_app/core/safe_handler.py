import logging
from functools import wraps

from fastapi import HTTPException, Request

from .errors import LeaseEngineError
from .friendly_msg import get_friendly_message

logger = logging.getLogger(__name__)


def _request_context(request: Request | None) -> str:
    if request is None:
        return ""
    client_ip = request.client.host if request.client else "unknown"
    path = request.url.path
    trace_id = request.headers.get("X-Request-ID", "none")
    return f"TraceID={trace_id} | {path} from {client_ip}"


def safe_handler(func):
    @wraps(func)
    async def wrapper(*args, **kwargs):
        request: Request | None = None
        for arg in list(args) + list(kwargs.values()):
            if isinstance(arg, Request):
                request = arg
                break

        try:
            return await func(*args, **kwargs)
        except HTTPException as e:
            logger.warning(
                f"[HTTPException] {_request_context(request)} | {e.status_code}: {e.detail}"
            )
            raise
        except LeaseEngineError as e:
            logger.warning(
                f"[{type(e).__name__}] {_request_context(request)} | "
                f"in {func.__name__}: {e.message}"
            )
            raise HTTPException(
                status_code=e.status_code,
                detail={"error": type(e).__name__, "message": e.message},
            )
        except Exception as e:
            logger.error(
                f"[Unhandled Error] {_request_context(request)} | in {func.__name__}: {e}",
                exc_info=True,
            )
            raise HTTPException(status_code=500, detail=get_friendly_message(e))

    return wrapper
