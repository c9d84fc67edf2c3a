import logging
import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _log_fields(request: Request, request_id: str, started: float, **extra) -> dict:
    fields = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "client": request.client.host if request.client else None,
        "duration_ms": round((time.perf_counter() - started) * 1000, 2),
    }
    fields.update(extra)
    return fields


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags every request with an id and logs one line per request."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            fields = _log_fields(request, request_id, started, error=str(exc))
            logger.error(f"[{request_id}] {request.method} {request.url.path} - ERROR", extra=fields)
            raise

        fields = _log_fields(request, request_id, started, status_code=response.status_code)
        # 4xx is expected traffic for a timed exam (late answers, double submits) but still worth surfacing.
        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(
            level,
            f"[{request_id}] {request.method} {request.url.path} - {response.status_code} ({fields['duration_ms']}ms)",
            extra=fields,
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
