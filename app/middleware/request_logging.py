import time
import uuid

from fastapi import Request

from app.utils.logger import get_logger, request_id_ctx

logger = get_logger("access")

REQUEST_ID_HEADER = "X-Request-ID"


async def request_logging_middleware(request: Request, call_next):
    """Access log line per request, correlated with the service logs by request id."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
    token = request_id_ctx.set(request_id)
    start_time = time.perf_counter()

    try:
        response = await call_next(request)
    finally:
        process_time = (time.perf_counter() - start_time) * 1000
        request_id_ctx.reset(token)

    response.headers[REQUEST_ID_HEADER] = request_id

    logger.info(
        "",
        extra={
            "request_id": request_id,
            "client_addr": request.client.host if request.client else "unknown",
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "process_time_ms": round(process_time, 2),
        },
    )

    return response
