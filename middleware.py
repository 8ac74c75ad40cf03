import time
import uuid

from fastapi import Request
from logger import get_logger

logger = get_logger(__name__)


async def add_request_id_and_process_time(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    start = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - start
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = f"{elapsed:.4f}"
    logger.info(
        "%s %s -> %s in %.1fms [%s]",
        request.method, request.url.path, response.status_code, elapsed * 1000, request_id,
    )
    return response
