import logging
import time

from fastapi import Request

from crud_users.config import settings

logger = logging.getLogger("crud_users.http")


def setup_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format=settings.log_format,
    )


async def log_requests(request: Request, call_next):
    """Log method, path, status and duration of every request."""
    start = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        logger.error(
            "%s %s %d %.1fms",
            request.method,
            request.url.path,
            500,
            (time.perf_counter() - start) * 1000,
        )
        raise
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response
