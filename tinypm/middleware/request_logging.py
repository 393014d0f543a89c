"""
Request Logging Middleware

- Assigns a unique request_id to every request
- Sets user_id context from the bearer token
- Logs request start & end with timing
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from tinypm.core.security import decode_access_token
from tinypm.logging_config import (
    custom_domain_ctx,
    generate_request_id,
    request_id_ctx,
    user_id_ctx,
)

logger = logging.getLogger("tinypm.request")


def _extract_user_id(request: Request) -> str:
    """Middleware runs before auth dependencies, so read the bearer token directly."""
    auth = request.headers.get("authorization", "")
    if auth.startswith("Bearer "):
        return decode_access_token(auth[7:]) or "-"
    return "-"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        rid = generate_request_id()
        request_id_ctx.set(rid)
        user_id_ctx.set(_extract_user_id(request))
        custom_domain_ctx.set("-")

        method = request.method
        path = request.url.path
        host = request.headers.get("host", "-")
        client_ip = request.client.host if request.client else "-"

        logger.info("→ %s %s%s from %s", method, host, path, client_ip)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            elapsed = (time.perf_counter() - start) * 1000
            logger.exception("✗ %s %s — %.1fms (unhandled exception)", method, path, elapsed)
            raise

        elapsed = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = rid

        logger.info(
            "← %s %s — %d — %.1fms",
            method, path, response.status_code, elapsed,
        )
        return response
