from __future__ import annotations

import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from uesgm_portal.utils.logger import get_logger

logger = get_logger(__name__)


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One log line per request; query strings and bodies are never logged."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        client_ip = request.client.host if request.client else None
        started = time.perf_counter()
        resp = await call_next(request)
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=resp.status_code,
            client_ip=client_ip,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return resp
