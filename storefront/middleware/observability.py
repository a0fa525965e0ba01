from __future__ import annotations

import time
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from storefront.core.logging import get_logger
from storefront.core.metrics import Metrics, normalize_path


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Records request metrics and logs 4xx/5xx responses."""

    def __init__(self, app, *, metrics: Metrics, log_4xx: bool = True, log_5xx: bool = True) -> None:
        super().__init__(app)
        self.metrics = metrics
        self.logger = get_logger("storefront.requests")
        self.log_4xx = log_4xx
        self.log_5xx = log_5xx

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            duration = time.perf_counter() - start
            self.metrics.record_request(request, 500, duration)
            self._log(request, 500, duration, "Unhandled server error", "error")
            raise

        duration = time.perf_counter() - start
        status_code = response.status_code
        self.metrics.record_request(request, status_code, duration)

        if status_code >= 500 and self.log_5xx:
            self._log(request, status_code, duration, "Server error response", "error")
        elif status_code >= 400 and self.log_4xx:
            self._log(request, status_code, duration, "Client error response", "warning")

        return response

    def _log(self, request: Request, status_code: int, duration: float, message: str, level: str) -> None:
        payload: dict[str, Any] = {
            "method": request.method,
            "path": normalize_path(request),
            "status_code": status_code,
            "duration_ms": round(duration * 1000, 3),
            "client_ip": self._client_ip(request),
            "request_id": request.headers.get("x-request-id"),
        }
        getattr(self.logger, level, self.logger.error)(message, extra=payload)

    @staticmethod
    def _client_ip(request: Request) -> str | None:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
        client = request.client
        return client.host if client else None
