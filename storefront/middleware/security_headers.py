from __future__ import annotations

from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from storefront.core.config import Settings


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach strict security headers to every HTTP response."""

    def __init__(self, app, *, settings: Settings) -> None:
        super().__init__(app)
        self.headers = {
            "Strict-Transport-Security": settings.STRICT_TRANSPORT_SECURITY,
            "Content-Security-Policy": settings.CONTENT_SECURITY_POLICY,
            "X-Frame-Options": settings.X_FRAME_OPTIONS,
            "X-Content-Type-Options": settings.X_CONTENT_TYPE_OPTIONS,
            "Referrer-Policy": settings.REFERRER_POLICY,
        }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers.setdefault(name, value)
        return response
