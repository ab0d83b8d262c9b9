"""
Security headers middleware for FastAPI.

Adds security headers to all responses:
- Content-Security-Policy (CSP)
- X-Content-Type-Options
- X-Frame-Options
- Referrer-Policy
- Permissions-Policy
- Strict-Transport-Security (HSTS, production over HTTPS only)
"""

from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    HTTP middleware for adding security headers.

    The API only serves JSON and event streams, so the CSP denies everything
    except same-origin connections (plus any extra allowed origins).
    """

    def __init__(
        self,
        app,
        environment: str = "development",
        allowed_origins: Optional[list[str]] = None,
    ):
        """
        Args:
            app: FastAPI application.
            environment: Environment name (production enables HSTS).
            allowed_origins: Extra origins allowed in connect-src.
        """
        super().__init__(app)
        self.environment = environment
        self.allowed_origins = allowed_origins or []

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = (
            "geolocation=(), microphone=(), camera=(), payment=(), usb=()"
        )
        response.headers["Content-Security-Policy"] = self._build_csp()

        # HSTS (only in production with HTTPS)
        if self.environment == "production":
            forwarded_proto = request.headers.get("X-Forwarded-Proto", "")
            if forwarded_proto == "https" or request.url.scheme == "https":
                response.headers["Strict-Transport-Security"] = (
                    "max-age=31536000; includeSubDomains"
                )

        return response

    def _build_csp(self) -> str:
        connect_sources = ["'self'", *self.allowed_origins]
        directives = [
            "default-src 'none'",
            f"connect-src {' '.join(connect_sources)}",
            "frame-ancestors 'none'",
            "base-uri 'none'",
            "form-action 'none'",
        ]
        return "; ".join(directives)
