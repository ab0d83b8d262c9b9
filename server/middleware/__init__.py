"""
Middleware components for the RDFPoker server.

Provides:
- SecurityHeadersMiddleware: Security headers (CSP, HSTS, etc.)
- RequestIDMiddleware: Request tracing with X-Request-ID
"""

from .security import SecurityHeadersMiddleware
from .request_id import RequestIDMiddleware

__all__ = [
    "SecurityHeadersMiddleware",
    "RequestIDMiddleware",
]
