from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from scalardb_setup.config import settings


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "same-origin"
        if not settings.dev_mode:
            response.headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains"
        return response
