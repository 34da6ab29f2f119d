"""
CSRF protection middleware using the double-submit cookie pattern.
"""

import os
import secrets
from typing import Iterable

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp


class CSRFMiddleware(BaseHTTPMiddleware):
    """
    Issues a CSRF cookie on safe requests and requires unsafe requests to
    echo it back in a header.
    """

    def __init__(
        self,
        app: ASGIApp,
        token_length: int = 32,
        cookie_name: str = "csrf_token",
        header_name: str = "X-CSRF-Token",
        safe_methods: tuple = ("GET", "HEAD", "OPTIONS"),
        exempt_paths: Iterable[str] = (),
    ):
        super().__init__(app)
        self.token_length = token_length
        self.cookie_name = cookie_name
        self.header_name = header_name
        self.safe_methods = safe_methods
        self.exempt_paths = set(exempt_paths)

    def generate_csrf_token(self) -> str:
        return secrets.token_hex(self.token_length)

    def _with_cookie(self, request: Request, response):
        if self.cookie_name not in request.cookies:
            response.set_cookie(
                key=self.cookie_name,
                value=self.generate_csrf_token(),
                httponly=False,  # Read by the frontend to fill the header
                secure=True,
                samesite="lax",
            )
        return response

    async def dispatch(self, request: Request, call_next):
        if (
            os.getenv("TESTING") == "True"
            or request.method in self.safe_methods
            or request.url.path in self.exempt_paths
        ):
            response = await call_next(request)
            return self._with_cookie(request, response)

        csrf_cookie = request.cookies.get(self.cookie_name)
        csrf_header = request.headers.get(self.header_name)

        if not csrf_cookie or not csrf_header or not secrets.compare_digest(
            csrf_cookie, csrf_header
        ):
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content={"detail": "CSRF token validation failed"},
            )

        return await call_next(request)


def setup_csrf_middleware(app, exempt_paths: Iterable[str] = ()):
    """Add CSRF middleware to the FastAPI app."""
    app.add_middleware(CSRFMiddleware, exempt_paths=exempt_paths)
