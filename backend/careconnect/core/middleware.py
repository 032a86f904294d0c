"""
HTTP middleware: authentication gateway for browser navigations.

API routes enforce authentication themselves (401 from
``get_current_user``). Page navigations without a valid session are
redirected to the login page instead.
"""

import logging
from typing import Set

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from careconnect.core.config import settings
from careconnect.core.security import get_token_subject

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"

PUBLIC_PATHS: Set[str] = {
    "/",
    "/login",
    "/signup",
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/favicon.ico",
}

PUBLIC_PREFIXES = ("/api/", "/uploads/", "/static/", "/docs/")


def is_public_path(path: str) -> bool:
    if path in PUBLIC_PATHS:
        return True
    return path.startswith(PUBLIC_PREFIXES)


def is_browser_navigation(request: Request) -> bool:
    return request.method == "GET" and "text/html" in request.headers.get("accept", "")


class AuthGatewayMiddleware(BaseHTTPMiddleware):
    """Redirect unauthenticated page requests to the login page."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path

        if is_public_path(path) or not is_browser_navigation(request):
            return await call_next(request)

        token = request.cookies.get(settings.AUTH_COOKIE_NAME)
        if not token or get_token_subject(token) is None:
            logger.debug("Redirecting unauthenticated navigation to %s", path)
            return RedirectResponse(url=LOGIN_PATH, status_code=307)

        return await call_next(request)
