"""Auth middleware: global route protection with a path allowlist.

Applied as Starlette middleware so it runs before FastAPI dependency
injection and covers every route without per-router Depends().
"""

import re

import jwt as pyjwt
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from quickhost_api.auth.dependencies import _extract_bearer_token
from quickhost_api.auth.jwt import decode_token, TOKEN_TYPE_ACCESS
from quickhost_api.logging_config import get_logger

logger = get_logger(__name__)

# Paths that never require authentication.
PUBLIC_PATH_PATTERNS: list[re.Pattern] = [
    re.compile(r"^/v1/status$"),
    re.compile(r"^/v1/auth/signup$"),
    re.compile(r"^/v1/auth/login$"),
    # Site content is publicly readable by slug
    re.compile(r"^/v1/public/"),
    re.compile(r"^/read/"),
    # OpenAPI docs (useful during development)
    re.compile(r"^/docs$"),
    re.compile(r"^/redoc$"),
    re.compile(r"^/openapi\.json$"),
]


def _is_public_path(path: str) -> bool:
    """Return True if the path matches a public pattern."""
    return any(pattern.match(path) for pattern in PUBLIC_PATH_PATTERNS)


class AuthMiddleware(BaseHTTPMiddleware):
    """Reject unauthenticated requests to non-public paths.

    This is a fast pre-check: it validates that a Bearer token is present
    and carries a valid access-token signature. User resolution happens in
    the dependency layer (get_current_user).
    """

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if _is_public_path(path) or request.method == "OPTIONS":
            return await call_next(request)

        token = _extract_bearer_token(request)
        if not token:
            return JSONResponse(
                status_code=401,
                content={"detail": "Not authenticated"},
                headers={"WWW-Authenticate": "Bearer"},
            )

        try:
            payload = decode_token(token)
        except pyjwt.InvalidTokenError as e:
            logger.debug(f"Rejected token on {path}: {e}")
            return JSONResponse(
                status_code=401,
                content={"detail": "Invalid or expired token"},
                headers={"WWW-Authenticate": "Bearer"},
            )

        if payload.get("type") != TOKEN_TYPE_ACCESS:
            return JSONResponse(
                status_code=401,
                content={"detail": "Invalid token type"},
                headers={"WWW-Authenticate": "Bearer"},
            )

        return await call_next(request)
