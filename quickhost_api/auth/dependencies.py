"""FastAPI authentication dependencies.

  get_current_user: requires a valid access token for an active user
"""

from dataclasses import dataclass
from typing import Optional

import jwt as pyjwt
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from quickhost_api.auth.jwt import decode_token, TOKEN_TYPE_ACCESS
from quickhost_api.database import get_async_session
from quickhost_api.logging_config import get_logger
from quickhost_api.models.auth import User

logger = get_logger(__name__)


@dataclass
class AuthUser:
    """Represents the authenticated caller."""

    id: str
    email: str


def _extract_bearer_token(request: Request) -> Optional[str]:
    """Extract the Bearer token from the Authorization header or query param."""
    auth_header = request.headers.get("authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip()
    # Fallback: query parameter (for SSE)
    return request.query_params.get("token")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    request: Request,
    session: AsyncSession = Depends(get_async_session),
) -> AuthUser:
    """Resolve the current user from the bearer token.

    Raises 401 if no valid credential is provided.
    """
    token = _extract_bearer_token(request)
    if not token:
        raise _unauthorized("Not authenticated")

    try:
        payload = decode_token(token)
    except pyjwt.ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except pyjwt.InvalidTokenError:
        raise _unauthorized("Invalid or expired token")

    if payload.get("type") != TOKEN_TYPE_ACCESS:
        raise _unauthorized("Invalid token type")

    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("Invalid or expired token")

    user = await session.get(User, user_id)
    if not user or not user.is_active:
        raise _unauthorized("User not found or inactive")

    return AuthUser(id=user.id, email=user.email)
