"""Authentication API routes.

  POST /v1/auth/signup   create user + profile, issue token (public)
  POST /v1/auth/login    issue token (public)
  GET  /v1/auth/me       current user
  POST /v1/auth/logout   stateless acknowledgement
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quickhost_api.auth.config import auth_settings
from quickhost_api.auth.dependencies import get_current_user, AuthUser
from quickhost_api.auth.jwt import create_access_token
from quickhost_api.auth.passwords import hash_password, verify_password
from quickhost_api.database import get_async_session
from quickhost_api.logging_config import get_logger
from quickhost_api.models import User, Profile, now_ms

logger = get_logger(__name__)

router = APIRouter()


class CredentialsRequest(BaseModel):
    email: str
    password: str


def _issue_token(user: User) -> dict:
    return {
        "accessToken": create_access_token(user.id, user.email),
        "tokenType": "Bearer",
        "expiresIn": auth_settings.access_token_ttl_seconds,
        "user": {"id": user.id, "email": user.email},
    }


def _normalise_email(email: str) -> str:
    return email.strip().lower()


@router.post("/signup")
async def signup(
    req: CredentialsRequest,
    session: AsyncSession = Depends(get_async_session),
):
    """Create an account. A profile with zero credits is created alongside."""
    email = _normalise_email(req.email)
    if "@" not in email:
        raise HTTPException(status_code=400, detail="A valid email address is required")
    if len(req.password) < auth_settings.min_password_length:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {auth_settings.min_password_length} characters",
        )

    existing = await session.execute(select(User).where(User.email == email))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="Email already registered")

    now = now_ms()
    user = User(
        id=User.generate_id(),
        email=email,
        password_hash=hash_password(req.password),
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    session.add(user)
    # Flush the user first so the profile's foreign key resolves
    await session.flush()
    session.add(Profile(id=user.id, credits=0, updated_at=now))
    await session.commit()

    logger.info(f"Created user {user.id}")
    return _issue_token(user)


@router.post("/login")
async def login(
    req: CredentialsRequest,
    session: AsyncSession = Depends(get_async_session),
):
    """Exchange email/password for an access token."""
    email = _normalise_email(req.email)
    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(req.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is disabled")

    return _issue_token(user)


@router.get("/me")
async def me(user: AuthUser = Depends(get_current_user)):
    """Return the authenticated user."""
    return {"id": user.id, "email": user.email}


@router.post("/logout")
async def logout(user: AuthUser = Depends(get_current_user)):
    """Tokens are stateless; the client discards its copy."""
    logger.info(f"User {user.id} signed out")
    return {"status": "ok"}
