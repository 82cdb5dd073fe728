"""Authentication module for the QuickHost platform."""

from quickhost_api.auth.config import auth_settings
from quickhost_api.auth.dependencies import get_current_user, AuthUser

__all__ = [
    "auth_settings",
    "get_current_user",
    "AuthUser",
]
