"""Password hashing and verification using bcrypt."""

import hashlib

import bcrypt

from quickhost_api.auth.config import auth_settings


def _prehash(password: str) -> bytes:
    # SHA-256 prehash so passwords > 72 bytes still get full entropy.
    return hashlib.sha256(password.encode("utf-8")).hexdigest().encode("utf-8")


def hash_password(password: str) -> str:
    """Hash an account password for the users table.

    Cost comes from AUTH_BCRYPT_ROUNDS; tests lower it to keep signups fast.
    """
    hashed = bcrypt.hashpw(_prehash(password), bcrypt.gensalt(rounds=auth_settings.bcrypt_rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a login password against the stored hash."""
    try:
        return bcrypt.checkpw(_prehash(password), password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        # Malformed or empty stored hash
        return False
