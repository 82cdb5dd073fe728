"""Auth configuration: reads from environment variables."""

import os
from dataclasses import dataclass, field


@dataclass
class AuthSettings:
    """Centralised auth configuration read from env vars at import time."""

    # Secret key used to sign JWTs (HS256). Required.
    secret_key: str = field(default_factory=lambda: os.getenv("AUTH_SECRET_KEY", ""))

    access_token_ttl_seconds: int = field(
        default_factory=lambda: int(os.getenv("AUTH_ACCESS_TOKEN_TTL", "86400"))  # 24 h
    )

    # Minimum password length accepted at signup
    min_password_length: int = field(
        default_factory=lambda: int(os.getenv("AUTH_MIN_PASSWORD_LENGTH", "6"))
    )

    bcrypt_rounds: int = field(
        default_factory=lambda: int(os.getenv("AUTH_BCRYPT_ROUNDS", "12"))
    )

    def validate(self) -> None:
        """Raise if critical settings are missing."""
        if not self.secret_key:
            raise RuntimeError(
                "AUTH_SECRET_KEY must be set. "
                'Generate one with: python -c "import secrets; print(secrets.token_urlsafe(64))"'
            )


# Singleton, imported everywhere.
auth_settings = AuthSettings()
