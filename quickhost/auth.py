"""CLI credential storage.

Stores one access token per server URL in ~/.config/quickhost/auth.json.
"""

import json
import time
from pathlib import Path
from typing import Optional

CONFIG_DIR = Path.home() / ".config" / "quickhost"
AUTH_FILE = CONFIG_DIR / "auth.json"


def _normalise_url(url: str) -> str:
    """Normalise a server URL for use as a storage key."""
    return url.rstrip("/").lower()


def _load_store() -> dict:
    if not AUTH_FILE.exists():
        return {}
    try:
        return json.loads(AUTH_FILE.read_text())
    except (json.JSONDecodeError, OSError):
        return {}


def _save_store(store: dict) -> None:
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    AUTH_FILE.write_text(json.dumps(store, indent=2))
    # Owner only
    try:
        AUTH_FILE.chmod(0o600)
    except OSError:
        pass


def save_token(
    server_url: str,
    access_token: str,
    expires_in: int,
    user: Optional[dict] = None,
) -> None:
    """Persist an access token for a server."""
    store = _load_store()
    store[_normalise_url(server_url)] = {
        "accessToken": access_token,
        "expiresAt": int(time.time()) + expires_in - 30,  # 30s buffer
        "user": user,
    }
    _save_store(store)


def save_session(server_url: str, data: dict) -> None:
    """Persist the response of a signup/login call."""
    save_token(
        server_url,
        access_token=data["accessToken"],
        expires_in=data.get("expiresIn", 86400),
        user=data.get("user"),
    )


def load_credentials(server_url: str) -> Optional[dict]:
    """Stored credentials for a server, or None."""
    return _load_store().get(_normalise_url(server_url))


def clear_credentials(server_url: str) -> bool:
    """Remove stored credentials. Returns True if anything was removed."""
    store = _load_store()
    key = _normalise_url(server_url)
    if key in store:
        del store[key]
        _save_store(store)
        return True
    return False


def get_access_token(server_url: str) -> Optional[str]:
    """The stored access token if it has not expired."""
    creds = load_credentials(server_url)
    if not creds:
        return None
    if time.time() < creds.get("expiresAt", 0):
        return creds.get("accessToken")
    return None
