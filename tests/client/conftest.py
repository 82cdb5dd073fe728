"""Shared fixtures for client core and CLI tests."""

import pytest
import pytest_asyncio
import respx
from typer.testing import CliRunner

from quickhost import auth
from quickhost.client import QuickHostClient
from quickhost.session import Session

SERVER = "http://localhost:8000"
TOKEN = "eyJ.access.tok"


@pytest.fixture
def runner():
    """Typer CLI runner."""
    return CliRunner()


@pytest.fixture
def mock_api():
    """respx mock router scoped to the default base URL."""
    with respx.mock(base_url=SERVER, assert_all_called=False) as router:
        yield router


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    """Keep Rich from wrapping table cells in captured output."""
    monkeypatch.setenv("COLUMNS", "200")


@pytest.fixture(autouse=True)
def isolated_auth_file(tmp_path, monkeypatch):
    """Redirect credential storage to a temp directory for every test."""
    config_dir = tmp_path / ".config" / "quickhost"
    auth_file = config_dir / "auth.json"
    monkeypatch.setattr(auth, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(auth, "AUTH_FILE", auth_file)
    return auth_file


@pytest.fixture
def logged_in():
    """Store a valid token for the default server."""
    auth.save_session(SERVER, SAMPLE_AUTH)
    return TOKEN


@pytest_asyncio.fixture
async def api():
    """QuickHostClient holding a token, against the mocked server."""
    c = QuickHostClient(base_url=SERVER, token=TOKEN, retry_delay=0.01)
    yield c
    await c.close()


@pytest_asyncio.fixture
async def active_session(api, mock_api):
    """A resumed, manually-ticked session with SAMPLE_PROFILE's balance."""
    mock_api.get("/v1/auth/me").respond(200, json=SAMPLE_USER)
    mock_api.get(f"/v1/tables/profiles/{SAMPLE_USER['id']}").respond(200, json=SAMPLE_PROFILE)
    session = Session(api, auto_tick=False)
    await session.resume()
    yield session
    await session.flush()


# ── Sample API response data matching actual server shapes ──────────


SAMPLE_USER = {"id": "usr_abc123", "email": "alice@example.com"}

SAMPLE_AUTH = {
    "accessToken": TOKEN,
    "tokenType": "Bearer",
    "expiresIn": 86400,
    "user": SAMPLE_USER,
}

SAMPLE_PROFILE = {
    "id": "usr_abc123",
    "credits": 12,
    "created_at": 1700000000000,
    "updated_at": 1700000000000,
}

SAMPLE_STATUS = {
    "status": "ok",
    "version": "0.1.0",
    "redis_connected": True,
    "database_connected": True,
}

SAMPLE_SITE = {
    "id": "site_0a1b2c3d4e5f",
    "user_id": "usr_abc123",
    "site_name": "My Portfolio",
    "public_link_slug": "my-portfolio-x7k2p9",
    "status": "active",
    "created_at": 1700000000000,
    "updated_at": 1700000000000,
}

SAMPLE_FILES = [
    {
        "id": "file_000000000001",
        "site_id": "site_0a1b2c3d4e5f",
        "file_name": "index.html",
        "content": "<h1>Hi</h1>",
        "created_at": 1700000000000,
        "updated_at": 1700000000000,
    },
    {
        "id": "file_000000000002",
        "site_id": "site_0a1b2c3d4e5f",
        "file_name": "script.js",
        "content": "console.log(1);",
        "created_at": 1700000000000,
        "updated_at": 1700000000000,
    },
    {
        "id": "file_000000000003",
        "site_id": "site_0a1b2c3d4e5f",
        "file_name": "styles.css",
        "content": "h1 { color: red; }",
        "created_at": 1700000000000,
        "updated_at": 1700000000000,
    },
]

SAMPLE_PUBLIC_SITE = {
    "site": {
        "id": "site_0a1b2c3d4e5f",
        "site_name": "My Portfolio",
        "public_link_slug": "my-portfolio-x7k2p9",
        "status": "active",
    },
    "files": [{"file_name": f["file_name"], "content": f["content"]} for f in SAMPLE_FILES],
}

SAMPLE_IDENTITY = {
    "id": "mid_111111111111",
    "user_id": "usr_abc123",
    "email_address": "alice@boongle.com",
    "display_name": "alice",
    "slot": 0,
    "created_at": 1700000000000,
}

SAMPLE_EMAIL = {
    "id": "eml_222222222222",
    "sender_email_address": "bob@boongle.com",
    "recipient_email_address": "alice@boongle.com",
    "subject": "Lunch?",
    "body": "Noon at the usual place.",
    "sent_at": 1700000100000,
}

SAMPLE_MAILBOX_ENTRY = {
    "id": "mbx_333333333333",
    "email_id": "eml_222222222222",
    "boongle_identity_id": "mid_111111111111",
    "folder": "inbox",
    "is_read": False,
    "associated_at": 1700000100000,
    "email_details": SAMPLE_EMAIL,
}
