"""Tests for log formatting, password hashing and the Redis dependencies."""

import logging
import sys

import pytest
from fastapi import HTTPException

from quickhost_api import dependencies
from quickhost_api.auth.passwords import hash_password, verify_password
from quickhost_api.logging_config import QuickHostFormatter


def _record(name: str, msg: str = "Inserted hosted_sites row", exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name=name,
        level=logging.INFO,
        pathname=f"/srv/{name.replace('.', '/')}.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
        func="insert_row",
    )


def test_formatter_normalizes_service_modules():
    line = QuickHostFormatter().format(_record("quickhost_api.routers.tables"))
    assert line.startswith("INFO: ")
    assert line.endswith(" : api.routers.tables.insert_row.42 : Inserted hosted_sites row")


def test_formatter_normalizes_client_modules():
    line = QuickHostFormatter().format(_record("quickhost.session", "Session active"))
    assert " : core.session.insert_row.42 : Session active" in line


def test_formatter_keeps_external_module_names():
    line = QuickHostFormatter().format(_record("sse_starlette.sse"))
    assert " : sse_starlette.sse.insert_row.42 : " in line


def test_formatter_appends_traceback():
    try:
        raise RuntimeError("redis down")
    except RuntimeError:
        exc_info = sys.exc_info()

    line = QuickHostFormatter().format(_record("quickhost_api.realtime", "publish failed", exc_info))
    first, *rest = line.splitlines()
    assert first.endswith("publish failed")
    assert "RuntimeError: redis down" in rest[-1]


def test_password_round_trip():
    hashed = hash_password("password123")
    assert hashed.startswith("$2")
    assert verify_password("password123", hashed)
    assert not verify_password("password124", hashed)


def test_long_passwords_differ_past_72_bytes():
    base = "x" * 80
    hashed = hash_password(base + "a")
    assert not verify_password(base + "b", hashed)


def test_malformed_hash_rejects():
    assert verify_password("password123", "not-a-bcrypt-hash") is False


def test_get_redis_requires_connection(monkeypatch):
    monkeypatch.setattr(dependencies, "redis_client", None)
    with pytest.raises(HTTPException) as exc:
        dependencies.get_redis()
    assert exc.value.status_code == 503
    assert dependencies.get_optional_redis() is None


def test_get_redis_returns_connected_client(monkeypatch):
    sentinel = object()
    monkeypatch.setattr(dependencies, "redis_client", sentinel)
    assert dependencies.get_redis() is sentinel
    assert dependencies.get_optional_redis() is sentinel
