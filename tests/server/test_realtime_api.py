"""Tests for change publishing and the realtime stream's filtering rules."""
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient

from quickhost_api import dependencies
from quickhost_api.realtime import publish_change, channel_for, EVENT_UPDATE
from quickhost_api.routers.realtime import OwnedRows, record_visible, should_forward
from tests.server.conftest import create_site


@pytest.fixture
def fake_redis(monkeypatch):
    redis = MagicMock()
    redis.publish = AsyncMock(return_value=1)
    monkeypatch.setattr(dependencies, "redis_client", redis)
    return redis


# ── Publishing ──────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_publish_change_payload(fake_redis):
    await publish_change("site_files", {"id": "file_1", "site_id": "site_1"}, EVENT_UPDATE)

    fake_redis.publish.assert_awaited_once()
    channel, payload = fake_redis.publish.await_args.args
    assert channel == "quickhost:realtime:site_files"
    assert json.loads(payload) == {
        "type": "UPDATE",
        "table": "site_files",
        "record": {"id": "file_1", "site_id": "site_1"},
    }


@pytest.mark.asyncio
async def test_publish_without_redis_is_skipped(monkeypatch):
    monkeypatch.setattr(dependencies, "redis_client", None)
    await publish_change("emails", {"id": "eml_1"})


@pytest.mark.asyncio
async def test_publish_failure_is_logged_not_raised(fake_redis):
    fake_redis.publish.side_effect = ConnectionError("redis down")
    await publish_change("emails", {"id": "eml_1"})


@pytest.mark.asyncio
async def test_insert_route_publishes(client: AsyncClient, alice, fake_redis):
    site = await create_site(client, alice)

    channels = [call.args[0] for call in fake_redis.publish.await_args_list]
    assert channel_for("hosted_sites") in channels
    payloads = [json.loads(call.args[1]) for call in fake_redis.publish.await_args_list]
    inserted = [p for p in payloads if p["table"] == "hosted_sites"]
    assert inserted[0]["type"] == "INSERT"
    assert inserted[0]["record"]["id"] == site["id"]


# ── Stream endpoint ─────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_stream_requires_redis(client: AsyncClient, alice):
    response = await client.get("/v1/realtime/site_files", headers=alice["headers"])
    assert response.status_code == 503


@pytest.mark.asyncio
async def test_stream_unknown_table(client: AsyncClient, alice):
    response = await client.get("/v1/realtime/secrets", headers=alice["headers"])
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_stream_rejects_bad_filter(client: AsyncClient, alice, fake_redis):
    response = await client.get(
        "/v1/realtime/site_files", params={"filter": "site_id=gt.5"}, headers=alice["headers"]
    )
    assert response.status_code == 400

    response = await client.get(
        "/v1/realtime/site_files", params={"filter": "bogus=eq.5"}, headers=alice["headers"]
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_stream_requires_auth(client: AsyncClient):
    response = await client.get("/v1/realtime/site_files")
    assert response.status_code == 401


# ── Filtering rules ─────────────────────────────────────────────────


def test_should_forward_checks_event_type():
    message = {"type": "UPDATE", "record": {"id": "x"}}
    assert not should_forward(message, {"INSERT"}, None, None)
    assert should_forward(message, {"INSERT", "UPDATE"}, None, None)


def test_should_forward_applies_equality_filter():
    message = {"type": "INSERT", "record": {"boongle_identity_id": "mid_1", "is_read": False}}
    assert should_forward(message, {"INSERT"}, "boongle_identity_id", "mid_1")
    assert not should_forward(message, {"INSERT"}, "boongle_identity_id", "mid_2")
    assert should_forward(message, {"INSERT"}, "is_read", "false")
    assert not should_forward(message, {"INSERT"}, "missing", "x")


def test_record_visible_by_owner():
    owned = OwnedRows()
    assert record_visible("profiles", "usr_1", owned, {"id": "usr_1"})
    assert not record_visible("profiles", "usr_1", owned, {"id": "usr_2"})
    assert record_visible("hosted_sites", "usr_1", owned, {"user_id": "usr_1"})
    assert not record_visible("boongle_mail_identities", "usr_1", owned, {"user_id": "usr_2"})


def test_record_visible_through_parents():
    owned = OwnedRows(
        site_ids={"site_1"},
        identity_ids={"mid_1"},
        addresses={"alice@boongle.com"},
    )
    assert record_visible("site_files", "usr_1", owned, {"site_id": "site_1"})
    assert not record_visible("site_files", "usr_1", owned, {"site_id": "site_2"})
    assert record_visible("email_user_mailbox", "usr_1", owned, {"boongle_identity_id": "mid_1"})
    assert not record_visible("email_user_mailbox", "usr_1", owned, {"boongle_identity_id": "mid_9"})
    assert record_visible(
        "emails", "usr_1", owned,
        {"sender_email_address": "bob@boongle.com", "recipient_email_address": "alice@boongle.com"},
    )
    assert not record_visible(
        "emails", "usr_1", owned,
        {"sender_email_address": "bob@boongle.com", "recipient_email_address": "carol@boongle.com"},
    )
    assert not record_visible("unknown", "usr_1", owned, {})
