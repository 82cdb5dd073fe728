"""Tests for QuickHostClient: verifies URL paths, methods and error mapping."""

import asyncio
import json

import httpx
import pytest

from quickhost.client import QuickHostClient
from quickhost.errors import BackendError, NotFound, QuickHostError
from tests.client.conftest import (
    SAMPLE_AUTH,
    SAMPLE_FILES,
    SAMPLE_MAILBOX_ENTRY,
    SAMPLE_PUBLIC_SITE,
    SAMPLE_STATUS,
    SERVER,
    TOKEN,
)


def _sse(*messages: dict) -> str:
    return "".join(f"event: {m['type']}\ndata: {json.dumps(m)}\n\n" for m in messages)


# ── Auth ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_sign_in_adopts_token(mock_api):
    route = mock_api.post("/v1/auth/login").respond(200, json=SAMPLE_AUTH)
    mock_api.get("/v1/status").respond(200, json=SAMPLE_STATUS)

    async with QuickHostClient(base_url=SERVER) as client:
        await client.sign_in("alice@example.com", "password123")
        assert client.token == TOKEN
        assert client.user == SAMPLE_AUTH["user"]
        await client.get_status()

    assert json.loads(route.calls.last.request.content) == {
        "email": "alice@example.com",
        "password": "password123",
    }
    assert mock_api.calls.last.request.headers["Authorization"] == f"Bearer {TOKEN}"


@pytest.mark.asyncio
async def test_sign_out_clears_token_even_on_error(api, mock_api):
    mock_api.post("/v1/auth/logout").respond(500, json={"detail": "boom"})
    with pytest.raises(BackendError):
        await api.sign_out()
    assert api.token is None


@pytest.mark.asyncio
async def test_no_auth_header_without_token(mock_api):
    mock_api.get("/v1/status").respond(200, json=SAMPLE_STATUS)
    async with QuickHostClient(base_url=SERVER) as client:
        await client.get_status()
    assert "Authorization" not in mock_api.calls.last.request.headers


# ── Error mapping ───────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_404_raises_not_found(api, mock_api):
    mock_api.get("/v1/tables/hosted_sites/site_x").respond(404, json={"detail": "Row not found"})
    with pytest.raises(NotFound, match="Row not found"):
        await api.fetch_by_id("hosted_sites", "site_x")


@pytest.mark.asyncio
async def test_error_status_raises_backend_error(api, mock_api):
    mock_api.post("/v1/tables/hosted_sites").respond(409, json={"detail": "Conflicting row in hosted_sites"})
    with pytest.raises(BackendError) as exc_info:
        await api.insert("hosted_sites", {"site_name": "x"})
    assert exc_info.value.status_code == 409
    assert "Conflicting row" in str(exc_info.value)


@pytest.mark.asyncio
async def test_non_json_error_body(api, mock_api):
    mock_api.get("/v1/status").respond(502, text="Bad Gateway")
    with pytest.raises(BackendError, match="Bad Gateway"):
        await api.get_status()


@pytest.mark.asyncio
async def test_transport_error_raises_backend_error(api, mock_api):
    mock_api.get("/v1/status").mock(side_effect=httpx.ConnectError("refused"))
    with pytest.raises(BackendError, match="refused") as exc_info:
        await api.get_status()
    assert exc_info.value.status_code is None


# ── Rows ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_fetch_by_foreign_key_params(api, mock_api):
    route = mock_api.get("/v1/tables/email_user_mailbox").respond(200, json=[SAMPLE_MAILBOX_ENTRY])

    rows = await api.fetch_by_foreign_key(
        "email_user_mailbox",
        "boongle_identity_id",
        "mid_1",
        order_by="associated_at",
        descending=True,
        is_read=False,
        folder="inbox",
    )

    assert rows == [SAMPLE_MAILBOX_ENTRY]
    params = route.calls.last.request.url.params
    assert params["boongle_identity_id"] == "eq.mid_1"
    assert params["is_read"] == "eq.false"
    assert params["folder"] == "eq.inbox"
    assert params["order"] == "associated_at.desc"


@pytest.mark.asyncio
async def test_update_and_delete(api, mock_api):
    file_id = SAMPLE_FILES[0]["id"]
    patch = mock_api.patch(f"/v1/tables/site_files/{file_id}").respond(200, json=SAMPLE_FILES[0])
    delete = mock_api.delete(f"/v1/tables/site_files/{file_id}").respond(
        200, json={"status": "deleted", "id": file_id}
    )

    assert await api.update("site_files", file_id, {"content": "x"}) is None
    assert await api.delete("site_files", file_id) is None
    assert patch.called and delete.called


@pytest.mark.asyncio
async def test_send_email_returns_id(api, mock_api):
    mock_api.post("/v1/rpc/send_boongle_email").respond(201, json={"email_id": "eml_abc"})
    assert await api.send_email("mid_1", "bob@boongle.com", "Hi", "Body") == "eml_abc"


@pytest.mark.asyncio
async def test_fetch_public_site(api, mock_api):
    mock_api.get("/v1/public/sites/my-portfolio-x7k2p9").respond(200, json=SAMPLE_PUBLIC_SITE)
    data = await api.fetch_public_site("my-portfolio-x7k2p9")
    assert data["site"]["site_name"] == "My Portfolio"


# ── Realtime ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_subscribe_delivers_insert_events(api, mock_api):
    change = {"type": "INSERT", "table": "email_user_mailbox", "record": SAMPLE_MAILBOX_ENTRY}
    route = mock_api.get("/v1/realtime/email_user_mailbox").respond(
        200,
        text=": ping\n\n" + _sse(change),
        headers={"content-type": "text/event-stream"},
    )
    received = []
    got_event = asyncio.Event()

    async def on_event(message):
        received.append(message)
        got_event.set()

    sub = api.subscribe_to_inserts(
        "email_user_mailbox", "boongle_identity_id=eq.mid_111111111111", on_event
    )
    await asyncio.wait_for(got_event.wait(), timeout=2)
    await api.unsubscribe(sub)

    assert received[0] == change
    assert not sub.active
    params = route.calls[0].request.url.params
    assert params["events"] == "INSERT"
    assert params["filter"] == "boongle_identity_id=eq.mid_111111111111"
    assert route.calls[0].request.headers["Authorization"] == f"Bearer {TOKEN}"


@pytest.mark.asyncio
async def test_subscription_stops_on_client_error(api, mock_api):
    route = mock_api.get("/v1/realtime/site_files").respond(401, json={"detail": "Not authenticated"})

    sub = api.subscribe_to_inserts("site_files", None, lambda message: None)
    await asyncio.wait_for(sub.task, timeout=2)

    assert not sub.active
    assert route.call_count == 1


@pytest.mark.asyncio
async def test_subscription_reconnects_after_server_error(api, mock_api):
    change = {"type": "INSERT", "table": "site_files", "record": SAMPLE_FILES[0]}
    responses = iter([httpx.Response(503, json={"detail": "Redis not connected"})])

    def respond(request):
        return next(
            responses,
            httpx.Response(200, text=_sse(change), headers={"content-type": "text/event-stream"}),
        )

    route = mock_api.get("/v1/realtime/site_files").mock(side_effect=respond)
    got_event = asyncio.Event()

    sub = api.subscribe_to_inserts("site_files", None, lambda message: got_event.set())
    await asyncio.wait_for(got_event.wait(), timeout=2)
    await api.unsubscribe(sub)

    assert route.call_count >= 2


@pytest.mark.asyncio
async def test_handler_errors_do_not_end_subscription(api, mock_api):
    first = {"type": "INSERT", "table": "site_files", "record": {"id": "file_1"}}
    second = {"type": "INSERT", "table": "site_files", "record": {"id": "file_2"}}
    mock_api.get("/v1/realtime/site_files").respond(
        200, text=_sse(first, second), headers={"content-type": "text/event-stream"}
    )
    seen = []
    done = asyncio.Event()

    def on_event(message):
        seen.append(message["record"]["id"])
        if message["record"]["id"] == "file_1":
            raise QuickHostError("refresh failed")
        done.set()

    sub = api.subscribe_to_inserts("site_files", None, on_event)
    await asyncio.wait_for(done.wait(), timeout=2)
    await api.unsubscribe(sub)

    assert seen[:2] == ["file_1", "file_2"]


@pytest.mark.asyncio
async def test_unexpected_handler_errors_are_logged(api, mock_api, caplog):
    first = {"type": "INSERT", "table": "site_files", "record": {"id": "file_1"}}
    second = {"type": "INSERT", "table": "site_files", "record": {"id": "file_2"}}
    mock_api.get("/v1/realtime/site_files").respond(
        200, text=_sse(first, second), headers={"content-type": "text/event-stream"}
    )
    done = asyncio.Event()

    def on_event(message):
        if message["record"]["id"] == "file_1":
            raise KeyError("email_details")
        done.set()

    sub = api.subscribe_to_inserts("site_files", None, on_event)
    await asyncio.wait_for(done.wait(), timeout=2)
    await api.unsubscribe(sub)

    assert "Error in site_files event handler" in caplog.text


@pytest.mark.asyncio
async def test_unsubscribe_collects_crashed_subscription(api, mock_api, caplog):
    mock_api.get("/v1/realtime/site_files").mock(side_effect=RuntimeError("boom"))

    sub = api.subscribe_to_inserts("site_files", None, lambda message: None)
    await asyncio.wait([sub.task], timeout=2)
    assert sub.task.done()

    await api.unsubscribe(sub)

    assert not sub.active
    assert "had ended: boom" in caplog.text


@pytest.mark.asyncio
async def test_close_cancels_subscriptions(mock_api):
    mock_api.get("/v1/realtime/site_files").respond(
        200, text="", headers={"content-type": "text/event-stream"}
    )
    client = QuickHostClient(base_url=SERVER, token=TOKEN, retry_delay=0.01)
    sub = client.subscribe_to_inserts("site_files", None, lambda message: None)
    await asyncio.sleep(0.02)

    await client.close()
    assert not sub.active
