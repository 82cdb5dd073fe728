"""Async HTTP client for the QuickHost platform API."""

import asyncio
import inspect
import json
import logging
from typing import Any, Awaitable, Callable, Optional, Union

import httpx

from quickhost.errors import BackendError, NotFound, QuickHostError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000"

EventHandler = Callable[[dict], Union[None, Awaitable[None]]]


def _filter_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return str(body)


class Subscription:
    """A live insert subscription. Cancel it with ``QuickHostClient.unsubscribe``."""

    def __init__(self, table: str, filter: Optional[str]):
        self.table = table
        self.filter = filter
        self.task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self.task is not None and not self.task.done()


class QuickHostClient:
    """Client for the QuickHost platform.

    All endpoints use the /v1/ prefix matching the FastAPI routes. Requests
    carry a Bearer token once ``sign_in``/``sign_up`` succeed (or when one is
    passed in). Pass ``transport`` to talk to an in-process app.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
        retry_delay: float = 2.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.user: Optional[dict] = None
        self.retry_delay = retry_delay
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            transport=transport,
            timeout=timeout,
            follow_redirects=True,
        )
        self._subscriptions: set[Subscription] = set()

    async def __aenter__(self) -> "QuickHostClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        for subscription in list(self._subscriptions):
            await self.unsubscribe(subscription)
        await self._http.aclose()

    def _headers(self) -> dict:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._http.request(
                method, path, headers=self._headers(), **kwargs
            )
        except httpx.HTTPError as e:
            raise BackendError(f"Request to {path} failed: {e}") from e

        if response.status_code == 404:
            raise NotFound(_error_detail(response))
        if response.is_error:
            raise BackendError(_error_detail(response), status_code=response.status_code)
        if not response.content:
            return None
        return response.json()

    # ── Auth ────────────────────────────────────────────────────────────

    def _adopt_session(self, data: dict) -> dict:
        self.token = data["accessToken"]
        self.user = data.get("user")
        return data

    async def sign_up(self, email: str, password: str) -> dict:
        """Create an account and adopt its token."""
        data = await self._request(
            "POST", "/v1/auth/signup", json={"email": email, "password": password}
        )
        return self._adopt_session(data)

    async def sign_in(self, email: str, password: str) -> dict:
        """Exchange credentials for a token."""
        data = await self._request(
            "POST", "/v1/auth/login", json={"email": email, "password": password}
        )
        return self._adopt_session(data)

    async def sign_out(self) -> None:
        """Drop the token. Subscriptions are cancelled first."""
        for subscription in list(self._subscriptions):
            await self.unsubscribe(subscription)
        try:
            if self.token:
                await self._request("POST", "/v1/auth/logout")
        finally:
            self.token = None
            self.user = None

    async def current_user(self) -> dict:
        data = await self._request("GET", "/v1/auth/me")
        self.user = data
        return data

    async def get_status(self) -> dict:
        return await self._request("GET", "/v1/status")

    # ── Rows ────────────────────────────────────────────────────────────

    async def fetch_by_id(self, table: str, row_id: str) -> dict:
        """Fetch one row. Raises NotFound when it does not exist or is not visible."""
        return await self._request("GET", f"/v1/tables/{table}/{row_id}")

    async def fetch_by_foreign_key(
        self,
        table: str,
        key: str,
        value: Any,
        order_by: Optional[str] = None,
        descending: bool = False,
        **filters: Any,
    ) -> list[dict]:
        """List rows where ``key`` equals ``value`` (plus any extra equality filters)."""
        params = {key: f"eq.{_filter_value(value)}"}
        for column, filter_value in filters.items():
            params[column] = f"eq.{_filter_value(filter_value)}"
        if order_by:
            params["order"] = f"{order_by}.{'desc' if descending else 'asc'}"
        return await self._request("GET", f"/v1/tables/{table}", params=params)

    async def insert(self, table: str, fields: dict) -> dict:
        return await self._request("POST", f"/v1/tables/{table}", json=fields)

    async def update(self, table: str, row_id: str, fields: dict) -> None:
        await self._request("PATCH", f"/v1/tables/{table}/{row_id}", json=fields)

    async def delete(self, table: str, row_id: str) -> None:
        await self._request("DELETE", f"/v1/tables/{table}/{row_id}")

    # ── Mail procedures ─────────────────────────────────────────────────

    async def create_mail_identity(
        self, localpart: str, display_name: Optional[str] = None
    ) -> dict:
        """Claim localpart@boongle.com.

        Platform errors surface as BackendError with detail "invalid format",
        "duplicate" or "identity limit reached".
        """
        return await self._request(
            "POST",
            "/v1/rpc/create_boongle_mail_identity",
            json={"localpart": localpart, "display_name": display_name},
        )

    async def send_email(
        self,
        sender_identity_id: str,
        recipient_address: str,
        subject: str,
        body: str,
    ) -> str:
        """Send a message and return the new email id."""
        data = await self._request(
            "POST",
            "/v1/rpc/send_boongle_email",
            json={
                "sender_identity_id": sender_identity_id,
                "recipient_email_address": recipient_address,
                "subject": subject,
                "body": body,
            },
        )
        return data["email_id"]

    # ── Public sites ────────────────────────────────────────────────────

    async def fetch_public_site(self, slug: str) -> dict:
        """Site metadata and files for a slug. Raises NotFound for unknown slugs."""
        return await self._request("GET", f"/v1/public/sites/{slug}")

    # ── Realtime ────────────────────────────────────────────────────────

    def subscribe_to_inserts(
        self,
        table: str,
        filter: Optional[str],
        on_event: EventHandler,
    ) -> Subscription:
        """Start streaming inserts on ``table`` matching ``filter`` (``col=eq.value``).

        ``on_event`` receives each change message and may be sync or async.
        The stream reconnects after transport errors until unsubscribed.
        """
        subscription = Subscription(table, filter)
        subscription.task = asyncio.create_task(
            self._run_subscription(subscription, on_event)
        )
        self._subscriptions.add(subscription)
        return subscription

    async def unsubscribe(self, subscription: Subscription) -> None:
        self._subscriptions.discard(subscription)
        task = subscription.task
        if task is None:
            return
        if task.done():
            if not task.cancelled() and task.exception() is not None:
                logger.warning(f"Subscription to {subscription.table} had ended: {task.exception()}")
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run_subscription(self, subscription: Subscription, on_event: EventHandler) -> None:
        params = {"events": "INSERT"}
        if subscription.filter:
            params["filter"] = subscription.filter

        while True:
            try:
                await self._consume_stream(subscription.table, params, on_event)
            except httpx.HTTPStatusError as e:
                if e.response.status_code < 500:
                    logger.error(
                        f"Subscription to {subscription.table} rejected: "
                        f"HTTP {e.response.status_code}"
                    )
                    return
                logger.warning(f"Subscription to {subscription.table} failed: {e}")
            except httpx.HTTPError as e:
                logger.warning(f"Subscription to {subscription.table} dropped: {e}")
            await asyncio.sleep(self.retry_delay)

    async def _consume_stream(self, table: str, params: dict, on_event: EventHandler) -> None:
        async with self._http.stream(
            "GET",
            f"/v1/realtime/{table}",
            params=params,
            headers=self._headers(),
            timeout=None,
        ) as response:
            response.raise_for_status()
            async for line in response.aiter_lines():
                if not line.startswith("data:"):
                    continue
                data = line[5:].strip()
                if not data:
                    continue
                try:
                    message = json.loads(data)
                except json.JSONDecodeError:
                    continue
                try:
                    result = on_event(message)
                    if inspect.isawaitable(result):
                        await result
                except QuickHostError as e:
                    logger.warning(f"Handler for {table} event failed: {e}")
                except Exception as e:
                    logger.error(f"Error in {table} event handler: {e}", exc_info=True)
