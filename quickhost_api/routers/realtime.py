"""SSE stream of row changes.

  GET /v1/realtime/{table}?filter=col=eq.value&events=INSERT

Subscribes to the table's Redis channel and forwards each change the
caller is allowed to see and that matches the optional filter.

Test with: curl -N -H "Authorization: Bearer $TOKEN" \
    "http://localhost:8000/v1/realtime/site_files?filter=site_id=eq.site_abc"
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sse_starlette.sse import EventSourceResponse

from quickhost_api.dependencies import get_redis
from quickhost_api.auth.dependencies import get_current_user, AuthUser
from quickhost_api.database import AsyncSessionLocal
from quickhost_api.logging_config import get_logger
from quickhost_api.models import Site, MailIdentity
from quickhost_api.realtime import channel_for, EVENT_INSERT
from quickhost_api.routers.tables import POLICIES
from quickhost_api.utils import parse_column_filter, value_matches

logger = get_logger(__name__)

router = APIRouter()


@dataclass
class OwnedRows:
    """Parent rows owned by a subscriber, used to scope child-table events."""

    site_ids: set = field(default_factory=set)
    identity_ids: set = field(default_factory=set)
    addresses: set = field(default_factory=set)


async def load_owned_rows(session, user_id: str) -> OwnedRows:
    sites = await session.execute(select(Site.id).where(Site.user_id == user_id))
    identities = await session.execute(
        select(MailIdentity.id, MailIdentity.email_address).where(
            MailIdentity.user_id == user_id
        )
    )
    owned = OwnedRows(site_ids=set(sites.scalars().all()))
    for identity_id, address in identities.all():
        owned.identity_ids.add(identity_id)
        owned.addresses.add(address)
    return owned


def record_visible(table: str, user_id: str, owned: OwnedRows, record: dict) -> bool:
    """Return True if the caller may see this record."""
    if table == "profiles":
        return record.get("id") == user_id
    if table in ("hosted_sites", "boongle_mail_identities"):
        return record.get("user_id") == user_id
    if table == "site_files":
        return record.get("site_id") in owned.site_ids
    if table == "email_user_mailbox":
        return record.get("boongle_identity_id") in owned.identity_ids
    if table == "emails":
        return (
            record.get("sender_email_address") in owned.addresses
            or record.get("recipient_email_address") in owned.addresses
        )
    return False


def should_forward(
    message: dict,
    events: set,
    column: Optional[str],
    value: Optional[str],
) -> bool:
    """Check a decoded change message against the event types and filter."""
    if message.get("type") not in events:
        return False
    if column is None:
        return True
    record = message.get("record") or {}
    return column in record and value_matches(record[column], value)


@router.get("/{table}")
async def stream_table_changes(
    table: str,
    filter_expr: Optional[str] = Query(default=None, alias="filter"),
    events: str = Query(default=EVENT_INSERT),
    user: AuthUser = Depends(get_current_user),
):
    """SSE endpoint streaming changes to one table."""
    if table not in POLICIES:
        raise HTTPException(status_code=404, detail=f"Unknown table: {table}")
    redis_conn = get_redis()

    column = value = None
    if filter_expr:
        try:
            column, value = parse_column_filter(filter_expr)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if column not in POLICIES[table].model.__table__.columns:
            raise HTTPException(status_code=400, detail=f"Unknown column: {column}")

    wanted = {e.strip().upper() for e in events.split(",") if e.strip()}
    channel = channel_for(table)
    user_id = user.id

    async def event_generator():
        async with AsyncSessionLocal() as session:
            owned = await load_owned_rows(session, user_id)

        pubsub = redis_conn.pubsub()
        await pubsub.subscribe(channel)
        logger.debug(f"User {user_id} subscribed to {channel}")

        try:
            while True:
                try:
                    message = await asyncio.wait_for(
                        pubsub.get_message(ignore_subscribe_messages=True, timeout=None),
                        timeout=20.0,
                    )
                except asyncio.TimeoutError:
                    continue

                if not message or message["type"] != "message":
                    continue

                data_str = message["data"]
                if isinstance(data_str, bytes):
                    data_str = data_str.decode()
                try:
                    change = json.loads(data_str)
                except json.JSONDecodeError:
                    logger.warning(f"Dropping malformed message on {channel}")
                    continue

                if not should_forward(change, wanted, column, value):
                    continue

                record = change.get("record") or {}
                if not record_visible(table, user_id, owned, record):
                    # New parent rows may have appeared since subscribing
                    async with AsyncSessionLocal() as session:
                        owned = await load_owned_rows(session, user_id)
                    if not record_visible(table, user_id, owned, record):
                        continue

                yield {"event": change["type"], "data": json.dumps(change)}
        finally:
            await pubsub.unsubscribe(channel)
            await pubsub.close()

    return EventSourceResponse(event_generator())
