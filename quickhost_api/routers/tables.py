"""Generic row access for the QuickHost and Boongle Mail tables.

  GET    /v1/tables/{table}?col=eq.value&order=col.desc   list visible rows
  POST   /v1/tables/{table}                               insert a row
  GET    /v1/tables/{table}/{row_id}                      fetch one row
  PATCH  /v1/tables/{table}/{row_id}                      update writable columns
  DELETE /v1/tables/{table}/{row_id}                      delete a row

Every table has a policy describing which rows the caller can see and
which columns they may write. Rows outside the caller's scope behave as
if they did not exist (404).
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from quickhost_api.auth.dependencies import get_current_user, AuthUser
from quickhost_api.database import get_async_session
from quickhost_api.logging_config import get_logger
from quickhost_api.models import (
    Profile,
    Site,
    SiteFile,
    MailIdentity,
    Email,
    MailboxEntry,
    now_ms,
)
from quickhost_api.realtime import (
    publish_change,
    EVENT_INSERT,
    EVENT_UPDATE,
    EVENT_DELETE,
)
from quickhost_api.utils import row_to_dict, parse_filter, coerce_value

logger = get_logger(__name__)

router = APIRouter()

MAILBOX_FOLDERS = {"inbox", "sent", "trash", "archive"}
SITE_STATUSES = {"active", "inactive", "archived"}

# Query parameters that are not column filters
RESERVED_PARAMS = {"order", "limit", "token"}


# ── Visibility scopes ──────────────────────────────────────────────────────


def _owned_site_ids(user_id: str):
    return select(Site.id).where(Site.user_id == user_id)


def _owned_identity_ids(user_id: str):
    return select(MailIdentity.id).where(MailIdentity.user_id == user_id)


def _visible_email_ids(user_id: str):
    return select(MailboxEntry.email_id).where(
        MailboxEntry.boongle_identity_id.in_(_owned_identity_ids(user_id))
    )


def _serialize_mailbox_entry(entry: MailboxEntry) -> dict:
    data = row_to_dict(entry)
    data["email_details"] = row_to_dict(entry.email) if entry.email else None
    return data


# ── Write hooks ────────────────────────────────────────────────────────────


async def _prepare_site(session: AsyncSession, user: AuthUser, values: dict) -> None:
    name = str(values.get("site_name") or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="site_name is required")
    if not values.get("public_link_slug"):
        raise HTTPException(status_code=400, detail="public_link_slug is required")
    values["site_name"] = name
    values["user_id"] = user.id
    values.setdefault("status", "active")
    if values["status"] not in SITE_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status: {values['status']}")
    now = now_ms()
    values["created_at"] = now
    values["updated_at"] = now


async def _prepare_site_file(session: AsyncSession, user: AuthUser, values: dict) -> None:
    site = await session.get(Site, values.get("site_id") or "")
    if not site or site.user_id != user.id:
        raise HTTPException(status_code=404, detail="Site not found")
    if not values.get("file_name"):
        raise HTTPException(status_code=400, detail="file_name is required")
    values.setdefault("content", "")
    now = now_ms()
    values["created_at"] = now
    values["updated_at"] = now


def _check_credits(values: dict) -> None:
    credits = values.get("credits")
    if not isinstance(credits, int) or isinstance(credits, bool):
        raise HTTPException(status_code=400, detail="credits must be an integer")
    if credits < 0:
        raise HTTPException(status_code=400, detail="credits cannot be negative")


def _check_mailbox_update(values: dict) -> None:
    if "folder" in values and values["folder"] not in MAILBOX_FOLDERS:
        raise HTTPException(status_code=400, detail=f"Invalid folder: {values['folder']}")
    if "is_read" in values and not isinstance(values["is_read"], bool):
        raise HTTPException(status_code=400, detail="is_read must be a boolean")


def _check_site_update(values: dict) -> None:
    if "site_name" in values and not str(values["site_name"] or "").strip():
        raise HTTPException(status_code=400, detail="site_name cannot be empty")
    if "status" in values and values["status"] not in SITE_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status: {values['status']}")


# ── Policy registry ────────────────────────────────────────────────────────


@dataclass
class TablePolicy:
    model: type
    # Returns the WHERE clause restricting rows to the caller
    scope: Callable[[str], Any]
    insertable: frozenset = frozenset()
    updatable: frozenset = frozenset()
    deletable: bool = False
    prepare_insert: Optional[Callable] = None
    check_update: Optional[Callable[[dict], None]] = None
    serialize: Callable[[Any], dict] = field(default=row_to_dict)
    touch_updated_at: bool = False


POLICIES: dict[str, TablePolicy] = {
    "profiles": TablePolicy(
        model=Profile,
        scope=lambda uid: Profile.id == uid,
        updatable=frozenset({"credits"}),
        check_update=_check_credits,
        touch_updated_at=True,
    ),
    "hosted_sites": TablePolicy(
        model=Site,
        scope=lambda uid: Site.user_id == uid,
        insertable=frozenset({"site_name", "public_link_slug", "status"}),
        updatable=frozenset({"site_name", "status"}),
        deletable=True,
        prepare_insert=_prepare_site,
        check_update=_check_site_update,
        touch_updated_at=True,
    ),
    "site_files": TablePolicy(
        model=SiteFile,
        scope=lambda uid: SiteFile.site_id.in_(_owned_site_ids(uid)),
        insertable=frozenset({"site_id", "file_name", "content"}),
        updatable=frozenset({"content"}),
        deletable=True,
        prepare_insert=_prepare_site_file,
        touch_updated_at=True,
    ),
    "boongle_mail_identities": TablePolicy(
        model=MailIdentity,
        scope=lambda uid: MailIdentity.user_id == uid,
        updatable=frozenset({"display_name"}),
    ),
    "emails": TablePolicy(
        model=Email,
        scope=lambda uid: Email.id.in_(_visible_email_ids(uid)),
    ),
    "email_user_mailbox": TablePolicy(
        model=MailboxEntry,
        scope=lambda uid: MailboxEntry.boongle_identity_id.in_(_owned_identity_ids(uid)),
        updatable=frozenset({"is_read", "folder"}),
        check_update=_check_mailbox_update,
        serialize=_serialize_mailbox_entry,
    ),
}


def get_policy(table: str) -> TablePolicy:
    policy = POLICIES.get(table)
    if policy is None:
        raise HTTPException(status_code=404, detail=f"Unknown table: {table}")
    return policy


def _column(policy: TablePolicy, name: str):
    column = policy.model.__table__.columns.get(name)
    if column is None:
        raise HTTPException(status_code=400, detail=f"Unknown column: {name}")
    return column


async def _get_visible_row(
    session: AsyncSession, policy: TablePolicy, user: AuthUser, row_id: str
):
    result = await session.execute(
        select(policy.model).where(policy.model.id == row_id, policy.scope(user.id))
    )
    row = result.scalar_one_or_none()
    if row is None:
        raise HTTPException(status_code=404, detail="Row not found")
    return row


# ── Routes ─────────────────────────────────────────────────────────────────


@router.get("/{table}")
async def list_rows(
    table: str,
    request: Request,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    """List the caller's rows, optionally filtered and ordered."""
    policy = get_policy(table)
    model = policy.model
    query = select(model).where(policy.scope(user.id))

    for name, expr in request.query_params.items():
        if name in RESERVED_PARAMS:
            continue
        column = _column(policy, name)
        try:
            _, raw = parse_filter(expr)
            value = coerce_value(column, raw)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        query = query.where(getattr(model, name) == value)

    order = request.query_params.get("order")
    if order:
        name, _, direction = order.partition(".")
        _column(policy, name)
        if direction not in ("", "asc", "desc"):
            raise HTTPException(status_code=400, detail=f"Invalid order direction: {direction}")
        attr = getattr(model, name)
        query = query.order_by(attr.desc() if direction == "desc" else attr.asc())

    limit = request.query_params.get("limit")
    if limit:
        try:
            query = query.limit(max(int(limit), 0))
        except ValueError:
            raise HTTPException(status_code=400, detail="limit must be an integer")

    result = await session.execute(query)
    return [policy.serialize(row) for row in result.scalars().all()]


@router.get("/{table}/{row_id}")
async def get_row(
    table: str,
    row_id: str,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    """Fetch a single row by primary key."""
    policy = get_policy(table)
    row = await _get_visible_row(session, policy, user, row_id)
    return policy.serialize(row)


@router.post("/{table}", status_code=201)
async def insert_row(
    table: str,
    payload: dict[str, Any] = Body(...),
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    """Insert a row on behalf of the caller."""
    policy = get_policy(table)
    if not policy.insertable:
        raise HTTPException(status_code=403, detail=f"Rows cannot be inserted into {table}")

    rejected = set(payload) - policy.insertable
    if rejected:
        raise HTTPException(
            status_code=400,
            detail=f"Columns not writable: {', '.join(sorted(rejected))}",
        )

    values = dict(payload)
    if policy.prepare_insert:
        await policy.prepare_insert(session, user, values)

    row = policy.model(id=policy.model.generate_id(), **values)
    session.add(row)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=409, detail=f"Conflicting row in {table}")

    record = policy.serialize(row)
    logger.debug(f"Inserted {table} row {row.id} for {user.id}")
    await publish_change(table, record, EVENT_INSERT)
    return record


@router.patch("/{table}/{row_id}")
async def update_row(
    table: str,
    row_id: str,
    payload: dict[str, Any] = Body(...),
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    """Update writable columns of a visible row."""
    policy = get_policy(table)
    if not payload:
        raise HTTPException(status_code=400, detail="No columns to update")

    rejected = set(payload) - policy.updatable
    if rejected:
        raise HTTPException(
            status_code=400,
            detail=f"Columns not writable: {', '.join(sorted(rejected))}",
        )
    if policy.check_update:
        policy.check_update(payload)

    row = await _get_visible_row(session, policy, user, row_id)
    for key, value in payload.items():
        if key == "site_name":
            value = str(value).strip()
        setattr(row, key, value)
    if policy.touch_updated_at:
        row.updated_at = now_ms()

    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=409, detail=f"Conflicting row in {table}")

    record = policy.serialize(row)
    await publish_change(table, record, EVENT_UPDATE)
    return record


@router.delete("/{table}/{row_id}")
async def delete_row(
    table: str,
    row_id: str,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    """Delete a visible row. Deleting a site removes its files."""
    policy = get_policy(table)
    if not policy.deletable:
        raise HTTPException(status_code=403, detail=f"Rows cannot be deleted from {table}")

    row = await _get_visible_row(session, policy, user, row_id)
    record = policy.serialize(row)
    await session.delete(row)
    await session.commit()

    logger.info(f"Deleted {table} row {row_id} for {user.id}")
    await publish_change(table, record, EVENT_DELETE)
    return {"status": "deleted", "id": row_id}
