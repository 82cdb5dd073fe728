"""Boongle Mail procedures.

  POST /v1/rpc/create_boongle_mail_identity   claim localpart@boongle.com
  POST /v1/rpc/send_boongle_email             deliver a message to one recipient
"""

import re
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from quickhost_api.auth.dependencies import get_current_user, AuthUser
from quickhost_api.database import get_async_session
from quickhost_api.logging_config import get_logger
from quickhost_api.models import MailIdentity, Email, MailboxEntry, now_ms
from quickhost_api.realtime import publish_change
from quickhost_api.utils import row_to_dict

logger = get_logger(__name__)

router = APIRouter()

MAIL_DOMAIN = "boongle.com"
MAX_IDENTITIES_PER_USER = 3
LOCALPART_PATTERN = re.compile(r"^[a-z0-9._-]+$")


class CreateIdentityRequest(BaseModel):
    localpart: str
    display_name: Optional[str] = None


class SendEmailRequest(BaseModel):
    sender_identity_id: str
    recipient_email_address: str
    subject: str = ""
    body: str = ""


@router.post("/create_boongle_mail_identity", status_code=201)
async def create_boongle_mail_identity(
    req: CreateIdentityRequest,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    """Create a mail identity for the caller.

    The localpart must match [a-z0-9._-]+, the address must be unused and
    the caller may hold at most three identities. Each identity occupies
    one numbered slot per user, so concurrent requests cannot exceed the cap.
    """
    localpart = req.localpart.strip()
    if not LOCALPART_PATTERN.match(localpart):
        raise HTTPException(status_code=400, detail="invalid format")

    address = f"{localpart}@{MAIL_DOMAIN}"

    existing = await session.execute(
        select(MailIdentity.id).where(MailIdentity.email_address == address)
    )
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="duplicate")

    result = await session.execute(
        select(MailIdentity.slot).where(MailIdentity.user_id == user.id)
    )
    taken = set(result.scalars().all())
    free = [slot for slot in range(MAX_IDENTITIES_PER_USER) if slot not in taken]
    if not free:
        raise HTTPException(status_code=409, detail="identity limit reached")

    display_name = (req.display_name or "").strip() or localpart
    identity = MailIdentity(
        id=MailIdentity.generate_id(),
        user_id=user.id,
        email_address=address,
        display_name=display_name,
        slot=free[0],
        created_at=now_ms(),
    )
    session.add(identity)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        # Lost a race on either the address or the slot; report which
        count = await session.scalar(
            select(func.count()).select_from(MailIdentity).where(MailIdentity.user_id == user.id)
        )
        if count >= MAX_IDENTITIES_PER_USER:
            raise HTTPException(status_code=409, detail="identity limit reached")
        raise HTTPException(status_code=409, detail="duplicate")

    record = row_to_dict(identity)
    logger.info(f"User {user.id} created mail identity {address}")
    await publish_change("boongle_mail_identities", record)
    return record


@router.post("/send_boongle_email", status_code=201)
async def send_boongle_email(
    req: SendEmailRequest,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    """Send a message from one of the caller's identities.

    Writes the immutable email plus two mailbox rows: a read copy in the
    sender's sent folder and an unread copy in the recipient's inbox.
    """
    sender = await session.get(MailIdentity, req.sender_identity_id)
    if not sender or sender.user_id != user.id:
        raise HTTPException(status_code=404, detail="sender identity not found")

    recipient_address = req.recipient_email_address.strip().lower()
    if not recipient_address.endswith(f"@{MAIL_DOMAIN}"):
        raise HTTPException(status_code=400, detail=f"recipient must be a @{MAIL_DOMAIN} address")

    result = await session.execute(
        select(MailIdentity).where(MailIdentity.email_address == recipient_address)
    )
    recipient = result.scalar_one_or_none()
    if not recipient:
        raise HTTPException(status_code=404, detail="recipient not found")

    now = now_ms()
    email = Email(
        id=Email.generate_id(),
        sender_email_address=sender.email_address,
        recipient_email_address=recipient.email_address,
        subject=req.subject,
        body=req.body,
        sent_at=now,
    )
    session.add(email)
    await session.flush()

    sent_entry = MailboxEntry(
        id=MailboxEntry.generate_id(),
        email_id=email.id,
        boongle_identity_id=sender.id,
        folder="sent",
        is_read=True,
        associated_at=now,
    )
    inbox_entry = MailboxEntry(
        id=MailboxEntry.generate_id(),
        email_id=email.id,
        boongle_identity_id=recipient.id,
        folder="inbox",
        is_read=False,
        associated_at=now,
    )
    session.add_all([sent_entry, inbox_entry])
    await session.commit()

    email_record = row_to_dict(email)
    for entry in (sent_entry, inbox_entry):
        record = row_to_dict(entry)
        record["email_details"] = email_record
        await publish_change("email_user_mailbox", record)
    await publish_change("emails", email_record)

    logger.info(f"Delivered {email.id} from {sender.email_address} to {recipient.email_address}")
    return {"email_id": email.id}
