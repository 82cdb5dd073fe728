"""Boongle Mail mailbox view.

Keeps the identity list, the selected identity and folder, and the loaded
messages for that folder. Realtime inserts are cues to re-fetch, not an
ordered log of changes.
"""

import logging
import re
from typing import Callable, Optional

from quickhost.client import QuickHostClient, Subscription
from quickhost.constants import LOCALPART_PATTERN, MAIL_DOMAIN, MAILBOX_FOLDERS, MAX_MAIL_IDENTITIES
from quickhost.errors import ValidationError
from quickhost.session import Session

logger = logging.getLogger(__name__)

IDENTITIES_TABLE = "boongle_mail_identities"
MAILBOX_TABLE = "email_user_mailbox"

_LOCALPART_RE = re.compile(LOCALPART_PATTERN)


def validate_localpart(localpart: str) -> str:
    localpart = (localpart or "").strip()
    if not _LOCALPART_RE.match(localpart):
        raise ValidationError(
            "Invalid email format: use lowercase letters, numbers, '.', '_' or '-'"
        )
    return localpart


def sent_at(entry: dict) -> int:
    details = entry.get("email_details") or {}
    return details.get("sent_at") or entry.get("associated_at") or 0


class MailboxView:
    def __init__(
        self,
        client: QuickHostClient,
        session: Session,
        on_update: Optional[Callable[[list[dict]], None]] = None,
    ):
        self.client = client
        self.session = session
        self.on_update = on_update

        self.identities: list[dict] = []
        self.selected_index = 0
        self.folder = "inbox"
        self.messages: list[dict] = []
        self._subscription: Optional[Subscription] = None

    @property
    def primary_identity(self) -> Optional[dict]:
        return self.identities[0] if self.identities else None

    @property
    def selected_identity(self) -> Optional[dict]:
        if not self.identities:
            return None
        return self.identities[self.selected_index]

    # ── Identities ──────────────────────────────────────────────────────

    async def load_identities(self) -> list[dict]:
        """Load the caller's identities in creation order."""
        user_id = self.session.require_active()
        self.identities = await self.client.fetch_by_foreign_key(
            IDENTITIES_TABLE, "user_id", user_id, order_by="created_at"
        )
        if self.selected_index >= len(self.identities):
            self.selected_index = 0
        return self.identities

    def select_identity(self, index: int) -> Optional[dict]:
        """Select by position; out-of-range falls back to the first identity."""
        self.selected_index = index if 0 <= index < len(self.identities) else 0
        return self.selected_identity

    def select_address(self, address: str) -> dict:
        for index, identity in enumerate(self.identities):
            if identity["email_address"] == address:
                self.selected_index = index
                return identity
        raise ValidationError(f"{address} is not one of your identities")

    async def add_identity(self, localpart: str, display_name: Optional[str] = None) -> dict:
        """Create localpart@boongle.com. Format and the cap are checked locally first."""
        self.session.require_active()
        localpart = validate_localpart(localpart)
        if len(self.identities) >= MAX_MAIL_IDENTITIES:
            raise ValidationError(
                f"You can have at most {MAX_MAIL_IDENTITIES} Boongle Mail addresses"
            )
        identity = await self.client.create_mail_identity(
            localpart, (display_name or "").strip() or localpart
        )
        await self.load_identities()
        return identity

    # ── Messages ────────────────────────────────────────────────────────

    async def select_folder(self, folder: str) -> list[dict]:
        if folder not in MAILBOX_FOLDERS:
            raise ValidationError(f"Unknown folder: {folder}")
        self.folder = folder
        return await self.refresh()

    async def refresh(self) -> list[dict]:
        """Fetch the selected folder, newest first."""
        identity = self.selected_identity
        if identity is None:
            self.messages = []
        else:
            entries = await self.client.fetch_by_foreign_key(
                MAILBOX_TABLE, "boongle_identity_id", identity["id"], folder=self.folder
            )
            self.messages = sorted(entries, key=sent_at, reverse=True)
        if self.on_update:
            self.on_update(self.messages)
        return self.messages

    async def send(self, to: str, subject: str, body: str) -> str:
        """Send from the selected identity. Returns the email id."""
        identity = self.selected_identity
        if identity is None:
            raise ValidationError("Create a Boongle Mail address first")
        to = (to or "").strip().lower()
        if not to.endswith(f"@{MAIL_DOMAIN}"):
            raise ValidationError(f"Recipient must be a @{MAIL_DOMAIN} address")

        email_id = await self.client.send_email(identity["id"], to, subject, body)
        if self.folder == "sent":
            await self.refresh()
        return email_id

    async def open(self, entry: dict) -> dict:
        """Open a message, marking an unread inbox copy as read."""
        if entry.get("folder") == "inbox" and not entry.get("is_read"):
            await self.client.update(MAILBOX_TABLE, entry["id"], {"is_read": True})
            entry = {**entry, "is_read": True}
            self.messages = [entry if m["id"] == entry["id"] else m for m in self.messages]
        return entry

    # ── Realtime ────────────────────────────────────────────────────────

    async def subscribe(self) -> Optional[Subscription]:
        """Re-fetch the selected folder whenever a row lands for the selected identity."""
        await self.close()
        identity = self.selected_identity
        if identity is None:
            return None
        self._subscription = self.client.subscribe_to_inserts(
            MAILBOX_TABLE,
            f"boongle_identity_id=eq.{identity['id']}",
            self._on_insert,
        )
        return self._subscription

    async def _on_insert(self, change: dict) -> None:
        logger.debug(f"Mailbox insert: {change.get('record', {}).get('id')}")
        await self.refresh()

    async def close(self) -> None:
        """Cancel the subscription."""
        if self._subscription is not None:
            subscription, self._subscription = self._subscription, None
            await self.client.unsubscribe(subscription)
