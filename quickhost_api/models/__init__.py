"""SQLAlchemy ORM models for QuickHost and Boongle Mail."""

from quickhost_api.models.base import (
    Base,
    TimestampMixin,
    PrefixedIdMixin,
    generate_prefixed_id,
    now_ms,
)
from quickhost_api.models.auth import User, Profile
from quickhost_api.models.site import Site, SiteFile
from quickhost_api.models.mail import MailIdentity, Email, MailboxEntry

__all__ = [
    "Base",
    "TimestampMixin",
    "PrefixedIdMixin",
    "generate_prefixed_id",
    "now_ms",
    "User",
    "Profile",
    "Site",
    "SiteFile",
    "MailIdentity",
    "Email",
    "MailboxEntry",
]
