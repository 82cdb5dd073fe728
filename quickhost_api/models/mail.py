"""Boongle Mail models: identities, immutable emails, per-identity mailbox rows."""

from typing import Optional

from sqlalchemy import String, Text, Boolean, BigInteger, Integer, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quickhost_api.models.base import Base, PrefixedIdMixin


class MailIdentity(Base, PrefixedIdMixin):
    """A localpart@boongle.com address held by a user."""

    __tablename__ = "boongle_mail_identities"
    __table_args__ = (
        Index("idx_mail_identities_address", "email_address", unique=True),
        # At most MAX_MAIL_IDENTITIES slots per user, each taken once
        UniqueConstraint("user_id", "slot", name="uq_mail_identities_slot"),
    )
    _id_prefix = "mid_"

    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    email_address: Mapped[str] = mapped_column(String(320), nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    slot: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


class Email(Base, PrefixedIdMixin):
    """A sent message. Never mutated after insert."""

    __tablename__ = "emails"
    _id_prefix = "eml_"

    sender_email_address: Mapped[str] = mapped_column(String(320), nullable=False)
    recipient_email_address: Mapped[str] = mapped_column(String(320), nullable=False)
    subject: Mapped[str] = mapped_column(Text, nullable=False, default="")
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    sent_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


class MailboxEntry(Base, PrefixedIdMixin):
    """Associates one Email with one identity and folder, carrying read state."""

    __tablename__ = "email_user_mailbox"
    __table_args__ = (
        Index("idx_mailbox_identity_folder", "boongle_identity_id", "folder"),
    )
    _id_prefix = "mbx_"

    email_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("emails.id", ondelete="CASCADE"), nullable=False
    )
    boongle_identity_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("boongle_mail_identities.id", ondelete="CASCADE"),
        nullable=False,
    )
    # inbox | sent | trash | archive
    folder: Mapped[str] = mapped_column(String(16), nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    associated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    email: Mapped["Email"] = relationship(lazy="joined")
