"""Authentication and profile models."""

from sqlalchemy import String, Text, Boolean, BigInteger, Integer, Index, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from quickhost_api.models.base import Base, PrefixedIdMixin, TimestampMixin


class User(Base, PrefixedIdMixin, TimestampMixin):
    """Platform user, created via local signup."""

    __tablename__ = "users"
    __table_args__ = (Index("idx_users_email", "email", unique=True),)
    _id_prefix = "usr_"

    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Profile(Base):
    """Per-user profile carrying the credit balance.

    Shares its primary key with the owning user and is created at signup.
    """

    __tablename__ = "profiles"
    __table_args__ = (CheckConstraint("credits >= 0", name="ck_profiles_credits"),)

    id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
