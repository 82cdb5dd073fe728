"""Hosted site models."""

from sqlalchemy import String, Text, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quickhost_api.models.base import Base, PrefixedIdMixin, TimestampMixin


class Site(Base, PrefixedIdMixin, TimestampMixin):
    """A hosted static site, publicly addressable by its slug."""

    __tablename__ = "hosted_sites"
    __table_args__ = (
        Index("idx_hosted_sites_user", "user_id"),
        Index("idx_hosted_sites_slug", "public_link_slug", unique=True),
    )
    _id_prefix = "site_"

    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    site_name: Mapped[str] = mapped_column(String(256), nullable=False)
    # Immutable once created; the shareable path is /read/{slug}
    public_link_slug: Mapped[str] = mapped_column(String(300), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")

    files: Mapped[list["SiteFile"]] = relationship(
        back_populates="site", cascade="all, delete-orphan"
    )


class SiteFile(Base, PrefixedIdMixin, TimestampMixin):
    """One source file of a site (.html / .css / .js)."""

    __tablename__ = "site_files"
    __table_args__ = (
        UniqueConstraint("site_id", "file_name", name="uq_site_files_name"),
        Index("idx_site_files_site", "site_id"),
    )
    _id_prefix = "file_"

    site_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("hosted_sites.id", ondelete="CASCADE"), nullable=False
    )
    file_name: Mapped[str] = mapped_column(String(256), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    site: Mapped["Site"] = relationship(back_populates="files")
