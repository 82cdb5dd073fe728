"""Hosted site management: creation, files and previews."""

import logging
import re
import secrets
import string
from typing import Optional

from quickhost.client import QuickHostClient
from quickhost.composer import compose_site_document, error_document, not_found_document
from quickhost.constants import (
    ALLOWED_FILE_EXTENSIONS,
    DEFAULT_FILES,
    NEW_SITE_COST,
    RESERVED_FILE_NAMES,
)
from quickhost.errors import BackendError, NotFound, QuickHostError, ValidationError
from quickhost.session import Session

logger = logging.getLogger(__name__)

SITES_TABLE = "hosted_sites"
FILES_TABLE = "site_files"

SLUG_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
SLUG_SUFFIX_LENGTH = 6


def slugify(name: str) -> str:
    """Lowercase, whitespace runs to '-', drop anything outside [a-z0-9-]."""
    slug = re.sub(r"\s+", "-", name.strip().lower())
    return re.sub(r"[^a-z0-9-]", "", slug)


def generate_slug(name: str) -> str:
    suffix = "".join(secrets.choice(SLUG_SUFFIX_ALPHABET) for _ in range(SLUG_SUFFIX_LENGTH))
    return f"{slugify(name)}-{suffix}"


def validate_new_file_name(name: str, existing: list[str]) -> str:
    """Check a new file name and return it stripped."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("File name cannot be empty")
    if not name.lower().endswith(ALLOWED_FILE_EXTENSIONS):
        raise ValidationError("Only .html, .css and .js files are supported")
    if name in existing:
        raise ValidationError(f"A file named {name} already exists")
    return name


class SiteService:
    """Site operations for the signed-in user."""

    def __init__(self, client: QuickHostClient, session: Session):
        self.client = client
        self.session = session

    async def list_sites(self) -> list[dict]:
        """The caller's sites, newest first."""
        user_id = self.session.require_active()
        return await self.client.fetch_by_foreign_key(
            SITES_TABLE, "user_id", user_id, order_by="created_at", descending=True
        )

    async def get_site(self, site_id: str) -> dict:
        return await self.client.fetch_by_id(SITES_TABLE, site_id)

    async def create_site(self, name: str) -> dict:
        """Create a site with the default files and charge NEW_SITE_COST.

        If a default file or the debit fails, the site is deleted again
        (its files go with it) and BackendError is raised.
        """
        self.session.require_active()
        name = (name or "").strip()
        if not name:
            raise ValidationError("Site name cannot be empty")
        if not self.session.has_sufficient_credits(NEW_SITE_COST):
            raise ValidationError(
                f"Insufficient credits: creating a site costs {NEW_SITE_COST}, "
                f"you have {self.session.credits}"
            )

        site = await self.client.insert(
            SITES_TABLE,
            {"site_name": name, "public_link_slug": generate_slug(name), "status": "active"},
        )

        try:
            for file_name, content in DEFAULT_FILES.items():
                await self.client.insert(
                    FILES_TABLE,
                    {"site_id": site["id"], "file_name": file_name, "content": content},
                )
            await self.session.debit(NEW_SITE_COST)
        except QuickHostError as e:
            logger.warning(f"Creating site {site['id']} failed, removing it: {e}")
            await self._discard_site(site["id"])
            raise BackendError(f"Failed to create site: {e}") from e

        logger.info(f"Created site {site['public_link_slug']}")
        return site

    async def _discard_site(self, site_id: str) -> None:
        try:
            await self.client.delete(SITES_TABLE, site_id)
        except QuickHostError as e:
            logger.error(f"Could not remove partially created site {site_id}: {e}")

    async def delete_site(self, site_id: str) -> None:
        """Delete a site and its files. Credits are not refunded."""
        self.session.require_active()
        await self.client.delete(SITES_TABLE, site_id)

    # ── Files ───────────────────────────────────────────────────────────

    async def list_files(self, site_id: str) -> list[dict]:
        return await self.client.fetch_by_foreign_key(
            FILES_TABLE, "site_id", site_id, order_by="file_name"
        )

    async def get_file(self, site_id: str, file_name: str) -> dict:
        files = await self.client.fetch_by_foreign_key(
            FILES_TABLE, "site_id", site_id, file_name=file_name
        )
        if not files:
            raise NotFound(f"File {file_name} not found")
        return files[0]

    async def create_file(self, site_id: str, file_name: str, existing: Optional[list[str]] = None) -> dict:
        """Add an empty .html/.css/.js file to a site."""
        if existing is None:
            existing = [f["file_name"] for f in await self.list_files(site_id)]
        file_name = validate_new_file_name(file_name, existing)
        return await self.client.insert(
            FILES_TABLE,
            {"site_id": site_id, "file_name": file_name, "content": f"// New file: {file_name}"},
        )

    async def save_file(self, file_id: str, content: str) -> None:
        """Overwrite a file's content. Last write wins."""
        await self.client.update(FILES_TABLE, file_id, {"content": content})

    async def delete_file(self, file: dict) -> None:
        if file["file_name"] in RESERVED_FILE_NAMES:
            raise ValidationError(f"{file['file_name']} is a default file and cannot be deleted")
        await self.client.delete(FILES_TABLE, file["id"])

    # ── Preview ─────────────────────────────────────────────────────────

    async def load_preview(self, slug: str) -> str:
        """Composed preview document for a public slug. Never raises."""
        try:
            data = await self.client.fetch_public_site(slug)
        except NotFound:
            return not_found_document()
        except QuickHostError as e:
            logger.warning(f"Failed to load site {slug}: {e}")
            return error_document(str(e) or "Failed to load site data.")

        files = {f["file_name"]: f["content"] for f in data.get("files", [])}
        return compose_site_document(data["site"].get("site_name"), files)
