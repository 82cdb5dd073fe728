"""Public site access. No authentication required.

  GET /v1/public/sites/{slug}   site metadata and files as JSON
  GET /read/{slug}              composed preview page, sandboxed by CSP
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from quickhost.composer import (
    CSP_HEADER,
    compose_site_document,
    error_document,
    not_found_document,
)
from quickhost_api.database import get_async_session
from quickhost_api.logging_config import get_logger
from quickhost_api.models import Site, SiteFile

logger = get_logger(__name__)

router = APIRouter()
preview_router = APIRouter()

PREVIEW_HEADERS = {
    "Content-Security-Policy": CSP_HEADER,
    "X-Content-Type-Options": "nosniff",
    "Cache-Control": "no-cache",
}


async def _load_site(session: AsyncSession, slug: str) -> tuple[Site | None, list[SiteFile]]:
    result = await session.execute(select(Site).where(Site.public_link_slug == slug))
    site = result.scalar_one_or_none()
    if site is None:
        return None, []
    files = await session.execute(
        select(SiteFile).where(SiteFile.site_id == site.id).order_by(SiteFile.file_name)
    )
    return site, list(files.scalars().all())


@router.get("/sites/{slug}")
async def get_public_site(
    slug: str,
    session: AsyncSession = Depends(get_async_session),
):
    """Site name and file contents for a public slug."""
    site, files = await _load_site(session, slug)
    if site is None:
        raise HTTPException(status_code=404, detail="Site not found")
    return {
        "site": {
            "id": site.id,
            "site_name": site.site_name,
            "public_link_slug": site.public_link_slug,
            "status": site.status,
        },
        "files": [{"file_name": f.file_name, "content": f.content} for f in files],
    }


@preview_router.get("/{slug}", response_class=HTMLResponse)
async def read_site(
    slug: str,
    session: AsyncSession = Depends(get_async_session),
):
    """Serve the composed site. The CSP sandbox keeps its scripts in an opaque origin."""
    try:
        site, files = await _load_site(session, slug)
    except SQLAlchemyError as e:
        logger.error(f"Failed to load site {slug}: {e}")
        return HTMLResponse(
            error_document("Failed to load site data."),
            status_code=500,
            headers=PREVIEW_HEADERS,
        )

    if site is None:
        return HTMLResponse(not_found_document(), status_code=404, headers=PREVIEW_HEADERS)

    document = compose_site_document(
        site.site_name, {f.file_name: f.content for f in files}
    )
    return HTMLResponse(document, headers=PREVIEW_HEADERS)
