"""Hosted site commands."""

from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape

from quickhost.commands import get_url, run_with_session
from quickhost.composer import embed_document
from quickhost.constants import NEW_SITE_COST
from quickhost.formatting import (
    console,
    format_credits,
    print_files,
    print_sites,
    public_url,
)
from quickhost.sites import SiteService

app = typer.Typer(help="Hosted site management")


@app.command("list")
def list_sites(ctx: typer.Context):
    """List your sites, newest first."""

    async def handler(client, session):
        sites = await SiteService(client, session).list_sites()
        if not sites:
            console.print("[yellow]No sites yet. Create one with [bold]quickhost site create[/bold][/yellow]")
            return
        print_sites(sites, get_url(ctx))

    run_with_session(ctx, handler)


@app.command("create")
def create_site(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Site name"),
):
    """Create a site with the default files (costs 5 credits)."""

    async def handler(client, session):
        site = await SiteService(client, session).create_site(name)
        console.print(f"[green]Created site {escape(site['site_name'])}[/green]")
        console.print(f"Public URL: {public_url(get_url(ctx), site['public_link_slug'])}")
        console.print(f"Balance: {format_credits(session.credits)} (-{NEW_SITE_COST})")

    run_with_session(ctx, handler)


@app.command("delete")
def delete_site(
    ctx: typer.Context,
    site_id: str = typer.Argument(..., help="Site ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete a site and all of its files. Credits are not refunded."""
    if not yes:
        typer.confirm(f"Delete site {site_id} and all its files?", abort=True)

    async def handler(client, session):
        await SiteService(client, session).delete_site(site_id)
        console.print(f"[green]Deleted site {site_id}[/green]")

    run_with_session(ctx, handler)


@app.command("files")
def list_files(
    ctx: typer.Context,
    site_id: str = typer.Argument(..., help="Site ID"),
):
    """List a site's files."""

    async def handler(client, session):
        files = await SiteService(client, session).list_files(site_id)
        if not files:
            console.print("[yellow]No files[/yellow]")
            return
        print_files(files)

    run_with_session(ctx, handler)


@app.command("add-file")
def add_file(
    ctx: typer.Context,
    site_id: str = typer.Argument(..., help="Site ID"),
    file_name: str = typer.Argument(..., help="New file name (.html, .css or .js)"),
):
    """Add a new file to a site."""

    async def handler(client, session):
        created = await SiteService(client, session).create_file(site_id, file_name)
        console.print(f"[green]Created {created['file_name']}[/green]")

    run_with_session(ctx, handler)


@app.command("cat")
def show_file(
    ctx: typer.Context,
    site_id: str = typer.Argument(..., help="Site ID"),
    file_name: str = typer.Argument(..., help="File name"),
):
    """Print a file's content."""

    async def handler(client, session):
        file = await SiteService(client, session).get_file(site_id, file_name)
        console.print(file["content"], markup=False, highlight=False, soft_wrap=True)

    run_with_session(ctx, handler)


@app.command("save")
def save_file(
    ctx: typer.Context,
    site_id: str = typer.Argument(..., help="Site ID"),
    file_name: str = typer.Argument(..., help="File name"),
    source: Path = typer.Option(..., "--from", "-f", exists=True, dir_okay=False, help="Local file to upload"),
):
    """Overwrite a site file with the content of a local file."""
    content = source.read_text(encoding="utf-8")

    async def handler(client, session):
        service = SiteService(client, session)
        file = await service.get_file(site_id, file_name)
        await service.save_file(file["id"], content)
        console.print(f"[green]Saved {file_name} ({len(content)} chars)[/green]")

    run_with_session(ctx, handler)


@app.command("rm-file")
def delete_file(
    ctx: typer.Context,
    site_id: str = typer.Argument(..., help="Site ID"),
    file_name: str = typer.Argument(..., help="File name"),
):
    """Delete a file. The default files cannot be deleted."""

    async def handler(client, session):
        service = SiteService(client, session)
        file = await service.get_file(site_id, file_name)
        await service.delete_file(file)
        console.print(f"[green]Deleted {file_name}[/green]")

    run_with_session(ctx, handler)


@app.command("preview")
def preview(
    ctx: typer.Context,
    slug: str = typer.Argument(..., help="Public link slug"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write a sandboxed HTML page here"),
):
    """Compose a site's preview. Without --output the document is printed."""

    async def handler(client, session):
        document = await SiteService(client, session).load_preview(slug)
        if output is None:
            console.print(document, markup=False, highlight=False, soft_wrap=True)
            return
        output.write_text(embed_document(document, slug), encoding="utf-8")
        console.print(f"[green]Wrote preview to {output}[/green]")

    run_with_session(ctx, handler, require_auth=False)
