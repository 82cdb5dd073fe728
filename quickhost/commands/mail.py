"""Boongle Mail commands."""

import asyncio
from typing import Optional

import typer

from quickhost.commands import run_with_session
from quickhost.constants import MAILBOX_FOLDERS
from quickhost.formatting import console, print_mailbox, print_message, print_table
from quickhost.mail import MailboxView, MAILBOX_TABLE

app = typer.Typer(help="Boongle Mail")

AS_OPTION_HELP = "Identity address to act as (defaults to your primary address)"


async def _open_view(client, session, address: Optional[str]) -> MailboxView:
    view = MailboxView(client, session)
    await view.load_identities()
    if address:
        view.select_address(address.strip().lower())
    return view


@app.command("identities")
def list_identities(ctx: typer.Context):
    """List your Boongle Mail addresses."""

    async def handler(client, session):
        view = MailboxView(client, session)
        identities = await view.load_identities()
        if not identities:
            console.print("[yellow]No addresses yet. Add one with [bold]quickhost mail add[/bold][/yellow]")
            return
        rows = [
            [
                "primary" if i == 0 else "",
                identity["email_address"],
                identity.get("display_name") or "-",
            ]
            for i, identity in enumerate(identities)
        ]
        print_table(["", "Address", "Display name"], rows, title="Identities")

    run_with_session(ctx, handler)


@app.command("add")
def add_identity(
    ctx: typer.Context,
    localpart: str = typer.Argument(..., help="Local part of the new address"),
    display_name: Optional[str] = typer.Option(None, "--name", "-n", help="Display name"),
):
    """Create a new localpart@boongle.com address (max 3)."""

    async def handler(client, session):
        view = MailboxView(client, session)
        await view.load_identities()
        identity = await view.add_identity(localpart, display_name)
        console.print(f"[green]Created {identity['email_address']}[/green]")

    run_with_session(ctx, handler)


@app.command("list")
def list_messages(
    ctx: typer.Context,
    folder: str = typer.Option("inbox", "--folder", "-f", help=f"One of: {', '.join(MAILBOX_FOLDERS)}"),
    address: Optional[str] = typer.Option(None, "--as", help=AS_OPTION_HELP),
):
    """List messages in a folder, newest first."""

    async def handler(client, session):
        view = await _open_view(client, session, address)
        messages = await view.select_folder(folder)
        if not messages:
            console.print(f"[yellow]{folder.capitalize()} is empty[/yellow]")
            return
        print_mailbox(messages, folder)

    run_with_session(ctx, handler)


@app.command("send")
def send(
    ctx: typer.Context,
    to: str = typer.Argument(..., help="Recipient (…@boongle.com)"),
    subject: str = typer.Option("", "--subject", "-s", help="Subject"),
    body: Optional[str] = typer.Option(None, "--body", "-b", help="Message body"),
    address: Optional[str] = typer.Option(None, "--as", help=AS_OPTION_HELP),
):
    """Send a message to another Boongle Mail address."""
    if body is None:
        body = typer.prompt("Body")

    async def handler(client, session):
        view = await _open_view(client, session, address)
        await view.send(to, subject, body)
        console.print(f"[green]Sent to {to.strip().lower()}[/green]")

    run_with_session(ctx, handler)


@app.command("read")
def read_message(
    ctx: typer.Context,
    entry_id: str = typer.Argument(..., help="Mailbox entry ID"),
):
    """Show a message and mark it read."""

    async def handler(client, session):
        view = MailboxView(client, session)
        entry = await client.fetch_by_id(MAILBOX_TABLE, entry_id)
        entry = await view.open(entry)
        print_message(entry)

    run_with_session(ctx, handler)


@app.command("watch")
def watch(
    ctx: typer.Context,
    folder: str = typer.Option("inbox", "--folder", "-f", help="Folder to watch"),
    address: Optional[str] = typer.Option(None, "--as", help=AS_OPTION_HELP),
    seconds: Optional[float] = typer.Option(None, "--seconds", help="Stop after this many seconds"),
):
    """Print the folder and reprint it whenever new mail arrives."""

    async def handler(client, session):
        view = await _open_view(client, session, address)
        view.on_update = lambda messages: print_mailbox(messages, view.folder)
        await view.select_folder(folder)
        await view.subscribe()
        console.print("[dim]Watching for new mail. Ctrl-C to stop.[/dim]")
        try:
            if seconds is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(seconds)
        finally:
            await view.close()

    try:
        run_with_session(ctx, handler)
    except KeyboardInterrupt:
        console.print("[dim]Stopped[/dim]")
