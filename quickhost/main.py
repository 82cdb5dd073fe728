"""QuickHost CLI entry point."""

import asyncio
from typing import Optional

import typer
from rich.live import Live

from quickhost import auth
from quickhost.client import QuickHostClient, DEFAULT_BASE_URL
from quickhost.commands import get_url, run_with_session
from quickhost.commands import mail, site
from quickhost.constants import NEW_SITE_COST
from quickhost.errors import QuickHostError
from quickhost.formatting import console, format_credits, print_error, print_status

app = typer.Typer(
    name="quickhost",
    help="QuickHost CLI - static site hosting and Boongle Mail",
    no_args_is_help=True,
)

app.add_typer(site.app, name="site")
app.add_typer(mail.app, name="mail")


@app.callback()
def main(
    ctx: typer.Context,
    url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", envvar="QUICKHOST_URL", help="Server URL"
    ),
):
    """QuickHost CLI"""
    ctx.ensure_object(dict)
    ctx.obj["url"] = url
    ctx.obj["token"] = auth.get_access_token(url)


@app.command()
def status(ctx: typer.Context):
    """Show server status."""

    async def handler(client, session):
        return await client.get_status()

    result = run_with_session(ctx, handler, require_auth=False)
    print_status("Server", result.get("status", "unknown"))
    print_status("Version", result.get("version", "unknown"))
    redis_ok = result.get("redis_connected", False)
    print_status(
        "Redis",
        "connected" if redis_ok else "disconnected",
        "green" if redis_ok else "red",
    )
    db_ok = result.get("database_connected", False)
    print_status(
        "Database",
        "connected" if db_ok else "disconnected",
        "green" if db_ok else "red",
    )


def _authenticate(ctx: typer.Context, email: str, password: str, create: bool) -> None:
    server_url = get_url(ctx)

    async def _call():
        async with QuickHostClient(base_url=server_url) as client:
            if create:
                return await client.sign_up(email, password)
            return await client.sign_in(email, password)

    try:
        result = asyncio.run(_call())
    except QuickHostError as e:
        print_error(f"{'Sign up' if create else 'Login'} failed: {e}")
        raise typer.Exit(1)

    auth.save_session(server_url, result)
    name = (result.get("user") or {}).get("email", "unknown")
    verb = "Signed up" if create else "Logged in"
    console.print(f"[green]{verb} as {name}[/green]")


@app.command()
def signup(
    ctx: typer.Context,
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Email address"),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True
    ),
):
    """Create an account. New accounts start with 0 credits."""
    _authenticate(ctx, email, password, create=True)


@app.command()
def login(
    ctx: typer.Context,
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Email address"),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
):
    """Log in to the QuickHost server."""
    _authenticate(ctx, email, password, create=False)


@app.command()
def logout(ctx: typer.Context):
    """Log out and clear stored credentials."""
    server_url = get_url(ctx)
    if not auth.load_credentials(server_url):
        console.print("[dim]Not logged in.[/dim]")
        return
    auth.clear_credentials(server_url)
    console.print("[green]Logged out.[/green]")


@app.command()
def whoami(ctx: typer.Context):
    """Show the current user and credit balance."""

    async def handler(client, session):
        print_status("User", session.user.get("email", "unknown"))
        print_status("ID", session.user_id)
        console.print(f"[bold]Balance:[/bold] {format_credits(session.credits)}")

    run_with_session(ctx, handler)


@app.command()
def credits(ctx: typer.Context):
    """Show the stored credit balance."""

    async def handler(client, session):
        console.print(format_credits(session.credits))
        if not session.has_sufficient_credits(NEW_SITE_COST):
            console.print(
                f"[dim]Creating a site costs {NEW_SITE_COST}. "
                "Run [bold]quickhost dashboard[/bold] to earn credits.[/dim]"
            )

    run_with_session(ctx, handler)


@app.command()
def dashboard(
    ctx: typer.Context,
    seconds: Optional[float] = typer.Option(
        None, "--seconds", help="Stop after this many seconds"
    ),
):
    """Stay signed in and earn credits (1 every 5 seconds)."""

    async def handler(client, session):
        with Live(format_credits(session.credits), console=console, auto_refresh=False) as live:
            session.on_change = lambda value: live.update(format_credits(value), refresh=True)
            try:
                if seconds is None:
                    await asyncio.Event().wait()
                else:
                    await asyncio.sleep(seconds)
            finally:
                session.on_change = None
                await session.pause()
        console.print(f"Balance: {format_credits(session.credits)}")

    try:
        run_with_session(ctx, handler, auto_tick=True)
    except KeyboardInterrupt:
        console.print("[dim]Stopped[/dim]")


if __name__ == "__main__":
    app()
