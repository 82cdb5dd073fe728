"""Shared plumbing for CLI command groups."""

import asyncio
from typing import Any, Awaitable, Callable

import typer

from quickhost.client import QuickHostClient, DEFAULT_BASE_URL
from quickhost.errors import QuickHostError
from quickhost.formatting import console, print_error
from quickhost.session import Session

Handler = Callable[[QuickHostClient, Session], Awaitable[Any]]


def get_url(ctx: typer.Context) -> str:
    if ctx.obj:
        return ctx.obj.get("url", DEFAULT_BASE_URL)
    return DEFAULT_BASE_URL


def get_token(ctx: typer.Context):
    if ctx.obj:
        return ctx.obj.get("token")
    return None


def run_with_session(
    ctx: typer.Context,
    handler: Handler,
    require_auth: bool = True,
    auto_tick: bool = False,
) -> Any:
    """Run ``handler`` with a connected client and (when logged in) an active session.

    QuickHostError is printed in red and exits with status 1.
    """
    url = get_url(ctx)
    token = get_token(ctx)
    if require_auth and not token:
        console.print("[dim]Not logged in. Run [bold]quickhost login[/bold] first.[/dim]")
        raise typer.Exit(1)

    async def _main():
        async with QuickHostClient(base_url=url, token=token) as client:
            session = Session(client, auto_tick=auto_tick)
            if token:
                await session.resume()
            try:
                return await handler(client, session)
            finally:
                await session.flush()

    try:
        return asyncio.run(_main())
    except QuickHostError as e:
        print_error(str(e))
        raise typer.Exit(1)
