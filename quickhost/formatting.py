"""Rich formatting helpers for the quickhost CLI."""

from datetime import datetime
from typing import Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console()


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
):
    """Print a formatted table."""
    table = Table(
        title=title,
        box=box.ROUNDED,
        header_style="bold cyan",
        border_style="dim",
    )
    for header in headers:
        table.add_column(header)
    for row in rows:
        table.add_row(*row)
    console.print(table)


def print_status(label: str, value: str, color: str = "green"):
    """Print a status line with colored value."""
    console.print(f"[bold]{label}:[/bold] [{color}]{value}[/{color}]")


def print_error(message: str):
    console.print(f"[red]Error: {message}[/red]")


def format_ts(ts) -> str:
    """Format epoch ms timestamp to readable string."""
    if not ts or not isinstance(ts, (int, float)):
        return "-"
    return datetime.fromtimestamp(ts / 1000).strftime("%Y-%m-%d %H:%M")


STATUS_COLORS = {
    "active": "green",
    "inactive": "dim",
    "archived": "yellow",
}


def colored_status(status: str) -> str:
    """Return a Rich-markup colored status string."""
    color = STATUS_COLORS.get(status, "white")
    return f"[{color}]{status}[/{color}]"


def format_credits(credits: int) -> str:
    return f"[bold yellow]{credits}[/bold yellow] credits"


def public_url(base_url: str, slug: str) -> str:
    return f"{base_url.rstrip('/')}/read/{slug}"


def print_sites(sites: list[dict], base_url: str):
    rows = [
        [
            s.get("id", "?"),
            escape(s.get("site_name", "?")),
            colored_status(s.get("status", "?")),
            public_url(base_url, s.get("public_link_slug", "")),
            format_ts(s.get("created_at")),
        ]
        for s in sites
    ]
    print_table(["ID", "Name", "Status", "Public URL", "Created"], rows, title="Sites")


def print_files(files: list[dict]):
    rows = [
        [f.get("id", "?"), escape(f.get("file_name", "?")), str(len(f.get("content") or ""))]
        for f in files
    ]
    print_table(["ID", "File", "Chars"], rows, title="Files")


def print_mailbox(entries: list[dict], folder: str):
    rows = []
    for entry in entries:
        email = entry.get("email_details") or {}
        peer = email.get("recipient_email_address") if folder == "sent" else email.get("sender_email_address")
        marker = "" if entry.get("is_read") else "[bold blue]●[/bold blue]"
        rows.append(
            [
                marker,
                entry.get("id", "?"),
                peer or "-",
                escape(email.get("subject") or "(no subject)"),
                format_ts(email.get("sent_at")),
            ]
        )
    print_table(["", "ID", "To" if folder == "sent" else "From", "Subject", "Sent"], rows, title=folder.capitalize())


def print_message(entry: dict):
    email = entry.get("email_details") or {}
    print_status("From", email.get("sender_email_address", "-"), "cyan")
    print_status("To", email.get("recipient_email_address", "-"), "cyan")
    print_status("Date", format_ts(email.get("sent_at")), "white")
    print_status("Subject", escape(email.get("subject") or "(no subject)"), "white")
    console.print()
    console.print(escape(email.get("body") or ""))
