"""User management CLI commands."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table
from sqlmodel import select

from magiclink.database import get_session_context
from magiclink.models import User
from magiclink.services.magic_link import (
    MagicLink,
    MagicLinkData,
    MagicLinkOptions,
    UserNotFoundError,
)
from magiclink.services.store import SQLIdentityStore

console = Console()
app = typer.Typer(help="User management commands")


@app.command("list")
def list_users():
    """List all users."""

    async def _list():
        async with get_session_context() as session:
            stmt = select(User).order_by(User.email)
            result = await session.execute(stmt)
            users = result.scalars().all()

            table = Table(title="Users")
            table.add_column("ID", style="cyan")
            table.add_column("Email", style="green")
            table.add_column("Verified", style="magenta")
            table.add_column("Created", style="dim")

            for user in users:
                verified_str = "[green]Yes[/green]" if user.email_verified else "No"
                created = user.created_at.strftime("%Y-%m-%d") if user.created_at else "-"
                table.add_row(str(user.id), user.email, verified_str, created)

            console.print(table)

    asyncio.run(_list())


@app.command("create")
def create_user(
    email: str = typer.Argument(..., help="User email"),
    name: str | None = typer.Option(None, "--name", "-n", help="Display name"),
):
    """Create a new user."""

    async def _create():
        async with get_session_context() as session:
            store = SQLIdentityStore(session)
            if await store.find_user_by_email(email):
                console.print(f"[red]Error:[/red] User {email} already exists")
                raise typer.Exit(1)

            user = await store.create_user(email=email, name=name or email, email_verified=False)
            if user is None:
                console.print(f"[red]Error:[/red] Could not create {email}")
                raise typer.Exit(1)
            console.print(f"[green]Created user:[/green] {email} ({user.id})")

    asyncio.run(_create())


@app.command("login-url")
def login_url(
    email: str = typer.Argument(..., help="User email"),
    callback_url: str | None = typer.Option(
        None, "--callback-url", "-c", help="Where to land after sign-in"
    ),
):
    """Issue a magic link and print it instead of emailing it."""

    async def _generate():
        issued: list[MagicLinkData] = []
        magic_link = MagicLink(
            MagicLinkOptions.from_settings(lambda data, _context: issued.append(data))
        )

        async with get_session_context() as session:
            try:
                await magic_link.issue(SQLIdentityStore(session), email, callback_url)
            except UserNotFoundError:
                console.print(f"[red]Error:[/red] User {email} not found and sign-up is disabled")
                raise typer.Exit(1) from None

        console.print(f"[green]Login URL:[/green] {issued[0].url}")
        console.print(f"[dim]Expires in {magic_link.expires_in} seconds[/dim]")

    asyncio.run(_generate())
