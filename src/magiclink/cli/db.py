"""Schema commands. Migrations run through Alembic in a subprocess."""

import asyncio
import subprocess
import sys

import typer
from rich.console import Console

console = Console()
app = typer.Typer(help="Database schema commands")


def alembic(*args: str) -> bool:
    """Run ``alembic`` with this interpreter; True on success."""
    return subprocess.run([sys.executable, "-m", "alembic", *args], check=False).returncode == 0


def _step(action: str, revision: str, label: str) -> None:
    console.print(f"[dim]{label} to {revision}...[/dim]")
    if not alembic(action, revision):
        console.print(f"[red]{label} failed[/red]")
        raise typer.Exit(1)
    console.print(f"[green]{label} done[/green]")


@app.command("migrate")
def migrate(revision: str = typer.Argument("head", help="Revision to upgrade to")):
    """Apply migrations."""
    _step("upgrade", revision, "Migrating")


@app.command("rollback")
def rollback(revision: str = typer.Argument("-1", help="Revision to downgrade to")):
    """Revert migrations, one step by default."""
    _step("downgrade", revision, "Rolling back")


@app.command("current")
def current():
    """Print the database's revision."""
    alembic("current")


@app.command("create-tables")
def create_tables():
    """Create tables straight from the models. Local development only."""
    from magiclink import database

    async def _create():
        try:
            await database.create_tables()
        finally:
            await database.close_db()

    asyncio.run(_create())
    console.print("[green]Tables created[/green]")
