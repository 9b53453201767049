"""Maintenance CLI commands."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from magiclink.tasks.queue import queue
from magiclink.tasks.maintenance import MAINTENANCE_TIMEOUT_SECONDS

console = Console()
app = typer.Typer(help="Maintenance and cleanup commands")


@app.command("prune")
def prune(
    background: bool = typer.Option(False, "--background", "-b", help="Run in background worker"),
):
    """Delete expired magic link tokens and sessions."""

    async def _prune():
        if background:
            job = await queue.enqueue(
                "prune_expired_auth_records",
                timeout=MAINTENANCE_TIMEOUT_SECONDS,
            )
            console.print(f"[green]Queued prune job:[/green] {job.id if job else 'unknown'}")
            return

        from magiclink.tasks.maintenance import prune_expired_auth_records

        console.print("[cyan]Pruning expired auth records...[/cyan]")
        result = await prune_expired_auth_records(ctx={})

        table = Table(title="Prune Results")
        table.add_column("Record", style="cyan")
        table.add_column("Deleted", justify="right")
        table.add_row("Verifications", str(result["verifications_deleted"]))
        table.add_row("Sessions", str(result["sessions_deleted"]))
        console.print(table)

    asyncio.run(_prune())
