"""``magiclink`` command line."""

import typer

from magiclink.cli import db, maintenance, users

app = typer.Typer(name="magiclink", help="Magic link sign-in service")
app.add_typer(db.app, name="db")
app.add_typer(users.app, name="users")
app.add_typer(maintenance.app, name="maintenance")


@app.command()
def version():
    """Print the installed version."""
    from magiclink import __version__

    typer.echo(f"magiclink v{__version__}")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Interface to listen on"),
    port: int = typer.Option(8000, help="Port to listen on"),
    reload: bool = typer.Option(False, help="Restart on code changes"),
):
    """Run the API under uvicorn."""
    import uvicorn

    from magiclink.logging import build_log_config

    uvicorn.run(
        "magiclink.main:app",
        host=host,
        port=port,
        reload=reload,
        log_config=build_log_config(),
    )


@app.command()
def worker():
    """Run the SAQ worker that executes queued and scheduled prune jobs."""
    import asyncio

    from saq import Worker

    from magiclink.logging import setup_logging
    from magiclink.tasks.queue import get_queue_settings

    setup_logging()
    asyncio.run(Worker(**get_queue_settings()).start())


if __name__ == "__main__":
    app()
