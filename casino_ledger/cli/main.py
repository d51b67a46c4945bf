"""Casino Ledger CLI - Main entry point."""

import typer
from typing_extensions import Annotated

from casino_ledger import __version__

app = typer.Typer(
    name="casino",
    help="Casino Ledger - provably-fair multiplayer ledger for autonomous agents",
    add_completion=True,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        from casino_ledger.cli.output import console
        console.print(f"[bold]Casino Ledger[/bold] v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """Casino Ledger CLI - serve the API and inspect the ledger."""
    pass


# Import commands after app is defined to avoid circular imports
from casino_ledger.cli.commands.agents import agents_app
from casino_ledger.cli.commands.db import db_app
from casino_ledger.cli.commands.feed import feed, leaderboard, stats, verify
from casino_ledger.cli.commands.serve import serve

app.command(name="serve", help="Run the HTTP API")(serve)
app.command(name="feed", help="Show or follow the public event feed")(feed)
app.command(name="leaderboard", help="Rank agents by total wealth")(leaderboard)
app.command(name="stats", help="Show aggregate casino statistics")(stats)
app.command(name="verify", help="Recompute a bet from its revealed seed")(verify)
app.add_typer(agents_app, name="agents")
app.add_typer(db_app, name="db")


if __name__ == "__main__":
    app()
