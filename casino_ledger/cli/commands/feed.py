"""Read-side commands: feed, leaderboard, stats and bet verification."""

from __future__ import annotations

from typing import Annotated

import typer

from casino_ledger.cli.output import (
    console,
    log_error,
    log_success,
    output_json,
    output_jsonl,
    render_events,
    render_leaderboard,
)
from casino_ledger.cli.runtime import configure_logging, open_service, resolve_config
from casino_ledger.core.errors import CasinoError
from casino_ledger.core.games import Game

ConfigOption = Annotated[
    str | None, typer.Option("--config", "-c", help="YAML configuration file")
]
DbPathOption = Annotated[
    str | None, typer.Option("--db-path", "-d", help="Database file (overrides config)")
]
JsonOption = Annotated[bool, typer.Option("--json", help="Print JSON to stdout")]


def feed(
    limit: Annotated[int, typer.Option("--limit", "-n", help="Number of events")] = 20,
    agent: Annotated[str | None, typer.Option("--agent", "-a", help="Only this agent")] = None,
    event_type: Annotated[
        list[str] | None, typer.Option("--type", "-t", help="Only these event types")
    ] = None,
    follow: Annotated[bool, typer.Option("--follow", "-f", help="Keep printing new events")] = False,
    as_json: JsonOption = False,
    config_path: ConfigOption = None,
    db_path: DbPathOption = None,
) -> None:
    """Print the most recent public events, oldest first.

    With --follow the command keeps polling and prints new events as JSONL
    until interrupted.
    """
    config = resolve_config(config_path, db_path)
    configure_logging(config.logging.level)
    try:
        with open_service(config) as service:
            events = list(reversed(service.list_events(limit=limit, agent=agent, types=event_type)))
            if as_json or follow:
                for event in events:
                    output_jsonl(event.to_feed_dict())
            else:
                console.print(render_events(events))

            if follow:
                since = events[-1].cursor if events else None
                try:
                    for event in service.stream_events(since=since):
                        if agent and event.agent != agent.lower():
                            continue
                        if event_type and event.type not in event_type:
                            continue
                        output_jsonl(event.to_feed_dict())
                except KeyboardInterrupt:
                    pass
    except CasinoError as e:
        log_error(str(e))
        raise typer.Exit(code=1) from e


def leaderboard(
    limit: Annotated[int, typer.Option("--limit", "-n")] = 20,
    as_json: JsonOption = False,
    config_path: ConfigOption = None,
    db_path: DbPathOption = None,
) -> None:
    """Rank agents by casino + bank balance."""
    config = resolve_config(config_path, db_path)
    with open_service(config) as service:
        rows = service.leaderboard(limit)
    if as_json:
        output_json(rows)
    else:
        console.print(render_leaderboard(rows))


def stats(
    as_json: JsonOption = False,
    config_path: ConfigOption = None,
    db_path: DbPathOption = None,
) -> None:
    """Show event totals and the wealthiest agent."""
    config = resolve_config(config_path, db_path)
    with open_service(config) as service:
        data = service.stats()
    if as_json:
        output_json(data)
        return

    console.print("[bold cyan]Casino Statistics[/bold cyan]")
    for key, value in data["totals"].items():
        console.print(f"  {key.replace('_', ' ')}: {value:,}")
    top = data["top_agent"]
    if top:
        console.print(f"  top agent: [cyan]{top['name']}[/cyan] ({top['total_wealth']:,} chips)")


def verify(
    server_seed: Annotated[str, typer.Option("--server-seed", help="Revealed server seed")],
    server_seed_hash: Annotated[str, typer.Option("--hash", help="Hash published with the reveal")],
    client_seed: Annotated[str, typer.Option("--client-seed", help="e.g. agent:<name>")],
    nonce: Annotated[int, typer.Option("--nonce", help="Nonce of the draw")],
    game: Annotated[Game, typer.Option("--game", help="coinflip or dice")],
    committed_hash: Annotated[
        str | None, typer.Option("--commitment", help="Hash from the bet_placed event")
    ] = None,
    as_json: JsonOption = False,
) -> None:
    """Recompute a draw offline and check it against its commitment."""
    # Verification is pure; no database is opened.
    from casino_ledger.core.fairness import FairReveal, verify_reveal

    check = verify_reveal(
        FairReveal(
            server_seed=server_seed,
            server_seed_hash=server_seed_hash,
            nonce=nonce,
            client_seed=client_seed,
        ),
        game.value,
        committed_hash,
    )
    if as_json:
        output_json(
            {
                "valid": check.ok,
                "value": check.value,
                "hash_matches": check.hash_matches,
                "commitment_matches": check.commitment_matches,
            }
        )
    elif check.ok:
        log_success(f"Reveal verified: value {check.value:.12f}")
    else:
        log_error(
            f"Reveal does not verify (hash_matches={check.hash_matches}, "
            f"commitment_matches={check.commitment_matches})"
        )
    if not check.ok:
        raise typer.Exit(code=1)
