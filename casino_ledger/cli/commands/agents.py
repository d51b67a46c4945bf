"""Operator commands for agents: registration and the pause flag."""

from __future__ import annotations

from typing import Annotated

import typer

from casino_ledger.cli.output import console, log_error, log_success, output_json
from casino_ledger.cli.runtime import configure_logging, open_service, resolve_config
from casino_ledger.core.errors import CasinoError

agents_app = typer.Typer(help="Agent administration commands")

ConfigOption = Annotated[
    str | None, typer.Option("--config", "-c", help="YAML configuration file")
]
DbPathOption = Annotated[
    str | None, typer.Option("--db-path", "-d", help="Database file (overrides config)")
]


@agents_app.command("register")
def register(
    name: Annotated[str, typer.Argument(help="Agent name")],
    description: Annotated[str | None, typer.Option("--description")] = None,
    config_path: ConfigOption = None,
    db_path: DbPathOption = None,
) -> None:
    """Register an agent and print its credentials as JSON (shown once)."""
    config = resolve_config(config_path, db_path)
    configure_logging(config.logging.level)
    try:
        with open_service(config) as service:
            registration = service.register_agent(name, description)
    except CasinoError as e:
        log_error(f"{e.code}: {e}")
        raise typer.Exit(code=1) from e
    output_json(registration.to_dict())


def _set_paused(name: str, paused: bool, reason: str | None, config_path: str | None, db_path: str | None) -> None:
    config = resolve_config(config_path, db_path)
    configure_logging(config.logging.level)
    try:
        with open_service(config) as service:
            agent = service.set_paused(name, paused, reason)
    except CasinoError as e:
        log_error(f"{e.code}: {e}")
        raise typer.Exit(code=1) from e
    log_success(f"{agent.name} {'paused' if paused else 'resumed'}")


@agents_app.command("pause")
def pause(
    name: Annotated[str, typer.Argument(help="Agent name")],
    reason: Annotated[str | None, typer.Option("--reason", "-r")] = None,
    config_path: ConfigOption = None,
    db_path: DbPathOption = None,
) -> None:
    """Stop an agent from betting."""
    _set_paused(name, True, reason, config_path, db_path)


@agents_app.command("resume")
def resume(
    name: Annotated[str, typer.Argument(help="Agent name")],
    config_path: ConfigOption = None,
    db_path: DbPathOption = None,
) -> None:
    """Allow a paused agent to bet again."""
    _set_paused(name, False, None, config_path, db_path)


@agents_app.command("show")
def show(
    name: Annotated[str, typer.Argument(help="Agent name")],
    as_json: Annotated[bool, typer.Option("--json")] = False,
    config_path: ConfigOption = None,
    db_path: DbPathOption = None,
) -> None:
    """Show an agent's balances, config and fair commitment."""
    config = resolve_config(config_path, db_path)
    try:
        with open_service(config) as service:
            state = service.get_state(service.find_agent(name))
    except CasinoError as e:
        log_error(f"{e.code}: {e}")
        raise typer.Exit(code=1) from e

    if as_json:
        output_json(state)
        return
    agent = state["agent"]
    console.print(f"[bold cyan]{agent['name']}[/bold cyan] ({agent['claim_status']})")
    if agent["is_paused"]:
        console.print(f"  [red]paused[/red]: {agent['paused_reason'] or '-'}")
    console.print(f"  casino: {state['balance']:,}  bank: {state['bank_balance']:,}  net: {state['net_worth']:,}")
    cfg = state["config"]
    console.print(
        f"  risk: {cfg['risk_profile']}  max_bet: {cfg['max_bet']}  "
        f"stop_loss: {cfg['stop_loss']}  take_profit: {cfg['take_profit']}  anchor: {cfg['anchor_balance']}"
    )
    fair = state["provably_fair"]
    console.print(f"  commitment: {fair['server_seed_hash']} (nonce {fair['nonce']})")


@agents_app.command("profile")
def profile(
    name: Annotated[str, typer.Argument(help="Agent name")],
    recent: Annotated[int, typer.Option("--recent", "-n", help="Recent events to include")] = 10,
    config_path: ConfigOption = None,
    db_path: DbPathOption = None,
) -> None:
    """Print an agent's public profile and betting stats as JSON."""
    config = resolve_config(config_path, db_path)
    try:
        with open_service(config) as service:
            data = service.public_profile(name, recent=recent)
    except CasinoError as e:
        log_error(f"{e.code}: {e}")
        raise typer.Exit(code=1) from e
    output_json(data)
