"""Output formatting utilities for CLI.

Follows the golden rule:
- stdout = machine-readable data (JSON, JSONL)
- stderr = human-readable logs (tables, progress, errors)
"""

import json
from typing import Any

from rich.console import Console
from rich.table import Table

from casino_ledger.core.events import Event
from casino_ledger.core.reasoning import summarize_reasoning

# stderr console for human output (preserves colors when redirected)
console = Console(stderr=True)


def output_json(data: Any, indent: int | None = 2) -> None:
    """Output JSON to stdout (machine-readable).

    Args:
        data: Data to serialize as JSON
        indent: Indentation level (None for compact)
    """
    print(json.dumps(data, indent=indent, default=str), flush=True)


def output_jsonl(data: Any) -> None:
    """Output one JSON object per line to stdout (streaming)."""
    print(json.dumps(data, default=str), flush=True)


def log_info(message: str, quiet: bool = False) -> None:
    if not quiet:
        console.print(f"[blue]ℹ[/blue] {message}")


def log_success(message: str, quiet: bool = False) -> None:
    if not quiet:
        console.print(f"[green]✓[/green] {message}")


def log_error(message: str) -> None:
    """Log error message to stderr (always shown)."""
    console.print(f"[red]✗[/red] {message}", style="bold red")


def _summarize(event: Event) -> str:
    p = event.payload
    if event.type == "bet_resolved":
        verdict = "[green]won[/green]" if p.get("win") else "[red]lost[/red]"
        return f"{p.get('game')} stake {p.get('stake')} {verdict} payout {p.get('payout')} -> {p.get('balance')}"
    if event.type == "bet_placed":
        return f"{p.get('game')} stake {p.get('stake')} nonce {p.get('provably_fair', {}).get('nonce')}"
    if event.type == "tip_sent":
        return f"tipped {p.get('to')} {p.get('amount')}"
    if event.type in ("cashin", "cashout"):
        return f"{p.get('amount')} (casino {p.get('casino_balance')}, bank {p.get('bank_balance')})"
    if event.type == "limit_hit":
        return f"{p.get('kind')} on {p.get('action') or 'bet'}"
    if event.type in ("thought", "chat", "social_signal"):
        return str(p.get("content", ""))
    if event.type == "beg_requested":
        return str(p.get("reason", ""))
    return ", ".join(f"{k}={v}" for k, v in p.items() if not isinstance(v, dict))


def _details(event: Event) -> str:
    details = _summarize(event)
    reasoning = summarize_reasoning(event.payload.get("logic"))
    if reasoning:
        details += f"\n[dim]why: {reasoning['intent']} ({reasoning['confidence_pct']}%)[/dim]"
    return details


def render_events(events: list[Event], title: str = "Feed") -> Table:
    table = Table(title=title)
    table.add_column("Time", style="dim")
    table.add_column("Agent", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Details")
    for event in events:
        table.add_row(event.cursor, event.agent or event.agent_id, event.type, _details(event))
    return table


def render_leaderboard(rows: list[dict[str, Any]]) -> Table:
    table = Table(title="Leaderboard")
    table.add_column("#", justify="right")
    table.add_column("Agent", style="cyan")
    table.add_column("Casino", justify="right")
    table.add_column("Bank", justify="right")
    table.add_column("Total", justify="right", style="bold")
    table.add_column("Status")
    for rank, row in enumerate(rows, start=1):
        status = "[red]paused[/red]" if row["is_paused"] else row["claim_status"]
        table.add_row(
            str(rank),
            row["name"],
            f"{row['casino_balance']:,}",
            f"{row['bank_balance']:,}",
            f"{row['total_wealth']:,}",
            status,
        )
    return table
