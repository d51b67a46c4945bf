"""
Database Management CLI Commands

Commands for managing the DuckDB ledger file:
- init: Initialize database schema
- migrate: Apply pending migrations
- validate: Validate schema against Pydantic models
- create-migration: Create new migration template
- info: Show table row counts
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from casino_ledger.cli.output import console
from casino_ledger.persistence.connection import DatabaseManager
from casino_ledger.persistence.migrations import MigrationManager
from casino_ledger.persistence.models import ALL_RECORD_MODELS

db_app = typer.Typer(help="Database management commands")

DbPathOption = Annotated[str, typer.Option("--db-path", "-d", help="Path to database file")]
MigrationsDirOption = Annotated[
    str | None, typer.Option("--migrations-dir", "-m", help="Path to migrations directory")
]


@db_app.command("init")
def db_init(
    db_path: DbPathOption = "casino.db",
    force: Annotated[bool, typer.Option("--force", help="Drop and recreate all tables")] = False,
) -> None:
    """Initialize database schema from Pydantic models."""
    try:
        console.print(f"[yellow]Initializing database at {db_path}...[/yellow]")
        with DatabaseManager(db_path) as manager:
            manager.initialize_schema(force_recreate=force)
        console.print(f"[green]✓ Database initialized at {db_path}[/green]")
    except Exception as e:
        console.print(f"[red]✗ Error initializing database: {e}[/red]")
        raise typer.Exit(code=1) from e


@db_app.command("migrate")
def db_migrate(
    db_path: DbPathOption = "casino.db",
    migrations_dir: MigrationsDirOption = None,
) -> None:
    """Apply pending schema migrations."""
    try:
        console.print("[yellow]Checking for pending migrations...[/yellow]")
        with DatabaseManager(db_path, migrations_dir=Path(migrations_dir) if migrations_dir else None) as manager:
            migration_manager = MigrationManager(manager.conn, manager.migrations_dir)
            pending = migration_manager.get_pending_migrations()

            if not pending:
                console.print("[green]✓ No pending migrations[/green]")
                return

            console.print(f"[yellow]Found {len(pending)} pending migration(s)[/yellow]")
            for version, description, _sql in pending:
                console.print(f"  • Migration {version}: {description}")

            applied = migration_manager.apply_pending_migrations()
        console.print(f"[green]✓ Applied {applied} migration(s)[/green]")
    except Exception as e:
        console.print(f"[red]✗ Error applying migrations: {e}[/red]")
        raise typer.Exit(code=1) from e


@db_app.command("validate")
def db_validate(db_path: DbPathOption = "casino.db") -> None:
    """Validate database schema against Pydantic models."""
    console.print("[yellow]Validating database schema...[/yellow]")
    try:
        with DatabaseManager(db_path) as manager:
            is_valid, errors = manager.validate_schema()
    except Exception as e:
        console.print(f"[red]✗ Error validating schema: {e}[/red]")
        raise typer.Exit(code=1) from e

    if is_valid:
        console.print("[green]✓ Schema validation passed[/green]")
        return

    console.print("[red]✗ Schema validation failed[/red]")
    for table, table_errors in errors.items():
        for error in table_errors:
            console.print(f"  • {table}: {error}")
    console.print("[yellow]Run 'casino db migrate' to fix schema[/yellow]")
    raise typer.Exit(code=1)


@db_app.command("create-migration")
def db_create_migration(
    description: Annotated[
        str,
        typer.Argument(help="Migration description (e.g., 'add_agent_avatar')"),
    ],
    migrations_dir: MigrationsDirOption = None,
    db_path: DbPathOption = "casino.db",
) -> None:
    """Create a new migration template file."""
    try:
        with DatabaseManager(db_path, migrations_dir=Path(migrations_dir) if migrations_dir else None) as manager:
            filepath = MigrationManager(manager.conn, manager.migrations_dir).create_migration_template(
                description
            )
        console.print(f"[green]✓ Created migration template: {filepath}[/green]")
        console.print("[yellow]Next steps:[/yellow]")
        console.print(f"  1. Edit {filepath}")
        console.print("  2. Add your SQL statements")
        console.print("  3. Run 'casino db migrate'")
    except Exception as e:
        console.print(f"[red]✗ Error creating migration: {e}[/red]")
        raise typer.Exit(code=1) from e


@db_app.command("info")
def db_info(db_path: DbPathOption = "casino.db") -> None:
    """Show database information and row counts."""
    try:
        with DatabaseManager(db_path) as manager:
            console.print("[bold cyan]Database Information[/bold cyan]")
            console.print(f"  Path: {db_path}")
            if Path(db_path).exists():
                size_mb = Path(db_path).stat().st_size / (1024 * 1024)
                console.print(f"  Size: {size_mb:.2f} MB")

            table = Table()
            table.add_column("Table", style="cyan")
            table.add_column("Row Count", justify="right", style="magenta")

            existing = {
                row[0]
                for row in manager.conn.execute(
                    "SELECT table_name FROM information_schema.tables WHERE table_schema = 'main'"
                ).fetchall()
            }
            for model in ALL_RECORD_MODELS:
                table_name = model.model_config["table_name"]  # type: ignore[typeddict-item]
                if table_name not in existing:
                    table.add_row(table_name, "[dim]N/A[/dim]")
                    continue
                (count,) = manager.conn.execute(f"SELECT COUNT(*) FROM {table_name}").fetchone()
                table.add_row(table_name, f"{count:,}")
            console.print(table)
    except Exception as e:
        console.print(f"[red]✗ Error reading database: {e}[/red]")
        raise typer.Exit(code=1) from e
