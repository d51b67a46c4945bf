"""
DuckDB Connection Manager

Manages the database connection, schema initialization, validation and
migrations. One DatabaseManager is opened at process start and closed at
shutdown; components receive it (or the LedgerDatabase built on top of it)
explicitly instead of importing a module-level handle.
"""

import logging
from pathlib import Path

import duckdb

from .migrations import MigrationManager
from .models import ALL_RECORD_MODELS
from .schema_generator import generate_full_schema_ddl, validate_table_schema

logger = logging.getLogger(__name__)

DEFAULT_MIGRATIONS_DIR = Path(__file__).parent / "migrations"


class DatabaseManager:
    """Manages the DuckDB connection and schema.

    Usage:
        with DatabaseManager("casino.db") as manager:
            manager.setup()
            ledger = LedgerDatabase(manager)

    ``":memory:"`` opens a private in-memory database, which is what the
    test-suite uses.
    """

    def __init__(
        self, db_path: str | Path = "casino.db", migrations_dir: Path | None = None
    ):
        """Open the connection.

        Args:
            db_path: Path to DuckDB database file, or ":memory:"
            migrations_dir: Directory of numbered .sql migrations
        """
        self.db_path = db_path if str(db_path) == ":memory:" else Path(db_path)
        self.migrations_dir = Path(migrations_dir) if migrations_dir else DEFAULT_MIGRATIONS_DIR
        self.conn = duckdb.connect(str(self.db_path))
        self._closed = False

    def cursor(self) -> duckdb.DuckDBPyConnection:
        """Open an independent connection handle to the same database.

        DuckDB connections are not safe to share between threads; each unit
        of work takes its own cursor.
        """
        return self.conn.cursor()

    def initialize_schema(self, force_recreate: bool = False) -> None:
        """Create every table and index that does not exist yet.

        Args:
            force_recreate: Drop the managed tables first
        """
        if force_recreate:
            logger.warning("Dropping existing tables before re-creating schema")
            self._drop_all_tables()

        ddl = generate_full_schema_ddl()
        # DuckDB has no executescript; run statements one at a time
        for statement in (s.strip() for s in ddl.split(";")):
            if statement:
                self.conn.execute(statement)

        logger.info("Schema initialized at %s", self.db_path)

    def is_initialized(self) -> bool:
        """True when the core tables exist."""
        try:
            self.conn.execute("SELECT 1 FROM agents LIMIT 1")
            return True
        except duckdb.Error:
            return False

    def validate_schema(self) -> tuple[bool, dict[str, list[str]]]:
        """Validate every table against its record model.

        Returns:
            (all_valid, errors keyed by table name; empty lists when valid)
        """
        results: dict[str, list[str]] = {}
        for model in ALL_RECORD_MODELS:
            table_name = model.model_config["table_name"]
            is_valid, errors = validate_table_schema(self.conn, model)
            results[table_name] = errors
            if not is_valid:
                for error in errors:
                    logger.error("Schema mismatch: %s", error)

        return all(not errors for errors in results.values()), results

    def apply_migrations(self) -> int:
        """Apply pending migrations from migrations_dir."""
        return MigrationManager(self.conn, self.migrations_dir).apply_pending_migrations()

    def setup(self) -> None:
        """Initialize, migrate and validate.

        Raises:
            RuntimeError: If the schema does not match the record models
        """
        self.initialize_schema()
        self.apply_migrations()

        is_valid, _ = self.validate_schema()
        if not is_valid:
            raise RuntimeError(
                "Database schema validation failed. "
                "The database is out of sync with the record models. "
                "Create a migration file to fix the schema, or delete the database and reinitialize."
            )

        logger.info("Database setup complete")

    def _drop_all_tables(self) -> None:
        for model in reversed(ALL_RECORD_MODELS):
            self.conn.execute(f"DROP TABLE IF EXISTS {model.model_config['table_name']}")
        self.conn.execute("DROP TABLE IF EXISTS schema_migrations")

    def close(self) -> None:
        if not self._closed:
            self.conn.close()
            self._closed = True

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
