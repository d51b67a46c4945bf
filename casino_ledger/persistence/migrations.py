"""
Schema Migration System

Manages versioned schema migrations using numbered SQL files
(``001_add_column.sql``, ``002_...``). The base schema is generated from the
record models; migrations cover changes to databases created by older
releases.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class MigrationManager:
    """Tracks applied migrations in ``schema_migrations`` and applies
    pending ``.sql`` files in version order, one transaction each.

    Usage:
        manager = MigrationManager(conn, migrations_dir)
        manager.apply_pending_migrations()
    """

    def __init__(self, conn: Any, migrations_dir: Path):
        self.conn = conn
        self.migrations_dir = Path(migrations_dir)
        self._create_migrations_table()

    def _create_migrations_table(self) -> None:
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_migrations (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP NOT NULL,
                description VARCHAR NOT NULL
            )
        """)

    def get_applied_versions(self) -> set[int]:
        """Return the set of applied migration versions."""
        rows = self.conn.execute(
            "SELECT version FROM schema_migrations ORDER BY version"
        ).fetchall()
        return {row[0] for row in rows}

    def get_pending_migrations(self) -> list[tuple[int, str, str]]:
        """List migrations not yet applied.

        Returns:
            (version, description, sql) tuples sorted by version.
            "003_add_risk_column.sql" yields (3, "add risk column", <sql>).
        """
        if not self.migrations_dir.exists():
            return []

        applied = self.get_applied_versions()
        pending = []

        for migration_file in self.migrations_dir.glob("*.sql"):
            prefix, _, rest = migration_file.stem.partition("_")
            if not prefix.isdigit():
                continue

            version = int(prefix)
            if version in applied:
                continue

            pending.append((version, rest.replace("_", " "), migration_file.read_text()))

        return sorted(pending, key=lambda item: item[0])

    def apply_migration(self, version: int, description: str, sql_content: str) -> None:
        """Apply one migration and record it, atomically.

        Raises:
            RuntimeError: If the migration fails (it is rolled back)
        """
        logger.info("Applying migration %s: %s", version, description)

        self.conn.begin()
        try:
            self.conn.execute(sql_content)
            self.conn.execute(
                """
                INSERT INTO schema_migrations (version, applied_at, description)
                VALUES (?, ?, ?)
                """,
                [version, datetime.now(), description],
            )
            self.conn.commit()
        except Exception as e:
            self.conn.rollback()
            raise RuntimeError(f"Migration {version} failed: {e}") from e

    def apply_pending_migrations(self) -> int:
        """Apply every pending migration in order, stopping at the first failure.

        Returns:
            Number of migrations applied
        """
        pending = self.get_pending_migrations()
        if not pending:
            logger.debug("No pending migrations")
            return 0

        logger.info("Found %d pending migration(s)", len(pending))
        for version, description, sql_content in pending:
            self.apply_migration(version, description, sql_content)

        return len(pending)

    def create_migration_template(self, description: str) -> Path:
        """Write the next numbered migration file and return its path."""
        self.migrations_dir.mkdir(parents=True, exist_ok=True)

        known = set(self.get_applied_versions())
        for path in self.migrations_dir.glob("*.sql"):
            prefix = path.stem.split("_", 1)[0]
            if prefix.isdigit():
                known.add(int(prefix))
        next_version = max(known, default=0) + 1

        slug = description.strip().lower().replace(" ", "_")
        path = self.migrations_dir / f"{next_version:03d}_{slug}.sql"
        path.write_text(
            f"-- Migration {next_version}: {description}\n"
            f"-- Created: {datetime.now().isoformat(timespec='seconds')}\n\n"
        )
        return path
