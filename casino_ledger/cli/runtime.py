"""Shared setup for CLI commands: logging and service lifetime."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from rich.logging import RichHandler

from casino_ledger.cli.output import console
from casino_ledger.config import CasinoConfig, load_config
from casino_ledger.service import CasinoService


def configure_logging(level: str = "INFO") -> None:
    """Route stdlib logging through Rich on stderr."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def resolve_config(config_path: str | None, db_path: str | None = None) -> CasinoConfig:
    """Load the YAML config (or defaults) and apply a --db-path override."""
    config = load_config(config_path)
    if db_path is not None:
        config = config.model_copy(
            update={"database": config.database.model_copy(update={"path": db_path})}
        )
    return config


@contextmanager
def open_service(config: CasinoConfig) -> Iterator[CasinoService]:
    service = CasinoService.from_config(config)
    try:
        yield service
    finally:
        service.close()
