"""Run the HTTP API under uvicorn."""

from __future__ import annotations

import os
from typing import Annotated

import typer
import uvicorn

from casino_ledger.api.main import CONFIG_ENV_VAR
from casino_ledger.cli.output import log_info
from casino_ledger.cli.runtime import configure_logging, resolve_config


def serve(
    host: Annotated[str, typer.Option("--host", help="Bind address")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", "-p", help="Bind port")] = 8000,
    config_path: Annotated[
        str | None, typer.Option("--config", "-c", help="YAML configuration file")
    ] = None,
    reload: Annotated[bool, typer.Option("--reload", help="Reload on code changes")] = False,
) -> None:
    """Serve /api/v1 until interrupted.

    The app opens the database in its lifespan and closes it on shutdown.
    """
    config = resolve_config(config_path)
    configure_logging(config.logging.level)
    if config_path:
        os.environ[CONFIG_ENV_VAR] = config_path

    log_info(f"Serving on http://{host}:{port}/api/v1 (database {config.database.path})")
    uvicorn.run(
        "casino_ledger.api.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=config.logging.level.lower(),
    )
