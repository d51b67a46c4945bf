"""
DDL Generation from Pydantic Models

Generates CREATE TABLE and CREATE INDEX statements from the record models in
models.py, so the DuckDB schema cannot drift from the model definitions.

Supported model_config keys:
    table_name:  table to create (required)
    primary_key: list of column names
    unique:      list of column groups, one UNIQUE constraint each
    checks:      list of SQL boolean expressions, one CHECK constraint each
    indexes:     list of (index_name, [columns]) tuples
"""

import inspect
from datetime import datetime
from enum import Enum
from typing import Any, Type, get_args, get_origin

from pydantic import BaseModel

# ============================================================================
# Type Mapping
# ============================================================================

PYTHON_TO_SQL_TYPE_MAP = {
    str: "VARCHAR",
    int: "BIGINT",
    float: "DOUBLE",
    bool: "BOOLEAN",
    datetime: "TIMESTAMP",
}


def python_type_to_sql_type(py_type: Any) -> str:
    """Convert a field annotation to a DuckDB column type.

    Examples:
        >>> python_type_to_sql_type(int)
        'BIGINT'
        >>> python_type_to_sql_type(datetime | None)
        'TIMESTAMP'
    """
    if get_origin(py_type) is not None:
        # Optional[X] / X | None: use the first non-None member
        for arg in get_args(py_type):
            if arg is not type(None):
                py_type = arg
                break

    if inspect.isclass(py_type) and issubclass(py_type, Enum):
        return "VARCHAR"

    return PYTHON_TO_SQL_TYPE_MAP.get(py_type, "VARCHAR")


# ============================================================================
# DDL Generation
# ============================================================================


def _table_config(model: Type[BaseModel]) -> dict[str, Any]:
    config = getattr(model, "model_config", None)
    if config is None or "table_name" not in config:
        raise ValueError(f"Model {model.__name__} missing model_config['table_name']")
    return config


def generate_create_table_ddl(model: Type[BaseModel]) -> str:
    """Generate CREATE TABLE DDL for one record model.

    Raises:
        ValueError: If the model has no table_name configured

    Examples:
        >>> from casino_ledger.persistence.models import BalanceRecord
        >>> "CHECK (amount >= 0)" in generate_create_table_ddl(BalanceRecord)
        True
    """
    config = _table_config(model)
    table_name = config["table_name"]

    lines = []
    for field_name, field_info in model.model_fields.items():
        py_type = field_info.annotation
        sql_type = python_type_to_sql_type(py_type)
        null_constraint = "" if _is_field_optional(py_type, field_info) else " NOT NULL"
        lines.append(f"    {field_name} {sql_type}{null_constraint}")

    primary_key = config.get("primary_key") or []
    if primary_key:
        lines.append(f"    PRIMARY KEY ({', '.join(primary_key)})")

    for columns in config.get("unique") or []:
        lines.append(f"    UNIQUE ({', '.join(columns)})")

    for expression in config.get("checks") or []:
        lines.append(f"    CHECK ({expression})")

    return f"CREATE TABLE IF NOT EXISTS {table_name} (\n" + ",\n".join(lines) + "\n);"


def generate_create_indexes_ddl(model: Type[BaseModel]) -> list[str]:
    """Generate CREATE INDEX statements for one record model."""
    config = getattr(model, "model_config", None) or {}
    indexes = config.get("indexes") or []
    table_name = config.get("table_name", "unknown")

    return [
        f"CREATE INDEX IF NOT EXISTS {index_name} ON {table_name} ({', '.join(columns)});"
        for index_name, columns in indexes
    ]


def generate_full_schema_ddl() -> str:
    """Generate the complete schema: every record table, its indexes, and
    the schema_migrations bookkeeping table.

    Examples:
        >>> ddl = generate_full_schema_ddl()
        >>> "CREATE TABLE IF NOT EXISTS events" in ddl
        True
    """
    from .models import ALL_RECORD_MODELS

    ddl_parts = []
    for model in ALL_RECORD_MODELS:
        ddl_parts.append(generate_create_table_ddl(model))
        ddl_parts.extend(generate_create_indexes_ddl(model))

    ddl_parts.append(
        """CREATE TABLE IF NOT EXISTS schema_migrations (
    version INTEGER PRIMARY KEY,
    applied_at TIMESTAMP NOT NULL,
    description VARCHAR NOT NULL
);"""
    )

    return "\n\n".join(ddl_parts)


# ============================================================================
# Helper Functions
# ============================================================================


def _is_field_optional(py_type: Any, field_info: Any) -> bool:
    """A column is nullable when its annotation admits None or its default is None."""
    if get_origin(py_type) is not None and type(None) in get_args(py_type):
        return True
    return getattr(field_info, "default", ...) is None


# ============================================================================
# Schema Validation
# ============================================================================


def validate_table_schema(conn: Any, model: Type[BaseModel]) -> tuple[bool, list[str]]:
    """Check that a live table has exactly the columns of its record model.

    Returns:
        Tuple of (is_valid, errors). errors is empty when the schema matches.
    """
    try:
        table_name = _table_config(model)["table_name"]
    except ValueError as e:
        return False, [str(e)]

    try:
        rows = conn.execute(f"DESCRIBE {table_name}").fetchall()
    except Exception as e:
        return False, [f"Table {table_name} does not exist: {e}"]

    db_fields = {row[0] for row in rows}
    model_fields = set(model.model_fields.keys())

    errors = [
        f"Column '{col}' missing from table {table_name}"
        for col in sorted(model_fields - db_fields)
    ]
    extra = db_fields - model_fields
    if extra:
        errors.append(f"Unexpected columns in {table_name}: {sorted(extra)}")

    return not errors, errors
