"""Small idempotent schema upgrades for existing SQLite databases.

``Base.metadata.create_all`` creates missing tables but never touches tables
that already exist, so columns added after a database was first created are
back-filled here. Only additive changes are made.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

# table -> {column: "TYPE [constraints]"}
ADDITIVE_COLUMNS: dict[str, dict[str, str]] = {
    "products": {
        "description": "TEXT",
        "unit": "TEXT NOT NULL DEFAULT 'piece'",
        "is_active": "BOOLEAN NOT NULL DEFAULT 1",
    },
    "purchase_batches": {
        "freight": "TEXT NOT NULL DEFAULT '0'",
        "customs": "TEXT NOT NULL DEFAULT '0'",
        "notes": "TEXT",
    },
    "sales": {
        "delivery_cost": "TEXT NOT NULL DEFAULT '0'",
        "notes": "TEXT",
    },
}

INDEXES: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    ("purchase_batches", "ix_purchase_batches_fifo", ("product_id", "purchase_date", "id")),
    ("sale_batch_allocations", "ix_sale_batch_allocations_batch_id", ("batch_id",)),
)


def _column_names(engine: Engine, table: str) -> set[str]:
    with engine.connect() as conn:
        return {row["name"] for row in conn.execute(text(f"PRAGMA table_info({table})")).mappings()}


def _add_column(engine: Engine, table: str, col_def: str) -> None:
    with engine.begin() as conn:
        conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {col_def}"))


def _create_index_if_not_exists(engine: Engine, table: str, name: str, cols: Iterable[str]) -> None:
    with engine.begin() as conn:
        conn.execute(text(f"CREATE INDEX IF NOT EXISTS {name} ON {table} ({', '.join(cols)})"))


def run_migrations(engine: Engine) -> list[str]:
    """Bring an SQLite schema up to date; returns the columns that were added."""

    if engine.dialect.name != "sqlite":
        return []

    added: list[str] = []
    for table, needed in ADDITIVE_COLUMNS.items():
        existing = _column_names(engine, table)
        if not existing:
            # Table absent: create_all builds it with the full schema.
            continue
        for name, ddl in needed.items():
            if name not in existing:
                _add_column(engine, table, f"{name} {ddl}")
                added.append(f"{table}.{name}")

    for table, name, cols in INDEXES:
        if _column_names(engine, table):
            _create_index_if_not_exists(engine, table, name, cols)

    if added:
        logger.info("schema.migrated", extra={"extra_data": {"added_columns": added}})
    return added
