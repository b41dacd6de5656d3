"""Dialect-aware INSERT builders for ON CONFLICT clauses.

PostgreSQL runs in production and SQLite backs the test suite; both
support ``ON CONFLICT ... DO NOTHING / DO UPDATE ... RETURNING``.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession


def insert_for(db: AsyncSession, model: Any) -> Any:  # noqa: ANN401
    """Return an ``Insert`` for ``model`` that supports ``on_conflict_*``."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert(model)
    if dialect == "sqlite":
        return sqlite_insert(model)
    msg = f"Unsupported database dialect: {dialect}"
    raise RuntimeError(msg)
