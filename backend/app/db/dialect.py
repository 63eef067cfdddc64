"""
Dialect-aware INSERT ... ON CONFLICT support.

PostgreSQL and SQLite both implement `on_conflict_do_nothing` and
`on_conflict_do_update`, but SQLAlchemy exposes them through dialect-specific
`insert()` constructs.
"""

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def upsert_insert(db: AsyncSession, model):
    dialect = db.get_bind().dialect.name
    try:
        return _INSERTS[dialect](model)
    except KeyError:
        raise RuntimeError(f"Upserts are not supported on the {dialect!r} dialect") from None
