"""Database engine setup for SQLite with WAL mode.

The default store lives at {data_root}/.forumkit/forumkit.db. SQLAlchemy
Core (not ORM) is used; repositories hand back pydantic domain models.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from forumkit.infrastructure.database.schema import metadata

DATA_DIRNAME = ".forumkit"
DB_FILENAME = "forumkit.db"


def create_db_engine(db_path: Path) -> Engine:
    """Create a SQLite engine with WAL mode and foreign keys enabled."""
    engine = create_engine(f"sqlite:///{db_path}", echo=False)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def init_database(data_root: Path) -> Engine:
    """Initialize the store at ``{data_root}/.forumkit/forumkit.db``.

    Creates the data directory (with a ``plugins/`` folder for local
    plugins) and all tables. Idempotent: safe to call on an existing store.
    """
    data_dir = data_root / DATA_DIRNAME
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / "plugins").mkdir(exist_ok=True)

    engine = create_db_engine(data_dir / DB_FILENAME)
    metadata.create_all(engine)
    return engine
