from __future__ import annotations

# histdb/db.py
import logging
import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator

from .errors import StoreOpenError

logger = logging.getLogger(__name__)

# DB path resolution order:
# 1) explicit path (--db)
# 2) environment variable SDBH_DB
# 3) config.yaml db_path
# 4) fallback: ~/.sdbh.sqlite
DEFAULT_DB_NAME = ".sdbh.sqlite"


def default_db_path() -> str:
    home = os.environ.get("HOME", "")
    return os.path.join(home, DEFAULT_DB_NAME)


def get_db_path(explicit: str | None = None, cfg_db: str | None = None) -> str:
    env_path = os.environ.get("SDBH_DB")

    if explicit:
        path = explicit
    elif env_path:
        path = env_path
    elif cfg_db:
        path = cfg_db
    else:
        path = default_db_path()

    path = os.path.expanduser(path)
    dirn = os.path.dirname(path) or "."
    try:
        os.makedirs(dirn, exist_ok=True)
    except OSError as e:
        raise StoreOpenError(f"cannot create directory for {path}: {e}") from e
    return path


@contextmanager
def get_conn(db_path: str) -> Iterator[sqlite3.Connection]:
    """
    Open a SQLite connection in autocommit mode; writers manage their own
    transactions through transaction().
    row_factory is sqlite3.Row.
    """
    try:
        conn = sqlite3.connect(db_path, isolation_level=None)
    except sqlite3.Error as e:
        raise StoreOpenError(f"opening sqlite db at {db_path}: {e}") from e
    try:
        conn.row_factory = sqlite3.Row
        # forces sqlite to read the header, so a non-database file fails here
        conn.execute("PRAGMA schema_version").fetchone()
    except sqlite3.DatabaseError as e:
        conn.close()
        raise StoreOpenError(f"opening sqlite db at {db_path}: {e}") from e
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """BEGIN ... COMMIT, rolling back and re-raising on any error."""
    conn.execute("BEGIN")
    try:
        yield conn
    except BaseException:
        # sqlite may already have rolled back (e.g. SQLITE_FULL)
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")
