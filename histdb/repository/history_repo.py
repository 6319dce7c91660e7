from __future__ import annotations

from sqlite3 import Connection

from ..db import transaction
from ..domain.history import HistoryRow, row_hash

SCHEMA_VERSION = "1"

DDL = """
CREATE TABLE IF NOT EXISTS history (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  hist_id INTEGER,
  cmd TEXT,
  epoch INTEGER,
  ppid INTEGER,
  pwd TEXT,
  salt INTEGER
);

CREATE TABLE IF NOT EXISTS meta (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS history_hash (
  hash TEXT PRIMARY KEY,
  history_id INTEGER
);
"""

INDEX_DDL = """
CREATE INDEX IF NOT EXISTS idx_history_epoch ON history(epoch);
CREATE INDEX IF NOT EXISTS idx_history_session ON history(salt, ppid);
CREATE INDEX IF NOT EXISTS idx_history_pwd ON history(pwd);
CREATE INDEX IF NOT EXISTS idx_history_hash ON history_hash(hash);
"""


def ensure_schema(conn: Connection) -> None:
    # executescript issues its own COMMIT first; safe in autocommit mode
    conn.executescript(DDL)
    conn.execute(
        "INSERT OR IGNORE INTO meta(key, value) VALUES('schema_version', ?)",
        (SCHEMA_VERSION,),
    )


def ensure_indexes(conn: Connection) -> None:
    conn.executescript(INDEX_DDL)


def get_meta(conn: Connection, key: str) -> str | None:
    row = conn.execute("SELECT value FROM meta WHERE key=?", (key,)).fetchone()
    return None if row is None else row["value"]


def insert_row(conn: Connection, row: HistoryRow, hash_: str | None = None) -> int:
    """Insert row + fingerprint without transaction handling (caller owns it)."""
    cur = conn.execute(
        "INSERT INTO history(hist_id, cmd, epoch, ppid, pwd, salt) VALUES(?,?,?,?,?,?)",
        (row.hist_id, row.cmd, row.epoch, row.ppid, row.pwd, row.salt),
    )
    rid = int(cur.lastrowid)
    conn.execute(
        "INSERT OR IGNORE INTO history_hash(hash, history_id) VALUES(?, ?)",
        (hash_ or row_hash(row), rid),
    )
    return rid


def insert_history(conn: Connection, row: HistoryRow) -> int:
    with transaction(conn):
        return insert_row(conn, row)


def has_fingerprint(conn: Connection, hash_: str) -> bool:
    row = conn.execute(
        "SELECT EXISTS(SELECT 1 FROM history_hash WHERE hash=?) AS e", (hash_,)
    ).fetchone()
    return bool(row["e"])


def history_id_for(conn: Connection, hash_: str) -> int | None:
    row = conn.execute(
        "SELECT history_id FROM history_hash WHERE hash=?", (hash_,)
    ).fetchone()
    return None if row is None else int(row["history_id"])


def count_all(conn: Connection) -> int:
    return int(conn.execute("SELECT COUNT(1) AS c FROM history").fetchone()["c"])


def count_hashes(conn: Connection) -> int:
    return int(conn.execute("SELECT COUNT(1) AS c FROM history_hash").fetchone()["c"])


def has_history_table(conn: Connection) -> bool:
    row = conn.execute(
        "SELECT EXISTS(SELECT 1 FROM sqlite_master WHERE type='table' AND name='history') AS e"
    ).fetchone()
    return bool(row[0])


def iter_source_rows(conn: Connection):
    """Raw source rows, oldest first; values left uncoerced."""
    return conn.execute(
        "SELECT hist_id, cmd, epoch, ppid, pwd, salt FROM history ORDER BY id ASC"
    )


def history_columns(conn: Connection) -> set[str]:
    return {r[1] for r in conn.execute("PRAGMA table_info(history)").fetchall()}
