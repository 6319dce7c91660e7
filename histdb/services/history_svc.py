from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from typing import Any, Iterator

from ..db import get_conn
from ..domain.coerce import in_i64
from ..domain.history import HistoryRow
from ..domain.options import ListOptions, SearchOptions, SummaryOptions
from ..errors import HistDBError, StoreOpenError
from ..repository import history_repo, query_repo

logger = logging.getLogger(__name__)


@contextmanager
def open_store(db_path: str) -> Iterator[sqlite3.Connection]:
    """Open (creating if needed) the history db and make sure the tables exist."""
    with get_conn(db_path) as conn:
        try:
            history_repo.ensure_schema(conn)
        except sqlite3.DatabaseError as e:
            raise StoreOpenError(f"initializing schema in {db_path}: {e}") from e
        yield conn


def log_command(db_path: str, row: HistoryRow) -> int:
    for name in ("hist_id", "epoch", "ppid", "salt"):
        v = getattr(row, name)
        if v is not None and not in_i64(v):
            raise HistDBError(f"{name} {v} does not fit a 64-bit integer")
    with open_store(db_path) as conn:
        history_repo.ensure_indexes(conn)
        rid = history_repo.insert_history(conn, row)
    logger.debug(f"logged id={rid} cmd={row.cmd!r}")
    return rid


def _fetch(conn: sqlite3.Connection, sql: str, binds: list[Any]) -> list[dict[str, Any]]:
    logger.debug(f"sql: {sql} binds: {binds}")
    return [dict(r) for r in query_repo.run_query(conn, sql, binds)]


def list_history(conn: sqlite3.Connection, opts: ListOptions) -> list[dict[str, Any]]:
    sql, binds = query_repo.build_list_query(opts)
    return _fetch(conn, sql, binds)


def search_history(conn: sqlite3.Connection, opts: SearchOptions) -> list[dict[str, Any]]:
    sql, binds = query_repo.build_search_query(opts)
    return _fetch(conn, sql, binds)


def summarize(conn: sqlite3.Connection, opts: SummaryOptions) -> list[dict[str, Any]]:
    sql, binds = query_repo.build_summary_query(opts)
    return _fetch(conn, sql, binds)


def format_rows(rows: list[dict[str, Any]]) -> list[str]:
    """Table lines for list/search output."""
    return [f"{r['id']:>6} | {r['dt']} | {r['pwd']} | {r['cmd']}" for r in rows]


def format_summary(rows: list[dict[str, Any]], with_pwd: bool = False) -> list[str]:
    out = []
    for r in rows:
        if with_pwd:
            out.append(f"{r['mid']:>6} | {r['dt']} | {r['cnt']:>6} | {r['pwd']} > {r['cmd']}")
        else:
            out.append(f"{r['mid']:>6} | {r['dt']} | {r['cnt']:>6} | {r['cmd']}")
    return out


def rows_to_json_items(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [{"id": r["id"], "epoch": r["epoch"], "pwd": r["pwd"], "cmd": r["cmd"]} for r in rows]
