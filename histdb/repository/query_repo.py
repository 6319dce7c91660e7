"""
Query construction for every read path.

Each predicate helper returns (clause, binds); the assemblers join them, so
user input only ever travels as a bind value. Patterns use LIKE with an
explicit ESCAPE '\\', and SQLite LIKE is case-insensitive for ASCII letters.
"""
from __future__ import annotations

import time
from sqlite3 import Connection
from typing import Any

from ..domain.coerce import I64_MIN
from ..domain.options import (
    ListOptions,
    LocationFilter,
    SearchOptions,
    SessionContext,
    StatsOptions,
    SummaryOptions,
)

# largest value SQLite accepts in LIMIT; stands in for "no limit"
MAX_LIMIT = 2 ** 63 - 1
DAY_SECONDS = 86400

DT_LOCAL = "datetime(epoch, 'unixepoch', 'localtime')"
MAX_DT_LOCAL = "datetime(max(epoch), 'unixepoch', 'localtime')"

Clause = tuple[str, list[Any]]


def escape_like(s: str) -> str:
    # backslash first, otherwise the escapes added below get doubled
    return s.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def effective_limit(limit: int, show_all: bool = False) -> int:
    return MAX_LIMIT if show_all else min(int(limit), MAX_LIMIT)


def session_clause(session: SessionContext | None) -> Clause:
    if session is None:
        return "", []
    return "salt = ? AND ppid = ?", [session.salt, session.ppid]


def location_clause(location: LocationFilter | None) -> Clause:
    if location is None:
        return "", []
    if location.mode == "under":
        return "pwd LIKE ? ESCAPE '\\'", [escape_like(location.pwd) + "%"]
    return "pwd = ?", [location.pwd]


def pattern_clause(column: str, query: str | None, prefix: bool = False) -> Clause:
    if query is None:
        return "", []
    lead = "" if prefix else "%"
    return f"{column} LIKE ? ESCAPE '\\'", [f"{lead}{escape_like(query)}%"]


def since_clause(cutoff: int | None) -> Clause:
    if cutoff is None:
        return "", []
    return "epoch >= ?", [int(cutoff)]


def days_cutoff(days: int, now: int | None = None) -> int:
    base = int(time.time()) if now is None else int(now)
    # a window wider than the epoch range means "everything"
    return max(base - int(days) * DAY_SECONDS, I64_MIN)


def where(*clauses: Clause) -> Clause:
    parts: list[str] = []
    binds: list[Any] = []
    for sql, b in clauses:
        if sql:
            parts.append(sql)
            binds.extend(b)
    if not parts:
        return "", []
    return " WHERE " + " AND ".join(parts), binds


def _filters(opts) -> list[Clause]:
    return [session_clause(opts.session), location_clause(opts.location)]


def build_list_query(opts: ListOptions) -> tuple[str, list[Any]]:
    wh, binds = where(*_filters(opts), pattern_clause("cmd", opts.query))
    sql = (
        f"SELECT id, {DT_LOCAL} AS dt, pwd, cmd, epoch FROM history{wh} "
        "ORDER BY epoch ASC, id ASC LIMIT ? OFFSET ?"
    )
    return sql, binds + [effective_limit(opts.limit, opts.show_all), opts.offset]


def build_search_query(opts: SearchOptions) -> tuple[str, list[Any]]:
    cutoff = opts.since_epoch
    if opts.days is not None:
        cutoff = days_cutoff(opts.days, opts.now)
    wh, binds = where(
        *_filters(opts),
        pattern_clause("cmd", opts.query),
        since_clause(cutoff),
    )
    sql = (
        f"SELECT id, {DT_LOCAL} AS dt, pwd, cmd, epoch FROM history{wh} "
        "ORDER BY epoch DESC, id DESC LIMIT ? OFFSET ?"
    )
    return sql, binds + [effective_limit(opts.limit, opts.show_all), opts.offset]


def build_summary_query(opts: SummaryOptions) -> tuple[str, list[Any]]:
    cols = f"max(id) AS mid, {MAX_DT_LOCAL} AS dt, count(*) AS cnt, cmd"
    group = "cmd"
    if opts.group_pwd:
        cols += ", pwd"
        group += ", pwd"
    wh, binds = where(*_filters(opts), pattern_clause("cmd", opts.query, prefix=opts.starts))
    sql = (
        f"SELECT {cols} FROM history{wh} "
        f"GROUP BY {group} ORDER BY max(id) DESC LIMIT ?"
    )
    return sql, binds + [effective_limit(opts.limit, opts.show_all)]


def build_stats_query(opts: StatsOptions) -> tuple[str, list[Any]]:
    wh, binds = where(since_clause(days_cutoff(opts.days, opts.now)), *_filters(opts))
    limit = effective_limit(opts.limit, opts.show_all)
    if opts.kind == "top":
        sql = (
            f"SELECT cmd, count(*) AS cnt, {MAX_DT_LOCAL} AS last_dt FROM history{wh} "
            "GROUP BY cmd ORDER BY cnt DESC, max(epoch) DESC, max(id) DESC LIMIT ?"
        )
    elif opts.kind == "dirs":
        sql = (
            f"SELECT pwd, cmd, count(*) AS cnt, {MAX_DT_LOCAL} AS last_dt FROM history{wh} "
            "GROUP BY pwd, cmd ORDER BY cnt DESC, max(epoch) DESC, max(id) DESC LIMIT ?"
        )
    else:
        sql = (
            "SELECT date(epoch, 'unixepoch', 'localtime') AS day, count(*) AS cnt "
            f"FROM history{wh} GROUP BY day ORDER BY day ASC LIMIT ?"
        )
    return sql, binds + [limit]


def run_query(conn: Connection, sql: str, binds: list[Any]):
    return conn.execute(sql, binds).fetchall()
