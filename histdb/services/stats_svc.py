from __future__ import annotations

import logging
import os
import sqlite3

import pandas as pd

from ..domain.options import StatsOptions
from ..repository import query_repo

logger = logging.getLogger(__name__)

COLUMNS = {
    "top": ["cnt", "last_dt", "cmd"],
    "dirs": ["cnt", "last_dt", "pwd", "cmd"],
    "daily": ["day", "cnt"],
}


def stats_frame(conn: sqlite3.Connection, opts: StatsOptions) -> pd.DataFrame:
    sql, binds = query_repo.build_stats_query(opts)
    logger.debug(f"sql: {sql} binds: {binds}")
    # pandas wants plain tuples, not sqlite3.Row
    prev = conn.row_factory
    conn.row_factory = None
    try:
        df = pd.read_sql_query(sql, conn, params=binds)
    finally:
        conn.row_factory = prev
    return df[COLUMNS[opts.kind]]


def render(df: pd.DataFrame) -> str:
    if df.empty:
        return "(empty)"
    pd.set_option("display.max_rows", 500)
    pd.set_option("display.width", 160)
    pd.set_option("display.max_colwidth", 120)
    return df.to_string(index=False)


def export_csv(df: pd.DataFrame, path: str) -> str:
    dirn = os.path.dirname(path)
    if dirn:
        os.makedirs(dirn, exist_ok=True)
    df.to_csv(path, index=False, encoding="utf-8")
    return path
