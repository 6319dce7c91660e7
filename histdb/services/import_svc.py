"""
Merge history rows from another, independently created history db.

One destination transaction per source; rows are streamed oldest first and
deduplicated on their fingerprint. Rows with unusable epoch/ppid/salt are
skipped and counted, never fatal.
"""
from __future__ import annotations

import logging
import os
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from ..db import transaction
from ..domain.coerce import decode_text, value_to_int, value_to_text
from ..domain.history import HistoryRow, row_hash
from ..errors import ImportSourceError
from ..repository import history_repo

logger = logging.getLogger(__name__)

SOURCE_COLUMNS = {"id", "hist_id", "cmd", "epoch", "ppid", "pwd", "salt"}


@dataclass
class ImportResult:
    source: str
    considered: int = 0
    inserted: int = 0
    skipped_corrupted: int = 0


def _main_db_file(conn: sqlite3.Connection) -> str | None:
    for row in conn.execute("PRAGMA database_list").fetchall():
        if row[1] == "main":
            return row[2] or None
    return None


def _open_source(path: str) -> sqlite3.Connection:
    p = Path(path).expanduser()
    if not p.is_file():
        raise ImportSourceError(f"source db {path} does not exist")
    try:
        src = sqlite3.connect(p.resolve().as_uri() + "?mode=ro", uri=True)
    except sqlite3.Error as e:
        raise ImportSourceError(f"opening source db {path}: {e}") from e
    # damaged rows may hold invalid UTF-8 in TEXT columns
    src.text_factory = decode_text
    try:
        src.execute("PRAGMA schema_version").fetchone()
    except sqlite3.DatabaseError as e:
        src.close()
        raise ImportSourceError(f"opening source db {path}: {e}") from e
    return src


def _row_from_source(raw) -> HistoryRow | None:
    hist_id_v, cmd_v, epoch_v, ppid_v, pwd_v, salt_v = raw
    epoch = value_to_int(epoch_v)
    ppid = value_to_int(ppid_v)
    salt = value_to_int(salt_v)
    if epoch is None or ppid is None or salt is None:
        return None
    return HistoryRow(
        hist_id=value_to_int(hist_id_v),
        cmd=value_to_text(cmd_v),
        epoch=epoch,
        ppid=ppid,
        pwd=value_to_text(pwd_v),
        salt=salt,
    )


def import_from_db(conn: sqlite3.Connection, source_path: str) -> ImportResult:
    res = ImportResult(source=str(source_path))

    dest = _main_db_file(conn)
    if dest and os.path.exists(source_path) and os.path.samefile(dest, source_path):
        raise ImportSourceError(f"source db {source_path} is the destination db")

    src = _open_source(source_path)
    try:
        try:
            has_table = history_repo.has_history_table(src)
            columns = history_repo.history_columns(src) if has_table else set()
        except sqlite3.DatabaseError as e:
            raise ImportSourceError(f"reading source db {source_path}: {e}") from e
        if not has_table:
            raise ImportSourceError(f"source db {source_path} does not have a history table")
        missing = SOURCE_COLUMNS - columns
        if missing:
            raise ImportSourceError(
                f"source db {source_path} history table lacks column(s): {', '.join(sorted(missing))}"
            )

        # destination errors (e.g. "database is locked") propagate unchanged
        with transaction(conn):
            for raw in history_repo.iter_source_rows(src):
                res.considered += 1
                row = _row_from_source(raw)
                if row is None:
                    res.skipped_corrupted += 1
                    continue
                h = row_hash(row)
                if history_repo.has_fingerprint(conn, h):
                    continue
                history_repo.insert_row(conn, row, h)
                res.inserted += 1
    finally:
        src.close()

    if res.skipped_corrupted:
        logger.warning(
            f"import skipped {res.skipped_corrupted} corrupted row(s) "
            f"(non-integer epoch/ppid/salt) from {source_path}"
        )
    return res


def import_many(conn: sqlite3.Connection, paths: Iterable[str]) -> list[ImportResult]:
    return [import_from_db(conn, p) for p in paths]
