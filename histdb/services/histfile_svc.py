from __future__ import annotations

import logging
import sqlite3

from ..db import transaction
from ..domain.histfile import detect_shell, fill_epochs, parse_history
from ..domain.history import HistoryRow, row_hash
from ..errors import ImportSourceError
from ..repository import history_repo

logger = logging.getLogger(__name__)


def import_history_file(
    conn: sqlite3.Connection,
    path: str,
    shell: str | None = None,
    pwd: str = "",
) -> tuple[int, int]:
    """
    Import a plain-text bash/zsh history file as synthetic rows.

    hist_id is the entry's position in the file; ppid and salt are 0. Entries
    without a timestamp take the last one seen (0 before any), so re-importing
    the same file is a no-op.

    Returns (considered, inserted).
    """
    try:
        with open(path, "r", encoding="utf-8", errors="surrogateescape") as f:
            lines = f.readlines()
    except OSError as e:
        raise ImportSourceError(f"reading history file {path}: {e}") from e

    shell = shell or detect_shell(lines)
    considered = inserted = 0
    with transaction(conn):
        for idx, cmd, epoch in fill_epochs(parse_history(lines, shell)):
            considered += 1
            row = HistoryRow(hist_id=idx, cmd=cmd, epoch=epoch, ppid=0, pwd=pwd, salt=0)
            h = row_hash(row)
            if history_repo.has_fingerprint(conn, h):
                continue
            history_repo.insert_row(conn, row, h)
            inserted += 1

    logger.info(f"history file {path} ({shell}): considered {considered}, inserted {inserted}")
    return considered, inserted
