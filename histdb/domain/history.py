from __future__ import annotations

import hashlib
from dataclasses import dataclass

from .coerce import clean_text


@dataclass(frozen=True)
class HistoryRow:
    """One recorded command invocation, as stored (minus the store-assigned id)."""

    cmd: str
    epoch: int
    ppid: int
    pwd: str
    salt: int
    hist_id: int | None = None

    def __post_init__(self):
        # frozen: normalize through object.__setattr__
        object.__setattr__(self, "cmd", clean_text(self.cmd))
        object.__setattr__(self, "pwd", clean_text(self.pwd))


def _field_bytes(value: str) -> bytes:
    return value.encode("utf-8")


def row_hash(row: HistoryRow) -> str:
    """
    Stable SHA-256 fingerprint of a row, lowercase hex.

    Fields joined by '\n' in fixed order: epoch, ppid, salt, hist_id
    (empty when absent), pwd, cmd.
    """
    h = hashlib.sha256()
    h.update(str(int(row.epoch)).encode("ascii"))
    h.update(b"\n")
    h.update(str(int(row.ppid)).encode("ascii"))
    h.update(b"\n")
    h.update(str(int(row.salt)).encode("ascii"))
    h.update(b"\n")
    h.update(b"" if row.hist_id is None else str(int(row.hist_id)).encode("ascii"))
    h.update(b"\n")
    h.update(_field_bytes(row.pwd))
    h.update(b"\n")
    h.update(_field_bytes(row.cmd))
    return h.hexdigest()


fingerprint = row_hash
