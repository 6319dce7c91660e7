"""
Parsers for plain-text shell history files.

bash:  optional "#<epoch>" comment line before each command (HISTTIMEFORMAT)
zsh:   EXTENDED_HISTORY ": <epoch>:<duration>;<cmd>", a trailing backslash
       continues the command on the next line
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Iterator

from .coerce import in_i64

BASH_TS_RE = re.compile(r"^#([0-9]+)\s*$")
ZSH_EXT_RE = re.compile(r"^:\s*([0-9]+):([0-9]+);(.*)$", re.DOTALL)


@dataclass(frozen=True)
class HistEntry:
    index: int  # 1-based position in the file
    cmd: str
    epoch: int | None


def _epoch(digits: str) -> int | None:
    if len(digits.lstrip("0")) > 19:
        return None
    v = int(digits)
    return v if in_i64(v) else None


def parse_bash(lines: Iterable[str]) -> Iterator[HistEntry]:
    pending_ts: int | None = None
    idx = 0
    for raw in lines:
        line = raw.rstrip("\n")
        m = BASH_TS_RE.match(line)
        if m:
            pending_ts = _epoch(m.group(1))
            continue
        if not line.strip():
            continue
        idx += 1
        yield HistEntry(idx, line, pending_ts)
        pending_ts = None


def parse_zsh(lines: Iterable[str]) -> Iterator[HistEntry]:
    idx = 0
    buf: list[str] = []
    ts: int | None = None

    def flush():
        nonlocal idx
        cmd = "\n".join(buf)
        if cmd.strip():
            idx += 1
            return HistEntry(idx, cmd, ts)
        return None

    for raw in lines:
        line = raw.rstrip("\n")
        if buf:
            # previous line ended with a backslash
            if line.endswith("\\"):
                buf.append(line[:-1])
                continue
            buf.append(line)
            entry = flush()
            buf = []
            if entry:
                yield entry
            continue

        m = ZSH_EXT_RE.match(line)
        if m:
            ts, body = _epoch(m.group(1)), m.group(3)
        else:
            ts, body = None, line
        if body.endswith("\\"):
            buf = [body[:-1]]
            continue
        buf = [body]
        entry = flush()
        buf = []
        if entry:
            yield entry

    if buf:
        entry = flush()
        if entry:
            yield entry


def parse_history(lines: Iterable[str], shell: str) -> Iterator[HistEntry]:
    if shell == "bash":
        return parse_bash(lines)
    if shell == "zsh":
        return parse_zsh(lines)
    raise ValueError(f"unsupported shell: {shell}")


def fill_epochs(entries: Iterable[HistEntry]) -> Iterator[tuple[int, str, int]]:
    """(index, cmd, epoch): missing timestamps inherit the last one seen, else 0."""
    last = 0
    for e in entries:
        if e.epoch is not None:
            last = e.epoch
        yield e.index, e.cmd, last


def detect_shell(lines: list[str]) -> str:
    for line in lines:
        if line.strip():
            return "zsh" if ZSH_EXT_RE.match(line.rstrip("\n")) else "bash"
    return "bash"
