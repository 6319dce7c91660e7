from __future__ import annotations

import re

_INT_RE = re.compile(r"^[+-]?[0-9]+$")
I64_MIN = -(2 ** 63)
I64_MAX = 2 ** 63 - 1


def in_i64(v: int) -> bool:
    return I64_MIN <= v <= I64_MAX


def _in_range(v: int) -> int | None:
    return v if in_i64(v) else None


def _parse_token(tok: str) -> int | None:
    if tok.endswith("*"):
        tok = tok[:-1]
    if not _INT_RE.match(tok):
        return None
    if len(tok.lstrip("+-").lstrip("0")) > 19:
        return None
    return _in_range(int(tok))


def value_to_int(value) -> int | None:
    """
    Coerce a raw SQLite value to an integer, tolerating damaged history rows.

    - int: as is
    - float: only when the fractional part is zero
    - text: first whitespace token, else the second one; one trailing '*'
      is dropped (e.g. "  970* 1571608128 ssh host" -> 970)
    - NULL, blobs and anything else: None
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return _in_range(value)
    if isinstance(value, float):
        if value.is_integer():
            return _in_range(int(value))
        return None
    if isinstance(value, str):
        tokens = value.split()
        if not tokens:
            return None
        v = _parse_token(tokens[0])
        if v is None and len(tokens) > 1:
            v = _parse_token(tokens[1])
        return v
    return None


def decode_text(raw: bytes) -> str:
    """Invalid UTF-8 becomes U+FFFD; also used as a sqlite3 text_factory."""
    return raw.decode("utf-8", "replace")


def clean_text(s: str) -> str:
    """
    Make a str storable in SQLite: undecodable bytes smuggled in by
    os.fsdecode() (surrogateescape) get the same U+FFFD that decode_text()
    gives for the raw bytes, so a path hashes alike whichever way it arrived.
    """
    if s.isascii():
        return s
    try:
        raw = s.encode("utf-8", "surrogateescape")
    except UnicodeEncodeError:
        # lone surrogates outside the escape range
        raw = s.encode("utf-8", "replace")
    return decode_text(raw)


def value_to_text(value) -> str:
    """Normalize a raw SQLite value that should have been TEXT."""
    if value is None:
        return ""
    if isinstance(value, bytes):
        return decode_text(value)
    return clean_text(str(value))
