import os
import sys
import sqlite3
import pytest
from pathlib import Path

# Ensure project root on sys.path (sdbh.py lives there)
_THIS_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _THIS_DIR.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

SOURCE_DDL = """
CREATE TABLE history (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  hist_id INTEGER,
  cmd TEXT,
  epoch INTEGER,
  ppid INTEGER,
  pwd TEXT,
  salt INTEGER
);
"""


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    # Never touch the user's real db/config, never inherit a live shell session
    for k in ("SDBH_DB", "SDBH_SALT", "SDBH_PPID"):
        monkeypatch.delenv(k, raising=False)
    monkeypatch.setenv("SDBH_CONFIG", str(tmp_path / "no-such-config.yaml"))
    yield


@pytest.fixture()
def db_path(tmp_path):
    return str(tmp_path / "hist.sqlite")


@pytest.fixture()
def conn(db_path):
    from histdb.services.history_svc import open_store
    with open_store(db_path) as c:
        yield c


@pytest.fixture()
def make_source(tmp_path):
    """Build a dbhist-compatible source db from raw (hist_id, cmd, epoch, ppid, pwd, salt) tuples."""
    counter = {"n": 0}

    def _make(rows, name=None):
        counter["n"] += 1
        path = tmp_path / (name or f"src{counter['n']}.sqlite")
        c = sqlite3.connect(str(path))
        try:
            c.executescript(SOURCE_DDL)
            c.executemany(
                "INSERT INTO history(hist_id, cmd, epoch, ppid, pwd, salt) VALUES (?,?,?,?,?,?)",
                rows,
            )
            c.commit()
        finally:
            c.close()
        return str(path)

    return _make
