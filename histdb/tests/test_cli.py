import json
import os
import sqlite3

import sdbh


def _log(db, cmd, epoch, **extra):
    argv = ["--db", db, "log", "--cmd", cmd, "--epoch", str(epoch), "--ppid", "123",
            "--pwd", extra.get("pwd", "/tmp"), "--salt", str(extra.get("salt", 42))]
    if "hist_id" in extra:
        argv += ["--hist-id", str(extra["hist_id"])]
    assert sdbh.main(argv) == 0


def test_log_then_list_shows_row(db_path, capsys):
    _log(db_path, "echo hello", 1700000000, hist_id=7)
    capsys.readouterr()
    assert sdbh.main(["--db", db_path, "list", "--all", "--limit", "10"]) == 0
    out = capsys.readouterr().out
    assert "echo hello" in out
    assert "| /tmp |" in out


def test_list_json_shape(db_path, capsys):
    _log(db_path, "printf 'a'", 1700000000)
    capsys.readouterr()
    assert sdbh.main(["--db", db_path, "list", "--all", "--format", "json"]) == 0
    items = json.loads(capsys.readouterr().out)
    assert items == [{"id": 1, "epoch": 1700000000, "pwd": "/tmp", "cmd": "printf 'a'"}]


def test_session_env_scopes_list(db_path, capsys, monkeypatch):
    _log(db_path, "mine", 1700000000, salt=42)
    _log(db_path, "theirs", 1700000001, salt=43)
    monkeypatch.setenv("SDBH_SALT", "42")
    monkeypatch.setenv("SDBH_PPID", "123")
    capsys.readouterr()
    sdbh.main(["--db", db_path, "list"])
    out = capsys.readouterr().out
    assert "mine" in out and "theirs" not in out

    sdbh.main(["--db", db_path, "list", "--all"])
    out = capsys.readouterr().out
    assert "mine" in out and "theirs" in out


def test_malformed_session_env_shows_everything(db_path, capsys, monkeypatch):
    _log(db_path, "one", 1700000000, salt=1)
    _log(db_path, "two", 1700000001, salt=2)
    monkeypatch.setenv("SDBH_SALT", "not-a-number")
    monkeypatch.setenv("SDBH_PPID", "123")
    capsys.readouterr()
    assert sdbh.main(["--db", db_path, "list"]) == 0
    out = capsys.readouterr().out
    assert "one" in out and "two" in out


def test_summary_and_search(db_path, capsys):
    _log(db_path, "git status", 1700000000)
    _log(db_path, "git status", 1700000001)
    _log(db_path, "ls", 1700000002)
    capsys.readouterr()

    sdbh.main(["--db", db_path, "summary", "--all"])
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[0].endswith("| ls")
    assert lines[1].endswith("| git status")
    assert "|      2 |" in lines[1]

    sdbh.main(["--db", db_path, "search", "git", "--all"])
    out = capsys.readouterr().out.strip().splitlines()
    assert len(out) == 2
    assert out[0].startswith("     2 |")


def test_search_since_and_days_are_exclusive(db_path):
    import pytest

    with pytest.raises(SystemExit):
        sdbh.main(["--db", db_path, "search", "x", "--since", "1", "--days", "2"])


def test_import_twice_reports_zero_second_time(tmp_path, capsys):
    src = str(tmp_path / "src.sqlite")
    dst = str(tmp_path / "dst.sqlite")
    c = sqlite3.connect(src)
    c.executescript(
        "CREATE TABLE history (id INTEGER PRIMARY KEY AUTOINCREMENT, hist_id INTEGER, cmd TEXT,"
        " epoch INTEGER, ppid INTEGER, pwd TEXT, salt INTEGER);"
    )
    c.execute(
        "INSERT INTO history(hist_id, cmd, epoch, ppid, pwd, salt) VALUES (?,?,?,?,?,?)",
        (1, "echo hi", 1700000000, 10, "/tmp", 99),
    )
    c.commit()
    c.close()

    assert sdbh.main(["--db", dst, "import", "--from", src]) == 0
    assert "inserted 1" in capsys.readouterr().err
    assert sdbh.main(["--db", dst, "import", "--from", src]) == 0
    err = capsys.readouterr().err
    assert "inserted 0" in err
    assert "total: considered 1, inserted 0" in err


def test_import_without_sources_fails(db_path, capsys):
    assert sdbh.main(["--db", db_path, "import"]) == 1
    assert "--from" in capsys.readouterr().err


def test_import_missing_table_exits_nonzero(tmp_path, capsys):
    src = tmp_path / "bad.sqlite"
    c = sqlite3.connect(str(src))
    c.execute('CREATE TABLE "nothing" (x)')
    c.commit()
    c.close()
    rc = sdbh.main(["--db", str(tmp_path / "dst.sqlite"), "import", "--from", str(src)])
    assert rc == 1
    assert "does not have a history table" in capsys.readouterr().err


def test_stats_daily_prints_and_exports(db_path, tmp_path, capsys):
    import time

    now = int(time.time())
    _log(db_path, "ls", now - 86400)
    _log(db_path, "ls", now)
    capsys.readouterr()
    csv_path = tmp_path / "daily.csv"
    assert sdbh.main(["--db", db_path, "stats", "daily", "--all", "--days", "7", "--csv", str(csv_path)]) == 0
    out = capsys.readouterr().out
    assert "cnt" in out
    assert csv_path.read_text(encoding="utf-8").startswith("day,cnt")


def test_import_history_file(db_path, tmp_path, capsys):
    hist = tmp_path / ".bash_history"
    hist.write_text("#1700000000\nls\n#1700000001\npwd\n", encoding="utf-8")
    assert sdbh.main(["--db", db_path, "import-history", "--file", str(hist)]) == 0
    assert "inserted 2" in capsys.readouterr().err
    assert sdbh.main(["--db", db_path, "import-history", "--file", str(hist)]) == 0
    assert "inserted 0" in capsys.readouterr().err


def test_log_with_undecodable_pwd(db_path, capsys):
    _log(db_path, "ls", 1700000000, pwd=os.fsdecode(b"/tmp/caf\xe9"))
    _log(db_path, "ls", 1700000000, pwd=os.fsdecode(b"/tmp/caf\xe9"))
    capsys.readouterr()
    assert sdbh.main(["--db", db_path, "list", "--all", "--format", "json"]) == 0
    items = json.loads(capsys.readouterr().out)
    assert [i["pwd"] for i in items] == ["/tmp/caf�", "/tmp/caf�"]


def test_log_epoch_outside_64_bits_is_an_error(db_path, capsys):
    argv = ["--db", db_path, "log", "--cmd", "x", "--epoch", str(2 ** 63),
            "--ppid", "1", "--pwd", "/", "--salt", "1"]
    assert sdbh.main(argv) == 1
    assert "epoch" in capsys.readouterr().err


def test_oversized_offset_is_an_error(db_path, capsys):
    assert sdbh.main(["--db", db_path, "list", "--all", "--offset", str(2 ** 64)]) == 1
    assert capsys.readouterr().err.startswith("error:")


def test_huge_day_windows_do_not_overflow(db_path, capsys):
    _log(db_path, "ls", 1700000000)
    capsys.readouterr()
    assert sdbh.main(["--db", db_path, "search", "ls", "--all", "--days", str(10 ** 15)]) == 0
    assert "ls" in capsys.readouterr().out
    assert sdbh.main(["--db", db_path, "stats", "top", "--all", "--days", str(10 ** 15)]) == 0
    assert "ls" in capsys.readouterr().out


def test_import_reports_each_source_then_total(tmp_path, capsys):
    dst = str(tmp_path / "dst.sqlite")
    srcs = []
    for i, cmd in enumerate(["echo a", "echo b"]):
        p = str(tmp_path / f"src{i}.sqlite")
        c = sqlite3.connect(p)
        c.executescript(
            "CREATE TABLE history (id INTEGER PRIMARY KEY AUTOINCREMENT, hist_id INTEGER, cmd TEXT,"
            " epoch INTEGER, ppid INTEGER, pwd TEXT, salt INTEGER);"
        )
        c.execute(
            "INSERT INTO history(hist_id, cmd, epoch, ppid, pwd, salt) VALUES (?,?,?,?,?,?)",
            (1, cmd, 1700000000, 10, "/tmp", 99),
        )
        c.commit()
        c.close()
        srcs.append(p)

    assert sdbh.main(["--db", dst, "import", "--from", srcs[0], "--from", srcs[1]]) == 0
    err = capsys.readouterr().err
    assert f"imported from {srcs[0]}: considered 1, inserted 1" in err
    assert f"imported from {srcs[1]}: considered 1, inserted 1" in err
    assert "total: considered 2, inserted 2" in err
