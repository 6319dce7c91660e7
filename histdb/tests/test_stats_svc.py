import pandas as pd

from histdb.domain.history import HistoryRow
from histdb.domain.options import StatsOptions
from histdb.repository import history_repo
from histdb.services import stats_svc

T = 1705312800


def _seed(conn):
    for i, (cmd, pwd) in enumerate([("ls", "/a"), ("ls", "/a"), ("ls", "/b"), ("vim", "/a")]):
        history_repo.insert_history(conn, HistoryRow(cmd=cmd, epoch=T + i, ppid=1, pwd=pwd, salt=1))


def test_top_frame(conn):
    _seed(conn)
    df = stats_svc.stats_frame(conn, StatsOptions(kind="top", days=7, now=T + 60))
    assert list(df.columns) == ["cnt", "last_dt", "cmd"]
    assert df["cmd"].tolist() == ["ls", "vim"]
    assert df["cnt"].tolist() == [3, 1]


def test_dirs_frame(conn):
    _seed(conn)
    df = stats_svc.stats_frame(conn, StatsOptions(kind="dirs", days=7, now=T + 60))
    assert list(zip(df["pwd"], df["cmd"], df["cnt"])) == [("/a", "ls", 2), ("/a", "vim", 1), ("/b", "ls", 1)]


def test_daily_frame_and_csv_export(conn, tmp_path):
    _seed(conn)
    history_repo.insert_history(conn, HistoryRow(cmd="ls", epoch=T + 86400, ppid=1, pwd="/a", salt=1))
    df = stats_svc.stats_frame(conn, StatsOptions(kind="daily", days=7, now=T + 86400 + 60))
    assert df["cnt"].tolist() == [4, 1]

    out = stats_svc.export_csv(df, str(tmp_path / "out" / "daily.csv"))
    back = pd.read_csv(out)
    assert back["cnt"].tolist() == [4, 1]


def test_render_empty(conn):
    df = stats_svc.stats_frame(conn, StatsOptions(kind="top", days=1, now=T))
    assert stats_svc.render(df) == "(empty)"
