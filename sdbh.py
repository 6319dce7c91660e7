#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Shell DB History (SQLite)

Commands:
  log             Insert one history row (called by the shell hook)
  list            Raw chronological history, oldest first
  search          Substring search, newest first, optionally time bounded
  summary         Grouped-by-command summary (last seen + count)
  stats           top / dirs / daily counts over the last N days
  import          Merge other sdbh/dbhist-compatible SQLite databases
  import-history  Import a plain bash/zsh history file

Notes:
- Read commands show only the current shell session when SDBH_SALT and
  SDBH_PPID are set; --all shows every session.
- Rows are deduplicated on a content fingerprint, so importing the same
  database twice inserts nothing the second time.
"""

import argparse
import json
import os
import sys

from histdb.db import get_db_path
from histdb.domain.history import HistoryRow
from histdb.domain.options import (
    ListOptions,
    LocationFilter,
    SearchOptions,
    StatsOptions,
    SummaryOptions,
    parse_options,
    session_from_env,
)
from histdb.errors import HistDBError
from histdb.logs import LogContext, setup_logging
from histdb.repository import history_repo, query_repo
from histdb.services import histfile_svc, history_svc, import_svc, stats_svc
from histdb.services.config_svc import get_config

# ---------------- helpers ----------------


def _db_path(args, cfg) -> str:
    return get_db_path(args.db, cfg.get("db_path"))


def _filter_kwargs(args, cfg) -> dict:
    out = {"show_all": bool(getattr(args, "no_limit", False))}
    if not args.all:
        out["session"] = session_from_env(os.environ, cfg["salt_env"], cfg["ppid_env"])
    if getattr(args, "here", False) or getattr(args, "under", False):
        out["location"] = LocationFilter(pwd=os.getcwd(), mode="under" if args.under else "here")
    return out


def _limit(args, cfg) -> int:
    return cfg["default_limit"] if args.limit is None else args.limit


def _print_rows(rows, fmt: str):
    if fmt == "json":
        print(json.dumps(history_svc.rows_to_json_items(rows), ensure_ascii=False))
        return
    for line in history_svc.format_rows(rows):
        print(line)


# ---------------- Commands ----------------


def cmd_log(args, cfg):
    row = HistoryRow(
        hist_id=args.hist_id,
        cmd=args.cmd,
        epoch=args.epoch,
        ppid=args.ppid,
        pwd=args.pwd,
        salt=args.salt,
    )
    log = LogContext("log")
    log.set_payload({"epoch": row.epoch, "ppid": row.ppid, "salt": row.salt})
    rid = history_svc.log_command(_db_path(args, cfg), row)
    log.set_result({"id": rid})
    log.write()


def cmd_list(args, cfg):
    opts = parse_options(
        ListOptions,
        query=args.query,
        limit=_limit(args, cfg),
        offset=args.offset,
        **_filter_kwargs(args, cfg),
    )
    with history_svc.open_store(_db_path(args, cfg)) as conn:
        rows = history_svc.list_history(conn, opts)
    _print_rows(rows, args.format)


def cmd_search(args, cfg):
    opts = parse_options(
        SearchOptions,
        query=args.query,
        limit=_limit(args, cfg),
        offset=args.offset,
        since_epoch=args.since,
        days=args.days,
        **_filter_kwargs(args, cfg),
    )
    with history_svc.open_store(_db_path(args, cfg)) as conn:
        rows = history_svc.search_history(conn, opts)
    _print_rows(rows, args.format)


def cmd_summary(args, cfg):
    opts = parse_options(
        SummaryOptions,
        query=args.query,
        starts=args.starts,
        group_pwd=args.pwd,
        limit=_limit(args, cfg),
        **_filter_kwargs(args, cfg),
    )
    db_path = _db_path(args, cfg)
    if args.show_sql:
        sql, _ = query_repo.build_summary_query(opts)
        print(f"db: {db_path}", file=sys.stderr)
        print(f"sql: {sql}", file=sys.stderr)
    with history_svc.open_store(db_path) as conn:
        rows = history_svc.summarize(conn, opts)
    for line in history_svc.format_summary(rows, with_pwd=args.pwd):
        print(line)


def cmd_stats(args, cfg):
    opts = parse_options(
        StatsOptions,
        kind=args.kind,
        days=cfg["stats_days"] if args.days is None else args.days,
        limit=_limit(args, cfg),
        **_filter_kwargs(args, cfg),
    )
    with history_svc.open_store(_db_path(args, cfg)) as conn:
        df = stats_svc.stats_frame(conn, opts)
    print(stats_svc.render(df))
    if args.csv:
        stats_svc.export_csv(df, args.csv)
        print(f"CSV exported to {args.csv}", file=sys.stderr)


def cmd_import(args, cfg):
    if not args.from_paths:
        raise HistDBError("--from must be specified at least once")
    db_path = get_db_path(args.to or args.db, cfg.get("db_path"))

    log = LogContext("import")
    log.set_payload({"to": db_path, "from": args.from_paths})
    try:
        with history_svc.open_store(db_path) as conn:
            history_repo.ensure_indexes(conn)
            results = import_svc.import_many(conn, args.from_paths)
    except HistDBError as e:
        log.write("FAIL", str(e))
        raise
    # skipped corrupted rows are reported by import_svc as a warning
    for res in results:
        print(f"imported from {res.source}: considered {res.considered}, inserted {res.inserted}", file=sys.stderr)
    total_considered = sum(r.considered for r in results)
    total_inserted = sum(r.inserted for r in results)
    print(f"total: considered {total_considered}, inserted {total_inserted}", file=sys.stderr)
    log.set_result({"considered": total_considered, "inserted": total_inserted})
    log.write()


def cmd_import_history(args, cfg):
    log = LogContext("import-history")
    log.set_payload({"file": args.file, "shell": args.shell})
    with history_svc.open_store(_db_path(args, cfg)) as conn:
        history_repo.ensure_indexes(conn)
        considered, inserted = histfile_svc.import_history_file(
            conn, args.file, shell=args.shell, pwd=args.pwd
        )
    print(f"imported from {args.file}: considered {considered}, inserted {inserted}", file=sys.stderr)
    log.set_result({"considered": considered, "inserted": inserted})
    log.write()


# ---------------- Entry ----------------


def _add_filter_args(p, with_format: bool = False):
    p.add_argument("--limit", type=int, default=None)
    p.add_argument("--all", action="store_true", help="all sessions, not only the current shell")
    p.add_argument("--no-limit", action="store_true", help="return every matching row")
    loc = p.add_mutually_exclusive_group()
    loc.add_argument("--here", action="store_true", help="only commands run in the current directory")
    loc.add_argument("--under", action="store_true", help="only commands run in or below the current directory")
    if with_format:
        p.add_argument("--offset", type=int, default=0)
        p.add_argument("--format", choices=["table", "json"], default="table")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sdbh", description="Shell DB History (sdbh)")
    parser.add_argument("--db", default=None, help="path to SQLite database")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    sub = parser.add_subparsers()

    p_log = sub.add_parser("log", help="insert one history row (shell integration)")
    p_log.add_argument("--cmd", required=True)
    p_log.add_argument("--epoch", required=True, type=int)
    p_log.add_argument("--ppid", required=True, type=int)
    p_log.add_argument("--pwd", required=True)
    p_log.add_argument("--salt", required=True, type=int)
    p_log.add_argument("--hist-id", dest="hist_id", type=int, default=None)
    p_log.set_defaults(func=cmd_log)

    p_list = sub.add_parser("list", help="raw chronological history")
    p_list.add_argument("query", nargs="?", default=None)
    _add_filter_args(p_list, with_format=True)
    p_list.set_defaults(func=cmd_list)

    p_search = sub.add_parser("search", help="substring search, newest first")
    p_search.add_argument("query")
    _add_filter_args(p_search, with_format=True)
    since = p_search.add_mutually_exclusive_group()
    since.add_argument("--since", type=int, default=None, help="only rows at or after this epoch")
    since.add_argument("--days", type=int, default=None, help="only rows from the last N days")
    p_search.set_defaults(func=cmd_search)

    p_sum = sub.add_parser("summary", help="grouped-by-command summary")
    p_sum.add_argument("query", nargs="?", default=None)
    _add_filter_args(p_sum)
    p_sum.add_argument("--starts", action="store_true", help="treat query as a prefix")
    p_sum.add_argument("--pwd", action="store_true", help="group by directory as well")
    p_sum.add_argument("--show-sql", dest="show_sql", action="store_true", help="print db path and sql")
    p_sum.set_defaults(func=cmd_summary)

    p_stats = sub.add_parser("stats", help="usage statistics over the last N days")
    p_stats.add_argument("kind", choices=["top", "dirs", "daily"], nargs="?", default="top")
    p_stats.add_argument("--days", type=int, default=None)
    _add_filter_args(p_stats)
    p_stats.add_argument("--csv", default=None, help="also write the table as CSV")
    p_stats.set_defaults(func=cmd_stats)

    p_imp = sub.add_parser("import", help="merge another history database")
    p_imp.add_argument("--from", dest="from_paths", action="append", default=[])
    p_imp.add_argument("--to", default=None, help="destination db (defaults to --db)")
    p_imp.set_defaults(func=cmd_import)

    p_hf = sub.add_parser("import-history", help="import a bash/zsh history file")
    p_hf.add_argument("--file", required=True)
    p_hf.add_argument("--shell", choices=["bash", "zsh"], default=None, help="detected when omitted")
    p_hf.add_argument("--pwd", default="", help="directory recorded for imported rows")
    p_hf.set_defaults(func=cmd_import_history)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    cfg = get_config()
    setup_logging("DEBUG" if args.verbose else cfg["log_level"])

    if not hasattr(args, "func"):
        parser.print_help()
        return 0
    try:
        args.func(args, cfg)
    except HistDBError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
