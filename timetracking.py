#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Personal Time Tracking (SQLite)

Commands:
  shell               Interactive shell (default when no command is given)
  init                Create the config file and database tables
  project-add         Create a project
  project-list        List projects (active only unless --all)
  start               Start a recording on a project
  stop                Stop a recording (default: latest running one)
  week                Weekly report, or the project x weekday matrix with --matrix
  logs                Search the operation log

Notes:
- Configuration lives in app_config.yaml (databaseDriver, databaseFile); it is created
  with defaults on first start. TT_DB_PATH overrides the database file.
- Weekly reports only count finished recordings.
"""

import argparse
import logging
import sqlite3
import sys

import pandas as pd
import yaml

from tracker.db import check_driver, get_conn, get_db_path
from tracker.domain.week import current_week
from tracker.logs import LogContext, ensure_log_schema, search_logs
from tracker.repository import RepositoryError, SQLiteRepository
from tracker.services import project_svc, recording_svc, report_svc
from tracker.services.config_svc import DEFAULT_CONFIG_PATH, ensure_config
from tracker.shell import VERSION, Shell

logger = logging.getLogger("timetracking")


# ---------------- helpers ----------------

def _logged(conn, action: str, payload: dict, fn):
    """Run fn(log) and record the outcome in operation_log; errors propagate."""
    log = LogContext(action)
    log.set_payload(payload)
    try:
        result = fn(log)
    except (RepositoryError, ValueError) as e:
        log.write(conn, "ERROR", str(e))
        raise
    log.write(conn, "OK")
    return result


def _print_frame(df):
    if df.empty:
        print("(empty)")
    else:
        print(df.to_string(index=False))


# ---------------- commands ----------------

def cmd_shell(args, repo, conn):
    Shell(repo, conn).run()


def cmd_init(args, repo, conn):
    print("Config and database initialized.")


def cmd_project_add(args, repo, conn):
    payload = {"tag": args.tag, "name": args.name, "type": args.type}
    p = _logged(conn, "PROJECT_CREATE", payload,
                lambda log: project_svc.create_project(repo, args.tag, args.name, args.type, log))
    print(f"Project {p.tag} created.")


def cmd_project_list(args, repo, conn):
    projects = project_svc.list_projects(repo, only_active=not args.all)
    _print_frame(pd.DataFrame(
        [{"Tag": p.tag, "Name": p.name, "Type": p.type, "Status": p.status_string()} for p in projects],
        columns=["Tag", "Name", "Type", "Status"],
    ))


def cmd_start(args, repo, conn):
    payload = {"tag": args.tag, "name": args.name, "billable": not args.non_billable}
    rec = _logged(conn, "RECORDING_START", payload,
                  lambda log: recording_svc.start_recording(
                      repo, args.tag, args.name, log, billable=not args.non_billable, note=args.note or ""))
    print(f"Recording {rec.id} started at {rec.start_time}.")


def cmd_stop(args, repo, conn):
    rec = _logged(conn, "RECORDING_STOP", {"id": args.id},
                  lambda log: recording_svc.stop_recording(repo, log, args.id))
    print(f"Recording {rec.id} stopped after {rec.hours():.2f} h.")


def cmd_week(args, repo, conn):
    year, week = current_week()
    if args.year is not None:
        year = args.year
    if args.week is not None:
        week = args.week
    recs = report_svc.week_recordings(repo, year, week)

    print(f"\n=== Week {year}-W{week:02d} ===")
    if args.matrix:
        print(report_svc.week_matrix(recs, year, week).to_string())
    else:
        _print_frame(report_svc.recordings_frame(recs))
    totals = report_svc.week_totals(recs)
    print(f"Total: {totals['hours']:.2f} h, billable {totals['billable_hours']:.2f} h")

    if args.export:
        paths = report_svc.export_week(repo, year, week, args.export)
        print("\nCSV exported:", ", ".join(paths))


def cmd_logs(args, repo, conn):
    entity_type, entity_id = None, None
    if args.project:
        entity_type, entity_id = "PROJECT", args.project
    elif args.recording is not None:
        entity_type, entity_id = "RECORDING", str(args.recording)
    total, items = search_logs(conn, args.query, args.action, args.ts_from, args.ts_to, args.page, args.size,
                               entity_type=entity_type, entity_id=entity_id)
    print(f"{total} entries")
    for it in items:
        line = f"{it['ts']} {it['action']} {it['entity_type'] or '-'}:{it['entity_id'] or '-'} {it['result']}"
        if it["err_msg"]:
            line += f" ({it['err_msg']})"
        print(line)


# ---------------- Entry ----------------

def build_parser():
    parser = argparse.ArgumentParser(description="Personal time tracking (SQLite)")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH)
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    sub = parser.add_subparsers()

    p_shell = sub.add_parser("shell", help="interactive shell")
    p_shell.set_defaults(func=cmd_shell)

    p_init = sub.add_parser("init", help="create config and tables")
    p_init.set_defaults(func=cmd_init)

    p_add = sub.add_parser("project-add", help="create a project")
    p_add.add_argument("--tag", required=True)
    p_add.add_argument("--name", required=True)
    p_add.add_argument("--type", default="internal", choices=[v for _, v in project_svc.TYPE_OPTIONS])
    p_add.set_defaults(func=cmd_project_add)

    p_list = sub.add_parser("project-list", help="list projects")
    p_list.add_argument("--all", action="store_true", help="include inactive projects")
    p_list.set_defaults(func=cmd_project_list)

    p_start = sub.add_parser("start", help="start a recording")
    p_start.add_argument("tag")
    p_start.add_argument("name")
    p_start.add_argument("--note", required=False)
    p_start.add_argument("--non-billable", action="store_true")
    p_start.set_defaults(func=cmd_start)

    p_stop = sub.add_parser("stop", help="stop a recording")
    p_stop.add_argument("--id", type=int, required=False, help="default: latest running recording")
    p_stop.set_defaults(func=cmd_stop)

    p_week = sub.add_parser("week", help="weekly report")
    p_week.add_argument("--year", type=int, required=False, help="ISO year (default current)")
    p_week.add_argument("--week", type=int, required=False, help="ISO week (default current)")
    p_week.add_argument("--matrix", action="store_true", help="hours per project and weekday")
    p_week.add_argument("--export", required=False, metavar="DIR", help="also write CSV files to DIR")
    p_week.set_defaults(func=cmd_week)

    p_logs = sub.add_parser("logs", help="search the operation log")
    p_logs.add_argument("--query", required=False)
    p_logs.add_argument("--action", required=False)
    entity = p_logs.add_mutually_exclusive_group()
    entity.add_argument("--project", required=False, metavar="TAG", help="entries for one project")
    entity.add_argument("--recording", type=int, required=False, metavar="ID", help="entries for one recording")
    p_logs.add_argument("--from", dest="ts_from", required=False)
    p_logs.add_argument("--to", dest="ts_to", required=False)
    p_logs.add_argument("--page", type=int, default=1)
    p_logs.add_argument("--size", type=int, default=20)
    p_logs.set_defaults(func=cmd_logs)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    logger.info("Initializing time tracking ...")
    try:
        cfg = ensure_config(args.config)
        check_driver(cfg.get("databaseDriver"))
        db_path = get_db_path(cfg)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error("configuration failed: %s", e)
        return 1
    logger.info("Config initialized, database %s", db_path)

    func = getattr(args, "func", cmd_shell)
    try:
        with get_conn(db_path) as conn:
            repo = SQLiteRepository(conn)
            repo.migrate()
            ensure_log_schema(conn)
            logger.info("Database initialized successfully")
            try:
                func(args, repo, conn)
            except (RepositoryError, ValueError, OverflowError) as e:
                print(f"Error: {e}", file=sys.stderr)
                return 2
    except (RepositoryError, sqlite3.Error) as e:
        logger.error("database failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
