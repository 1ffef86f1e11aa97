"""
Interactive terminal shell.

Reads one command per line, calls the services and prints pandas tables.
A failing command is reported and recorded in the operation log; the
shell itself keeps running.
"""
from __future__ import annotations

import logging
import sys
from sqlite3 import Connection
from typing import Callable, Optional, TextIO

import pandas as pd

from .domain.week import current_week
from .logs import LogContext
from .repository import NotExistsError, RepositoryError, SQLiteRepository
from .services import project_svc, recording_svc, report_svc

logger = logging.getLogger(__name__)

VERSION = "0.1.0"
PROMPT = "Enter command: -> "
RULE = "================================="

HELP = [
    "Available commands:",
    " week | w [year week]:          finished recordings of the week",
    " week matrix | w m [year week]: hours per project and weekday",
    " project | projects | p:        project menu",
    " project new:                   create a project",
    " start <tag> <name...>:         start a recording",
    " stop [id]:                     stop a recording (default: latest running)",
    " list [tag]:                    list recordings",
    " exit:                          leave the application",
]


class Shell:
    def __init__(
        self,
        repo: SQLiteRepository,
        conn: Connection,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
    ):
        self.repo = repo
        self.conn = conn
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.only_active = True

    # ---------------- io helpers ----------------

    def out(self, *parts) -> None:
        print(*parts, file=self.stdout)

    def read_line(self, prompt: str = PROMPT) -> Optional[str]:
        """Next input line without the line ending; None at end of input."""
        self.stdout.write(prompt)
        self.stdout.flush()
        line = self.stdin.readline()
        if not line:
            return None
        return line.rstrip("\r\n").strip()

    def table(self, frame: pd.DataFrame, index: bool = False) -> None:
        if frame.empty:
            self.out("(empty)")
        else:
            self.out(frame.to_string(index=index))

    def run_action(self, action: str, fn: Callable[[LogContext], object], payload=None):
        """Run one mutating action under an operation-log entry.

        Returns fn's result, or None when it failed (the error is printed).
        """
        log = LogContext(action)
        log.set_payload(payload)
        try:
            result = fn(log)
        except (RepositoryError, ValueError) as e:
            logger.debug("%s failed: %s", action, e)
            log.write(self.conn, "ERROR", str(e))
            self.out(f"Error: {e}")
            return None
        log.write(self.conn, "OK")
        return result

    def run_query(self, fn: Callable[[], None]) -> None:
        """Run a read-only command; a failure is printed instead of raised."""
        try:
            fn()
        except (RepositoryError, ValueError, OverflowError) as e:
            logger.debug("query failed: %s", e)
            self.out(f"Error: {e}")

    # ---------------- form widgets ----------------

    def ask(self, title: str, validate: Callable[[str], Optional[str]] = None, default: str = "") -> Optional[str]:
        while True:
            hint = f" [{default}]" if default else ""
            value = self.read_line(f"{title}{hint}: ")
            if value is None:
                return None
            if not value and default:
                value = default
            err = validate(value) if validate else None
            if err is None:
                return value
            self.out(err)

    def select(self, title: str, options: list, default=None):
        """Pick one (label, value) option by number or label; empty input keeps default."""
        self.out(title)
        for i, (label, value) in enumerate(options, 1):
            mark = "*" if value == default else " "
            self.out(f" {mark}{i}) {label}")
        while True:
            choice = self.read_line("> ")
            if choice is None:
                return None
            if not choice and default is not None:
                return default
            if choice.isdigit() and 1 <= int(choice) <= len(options):
                return options[int(choice) - 1][1]
            for label, value in options:
                if choice.lower() in (label.lower(), str(value).lower()):
                    return value
            self.out("invalid choice")

    def confirm(self, title: str) -> bool:
        answer = self.read_line(f"{title} (y/N): ")
        return (answer or "").lower() in ("y", "yes")

    # ---------------- main loop ----------------

    def run(self) -> None:
        self.out(f"Time Tracking version: {VERSION}")
        self.out("---------------------------------")
        self.out("Time Tracking is ready to use!")
        self.out("---------------------------------")
        while True:
            self.print_top_bar()
            text = self.read_line()
            if text is None or not self.dispatch(text):
                break

    def print_top_bar(self) -> None:
        year, week = current_week()
        self.out(RULE)
        self.out(f"Time Tracking Week: {week} Year: {year}")

    def dispatch(self, text: str) -> bool:
        """Handle one command line; False ends the shell."""
        args = text.split()
        if not args:
            return True
        cmd = args[0].lower()
        if text == "exit":
            return False
        if text == "help":
            for line in HELP:
                self.out(line)
        elif cmd in ("week", "w"):
            self.run_query(lambda: self.show_week(args[1:]))
        elif text == "project new":
            self.add_project_form()
        elif text in ("project list", "projects", "project", "p"):
            self.project_menu()
        elif cmd == "start":
            self.start_recording(args[1:])
        elif cmd == "stop":
            self.stop_recording(args[1:])
        elif cmd == "list":
            tag = args[1] if len(args) > 1 else None
            self.run_query(lambda: self.table(
                report_svc.recordings_frame(recording_svc.list_recordings(self.repo, tag))))
        else:
            self.out("Invalid command")
        return True

    # ---------------- recordings ----------------

    def start_recording(self, args: list[str]) -> None:
        if len(args) < 2:
            self.out("Usage: start <tag> <name...>")
            return
        tag, name = args[0], " ".join(args[1:])
        rec = self.run_action(
            "RECORDING_START",
            lambda log: recording_svc.start_recording(self.repo, tag, name, log),
            {"tag": tag, "name": name},
        )
        if rec is not None:
            self.out(f"Recording {rec.id} started at {rec.start_time:%H:%M}")

    def stop_recording(self, args: list[str]) -> None:
        rec_id = None
        if args:
            if not args[0].isdigit():
                self.out("Usage: stop [id]")
                return
            rec_id = int(args[0])
        rec = self.run_action(
            "RECORDING_STOP",
            lambda log: recording_svc.stop_recording(self.repo, log, rec_id),
            {"id": rec_id},
        )
        if rec is not None:
            self.out(f"Recording {rec.id} stopped after {rec.hours():.2f} h")

    def show_week(self, args: list[str]) -> None:
        matrix = bool(args) and args[0].lower() in ("matrix", "m")
        if matrix:
            args = args[1:]
        year, week = current_week()
        if len(args) >= 2 and args[0].isdigit() and args[1].isdigit():
            year, week = int(args[0]), int(args[1])
        recs = report_svc.week_recordings(self.repo, year, week)
        totals = report_svc.week_totals(recs)
        if matrix:
            self.out(f"Week matrix {year}-W{week:02d}")
            self.table(report_svc.week_matrix(recs, year, week), index=True)
            self.out(f"Total week: {totals['hours']:.2f}")
        else:
            self.out(f"Recordings {year}-W{week:02d}")
            self.table(report_svc.recordings_frame(recs))
            self.out(
                f"Total: {totals['hours']:.2f} h "
                f"(billable {totals['billable_hours']:.2f} h, non-billable {totals['non_billable_hours']:.2f} h)"
            )

    # ---------------- projects ----------------

    def print_project_list(self) -> None:
        projects = project_svc.list_projects(self.repo, self.only_active)
        self.out("Project List - Active Projects" if self.only_active else "Project List - All Projects")
        frame = pd.DataFrame(
            [{"Tag": p.tag, "Name": p.name, "Type": p.type, "Status": p.status_string()} for p in projects],
            columns=["Tag", "Name", "Type", "Status"],
        )
        self.table(frame)

    def project_menu(self) -> None:
        while True:
            self.print_project_list()
            self.out("Available commands: [new, edit (tag), delete (tag), all, active, exit]")
            text = self.read_line()
            if text is None or text.startswith("exit"):
                return
            args = text.split()
            cmd = args[0] if args else ""
            if cmd == "new":
                self.add_project_form()
            elif cmd in ("edit", "delete"):
                if len(args) < 2:
                    self.out("Please enter a tag")
                    continue
                tag = args[1]
                try:
                    self.repo.get_project_by_tag(tag)
                except NotExistsError:
                    self.out("Project not found")
                    continue
                if cmd == "edit":
                    self.edit_project_form(tag)
                else:
                    self.delete_project(tag)
            elif cmd == "all":
                self.only_active = False
            elif cmd == "active":
                self.only_active = True
            else:
                self.out("Invalid command")

    def add_project_form(self) -> None:
        name = self.ask("Project name", project_svc.validate_name)
        if name is None:
            return
        tag = self.ask("Project tag", lambda s: project_svc.validate_tag(self.repo, s))
        if tag is None:
            return
        ptype = self.select("Project type", project_svc.TYPE_OPTIONS, default="internal")
        if ptype is None or not self.confirm("Create new project?"):
            self.out("Project creation canceled")
            return
        self.out("Creating project ...")
        project = self.run_action(
            "PROJECT_CREATE",
            lambda log: project_svc.create_project(self.repo, tag, name, ptype, log),
            {"tag": tag, "name": name, "type": ptype},
        )
        if project is not None:
            self.out("Project created successfully!")

    def edit_project_form(self, tag: str) -> None:
        project = self.repo.get_project_by_tag(tag)
        self.out(f"Edit project '{tag}'")
        name = self.ask("Project name", project_svc.validate_name, default=project.name)
        if name is None:
            return
        ptype = self.select("Project type", project_svc.TYPE_OPTIONS, default=project.type)
        if ptype is None:
            return
        status = self.select("Status", project_svc.STATUS_OPTIONS, default=project.status)
        if status is None or not self.confirm("Save project?"):
            self.out("Project update canceled")
            return
        self.out(f"Editing project {tag} ...")
        updated = self.run_action(
            "PROJECT_UPDATE",
            lambda log: project_svc.update_project(self.repo, tag, name, ptype, status, log),
            {"tag": tag, "name": name, "type": ptype, "status": status},
        )
        if updated is not None:
            self.out("Project updated successfully!")

    def delete_project(self, tag: str) -> None:
        orphaned = self.run_action(
            "PROJECT_DELETE",
            lambda log: project_svc.delete_project(self.repo, tag, log),
            {"tag": tag},
        )
        if orphaned is None:
            return
        self.out("Project deleted successfully!")
        if orphaned:
            self.out(f"{orphaned} recordings still reference '{tag}' and are kept.")
