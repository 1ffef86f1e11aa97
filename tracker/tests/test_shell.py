"""
Shell tests drive the command loop with scripted input.
"""
import io

from tracker.domain.models import Recording
from tracker.shell import Shell


def run_shell(repo, conn, *lines):
    stdin = io.StringIO("".join(line + "\n" for line in lines))
    stdout = io.StringIO()
    Shell(repo, conn, stdin=stdin, stdout=stdout).run()
    return stdout.getvalue()


def actions(conn):
    return [(r["action"], r["result"]) for r in conn.execute("SELECT action, result FROM operation_log ORDER BY id")]


def test_help_and_invalid_command(repo, conn):
    out = run_shell(repo, conn, "help", "bogus", "exit")
    assert "Available commands:" in out
    assert "Invalid command" in out
    assert "Time Tracking Week:" in out


def test_end_of_input_leaves_shell(repo, conn):
    out = run_shell(repo, conn, "help")
    assert out.count("Time Tracking Week:") == 2


def test_project_new_form(repo, conn):
    out = run_shell(
        repo, conn,
        "project new",
        "",             # empty name is rejected
        "Dagobah",
        "THIS_TAG_IS_TOO_LONG",
        "DAG",
        "2",            # Customer
        "y",
        "exit",
    )
    assert "please enter a name." in out
    assert "tag is too long" in out
    assert "Project created successfully!" in out
    p = repo.get_project_by_tag("DAG")
    assert (p.name, p.type, p.status) == ("Dagobah", "customer", 0)
    assert actions(conn) == [("PROJECT_CREATE", "OK")]


def test_project_new_cancelled(repo, conn):
    out = run_shell(repo, conn, "project new", "Dagobah", "DAG", "", "n", "exit")
    assert "Project creation canceled" in out
    assert repo.all_projects() == []


def test_project_menu_edit_and_filters(repo, conn, dag):
    out = run_shell(
        repo, conn,
        "p",
        "edit",
        "edit NOPE",
        "edit DAG",
        "",             # keep name
        "",             # keep type
        "inactive",
        "y",
        "all",
        "exit",
        "exit",
    )
    assert "Please enter a tag" in out
    assert "Project not found" in out
    assert "Project updated successfully!" in out
    assert "Project List - All Projects" in out
    assert repo.get_project_by_tag("DAG").status_string() == "inactive"
    assert actions(conn) == [("PROJECT_UPDATE", "OK")]


def test_project_menu_delete_keeps_recordings(repo, conn, dag):
    repo.create_recording(Recording(project_tag="DAG", name="build"))
    out = run_shell(repo, conn, "projects", "delete DAG", "exit", "exit")
    assert "Project deleted successfully!" in out
    assert "1 recordings still reference 'DAG'" in out
    assert repo.all_projects() == []


def test_start_stop_and_list(repo, conn, dag):
    out = run_shell(repo, conn, "start DAG build pipeline", "list", "stop", "stop", "exit")
    assert "Recording 1 started" in out
    assert "build pipeline" in out
    assert "Recording 1 stopped" in out
    # second stop has nothing left to stop but the shell keeps running
    assert "Error: no running recording" in out
    assert actions(conn) == [
        ("RECORDING_START", "OK"),
        ("RECORDING_STOP", "OK"),
        ("RECORDING_STOP", "ERROR"),
    ]


def test_start_on_unknown_project_is_reported(repo, conn):
    out = run_shell(repo, conn, "start NOPE work", "start", "exit")
    assert "Error: row not exists" in out
    assert "Usage: start <tag> <name...>" in out
    assert repo.all_recordings() == []


def test_week_views(repo, conn, dag):
    import datetime as dt
    start = dt.datetime(2024, 3, 5, 9, 0)
    repo.create_recording(Recording(project_tag="DAG", name="build", start_time=start,
                                    end_time=start + dt.timedelta(hours=3), billable=True))
    out = run_shell(repo, conn, "week 2024 10", "w m 2024 10", "week 2024 11", "exit")
    assert "Recordings 2024-W10" in out
    assert "Total: 3.00 h (billable 3.00 h, non-billable 0.00 h)" in out
    assert "Week matrix 2024-W10" in out
    assert "Total week: 3.00" in out
    assert "(empty)" in out


def test_bad_week_arguments_keep_shell_running(repo, conn):
    out = run_shell(repo, conn, "w 0 1", "w 2024 99999999", "w m 0 1", "help", "exit")
    assert out.count("Error:") == 3
    assert "Available commands:" in out
    assert out.count("Time Tracking Week:") == 5
