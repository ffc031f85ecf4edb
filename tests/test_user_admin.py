import pytest

import activity_log
import user_admin
from activity_log import ActionKind
from session_report import ReportKind


@pytest.fixture
def typed(monkeypatch):
    """Feed answers to input(); running out behaves like Ctrl-D."""
    def feed(*answers):
        remaining = list(answers)

        def fake_input(prompt=""):
            if not remaining:
                raise EOFError
            return remaining.pop(0)

        monkeypatch.setattr("builtins.input", fake_input)
        return remaining
    return feed


@pytest.fixture
def session(log_file):
    return user_admin.Session(log_file=log_file, history_lines=20)


def test_every_menu_entry_has_a_target():
    for _, entries in user_admin.MENUS.values():
        for key, _ in entries:
            assert key in user_admin.MENUS or key in user_admin.ACTIONS
    # a key in both would open the submenu without running its action
    assert not set(user_admin.MENUS) & set(user_admin.ACTIONS)


def test_create_user_flow(accounts, runner, typed, session, log_lines, monkeypatch):
    def system(cmd):
        runner.calls.append(cmd)
        if cmd[0] == "useradd":
            accounts.add_user(cmd[-1], uid=1000)
        return 0

    monkeypatch.setattr(user_admin.account_commands, "run", system)
    remaining = typed(
        "1", "1",        # users, create
        "alice", "",     # username, no full name
        "",              # default home
        "1",             # /bin/bash
        "",              # same-name primary group
        "",              # after passwd
        "-",             # no supplementary groups
        "0", "0",
    )
    assert user_admin.run_menus(session) == 0
    assert remaining == []
    assert runner.calls == [
        ["useradd", "-d", "/home/alice", "-s", "/bin/bash", "-U", "-m", "alice"],
        ["passwd", "alice"],
        ["usermod", "-G", "", "alice"],
    ]
    actions = [activity_log.parse_line(l).action for l in log_lines()]
    assert actions == ["CREATE", "PASSWORD_CHANGE", "GROUP_MEMBERSHIP"]


def test_invalid_username_runs_nothing(accounts, runner, typed, session, log_lines, capsys):
    typed("1", "1", "Bad Name", "0", "0")
    assert user_admin.run_menus(session) == 0
    assert runner.calls == []
    assert log_lines() == []
    assert "lowercase letters" in capsys.readouterr().err


def test_existing_user_is_rejected_before_questions(accounts, runner, typed, session, capsys):
    accounts.add_user("alice")
    typed("1", "1", "alice", "0", "0")
    user_admin.run_menus(session)
    assert runner.calls == []
    assert "already exists" in capsys.readouterr().err


def test_failed_command_is_reported(accounts, runner, typed, session, log_lines, capsys):
    runner.returncode = 1
    typed("2", "1", "devs", "", "0", "0")
    user_admin.run_menus(session)
    assert runner.calls == [["groupadd", "devs"]]
    assert log_lines() == []
    assert "Failed to create group 'devs'." in capsys.readouterr().err


def test_modify_user_rename(accounts, runner, typed, session):
    accounts.add_user("alice", home="/srv/alice")
    typed(
        "1", "2", "alice",   # users, modify, pick by name
        "1", "alicia",       # rename
        "0", "0", "0",
    )
    user_admin.run_menus(session)
    assert runner.calls == [["usermod", "-l", "alicia", "alice"]]
    assert session.user == "alicia"


def test_modify_group_rename(accounts, runner, typed, session):
    typed(
        "2", "2", "users",   # groups, modify, pick by name
        "1", "staff",        # rename
        "0", "0", "0",
    )
    user_admin.run_menus(session)
    assert runner.calls == [["groupmod", "-n", "staff", "users"]]
    assert session.group == "staff"


def test_delete_group_needs_confirmation(accounts, runner, typed, session):
    typed("2", "3", "users", "n", "0", "0")
    user_admin.run_menus(session)
    assert runner.calls == []


def test_log_filter_by_action(accounts, typed, session, log_file, capsys):
    activity_log.record(ActionKind.CREATE, "alice", "Shell: /bin/bash", actor="root", path=log_file)
    activity_log.record(ActionKind.MODIFY, "alice", "Shell changed", actor="root", path=log_file)
    create_index = str(list(ActionKind).index(ActionKind.CREATE) + 1)
    typed("4", "3", create_index, "", "0", "0")
    user_admin.run_menus(session)
    out = capsys.readouterr().out
    assert "Action: CREATE, Target: alice" in out
    assert "Action: MODIFY" not in out


def test_empty_log_message(accounts, typed, session, capsys):
    typed("4", "1", "0", "0")
    user_admin.run_menus(session)
    assert "No account logs found" in capsys.readouterr().out


def test_ctrl_d_at_main_menu_exits_cleanly(typed, session):
    typed()
    assert user_admin.run_menus(session) == 0


def test_cancel_mid_operation_returns_to_menu(accounts, runner, typed, session):
    remaining = typed("1", "1", "alice")
    # input runs dry at the full-name prompt: that cancels the create and then leaves the menus
    user_admin.run_menus(session)
    assert remaining == []
    assert runner.calls == []


def test_choose_many():
    names = ["adm", "sudo", "users"]
    with pytest.MonkeyPatch.context() as mp:
        mp.setattr("builtins.input", lambda prompt="": "3 sudo")
        assert user_admin.choose_many("t", names, []) == ["users", "sudo"]
        mp.setattr("builtins.input", lambda prompt="": "")
        assert user_admin.choose_many("t", names, ["sudo"]) == ["sudo"]


def test_main_requires_root(monkeypatch, capsys):
    monkeypatch.setattr(user_admin, "is_root", lambda: False)
    assert user_admin.main([]) == 1
    assert "must be run as root" in capsys.readouterr().err


def test_main_requires_terminal(monkeypatch):
    monkeypatch.setattr(user_admin, "is_root", lambda: True)
    monkeypatch.setattr(user_admin, "has_terminal", lambda: False)
    assert user_admin.main([]) == 1


def test_main_requires_account_tools(monkeypatch):
    monkeypatch.setattr(user_admin, "is_root", lambda: True)
    monkeypatch.setattr(user_admin, "has_terminal", lambda: True)
    monkeypatch.setattr(user_admin.shutil, "which", lambda name: None)
    assert user_admin.main([]) == 1


def test_account_removed_after_selection(accounts, runner, session, capsys):
    session.user = "ghost"
    assert user_admin.dispatch(session, "user.modify.fullname") is None
    assert runner.calls == []
    assert "User 'ghost' does not exist." in capsys.readouterr().err


def test_unwritable_log_keeps_the_menus_running(accounts, runner, typed, tmp_path, capsys):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("")
    session = user_admin.Session(log_file=str(blocker / "account_changes.log"), history_lines=20)
    remaining = typed("2", "1", "devs", "", "0", "0")
    assert user_admin.run_menus(session) == 0
    assert remaining == []
    assert runner.calls == [["groupadd", "devs"]]
    assert "activity log could not be written" in capsys.readouterr().err


def test_unreadable_log_shows_empty_message(typed, tmp_path, capsys):
    session = user_admin.Session(log_file=str(tmp_path), history_lines=20)
    typed("4", "1", "0", "0")
    assert user_admin.run_menus(session) == 0
    assert "No account logs found" in capsys.readouterr().out


def test_report_rejects_option_like_user(typed, session, monkeypatch, capsys):
    calls = []
    monkeypatch.setattr(user_admin.session_report.subprocess, "run", lambda cmd, **kw: calls.append(cmd))
    last_login = str(list(ReportKind).index(ReportKind.LAST_LOGIN) + 1)
    typed("3", last_login, "-f/etc/shadow", "0", "0")
    assert user_admin.run_menus(session) == 0
    assert calls == []
    assert "lowercase letters" in capsys.readouterr().err
