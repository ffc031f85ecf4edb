#!/usr/bin/env python3
"""
user_admin.py: interactive user and group administration for Linux.

Menus for creating, modifying and deleting users and groups, setting
passwords and memberships, reading login/session reports and browsing the
account activity log. Every change is made with the standard shadow-utils
commands and written to the activity log once it succeeds.

Requires root and an interactive terminal.

Examples:
  sudo python user_admin.py
  sudo python user_admin.py --log-file /tmp/account_changes.log --verbose
  sudo python user_admin.py --history-lines 100

Exit codes:
    0 - Quit from the main menu
    1 - Not root, no terminal, or account tools missing
"""

import argparse
import os
import shutil
import sys
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import account_commands
import account_db
import activity_log
import session_report
from account_validation import AccountError, require_username, validate_gid
from account_commands import PreconditionError
from activity_log import ACTION_LABELS, ActionKind
from session_report import ReportKind

REQUIRED_TOOLS = ["useradd", "usermod", "userdel", "groupadd", "groupmod", "groupdel", "passwd", "gpasswd"]

SHELLS = [
    ("/bin/bash", "Bash shell"),
    ("/bin/sh", "Bourne shell"),
    ("/bin/zsh", "Z shell"),
    ("/bin/dash", "Debian Almquist shell"),
    ("/usr/bin/fish", "Friendly Interactive Shell"),
    ("/sbin/nologin", "No login"),
]

QUIT = "quit"

HELP_TEXT = """\
Linux User Account Management

User management:
- Create user: new account with full name, home, shell and primary group
- Modify user: username, full name, home directory, shell, password, groups
- Delete user: remove an account, optionally with its home directory
- Set password: runs passwd directly on the terminal
- Supplementary groups: choose the exact set of groups of a user
- User information: uid, gid, home, shell and groups

Group management:
- Create group: optional explicit GID
- Modify group: rename it or choose its members
- Delete group
- Group information: gid and members

Reports:
- Login history (last), failed logins (lastb), active sessions,
  last login (lastlog) and connect time (ac), per user or for all users

Account activity log:
- Every successful change, filterable by user or action

Ctrl-D or Ctrl-C at a prompt cancels the current operation.
See also: man useradd, usermod, userdel, passwd, groupadd, groupmod, groupdel, gpasswd"""


class Cancelled(Exception):
    pass


class Session:
    """State shared by the menus during one run."""

    def __init__(self, log_file: Optional[str] = None, history_lines: int = session_report.HISTORY_LINES):
        self.log_file = log_file
        self.history_lines = history_lines
        self.user: Optional[str] = None
        self.group: Optional[str] = None


# ------------- Prompts -------------

def ask(prompt: str, default: str = "") -> str:
    suffix = f" [{default}]" if default else ""
    try:
        answer = input(f"{prompt}{suffix}: ").strip()
    except (EOFError, KeyboardInterrupt):
        print()
        raise Cancelled()
    return answer or default


def confirm(prompt: str, default: bool = False) -> bool:
    hint = "Y/n" if default else "y/N"
    answer = ask(f"{prompt} ({hint})").lower()
    if not answer:
        return default
    return answer in ("y", "yes")


def press_enter() -> None:
    try:
        input("\nPress Enter to continue...")
    except (EOFError, KeyboardInterrupt):
        print()


def show_message(text: str) -> None:
    print(f"\n{text}")


def show_error(text: str) -> None:
    print(f"\n[!] {text}", file=sys.stderr)


def show_text(title: str, text: str) -> None:
    print(f"\n--- {title} ---")
    print(text)
    press_enter()


def choose(title: str, entries: Sequence[Tuple[str, str]], back_label: str = "Back") -> Optional[str]:
    """Numbered menu over (key, label) pairs. Returns the key, or None for back."""
    while True:
        print(f"\n--- {title} ---")
        for i, (_, label) in enumerate(entries, 1):
            print(f"{i}) {label}")
        print(f"0) {back_label}")
        op = ask("Select an option")
        if op in ("0", "q"):
            return None
        if op.isdigit() and 1 <= int(op) <= len(entries):
            return entries[int(op) - 1][0]
        keys = [k for k, _ in entries]
        if op in keys:
            return op
        print("Invalid option")


def choose_name(title: str, names: Sequence[str], kind: str) -> str:
    """Pick one name from a list, by number or by typing it."""
    if not names:
        raise PreconditionError(f"There is no {kind} to select.")
    choice = choose(title, [(n, n) for n in names])
    if choice is None:
        raise Cancelled()
    return choice


def choose_many(title: str, names: Sequence[str], selected: Sequence[str]) -> List[str]:
    """Checklist. Enter keeps the current selection, '-' selects nothing."""
    print(f"\n--- {title} ---")
    for i, name in enumerate(names, 1):
        mark = "x" if name in selected else " "
        print(f"{i:>3}) [{mark}] {name}")
    print("Numbers or names separated by spaces. Enter keeps the current selection, '-' selects none.")
    while True:
        answer = ask("Selection")
        if not answer:
            return [n for n in names if n in selected]
        if answer == "-":
            return []
        picked, bad = [], []
        for token in answer.replace(",", " ").split():
            if token.isdigit() and 1 <= int(token) <= len(names):
                token = names[int(token) - 1]
            if token in names:
                if token not in picked:
                    picked.append(token)
            else:
                bad.append(token)
        if not bad:
            return picked
        print(f"Unknown entries: {' '.join(bad)}")


# ------------- Users -------------

def select_user(title: str) -> str:
    return choose_name(title, account_db.list_login_users(), "user")


def select_group(title: str) -> str:
    return choose_name(title, account_db.list_groups(), "group")


def select_shell(title: str) -> str:
    shell = choose(title, SHELLS)
    if shell is None:
        raise Cancelled()
    return shell


def edit_user_groups(session: Session, username: str) -> None:
    current = account_db.supplementary_groups(username)
    groups = choose_many(f"Groups for user '{username}'", account_db.list_groups(), current)
    account_commands.set_supplementary_groups(username, groups, log_file=session.log_file)
    if groups:
        show_message(f"User '{username}' is now in groups: {' '.join(groups)}")
    else:
        show_message(f"User '{username}' removed from all supplementary groups.")


def create_user(session: Session) -> None:
    username = require_username(ask("Enter username"))
    if account_db.user_exists(username):
        raise PreconditionError(f"User '{username}' already exists.")
    full_name = ask("Enter full name (optional)")
    home = ask("Enter home directory", account_db.default_home(username))
    shell = select_shell("Select default shell")
    primary_group = None
    if not confirm("Create a primary group with the same name as the user?", default=True):
        primary_group = select_group("Select primary group")

    account_commands.create_user(
        username, shell=shell, home=home, full_name=full_name,
        primary_group=primary_group, log_file=session.log_file,
    )
    show_message(f"User '{username}' created successfully.")

    # A failed follow-up step leaves the new account in place
    try:
        account_commands.change_password(username, log_file=session.log_file)
    except AccountError as e:
        show_error(str(e))
    try:
        edit_user_groups(session, username)
    except AccountError as e:
        show_error(str(e))
    except Cancelled:
        pass


def modify_user(session: Session) -> str:
    session.user = select_user("Select user to modify")
    return "user.modify.menu"


def rename_user(session: Session) -> None:
    old = session.user
    new = require_username(ask("Enter new username", old))
    if new == old:
        return
    moved = account_commands.rename_user(old, new, log_file=session.log_file)
    session.user = new
    show_message(f"Username changed from '{old}' to '{new}'.")
    if moved:
        show_message(f"Home directory moved to {account_db.default_home(new)}.")


def change_full_name(session: Session) -> None:
    current = account_commands.lookup_user(session.user).full_name
    full_name = ask("Enter new full name", current)
    account_commands.change_full_name(session.user, full_name, log_file=session.log_file)
    show_message(f"Full name changed for user '{session.user}'.")


def change_home(session: Session) -> None:
    current = account_commands.lookup_user(session.user).home
    home = ask("Enter new home directory", current)
    move_files = confirm("Move the contents of the old home directory to the new one?")
    account_commands.change_home(session.user, home, move_files, log_file=session.log_file)
    show_message(f"Home directory changed for user '{session.user}'.")


def change_shell(session: Session) -> None:
    shell = select_shell("Select new shell")
    account_commands.change_shell(session.user, shell, log_file=session.log_file)
    show_message(f"Shell changed for user '{session.user}'.")


def change_password(session: Session) -> None:
    account_commands.change_password(session.user, log_file=session.log_file)
    show_message(f"Password updated for user '{session.user}'.")


def change_groups(session: Session) -> None:
    edit_user_groups(session, session.user)


def set_password(session: Session) -> None:
    session.user = select_user("Select user to set password")
    change_password(session)


def user_groups(session: Session) -> None:
    session.user = select_user("Select user")
    change_groups(session)


def delete_user(session: Session) -> None:
    username = select_user("Select user to delete")
    if not confirm(f"Are you sure you want to delete user '{username}'?"):
        return
    remove_home = confirm(f"Remove the home directory of user '{username}'?")
    account_commands.delete_user(username, remove_home, log_file=session.log_file)
    show_message(f"User '{username}' deleted successfully.")


def format_user_info(user: account_db.UserRecord) -> str:
    return "\n".join([
        f"Username: {user.username}",
        f"User ID: {user.uid}",
        f"Full Name: {user.full_name}",
        f"Home Directory: {user.home}",
        f"Shell: {user.shell}",
        f"Primary Group: {user.primary_group} (GID: {user.gid})",
        f"Supplementary Groups: {' '.join(user.groups)}",
    ])


def user_info(session: Session) -> None:
    username = select_user("Select user to display information")
    user = account_commands.lookup_user(username)
    show_text(f"User Information: {username}", format_user_info(user))


# ------------- Groups -------------

def create_group(session: Session) -> None:
    groupname = ask("Enter group name")
    if not groupname:
        raise PreconditionError("Group name cannot be empty.")
    if account_db.group_exists(groupname):
        raise PreconditionError(f"Group '{groupname}' already exists.")
    gid = validate_gid(ask("Enter GID (optional, leave empty for automatic assignment)"))
    account_commands.create_group(groupname, gid, log_file=session.log_file)
    show_message(f"Group '{groupname}' created successfully.")


def modify_group(session: Session) -> str:
    session.group = select_group("Select group to modify")
    return "group.modify.menu"


def rename_group(session: Session) -> None:
    old = session.group
    new = ask("Enter new group name", old)
    if new == old:
        return
    account_commands.rename_group(old, new, log_file=session.log_file)
    session.group = new
    show_message(f"Group name changed from '{old}' to '{new}'.")


def group_members(session: Session) -> None:
    current = account_commands.lookup_group(session.group).members
    members = choose_many(f"Members of group '{session.group}'", account_db.list_login_users(), current)
    account_commands.set_group_members(session.group, members, log_file=session.log_file)
    show_message(f"Members of group '{session.group}' updated successfully.")


def delete_group(session: Session) -> None:
    groupname = select_group("Select group to delete")
    if not confirm(f"Are you sure you want to delete group '{groupname}'?"):
        return
    account_commands.delete_group(groupname, log_file=session.log_file)
    show_message(f"Group '{groupname}' deleted successfully.")


def group_info(session: Session) -> None:
    groupname = select_group("Select group to display information")
    group = account_commands.lookup_group(groupname)
    text = f"Group Name: {group.name}\nGroup ID: {group.gid}\nMembers: {' '.join(group.members)}"
    show_text(f"Group Information: {groupname}", text)


# ------------- Reports and log -------------

def report_action(kind: ReportKind) -> Callable[[Session], None]:
    def action(session: Session) -> None:
        user = ask("User to report on (empty for all users)") or None
        result = session_report.report(kind, user, session.history_lines)
        show_text(result.title, result.text)
    return action


def show_log(title: str, entries: List[activity_log.LogEntry]) -> None:
    if not entries:
        show_message("No account logs found for the selected filter.")
        return
    show_text(title, activity_log.format_entries(entries))


def log_all(session: Session) -> None:
    show_log("Account Activity Logs - All Activities", activity_log.read_entries(session.log_file))


def log_by_user(session: Session) -> None:
    target = ask("User or group name")
    if not target:
        raise Cancelled()
    entries = activity_log.filter_by_target(activity_log.read_entries(session.log_file), target)
    show_log(f"Account Activity Logs - User: {target}", entries)


def log_by_action(session: Session) -> None:
    action = choose("Select action", [(k.value, f"{k.value} - {ACTION_LABELS[k]}") for k in ActionKind])
    if action is None:
        raise Cancelled()
    entries = activity_log.filter_by_action(activity_log.read_entries(session.log_file), ActionKind(action))
    show_log(f"Account Activity Logs - Action: {action}", entries)


def show_help(session: Session) -> None:
    show_text("Help", HELP_TEXT)


def quit_app(session: Session) -> str:
    print("Exiting...")
    return QUIT


# ------------- Menu tables -------------

MENUS: Dict[str, Tuple[str, List[Tuple[str, str]]]] = {
    "main": ("User Account Management", [
        ("users", "User management"),
        ("groups", "Group management"),
        ("reports", "Login and session reports"),
        ("log", "Account activity log"),
        ("help", "Help"),
        ("quit", "Exit"),
    ]),
    "users": ("User Management", [
        ("user.create", "Create user"),
        ("user.modify", "Modify user"),
        ("user.delete", "Delete user"),
        ("user.password", "Set password"),
        ("user.groups", "Supplementary groups"),
        ("user.info", "Display user information"),
    ]),
    "user.modify.menu": ("Modify User: {user}", [
        ("user.modify.rename", "Change username"),
        ("user.modify.fullname", "Change full name"),
        ("user.modify.home", "Change home directory"),
        ("user.modify.shell", "Change shell"),
        ("user.modify.password", "Change password"),
        ("user.modify.groups", "Modify group membership"),
    ]),
    "groups": ("Group Management", [
        ("group.create", "Create group"),
        ("group.modify", "Modify group"),
        ("group.delete", "Delete group"),
        ("group.info", "Display group information"),
    ]),
    "group.modify.menu": ("Modify Group: {group}", [
        ("group.modify.rename", "Change group name"),
        ("group.modify.members", "Modify group members"),
    ]),
    "reports": ("Login and Session Reports", [
        (f"report.{kind.name.lower()}", kind.value) for kind in ReportKind
    ]),
    "log": ("Account Activity Logs", [
        ("log.all", "All activities"),
        ("log.user", "Filter by user"),
        ("log.action", "Filter by action"),
    ]),
}

ACTIONS: Dict[str, Callable[[Session], Optional[str]]] = {
    "user.create": create_user,
    "user.modify": modify_user,
    "user.delete": delete_user,
    "user.password": set_password,
    "user.groups": user_groups,
    "user.info": user_info,
    "user.modify.rename": rename_user,
    "user.modify.fullname": change_full_name,
    "user.modify.home": change_home,
    "user.modify.shell": change_shell,
    "user.modify.password": change_password,
    "user.modify.groups": change_groups,
    "group.create": create_group,
    "group.modify": modify_group,
    "group.delete": delete_group,
    "group.info": group_info,
    "group.modify.rename": rename_group,
    "group.modify.members": group_members,
    "log.all": log_all,
    "log.user": log_by_user,
    "log.action": log_by_action,
    "help": show_help,
    "quit": quit_app,
}
ACTIONS.update({f"report.{kind.name.lower()}": report_action(kind) for kind in ReportKind})


def dispatch(session: Session, action: str) -> Optional[str]:
    """Run one menu action. Errors end the action, never the program."""
    try:
        return ACTIONS[action](session)
    except Cancelled:
        show_message("Cancelled.")
    except AccountError as e:
        show_error(str(e))
    return None


def run_menus(session: Session) -> int:
    stack = ["main"]
    while stack:
        menu_id = stack[-1]
        title, entries = MENUS[menu_id]
        title = title.format(user=session.user, group=session.group)
        try:
            choice = choose(title, entries, back_label="Exit" if len(stack) == 1 else "Back")
        except Cancelled:
            choice = None
        if choice is None:
            stack.pop()
            continue
        if choice in MENUS:
            stack.append(choice)
            continue
        nxt = dispatch(session, choice)
        if nxt == QUIT:
            break
        if nxt in MENUS:
            stack.append(nxt)
    return 0


# ------------- Entry point -------------

def is_root() -> bool:
    return os.geteuid() == 0


def has_terminal() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


def missing_tools() -> List[str]:
    return [t for t in REQUIRED_TOOLS if shutil.which(t) is None]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Interactive Linux user and group administration.")
    p.add_argument("--log-file", default=activity_log.LOG_FILE,
                   help=f"Account activity log (default: {activity_log.LOG_FILE}).")
    p.add_argument("--history-lines", type=int, default=session_report.HISTORY_LINES,
                   help="Maximum lines shown by history reports.")
    p.add_argument("--verbose", action="store_true", help="Echo each system command before running it.")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if not is_root():
        print("This script must be run as root.", file=sys.stderr)
        return 1
    if not has_terminal():
        print("An interactive terminal is required.", file=sys.stderr)
        return 1
    missing = missing_tools()
    if missing:
        print(f"Required account tools not found: {' '.join(missing)}", file=sys.stderr)
        return 1

    account_commands.VERBOSE = args.verbose
    session = Session(log_file=args.log_file, history_lines=max(1, args.history_lines))
    return run_menus(session)


if __name__ == "__main__":
    sys.exit(main())
