#!/usr/bin/env python3
# Privileged account changes. Each operation checks its preconditions,
# runs exactly one system command (argument list, never a shell string)
# and records one activity-log line if, and only if, the command succeeded.

import shlex
import subprocess
import sys
from contextlib import contextmanager
from typing import Iterable, List, Optional

import account_db
import activity_log
from account_validation import AccountError, require_groupname, require_username
from activity_log import ActionKind

VERBOSE = False


class PreconditionError(AccountError):
    pass


class CommandError(AccountError):
    def __init__(self, operation: str, target: str, returncode: Optional[int] = None):
        self.operation = operation
        self.target = target
        self.returncode = returncode
        super().__init__(f"Failed to {operation} '{target}'.")


class LogWriteError(AccountError):
    """The system change went through but its log line did not."""


def run(cmd: List[str]) -> Optional[int]:
    """Run a command and return its exit status, or None if the binary is missing."""
    if VERBOSE:
        print("+ " + shlex.join(cmd), file=sys.stderr)
    try:
        return subprocess.run(cmd, check=False).returncode
    except FileNotFoundError:
        return None


def execute(cmd: List[str], operation: str, target: str) -> None:
    rc = run(cmd)
    if rc != 0:
        raise CommandError(operation, target, rc)


@contextmanager
def terminal_handoff(title: str):
    """Hand the terminal to an interactive program, then give it back to the menus."""
    if sys.stdout.isatty():
        run(["clear"])
    print(title)
    try:
        yield
    finally:
        try:
            input("\nPress Enter to continue...")
        except EOFError:
            pass


def _require_user(username: str) -> None:
    if not account_db.user_exists(username):
        raise PreconditionError(f"User '{username}' does not exist.")


def _require_group(groupname: str) -> None:
    if not account_db.group_exists(groupname):
        raise PreconditionError(f"Group '{groupname}' does not exist.")


def lookup_user(username: str) -> account_db.UserRecord:
    try:
        return account_db.get_user(username)
    except KeyError:
        raise PreconditionError(f"User '{username}' does not exist.") from None


def lookup_group(groupname: str) -> account_db.GroupRecord:
    try:
        return account_db.get_group(groupname)
    except KeyError:
        raise PreconditionError(f"Group '{groupname}' does not exist.") from None


def _record(action: ActionKind, target: str, detail: str, log_file: Optional[str]) -> None:
    try:
        activity_log.record(action, target, detail, path=log_file)
    except OSError as e:
        raise LogWriteError(
            f"Change to '{target}' was applied but the activity log could not be written: {e}"
        ) from e


def _yes_no(flag: bool) -> str:
    return "yes" if flag else "no"


# ------------- Users -------------

def create_user(
    username: str,
    shell: str = "",
    home: str = "",
    full_name: str = "",
    primary_group: Optional[str] = None,
    log_file: Optional[str] = None,
) -> None:
    """Create a user. Without primary_group a same-name group is created (-U)."""
    require_username(username)
    if account_db.user_exists(username):
        raise PreconditionError(f"User '{username}' already exists.")
    if primary_group is not None:
        _require_group(primary_group)
    elif account_db.group_exists(username):
        # useradd -U refuses to reuse an existing group
        raise PreconditionError(
            f"Group '{username}' already exists; choose it as the primary group instead."
        )

    cmd = ["useradd"]
    if home:
        cmd += ["-d", home]
    if shell:
        cmd += ["-s", shell]
    if full_name:
        cmd += ["-c", full_name]
    cmd += ["-g", primary_group] if primary_group is not None else ["-U"]
    cmd += ["-m", username]
    execute(cmd, "create user", username)

    home = home or account_db.default_home(username)
    _record(ActionKind.CREATE, username, f"Shell: {shell or 'default'}, Home: {home}", log_file)


def rename_user(old: str, new: str, log_file: Optional[str] = None) -> bool:
    """Rename a user. Returns True if the home directory was relocated as well.

    Only a home that follows the /home/<name> convention moves with the
    account; a custom home path is left alone.
    """
    require_username(new)
    _require_user(old)
    if new != old and account_db.user_exists(new):
        raise PreconditionError(f"User '{new}' already exists.")

    current_home = lookup_user(old).home
    move_home = current_home == account_db.default_home(old)
    cmd = ["usermod", "-l", new]
    if move_home:
        cmd += ["-d", account_db.default_home(new), "-m"]
    cmd.append(old)
    execute(cmd, "rename user", old)

    detail = f"New username: {new}"
    if move_home:
        detail += f", home moved to {account_db.default_home(new)}"
    _record(ActionKind.RENAME, old, detail, log_file)
    return move_home


def change_full_name(username: str, full_name: str, log_file: Optional[str] = None) -> None:
    _require_user(username)
    old = lookup_user(username).full_name
    execute(["usermod", "-c", full_name, username], "change full name of", username)
    _record(
        ActionKind.MODIFY, username, f"Full name changed from '{old}' to '{full_name}'", log_file
    )


def change_home(username: str, home: str, move_files: bool = False, log_file: Optional[str] = None) -> None:
    _require_user(username)
    if not home:
        raise PreconditionError("Home directory cannot be empty.")
    old = lookup_user(username).home
    cmd = ["usermod", "-d", home]
    if move_files:
        cmd.append("-m")
    cmd.append(username)
    execute(cmd, "change home directory of", username)
    _record(
        ActionKind.MODIFY,
        username,
        f"Home changed from '{old}' to '{home}', files moved: {_yes_no(move_files)}",
        log_file,
    )


def change_shell(username: str, shell: str, log_file: Optional[str] = None) -> None:
    _require_user(username)
    if not shell:
        raise PreconditionError("Shell cannot be empty.")
    old = lookup_user(username).shell
    execute(["usermod", "-s", shell, username], "change shell of", username)
    _record(ActionKind.MODIFY, username, f"Shell changed from '{old}' to '{shell}'", log_file)


def change_password(username: str, log_file: Optional[str] = None) -> None:
    """Run passwd on the real terminal; the menus are suspended meanwhile."""
    _require_user(username)
    with terminal_handoff(f"Setting password for user '{username}':"):
        rc = run(["passwd", username])
    if rc != 0:
        raise CommandError("change password of", username, rc)
    _record(ActionKind.PASSWORD_CHANGE, username, "Password modified", log_file)


def set_supplementary_groups(username: str, groups: Iterable[str], log_file: Optional[str] = None) -> None:
    """Replace the full supplementary group list. An empty selection clears it."""
    _require_user(username)
    groups = list(groups)
    for g in groups:
        _require_group(g)
    execute(["usermod", "-G", ",".join(groups), username], "set groups of", username)
    if groups:
        detail = f"Groups set to: {' '.join(groups)}"
    else:
        detail = "Removed from all supplementary groups"
    _record(ActionKind.GROUP_MEMBERSHIP, username, detail, log_file)


def delete_user(username: str, remove_home: bool = False, log_file: Optional[str] = None) -> None:
    _require_user(username)
    cmd = ["userdel"]
    if remove_home:
        cmd.append("-r")
    cmd.append(username)
    execute(cmd, "delete user", username)
    _record(
        ActionKind.DELETE, username, f"Home directory removed: {_yes_no(remove_home)}", log_file
    )


# ------------- Groups -------------

def create_group(groupname: str, gid: Optional[int] = None, log_file: Optional[str] = None) -> Optional[int]:
    """Create a group and return the gid it ended up with."""
    require_groupname(groupname)
    if account_db.group_exists(groupname):
        raise PreconditionError(f"Group '{groupname}' already exists.")
    cmd = ["groupadd"]
    if gid is not None:
        cmd += ["-g", str(gid)]
    cmd.append(groupname)
    execute(cmd, "create group", groupname)

    try:
        gid = account_db.get_group(groupname).gid
    except KeyError:
        pass
    _record(ActionKind.CREATE_GROUP, groupname, f"GID: {gid if gid is not None else 'auto'}", log_file)
    return gid


def rename_group(old: str, new: str, log_file: Optional[str] = None) -> None:
    require_groupname(new)
    _require_group(old)
    if new != old and account_db.group_exists(new):
        raise PreconditionError(f"Group '{new}' already exists.")
    execute(["groupmod", "-n", new, old], "rename group", old)
    _record(ActionKind.RENAME_GROUP, old, f"New name: {new}", log_file)


def set_group_members(groupname: str, members: Iterable[str], log_file: Optional[str] = None) -> None:
    """Replace the member list of a group. An empty selection empties it."""
    _require_group(groupname)
    members = list(members)
    for m in members:
        _require_user(m)
    execute(["gpasswd", "-M", ",".join(members), groupname], "update members of group", groupname)
    _record(
        ActionKind.MODIFY_GROUP, groupname, f"Members updated to: {' '.join(members) or '(none)'}", log_file
    )


def delete_group(groupname: str, log_file: Optional[str] = None) -> None:
    _require_group(groupname)
    execute(["groupdel", groupname], "delete group", groupname)
    _record(ActionKind.DELETE_GROUP, groupname, "Group deleted", log_file)
