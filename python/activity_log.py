#!/usr/bin/env python3
# Append-only audit trail of account changes made through acctadmin.
#
# One line per successful change:
#   [2026-10-19 14:02:11] Admin: root, Action: CREATE, Target: alice, Details: Shell: /bin/bash, Home: /home/alice

import os
import pwd
import re
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Iterable, List, NamedTuple, Optional

LOG_DIR = "/var/log/user_activity"
LOG_FILE = os.environ.get("ACCTADMIN_LOG_FILE", f"{LOG_DIR}/account_changes.log")
DIR_MODE = 0o750
FILE_MODE = 0o640
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

LINE_RE = re.compile(
    r"^\[(?P<timestamp>[^\]]+)\] Admin: (?P<actor>[^,]*), Action: (?P<action>[A-Z_]+), "
    r"Target: (?P<target>[^,]*), Details: (?P<detail>.*)$"
)


class ActionKind(str, Enum):
    CREATE = "CREATE"
    DELETE = "DELETE"
    RENAME = "RENAME"
    MODIFY = "MODIFY"
    PASSWORD_CHANGE = "PASSWORD_CHANGE"
    GROUP_MEMBERSHIP = "GROUP_MEMBERSHIP"
    CREATE_GROUP = "CREATE_GROUP"
    DELETE_GROUP = "DELETE_GROUP"
    RENAME_GROUP = "RENAME_GROUP"
    MODIFY_GROUP = "MODIFY_GROUP"


ACTION_LABELS = {
    ActionKind.CREATE: "User creation",
    ActionKind.DELETE: "User deletion",
    ActionKind.MODIFY: "User modification",
    ActionKind.PASSWORD_CHANGE: "Password changes",
    ActionKind.GROUP_MEMBERSHIP: "Group membership changes",
    ActionKind.RENAME: "Username changes",
    ActionKind.CREATE_GROUP: "Group creation",
    ActionKind.DELETE_GROUP: "Group deletion",
    ActionKind.MODIFY_GROUP: "Group modification",
    ActionKind.RENAME_GROUP: "Group name changes",
}


class LogEntry(NamedTuple):
    timestamp: str
    actor: str
    action: str
    target: str
    detail: str
    raw: str


def current_admin() -> str:
    """The administrator behind this session: the sudo caller if any, else the effective user."""
    sudo_user = os.environ.get("SUDO_USER")
    if sudo_user:
        return sudo_user
    try:
        return pwd.getpwuid(os.geteuid()).pw_name
    except KeyError:
        return str(os.geteuid())


def format_line(action: ActionKind, target: str, detail: str, actor: str, timestamp: datetime) -> str:
    # A newline inside a free-text field would split one event over two lines
    detail = " ".join(str(detail).splitlines())
    return (
        f"[{timestamp.strftime(TIME_FORMAT)}] Admin: {actor}, Action: {ActionKind(action).value}, "
        f"Target: {target}, Details: {detail}\n"
    )


def ensure_log_file(path: str) -> None:
    """Create the log directory and file with restrictive permissions on first use."""
    log_path = Path(path)
    if not log_path.parent.exists():
        log_path.parent.mkdir(parents=True, mode=DIR_MODE)
        os.chmod(log_path.parent, DIR_MODE)
    if not log_path.exists():
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, FILE_MODE)
        try:
            os.fchmod(fd, FILE_MODE)
        finally:
            os.close(fd)


def record(
    action: ActionKind,
    target: str,
    detail: str,
    actor: Optional[str] = None,
    timestamp: Optional[datetime] = None,
    path: Optional[str] = None,
) -> str:
    """Append one line to the activity log and return it."""
    path = path or LOG_FILE
    line = format_line(action, target, detail, actor or current_admin(), timestamp or datetime.now())
    ensure_log_file(path)
    # Single write on an O_APPEND descriptor; concurrent admins may interleave lines but never split one
    fd = os.open(path, os.O_WRONLY | os.O_APPEND)
    try:
        os.write(fd, line.encode("utf-8"))
    finally:
        os.close(fd)
    return line


def parse_line(line: str) -> Optional[LogEntry]:
    m = LINE_RE.match(line.rstrip("\n"))
    if not m:
        return None
    return LogEntry(raw=line.rstrip("\n"), **m.groupdict())


def read_entries(path: Optional[str] = None) -> List[LogEntry]:
    """All parseable entries, oldest first. A missing or unreadable log is an empty log."""
    try:
        with open(path or LOG_FILE, encoding="utf-8", errors="replace") as f:
            return [e for e in map(parse_line, f) if e is not None]
    except OSError:
        return []


def filter_by_target(entries: Iterable[LogEntry], target: str) -> List[LogEntry]:
    return [e for e in entries if e.target == target]


def filter_by_action(entries: Iterable[LogEntry], action: ActionKind) -> List[LogEntry]:
    action = ActionKind(action).value
    return [e for e in entries if e.action == action]


def format_entries(entries: Iterable[LogEntry]) -> str:
    return "\n".join(e.raw for e in entries)
