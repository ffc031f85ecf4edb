#!/usr/bin/env python3
"""
session_report.py: read-only login and session reports.

Wraps the login accounting tools and hands their output back untouched:

- LOGIN_HISTORY   last -n N [user]
- FAILED_LOGINS   lastb -n N [user]     (reads /var/log/btmp, root only)
- LAST_LOGIN      lastlog [-u user]
- SESSION_TIME    ac -d user | ac -p    (needs the psacct/acct package)
- ACTIVE_SESSIONS utmp sessions via psutil, in the layout of `who`

Nothing here changes the system.
"""

import datetime
import shlex
import subprocess
from enum import Enum
from typing import List, NamedTuple, Optional

import psutil

from account_validation import require_username

HISTORY_LINES = 50
TIMEOUT = 30


class ReportKind(Enum):
    LOGIN_HISTORY = "Login history"
    FAILED_LOGINS = "Failed login attempts"
    ACTIVE_SESSIONS = "Active sessions"
    LAST_LOGIN = "Last login"
    SESSION_TIME = "Connect time statistics"


HISTORY_KINDS = (ReportKind.LOGIN_HISTORY, ReportKind.FAILED_LOGINS)


class Report(NamedTuple):
    title: str
    text: str
    empty: bool


def run_capture(cmd: List[str]) -> Optional[str]:
    """Run a read-only command and return stdout, or None if it is missing or failed silently."""
    try:
        proc = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True, timeout=TIMEOUT)
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if proc.returncode != 0 and not proc.stdout.strip():
        return None
    return proc.stdout


def build_command(kind: ReportKind, user: Optional[str], lines: int) -> List[str]:
    if kind is ReportKind.LOGIN_HISTORY:
        cmd = ["last", "-n", str(lines)]
        return cmd + [user] if user else cmd
    if kind is ReportKind.FAILED_LOGINS:
        cmd = ["lastb", "-n", str(lines)]
        return cmd + [user] if user else cmd
    if kind is ReportKind.LAST_LOGIN:
        return ["lastlog", "-u", user] if user else ["lastlog"]
    if kind is ReportKind.SESSION_TIME:
        return ["ac", "-d", user] if user else ["ac", "-p"]
    raise ValueError(f"{kind} is not backed by a command")


def truncate(text: str, lines: int) -> str:
    return "\n".join(text.splitlines()[:lines])


def active_sessions(user: Optional[str] = None) -> str:
    """Currently logged-in sessions from utmp, one per line like `who`."""
    rows = []
    for s in psutil.users():
        if user and s.name != user:
            continue
        started = datetime.datetime.fromtimestamp(s.started).strftime("%Y-%m-%d %H:%M")
        host = f" ({s.host})" if s.host else ""
        rows.append(f"{s.name:<12} {s.terminal or '?':<12} {started}{host}")
    return "\n".join(rows)


def report(kind: ReportKind, user: Optional[str] = None, lines: int = HISTORY_LINES) -> Report:
    """Build one report. A user name is checked before it reaches a command line."""
    if user:
        require_username(user)
    scope = f"User: {user}" if user else "All users"
    title = f"{kind.value} - {scope}"

    if kind is ReportKind.ACTIVE_SESSIONS:
        text = active_sessions(user)
        if not text:
            return Report(title, "No active sessions found.", True)
        boot = datetime.datetime.fromtimestamp(psutil.boot_time()).isoformat(sep=" ", timespec="seconds")
        return Report(title, f"System up since {boot}\n\n{text}", False)

    cmd = build_command(kind, user, lines)
    out = run_capture(cmd)
    if out is None:
        return Report(title, f"No data available ({shlex.join(cmd)} returned nothing).", True)
    if kind in HISTORY_KINDS:
        out = truncate(out, lines)
    if not out.strip():
        return Report(title, "No records found for the selected scope.", True)
    return Report(title, out.rstrip("\n"), False)
