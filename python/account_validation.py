#!/usr/bin/env python3
# Validation of names and ids typed in by the administrator.
# Pure functions: nothing here touches the account database.

import re
from enum import Enum
from typing import Optional

MAX_USERNAME_LENGTH = 32
USERNAME_RE = re.compile(r"[a-z_][a-z0-9_-]*")


class AccountError(Exception):
    """Base class for errors reported back to the menu loop."""


class ValidationError(AccountError, ValueError):
    pass


class UsernameCheck(Enum):
    VALID = "valid"
    EMPTY = "empty"
    INVALID_CHARS = "invalid-characters"
    TOO_LONG = "too-long"


USERNAME_MESSAGES = {
    UsernameCheck.EMPTY: "Username cannot be empty.",
    UsernameCheck.INVALID_CHARS: (
        "Username can only contain lowercase letters, digits, underscores, "
        "and hyphens, and must start with a letter or underscore."
    ),
    UsernameCheck.TOO_LONG: f"Username is too long (maximum {MAX_USERNAME_LENGTH} characters).",
}


def validate_username(name: str) -> UsernameCheck:
    if not name:
        return UsernameCheck.EMPTY
    if not USERNAME_RE.fullmatch(name):
        return UsernameCheck.INVALID_CHARS
    if len(name) > MAX_USERNAME_LENGTH:
        return UsernameCheck.TOO_LONG
    return UsernameCheck.VALID


def username_error(check: UsernameCheck) -> str:
    return USERNAME_MESSAGES.get(check, "")


def require_username(name: str) -> str:
    """Return the name unchanged or raise ValidationError with the reason."""
    check = validate_username(name)
    if check is not UsernameCheck.VALID:
        raise ValidationError(username_error(check))
    return name


def validate_groupname(name: str) -> bool:
    return bool(name)


def require_groupname(name: str) -> str:
    if not validate_groupname(name):
        raise ValidationError("Group name cannot be empty.")
    return name


def validate_gid(text: str) -> Optional[int]:
    """Empty input means automatic assignment (None)."""
    text = text.strip()
    if not text:
        return None
    if not re.fullmatch(r"[0-9]+", text):
        raise ValidationError(f"GID must be a non-negative number, got '{text}'.")
    return int(text)
