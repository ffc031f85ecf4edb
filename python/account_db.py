#!/usr/bin/env python3
# Read-only view of the system account database (/etc/passwd, /etc/group)
# through pwd and grp. Every call goes back to the OS; nothing is cached.

import grp
import pwd
from typing import List, NamedTuple

NOLOGIN_SHELLS = ("nologin", "false")
HOME_ROOT = "/home"


class UserRecord(NamedTuple):
    username: str
    uid: int
    gid: int
    full_name: str
    home: str
    shell: str
    primary_group: str
    groups: List[str]


class GroupRecord(NamedTuple):
    name: str
    gid: int
    members: List[str]


def default_home(username: str) -> str:
    return f"{HOME_ROOT}/{username}"


def user_exists(username: str) -> bool:
    try:
        pwd.getpwnam(username)
    except KeyError:
        return False
    return True


def group_exists(groupname: str) -> bool:
    try:
        grp.getgrnam(groupname)
    except KeyError:
        return False
    return True


def group_name_for(gid: int) -> str:
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return str(gid)


def supplementary_groups(username: str) -> List[str]:
    """Groups that list the user as a member. The primary group is not included."""
    return sorted(g.gr_name for g in grp.getgrall() if username in g.gr_mem)


def get_user(username: str) -> UserRecord:
    """Raises KeyError if the user does not exist."""
    info = pwd.getpwnam(username)
    return UserRecord(
        username=info.pw_name,
        uid=info.pw_uid,
        gid=info.pw_gid,
        full_name=info.pw_gecos.split(",")[0],
        home=info.pw_dir,
        shell=info.pw_shell,
        primary_group=group_name_for(info.pw_gid),
        groups=supplementary_groups(info.pw_name),
    )


def get_group(groupname: str) -> GroupRecord:
    """Raises KeyError if the group does not exist."""
    info = grp.getgrnam(groupname)
    return GroupRecord(name=info.gr_name, gid=info.gr_gid, members=list(info.gr_mem))


def is_login_shell(shell: str) -> bool:
    return not any(shell.endswith(s) for s in NOLOGIN_SHELLS)


def list_login_users() -> List[str]:
    """Users that can log in, in /etc/passwd order."""
    return [p.pw_name for p in pwd.getpwall() if is_login_shell(p.pw_shell)]


def list_groups() -> List[str]:
    return [g.gr_name for g in grp.getgrall()]
