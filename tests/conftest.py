from types import SimpleNamespace

import pytest

import account_commands
import account_db


class FakeAccounts:
    """In-memory stand-in for the pwd and grp modules."""

    def __init__(self):
        self.users = {}
        self.groups = {}

    def add_user(self, name, uid=1000, gid=1000, gecos="", home=None, shell="/bin/bash"):
        self.users[name] = SimpleNamespace(
            pw_name=name, pw_uid=uid, pw_gid=gid, pw_gecos=gecos,
            pw_dir=home or f"/home/{name}", pw_shell=shell,
        )

    def add_group(self, name, gid=1000, members=()):
        self.groups[name] = SimpleNamespace(gr_name=name, gr_gid=gid, gr_mem=list(members))

    # pwd
    def getpwnam(self, name):
        return self.users[name]

    def getpwall(self):
        return list(self.users.values())

    # grp
    def getgrnam(self, name):
        return self.groups[name]

    def getgrgid(self, gid):
        for g in self.groups.values():
            if g.gr_gid == gid:
                return g
        raise KeyError(gid)

    def getgrall(self):
        return list(self.groups.values())


class FakeRunner:
    def __init__(self):
        self.calls = []
        self.returncode = 0

    def __call__(self, cmd):
        self.calls.append(list(cmd))
        return self.returncode


@pytest.fixture
def accounts(monkeypatch):
    fake = FakeAccounts()
    fake.add_user("root", uid=0, gid=0, home="/root")
    fake.add_group("root", gid=0)
    fake.add_user("daemon", uid=1, gid=1, home="/usr/sbin", shell="/usr/sbin/nologin")
    fake.add_group("daemon", gid=1)
    fake.add_group("sudo", gid=27)
    fake.add_group("users", gid=100)
    monkeypatch.setattr(account_db, "pwd", fake)
    monkeypatch.setattr(account_db, "grp", fake)
    return fake


@pytest.fixture
def runner(monkeypatch):
    fake = FakeRunner()
    monkeypatch.setattr(account_commands, "run", fake)
    return fake


@pytest.fixture
def log_file(tmp_path):
    return str(tmp_path / "user_activity" / "account_changes.log")


@pytest.fixture
def log_lines(log_file):
    def read():
        try:
            with open(log_file) as f:
                return f.read().splitlines()
        except FileNotFoundError:
            return []
    return read
