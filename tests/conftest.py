import subprocess

import pytest

from dailytimer import featureflag
from dailytimer import systemctl


class FakeRun:
    """Stand-in for subprocess.run that records commands instead of running them"""

    def __init__(self, fail_on=None, returncode=1):
        self.calls = []
        self.fail_on = fail_on
        self.returncode = returncode

    def __call__(self, cmd, **kw):
        self.calls.append((cmd, kw.get("input")))
        rc = self.returncode if self.fail_on and self.fail_on in cmd else 0
        return subprocess.CompletedProcess(cmd, rc)

    @property
    def commands(self):
        return [cmd for cmd, _ in self.calls]


@pytest.fixture
def not_root(monkeypatch):
    monkeypatch.setattr(featureflag, "USE_SUDO", True)
    monkeypatch.setattr(systemctl.os, "geteuid", lambda: 1000)


@pytest.fixture
def fake_run(monkeypatch):
    fake = FakeRun()
    monkeypatch.setattr(systemctl.subprocess, "run", fake)
    return fake


@pytest.fixture
def whoami(monkeypatch):
    monkeypatch.setattr(subprocess, "getoutput", lambda cmd: "alice")
