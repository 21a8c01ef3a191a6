import pytest

from dailytimer import featureflag
from dailytimer import systemctl


STRINGS = {
    "good_morning.service": "[Unit]\nservice\n",
    "good_morning.timer": "[Unit]\ntimer\n",
}


def test_privileged_uses_sudo_when_not_root(not_root):
    assert systemctl.privileged(["systemctl", "daemon-reload"]) == ["sudo", "systemctl", "daemon-reload"]


def test_privileged_as_root(monkeypatch):
    monkeypatch.setattr(systemctl.os, "geteuid", lambda: 0)
    assert systemctl.privileged(["systemctl", "daemon-reload"]) == ["systemctl", "daemon-reload"]


def test_privileged_without_sudo(monkeypatch):
    monkeypatch.setattr(featureflag, "USE_SUDO", False)
    monkeypatch.setattr(systemctl.os, "geteuid", lambda: 1000)
    assert systemctl.privileged(["tee", "/x"]) == ["tee", "/x"]


def test_install_order(not_root, fake_run, tmp_path):
    failures = systemctl.install(STRINGS, tmp_path, "good_morning.timer")
    assert failures == []
    assert fake_run.commands == [
        ["sudo", "tee", str(tmp_path / "good_morning.service")],
        ["sudo", "tee", str(tmp_path / "good_morning.timer")],
        ["sudo", "systemctl", "daemon-reload"],
        ["sudo", "systemctl", "enable", "good_morning.timer"],
        ["sudo", "systemctl", "start", "good_morning.timer"],
    ]


def test_install_writes_contents(not_root, fake_run, tmp_path):
    systemctl.install(STRINGS, tmp_path, "good_morning.timer")
    inputs = [input for _, input in fake_run.calls]
    assert inputs[:2] == ["[Unit]\nservice\n", "[Unit]\ntimer\n"]
    assert inputs[2:] == [None, None, None]


def test_install_prints_progress(not_root, fake_run, tmp_path, capsys):
    systemctl.install(STRINGS, tmp_path, "good_morning.timer")
    out = capsys.readouterr().out
    assert f"Creating {tmp_path / 'good_morning.service'}..." in out
    assert f"Creating {tmp_path / 'good_morning.timer'}..." in out
    assert "Reloading systemctl daemon..." in out
    assert "Enabling and starting the timer..." in out


def test_failure_aborts(not_root, fake_run, tmp_path):
    fake_run.fail_on = "daemon-reload"
    fake_run.returncode = 4
    with pytest.raises(systemctl.StepFailed) as exc:
        systemctl.install(STRINGS, tmp_path, "good_morning.timer")
    assert exc.value.step == "daemon-reload"
    assert exc.value.returncode == 4
    assert fake_run.commands[-1] == ["sudo", "systemctl", "daemon-reload"]
    assert len(fake_run.commands) == 3


def test_keep_going_runs_every_step(not_root, fake_run, tmp_path, capsys):
    fake_run.fail_on = "enable"
    failures = systemctl.install(STRINGS, tmp_path, "good_morning.timer", keep_going=True)
    assert [f.step for f in failures] == ["enable good_morning.timer"]
    assert fake_run.commands[-1] == ["sudo", "systemctl", "start", "good_morning.timer"]
    assert "** Warning: enable good_morning.timer failed (rc=1)" in capsys.readouterr().out


def test_dry_run_runs_nothing(not_root, fake_run, tmp_path, capsys):
    systemctl.install(STRINGS, tmp_path, "good_morning.timer", dry_run=True)
    assert fake_run.calls == []
    out = capsys.readouterr().out
    assert "+ sudo systemctl daemon-reload" in out
    assert "+ sudo systemctl start good_morning.timer" in out


def test_missing_command(not_root, monkeypatch):
    def no_such_command(cmd, **kw):
        raise FileNotFoundError(2, "No such file or directory", cmd[0])

    monkeypatch.setattr(systemctl.subprocess, "run", no_such_command)
    with pytest.raises(systemctl.StepFailed) as exc:
        systemctl.daemon_reload()
    assert exc.value.returncode == 127


def test_status_is_not_privileged(not_root, fake_run):
    assert systemctl.status("good_morning.timer") == 0
    assert fake_run.commands == [["systemctl", "status", "good_morning.timer"]]


def test_status_without_systemctl(monkeypatch, capsys):
    def no_such_command(cmd, **kw):
        raise FileNotFoundError(2, "No such file or directory", cmd[0])

    monkeypatch.setattr(systemctl.subprocess, "run", no_such_command)
    assert systemctl.status("good_morning.timer") == 127
    assert "** [Errno 2] No such file or directory: 'systemctl'" in capsys.readouterr().out
