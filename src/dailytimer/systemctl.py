"""
Talk to the host service manager: write unit files, then reload, enable and
start them with systemctl.

Every step that touches the system configuration needs root, so the commands
go through sudo unless we already are root.
"""

import os
from pathlib import Path
import shlex
import subprocess

from dailytimer import featureflag as ff


SYSTEMCTL_COMMAND = "systemctl"
SUDO_COMMAND = "sudo"
TEE_COMMAND = "tee"


class StepFailed(Exception):
    """
    One of the privileged install steps exited non-zero
    """

    def __init__(self, step: str, returncode: int):
        super().__init__(f"{step} failed (rc={returncode})")
        self.step = step
        self.returncode = returncode


def privileged(cmd: list) -> list:
    """
    Prefix `cmd' with sudo when we need to elevate
    """
    if ff.USE_SUDO and os.geteuid() != 0:
        return [SUDO_COMMAND, *cmd]
    return list(cmd)


def run_step(step: str, cmd: list, stdin_text: str = None, dry_run: bool = False):
    """
    Run one command, raising StepFailed if it doesn't succeed.

    With dry_run, only print the command we would have run.
    """
    if dry_run:
        print(f"+ {shlex.join(cmd)}")
        return

    # tee echoes what it writes; keep the unit text off the terminal
    stdout = subprocess.DEVNULL if stdin_text is not None else None
    try:
        proc = subprocess.run(cmd, input=stdin_text, text=True, stdout=stdout)
    except FileNotFoundError as e:
        print(f"** {e}")
        raise StepFailed(step, 127) from e

    if proc.returncode != 0:
        raise StepFailed(step, proc.returncode)


def install_unit_file(path: Path, contents: str, dry_run: bool = False):
    """
    Overwrite `path' with `contents' as root
    """
    print(f"Creating {path}...")
    run_step(f"writing {path}", privileged([TEE_COMMAND, str(path)]), stdin_text=contents, dry_run=dry_run)


def daemon_reload(dry_run: bool = False):
    run_step("daemon-reload", privileged([SYSTEMCTL_COMMAND, "daemon-reload"]), dry_run=dry_run)


def enable(unit: str, dry_run: bool = False):
    run_step(f"enable {unit}", privileged([SYSTEMCTL_COMMAND, "enable", unit]), dry_run=dry_run)


def start(unit: str, dry_run: bool = False):
    run_step(f"start {unit}", privileged([SYSTEMCTL_COMMAND, "start", unit]), dry_run=dry_run)


def status(unit: str) -> int:
    """
    Print `systemctl status' for the unit and hand back its exit code
    """
    try:
        return subprocess.run([SYSTEMCTL_COMMAND, "status", unit]).returncode
    except FileNotFoundError as e:
        print(f"** {e}")
        return 127


def install(
    strings: dict,
    unit_file_path: Path,
    timer_unit: str,
    keep_going: bool = False,
    dry_run: bool = False,
) -> list:
    """
    Write every generated unit into unit_file_path, then reload systemd and
    enable + start the timer.

    The daemon must be reloaded before enable/start, or systemd acts on the
    old unit definitions.

    By default the first failing step raises StepFailed and nothing after it
    runs. Nothing already done is rolled back. With keep_going, a failure is
    reported and the remaining steps still run; the failures are returned.
    """
    failures = []

    def attempt(fn, *args):
        try:
            fn(*args, dry_run=dry_run)
        except StepFailed as e:
            if not keep_going:
                raise
            print(f"** Warning: {e}")
            failures.append(e)

    for basename, contents in strings.items():
        attempt(install_unit_file, Path(unit_file_path) / basename, contents)

    print("Reloading systemctl daemon...")
    attempt(daemon_reload)

    print("Enabling and starting the timer...")
    attempt(enable, timer_unit)
    attempt(start, timer_unit)

    return failures
