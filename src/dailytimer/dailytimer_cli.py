"""
dailytimer

Run a program once a day at a fixed time, using a systemd service and timer.
"""

import argparse
from dataclasses import dataclass
from importlib import metadata
from pathlib import Path
import re
import shutil
import subprocess
import sys
import tempfile

import tomlkit

import questionary

from dailytimer.template import *
from dailytimer import featureflag as ff
from dailytimer import systemctl


DEFAULT_UNIT_FILE_PATH = Path("/etc/systemd/system")
DEFAULT_SERVICE_NAME = "good_morning"
DEFAULT_BINARY_PATH = "/path/to/your/binary/program"
DEFAULT_TIME = "12:00:00"
WHOAMI_COMMAND = "whoami"
TIME_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")


@dataclass
class Units:
    """
    The pair of unit files we manage for one service name
    """

    unit_file_path: Path
    service_name: str

    @classmethod
    def from_cli(cls, unit_file_path: str, answers: dict) -> "Units":
        return cls(Path(unit_file_path), answers["service_name"])

    @property
    def service_unit(self) -> str:
        return f"{self.service_name}.service"

    @property
    def timer_unit(self) -> str:
        return f"{self.service_name}.timer"

    @property
    def service_file(self) -> Path:
        return self.unit_file_path / self.service_unit

    @property
    def timer_file(self) -> Path:
        return self.unit_file_path / self.timer_unit


def get_user(cmd):
    """
    Ask the system who is running us, the same way a shell would with `whoami`
    """
    return subprocess.getoutput(cmd)


def normalize_time(value: str) -> str:
    """
    Accept HH:MM or HH:MM:SS on a 24h clock and return HH:MM:SS

    >>> normalize_time("7:30")
    '07:30:00'
    """
    m = TIME_RE.match(str(value).strip())
    if not m:
        raise ValueError(f"{value!r} is not a time of day (use HH:MM or HH:MM:SS)")
    hour, minute, second = m.groups()
    return f"{int(hour):02d}:{minute}:{second or '00'}"


def describe(service_name: str) -> str:
    """
    Turn a unit name into something readable: good_morning -> Good Morning
    """
    return " ".join(w.capitalize() for w in re.split(r"[_\-\s]+", service_name) if w)


def read_toml(filepath: Path):
    """
    Read a toml file
    """
    with Path(filepath).open("rb") as f:
        data = tomlkit.load(f)

    return data


def read_answers(filepath: Path) -> dict:
    """
    Read the [main] table of an answer file, as written by `dailytimer generate`
    """
    main = read_toml(filepath).unwrap().get("main", {})
    if not isinstance(main, dict):
        raise ValueError(f"main must be a table, not {type(main).__name__}")
    return dict(main)


def default_answers() -> dict:
    return {
        "service_name": DEFAULT_SERVICE_NAME,
        "binary_path": DEFAULT_BINARY_PATH,
        "time": DEFAULT_TIME,
    }


def ask_answers(answers: dict) -> dict:
    """
    Prompt for every answer, using what we already know as the defaults
    """
    required = lambda text: True if len(text) > 0 else "Required"
    valid_time = lambda text: True if TIME_RE.match(text.strip()) else "Use HH:MM or HH:MM:SS"
    return questionary.form(
        service_name=questionary.text(
            "Name of the systemd service?",
            default=str(answers["service_name"]),
            validate=required,
        ),
        binary_path=questionary.path(
            "Path to the program to run every day?",
            default=str(answers["binary_path"]),
        ),
        user=questionary.text(
            "Which user should the program run as?",
            default=str(answers["user"]),
            validate=required,
        ),
        time=questionary.text(
            "What time of day should it run (24h clock)?",
            default=str(answers["time"]),
            validate=valid_time,
        ),
    ).unsafe_ask()


def resolve_answers(namespace: argparse.Namespace) -> dict:
    """
    Merge defaults, the answer file, cli overrides and (optionally) interactive
    answers, in that order of precedence.
    """
    ns = namespace
    answers = default_answers()

    if ns.answer_file:
        try:
            answers.update(read_answers(ns.answer_file))
        except OSError as e:
            if ns.answer_file_ignore_missing:
                print(f"** Warning: {e}")
            else:
                raise ns.subparser.error(e)
        except (tomlkit.exceptions.ParseError, ValueError) as e:
            raise ns.subparser.error(f"{ns.answer_file}: {e}")

    for key in ("service_name", "binary_path", "user", "time"):
        value = getattr(ns, key)
        if value is not None:
            answers[key] = value

    if "user" not in answers:
        answers["user"] = get_user(ns.user_command)

    # once before prompting, so a toml time is shown as HH:MM:SS
    try:
        answers["time"] = normalize_time(answers["time"])
        if ns.ask:
            answers = ask_answers(answers)
            answers["time"] = normalize_time(answers["time"])
    except ValueError as e:
        raise ns.subparser.error(e)

    return answers


def generate_systemd_strings(answers: dict) -> dict:
    """
    Interpolate configuration into our systemd unit templates.

    Produces a dict of {basename: contents} for each basename of each generated file.
    """
    tpl_vars = dict(answers, description=describe(answers["service_name"]))
    name = answers["service_name"]
    return {
        f"{name}.service": DAILY_SERVICE.format(vars=tpl_vars),
        f"{name}.timer": DAILY_TIMER.format(vars=tpl_vars),
    }


def add_config_arguments(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    parser.add_argument(
        "--answer-file",
        default=None,
        help="Load answers from the [main] table of the given .toml file",
    )
    parser.add_argument(
        "--answer-file-ignore-missing",
        default=None,
        help="If --answer-file is given but the file is missing, continue without it",
        action="store_true",
    )
    parser.add_argument(
        "--service-name",
        default=None,
        help=f"Name of the service and timer units (default: {DEFAULT_SERVICE_NAME})",
    )
    parser.add_argument(
        "--binary-path",
        default=None,
        help=f"Program to run every day, not checked for existence (default: {DEFAULT_BINARY_PATH})",
    )
    parser.add_argument(
        "--user",
        default=None,
        help="User the program runs as (default: the output of --user-command)",
    )
    parser.add_argument(
        "--time",
        default=None,
        help=f"Time of day to run, HH:MM or HH:MM:SS (default: {DEFAULT_TIME})",
    )
    parser.add_argument(
        "--ask",
        action="store_true",
        help="Prompt for every answer interactively",
    )
    return parser


def do_generate(namespace: argparse.Namespace):
    """
    Create the unit files (and the answers that produced them) without installing anything.
    """
    answers = namespace.answers

    with tempfile.TemporaryDirectory(prefix="dailytimer-generate") as td:
        p = Path(td)

        strings = generate_systemd_strings(answers)
        strings["answers.toml"] = tomlkit.dumps({"main": answers})
        for basename, contents in strings.items():
            pb = p / basename
            pb.write_text(contents)

        def copy_fn(src, dst, *a, **kw):
            """Verbosely copy"""
            shutil.copy2(src, dst, *a, **kw)
            print(f"Created {dst}")

        shutil.copytree(p, namespace.output_dir, copy_function=copy_fn, dirs_exist_ok=True)

    return 0


def build_generate(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    parser.description = do_generate.__doc__
    add_config_arguments(parser)
    parser.add_argument(
        "--output-dir",
        default=Path("."),
        type=Path,
        help="Directory to write the generated files into (default: %(default)s)",
    )
    return parser


def do_install(namespace: argparse.Namespace):
    """
    Install the service and timer units, then enable and start the timer.
    """
    ns = namespace
    units = Units.from_cli(ns.unit_file_path, ns.answers)
    strings = generate_systemd_strings(ns.answers)

    try:
        failures = systemctl.install(
            strings,
            units.unit_file_path,
            units.timer_unit,
            keep_going=ns.keep_going,
            dry_run=ns.dry_run,
        )
    except systemctl.StepFailed as e:
        print(f"** Error: {e}")
        return e.returncode

    if failures:
        return failures[0].returncode

    if ff.SHOW_STATUS_AFTER_INSTALL and not ns.dry_run:
        systemctl.status(units.timer_unit)

    print(f"Setup complete. The program will run daily at {ns.answers['time']}.")
    return 0


def build_install(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    parser.description = do_install.__doc__
    add_config_arguments(parser)
    parser.add_argument(
        "--keep-going",
        action="store_true",
        help="Report a failed step and carry on with the rest instead of stopping",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the commands that would run, without running them",
    )
    return parser


def do_dumpconfig(namespace: argparse.Namespace):
    """
    Just print the resolved answers as toml, then exit
    """
    ns = namespace
    units = Units.from_cli(ns.unit_file_path, ns.answers)
    print(f"# unit file path: {units.unit_file_path}")
    print(f"# service unit: {units.service_file}")
    print(f"# timer unit: {units.timer_file}")
    print(tomlkit.dumps({"main": ns.answers}))
    return 0


def build_dumpconfig(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    parser.description = do_dumpconfig.__doc__
    add_config_arguments(parser)
    return parser


def do_status(namespace: argparse.Namespace):
    """
    Show what systemd thinks of the timer
    """
    units = Units.from_cli(namespace.unit_file_path, namespace.answers)
    return systemctl.status(units.timer_unit)


def build_status(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    parser.description = do_status.__doc__
    add_config_arguments(parser)
    return parser


def build_root_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser()
    parser.description = __doc__
    parser.formatter_class = argparse.RawDescriptionHelpFormatter
    parser.add_argument(
        "--user-command",
        default=WHOAMI_COMMAND,
        help="Specify an external command that will print the user to run as, as a single line (default: %(default)s)",
    )
    parser.add_argument(
        "--unit-file-path",
        default=DEFAULT_UNIT_FILE_PATH,
        help="Directory systemd loads unit files from (default: %(default)s)",
        type=Path,
    )
    parser.add_argument(
        "--version", action="version", version=f"dailytimer v{metadata.version('dailytimer')}"
    )

    subparsers = parser.add_subparsers(dest="subcommand", required=True)
    generate = subparsers.add_parser("generate")
    generate = build_generate(generate)
    generate.set_defaults(sub=do_generate, subparser=generate)
    install = subparsers.add_parser("install")
    install = build_install(install)
    install.set_defaults(sub=do_install, subparser=install)
    dumpconfig = subparsers.add_parser("dumpconfig")
    dumpconfig = build_dumpconfig(dumpconfig)
    dumpconfig.set_defaults(sub=do_dumpconfig, subparser=dumpconfig)
    status = subparsers.add_parser("status")
    status = build_status(status)
    status.set_defaults(sub=do_status, subparser=status)
    return parser


def main(argv=None):
    parser = build_root_parser()
    ns = parser.parse_args(argv)

    setattr(ns, "answers", resolve_answers(ns))

    return ns.sub(ns)


if __name__ == "__main__":
    sys.exit(main())
