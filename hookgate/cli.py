"""Command line interface.

Usage:
    hookgate                      install the git hooks, then run the checks
    hookgate run -m all           run the checks of the selected modes
    hookgate run-hook pre-commit  entry point used by the installed hooks
    hookgate uninstall            remove the hookgate sections from the git hooks
    hookgate help                 list the supported checks and modes
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

from . import __version__
from .checks import KNOWN_CHECKS, Check
from .core.config import DEFAULT_CONFIG_NAME, HELP_MODES, Mode, load_config, parse_modes
from .core.context import RunContext, is_continuous_integration
from .core.coordinator import HookCoordinator
from .core.errors import ConfigError, HookgateError
from .core.hooks import HOOK_TYPES, GitHookManager
from .core.prereq import install_prerequisites
from .core.scm import GitRepository, get_repo

logger = logging.getLogger(__name__)

COMMANDS = {
    "help": "prints this help page",
    "info": "prints the configuration and the checks each mode runs",
    "install": "installs the git hooks and the checks prerequisites",
    "installrun": "runs 'install' then 'run'; the default command",
    "prereq": "installs the prerequisites of the enabled checks",
    "run": "runs the checks of the selected modes on the current tree",
    "run-hook": "runs the checks of a git hook; used by the installed hooks",
    "uninstall": "removes the hookgate sections from the installed git hooks",
    "version": "prints the version number",
    "writeconfig": "writes the effective configuration as YAML",
}


class _MicrosecondFormatter(logging.Formatter):
    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        return datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")


def configure_logging(verbose: bool, stream: TextIO | None = None) -> None:
    """Route the package's log records to stderr; INFO when verbose."""
    package_logger = logging.getLogger("hookgate")
    for handler in list(package_logger.handlers):
        if getattr(handler, "_hookgate", False):
            package_logger.removeHandler(handler)
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(_MicrosecondFormatter("%(asctime)s %(levelname).1s %(message)s"))
    handler._hookgate = True  # type: ignore[attr-defined]
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.INFO if verbose else logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=None,
        help="enables verbose logging output (default on under continuous integration)",
    )
    common.add_argument(
        "-a",
        "--all",
        dest="all_files",
        action="store_true",
        help="runs checks as if all files had been modified",
    )
    common.add_argument(
        "-n",
        "--no-update",
        action="store_true",
        help="disallows installing or updating prerequisites",
    )
    common.add_argument(
        "-c",
        "--config",
        default=DEFAULT_CONFIG_NAME,
        help=f"name of the config file to load (default: {DEFAULT_CONFIG_NAME})",
    )
    common.add_argument(
        "-m",
        "--modes",
        default=None,
        help="comma separated list of modes to process (default: pre-push)",
    )

    parser = argparse.ArgumentParser(
        prog="hookgate",
        description="Runs quality checks on the files changed in a git repository.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=HELP_MODES,
    )
    subparsers = parser.add_subparsers(dest="command", metavar="command")
    for command, help_text in COMMANDS.items():
        sub = subparsers.add_parser(command, parents=[common], help=help_text, description=help_text)
        if command == "run-hook":
            sub.add_argument("hook", choices=[*HOOK_TYPES, Mode.CONTINUOUS_INTEGRATION.value])
    return parser


def _describe_checks(root: Path) -> tuple[list[Check | type[Check]], list[Check | type[Check]]]:
    """Split the known checks into native ones and ones needing external tools."""
    native: list[Check | type[Check]] = []
    external: list[Check | type[Check]] = []
    for kind in sorted(KNOWN_CHECKS):
        cls = KNOWN_CHECKS[kind]
        try:
            check = cls(root=root)
        except ValueError:
            # Options without defaults, e.g. custom.
            external.append(cls)
            continue
        (external if check.prerequisites() else native).append(check)
    return native, external


class HookgateCLI:
    """Runs one command against the repository containing the working directory."""

    def __init__(self, args: argparse.Namespace, cwd: Path, out: TextIO, stdin: TextIO | None = None):
        self.args = args
        self.out = out
        self.stdin = stdin
        self.repo: GitRepository = get_repo(cwd)
        self.context = RunContext(
            root=self.repo.root,
            ci=is_continuous_integration(),
            no_update=bool(args.no_update),
            out=out,
        )
        self.config_path, self.config = load_config(self.repo.root, self.repo.scm_dir(), args.config)
        self.coordinator = HookCoordinator(self.repo, self.config, self.context)

    def modes(self) -> list[Mode]:
        if self.args.modes:
            modes = parse_modes(self.args.modes)
            if not modes:
                raise ConfigError(f"no mode selected\n\n{HELP_MODES}")
            return modes
        return [Mode.PRE_PUSH]

    def dispatch(self, command: str) -> None:
        handler = getattr(self, "cmd_" + command.replace("-", "_"))
        handler()

    def cmd_info(self) -> None:
        print(f"File  : {self.config_path}", file=self.out)
        print(f"Repo  : {self.repo.root}", file=self.out)
        for mode in sorted(self.config.modes, key=lambda m: m.value):
            settings = self.config.modes[mode]
            print(f"\n{mode.value}:", file=self.out)
            print(f"  max_duration: {settings.max_duration}s", file=self.out)
            checks, _ = self.config.enabled_checks([mode], root=self.repo.root)
            if not checks:
                print("  no check", file=self.out)
            for check in checks:
                options = check.options.model_dump(by_alias=True)
                print(f"  {check.name}: {options}", file=self.out)

    def cmd_prereq(self) -> None:
        checks, _ = self.config.enabled_checks(self.modes(), root=self.repo.root)
        install_prerequisites(checks, self.context)

    def cmd_install(self) -> None:
        if self.context.ci:
            logger.info("skipping hook installation under continuous integration")
            return
        checks, _ = self.config.enabled_checks(list(self.config.modes), root=self.repo.root)
        install_prerequisites(checks, self.context)
        manager = GitHookManager(self.repo.hook_install_dir())
        for ok, message in manager.install_all():
            if not ok:
                raise HookgateError(message)
            logger.info(message)

    def cmd_uninstall(self) -> None:
        manager = GitHookManager(self.repo.hook_install_dir())
        for hook in HOOK_TYPES:
            if not manager.is_installed(hook):
                logger.info("%s hook is not managed by hookgate", hook)
                continue
            ok, message = manager.remove(hook)
            if not ok:
                raise HookgateError(message)
            print(message, file=self.out)

    def cmd_run(self) -> None:
        self.coordinator.run(self.modes(), all_files=bool(self.args.all_files))

    def cmd_installrun(self) -> None:
        self.cmd_install()
        self.cmd_run()

    def cmd_run_hook(self) -> None:
        self.coordinator.run_hook(self.args.hook, self.stdin)

    def cmd_writeconfig(self) -> None:
        target = Path(self.args.config).expanduser()
        if not target.is_absolute():
            target = self.repo.root / target
        target.write_text(self.config.to_yaml())
        print(f"Wrote {target}", file=self.out)


def print_help(parser: argparse.ArgumentParser, root: Path | None, out: TextIO) -> None:
    parser.print_help(out)
    native, external = _describe_checks(root or Path.cwd())
    print("\nSupported checks:", file=out)
    print("  Native checks that only depend on the standard library:", file=out)
    for check in native:
        print(f"    {check.kind:<12} {check.get_description()}", file=out)
    print("  Checks that have prerequisites (which will be automatically installed):", file=out)
    for check in external:
        description = check.description if isinstance(check, type) else check.get_description()
        print(f"    {check.kind:<12} {description}", file=out)
    print("\nNo check ever modifies a tracked file.", file=out)


def default_command(ci: bool) -> list[str]:
    return ["run-hook", Mode.CONTINUOUS_INTEGRATION.value] if ci else ["installrun"]


def main(argv: list[str] | None = None, stdin: TextIO | None = None, out: TextIO | None = None) -> int:
    """Entry point of the ``hookgate`` console script."""
    argv = list(sys.argv[1:] if argv is None else argv)
    out = out or sys.stdout
    ci = is_continuous_integration()
    if not argv:
        argv = default_command(ci)

    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help(sys.stderr)
        return 1

    verbose = ci if args.verbose is None else args.verbose
    configure_logging(verbose)

    if args.command == "version":
        print(__version__, file=out)
        return 0

    try:
        if args.command == "help":
            print_help(parser, None, out)
            return 0
        cli = HookgateCLI(args, Path.cwd(), out, stdin)
        cli.dispatch(args.command)
    except HookgateError as exc:
        print(f"hookgate: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("hookgate: interrupted", file=sys.stderr)
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
