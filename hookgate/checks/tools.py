"""Checks wrapping external Python tooling (black, isort, ruff, mypy, pytest)."""

from __future__ import annotations

import sys

from pydantic import Field

from ..core.change import ChangeSet
from .base import Check, CheckOptions, Prerequisite, filter_output


class ToolOptions(CheckOptions):
    extra_args: list[str] = Field(default_factory=list)
    blacklist: list[str] = Field(default_factory=list)


def _module_prerequisite(module: str, package: str) -> Prerequisite:
    return Prerequisite(
        help_command=[sys.executable, "-m", module, "--version"],
        expected_exit_code=0,
        url=package,
    )


class _ModuleTool(Check):
    """Runs ``python -m <module>`` over the changed Python files."""

    module: str = ""
    package: str = ""
    base_args: tuple[str, ...] = ()
    options_model = ToolOptions

    def prerequisites(self) -> list[Prerequisite]:
        return [_module_prerequisite(self.module, self.package)]

    def run(self, change: ChangeSet) -> None:
        # Deleted files are listed as changed but cannot be handed to the tool.
        files = [path for path in change.changed.python_files if (self.root / path).is_file()]
        if not files:
            return
        args = [sys.executable, "-m", self.module, *self.base_args, *self.options.extra_args, *files]
        output, code = self._call(args)
        if code == 0:
            return
        lines = filter_output(output, self.options.blacklist)
        # Every reported line was blacklisted.
        if not lines and output.strip():
            return
        self._fail("\n" + ("\n".join(lines) or f"{self.module} exited with {code}"))


class Format(_ModuleTool):
    kind = "format"
    description = "enforces all Python sources are formatted with black"
    module = "black"
    package = "black"
    base_args = ("--check",)


class Isort(_ModuleTool):
    kind = "isort"
    description = "enforces imports are sorted with isort"
    module = "isort"
    package = "isort"
    base_args = ("--check-only", "--quiet")


class Lint(_ModuleTool):
    kind = "lint"
    description = "runs ruff on all changed Python files"
    module = "ruff"
    package = "ruff"
    base_args = ("check", "--quiet")


class Typecheck(_ModuleTool):
    kind = "typecheck"
    description = "runs mypy on all changed Python files"
    module = "mypy"
    package = "mypy"
    base_args = ("--no-error-summary",)


class Test(Check):
    """Run pytest in every test directory affected by the change."""

    kind = "test"
    description = "runs all tests in directories affected by the change"
    options_model = ToolOptions
    # Not a test case for pytest to collect.
    __test__ = False

    def prerequisites(self) -> list[Prerequisite]:
        return [_module_prerequisite("pytest", "pytest")]

    def run(self, change: ChangeSet) -> None:
        test_dirs = [path for path in change.indirect.test_dirs() if (self.root / path).is_dir()]
        if not test_dirs:
            return
        args = [sys.executable, "-m", "pytest", "-q", "-p", "no:cacheprovider", *self.options.extra_args, *test_dirs]
        output, code = self._call(args)
        # 5: no tests collected, not a failure.
        if code in (0, 5):
            return
        lines = filter_output(output, self.options.blacklist)
        self._fail("\n" + "\n".join(lines[-40:]))


class CustomOptions(CheckOptions):
    display_name: str = Field(..., min_length=1)
    description: str = ""
    command: list[str] = Field(..., min_length=1)
    check_exit_code: bool = True
    prerequisites: list[Prerequisite] = Field(default_factory=list)


class Custom(Check):
    """Run an arbitrary command; any non-zero exit (or output) fails the check."""

    kind = "custom"
    description = "runs a user supplied command"
    options_model = CustomOptions

    @property
    def name(self) -> str:
        return self.options.display_name

    def get_description(self) -> str:
        return self.options.description or f"runs {' '.join(self.options.command)}"

    def prerequisites(self) -> list[Prerequisite]:
        return list(self.options.prerequisites)

    def run(self, change: ChangeSet) -> None:
        output, code = self._call(list(self.options.command))
        if self.options.check_exit_code:
            if code != 0:
                self._fail(f"exit code {code}\n{output.strip()}")
        elif output.strip():
            self._fail(output.strip())
