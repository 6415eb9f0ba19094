"""Checks implemented in-process with no external prerequisite."""

from __future__ import annotations

from pydantic import Field

from ..core.change import ChangeSet
from .base import Check, CheckOptions


class Build(Check):
    """Byte-compile every changed Python file without writing .pyc files."""

    kind = "build"
    description = "compiles all changed Python files to catch syntax errors"

    def run(self, change: ChangeSet) -> None:
        errors: list[str] = []
        for path in change.changed.python_files:
            source = change.content(path)
            if source is None:
                continue
            try:
                compile(source, path, "exec", dont_inherit=True)
            except SyntaxError as exc:
                errors.append(f"{path}:{exc.lineno}: {exc.msg}")
            except ValueError as exc:
                errors.append(f"{path}: {exc}")
        if errors:
            self._fail("\n" + "\n".join(errors))


class CopyrightOptions(CheckOptions):
    header: str = Field(
        default="# Copyright YEAR Name. All rights reserved.",
        min_length=1,
    )


class Copyright(Check):
    """Require every changed Python source to start with the configured header."""

    kind = "copyright"
    description = "enforces all Python sources have the exact copyright header"
    options_model = CopyrightOptions

    def run(self, change: ChangeSet) -> None:
        header = self.options.header.strip()
        missing: list[str] = []
        for path in change.changed.python_files:
            raw = change.content(path)
            if raw is None:
                continue
            text = raw.decode("utf-8", errors="replace")
            if not text.strip():
                continue
            lines = text.splitlines()
            # Shebang and encoding cookie may precede the header.
            while lines and (lines[0].startswith("#!") or lines[0].startswith("# -*-")):
                lines = lines[1:]
            if not "\n".join(lines).startswith(header):
                missing.append(path)
        if missing:
            self._fail("missing copyright header:\n  " + "\n  ".join(missing))
