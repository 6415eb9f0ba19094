"""Check contract shared by every verification unit."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from ..core.change import ChangeSet
from ..core.errors import CheckFailure
from ..utils.process import capture

logger = logging.getLogger(__name__)


class Prerequisite(BaseModel):
    """An external tool a check needs, how to detect it and where to get it."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    help_command: list[str]
    expected_exit_code: int = 0
    url: str = Field(..., min_length=1)

    def is_present(self, cwd: Path | None = None) -> bool:
        _, code = capture(list(self.help_command), cwd=cwd)
        return code == self.expected_exit_code


class CheckOptions(BaseModel):
    """Options common to every check. Subclasses add their own fields."""

    model_config = ConfigDict(extra="forbid")


class Check(ABC):
    """One pluggable verification unit.

    ``run`` raises CheckFailure when it finds problems. Checks must not modify
    tracked files. A check that mutates shared state sets ``concurrent_safe``
    to False and the runner serializes it through ``lock``.
    """

    kind: ClassVar[str]
    description: ClassVar[str]
    options_model: ClassVar[type[CheckOptions]] = CheckOptions
    concurrent_safe: ClassVar[bool] = True

    def __init__(self, options: CheckOptions | None = None, root: Path | None = None):
        self.options = options if options is not None else self.options_model()
        self.root = (root or Path.cwd()).resolve()
        self.lock = threading.Lock()

    @property
    def name(self) -> str:
        return self.kind

    def get_description(self) -> str:
        return self.description

    def prerequisites(self) -> list[Prerequisite]:
        return []

    @abstractmethod
    def run(self, change: ChangeSet) -> None:
        """Verify change, raising CheckFailure on problems."""

    def _call(self, args: list[str], env: dict[str, str] | None = None) -> tuple[str, int]:
        logger.debug("%s: %s", self.name, " ".join(args))
        return capture(args, cwd=self.root, env=env)

    def _fail(self, message: str) -> None:
        raise CheckFailure(f"{self.name}: {message}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.options!r})"


def filter_output(output: str, blacklist: list[str]) -> list[str]:
    """Drop blank lines and lines containing any blacklisted substring."""
    lines = []
    for line in output.splitlines():
        if not line.strip():
            continue
        if any(item in line for item in blacklist):
            continue
        lines.append(line)
    return lines
