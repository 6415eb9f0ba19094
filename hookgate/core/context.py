"""Per-invocation settings passed explicitly instead of read from globals."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

# Environment variables set by the common hosted CI services.
_CI_VARIABLES = ("CI", "CONTINUOUS_INTEGRATION", "GITHUB_ACTIONS", "GITLAB_CI", "TRAVIS", "CIRCLECI", "BUILDKITE")


def is_continuous_integration(environ: dict[str, str] | None = None) -> bool:
    """Return whether the environment looks like a CI job."""
    env = os.environ if environ is None else environ
    for name in _CI_VARIABLES:
        value = env.get(name, "")
        if value and value.lower() not in ("0", "false", "no"):
            return True
    return False


@dataclass
class RunContext:
    """Everything one hookgate invocation needs to know about its surroundings."""

    root: Path
    ci: bool = False
    no_update: bool = False
    out: TextIO = field(default_factory=lambda: sys.stdout)
