"""Subprocess invocation helpers used by the git backend and the checks."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


def capture(
    args: list[str],
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
    timeout: float | None = None,
) -> tuple[str, int]:
    """Run a command and return its combined stdout/stderr and exit code.

    A missing executable is reported as exit code 127 with the OS error as
    output, the same way a shell would, so callers only branch on the code.
    """
    full_env = None
    if env:
        full_env = {**os.environ, **env}
    logger.debug("capture(%s) in %s", " ".join(args), cwd)
    try:
        proc = subprocess.run(
            args,
            cwd=cwd,
            env=full_env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        return str(exc), 127
    return proc.stdout or "", proc.returncode


def run_git(cwd: Path, *args: str) -> tuple[str, str, int]:
    """Run git and keep stdout and stderr apart for porcelain parsing."""
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as exc:
        return "", str(exc), 127
    return result.stdout, result.stderr.strip(), result.returncode
