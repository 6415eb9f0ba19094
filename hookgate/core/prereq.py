"""Detect and install the external tools enabled checks depend on."""

from __future__ import annotations

import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from ..utils.process import capture
from .context import RunContext
from .errors import PrerequisiteError

if TYPE_CHECKING:
    from ..checks.base import Check, Prerequisite

logger = logging.getLogger(__name__)


def missing_prerequisites(checks: list[Check], context: RunContext) -> list[str]:
    """Look for every prerequisite concurrently; return the sorted missing urls."""
    prereqs: list[Prerequisite] = [p for check in checks for p in check.prerequisites()]
    if not prereqs:
        return []
    with ThreadPoolExecutor(max_workers=min(8, len(prereqs))) as pool:
        present = list(pool.map(lambda p: p.is_present(context.root), prereqs))
    logger.info("Checked for %d prerequisites", len(prereqs))
    return sorted({p.url for p, ok in zip(prereqs, present) if not ok})


def install_prerequisites(checks: list[Check], context: RunContext) -> None:
    """Install missing prerequisites with pip.

    Raises:
        PrerequisiteError: When something is missing and ``context.no_update``
            forbids installing, or when pip fails.
    """
    urls = missing_prerequisites(checks, context)
    if not urls:
        logger.info("Prerequisites installation succeeded")
        return
    if context.no_update:
        listing = "".join(f"  {url}\n" for url in urls)
        raise PrerequisiteError(f"-n is specified but prerequisites are missing:\n{listing}")

    print("Installing:", file=context.out)
    for url in urls:
        print(f"  {url}", file=context.out)
    output, code = capture([sys.executable, "-m", "pip", "install", "--quiet", *urls], cwd=context.root)
    if code != 0:
        raise PrerequisiteError(f"prerequisites installation failed: {output.strip()}")
    logger.info("Prerequisites installation succeeded")
