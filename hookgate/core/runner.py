"""Concurrent check execution with a per-check time budget."""

from __future__ import annotations

import logging
import sys
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal, TextIO

from .change import ChangeSet
from .errors import BudgetExceededFailure, CheckFailure, ChecksFailed

if TYPE_CHECKING:
    from ..checks.base import Check

logger = logging.getLogger(__name__)

FailureKind = Literal["failure", "budget"]


@dataclass
class RunResult:
    """A single failed outcome. Successful checks produce no result."""

    check: str
    kind: FailureKind
    message: str
    duration: float


@dataclass
class RunReport:
    """Aggregate of one CheckRunner.run() call. ``failures`` has no defined order."""

    checks: int
    duration: float = 0.0
    failures: list[RunResult] = field(default_factory=list)
    # Checks with at least one result; a check can fail and exceed its budget.
    failed_checks: int = 0

    @property
    def ok(self) -> bool:
        return not self.failures

    def raise_for_failures(self) -> None:
        if self.failures:
            raise ChecksFailed(self.failed_checks, self.duration)


def call_check(check: Check, change: ChangeSet) -> tuple[Exception | None, float]:
    """Run one check, serialized with itself when it is not concurrent safe."""
    lock = None if check.concurrent_safe else check.lock
    if lock is not None:
        lock.acquire()
    try:
        start = time.monotonic()
        try:
            check.run(change)
            error = None
        except Exception as exc:  # any check error is a recorded failure
            error = exc
        return error, time.monotonic() - start
    finally:
        if lock is not None:
            lock.release()


class CheckRunner:
    """Run every check concurrently and collect failures without aborting siblings."""

    def __init__(self, out: TextIO | None = None):
        self.out = out if out is not None else sys.stdout
        self._print_lock = threading.Lock()

    def run(self, checks: list[Check], change: ChangeSet, max_duration: float) -> RunReport:
        logger.info("%d checks; %s max seconds allowed", len(checks), max_duration)
        report = RunReport(checks=len(checks))
        start = time.monotonic()
        if checks:
            with ThreadPoolExecutor(max_workers=len(checks)) as pool:
                futures = {pool.submit(self._run_one, check, change, max_duration): check for check in checks}
                for future in as_completed(futures):
                    results = future.result()
                    if results:
                        report.failed_checks += 1
                        report.failures.extend(results)
        report.duration = time.monotonic() - start
        return report

    def _run_one(self, check: Check, change: ChangeSet, max_duration: float) -> list[RunResult]:
        name = check.name
        logger.info("%s...", name)
        error, duration = call_check(check, change)
        logger.info("... %s in %1.2fs%s", name, duration, " FAILED" if error else "")

        results: list[RunResult] = []
        if error is not None:
            if isinstance(error, CheckFailure):
                message = str(error)
            else:
                message = f"{name}: {type(error).__name__}: {error}"
            results.append(RunResult(check=name, kind="failure", message=message, duration=duration))
        # A check that took too long is a check that failed.
        if duration > max_duration:
            budget = BudgetExceededFailure(name, duration)
            results.append(RunResult(check=name, kind="budget", message=str(budget), duration=duration))
        for result in results:
            self._print(result.message)
        return results

    def _print(self, message: str) -> None:
        with self._print_lock:
            print(message, file=self.out, flush=True)
