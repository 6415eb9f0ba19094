"""Coverage check backed by pytest-cov's JSON report."""

from __future__ import annotations

import json
import logging
import sys
import tempfile
from pathlib import Path, PurePosixPath

from pydantic import BaseModel, ConfigDict, Field

from ..core.change import ChangeSet
from .base import Check, CheckOptions, Prerequisite, filter_output

logger = logging.getLogger(__name__)


class CoverageSettings(BaseModel):
    """Accepted coverage range, in percent."""

    model_config = ConfigDict(extra="forbid")

    min_coverage: float = Field(default=0, ge=0, le=100)
    max_coverage: float = Field(default=100, ge=0, le=100)

    def verify(self, label: str, percent: float) -> str | None:
        if percent < self.min_coverage:
            return f"{label}: coverage {percent:3.1f}% is below {self.min_coverage:3.1f}%"
        if percent > self.max_coverage:
            return (
                f"{label}: coverage {percent:3.1f}% is above {self.max_coverage:3.1f}%; "
                "raise max_coverage"
            )
        return None


class CoverageOptions(CheckOptions):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    extra_args: list[str] = Field(default_factory=list)
    global_: CoverageSettings = Field(
        default_factory=lambda: CoverageSettings(min_coverage=50, max_coverage=100),
        alias="global",
    )
    per_dir_default: CoverageSettings = Field(default_factory=CoverageSettings)
    # A None entry disables the per directory verification for that directory.
    per_dir: dict[str, CoverageSettings | None] = Field(default_factory=dict)


def summarize_by_dir(report: dict) -> dict[str, tuple[int, int]]:
    """Aggregate (covered, statements) per directory from a coverage JSON report."""
    totals: dict[str, tuple[int, int]] = {}
    for path, data in (report.get("files") or {}).items():
        summary = data.get("summary") or {}
        directory = str(PurePosixPath(Path(path).as_posix()).parent) or "."
        covered, statements = totals.get(directory, (0, 0))
        totals[directory] = (
            covered + int(summary.get("covered_lines", 0)),
            statements + int(summary.get("num_statements", 0)),
        )
    return totals


class Coverage(Check):
    """Run the whole test suite under coverage and enforce thresholds.

    Not concurrent safe: coverage data files and the pytest run share state
    with any other instance of this check.
    """

    kind = "coverage"
    description = "enforces minimum test coverage on all packages"
    options_model = CoverageOptions
    concurrent_safe = False

    def prerequisites(self) -> list[Prerequisite]:
        return [
            Prerequisite(
                help_command=[sys.executable, "-c", "import pytest_cov"],
                url="pytest-cov",
            )
        ]

    def run(self, change: ChangeSet) -> None:
        test_dirs = change.all.test_dirs()
        if not test_dirs:
            logger.info("coverage: no tests found")
            return
        with tempfile.TemporaryDirectory(prefix="hookgate-cov-") as tmp:
            report_path = Path(tmp) / "coverage.json"
            args = [
                sys.executable, "-m", "pytest", "-q", "-p", "no:cacheprovider",
                "--cov=.", f"--cov-report=json:{report_path}",
                *self.options.extra_args, *test_dirs,
            ]
            output, code = self._call(args, env={"COVERAGE_FILE": str(Path(tmp) / ".coverage")})
            if code not in (0, 5):
                self._fail("tests failed under coverage\n" + "\n".join(filter_output(output, [])[-40:]))
            try:
                report = json.loads(report_path.read_text())
            except (OSError, json.JSONDecodeError) as exc:
                self._fail(f"unable to read coverage report: {exc}")
        self.evaluate(report, change)

    def evaluate(self, report: dict, change: ChangeSet) -> None:
        """Compare a coverage JSON report against the configured thresholds."""
        problems: list[str] = []
        percent = float((report.get("totals") or {}).get("percent_covered", 0.0))
        problem = self.options.global_.verify("global", percent)
        if problem:
            problems.append(problem)

        per_dir = summarize_by_dir(report)
        for directory in change.changed.source_dirs():
            if directory in self.options.per_dir:
                settings = self.options.per_dir[directory]
                if settings is None:
                    continue
            else:
                settings = self.options.per_dir_default
            covered, statements = per_dir.get(directory, (0, 0))
            if not statements:
                continue
            problem = settings.verify(directory, 100.0 * covered / statements)
            if problem:
                problems.append(problem)

        if problems:
            self._fail("\n" + "\n".join(problems))
