"""Pluggable verification checks."""

from .base import Check, CheckOptions, Prerequisite
from .coverage import Coverage, CoverageOptions, CoverageSettings
from .native import Build, Copyright
from .registry import KNOWN_CHECKS, create_check
from .tools import Custom, Format, Isort, Lint, Test, Typecheck

__all__ = [
    "Check",
    "CheckOptions",
    "Prerequisite",
    "KNOWN_CHECKS",
    "create_check",
    "Build",
    "Copyright",
    "Coverage",
    "CoverageOptions",
    "CoverageSettings",
    "Custom",
    "Format",
    "Isort",
    "Lint",
    "Test",
    "Typecheck",
]
