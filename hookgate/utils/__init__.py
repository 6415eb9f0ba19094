"""Shared utilities for hookgate."""

from .process import capture, run_git

__all__ = [
    "capture",
    "run_git",
]
