"""Name to constructor registry for every known check."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..core.errors import ConfigError
from .base import Check
from .coverage import Coverage
from .native import Build, Copyright
from .tools import Custom, Format, Isort, Lint, Test, Typecheck

KNOWN_CHECKS: dict[str, type[Check]] = {
    cls.kind: cls
    for cls in (Build, Copyright, Coverage, Custom, Format, Isort, Lint, Test, Typecheck)
}


def create_check(kind: str, options: dict[str, Any] | None = None, root: Path | None = None) -> Check:
    """Build a check of the given kind from its raw options mapping.

    Raises:
        ConfigError: If the kind is unknown or the options do not validate.
    """
    cls = KNOWN_CHECKS.get(kind)
    if cls is None:
        raise ConfigError(f"unknown check {kind!r}; known checks: {', '.join(sorted(KNOWN_CHECKS))}")
    try:
        parsed = cls.options_model.model_validate(options or {})
    except ValidationError as exc:
        raise ConfigError(f"invalid options for check {kind!r}: {exc}") from exc
    return cls(parsed, root=root)
