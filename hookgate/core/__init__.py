"""Core change detection, workspace isolation and check execution."""

from .change import CURRENT, NIL_COMMIT, ROOT_REFERENCE, ChangeSet, FileSet
from .context import RunContext, is_continuous_integration
from .errors import (
    BudgetExceededFailure,
    CheckFailure,
    CheckoutError,
    ChecksFailed,
    ConfigError,
    HookgateError,
    NoUpstreamError,
    PrerequisiteError,
    ProtocolError,
    RepositoryStateError,
)
from .runner import CheckRunner, RunReport, RunResult
from .scm import GitRepository, get_repo

__all__ = [
    "CURRENT",
    "NIL_COMMIT",
    "ROOT_REFERENCE",
    "ChangeSet",
    "FileSet",
    "RunContext",
    "is_continuous_integration",
    "BudgetExceededFailure",
    "CheckFailure",
    "CheckoutError",
    "ChecksFailed",
    "ConfigError",
    "HookgateError",
    "NoUpstreamError",
    "PrerequisiteError",
    "ProtocolError",
    "RepositoryStateError",
    "CheckRunner",
    "RunReport",
    "RunResult",
    "GitRepository",
    "get_repo",
]
