"""Exception hierarchy shared by the repository, runner and coordinators."""

from __future__ import annotations


class HookgateError(Exception):
    """Base class for every error surfaced by hookgate."""


class RepositoryStateError(HookgateError):
    """The workspace is in a state git cannot resolve (unborn HEAD, not a repo...)."""


class CheckoutError(HookgateError):
    """A reference could not be checked out or the stash could not be reinstated."""


class ProtocolError(HookgateError):
    """A pre-push stdin line did not match the expected four-field format."""


class NoUpstreamError(HookgateError):
    """The current branch has no remote tracking reference configured."""


class ConfigError(HookgateError):
    """The configuration or a check's options failed validation."""


class PrerequisiteError(HookgateError):
    """One or more check prerequisites are missing and cannot be installed."""


class CheckFailure(HookgateError):
    """Raised by a check when it ran to completion and found problems."""


class BudgetExceededFailure(HookgateError):
    """A check ran past its mode's time limit."""

    def __init__(self, check_name: str, duration: float):
        super().__init__(f"check {check_name} took {duration:1.2f}s")
        self.check_name = check_name
        self.duration = duration


class ChecksFailed(HookgateError):
    """At least one check failed or exceeded the time budget."""

    def __init__(self, count: int, duration: float):
        super().__init__(f"{count} check(s) failed in {duration:1.2f}s")
        self.count = count
        self.duration = duration
