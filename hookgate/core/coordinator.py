"""Hook protocols: sequencing workspace isolation, change detection and checks."""

from __future__ import annotations

import logging
import re
import sys
from typing import TextIO

from .change import CURRENT, NIL_COMMIT, ROOT_REFERENCE, ChangeSet
from .config import Config, Mode
from .context import RunContext
from .errors import HookgateError, ProtocolError
from .prereq import install_prerequisites
from .runner import CheckRunner, RunReport
from .scm import GitRepository

logger = logging.getLogger(__name__)

# http://git-scm.com/docs/githooks#_pre_push
PRE_PUSH_LINE = re.compile(r"(.+?) ([0-9a-f]{40}) (.+?) ([0-9a-f]{40})")


class WorkspaceGuard:
    """Scoped stash/checkout lifecycle with guaranteed restoration.

    On exit the original branch (or commit when detached) is checked out
    again if the guard moved HEAD, then the stash is reinstated, in that
    order. A restoration error is raised only when the body succeeded;
    otherwise it is logged and the body's error propagates.
    """

    def __init__(self, repo: GitRepository):
        self.repo = repo
        self.original_head = ""
        self.original_ref = ""
        self.current = ""
        self.stashed = False
        self._tried_stash = False

    def __enter__(self) -> WorkspaceGuard:
        # "" when the checkout is detached.
        self.original_ref = self.repo.ref()
        # No commit yet: nothing to stash against or return to.
        self.original_head = "" if self.repo.is_unborn() else self.repo.head()
        self.current = self.original_head
        return self

    def stash_once(self) -> bool:
        """Stash uncommitted edits; later calls reuse the first stash."""
        if not self._tried_stash and self.original_head:
            self._tried_stash = True
            self.stashed = self.repo.stash()
        return self.stashed

    def checkout(self, commit: str) -> None:
        if commit == self.current:
            return
        self.stash_once()
        self.current = commit
        self.repo.checkout(commit)

    def __exit__(self, exc_type, exc, tb) -> bool:
        errors: list[HookgateError] = []
        if self.current != self.original_head:
            try:
                self.repo.checkout(self.original_ref or self.original_head)
            except HookgateError as err:
                errors.append(err)
        if self._tried_stash:
            try:
                self.repo.restore()
            except HookgateError as err:
                errors.append(err)

        if exc is not None:
            for err in errors:
                logger.error("workspace restoration failed: %s", err)
            return False
        if errors:
            for err in errors[1:]:
                logger.error("workspace restoration failed: %s", err)
            raise errors[0]
        return False


class HookCoordinator:
    """Implements the pre-commit, pre-push and continuous-integration hooks."""

    def __init__(
        self,
        repo: GitRepository,
        config: Config,
        context: RunContext,
        runner: CheckRunner | None = None,
    ):
        self.repo = repo
        self.config = config
        self.context = context
        self.runner = runner or CheckRunner(out=context.out)

    def between(self, from_ref: str, to_ref: str) -> ChangeSet:
        return self.repo.between(from_ref, to_ref, self.config.ignore_patterns)

    def run_checks(self, change: ChangeSet, modes: list[Mode]) -> RunReport:
        """Run every check enabled in modes, raising ChecksFailed on any failure."""
        checks, max_duration = self.config.enabled_checks(modes, root=self.context.root)
        logger.info("mode: %s", ", ".join(mode.value for mode in modes))
        report = self.runner.run(checks, change, max_duration)
        report.raise_for_failures()
        return report

    def run_pre_commit(self) -> None:
        """Stash unstaged edits, check the staged content, restore the edits."""
        with WorkspaceGuard(self.repo) as guard:
            guard.stash_once()
            change = self.between(guard.original_head or ROOT_REFERENCE, CURRENT)
            self.run_checks(change, [Mode.PRE_COMMIT])

    def run_pre_push(self, stream: TextIO | None = None) -> int:
        """Check every ref update git announces on stream until end-of-stream.

        Returns:
            The number of ref updates that were checked.
        """
        stream = stream if stream is not None else sys.stdin
        checked = 0
        with WorkspaceGuard(self.repo) as guard:
            for line in stream:
                match = PRE_PUSH_LINE.fullmatch(line.rstrip("\n"))
                if match is None:
                    raise ProtocolError(f"unexpected stdin for pre-push: {line!r}")
                local_sha, remote_sha = match.group(2), match.group(4)
                if local_sha == NIL_COMMIT:
                    # The remote ref is being deleted.
                    continue
                guard.checkout(local_sha)
                from_ref = ROOT_REFERENCE if remote_sha == NIL_COMMIT else remote_sha
                change = self.between(from_ref, local_sha)
                self.run_checks(change, [Mode.PRE_PUSH])
                checked += 1
        return checked

    def run_continuous_integration(self) -> None:
        """Check the whole tree, installing prerequisites unless disallowed."""
        modes = [Mode.CONTINUOUS_INTEGRATION]
        change = self.between(ROOT_REFERENCE, CURRENT)
        checks, _ = self.config.enabled_checks(modes, root=self.context.root)
        install_prerequisites(checks, self.context)
        self.run_checks(change, modes)

    def run(self, modes: list[Mode], all_files: bool = False) -> RunReport:
        """Interactive run against upstream (or the whole tree with all_files)."""
        old = ROOT_REFERENCE if all_files else self.repo.upstream()
        change = self.between(old, CURRENT)
        return self.run_checks(change, modes)

    def run_hook(self, hook: str, stream: TextIO | None = None) -> None:
        if hook == Mode.PRE_COMMIT.value:
            self.run_pre_commit()
        elif hook == Mode.PRE_PUSH.value:
            self.run_pre_push(stream)
        elif hook == Mode.CONTINUOUS_INTEGRATION.value:
            self.run_continuous_integration()
        else:
            raise HookgateError(f"unsupported hook type for run-hook: {hook!r}")
