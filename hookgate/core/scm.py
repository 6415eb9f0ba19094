"""Git backend: change detection and workspace mutation primitives."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from ..utils.process import run_git
from .change import CURRENT, NIL_COMMIT, ROOT_REFERENCE, ChangeSet
from .errors import CheckoutError, NoUpstreamError, RepositoryStateError

logger = logging.getLogger(__name__)

# Files recording an interrupted merge, cherry-pick or revert. Stashing
# resets the worktree, which deletes them.
OPERATION_STATE_FILES = ("MERGE_HEAD", "MERGE_MSG", "MERGE_MODE", "CHERRY_PICK_HEAD", "REVERT_HEAD")


@dataclass
class WorkspaceSnapshot:
    """What ``stash()`` did, so ``restore()`` can undo exactly that."""

    stashed: bool
    operation_state: dict[str, bytes] = field(default_factory=dict)
    consumed: bool = False


def get_repo(path: Path) -> GitRepository:
    """Return the repository containing path.

    Raises:
        RepositoryStateError: If path is not inside a git worktree.
    """
    stdout, stderr, code = run_git(path, "rev-parse", "--show-toplevel")
    if code != 0:
        raise RepositoryStateError(f"Not a git repository: {path} ({stderr})")
    return GitRepository(Path(stdout.strip()))


class GitRepository:
    """Git operations for one worktree.

    Every mutating primitive (stash, restore, checkout) is individually
    fallible and never retries; composing them with rollback is the
    coordinator's job.
    """

    def __init__(self, root: Path):
        self.root = root.resolve()
        self._snapshot: WorkspaceSnapshot | None = None

    def _git(self, *args: str) -> str:
        stdout, stderr, code = run_git(self.root, *args)
        if code != 0:
            raise RepositoryStateError(f"git {' '.join(args)} failed: {stderr}")
        return stdout

    def _try_git(self, *args: str) -> str | None:
        stdout, _, code = run_git(self.root, *args)
        if code != 0:
            return None
        return stdout.strip()

    def scm_dir(self) -> Path:
        """The .git directory (or file target for worktrees)."""
        git_dir = Path(self._git("rev-parse", "--git-dir").strip())
        if not git_dir.is_absolute():
            git_dir = self.root / git_dir
        return git_dir

    def head(self) -> str:
        """Commit currently checked out."""
        out = self._try_git("rev-parse", "--verify", "-q", "HEAD")
        if not out:
            raise RepositoryStateError(f"HEAD cannot be resolved in {self.root}")
        return out

    def is_unborn(self) -> bool:
        """Whether HEAD names a branch that has no commit yet."""
        return self._try_git("rev-parse", "--verify", "-q", "HEAD") is None and bool(self.ref())

    def ref(self) -> str:
        """Symbolic branch name checked out, "" when detached."""
        return self._try_git("symbolic-ref", "-q", "--short", "HEAD") or ""

    def upstream(self) -> str:
        """Commit of the remote branch the current branch tracks."""
        out = self._try_git("rev-parse", "--verify", "-q", "@{upstream}")
        if not out:
            raise NoUpstreamError(f"No upstream configured for {self.ref() or 'HEAD'}")
        return out

    def hook_install_dir(self) -> Path:
        """Directory git reads hook scripts from."""
        hooks = Path(self._git("rev-parse", "--git-path", "hooks").strip())
        if not hooks.is_absolute():
            hooks = self.root / hooks
        return hooks

    def _stash_ref(self) -> str | None:
        return self._try_git("rev-parse", "-q", "--verify", "refs/stash")

    def _read_operation_state(self) -> dict[str, bytes]:
        scm_dir = self.scm_dir()
        state = {}
        for name in OPERATION_STATE_FILES:
            path = scm_dir / name
            if path.is_file():
                state[name] = path.read_bytes()
        return state

    def _write_operation_state(self, state: dict[str, bytes]) -> None:
        scm_dir = self.scm_dir()
        for name, data in state.items():
            (scm_dir / name).write_bytes(data)
        if state:
            logger.info("stash: reinstated %s", ", ".join(sorted(state)))

    def stash(self) -> bool:
        """Stash uncommitted edits, keeping staged content in the working tree.

        An in-progress merge, cherry-pick or revert survives the round trip
        through restore().

        Returns:
            False when there was nothing to stash.
        """
        if self._snapshot is not None and not self._snapshot.consumed:
            raise RepositoryStateError("A stash is already pending restoration")
        state = self._read_operation_state()
        before = self._stash_ref()
        stdout, stderr, code = run_git(self.root, "stash", "push", "-q", "--keep-index")
        if code != 0:
            self._write_operation_state(state)
            raise RepositoryStateError(f"git stash failed: {stderr or stdout}")
        after = self._stash_ref()
        stashed = after is not None and after != before
        self._snapshot = WorkspaceSnapshot(stashed=stashed, operation_state=state)
        if not stashed:
            self._write_operation_state(state)
        logger.info("stash: %s", "saved" if stashed else "nothing to stash")
        return stashed

    def restore(self) -> None:
        """Undo the most recent stash(). A no-op when nothing was stashed."""
        snapshot = self._snapshot
        if snapshot is None or snapshot.consumed:
            return
        snapshot.consumed = True
        if not snapshot.stashed:
            return
        try:
            _, stderr, code = run_git(self.root, "reset", "-q", "--hard")
            if code != 0:
                raise CheckoutError(f"git reset failed before restoring stash: {stderr}")
            _, stderr, code = run_git(self.root, "stash", "pop", "-q", "--index")
            if code != 0:
                raise CheckoutError(f"git stash pop failed: {stderr}")
        finally:
            self._write_operation_state(snapshot.operation_state)
        logger.info("stash: restored")

    def checkout(self, ref: str) -> None:
        """Move the working tree to ref."""
        _, stderr, code = run_git(self.root, "checkout", "-q", ref)
        if code != 0:
            raise CheckoutError(f"Failed to checkout {ref}: {stderr}")
        logger.info("checkout: %s", ref)

    def between(self, from_ref: str, to_ref: str, ignore: list[str] | tuple[str, ...] = ()) -> ChangeSet:
        """Files differing between from_ref and to_ref, minus ignored paths.

        ``to_ref`` may be CURRENT for the working tree. A NIL_COMMIT lower
        bound diffs against the empty tree.
        """
        if not from_ref or from_ref == NIL_COMMIT:
            from_ref = ROOT_REFERENCE
        if to_ref == CURRENT:
            diff = self._git("diff", "--name-only", "--no-renames", "-z", from_ref)
            tracked = self._git("ls-files", "-z")
        else:
            diff = self._git("diff", "--name-only", "--no-renames", "-z", from_ref, to_ref)
            tracked = self._git("ls-tree", "-r", "-z", "--name-only", to_ref)

        change = ChangeSet.build(
            from_ref=from_ref,
            to_ref=to_ref,
            changed=diff.split("\0"),
            tracked=tracked.split("\0"),
            ignore=ignore,
            loader=lambda path: self.content(to_ref, path),
        )
        logger.info(
            "between(%s, %s): %d changed, %d tracked",
            from_ref[:12], to_ref[:12], len(change.changed), len(change.all),
        )
        return change

    def content(self, ref: str, path: str) -> bytes | None:
        """Bytes of path at ref (the working tree for CURRENT)."""
        if ref == CURRENT:
            try:
                return (self.root / path).read_bytes()
            except OSError:
                return None
        # run_git decodes text; file content stays raw bytes.
        proc = subprocess.run(
            ["git", "show", f"{ref}:{path}"],
            cwd=self.root,
            capture_output=True,
        )
        if proc.returncode != 0:
            return None
        return proc.stdout
