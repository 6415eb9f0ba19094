"""Tests for the git backend."""

import subprocess

import pytest

from conftest import commit_files, git
from hookgate.core.change import CURRENT, NIL_COMMIT, ROOT_REFERENCE
from hookgate.core.errors import CheckoutError, NoUpstreamError, RepositoryStateError
from hookgate.core.scm import GitRepository, get_repo


def snapshot(root):
    """Working tree and index content, for byte-identical comparisons."""
    files = {
        str(path.relative_to(root)): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file() and ".git" not in path.relative_to(root).parts
    }
    return files, git(root, "diff", "--cached")


def start_conflicting_merge(root):
    """Leave root mid-merge with a conflict in a.py; return MERGE_HEAD."""
    commit_files(root, {"a.py": "x = 1\n", "b.py": "y = 1\n"})
    git(root, "checkout", "-q", "-b", "side")
    commit_files(root, {"a.py": "x = 2\n"})
    git(root, "checkout", "-q", "main")
    commit_files(root, {"a.py": "x = 3\n"})
    merge = subprocess.run(["git", "merge", "-q", "side"], cwd=root, capture_output=True)
    assert merge.returncode != 0
    return (root / ".git" / "MERGE_HEAD").read_text()


class TestRepositoryQueries:
    """Test read-only queries."""

    def test_get_repo_from_subdirectory(self, git_dir):
        sub = git_dir / "pkg"
        sub.mkdir()

        repo = get_repo(sub)

        assert repo.root == git_dir.resolve()

    def test_get_repo_outside_git(self, temp_dir):
        with pytest.raises(RepositoryStateError):
            get_repo(temp_dir)

    def test_head_and_ref(self, repo, git_dir):
        assert repo.head() == git(git_dir, "rev-parse", "HEAD")
        assert repo.ref() == "main"

    def test_ref_empty_when_detached(self, repo, git_dir):
        git(git_dir, "checkout", "-q", "--detach")

        assert repo.ref() == ""

    def test_unborn_branch(self, temp_dir):
        git(temp_dir, "init", "-q")
        git(temp_dir, "symbolic-ref", "HEAD", "refs/heads/main")
        repo = GitRepository(temp_dir)

        assert repo.is_unborn() is True
        assert repo.ref() == "main"
        with pytest.raises(RepositoryStateError):
            repo.head()

    def test_not_unborn_after_first_commit(self, repo, git_dir):
        assert repo.is_unborn() is False
        git(git_dir, "checkout", "-q", "--detach")
        assert repo.is_unborn() is False

    def test_no_upstream(self, repo):
        with pytest.raises(NoUpstreamError):
            repo.upstream()

    def test_upstream(self, git_dir, tmp_path):
        clone = tmp_path / "clone"
        git(tmp_path, "clone", "-q", str(git_dir), str(clone))

        assert GitRepository(clone).upstream() == git(git_dir, "rev-parse", "HEAD")

    def test_hook_install_dir(self, repo, git_dir):
        assert repo.hook_install_dir() == git_dir.resolve() / ".git" / "hooks"

    def test_scm_dir(self, repo, git_dir):
        assert repo.scm_dir() == git_dir.resolve() / ".git"


class TestBetween:
    """Test change detection."""

    def test_between_commits(self, repo, git_dir):
        base = repo.head()
        head = commit_files(git_dir, {"a.py": "a = 1\n", "b.py": "b = 1\n"})

        change = repo.between(base, head)

        assert change.changed.files == ("a.py", "b.py")
        assert change.all.files == ("README.md", "a.py", "b.py")
        assert change.content("a.py") == b"a = 1\n"

    def test_between_root_lists_every_file(self, repo, git_dir):
        head = commit_files(git_dir, {"a.py": "a = 1\n"})

        change = repo.between(ROOT_REFERENCE, head)

        assert change.changed.files == ("README.md", "a.py")

    def test_nil_lower_bound_means_root(self, repo, git_dir):
        head = commit_files(git_dir, {"a.py": "a = 1\n"})

        change = repo.between(NIL_COMMIT, head)

        assert change.from_ref == ROOT_REFERENCE
        assert change.changed.files == ("README.md", "a.py")

    def test_between_current_includes_working_tree(self, repo, git_dir):
        (git_dir / "README.md").write_text("# Edited\n")

        change = repo.between(repo.head(), CURRENT)

        assert change.changed.files == ("README.md",)
        assert change.content("README.md") == b"# Edited\n"

    def test_between_applies_ignore(self, repo, git_dir):
        base = repo.head()
        head = commit_files(git_dir, {"keep.py": "", "build/gen.py": ""})

        change = repo.between(base, head, ignore=["build"])

        assert change.changed.files == ("keep.py",)
        assert "build/gen.py" not in change.all

    def test_between_unknown_ref(self, repo):
        with pytest.raises(RepositoryStateError):
            repo.between("0123456789abcdef0123456789abcdef01234567", CURRENT)


class TestStash:
    """Test stash and restore."""

    def test_restore_is_byte_identical(self, repo, git_dir):
        commit_files(git_dir, {"a.py": "a = 1\n", "b.py": "b = 1\n"})
        (git_dir / "a.py").write_text("a = 2\n")
        git(git_dir, "add", "a.py")
        (git_dir / "a.py").write_text("a = 3\n")
        (git_dir / "b.py").write_text("b = 2\n")
        before = snapshot(git_dir)

        assert repo.stash() is True
        # Staged content stays, unstaged edits are gone.
        assert (git_dir / "a.py").read_text() == "a = 2\n"
        assert (git_dir / "b.py").read_text() == "b = 1\n"

        repo.restore()

        assert snapshot(git_dir) == before

    def test_nothing_to_stash(self, repo, git_dir):
        before = snapshot(git_dir)

        assert repo.stash() is False
        repo.restore()

        assert snapshot(git_dir) == before

    def test_restore_without_stash_is_noop(self, repo):
        repo.restore()

    def test_restore_consumes_snapshot_once(self, repo, git_dir):
        (git_dir / "README.md").write_text("# Edited\n")
        repo.stash()
        repo.restore()

        repo.restore()

        assert (git_dir / "README.md").read_text() == "# Edited\n"

    def test_stash_twice_is_rejected(self, repo, git_dir):
        (git_dir / "README.md").write_text("# Edited\n")
        repo.stash()

        with pytest.raises(RepositoryStateError):
            repo.stash()

        repo.restore()

    def test_resolved_merge_without_unstaged_edits(self, repo, git_dir):
        merge_head = start_conflicting_merge(git_dir)
        (git_dir / "a.py").write_text("x = 4\n")
        git(git_dir, "add", "a.py")

        repo.stash()
        repo.restore()

        assert (git_dir / ".git" / "MERGE_HEAD").read_text() == merge_head
        assert git(git_dir, "diff", "--cached", "--name-only") == "a.py"
        assert (git_dir / "a.py").read_text() == "x = 4\n"

    def test_resolved_merge_survives_stash(self, repo, git_dir):
        merge_head = start_conflicting_merge(git_dir)
        merge_msg = (git_dir / ".git" / "MERGE_MSG").read_text()
        (git_dir / "a.py").write_text("x = 4\n")
        git(git_dir, "add", "a.py")
        (git_dir / "b.py").write_text("y = 2\n")
        before = snapshot(git_dir)

        assert repo.stash() is True
        assert (git_dir / "b.py").read_text() == "y = 1\n"
        repo.restore()

        assert snapshot(git_dir) == before
        assert (git_dir / ".git" / "MERGE_HEAD").read_text() == merge_head
        assert (git_dir / ".git" / "MERGE_MSG").read_text() == merge_msg
        git(git_dir, "commit", "-q", "--no-edit")
        assert len(git(git_dir, "rev-list", "--parents", "-n", "1", "HEAD").split()) == 3


class TestCheckout:
    """Test checkout."""

    def test_checkout_commit(self, repo, git_dir):
        first = repo.head()
        commit_files(git_dir, {"a.py": ""})

        repo.checkout(first)

        assert repo.head() == first
        assert not (git_dir / "a.py").exists()

    def test_checkout_unknown_ref(self, repo):
        with pytest.raises(CheckoutError):
            repo.checkout("no-such-branch")

    def test_content_at_ref(self, repo, git_dir):
        first = repo.head()
        commit_files(git_dir, {"README.md": "# Changed\n"})

        assert repo.content(first, "README.md") == b"# Test\n"
        assert repo.content(first, "missing") is None
