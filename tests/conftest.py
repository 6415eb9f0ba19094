"""Pytest configuration and shared fixtures."""

import shutil
import subprocess
import tempfile
from pathlib import Path

import pytest

from hookgate.core.scm import GitRepository


def git(cwd: Path, *args: str) -> str:
    """Run git in cwd, failing the test on a non-zero exit."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0, f"git {' '.join(args)}: {result.stderr}"
    return result.stdout.strip()


def commit_files(cwd: Path, files: dict[str, str], message: str = "update") -> str:
    """Write files, commit them and return the new commit id."""
    for name, content in files.items():
        path = cwd / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    git(cwd, "add", "--", *files)
    git(cwd, "commit", "-q", "-m", message)
    return git(cwd, "rev-parse", "HEAD")


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    path = Path(tempfile.mkdtemp())
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def git_dir(temp_dir):
    """A real git repository on branch main with one initial commit."""
    git(temp_dir, "init", "-q")
    git(temp_dir, "config", "user.email", "test@test.com")
    git(temp_dir, "config", "user.name", "Test User")
    git(temp_dir, "config", "commit.gpgsign", "false")
    git(temp_dir, "symbolic-ref", "HEAD", "refs/heads/main")
    commit_files(temp_dir, {"README.md": "# Test\n"}, "Initial commit")
    return temp_dir


@pytest.fixture
def repo(git_dir):
    """GitRepository wrapping git_dir."""
    return GitRepository(git_dir)


@pytest.fixture
def python_project(git_dir):
    """git_dir with a small package and its tests committed."""
    commit_files(
        git_dir,
        {
            "pkg/__init__.py": "",
            "pkg/core.py": "def add(a, b):\n    return a + b\n",
            "pkg/cli.py": "from .core import add\n\n\ndef main():\n    return add(1, 2)\n",
            "pkg/util.py": "def noop():\n    return None\n",
            "tests/test_core.py": "from pkg.core import add\n\n\ndef test_add():\n    assert add(1, 2) == 3\n",
        },
        "Add package",
    )
    return git_dir
