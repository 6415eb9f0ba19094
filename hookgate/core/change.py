"""Immutable description of the files that differ between two references."""

from __future__ import annotations

import ast
import fnmatch
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import PurePosixPath

logger = logging.getLogger(__name__)

# Forty zeros: git's "no object" marker in the pre-push protocol.
NIL_COMMIT = "0" * 40
# git's well-known empty tree object; diffing from it lists every file as added.
ROOT_REFERENCE = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"
# Pseudo reference for the working tree as it is on disk.
CURRENT = "<current>"


def is_ignored(path: str, patterns: Iterable[str]) -> bool:
    """Return whether path or any of its components matches a glob pattern."""
    parts = PurePosixPath(path).parts
    for pattern in patterns:
        if fnmatch.fnmatchcase(path, pattern):
            return True
        if any(fnmatch.fnmatchcase(part, pattern) for part in parts):
            return True
    return False


def filter_ignored(paths: Iterable[str], patterns: Iterable[str]) -> tuple[str, ...]:
    """Drop ignored paths and return the rest sorted and deduplicated."""
    patterns = tuple(patterns)
    return tuple(sorted({p for p in paths if p and not is_ignored(p, patterns)}))


def _is_test_file(path: str) -> bool:
    name = PurePosixPath(path).name
    return name.endswith(".py") and (name.startswith("test_") or name.endswith("_test.py"))


def _parent(path: str) -> str:
    parent = str(PurePosixPath(path).parent)
    return parent if parent else "."


@dataclass(frozen=True)
class FileSet:
    """A sorted set of repository relative paths plus the tracked tree it lives in."""

    files: tuple[str, ...]
    tracked: frozenset[str] = field(default_factory=frozenset, repr=False)

    def __len__(self) -> int:
        return len(self.files)

    def __contains__(self, path: object) -> bool:
        return path in self.files

    @property
    def python_files(self) -> tuple[str, ...]:
        return tuple(p for p in self.files if p.endswith(".py"))

    @property
    def test_files(self) -> tuple[str, ...]:
        return tuple(p for p in self.files if _is_test_file(p))

    def directories(self) -> list[str]:
        """Every distinct directory holding at least one file."""
        return sorted({_parent(p) for p in self.files})

    def source_dirs(self) -> list[str]:
        """Directories holding Python sources."""
        return sorted({_parent(p) for p in self.python_files})

    def test_dirs(self) -> list[str]:
        """Directories holding pytest style test modules."""
        return sorted({_parent(p) for p in self.test_files})

    def package_dirs(self) -> list[str]:
        """Source directories that are importable packages (have an __init__.py)."""
        return [
            d for d in self.source_dirs()
            if d != "." and f"{d}/__init__.py" in self.tracked
        ]

    def module_name(self, path: str) -> str:
        """Dotted module name of path, rooted at its outermost package."""
        pure = PurePosixPath(path)
        parts = list(pure.with_suffix("").parts)
        if parts and parts[-1] == "__init__":
            parts.pop()
        dirs = pure.parent.parts
        # Walk up while the directory is itself a package.
        start = len(dirs)
        while start > 0 and "/".join(dirs[:start]) + "/__init__.py" in self.tracked:
            start -= 1
        return ".".join(parts[start:])


@dataclass(frozen=True)
class ChangeSet:
    """Files that differ between ``from_ref`` and ``to_ref`` after ignore filtering.

    ``changed`` holds the modified files, ``all`` every tracked file at
    ``to_ref``. Both are filtered by ``ignore``. Instances are never mutated;
    ``indirect`` is derived lazily from file contents at ``to_ref``.
    """

    from_ref: str
    to_ref: str
    ignore: tuple[str, ...]
    changed: FileSet
    all: FileSet
    loader: Callable[[str], bytes | None] | None = field(
        default=None, compare=False, repr=False
    )

    @classmethod
    def build(
        cls,
        from_ref: str,
        to_ref: str,
        changed: Iterable[str],
        tracked: Iterable[str],
        ignore: Iterable[str] = (),
        loader: Callable[[str], bytes | None] | None = None,
    ) -> ChangeSet:
        ignore = tuple(ignore)
        all_files = filter_ignored(tracked, ignore)
        tracked_set = frozenset(all_files)
        return cls(
            from_ref=from_ref,
            to_ref=to_ref,
            ignore=ignore,
            changed=FileSet(filter_ignored(changed, ignore), tracked_set),
            all=FileSet(all_files, tracked_set),
            loader=loader,
        )

    @property
    def is_empty(self) -> bool:
        return not self.changed.files

    def is_ignored(self, path: str) -> bool:
        return is_ignored(path, self.ignore)

    def content(self, path: str) -> bytes | None:
        """Raw content of path at ``to_ref``, None if unavailable."""
        if self.loader is None:
            return None
        return self.loader(path)

    @cached_property
    def indirect(self) -> FileSet:
        """Changed files plus every Python file importing a changed module."""
        changed_modules = {
            self.all.module_name(p) for p in self.changed.python_files
        }
        changed_modules.discard("")
        if not changed_modules:
            return self.changed

        affected = set(self.changed.files)
        for path in self.all.python_files:
            if path in affected:
                continue
            imports = self._imports_of(path)
            if any(_imports_match(name, changed_modules) for name in imports):
                affected.add(path)
        return FileSet(tuple(sorted(affected)), self.all.tracked)

    def _imports_of(self, path: str) -> set[str]:
        raw = self.content(path)
        if raw is None:
            return set()
        try:
            tree = ast.parse(raw, filename=path)
        except (SyntaxError, ValueError):
            logger.debug("Skipping unparsable %s for import scan", path)
            return set()

        package = self.all.module_name(path).split(".")
        if PurePosixPath(path).name != "__init__.py":
            package = package[:-1]

        names: set[str] = set()
        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                names.update(alias.name for alias in node.names)
            elif isinstance(node, ast.ImportFrom):
                base = node.module or ""
                if node.level:
                    prefix = package[: len(package) - node.level + 1]
                    base = ".".join([*prefix, base] if base else prefix)
                if base:
                    names.add(base)
                    names.update(f"{base}.{alias.name}" for alias in node.names)
        return names


def _imports_match(name: str, modules: set[str]) -> bool:
    for module in modules:
        if name == module or name.startswith(module + ".") or module.startswith(name + "."):
            return True
    return False
