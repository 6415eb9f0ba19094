"""Git hook script management for the pre-commit and pre-push hooks."""

from __future__ import annotations

import os
import shlex
import sys
from pathlib import Path

from .config import Mode

HOOK_TYPES = (Mode.PRE_COMMIT.value, Mode.PRE_PUSH.value)


def start_marker(hook: str) -> str:
    return f"# >>> hookgate {hook} >>>"


def end_marker(hook: str) -> str:
    return f"# <<< hookgate {hook} <<<"


class GitHookManager:
    """Install/remove the managed block that runs ``hookgate run-hook``.

    Existing hook scripts are preserved: the managed block is appended and
    removal only strips the block.
    """

    def __init__(self, hooks_dir: Path, python: str | None = None):
        self.hooks_dir = hooks_dir
        self.python = python or sys.executable

    def hook_path(self, hook: str) -> Path:
        return self.hooks_dir / hook

    def install(self, hook: str) -> tuple[bool, str]:
        if not self.hooks_dir.exists():
            try:
                self.hooks_dir.mkdir(parents=True)
            except OSError as exc:
                return False, f"Cannot create {self.hooks_dir}: {exc}"

        path = self.hook_path(hook)
        existing = ""
        if path.exists():
            existing = path.read_text()
            if start_marker(hook) in existing and end_marker(hook) in existing:
                return True, f"{hook} hook already installed."

        managed_block = self._managed_block(hook)
        if not existing:
            script = "#!/bin/sh\nset -e\n\n" + managed_block + "\n"
        else:
            script = existing.rstrip() + "\n\n" + managed_block + "\n"

        path.write_text(script)
        os.chmod(path, 0o755)
        return True, f"Installed {hook} hook."

    def install_all(self) -> list[tuple[bool, str]]:
        return [self.install(hook) for hook in HOOK_TYPES]

    def remove(self, hook: str) -> tuple[bool, str]:
        path = self.hook_path(hook)
        if not path.exists():
            return True, f"No {hook} hook to remove."

        content = path.read_text()
        start = content.find(start_marker(hook))
        end = content.find(end_marker(hook))
        if start == -1 or end == -1:
            return False, f"{hook} hook exists but is not managed by hookgate."

        end += len(end_marker(hook))
        updated = (content[:start] + content[end:]).strip()
        # Only the header written by install() is left.
        if not updated or updated == "#!/bin/sh\nset -e":
            path.unlink(missing_ok=True)
            return True, f"Removed managed {hook} hook."

        path.write_text(updated + "\n")
        return True, f"Removed hookgate managed section from {hook} hook."

    def is_installed(self, hook: str) -> bool:
        path = self.hook_path(hook)
        if not path.exists():
            return False
        content = path.read_text()
        return start_marker(hook) in content and end_marker(hook) in content

    def _managed_block(self, hook: str) -> str:
        return "\n".join(
            [
                start_marker(hook),
                "# AUTOGENERATED BY hookgate. For more information, run:",
                "#   hookgate help",
                f"{shlex.quote(self.python)} -m hookgate run-hook {hook}",
                end_marker(hook),
            ]
        )
