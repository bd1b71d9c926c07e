"""Thin wrapper over the external ``git`` executable."""

from __future__ import annotations

import asyncio
import shutil
import subprocess
from typing import TYPE_CHECKING, Protocol

from skill_manager.constants import GIT_CLONE_TIMEOUT_SECONDS
from skill_manager.core.exceptions import DependencyError, GitError

if TYPE_CHECKING:
    from pathlib import Path


class GitClient(Protocol):
    async def clone(self, repo_url: str, destination: Path, *, ref: str, depth: int = 1) -> None: ...


class SubprocessGitClient:
    """Runs git in a worker thread so clones do not block the event loop."""

    def __init__(self, *, executable: str = "git", timeout: float = GIT_CLONE_TIMEOUT_SECONDS) -> None:
        self.executable = executable
        self.timeout = timeout

    async def clone(self, repo_url: str, destination: Path, *, ref: str, depth: int = 1) -> None:
        args = [
            self.executable,
            "clone",
            "--depth",
            str(depth),
            "--branch",
            ref,
            "--",
            repo_url,
            str(destination),
        ]
        await asyncio.to_thread(self._run, args)

    def _run(self, args: list[str]) -> None:
        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise GitError(
                f"Git command timed out after {self.timeout}s: {' '.join(args)}"
            ) from exc
        except FileNotFoundError as exc:
            raise DependencyError(
                f"git executable not found: {self.executable}"
            ) from exc

        if result.returncode != 0:
            stderr = result.stderr.strip() or result.stdout.strip()
            # Missing branches and repositories are permanent failures.
            retryable = not ("not found" in stderr or "does not exist" in stderr)
            raise GitError(
                f"Git command failed: {' '.join(args)}\n{stderr}",
                context={"returncode": result.returncode},
                retryable=retryable,
            )


def check_git_available(executable: str = "git") -> str:
    path = shutil.which(executable)
    if path is None:
        raise DependencyError(
            "git is required but was not found on PATH. Install git and try again.",
            context={"executable": executable},
        )
    return path
