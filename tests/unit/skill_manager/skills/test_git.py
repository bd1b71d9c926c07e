from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from skill_manager.core.exceptions import DependencyError, GitError
from skill_manager.skills import git as git_module
from skill_manager.skills.git import SubprocessGitClient, check_git_available


def _completed(returncode: int, stderr: str = "") -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout="", stderr=stderr)


@pytest.mark.asyncio
async def test_clone_runs_shallow_branch_clone(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_run(args, **kwargs):
        captured["args"] = args
        captured["timeout"] = kwargs["timeout"]
        return _completed(0)

    monkeypatch.setattr(git_module.subprocess, "run", fake_run)

    await SubprocessGitClient(timeout=12).clone(
        "https://github.com/o/r.git", tmp_path / "dest", ref="v1"
    )

    assert captured["args"] == [
        "git",
        "clone",
        "--depth",
        "1",
        "--branch",
        "v1",
        "--",
        "https://github.com/o/r.git",
        str(tmp_path / "dest"),
    ]
    assert captured["timeout"] == 12


@pytest.mark.asyncio
async def test_clone_missing_ref_is_permanent(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        git_module.subprocess,
        "run",
        lambda args, **kwargs: _completed(128, "warning: Remote branch nope not found in upstream origin"),
    )

    with pytest.raises(GitError) as exc_info:
        await SubprocessGitClient().clone("https://github.com/o/r.git", tmp_path, ref="nope")

    assert exc_info.value.retryable is False
    assert "not found" in str(exc_info.value)


@pytest.mark.asyncio
async def test_clone_network_failure_is_retryable(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        git_module.subprocess,
        "run",
        lambda args, **kwargs: _completed(128, "fatal: unable to access: Could not resolve host"),
    )

    with pytest.raises(GitError) as exc_info:
        await SubprocessGitClient().clone("https://github.com/o/r.git", tmp_path, ref="main")

    assert exc_info.value.retryable is True


@pytest.mark.asyncio
async def test_clone_timeout_and_missing_binary(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def timeout_run(args, **kwargs):
        raise subprocess.TimeoutExpired(args, kwargs["timeout"])

    monkeypatch.setattr(git_module.subprocess, "run", timeout_run)
    with pytest.raises(GitError, match="timed out"):
        await SubprocessGitClient(timeout=1).clone("https://github.com/o/r.git", tmp_path, ref="main")

    def missing_run(args, **kwargs):
        raise FileNotFoundError(args[0])

    monkeypatch.setattr(git_module.subprocess, "run", missing_run)
    with pytest.raises(DependencyError):
        await SubprocessGitClient().clone("https://github.com/o/r.git", tmp_path, ref="main")


def test_check_git_available(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(git_module.shutil, "which", lambda name: f"/usr/bin/{name}")
    assert check_git_available() == "/usr/bin/git"

    monkeypatch.setattr(git_module.shutil, "which", lambda name: None)
    with pytest.raises(DependencyError, match="git is required"):
        check_git_available()
