"""Whole-repository fetch: shallow clone straight into the skill directory."""

from __future__ import annotations

from typing import TYPE_CHECKING

from skill_manager.config import SkillType
from skill_manager.core.exceptions import FileSystemError
from skill_manager.skills.fetchers.base import GitCloneFetcher
from skill_manager.skills.files import clear_directory, ensure_skill_directory, remove_directory
from skill_manager.sources.urls import build_repository_url, parse_source_url, resolve_git_ref

if TYPE_CHECKING:
    from pathlib import Path

    from skill_manager.config import SkillConfig


class GitRepoFetcher(GitCloneFetcher):
    kind = SkillType.GIT_REPO
    description = "Git repository"

    async def _fetch(self, skill_name: str, config: SkillConfig, skills_path: Path) -> None:
        parsed = parse_source_url(config.remote, SkillType.GIT_REPO)
        ref = resolve_git_ref(config)
        repo_url = build_repository_url(parsed)
        self._validate_url(repo_url)

        skill_dir = ensure_skill_directory(skills_path, skill_name)
        clear_directory(skill_dir)
        await self._clone(repo_url, skill_dir, ref)

        # Drop the nested repository state; only the working tree is kept.
        git_dir = skill_dir / ".git"
        try:
            remove_directory(git_dir)
        except OSError as exc:
            raise FileSystemError(
                f"Failed to remove {git_dir}", context={"path": str(git_dir)}
            ) from exc

        self._persist_metadata(skill_dir, config, ref)
