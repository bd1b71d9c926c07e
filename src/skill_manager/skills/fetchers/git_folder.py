"""Subfolder fetch: shallow clone into a scratch location, copy one folder out."""

from __future__ import annotations

from typing import TYPE_CHECKING

from skill_manager.config import SkillType
from skill_manager.core.exceptions import InvalidSourceError
from skill_manager.core.logging.logger import get_logger
from skill_manager.skills.fetchers.base import GitCloneFetcher
from skill_manager.skills.files import (
    clear_directory,
    copy_directory_contents,
    ensure_skill_directory,
    temporary_clone_dir,
)
from skill_manager.sources.urls import build_repository_url, parse_source_url, resolve_git_ref
from skill_manager.validation import resolve_within

if TYPE_CHECKING:
    from pathlib import Path

    from skill_manager.config import SkillConfig

logger = get_logger(__name__)


class GitFolderFetcher(GitCloneFetcher):
    kind = SkillType.GIT_FOLDER
    description = "Git folder"

    async def _fetch(self, skill_name: str, config: SkillConfig, skills_path: Path) -> None:
        parsed = parse_source_url(config.remote, SkillType.GIT_FOLDER)
        if not parsed.path:
            raise InvalidSourceError(
                f"{SkillType.GIT_FOLDER} URL must include a folder path: {config.remote}",
                context={"remote": config.remote},
            )
        ref = resolve_git_ref(config)
        repo_url = build_repository_url(parsed)
        self._validate_url(repo_url)

        with temporary_clone_dir(base=self.options.temp_root) as clone_dir:
            await self._clone(repo_url, clone_dir, ref)

            source_dir = resolve_within(clone_dir, parsed.path)
            if not source_dir.is_dir():
                raise InvalidSourceError(
                    f"Folder not found in repository: {parsed.path}",
                    context={"path": parsed.path},
                )

            skill_dir = ensure_skill_directory(skills_path, skill_name)
            clear_directory(skill_dir)
            copy_directory_contents(source_dir, skill_dir)
            logger.debug(
                "Copied folder from clone",
                data={"skill": skill_name, "path": parsed.path, "ref": ref},
            )
            self._persist_metadata(skill_dir, config, ref)
