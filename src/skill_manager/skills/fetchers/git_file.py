"""Single-file fetch over the forge's raw-content endpoint."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from skill_manager.config import SkillType
from skill_manager.constants import DEFAULT_SKILL_FILENAME
from skill_manager.skills.fetchers.base import SkillFetcher
from skill_manager.skills.files import clear_directory, ensure_skill_directory, write_skill_file
from skill_manager.sources.urls import build_content_url, parse_source_url, resolve_git_ref
from skill_manager.validation import validate_file_size

if TYPE_CHECKING:
    from pathlib import Path

    from skill_manager.config import SkillConfig


class GitFileFetcher(SkillFetcher):
    kind = SkillType.GIT_FILE
    description = "Git file"

    async def _fetch(self, skill_name: str, config: SkillConfig, skills_path: Path) -> None:
        parsed = parse_source_url(config.remote, SkillType.GIT_FILE)
        ref = resolve_git_ref(config)
        raw_url = build_content_url(replace(parsed, ref=ref))
        self._validate_url(raw_url)

        async with self.options.http_client() as client:
            content = await self._download(client, raw_url, f"Fetching file from {raw_url}")
        validate_file_size(len(content), self.options.max_file_size)

        skill_dir = ensure_skill_directory(skills_path, skill_name)
        clear_directory(skill_dir)
        write_skill_file(skill_dir, DEFAULT_SKILL_FILENAME, content)
        self._persist_metadata(skill_dir, config, ref)
