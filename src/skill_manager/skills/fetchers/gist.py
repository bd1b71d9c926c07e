"""Gist fetch through the GitHub REST API."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from skill_manager.config import SkillType
from skill_manager.constants import DEFAULT_SKILL_FILENAME, MARKDOWN_EXTENSIONS
from skill_manager.core.exceptions import TransferFailedError
from skill_manager.skills.fetchers.base import SkillFetcher
from skill_manager.skills.files import clear_directory, ensure_skill_directory, write_skill_file
from skill_manager.sources.urls import build_gist_api_url, parse_gist_id
from skill_manager.validation import validate_file_size

if TYPE_CHECKING:
    from pathlib import Path

    import httpx

    from skill_manager.config import SkillConfig

GIST_API_HEADERS = {"Accept": "application/vnd.github.v3+json"}


class GistFile(BaseModel):
    filename: str
    content: str | None = None
    raw_url: str | None = None
    truncated: bool = False

    model_config = ConfigDict(extra="ignore")


class GistPayload(BaseModel):
    files: dict[str, GistFile] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")


def select_gist_file(files: dict[str, GistFile], filename: str | None = None) -> GistFile:
    """Pick the skill file: explicit name, then ``SKILL.md``, then the first markdown file."""
    if filename:
        selected = files.get(filename)
        if selected is None:
            raise TransferFailedError(
                f'File "{filename}" not found in Gist',
                context={"filename": filename, "available": ", ".join(files)},
                retryable=False,
            )
        return selected

    if DEFAULT_SKILL_FILENAME in files:
        return files[DEFAULT_SKILL_FILENAME]

    for name, gist_file in files.items():
        if name.lower().endswith(MARKDOWN_EXTENSIONS):
            return gist_file

    raise TransferFailedError(
        "No markdown file found in Gist",
        context={"available": ", ".join(files) or "none"},
        retryable=False,
    )


class GistFetcher(SkillFetcher):
    kind = SkillType.GIST
    description = "Gist"

    async def _fetch(self, skill_name: str, config: SkillConfig, skills_path: Path) -> None:
        gist_id = parse_gist_id(config.remote)
        revision = config.ref
        api_url = build_gist_api_url(gist_id, revision)
        self._validate_url(api_url)

        async with self.options.http_client() as client:
            payload = await self._get_json(
                client, api_url, f"Fetching Gist {gist_id}", headers=GIST_API_HEADERS
            )
            gist = _parse_gist_payload(payload, gist_id)
            selected = select_gist_file(gist.files, config.filename)
            content = await self._file_content(client, selected)

        validate_file_size(len(content), self.options.max_file_size)

        skill_dir = ensure_skill_directory(skills_path, skill_name)
        clear_directory(skill_dir)
        write_skill_file(skill_dir, DEFAULT_SKILL_FILENAME, content)
        self._persist_metadata(skill_dir, config, revision)

    async def _file_content(self, client: httpx.AsyncClient, gist_file: GistFile) -> bytes:
        # The API truncates large files; their full body lives at raw_url.
        if gist_file.content is not None and not gist_file.truncated:
            return gist_file.content.encode("utf-8")
        if not gist_file.raw_url:
            raise TransferFailedError(
                f"Gist file {gist_file.filename} has no content",
                context={"filename": gist_file.filename},
                retryable=False,
            )
        self._validate_url(gist_file.raw_url)
        return await self._download(
            client, gist_file.raw_url, f"Fetching Gist file {gist_file.filename}"
        )


def _parse_gist_payload(payload: object, gist_id: str) -> GistPayload:
    try:
        return GistPayload.model_validate(payload)
    except ValidationError as exc:
        raise TransferFailedError(
            f"Unexpected Gist API response for {gist_id}",
            context={"gist": gist_id},
            retryable=False,
        ) from exc
