"""Configuration models and loading for skill-manager.

A configuration file is YAML (or JSON, which YAML parses) of the form::

    skillsPath: ~/.claude/skills
    skills:
      - my-skill:
          type: GIT_FILE
          remote: https://github.com/org/repo/blob/v1.0.0/SKILL.md
"""

from __future__ import annotations

import json
import os
from enum import StrEnum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from skill_manager.constants import (
    CONFIG_ENV_VAR,
    DEFAULT_SKILLS_PATH,
    HTTP_INITIAL_BACKOFF_SECONDS,
    HTTP_MAX_BACKOFF_SECONDS,
    HTTP_MAX_RETRIES,
    HTTP_TIMEOUT_SECONDS,
    MARKDOWN_EXTENSIONS,
    MAX_FILE_SIZE,
    PROJECT_CONFIG_FILENAME,
    USER_CONFIG_PATH,
)
from skill_manager.core.exceptions import ConfigError, ConfigNotFoundError


class SkillType(StrEnum):
    GIT_FILE = "GIT_FILE"
    GIT_FOLDER = "GIT_FOLDER"
    GIT_REPO = "GIT_REPO"
    GIST = "GIST"


class SkillConfig(BaseModel):
    """Source of truth for one skill. Immutable for the duration of a sync."""

    type: SkillType
    remote: str
    ref: str | None = None
    filename: str | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("remote")
    @classmethod
    def _strip_remote(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("remote must be a non-empty URL")
        return stripped

    @field_validator("ref", "filename")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @model_validator(mode="after")
    def _check_filename(self) -> SkillConfig:
        if self.filename is None:
            return self
        if self.type is not SkillType.GIST:
            raise ValueError("filename is only supported for GIST skills")
        if not self.filename.lower().endswith(MARKDOWN_EXTENSIONS):
            raise ValueError(
                f"filename must have one of these extensions: {', '.join(MARKDOWN_EXTENSIONS)}"
            )
        return self


class HttpSettings(BaseModel):
    timeout: float = Field(default=HTTP_TIMEOUT_SECONDS, gt=0)
    max_retries: int = Field(default=HTTP_MAX_RETRIES, ge=1, alias="maxRetries")
    initial_backoff: float = Field(default=HTTP_INITIAL_BACKOFF_SECONDS, ge=0, alias="initialBackoff")
    max_backoff: float = Field(default=HTTP_MAX_BACKOFF_SECONDS, ge=0, alias="maxBackoff")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Settings(BaseModel):
    skills_path: Path = Field(
        default=Path(DEFAULT_SKILLS_PATH), alias="skillsPath", validate_default=True
    )
    skills: list[dict[str, SkillConfig]] = Field(default_factory=list)
    trusted_domains: list[str] = Field(default_factory=list, alias="trustedDomains")
    max_file_size: int = Field(default=MAX_FILE_SIZE, gt=0, alias="maxFileSize")
    http: HttpSettings = Field(default_factory=HttpSettings)

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("skills_path", mode="after")
    @classmethod
    def _expand_skills_path(cls, value: Path) -> Path:
        return value.expanduser()

    @field_validator("skills", mode="after")
    @classmethod
    def _single_key_entries(cls, value: list[dict[str, SkillConfig]]) -> list[dict[str, SkillConfig]]:
        for index, entry in enumerate(value):
            if len(entry) != 1:
                raise ValueError(f"skills[{index}] must map exactly one skill name to its config")
        return value

    def skill_entries(self) -> list[tuple[str, SkillConfig]]:
        return [next(iter(entry.items())) for entry in self.skills]

    def skill_names(self) -> list[str]:
        return [name for name, _ in self.skill_entries()]


def resolve_config_path(explicit: str | Path | None = None, *, cwd: Path | None = None) -> Path:
    """Pick the config file: explicit > env var > project file > user file."""
    if explicit:
        return Path(explicit).expanduser()

    env_value = os.environ.get(CONFIG_ENV_VAR)
    if env_value:
        return Path(env_value).expanduser()

    project_config = (cwd or Path.cwd()) / PROJECT_CONFIG_FILENAME
    if project_config.exists():
        return project_config

    return Path(USER_CONFIG_PATH).expanduser()


def load_config(path: Path) -> Settings:
    payload = _read_config_payload(path)
    try:
        return Settings.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(
            f"Invalid configuration in {path}: {_format_validation_error(exc)}",
            context={"path": str(path)},
        ) from exc


def add_skill_to_config(path: Path, skill_name: str, skill_config: SkillConfig) -> bool:
    """Record a skill in the config file, creating the file when needed.

    An existing entry with the same name is replaced in place, otherwise the
    skill is appended. Returns True when the file was created.
    """
    created = not path.exists()
    payload: dict[str, Any] = (
        {"skillsPath": DEFAULT_SKILLS_PATH, "skills": []}
        if created
        else _read_config_payload(path)
    )

    skills = payload.get("skills")
    if not isinstance(skills, list):
        skills = []
    entry = {skill_name: skill_config.model_dump(mode="json", exclude_none=True)}

    for index, existing in enumerate(skills):
        if isinstance(existing, dict) and skill_name in existing:
            skills[index] = entry
            break
    else:
        skills.append(entry)
    payload["skills"] = skills

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        _write_config_payload(path, payload)
    except OSError as exc:
        raise ConfigError(
            f"Unable to write config file {path}: {exc}", context={"path": str(path)}
        ) from exc
    return created


def _read_config_payload(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigNotFoundError(
            f"Config file not found: {path}", context={"path": str(path)}
        )
    try:
        with open(path, encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Unable to read config file {path}: {exc}") from exc

    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigError(f"Config root must be a mapping: {path}")
    return payload


def _write_config_payload(path: Path, payload: dict[str, Any]) -> None:
    if path.suffix.lower() == ".json":
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        return
    with open(path, "w", encoding="utf-8") as handle:
        yaml.safe_dump(payload, handle, sort_keys=False)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts)
