from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from skill_manager.config import (
    Settings,
    SkillConfig,
    SkillType,
    add_skill_to_config,
    load_config,
    resolve_config_path,
)
from skill_manager.constants import CONFIG_ENV_VAR, PROJECT_CONFIG_FILENAME
from skill_manager.core.exceptions import ConfigError, ConfigNotFoundError


def _write_yaml(path: Path, payload: object) -> Path:
    path.write_text(yaml.safe_dump(payload), encoding="utf-8")
    return path


def test_load_config_reads_aliases_and_entries(tmp_path: Path) -> None:
    config_path = _write_yaml(
        tmp_path / "config.yaml",
        {
            "skillsPath": str(tmp_path / "skills"),
            "trustedDomains": ["git.example.org"],
            "maxFileSize": 1024,
            "http": {"timeout": 5, "maxRetries": 2, "initialBackoff": 0},
            "skills": [
                {"pdf": {"type": "GIT_FILE", "remote": "https://github.com/o/r/blob/v1/SKILL.md"}},
                {"notes": {"type": "GIST", "remote": "https://gist.github.com/u/abc", "ref": " "}},
            ],
        },
    )

    settings = load_config(config_path)

    assert settings.skills_path == tmp_path / "skills"
    assert settings.trusted_domains == ["git.example.org"]
    assert settings.max_file_size == 1024
    assert settings.http.max_retries == 2
    assert settings.skill_names() == ["pdf", "notes"]
    name, notes = settings.skill_entries()[1]
    assert name == "notes"
    assert notes.type is SkillType.GIST
    assert notes.ref is None


def test_load_config_expands_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    config_path = _write_yaml(tmp_path / "config.yaml", {"skillsPath": "~/skills"})

    assert load_config(config_path).skills_path == tmp_path / "skills"


def test_default_skills_path_is_expanded(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    config_path = _write_yaml(tmp_path / "config.yaml", {"skills": []})

    assert load_config(config_path).skills_path == tmp_path / ".claude" / "skills"
    assert Settings().skills_path == Path.home() / ".claude" / "skills"


def test_load_config_accepts_json(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"skills": []}), encoding="utf-8")

    assert load_config(config_path).skills == []


def test_load_config_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigNotFoundError):
        load_config(tmp_path / "missing.yaml")


@pytest.mark.parametrize(
    "payload",
    [
        ["not", "a", "mapping"],
        {"skills": [{"a": {"type": "SVN", "remote": "https://github.com/o/r"}}]},
        {"skills": [{"a": {"type": "GIT_REPO", "remote": "x"}, "b": {"type": "GIT_REPO", "remote": "y"}}]},
        {"maxFileSize": 0},
    ],
)
def test_load_config_rejects_invalid_content(tmp_path: Path, payload: object) -> None:
    config_path = _write_yaml(tmp_path / "config.yaml", payload)

    with pytest.raises(ConfigError):
        load_config(config_path)


def test_skill_config_filename_rules() -> None:
    gist = SkillConfig(type=SkillType.GIST, remote="https://gist.github.com/u/abc", filename="a.md")
    assert gist.filename == "a.md"

    with pytest.raises(ValidationError):
        SkillConfig(type=SkillType.GIT_REPO, remote="https://github.com/o/r", filename="a.md")
    with pytest.raises(ValidationError):
        SkillConfig(type=SkillType.GIST, remote="https://gist.github.com/u/abc", filename="a.txt")
    with pytest.raises(ValidationError):
        SkillConfig(type=SkillType.GIST, remote="   ")


def test_resolve_config_path_precedence(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    project_config = tmp_path / PROJECT_CONFIG_FILENAME
    project_config.write_text("skills: []\n", encoding="utf-8")

    assert resolve_config_path(tmp_path / "explicit.yaml", cwd=tmp_path) == tmp_path / "explicit.yaml"
    assert resolve_config_path(cwd=tmp_path) == project_config

    monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "env.yaml"))
    assert resolve_config_path(cwd=tmp_path) == tmp_path / "env.yaml"


def test_add_skill_to_config_creates_then_replaces(tmp_path: Path) -> None:
    config_path = tmp_path / "nested" / "config.yaml"
    first = SkillConfig(type=SkillType.GIT_REPO, remote="https://github.com/o/r")
    second = SkillConfig(type=SkillType.GIT_REPO, remote="https://github.com/o/r", ref="v2")
    other = SkillConfig(type=SkillType.GIST, remote="https://gist.github.com/u/abc")

    assert add_skill_to_config(config_path, "repo", first) is True
    assert add_skill_to_config(config_path, "gist", other) is False
    assert add_skill_to_config(config_path, "repo", second) is False

    settings = load_config(config_path)
    assert settings.skill_names() == ["repo", "gist"]
    assert settings.skill_entries()[0][1].ref == "v2"


def test_add_skill_to_config_keeps_json_format(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"skillsPath": "/tmp/skills", "skills": []}), encoding="utf-8")

    add_skill_to_config(
        config_path,
        "notes",
        SkillConfig(type=SkillType.GIST, remote="https://gist.github.com/u/abc"),
    )

    payload = json.loads(config_path.read_text(encoding="utf-8"))
    assert payload["skills"] == [{"notes": {"type": "GIST", "remote": "https://gist.github.com/u/abc"}}]


def test_add_skill_to_config_reports_unwritable_path(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(ConfigError, match="Unable to write config file"):
        add_skill_to_config(
            blocker / "config.yaml",
            "repo",
            SkillConfig(type=SkillType.GIT_REPO, remote="https://github.com/o/r"),
        )
