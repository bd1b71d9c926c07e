from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from skill_manager.cli import main
from skill_manager.config import SkillConfig, SkillType, load_config
from skill_manager.core.exceptions import TransferFailedError
from skill_manager.skills.metadata import (
    SkillMetadata,
    build_metadata,
    calculate_content_hash,
    save_metadata,
)

runner = CliRunner()

FILE_REMOTE = "https://github.com/o/r/blob/v1.0.0/SKILL.md"


def _write_config(tmp_path: Path, skills: list[dict]) -> Path:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        yaml.safe_dump({"skillsPath": str(tmp_path / "skills"), "skills": skills}),
        encoding="utf-8",
    )
    return config_path


class _StubFetcher:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error

    async def fetch(self, skill_name: str, config: SkillConfig, skills_path: Path) -> None:
        skill_dir = skills_path / skill_name
        skill_dir.mkdir(parents=True, exist_ok=True)
        (skill_dir / "SKILL.md").write_text("# Stub\n", encoding="utf-8")
        if self.error is not None:
            raise self.error


def test_sync_dry_run_lists_planned_work(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path, [{"pdf": {"type": "GIT_FILE", "remote": FILE_REMOTE}}]
    )

    result = runner.invoke(main.app, ["sync", "--config", str(config_path), "--dry-run"])

    assert result.exit_code == 0, result.output
    assert "Dry run" in result.output
    assert "Would sync from" in result.output
    assert "Successful: 1" in result.output
    assert not (tmp_path / "skills" / "pdf").exists()


def test_sync_exits_non_zero_when_a_skill_fails(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path,
        [
            {"bad.name": {"type": "GIT_FILE", "remote": FILE_REMOTE}},
            {"pdf": {"type": "GIT_FILE", "remote": FILE_REMOTE}},
        ],
    )

    result = runner.invoke(main.app, ["sync", "-c", str(config_path), "-d"])

    assert result.exit_code == 1
    assert "Failed: 1" in result.output
    assert "Successful: 1" in result.output


def test_sync_reports_missing_config(tmp_path: Path) -> None:
    result = runner.invoke(main.app, ["sync", "--config", str(tmp_path / "missing.yaml")])

    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_status_shows_state_per_skill(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path,
        [
            {"pdf": {"type": "GIT_FILE", "remote": FILE_REMOTE}},
            {"new": {"type": "GIT_FILE", "remote": FILE_REMOTE}},
        ],
    )
    skill_dir = tmp_path / "skills" / "pdf"
    skill_dir.mkdir(parents=True)
    (skill_dir / "SKILL.md").write_text("# PDF\n", encoding="utf-8")
    save_metadata(
        skill_dir,
        build_metadata(SkillConfig(type=SkillType.GIT_FILE, remote=FILE_REMOTE), "v1.0.0", skill_dir),
    )

    result = runner.invoke(main.app, ["status", "--config", str(config_path)])

    assert result.exit_code == 0, result.output
    assert "v1.0.0" in result.output
    assert "clean" in result.output
    assert "not synced" in result.output


def test_add_fetches_and_records_skill(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(main, "get_fetcher", lambda kind, options=None: _StubFetcher())
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        yaml.safe_dump({"skillsPath": str(tmp_path / "skills"), "skills": []}), encoding="utf-8"
    )

    result = runner.invoke(
        main.app, ["add", "pdf", FILE_REMOTE, "--config", str(config_path)]
    )

    assert result.exit_code == 0, result.output
    assert "Auto-detected skill type: GIT_FILE" in result.output
    assert (tmp_path / "skills" / "pdf" / "SKILL.md").exists()
    settings = load_config(config_path)
    assert settings.skill_names() == ["pdf"]
    assert settings.skill_entries()[0][1].remote == FILE_REMOTE


def test_add_rolls_back_new_directory_on_failure(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(
        main,
        "get_fetcher",
        lambda kind, options=None: _StubFetcher(TransferFailedError("download failed")),
    )
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        yaml.safe_dump({"skillsPath": str(tmp_path / "skills"), "skills": []}), encoding="utf-8"
    )

    result = runner.invoke(
        main.app, ["add", "pdf", FILE_REMOTE, "--config", str(config_path)]
    )

    assert result.exit_code == 1
    assert "download failed" in result.output
    assert not (tmp_path / "skills" / "pdf").exists()
    assert load_config(config_path).skill_names() == []


def test_add_rejects_invalid_type(tmp_path: Path) -> None:
    result = runner.invoke(
        main.app,
        ["add", "pdf", FILE_REMOTE, "--type", "SVN", "--config", str(tmp_path / "config.yaml")],
    )

    assert result.exit_code == 1
    assert "Invalid skill type" in result.output
    assert not (tmp_path / "config.yaml").exists()


def test_status_shortens_object_ids_and_formats_sync_time(tmp_path: Path) -> None:
    commit = "0123456789abcdef0123456789abcdef01234567"
    remote = "https://github.com/o/r"
    config_path = _write_config(
        tmp_path, [{"repo": {"type": "GIT_REPO", "remote": remote, "ref": commit}}]
    )
    skill_dir = tmp_path / "skills" / "repo"
    skill_dir.mkdir(parents=True)
    (skill_dir / "SKILL.md").write_text("# Repo\n", encoding="utf-8")
    save_metadata(
        skill_dir,
        SkillMetadata(
            remote=remote,
            ref=commit,
            type=SkillType.GIT_REPO,
            last_sync="2026-02-25T01:02:03Z",
            content_hash=calculate_content_hash(skill_dir),
        ),
    )

    result = runner.invoke(main.app, ["status", "--config", str(config_path)])

    assert result.exit_code == 0, result.output
    assert "0123456" in result.output
    assert commit not in result.output
    assert "2026-02-25 01:02 UTC" in result.output


def _metadata(ref: str | None, kind: SkillType, last_sync: str) -> SkillMetadata:
    return SkillMetadata(
        remote="https://example.invalid", ref=ref, type=kind, last_sync=last_sync, content_hash="h"
    )


def test_display_ref_keeps_named_refs_and_marks_unpinned_gists() -> None:
    assert main._display_ref(_metadata("v1.0.0", SkillType.GIT_FILE, "x")) == "v1.0.0"
    # Short hex strings are branch or tag names, not object ids.
    assert main._display_ref(_metadata("deadbeef", SkillType.GIT_REPO, "x")) == "deadbeef"
    assert main._display_ref(_metadata(None, SkillType.GIST, "x")) == "latest"
    assert main._display_ref(_metadata(None, SkillType.GIT_REPO, "x")) == "-"


def test_display_last_sync_passes_through_other_formats() -> None:
    assert main._display_last_sync(_metadata(None, SkillType.GIST, "yesterday")) == "yesterday"
    assert (
        main._display_last_sync(_metadata(None, SkillType.GIST, "2026-02-25T01:02:03+00:00"))
        == "2026-02-25T01:02:03+00:00"
    )


def test_add_rolls_back_when_config_cannot_be_written(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setattr(main, "get_fetcher", lambda kind, options=None: _StubFetcher())
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")

    result = runner.invoke(
        main.app, ["add", "pdf", FILE_REMOTE, "--config", str(blocker / "config.yaml")]
    )

    assert result.exit_code == 1
    assert "Unable to write config file" in result.output
    assert not (tmp_path / ".claude" / "skills" / "pdf").exists()
