"""Per-skill sync metadata sidecar and content hashing."""

from __future__ import annotations

import hashlib
import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from skill_manager.config import SkillType
from skill_manager.constants import METADATA_FILENAME
from skill_manager.core.exceptions import FileSystemError
from skill_manager.core.logging.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from skill_manager.config import SkillConfig

logger = get_logger(__name__)


class SkillMetadata(BaseModel):
    remote: str
    ref: str | None = None
    type: SkillType
    last_sync: str = Field(alias="lastSync")
    content_hash: str = Field(alias="contentHash")

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @field_validator("remote", "last_sync", "content_hash")
    @classmethod
    def _required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must be a non-empty string")
        return value


def get_metadata_path(skill_dir: Path) -> Path:
    return skill_dir / METADATA_FILENAME


def metadata_exists(skill_dir: Path) -> bool:
    return get_metadata_path(skill_dir).is_file()


def load_metadata(skill_dir: Path) -> SkillMetadata | None:
    """Read the sidecar; ``None`` means "no usable record, resync fully"."""
    metadata_path = get_metadata_path(skill_dir)
    if not metadata_path.is_file():
        return None

    try:
        payload = json.loads(metadata_path.read_text(encoding="utf-8"))
        return SkillMetadata.model_validate(payload)
    except (OSError, ValueError, ValidationError) as exc:
        logger.warning(
            "Ignoring invalid skill metadata",
            data={"path": str(metadata_path), "error": str(exc)},
        )
        return None


def save_metadata(skill_dir: Path, metadata: SkillMetadata) -> None:
    metadata_path = get_metadata_path(skill_dir)
    payload = metadata.model_dump(mode="json", by_alias=True, exclude_none=True)
    try:
        metadata_path.write_text(
            json.dumps(payload, indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )
    except OSError as exc:
        raise FileSystemError(
            f"Failed to save metadata to {skill_dir}",
            context={"skill_dir": str(skill_dir)},
        ) from exc


def build_metadata(config: SkillConfig, ref: str | None, skill_dir: Path) -> SkillMetadata:
    """Snapshot what was just fetched into ``skill_dir``."""
    return SkillMetadata(
        remote=config.remote,
        ref=ref,
        type=config.type,
        last_sync=datetime.now(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
        content_hash=calculate_content_hash(skill_dir),
    )


def calculate_content_hash(skill_dir: Path) -> str:
    """SHA-256 over every tracked file's relative path and bytes.

    Hidden directories (``.git`` and friends) are skipped entirely, as is the
    metadata sidecar at the root. Paths are sorted so the digest does not
    depend on directory enumeration order.
    """
    digest = hashlib.sha256()
    try:
        root = skill_dir.resolve()
        files = sorted(
            (path.relative_to(root).as_posix(), path) for path in _iter_tracked_files(root)
        )
        for relative, path in files:
            if relative == METADATA_FILENAME:
                continue
            digest.update(relative.encode("utf-8"))
            digest.update(b"\0")
            digest.update(path.read_bytes())
            digest.update(b"\0")
    except OSError as exc:
        raise FileSystemError(
            f"Failed to calculate content hash for {skill_dir}",
            context={"skill_dir": str(skill_dir)},
        ) from exc

    return digest.hexdigest()


def _iter_tracked_files(directory: Path) -> Iterator[Path]:
    for entry in directory.iterdir():
        if entry.is_dir():
            if not entry.name.startswith("."):
                yield from _iter_tracked_files(entry)
        elif entry.is_file():
            yield entry
