"""Filesystem helpers for skill directories and temporary clone locations."""

from __future__ import annotations

import shutil
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import uuid4

from skill_manager.constants import TEMP_DIR_PREFIX
from skill_manager.core.exceptions import FileSystemError
from skill_manager.core.logging.logger import get_logger
from skill_manager.validation import resolve_within

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = get_logger(__name__)


def get_skill_directory(skills_path: Path, skill_name: str) -> Path:
    return resolve_within(skills_path, skill_name)


def ensure_skill_directory(skills_path: Path, skill_name: str) -> Path:
    skill_dir = get_skill_directory(skills_path, skill_name)
    try:
        skill_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FileSystemError(
            f"Failed to create skill directory {skill_dir}",
            context={"skill_dir": str(skill_dir)},
        ) from exc
    return skill_dir


def clear_directory(directory: Path) -> None:
    """Remove everything inside ``directory`` but keep the directory itself."""
    try:
        for entry in directory.iterdir():
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
    except OSError as exc:
        raise FileSystemError(
            f"Failed to clear directory {directory}",
            context={"directory": str(directory)},
        ) from exc


def copy_directory_contents(source_dir: Path, destination_dir: Path) -> None:
    try:
        shutil.copytree(source_dir, destination_dir, dirs_exist_ok=True)
    except (OSError, shutil.Error) as exc:
        raise FileSystemError(
            f"Failed to copy {source_dir} to {destination_dir}",
            context={"source": str(source_dir), "destination": str(destination_dir)},
        ) from exc


def write_skill_file(skill_dir: Path, filename: str, content: bytes) -> Path:
    target = resolve_within(skill_dir, filename)
    try:
        target.write_bytes(content)
    except OSError as exc:
        raise FileSystemError(
            f"Failed to write {target}", context={"path": str(target)}
        ) from exc
    return target


def remove_directory(directory: Path) -> None:
    if directory.exists():
        shutil.rmtree(directory)


def unique_temp_path(prefix: str = TEMP_DIR_PREFIX, *, base: Path | None = None) -> Path:
    """A not-yet-created path that no other run (or process) will pick."""
    root = base or Path(tempfile.gettempdir())
    return root / f"{prefix}{int(time.time() * 1000)}-{uuid4().hex}"


@contextmanager
def temporary_clone_dir(*, base: Path | None = None) -> Iterator[Path]:
    """Yield a unique temporary path and always remove it afterwards.

    Removal failures are logged and never replace an error raised by the
    body of the ``with`` block.
    """
    path = unique_temp_path(base=base)
    try:
        yield path
    finally:
        try:
            remove_directory(path)
        except OSError as exc:
            logger.warning(
                "Failed to clean up temporary directory",
                data={"path": str(path), "error": str(exc)},
            )
