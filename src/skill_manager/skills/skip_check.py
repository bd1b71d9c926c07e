"""Decide whether a skill can be left untouched this run.

Skipping is only safe when the configured source is pinned to an immutable
ref and the local copy is provably unchanged since the last sync. Every
other situation, including any failure while checking, resyncs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from skill_manager.core.exceptions import SkillManagerError
from skill_manager.core.logging.logger import get_logger
from skill_manager.skills.files import get_skill_directory
from skill_manager.skills.metadata import calculate_content_hash, load_metadata, metadata_exists
from skill_manager.sources.urls import has_pinned_ref, resolve_skill_ref

if TYPE_CHECKING:
    from pathlib import Path

    from skill_manager.config import SkillConfig

logger = get_logger(__name__)


@dataclass(frozen=True)
class SkipDecision:
    should_skip: bool
    reason: str
    needs_interaction: bool = False


def should_skip_sync(skill_name: str, config: SkillConfig, skills_path: Path) -> SkipDecision:
    try:
        skill_dir = get_skill_directory(skills_path, skill_name)
    except SkillManagerError:
        return SkipDecision(False, "skill directory is invalid")

    if not skill_dir.is_dir():
        return SkipDecision(False, "skill directory does not exist")

    if not metadata_exists(skill_dir):
        return SkipDecision(False, "no metadata found (first-time sync)")

    metadata = load_metadata(skill_dir)
    if metadata is None:
        return SkipDecision(False, "metadata is invalid or corrupted")

    if not has_pinned_ref(config):
        return SkipDecision(False, "no explicit ref specified (tracking branch)")

    if metadata.remote != config.remote:
        return SkipDecision(False, "remote URL has changed")

    if metadata.type != config.type:
        return SkipDecision(False, "skill type has changed")

    try:
        current_ref = resolve_skill_ref(config)
    except SkillManagerError:
        return SkipDecision(False, "unable to resolve ref")
    if metadata.ref != current_ref:
        return SkipDecision(False, f"ref has changed ({metadata.ref} → {current_ref})")

    try:
        current_hash = calculate_content_hash(skill_dir)
    except SkillManagerError as exc:
        logger.warning(
            "Failed to verify skill content",
            data={"skill": skill_name, "error": exc.detailed_message},
        )
        return SkipDecision(False, "failed to verify content integrity")

    if current_hash != metadata.content_hash:
        return SkipDecision(False, "local modifications detected", needs_interaction=True)

    return SkipDecision(True, f"already synced to {current_ref}")
