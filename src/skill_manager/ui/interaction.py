"""Operator confirmation when a sync would overwrite local edits."""

from __future__ import annotations

import asyncio
import sys

from rich.prompt import Confirm

from skill_manager.core.logging.logger import get_logger

logger = get_logger(__name__)


def is_interactive() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


async def prompt_for_overwrite(skill_name: str) -> bool:
    """Ask whether to overwrite locally modified content; deny when unattended."""
    if not is_interactive():
        logger.warning(
            "Local modifications detected; not overwriting in non-interactive mode. "
            "Use --force to overwrite.",
            data={"skill": skill_name},
        )
        return False

    return await asyncio.to_thread(
        Confirm.ask,
        f'\nLocal modifications detected in "{skill_name}". Overwrite?',
        default=False,
    )
