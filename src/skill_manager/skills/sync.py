"""Batch sync of configured skills.

Skills are processed one at a time in declaration order. Each skill ends in
exactly one outcome (synced, skipped or failed) and a failure never stops the
remaining skills; deciding what a failed batch means is left to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from skill_manager.config import SkillType
from skill_manager.core.exceptions import SkillValidationError, describe_error
from skill_manager.core.logging.logger import get_logger
from skill_manager.skills.fetchers import FetcherOptions, SkillFetcher, get_fetcher
from skill_manager.skills.skip_check import should_skip_sync
from skill_manager.sources.urls import parse_gist_id, parse_source_url
from skill_manager.validation import sanitize_skill_name, validate_filename

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Collection, Iterable, Sequence
    from pathlib import Path

    from skill_manager.config import SkillConfig

    ConfirmOverwrite = Callable[[str], Awaitable[bool]]
    FetcherFactory = Callable[[SkillType, FetcherOptions | None], SkillFetcher]

logger = get_logger(__name__)


@dataclass(frozen=True)
class FetchOutcome:
    skill_name: str
    success: bool
    error: str | None = None
    skipped: bool = False
    reason: str | None = None
    remote: str | None = None


@dataclass(frozen=True)
class SyncReport:
    succeeded: int
    skipped: int
    failed: int

    @property
    def has_failures(self) -> bool:
        return self.failed > 0


def summarize(outcomes: Sequence[FetchOutcome]) -> SyncReport:
    return SyncReport(
        succeeded=sum(1 for outcome in outcomes if outcome.success and not outcome.skipped),
        skipped=sum(1 for outcome in outcomes if outcome.skipped),
        failed=sum(1 for outcome in outcomes if not outcome.success),
    )


async def deny_overwrite(skill_name: str) -> bool:
    del skill_name
    return False


def validate_skill_config(skill_name: str, config: SkillConfig) -> None:
    """Check the remote has the shape its source kind needs."""
    if config.type is SkillType.GIST:
        parse_gist_id(config.remote)
        if config.filename:
            validate_filename(config.filename)
        return
    parse_source_url(config.remote, config.type)


async def sync_skills(
    entries: Iterable[tuple[str, SkillConfig]],
    skills_path: Path,
    *,
    dry_run: bool = False,
    force: Collection[str] | None = None,
    force_all: bool = False,
    confirm_overwrite: ConfirmOverwrite = deny_overwrite,
    options: FetcherOptions | None = None,
    fetcher_factory: FetcherFactory = get_fetcher,
    on_outcome: Callable[[FetchOutcome], None] | None = None,
) -> list[FetchOutcome]:
    forced = set(force or ())
    seen: set[str] = set()
    outcomes: list[FetchOutcome] = []

    for raw_name, config in entries:
        outcome = await _sync_one(
            raw_name,
            config,
            skills_path,
            seen=seen,
            dry_run=dry_run,
            forced=force_all or raw_name.strip() in forced,
            confirm_overwrite=confirm_overwrite,
            options=options,
            fetcher_factory=fetcher_factory,
        )
        outcomes.append(outcome)
        if on_outcome is not None:
            on_outcome(outcome)

    return outcomes


async def _sync_one(
    raw_name: str,
    config: SkillConfig,
    skills_path: Path,
    *,
    seen: set[str],
    dry_run: bool,
    forced: bool,
    confirm_overwrite: ConfirmOverwrite,
    options: FetcherOptions | None,
    fetcher_factory: FetcherFactory,
) -> FetchOutcome:
    try:
        skill_name = sanitize_skill_name(raw_name)
    except SkillValidationError as exc:
        return FetchOutcome(
            skill_name=raw_name,
            success=False,
            error=f'Invalid skill name "{raw_name}": {exc.message}',
            remote=config.remote,
        )

    try:
        if skill_name in seen:
            raise SkillValidationError(
                f'Duplicate skill name "{skill_name}"; only the first entry is synced'
            )
        seen.add(skill_name)

        validate_skill_config(skill_name, config)

        if dry_run:
            return FetchOutcome(
                skill_name=skill_name,
                success=True,
                reason=f"would sync from {config.remote} ({config.type})",
                remote=config.remote,
            )

        if not forced:
            decision = should_skip_sync(skill_name, config, skills_path)
            logger.debug(
                "Skip check",
                data={"skill": skill_name, "skip": decision.should_skip, "reason": decision.reason},
            )
            if decision.should_skip:
                return FetchOutcome(
                    skill_name=skill_name,
                    success=True,
                    skipped=True,
                    reason=decision.reason,
                    remote=config.remote,
                )
            if decision.needs_interaction and not await confirm_overwrite(skill_name):
                return FetchOutcome(
                    skill_name=skill_name,
                    success=True,
                    skipped=True,
                    reason=decision.reason,
                    remote=config.remote,
                )

        fetcher = fetcher_factory(config.type, options)
        await fetcher.fetch(skill_name, config, skills_path)
    except Exception as exc:  # noqa: BLE001
        logger.debug(
            "Skill sync failed",
            data={"skill": skill_name, "remote": config.remote, "error": describe_error(exc)},
        )
        return FetchOutcome(
            skill_name=skill_name,
            success=False,
            error=describe_error(exc),
            remote=config.remote,
        )

    return FetchOutcome(skill_name=skill_name, success=True, remote=config.remote)
