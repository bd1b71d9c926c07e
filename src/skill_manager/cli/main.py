"""skill-manager command line interface."""

import asyncio
import logging
import re
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from skill_manager.config import (
    Settings,
    SkillConfig,
    SkillType,
    add_skill_to_config,
    load_config,
    resolve_config_path,
)
from skill_manager.core.exceptions import SkillManagerError, SkillValidationError, describe_error
from skill_manager.core.logging.logger import configure_logging
from skill_manager.skills.fetchers import FetcherOptions, get_fetcher
from skill_manager.skills.files import get_skill_directory, remove_directory
from skill_manager.skills.git import check_git_available
from skill_manager.skills.metadata import SkillMetadata, calculate_content_hash, load_metadata
from skill_manager.skills.sync import FetchOutcome, summarize, sync_skills, validate_skill_config
from skill_manager.sources.urls import reconcile_source_kind
from skill_manager.ui.interaction import prompt_for_overwrite
from skill_manager.validation import sanitize_skill_name

app = typer.Typer(
    name="skill-manager",
    help="Sync remote Git files, folders, repositories, and Gists to local skill folders.",
    no_args_is_help=True,
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)

_GIT_KINDS = {SkillType.GIT_FOLDER, SkillType.GIT_REPO}
# Commit SHAs and Gist revisions are both full 40-character object ids.
_OBJECT_ID = re.compile(r"[0-9a-fA-F]{40}")
_LAST_SYNC_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to the config file."),
]


@app.command()
def sync(
    config: ConfigOption = None,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", "-d", help="Show what would be synced without changes.")
    ] = False,
    force: Annotated[
        list[str] | None,
        typer.Option("--force", "-f", help="Re-sync this skill even if it is up to date."),
    ] = None,
    force_all: Annotated[
        bool, typer.Option("--force-all", help="Re-sync every skill, ignoring skip checks.")
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
) -> None:
    """Sync all skills from the config file."""
    configure_logging(logging.DEBUG if verbose else logging.WARNING)

    try:
        config_path = resolve_config_path(config)
        settings = load_config(config_path)
        if not dry_run:
            _ensure_git_for(skill_config.type for _, skill_config in settings.skill_entries())
    except SkillManagerError as exc:
        err_console.print(f"[red]Error:[/red] {exc.detailed_message}")
        raise typer.Exit(1) from exc

    console.print(f"[bold]Config:[/bold] {config_path}")
    console.print(f"[bold]Skills path:[/bold] {settings.skills_path}")
    if dry_run:
        console.print("[yellow]Dry run: no changes will be made[/yellow]")
    console.print("\n[bold]Syncing skills...[/bold]\n")

    outcomes = asyncio.run(
        sync_skills(
            settings.skill_entries(),
            settings.skills_path,
            dry_run=dry_run,
            force=force,
            force_all=force_all,
            confirm_overwrite=prompt_for_overwrite,
            options=FetcherOptions.from_settings(settings),
            on_outcome=_print_outcome,
        )
    )

    report = summarize(outcomes)
    console.print("\n[bold]Summary:[/bold]")
    console.print(f"[green]✓[/green] Successful: {report.succeeded}")
    if report.skipped:
        console.print(f"[yellow]⊘[/yellow] Skipped: {report.skipped}")
    if report.failed:
        console.print(f"[red]✗[/red] Failed: {report.failed}")

    if report.has_failures:
        raise typer.Exit(1)


@app.command()
def add(
    name: Annotated[str, typer.Argument(help="Skill name (letters, digits, - and _).")],
    remote: Annotated[str, typer.Argument(help="Remote URL of the skill source.")],
    skill_type: Annotated[
        str | None,
        typer.Option("--type", "-t", help="GIT_FILE, GIT_FOLDER, GIT_REPO or GIST (inferred by default)."),
    ] = None,
    ref: Annotated[str | None, typer.Option("--ref", "-r", help="Branch, tag, commit or Gist revision.")] = None,
    filename: Annotated[
        str | None, typer.Option("--filename", help="File to use from a multi-file Gist.")
    ] = None,
    config: ConfigOption = None,
) -> None:
    """Download a skill and record it in the config file."""
    configure_logging(logging.WARNING)

    skill_dir: Path | None = None
    created_dir = False
    try:
        skill_name = sanitize_skill_name(name)
        kind, warning = reconcile_source_kind(remote, skill_type)
        if warning:
            console.print(f"[yellow]Warning:[/yellow] {warning}")
        elif skill_type is None:
            console.print(f"[dim]Auto-detected skill type: {kind}[/dim]")

        skill_config = _build_skill_config(kind, remote, ref, filename)
        validate_skill_config(skill_name, skill_config)
        _ensure_git_for([kind])

        config_path = resolve_config_path(config)
        settings = load_config(config_path) if config_path.exists() else Settings()

        skill_dir = get_skill_directory(settings.skills_path, skill_name)
        created_dir = not skill_dir.exists()
        asyncio.run(
            get_fetcher(kind, FetcherOptions.from_settings(settings)).fetch(
                skill_name, skill_config, settings.skills_path
            )
        )
        created_config = add_skill_to_config(config_path, skill_name, skill_config)
    except SkillManagerError as exc:
        _rollback(skill_dir if created_dir else None)
        err_console.print(f"[red]Error:[/red] {exc.detailed_message}")
        raise typer.Exit(1) from exc

    if created_config:
        console.print(f"[green]✓[/green] Created config file at: {config_path}")
    console.print(f'[green]✓[/green] Successfully set skill "{skill_name}"')
    console.print(f"  Type: {kind}")
    console.print(f"  Remote: {remote}")
    if ref:
        console.print(f"  Ref: {ref}")
    if filename:
        console.print(f"  Filename: {filename}")


@app.command()
def status(config: ConfigOption = None) -> None:
    """Show the sync state of every configured skill."""
    configure_logging(logging.ERROR)
    try:
        settings = load_config(resolve_config_path(config))
    except SkillManagerError as exc:
        err_console.print(f"[red]Error:[/red] {exc.detailed_message}")
        raise typer.Exit(1) from exc

    table = Table(title=f"Skills in {settings.skills_path}")
    table.add_column("Skill", style="cyan")
    table.add_column("Type")
    table.add_column("Ref")
    table.add_column("Last sync")
    table.add_column("State")

    for name, skill_config in settings.skill_entries():
        ref, last_sync, state = _skill_state(settings.skills_path, name)
        table.add_row(name, str(skill_config.type), ref, last_sync, state)

    console.print(table)


def _skill_state(skills_path: Path, name: str) -> tuple[str, str, str]:
    try:
        skill_dir = get_skill_directory(skills_path, name)
    except SkillManagerError:
        return "-", "never", "[red]invalid name[/red]"
    if not skill_dir.is_dir():
        return "-", "never", "[yellow]not synced[/yellow]"

    metadata = load_metadata(skill_dir)
    if metadata is None:
        return "-", "never", "[yellow]no metadata[/yellow]"

    ref = _display_ref(metadata)
    last_sync = _display_last_sync(metadata)
    try:
        modified = calculate_content_hash(skill_dir) != metadata.content_hash
    except SkillManagerError:
        return ref, last_sync, "[red]unreadable[/red]"
    return ref, last_sync, "[yellow]modified[/yellow]" if modified else "[green]clean[/green]"


def _display_ref(metadata: SkillMetadata) -> str:
    if metadata.ref is None:
        return "latest" if metadata.type is SkillType.GIST else "-"
    if _OBJECT_ID.fullmatch(metadata.ref):
        return metadata.ref[:7]
    return metadata.ref


def _display_last_sync(metadata: SkillMetadata) -> str:
    try:
        synced = datetime.strptime(metadata.last_sync, _LAST_SYNC_FORMAT)
    except ValueError:
        return metadata.last_sync
    return synced.strftime("%Y-%m-%d %H:%M UTC")


def _print_outcome(outcome: FetchOutcome) -> None:
    name = f"[cyan]{outcome.skill_name}[/cyan]"
    if not outcome.success:
        console.print(f"[red]✗[/red] {name} - [red]Failed[/red]: {outcome.error}")
    elif outcome.skipped:
        console.print(f"[yellow]⊘[/yellow] {name} - [yellow]Skipped[/yellow]: {outcome.reason}")
    elif outcome.reason:
        console.print(f"[green]✓[/green] {name} - {outcome.reason[:1].upper()}{outcome.reason[1:]}")
    else:
        console.print(f"[green]✓[/green] {name} - [green]Synced successfully[/green]")


def _build_skill_config(
    kind: SkillType, remote: str, ref: str | None, filename: str | None
) -> SkillConfig:
    try:
        return SkillConfig(type=kind, remote=remote, ref=ref, filename=filename)
    except ValidationError as exc:
        messages = "; ".join(str(error.get("msg")) for error in exc.errors())
        raise SkillValidationError(f"Invalid skill configuration: {messages}") from exc


def _ensure_git_for(kinds: Iterable[SkillType]) -> None:
    if any(kind in _GIT_KINDS for kind in kinds):
        check_git_available()


def _rollback(skill_dir: Path | None) -> None:
    if skill_dir is None:
        return
    try:
        remove_directory(skill_dir)
    except OSError as exc:
        err_console.print(f"[yellow]Warning:[/yellow] rollback failed: {describe_error(exc)}")
    else:
        err_console.print(f"[dim]Rolled back skill directory: {skill_dir}[/dim]")
