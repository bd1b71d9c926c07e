"""Input validation guarding the filesystem and network boundaries."""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from skill_manager.constants import DEFAULT_TRUSTED_DOMAINS, MARKDOWN_EXTENSIONS, MAX_FILE_SIZE
from skill_manager.core.exceptions import (
    InvalidSourceError,
    SizeExceededError,
    SkillValidationError,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

_SAFE_NAME = re.compile(r"^[A-Za-z0-9_-]+$")


def sanitize_skill_name(name: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise SkillValidationError(
            "Skill name must be a non-empty string", context={"skill": name}
        )
    if ".." in name:
        raise SkillValidationError(
            "Skill name contains invalid characters (path traversal detected)",
            context={"skill": name},
        )

    trimmed = name.strip()
    if not _SAFE_NAME.match(trimmed):
        raise SkillValidationError(
            "Skill name contains invalid characters. "
            "Use only alphanumeric, hyphens, and underscores",
            context={"skill": trimmed},
        )
    return trimmed


def resolve_within(base: Path, relative: str | Path) -> Path:
    """Join ``relative`` onto ``base`` and refuse results escaping ``base``."""
    base_resolved = base.resolve()
    target = (base_resolved / Path(relative)).resolve()
    try:
        target.relative_to(base_resolved)
    except ValueError as exc:
        raise SkillValidationError(
            "Invalid path: resolves outside base directory",
            context={"base": str(base_resolved), "target": str(target)},
        ) from exc
    return target


def validate_file_size(size_bytes: int, limit_bytes: int = MAX_FILE_SIZE) -> None:
    if size_bytes <= limit_bytes:
        return
    size_mb = size_bytes / (1024 * 1024)
    limit_mb = limit_bytes / (1024 * 1024)
    raise SizeExceededError(
        f"File size {size_mb:.2f}MB exceeds maximum allowed size {limit_mb:.2f}MB",
        context={"size_bytes": size_bytes, "limit_bytes": limit_bytes},
    )


def trusted_domains(extra: Iterable[str] | None = None) -> tuple[str, ...]:
    """Default allow-list plus caller additions; the defaults always apply."""
    domains = list(DEFAULT_TRUSTED_DOMAINS)
    for domain in extra or ():
        normalized = domain.strip().lower().lstrip(".")
        if normalized and normalized not in domains:
            domains.append(normalized)
    return tuple(domains)


def is_trusted_host(hostname: str, domains: Iterable[str]) -> bool:
    host = hostname.lower().rstrip(".")
    return any(host == domain or host.endswith(f".{domain}") for domain in domains)


def validate_trusted_url(url: str, extra_domains: Iterable[str] | None = None) -> None:
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        raise InvalidSourceError(f"Invalid URL format: {url[:100]}", context={"url": url[:100]})

    allowed = trusted_domains(extra_domains)
    if not is_trusted_host(parsed.hostname, allowed):
        raise SkillValidationError(
            f"URL domain not in trusted list: {parsed.hostname}",
            context={"hostname": parsed.hostname, "allowed": ", ".join(allowed)},
        )


def validate_filename(filename: str, allowed_extensions: Iterable[str] = MARKDOWN_EXTENSIONS) -> None:
    extensions = tuple(allowed_extensions)
    if not isinstance(filename, str) or not filename.strip():
        raise SkillValidationError("Filename must be a non-empty string", context={"filename": filename})
    if not filename.lower().endswith(extensions):
        raise SkillValidationError(
            f"Filename must have one of these extensions: {', '.join(extensions)}",
            context={"filename": filename},
        )
