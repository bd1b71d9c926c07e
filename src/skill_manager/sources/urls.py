"""Remote source URL parsing, URL construction and ref resolution."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Literal, assert_never
from urllib.parse import urlparse

from skill_manager.config import SkillConfig, SkillType
from skill_manager.constants import (
    DEFAULT_GIT_REF,
    GIST_HOST,
    GITHUB_API_URL,
    GITHUB_HOST,
    GITHUB_RAW_CONTENT_URL,
)
from skill_manager.core.exceptions import InvalidSourceError

Platform = Literal["github", "gitlab", "bitbucket", "generic"]

_PLATFORM_HOSTS: dict[str, Platform] = {
    "github.com": "github",
    "gitlab.com": "gitlab",
    "bitbucket.org": "bitbucket",
}
_HOST_ALIASES = {"www.github.com": GITHUB_HOST, "www.gitlab.com": "gitlab.com"}
_RAW_GITHUB_HOST = "raw.githubusercontent.com"

FILE_MARKERS = frozenset({"blob"})
FOLDER_MARKERS = frozenset({"tree"})
_BITBUCKET_MARKER = "src"

_SSH_SHORTHAND = re.compile(r"^[\w.-]+@(?P<host>[\w.-]+):(?P<path>.+)$")
_GIST_ID = re.compile(r"gist\.github\.com/(?:(?P<user>[\w-]+)/)?(?P<id>[0-9A-Za-z]+)")


@dataclass(frozen=True)
class ParsedSource:
    platform: Platform
    host: str
    owner: str
    repo: str
    path: str | None = None
    ref: str | None = None


def parse_source_url(url: str, kind: SkillType) -> ParsedSource:
    """Split a remote URL into its repository coordinates.

    File and folder kinds must carry an embedded path (``/blob/<ref>/<path>``
    or ``/tree/<ref>/<path>``); repository kinds ignore any embedded path.
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidSourceError("Source URL must be a non-empty string", context={"kind": kind})

    if kind is SkillType.GIST:
        user, gist_id = _parse_gist(url)
        return ParsedSource(platform="github", host=GIST_HOST, owner=user or "", repo=gist_id)

    host, parts = _split_url(url.strip())
    if host == _RAW_GITHUB_HOST:
        return _parse_raw_github(url, parts, kind)

    platform = _PLATFORM_HOSTS.get(host, "generic")
    if len(parts) < 2:
        raise InvalidSourceError(
            "Source URL must contain owner and repository",
            context={"url": url[:100], "kind": kind},
        )

    markers = set(FILE_MARKERS | FOLDER_MARKERS)
    if platform == "bitbucket":
        markers.add(_BITBUCKET_MARKER)
    marker_index = next(
        (index for index in range(2, len(parts)) if parts[index] in markers),
        None,
    )

    ref: str | None = None
    path: str | None = None
    if marker_index is not None:
        prefix = parts[:marker_index]
        if prefix[-1] == "-":
            prefix = prefix[:-1]
        owner, repo = "/".join(prefix[:-1]), prefix[-1]
        if marker_index + 1 < len(parts):
            ref = parts[marker_index + 1]
        path = "/".join(parts[marker_index + 2 :]) or None
    elif platform in {"github", "bitbucket"}:
        owner, repo = parts[0], parts[1]
    else:
        owner, repo = "/".join(parts[:-1]), parts[-1]

    repo = repo.removesuffix(".git")
    if not owner or not repo:
        raise InvalidSourceError(
            "Source URL must contain owner and repository",
            context={"url": url[:100], "kind": kind},
        )

    parsed = ParsedSource(platform=platform, host=host, owner=owner, repo=repo, path=path, ref=ref)
    return _check_kind_requirements(url, parsed, kind)


def build_content_url(parsed: ParsedSource) -> str:
    """URL serving the raw bytes of ``parsed.path`` at ``parsed.ref``."""
    if not parsed.path or not parsed.ref:
        raise InvalidSourceError(
            "A ref and file path are required to build a content URL",
            context={"owner": parsed.owner, "repo": parsed.repo},
        )
    if parsed.platform == "github":
        return f"{GITHUB_RAW_CONTENT_URL}/{parsed.owner}/{parsed.repo}/{parsed.ref}/{parsed.path}"
    if parsed.platform == "gitlab":
        return f"https://{parsed.host}/{parsed.owner}/{parsed.repo}/-/raw/{parsed.ref}/{parsed.path}"
    return f"https://{parsed.host}/{parsed.owner}/{parsed.repo}/raw/{parsed.ref}/{parsed.path}"


def build_repository_url(parsed: ParsedSource) -> str:
    return f"https://{parsed.host}/{parsed.owner}/{parsed.repo}.git"


def build_gist_api_url(gist_id: str, revision: str | None = None) -> str:
    if revision:
        return f"{GITHUB_API_URL}/gists/{gist_id}/{revision}"
    return f"{GITHUB_API_URL}/gists/{gist_id}"


def parse_gist_id(url: str) -> str:
    return _parse_gist(url)[1]


def resolve_ref(config_ref: str | None, url_ref: str | None) -> str:
    """Config ref wins, then the URL-embedded ref, then the default branch."""
    if config_ref:
        return config_ref
    if url_ref:
        return url_ref
    return DEFAULT_GIT_REF


def resolve_skill_ref(config: SkillConfig) -> str | None:
    """The ref a sync of ``config`` targets.

    Fetchers and the skip-check both call this so the ref recorded after a
    fetch is always comparable with the ref computed before the next one.
    Gists only have a ref when a revision is pinned.
    """
    if config.type is SkillType.GIST:
        return config.ref
    return resolve_git_ref(config)


def resolve_git_ref(config: SkillConfig) -> str:
    """The branch, tag or commit a Git-backed skill checks out."""
    match config.type:
        case SkillType.GIT_REPO:
            return resolve_ref(config.ref, None)
        case SkillType.GIT_FILE | SkillType.GIT_FOLDER:
            parsed = parse_source_url(config.remote, config.type)
            return resolve_ref(config.ref, parsed.ref)
        case SkillType.GIST:
            raise InvalidSourceError(
                "Gists are pinned by revision, not by Git ref",
                context={"remote": config.remote},
            )
        case _:
            assert_never(config.type)


def has_pinned_ref(config: SkillConfig) -> bool:
    """Whether ``config`` names a ref explicitly rather than tracking a branch head."""
    if config.ref:
        return True
    if config.type in {SkillType.GIT_FILE, SkillType.GIT_FOLDER}:
        try:
            parsed = parse_source_url(config.remote, config.type)
        except InvalidSourceError:
            return False
        return parsed.ref is not None
    return False


def infer_source_kind(url: str) -> SkillType:
    if not isinstance(url, str) or not url.strip():
        raise InvalidSourceError("URL must be a non-empty string")

    trimmed = url.strip()
    if _hostname(trimmed) == GIST_HOST:
        return SkillType.GIST
    if "/blob/" in trimmed:
        return SkillType.GIT_FILE
    if "/tree/" in trimmed:
        return SkillType.GIT_FOLDER
    return SkillType.GIT_REPO


def reconcile_source_kind(
    url: str, explicit: SkillType | str | None
) -> tuple[SkillType, str | None]:
    """Return the kind to use and a warning when an explicit kind disagrees with the URL."""
    inferred = infer_source_kind(url)
    if explicit is None:
        return inferred, None

    try:
        kind = SkillType(str(explicit).upper())
    except ValueError as exc:
        valid = ", ".join(member.value for member in SkillType)
        raise InvalidSourceError(
            f"Invalid skill type: {explicit}. Must be one of: {valid}",
            context={"type": explicit},
        ) from exc

    if kind is not inferred:
        return kind, (
            f'Specified type "{kind}" does not match URL pattern '
            f'(detected: "{inferred}"). Using specified type.'
        )
    return kind, None


def _check_kind_requirements(url: str, parsed: ParsedSource, kind: SkillType) -> ParsedSource:
    if kind is SkillType.GIT_REPO:
        return replace(parsed, path=None, ref=None)
    if not parsed.path:
        label = "file" if kind is SkillType.GIT_FILE else "folder"
        raise InvalidSourceError(
            f"{kind} URL must include a {label} path: {url}",
            context={"url": url[:100], "kind": kind},
        )
    return parsed


def _parse_raw_github(url: str, parts: list[str], kind: SkillType) -> ParsedSource:
    if len(parts) < 2:
        raise InvalidSourceError(
            "Source URL must contain owner and repository", context={"url": url[:100]}
        )
    owner, repo = parts[0], parts[1]
    ref = parts[2] if len(parts) > 2 else None
    path = "/".join(parts[3:]) or None
    parsed = ParsedSource(
        platform="github", host=GITHUB_HOST, owner=owner, repo=repo, path=path, ref=ref
    )
    return _check_kind_requirements(url, parsed, kind)


def _split_url(url: str) -> tuple[str, list[str]]:
    ssh_match = _SSH_SHORTHAND.match(url)
    if ssh_match:
        url = f"https://{ssh_match.group('host')}/{ssh_match.group('path')}"
    elif "://" not in url:
        url = f"https://{url}"

    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https", "ssh", "git"}:
        raise InvalidSourceError(
            f"Unsupported URL scheme: {parsed.scheme}", context={"url": url[:100]}
        )
    host = (parsed.hostname or "").lower()
    if not host:
        raise InvalidSourceError("Source URL must include a host", context={"url": url[:100]})
    host = _HOST_ALIASES.get(host, host)
    parts = [part for part in parsed.path.split("/") if part]
    return host, parts


def _hostname(url: str) -> str:
    candidate = url if "://" in url else f"https://{url}"
    return (urlparse(candidate).hostname or "").lower()


def _parse_gist(url: str) -> tuple[str | None, str]:
    if not isinstance(url, str) or GIST_HOST not in url:
        raise InvalidSourceError(
            f"Invalid Gist URL: must be from {GIST_HOST}",
            context={"url": str(url)[:100]},
        )
    match = _GIST_ID.search(url)
    if not match:
        raise InvalidSourceError(
            "Could not extract Gist ID from URL", context={"url": url[:100]}
        )
    return match.group("user"), match.group("id")
