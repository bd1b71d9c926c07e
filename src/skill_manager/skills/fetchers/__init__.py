"""Fetch strategies, one per source kind."""

from __future__ import annotations

from typing import assert_never

from skill_manager.config import SkillType
from skill_manager.skills.fetchers.base import FetcherOptions, SkillFetcher
from skill_manager.skills.fetchers.gist import GistFetcher
from skill_manager.skills.fetchers.git_file import GitFileFetcher
from skill_manager.skills.fetchers.git_folder import GitFolderFetcher
from skill_manager.skills.fetchers.git_repo import GitRepoFetcher


def get_fetcher(kind: SkillType, options: FetcherOptions | None = None) -> SkillFetcher:
    match kind:
        case SkillType.GIT_FILE:
            return GitFileFetcher(options)
        case SkillType.GIT_FOLDER:
            return GitFolderFetcher(options)
        case SkillType.GIT_REPO:
            return GitRepoFetcher(options)
        case SkillType.GIST:
            return GistFetcher(options)
        case _:
            assert_never(kind)


__all__ = [
    "FetcherOptions",
    "GistFetcher",
    "GitFileFetcher",
    "GitFolderFetcher",
    "GitRepoFetcher",
    "SkillFetcher",
    "get_fetcher",
]
