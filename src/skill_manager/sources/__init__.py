"""Remote source URL helpers shared by fetchers and the skip-check."""

from skill_manager.sources.urls import (
    ParsedSource,
    infer_source_kind,
    parse_source_url,
    resolve_git_ref,
    resolve_ref,
    resolve_skill_ref,
)

__all__ = [
    "ParsedSource",
    "infer_source_kind",
    "parse_source_url",
    "resolve_git_ref",
    "resolve_ref",
    "resolve_skill_ref",
]
