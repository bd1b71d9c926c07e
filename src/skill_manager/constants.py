"""Shared constants for skill-manager."""

from __future__ import annotations

DEFAULT_SKILL_FILENAME = "SKILL.md"
METADATA_FILENAME = ".skill-manager.json"
DEFAULT_SKILLS_PATH = "~/.claude/skills"

DEFAULT_GIT_REF = "main"
TEMP_DIR_PREFIX = "skill-manager-"

MAX_FILE_SIZE = 50 * 1024 * 1024

HTTP_TIMEOUT_SECONDS = 30.0
HTTP_MAX_RETRIES = 3
HTTP_INITIAL_BACKOFF_SECONDS = 1.0
HTTP_MAX_BACKOFF_SECONDS = 10.0

GIT_CLONE_TIMEOUT_SECONDS = 300.0

GITHUB_HOST = "github.com"
GIST_HOST = "gist.github.com"
GITHUB_API_URL = "https://api.github.com"
GITHUB_RAW_CONTENT_URL = "https://raw.githubusercontent.com"
USER_AGENT = "skill-manager"

DEFAULT_TRUSTED_DOMAINS = (
    "github.com",
    "gist.github.com",
    "raw.githubusercontent.com",
    "api.github.com",
    "gist.githubusercontent.com",
)

MARKDOWN_EXTENSIONS = (".md", ".markdown")

CONFIG_ENV_VAR = "SKILL_MANAGER_CONFIG"
PROJECT_CONFIG_FILENAME = "skill-manager.config.yaml"
USER_CONFIG_PATH = "~/.config/skill-manager/config.yaml"
