"""Shared fetch contract and plumbing for the four source kinds."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, ClassVar

import httpx

from skill_manager.constants import MAX_FILE_SIZE, USER_AGENT
from skill_manager.core.exceptions import (
    GitError,
    RetryExhaustedError,
    SkillManagerError,
    TransferFailedError,
)
from skill_manager.core.logging.logger import get_logger
from skill_manager.skills.files import clear_directory
from skill_manager.skills.git import GitClient, SubprocessGitClient
from skill_manager.skills.metadata import build_metadata, save_metadata
from skill_manager.sources.urls import resolve_skill_ref
from skill_manager.utils.retry import RetryPolicy, execute_with_retry
from skill_manager.validation import validate_file_size, validate_trusted_url

if TYPE_CHECKING:
    from pathlib import Path

    from skill_manager.config import Settings, SkillConfig, SkillType

logger = get_logger(__name__)


@dataclass(frozen=True)
class FetcherOptions:
    """Collaborators and limits shared by every fetcher in a sync run."""

    retry: RetryPolicy = field(default_factory=RetryPolicy)
    trusted_domains: tuple[str, ...] = ()
    max_file_size: int = MAX_FILE_SIZE
    transport: httpx.AsyncBaseTransport | None = None
    git: GitClient = field(default_factory=SubprocessGitClient)
    temp_root: Path | None = None

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> FetcherOptions:
        values: dict[str, Any] = {
            "retry": RetryPolicy.from_settings(settings.http),
            "trusted_domains": tuple(settings.trusted_domains),
            "max_file_size": settings.max_file_size,
        }
        values.update(overrides)
        return cls(**values)

    def http_client(self) -> httpx.AsyncClient:
        """Client that refuses to send any request, redirects included, to an untrusted host."""

        async def check_request(request: httpx.Request) -> None:
            validate_trusted_url(str(request.url), self.trusted_domains)

        return httpx.AsyncClient(
            timeout=self.retry.timeout,
            transport=self.transport,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
            event_hooks={"request": [check_request]},
        )


class SkillFetcher(ABC):
    """Fetch one skill's content into ``<skills_path>/<skill_name>``.

    On success the skill directory holds exactly the synced content plus a
    fresh metadata sidecar. On failure a classified ``SkillManagerError`` is
    raised with the skill name, remote and attempted ref attached; failures
    that are not already classified become ``failure_type``.
    """

    kind: ClassVar[SkillType]
    description: ClassVar[str]
    failure_type: ClassVar[type[SkillManagerError]] = TransferFailedError

    def __init__(self, options: FetcherOptions | None = None) -> None:
        self.options = options or FetcherOptions()

    async def fetch(self, skill_name: str, config: SkillConfig, skills_path: Path) -> None:
        try:
            await self._fetch(skill_name, config, skills_path)
        except RetryExhaustedError as exc:
            raise self.failure_type(
                f'Failed to fetch {self.description} for skill "{skill_name}": {exc.message}',
                context=self._failure_context(skill_name, config),
            ) from exc
        except SkillManagerError as exc:
            raise exc.with_context(**self._failure_context(skill_name, config))
        except Exception as exc:  # noqa: BLE001
            raise self.failure_type(
                f'Failed to fetch {self.description} for skill "{skill_name}": {exc}',
                context=self._failure_context(skill_name, config),
            ) from exc

    @abstractmethod
    async def _fetch(self, skill_name: str, config: SkillConfig, skills_path: Path) -> None: ...

    def _validate_url(self, url: str) -> None:
        validate_trusted_url(url, self.options.trusted_domains)

    def _persist_metadata(self, skill_dir: Path, config: SkillConfig, ref: str | None) -> None:
        save_metadata(skill_dir, build_metadata(config, ref, skill_dir))
        logger.debug(
            "Saved skill metadata",
            data={"skill_dir": str(skill_dir), "remote": config.remote, "ref": ref},
        )

    async def _download(
        self,
        client: httpx.AsyncClient,
        url: str,
        label: str,
        *,
        headers: dict[str, str] | None = None,
    ) -> bytes:
        """GET ``url`` with retries, enforcing the size ceiling while streaming."""

        async def attempt() -> bytes:
            async with client.stream("GET", url, headers=headers) as response:
                self._check_response(response, url)
                declared = response.headers.get("content-length")
                if declared and declared.isdigit():
                    validate_file_size(int(declared), self.options.max_file_size)
                received = 0
                chunks: list[bytes] = []
                async for chunk in response.aiter_bytes():
                    received += len(chunk)
                    validate_file_size(received, self.options.max_file_size)
                    chunks.append(chunk)
                return b"".join(chunks)

        return await execute_with_retry(attempt, label, self.options.retry)

    async def _get_json(
        self,
        client: httpx.AsyncClient,
        url: str,
        label: str,
        *,
        headers: dict[str, str] | None = None,
    ) -> Any:
        async def attempt() -> Any:
            response = await client.get(url, headers=headers)
            self._check_response(response, url)
            return response.json()

        return await execute_with_retry(attempt, label, self.options.retry)

    def _check_response(self, response: httpx.Response, url: str) -> None:
        if response.is_success:
            return
        status = response.status_code
        raise TransferFailedError(
            f"Failed to fetch {url}: {status} {response.reason_phrase}",
            context={"url": url, "status": status},
            retryable=status >= 500 or status == 429,
        )

    def _failure_context(self, skill_name: str, config: SkillConfig) -> dict[str, Any]:
        try:
            ref = resolve_skill_ref(config)
        except SkillManagerError:
            ref = config.ref
        return {"skill": skill_name, "remote": config.remote, "ref": ref}


class GitCloneFetcher(SkillFetcher):
    """Fetchers that transfer content with a shallow ``git clone``."""

    failure_type = GitError

    async def _clone(self, repo_url: str, destination: Path, ref: str) -> None:
        async def attempt() -> None:
            # Start every attempt from an empty destination; a failed clone
            # can leave partial objects behind.
            if destination.exists():
                clear_directory(destination)
            await self.options.git.clone(repo_url, destination, ref=ref, depth=1)

        # git bounds its own runtime; see SubprocessGitClient.timeout.
        policy = replace(self.options.retry, timeout=None)
        await execute_with_retry(attempt, f"Cloning {repo_url}", policy)
