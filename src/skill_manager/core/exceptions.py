"""Classified errors raised by the sync engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from collections.abc import Mapping


class SkillManagerError(Exception):
    """Base error carrying a stable code and diagnostic context.

    ``retryable`` tells the retry executor whether another attempt could
    succeed. Errors default to retryable; validation-style failures override
    it so they surface on the first attempt.
    """

    code: ClassVar[str] = "SKILL_MANAGER_ERROR"
    default_retryable: ClassVar[bool] = True

    def __init__(
        self,
        message: str,
        *,
        context: Mapping[str, Any] | None = None,
        retryable: bool | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = dict(context or {})
        self.retryable = self.default_retryable if retryable is None else retryable

    @property
    def detailed_message(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(
            f"{key}={value}" for key, value in self.context.items() if value is not None
        )
        if not details:
            return self.message
        return f"{self.message} ({details})"

    def with_context(self, **context: Any) -> SkillManagerError:
        """Attach context without overwriting keys already present."""
        for key, value in context.items():
            self.context.setdefault(key, value)
        return self


class InvalidSourceError(SkillManagerError):
    code = "INVALID_URL"
    default_retryable = False


class SkillValidationError(SkillManagerError):
    code = "VALIDATION_ERROR"
    default_retryable = False


class TransferFailedError(SkillManagerError):
    code = "FETCH_FAILED"


class SizeExceededError(TransferFailedError):
    code = "FILE_SIZE_EXCEEDED"
    default_retryable = False


class GitError(SkillManagerError):
    code = "GIT_ERROR"


class FileSystemError(SkillManagerError):
    code = "FILE_SYSTEM_ERROR"
    default_retryable = False


class RetryExhaustedError(SkillManagerError):
    code = "RETRY_EXHAUSTED"
    default_retryable = False

    def __init__(
        self,
        label: str,
        *,
        attempts: int,
        last_error: BaseException,
    ) -> None:
        super().__init__(
            f"{label} failed after {attempts} attempt(s): {_describe(last_error)}",
            context={"attempts": attempts},
        )
        self.label = label
        self.attempts = attempts
        self.last_error = last_error


class ConfigError(SkillManagerError):
    code = "INVALID_CONFIG"
    default_retryable = False


class ConfigNotFoundError(ConfigError):
    code = "CONFIG_NOT_FOUND"


class DependencyError(SkillManagerError):
    code = "DEPENDENCY_ERROR"
    default_retryable = False


def _describe(error: BaseException) -> str:
    if isinstance(error, SkillManagerError):
        return error.message
    text = str(error).strip()
    return text or type(error).__name__


def describe_error(error: BaseException) -> str:
    """Human-readable one-line description for outcome reporting."""
    if isinstance(error, SkillManagerError):
        return error.detailed_message
    return _describe(error)
