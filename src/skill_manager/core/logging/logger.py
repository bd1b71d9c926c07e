"""Structured logger facade used throughout skill-manager.

Call sites pass structured context through ``data=`` rather than formatting
it into the message, e.g. ``logger.warning("Cleanup failed", data={"path": p})``.
"""

from __future__ import annotations

import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

_ROOT_LOGGER_NAME = "skill_manager"


class Logger:
    def __init__(self, name: str) -> None:
        self.name = name
        self._logger = logging.getLogger(name)

    def debug(self, message: str, *, data: Any = None, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, data, **kwargs)

    def info(self, message: str, *, data: Any = None, **kwargs: Any) -> None:
        self._log(logging.INFO, message, data, **kwargs)

    def warning(self, message: str, *, data: Any = None, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, data, **kwargs)

    def error(self, message: str, *, data: Any = None, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, data, **kwargs)

    def _log(self, level: int, message: str, data: Any, **kwargs: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return
        exc_info = kwargs.pop("exc_info", None)
        if data:
            message = f"{message} {_format_data(data)}"
        self._logger.log(level, message, exc_info=exc_info, extra={"data": data})


def _format_data(data: Any) -> str:
    if isinstance(data, dict):
        return " ".join(f"{key}={value!r}" for key, value in data.items())
    return repr(data)


def get_logger(name: str) -> Logger:
    return Logger(name)


def configure_logging(level: int | str = logging.WARNING) -> None:
    """Route skill-manager logs through a rich handler on stderr."""
    root = logging.getLogger(_ROOT_LOGGER_NAME)
    root.setLevel(level)
    if not any(isinstance(handler, RichHandler) for handler in root.handlers):
        handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)
    root.propagate = False
