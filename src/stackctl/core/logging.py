"""Logging setup for stackctl.

Diagnostics go to stderr through the standard logging tree. Phase
messages for operators (NOTE/WARNING/ERROR lines) go through
``OutputFormatter`` instead and are not affected by the log level.
"""

import logging
import sys
from enum import Enum
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "stackctl"

# Client libraries log every request at DEBUG/INFO
NOISY_LOGGERS = ("boto3", "botocore", "urllib3", "httpx", "httpcore", "s3transfer")


class LogLevel(str, Enum):
    """Log level enumeration."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @classmethod
    def from_flags(cls, verbose: int, quiet: bool, default: "LogLevel") -> "LogLevel":
        """Map ``-v``/``-q`` counts to a level; flags beat the configured default."""
        if verbose >= 3:
            return cls.DEBUG
        if verbose >= 1:
            return cls.INFO
        if quiet:
            return cls.ERROR
        return default


def _build_handler(rich_output: bool) -> logging.Handler:
    if not rich_output:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)-7s %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        return handler

    rich_handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    rich_handler.setFormatter(logging.Formatter("%(message)s"))
    return rich_handler


def setup_logging(
    level: LogLevel = LogLevel.WARNING,
    rich_output: bool = True,
) -> logging.Logger:
    """Install a single stderr handler on the root logger.

    Calling it again replaces the previous handler, so a context created
    per command never duplicates log lines.

    Returns:
        The ``stackctl`` package logger
    """
    log_level = getattr(logging, level.value.upper())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(_build_handler(rich_output))
    root.setLevel(log_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    package_logger = logging.getLogger(ROOT_LOGGER)
    package_logger.setLevel(log_level)
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``stackctl`` namespace.

    Module names (``stackctl.clients.ecr``) are used as is; short names
    are prefixed.
    """
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


class StructuredLogger:
    """Logger that appends bound ``key=value`` pairs to every message.

    Values must never include secret material; callers pass identifiers
    (secret ids, image URIs, stage names) only.
    """

    def __init__(self, name: str, **context: Any):
        self._logger = get_logger(name)
        self._context: dict[str, Any] = dict(context)

    @property
    def name(self) -> str:
        return self._logger.name

    def bind(self, **kwargs: Any) -> "StructuredLogger":
        """Return a child logger carrying extra context."""
        return StructuredLogger(self.name, **{**self._context, **kwargs})

    def _render(self, message: str, fields: dict[str, Any]) -> str:
        merged = {**self._context, **fields}
        if not merged:
            return message
        pairs = " ".join(f"{key}={value}" for key, value in merged.items())
        return f"{message} [{pairs}]"

    def debug(self, message: str, **kwargs: Any) -> None:
        if self._logger.isEnabledFor(logging.DEBUG):
            self._logger.debug(self._render(message, kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        if self._logger.isEnabledFor(logging.INFO):
            self._logger.info(self._render(message, kwargs))
