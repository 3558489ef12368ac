"""Custom exceptions for stackctl."""

from typing import Any


class StackCtlError(Exception):
    """Base exception for all stackctl errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class ConfigError(StackCtlError):
    """Configuration-related errors."""

    pass


class AWSError(StackCtlError):
    """AWS API errors."""

    def __init__(
        self,
        message: str,
        service: str | None = None,
        operation: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.service = service
        self.operation = operation
        self.code = code


class AuthenticationError(StackCtlError):
    """Authentication/authorization errors."""

    pass


class TerraformError(StackCtlError):
    """Terraform CLI errors."""

    pass


class DockerError(StackCtlError):
    """Docker CLI errors."""

    pass


class PreconditionError(StackCtlError):
    """Environment validation failed before any stage ran."""

    pass


class StageError(StackCtlError):
    """A mandatory pipeline stage failed."""

    def __init__(
        self,
        message: str,
        stage: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.stage = stage


class ResolutionError(StackCtlError):
    """An identifier or DNS name could not be resolved."""

    pass


class ProbeTimeoutError(StackCtlError):
    """Readiness probe exhausted its attempts."""

    def __init__(
        self,
        message: str,
        attempts: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.attempts = attempts
