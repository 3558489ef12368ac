"""Core utilities and shared components for stackctl."""

# Note: Import context lazily to avoid circular imports
# Use: from stackctl.core.context import StackCtlContext, pass_context
from stackctl.core.exceptions import AWSError, ConfigError, StackCtlError
from stackctl.core.output import OutputFormatter

__all__ = [
    "StackCtlError",
    "ConfigError",
    "AWSError",
    "OutputFormatter",
]
