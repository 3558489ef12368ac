"""Per-invocation state shared by all commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from stackctl.config import GlobalConfig, ProfileConfig, StackCtlConfig, get_default_config
from stackctl.core.logging import LogLevel, setup_logging
from stackctl.core.output import OutputFormat, OutputFormatter

if TYPE_CHECKING:
    from stackctl.clients.aws import AWSClientFactory

COLOR_MODES = {"always": True, "never": False, "auto": None}


def resolve_color(no_color: bool, settings: GlobalConfig) -> bool | None:
    """``--no-color`` wins; otherwise the configured mode (None means detect)."""
    if no_color:
        return False
    return COLOR_MODES[settings.color]


class StackCtlContext:
    """Carries configuration, output and the AWS factory through click.

    Created once by the root group. AWS clients are built on first use so
    that ``--help``, ``config`` and dry-run listings never need credentials.
    """

    def __init__(
        self,
        config: StackCtlConfig | None = None,
        profile: str | None = None,
        output_format: OutputFormat | None = None,
        verbose: int = 0,
        quiet: bool = False,
        dry_run: bool = False,
        no_color: bool = False,
    ):
        self._config = config or get_default_config()
        self._profile_name = profile or "default"
        settings = self._config.global_settings

        self._dry_run = dry_run or settings.dry_run
        color = resolve_color(no_color, settings)

        setup_logging(
            LogLevel.from_flags(verbose, quiet, settings.verbosity),
            rich_output=color is not False,
        )
        self._output = OutputFormatter(
            format=output_format or settings.output_format,
            color=color,
            quiet=quiet,
        )
        self._aws_factory: AWSClientFactory | None = None

    @property
    def config(self) -> StackCtlConfig:
        return self._config

    @property
    def profile(self) -> ProfileConfig:
        """Settings of the selected profile."""
        return self._config.get_profile(self._profile_name)

    @property
    def profile_name(self) -> str:
        return self._profile_name

    @property
    def output(self) -> OutputFormatter:
        return self._output

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    @property
    def aws(self) -> AWSClientFactory:
        """AWS client factory for the selected profile, built on first use."""
        if self._aws_factory is None:
            from stackctl.clients.aws import AWSClientFactory

            self._aws_factory = AWSClientFactory(self.profile.aws)
        return self._aws_factory

    def confirm(self, message: str, default: bool = False) -> bool:
        """Ask before a destructive step. Dry-run answers yes without asking."""
        if self._dry_run:
            self.log_dry_run(f"Would prompt: {message}")
            return True
        return self._output.confirm(message, default)

    def log_dry_run(self, action: str, details: dict[str, Any] | None = None) -> None:
        """Print what a dry-run skipped; no-op outside dry-run."""
        if not self._dry_run:
            return
        suffix = ""
        if details:
            suffix = " (" + ", ".join(f"{k}={v}" for k, v in details.items()) + ")"
        self._output.print(f"[dim]\\[dry-run] {action}{suffix}[/dim]")


pass_context = click.make_pass_decorator(StackCtlContext, ensure=True)
