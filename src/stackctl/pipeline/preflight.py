"""Environment checks run before any stage touches external state."""

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from stackctl.core.exceptions import StackCtlError
from stackctl.pipeline.models import OperationResult, Severity

if TYPE_CHECKING:
    from stackctl.clients.aws import AWSClientFactory


@dataclass
class PreflightReport:
    """Outcome of all precondition checks."""

    checks: list[OperationResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(c.severity != Severity.FATAL for c in self.checks)

    @property
    def failures(self) -> list[OperationResult]:
        return [c for c in self.checks if c.severity == Severity.FATAL]

    def to_rows(self) -> list[dict[str, str]]:
        return [
            {
                "Check": c.name,
                "Status": "ok" if c.ok else c.severity.value,
                "Detail": c.message,
            }
            for c in self.checks
        ]


class PreflightChecker:
    """Verify tools, stage directories and AWS credentials."""

    def __init__(
        self,
        root_dir: Path,
        directories: list[str],
        tools: tuple[str, ...] = ("terraform", "docker"),
        aws: "AWSClientFactory | None" = None,
        which: Callable[[str], str | None] | None = None,
    ):
        self.root_dir = root_dir
        self.directories = directories
        self.tools = tools
        self.aws = aws
        self._which = which or shutil.which

    def run(self) -> PreflightReport:
        """Run every check; never raises for a failed check."""
        report = PreflightReport()
        report.checks.extend(self._check_tool(tool) for tool in self.tools)
        report.checks.extend(self._check_directory(d) for d in self.directories)
        if self.aws is not None:
            report.checks.append(self._check_credentials(self.aws))
        return report

    def _check_tool(self, tool: str) -> OperationResult:
        path = self._which(tool)
        if not path:
            return OperationResult(
                name=f"tool:{tool}",
                severity=Severity.FATAL,
                message=f"{tool} not found on PATH",
            )
        return OperationResult(name=f"tool:{tool}", message=path)

    def _check_directory(self, directory: str) -> OperationResult:
        path = self.root_dir / directory
        if not path.is_dir():
            return OperationResult(
                name=f"dir:{directory}",
                severity=Severity.FATAL,
                message=f"{path} not found",
            )
        return OperationResult(name=f"dir:{directory}", message=str(path))

    def _check_credentials(self, aws: "AWSClientFactory") -> OperationResult:
        try:
            account_id = aws.account_id
        except StackCtlError as e:
            return OperationResult(
                name="aws:credentials",
                severity=Severity.FATAL,
                message=e.message,
            )
        return OperationResult(
            name="aws:credentials",
            message=f"account {account_id} in {aws.region}",
        )
