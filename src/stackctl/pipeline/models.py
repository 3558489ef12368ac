"""Pipeline data models."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable


class StageOperation(str, Enum):
    """What a stage does to its bundle."""

    APPLY = "apply"
    DESTROY = "destroy"
    BUILD = "build"
    CLEANUP = "cleanup"


class StageStatus(str, Enum):
    """Terminal status of a stage."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class Severity(str, Enum):
    """Classification of an operation outcome."""

    OK = "ok"
    WARNING = "warning"
    FATAL = "fatal"


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a single external operation."""

    name: str
    severity: Severity = Severity.OK
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.severity == Severity.OK

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "severity": self.severity.value, "message": self.message}


@dataclass(frozen=True)
class SecretRef:
    """Handle to a value held in the secret store."""

    name: str
    secret_id: str
    field: str | None = None


@dataclass(frozen=True)
class StageContext:
    """Values threaded explicitly from the driver into every stage."""

    region: str
    root_dir: Path
    account_id: str | None = None
    dry_run: bool = False

    def resolve(self, path: str | Path) -> Path:
        """Resolve a stage directory against the environment root."""
        return (self.root_dir / path).resolve()


@dataclass
class StageResult:
    """Result from a single stage execution."""

    name: str
    status: StageStatus
    exit_code: int = 0
    duration: float = 0.0
    message: str = ""
    warnings: list[OperationResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status != StageStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for output."""
        return {
            "name": self.name,
            "status": self.status.value,
            "exit_code": self.exit_code,
            "duration": round(self.duration, 3),
            "message": self.message,
            "warnings": [w.to_dict() for w in self.warnings],
        }


StageAction = Callable[["Stage", StageContext], StageResult]


@dataclass
class Stage:
    """One unit of the pipeline, mapped to one bundle operation."""

    name: str
    operation: StageOperation
    action: StageAction
    working_dir: str | None = None
    depends_on: list[str] = field(default_factory=list)
    mandatory: bool = True
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "operation": self.operation.value,
            "working_dir": self.working_dir or "-",
            "depends_on": ", ".join(self.depends_on) or "-",
            "mandatory": self.mandatory,
        }


@dataclass
class PipelineResult:
    """Aggregated result of a pipeline run."""

    name: str
    results: list[StageResult] = field(default_factory=list)
    failed_stage: str | None = None

    @property
    def success(self) -> bool:
        return self.failed_stage is None

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    @property
    def executed(self) -> list[str]:
        """Names of stages that were invoked, in order."""
        return [r.name for r in self.results]

    @property
    def warnings(self) -> list[OperationResult]:
        return [w for r in self.results for w in r.warnings]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "success": self.success,
            "failed_stage": self.failed_stage,
            "stages": [r.to_dict() for r in self.results],
        }
