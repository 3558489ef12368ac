"""Deployment pipeline: stages, runner, readiness and preflight checks."""

from stackctl.pipeline.models import (
    OperationResult,
    PipelineResult,
    SecretRef,
    Severity,
    Stage,
    StageContext,
    StageOperation,
    StageResult,
    StageStatus,
)

__all__ = [
    "OperationResult",
    "PipelineResult",
    "SecretRef",
    "Severity",
    "Stage",
    "StageContext",
    "StageOperation",
    "StageResult",
    "StageStatus",
]
