"""Sequential stage pipeline runner."""

import time

from stackctl.core.exceptions import StackCtlError
from stackctl.core.logging import StructuredLogger
from stackctl.core.output import OutputFormatter, format_duration
from stackctl.pipeline.graph import DependencyGraph
from stackctl.pipeline.models import (
    PipelineResult,
    Stage,
    StageContext,
    StageResult,
    StageStatus,
)

logger = StructuredLogger(__name__)


class PipelineRunner:
    """Runs stages one at a time and stops at the first mandatory failure.

    Nothing is rolled back on failure. Every stage is expected to converge
    idempotently, so recovery is re-running the same pipeline.
    """

    def __init__(self, output: OutputFormatter, context: StageContext):
        self.output = output
        self.context = context

    def run(self, name: str, stages: list[Stage]) -> PipelineResult:
        """Execute ``stages`` in dependency order.

        Args:
            name: Pipeline name used in messages
            stages: Stages in declared order

        Returns:
            PipelineResult with one StageResult per invoked or skipped stage
        """
        graph = DependencyGraph(stages)
        ordered = graph.execution_order()
        result = PipelineResult(name=name)
        blocked: dict[str, str] = {}
        log = logger.bind(pipeline=name)

        for index, stage in enumerate(ordered, start=1):
            header = stage.description or stage.name
            self.output.print(f"\n[bold]Stage {index}/{len(ordered)}: {header}[/bold]")

            if stage.name in blocked:
                message = f"Skipped because stage '{blocked[stage.name]}' failed"
                self.output.print_warning(message)
                result.results.append(
                    StageResult(name=stage.name, status=StageStatus.SKIPPED, message=message)
                )
                continue

            stage_result = self._execute(stage)
            result.results.append(stage_result)
            log.info(
                "Stage finished",
                stage=stage.name,
                status=stage_result.status.value,
                duration=format_duration(stage_result.duration),
            )

            for warning in stage_result.warnings:
                self.output.print_warning(warning.message)

            if stage_result.status == StageStatus.FAILED:
                if stage.mandatory:
                    result.failed_stage = stage.name
                    self.output.print_error(
                        f"Stage '{stage.name}' failed: {stage_result.message}"
                    )
                    break

                self.output.print_warning(
                    f"Optional stage '{stage.name}' failed: {stage_result.message}"
                )
                for dependent in graph.dependents_of(stage.name):
                    blocked.setdefault(dependent, stage.name)
            elif stage_result.status == StageStatus.SKIPPED:
                self.output.print_note(stage_result.message or f"Stage '{stage.name}' skipped")
            else:
                self.output.print_success(stage_result.message or f"Stage completed: {stage.name}")

        if result.success:
            self.output.print_note(f"Pipeline '{name}' complete.")
        else:
            self.output.print_error(
                f"Pipeline '{name}' aborted at stage '{result.failed_stage}'"
            )

        return result

    def _execute(self, stage: Stage) -> StageResult:
        if self.context.dry_run:
            target = f" in {stage.working_dir}" if stage.working_dir else ""
            self.output.print(f"[dim]\\[dry-run] Would {stage.operation.value} '{stage.name}'{target}[/dim]")
            return StageResult(
                name=stage.name,
                status=StageStatus.SUCCEEDED,
                message=f"Dry-run: {stage.name}",
            )

        started = time.monotonic()
        try:
            stage_result = stage.action(stage, self.context)
        except StackCtlError as e:
            stage_result = StageResult(
                name=stage.name,
                status=StageStatus.FAILED,
                exit_code=int(e.details.get("exit_code", 1)),
                message=e.message,
            )
        stage_result.duration = time.monotonic() - started
        return stage_result
