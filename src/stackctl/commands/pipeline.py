"""Apply, destroy and stage listing commands."""

import click

from stackctl.clients.docker import DockerClient
from stackctl.clients.ecr import ContainerRegistry
from stackctl.clients.secrets import SecretStore
from stackctl.config import EnvironmentConfig
from stackctl.core.context import StackCtlContext, pass_context
from stackctl.core.exceptions import PreconditionError, StageError
from stackctl.core.output import format_duration
from stackctl.pipeline.graph import DependencyGraph
from stackctl.pipeline.models import PipelineResult, StageContext
from stackctl.pipeline.preflight import PreflightChecker
from stackctl.pipeline.runner import PipelineRunner
from stackctl.pipeline.stages import build_apply_pipeline, build_destroy_pipeline


def apply_directories(env: EnvironmentConfig) -> list[str]:
    dirs = env.stages
    return [dirs.directory, dirs.servers, dirs.image, dirs.cluster]


def destroy_directories(env: EnvironmentConfig) -> list[str]:
    dirs = env.stages
    return [dirs.cluster, dirs.servers, dirs.directory]


def run_preflight(
    ctx: StackCtlContext,
    directories: list[str],
    tools: tuple[str, ...],
) -> None:
    """Run precondition checks and abort before any stage on failure."""
    env = ctx.profile.environment
    ctx.output.print_note("Running environment validation...")

    checker = PreflightChecker(
        root_dir=env.get_root_dir(),
        directories=directories,
        tools=tools,
        aws=None if ctx.dry_run else ctx.aws,
    )
    report = checker.run()

    for failure in report.failures:
        ctx.output.print_error(f"{failure.name}: {failure.message}")

    if not report.passed:
        raise PreconditionError("Environment validation failed. Exiting.")


def stage_context(ctx: StackCtlContext) -> StageContext:
    """Resolve the values every stage needs once, up front."""
    env = ctx.profile.environment
    region = ctx.profile.aws.get_region()
    if ctx.dry_run:
        return StageContext(region=region, root_dir=env.get_root_dir(), dry_run=True)

    return StageContext(
        region=ctx.aws.region,
        root_dir=env.get_root_dir(),
        account_id=ctx.aws.account_id,
    )


def print_summary(ctx: StackCtlContext, result: PipelineResult) -> None:
    rows = [
        {
            "Stage": r.name,
            "Status": r.status.value,
            "Duration": format_duration(r.duration),
            "Warnings": len(r.warnings),
        }
        for r in result.results
    ]
    ctx.output.print_data(
        rows,
        headers=["Stage", "Status", "Duration", "Warnings"],
        title=f"{result.name.capitalize()} summary",
    )


@click.command()
@click.option("--skip-preflight", is_flag=True, help="Do not run environment checks")
@click.option("--skip-validation", is_flag=True, help="Do not poll the load balancer afterwards")
@click.option("--max-attempts", type=click.IntRange(min=1), help="Readiness probe attempts")
@click.option("--interval", type=click.FloatRange(min=0), help="Seconds between probe attempts")
@pass_context
def apply(
    ctx: StackCtlContext,
    skip_preflight: bool,
    skip_validation: bool,
    max_attempts: int | None,
    interval: float | None,
) -> None:
    """Deploy the environment.

    \b
    Phases:
        1. Active Directory domain controller
        2. Domain-joined EC2 servers
        3. RStudio image build and ECR push (skipped if the tag exists)
        4. ECS cluster
        5. Readiness validation

    \b
    Examples:
        stackctl apply
        stackctl --dry-run apply
        stackctl apply --skip-validation
    """
    env = ctx.profile.environment

    if not skip_preflight:
        run_preflight(ctx, apply_directories(env), tools=("terraform", "docker"))

    context = stage_context(ctx)
    stages = build_apply_pipeline(
        env,
        registry=ContainerRegistry(ctx.aws.ecr),
        secrets=SecretStore(ctx.aws.secretsmanager),
        docker=DockerClient(),
    )

    result = PipelineRunner(ctx.output, context).run("apply", stages)
    print_summary(ctx, result)

    if not result.success:
        raise StageError(
            f"Deployment failed at stage '{result.failed_stage}'",
            stage=result.failed_stage,
        )

    if skip_validation:
        return

    if ctx.dry_run:
        ctx.log_dry_run("validate", {"load_balancer": env.validation.load_balancer})
        return

    from stackctl.commands.validate import validate_environment

    ctx.output.print_note("Running build validation...")
    validate_environment(ctx, max_attempts=max_attempts, interval=interval)


@click.command()
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt")
@click.option("--skip-preflight", is_flag=True, help="Do not run environment checks")
@pass_context
def destroy(ctx: StackCtlContext, yes: bool, skip_preflight: bool) -> None:
    """Tear down the environment.

    Deletes secrets and the ECR repository permanently. Missing secrets or
    repositories only produce warnings.

    \b
    Examples:
        stackctl destroy
        stackctl destroy --yes
    """
    env = ctx.profile.environment

    if not yes and ctx.config.global_settings.confirm_destructive:
        if not ctx.confirm("Destroy all environment resources? Deleted secrets cannot be recovered."):
            ctx.output.print_note("Operation cancelled")
            raise click.Abort()

    if not skip_preflight:
        run_preflight(ctx, destroy_directories(env), tools=("terraform",))

    context = stage_context(ctx)
    stages = build_destroy_pipeline(
        env,
        registry=ContainerRegistry(ctx.aws.ecr),
        secrets=SecretStore(ctx.aws.secretsmanager),
    )

    result = PipelineRunner(ctx.output, context).run("destroy", stages)
    print_summary(ctx, result)

    if not result.success:
        raise StageError(
            f"Teardown failed at stage '{result.failed_stage}'",
            stage=result.failed_stage,
        )

    ctx.output.print_note("Infrastructure teardown complete.")


@click.command()
@click.argument("pipeline", type=click.Choice(["apply", "destroy"]), default="apply")
@pass_context
def stages(ctx: StackCtlContext, pipeline: str) -> None:
    """Show the resolved stage order of a pipeline."""
    env = ctx.profile.environment
    # Listing only; no AWS clients are needed
    if pipeline == "apply":
        stage_list = build_apply_pipeline(env)
    else:
        stage_list = build_destroy_pipeline(env)

    ordered = DependencyGraph(stage_list).execution_order()
    ctx.output.print_data(
        [s.to_dict() for s in ordered],
        headers=["name", "operation", "working_dir", "depends_on", "mandatory"],
        title=f"{pipeline.capitalize()} pipeline",
    )
