"""Readiness validation and environment check commands."""

import click

from stackctl.clients.discovery import Discovery
from stackctl.commands.pipeline import apply_directories
from stackctl.core.context import StackCtlContext, pass_context
from stackctl.core.exceptions import PreconditionError
from stackctl.pipeline.preflight import PreflightChecker
from stackctl.pipeline.readiness import ReadinessPoller, ReadinessProbe, run_validation


def validate_environment(
    ctx: StackCtlContext,
    max_attempts: int | None = None,
    interval: float | None = None,
) -> ReadinessProbe:
    """Look up the deployment and poll its load balancer."""
    config = ctx.profile.environment.validation
    discovery = Discovery(ctx.aws.ec2, ctx.aws.elbv2)
    poller = ReadinessPoller(ctx.output)
    return run_validation(
        config,
        discovery,
        poller,
        ctx.output,
        max_attempts=max_attempts,
        interval=interval,
    )


@click.command()
@click.option("--max-attempts", type=click.IntRange(min=1), help="Probe attempts (default from config)")
@click.option("--interval", type=click.FloatRange(min=0), help="Seconds between attempts")
@pass_context
def validate(ctx: StackCtlContext, max_attempts: int | None, interval: float | None) -> None:
    """Check that the RStudio load balancer serves the sign-in page.

    \b
    Examples:
        stackctl validate
        stackctl validate --max-attempts 5 --interval 2
    """
    if ctx.dry_run:
        ctx.log_dry_run(
            "validate",
            {"load_balancer": ctx.profile.environment.validation.load_balancer},
        )
        return

    validate_environment(ctx, max_attempts=max_attempts, interval=interval)


@click.command()
@click.option("--no-aws", is_flag=True, help="Skip the AWS credentials check")
@pass_context
def check(ctx: StackCtlContext, no_aws: bool) -> None:
    """Verify tools, stage directories and AWS credentials."""
    env = ctx.profile.environment
    checker = PreflightChecker(
        root_dir=env.get_root_dir(),
        directories=apply_directories(env),
        aws=None if no_aws else ctx.aws,
    )
    report = checker.run()

    ctx.output.print_data(
        report.to_rows(),
        headers=["Check", "Status", "Detail"],
        title="Environment checks",
    )

    if not report.passed:
        raise PreconditionError("Environment validation failed")

    ctx.output.print_success("Environment ready")
