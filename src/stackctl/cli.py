"""Main CLI entry point for stackctl."""

import sys
from typing import Any, NoReturn

import click
from rich.console import Console
from rich.markup import escape

from stackctl import __version__
from stackctl.config import load_config
from stackctl.core.context import StackCtlContext
from stackctl.core.exceptions import ConfigError, StackCtlError
from stackctl.core.output import OutputFormat

CONTEXT_SETTINGS = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 120,
}


class OutputFormatType(click.ParamType):
    """Custom Click parameter type for output format."""

    name = "format"

    def convert(
        self,
        value: Any,
        param: click.Parameter | None,
        ctx: click.Context | None,
    ) -> OutputFormat:
        if isinstance(value, OutputFormat):
            return value
        try:
            return OutputFormat(value.lower())
        except ValueError:
            self.fail(
                f"Invalid format '{value}'. Choose from: table, json, yaml, raw",
                param,
                ctx,
            )


OUTPUT_FORMAT = OutputFormatType()


def print_version(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    """Print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    click.echo(f"stackctl version {__version__}")
    ctx.exit()


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option(
    "-p",
    "--profile",
    metavar="NAME",
    envvar="STACKCTL_PROFILE",
    help="Configuration profile to use",
)
@click.option(
    "-o",
    "--output",
    "output_format",
    type=OUTPUT_FORMAT,
    metavar="FORMAT",
    help="Output format: table, json, yaml, raw",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase verbosity (-v for info, -vvv for debug)",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    help="Suppress non-essential output",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would happen without making changes",
)
@click.option(
    "--no-color",
    is_flag=True,
    help="Disable colored output",
)
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=True),
    metavar="FILE",
    envvar="STACKCTL_CONFIG",
    help="Path to config file",
)
@click.option(
    "--version",
    is_flag=True,
    callback=print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit",
)
@click.pass_context
def cli(
    ctx: click.Context,
    profile: str | None,
    output_format: OutputFormat | None,
    verbose: int,
    quiet: bool,
    dry_run: bool,
    no_color: bool,
    config_file: str | None,
) -> None:
    """StackCtl - deploy the RStudio on AWS environment.

    Sequences the Terraform bundles for the Active Directory domain
    controller, domain-joined servers, RStudio image and ECS cluster,
    then waits for the load balancer to serve RStudio.

    \b
    Examples:
        stackctl check
        stackctl apply
        stackctl validate
        stackctl destroy --yes

    \b
    Configuration:
        ~/.stackctl/config.yaml  User configuration
        ./stackctl.yaml          Project configuration
        STACKCTL_*               Environment variables
    """
    try:
        config = load_config(config_file)
        # Fail on an unknown profile before any command runs
        config.get_profile(profile)

        ctx.obj = StackCtlContext(
            config=config,
            profile=profile,
            output_format=output_format,
            verbose=verbose,
            quiet=quiet,
            dry_run=dry_run,
            no_color=no_color,
        )

        if ctx.obj.dry_run and not quiet:
            ctx.obj.output.print_warning("Dry-run mode enabled - no changes will be made")

    except ConfigError as e:
        console = Console(stderr=True)
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)


def register_commands() -> None:
    """Register all commands."""
    from stackctl.commands.pipeline import apply, destroy, stages
    from stackctl.commands.validate import check, validate

    cli.add_command(check)
    cli.add_command(apply)
    cli.add_command(destroy)
    cli.add_command(validate)
    cli.add_command(stages)


register_commands()


@cli.command()
@click.pass_context
def config(ctx: click.Context) -> None:
    """Show current configuration."""
    stackctl_ctx: StackCtlContext = ctx.obj
    profile = stackctl_ctx.profile
    env = profile.environment
    config_data = {
        "profile": stackctl_ctx.profile_name,
        "dry_run": stackctl_ctx.dry_run,
        "aws_profile": profile.aws.get_profile(),
        "aws_region": profile.aws.get_region(),
        "root_dir": str(env.get_root_dir()),
        "stages": env.stages.model_dump(),
        "image": f"{env.image.repository}:{env.image.tag}",
        "password_secret": env.image.password_secret,
        "secrets": env.secrets,
        "load_balancer": env.validation.load_balancer,
        "probe": (
            f"{env.validation.path} -> {env.validation.expected_status} "
            f"({env.validation.max_attempts} x {env.validation.interval:g}s)"
        ),
    }
    stackctl_ctx.output.print_data(config_data, title="Current Configuration")


EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _fail(message: str, code: int) -> NoReturn:
    Console(stderr=True, highlight=False, soft_wrap=True).print(message)
    sys.exit(code)


def main() -> None:
    """Console script entry point.

    Exit codes: 0 success, 1 any fatal error or declined prompt, 2 usage
    error, 130 interrupted.
    """
    try:
        rv = cli(standalone_mode=False)
    except StackCtlError as e:
        _fail(f"[red]ERROR:[/red] {escape(str(e))}", EXIT_FAILURE)
    except click.Abort as e:
        # click wraps Ctrl-C and EOF on a prompt in Abort
        if isinstance(e.__cause__, KeyboardInterrupt):
            _fail("[yellow]Interrupted[/yellow]", EXIT_INTERRUPTED)
        else:
            _fail("Aborted!", EXIT_FAILURE)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except KeyboardInterrupt:
        _fail("\n[yellow]Interrupted[/yellow]", EXIT_INTERRUPTED)
    else:
        # --version and --help come back as an exit code
        if isinstance(rv, int) and rv:
            sys.exit(rv)


if __name__ == "__main__":
    main()
