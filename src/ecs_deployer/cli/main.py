"""CLI entrypoint for the ECS deployer."""

from pathlib import Path
from typing import Any

import click
import questionary
from botocore.exceptions import BotoCoreError
from rich.markup import escape

from ecs_deployer.cli.errors import report_remote_error
from ecs_deployer.cli.summary import (
    print_cleanup_summary,
    print_deployment_plan,
    print_session_summary,
    print_status_table,
    prompt_confirmation,
)
from ecs_deployer.cli.ui import configure_logging, console, print_banner, report_step
from ecs_deployer.core.deployments.aws_cfn import (
    DeploymentSequencer,
    DeploymentSession,
    DeploymentState,
    check_deployment,
    create_session,
    load_balancer_dns,
)
from ecs_deployer.core.settings import ConfigError, DeploymentSettings, get_settings


@click.group(invoke_without_command=True)
@click.option("--region", help="AWS region (overrides AWS_REGION).")
@click.option("--profile", help="AWS profile (overrides AWS_PROFILE).")
@click.option("--cluster-stack", help="Cluster stack name (overrides CLUSTER_STACK).")
@click.option("--alb-stack", help="Load balancer stack name (overrides ALB_STACK).")
@click.option("--service-stack", help="Service stack name (overrides SERVICE_STACK).")
@click.option(
    "--templates-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory containing the stack and task definition templates.",
)
@click.option("--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(
    ctx: click.Context,
    region: str | None,
    profile: str | None,
    cluster_stack: str | None,
    alb_stack: str | None,
    service_stack: str | None,
    templates_dir: Path | None,
    verbose: bool,
) -> None:
    """Deploy an ECS service behind an Application Load Balancer.

    Runs the full deployment when no command is given.

    Args:
        ctx: Click context for the command invocation.
        region: AWS region override.
        profile: AWS profile override.
        cluster_stack: Cluster stack name override.
        alb_stack: Load balancer stack name override.
        service_stack: Service stack name override.
        templates_dir: Template directory override.
        verbose: Enable debug logging.
    """
    configure_logging(verbose)
    ctx.obj = {
        "aws_region": region,
        "aws_profile": profile,
        "cluster_stack": cluster_stack,
        "alb_stack": alb_stack,
        "service_stack": service_stack,
        "templates_dir": templates_dir,
    }
    if ctx.invoked_subcommand is None:
        ctx.invoke(deploy)


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def deploy(ctx: click.Context, yes: bool = False) -> None:
    """Deploy the cluster, load balancer, task definition and service.

    Args:
        ctx: Click context for the command invocation.
        yes: Skip the confirmation prompt.
    """
    settings = _load_settings(ctx)
    print_banner()
    print_deployment_plan(settings)
    sequencer = _sequencer(settings)
    try:
        session = sequencer.run(confirm=_confirm_always if yes else prompt_confirmation)
    except Exception as exc:  # noqa: BLE001
        report_remote_error(exc)
        ctx.exit(1)
    print_session_summary(session, settings)
    ctx.exit(session.exit_code)


@cli.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Validate credentials, templates and network without deploying.

    Args:
        ctx: Click context for the command invocation.
    """
    settings = _load_settings(ctx)
    session = _sequencer(settings).validate()
    if session.state == DeploymentState.FAILED:
        if session.error is not None:
            report_remote_error(session.error)
        ctx.exit(1)
    console.print("[green]All templates are valid.[/green]")


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def destroy(ctx: click.Context, yes: bool) -> None:
    """Request deletion of the service, load balancer and cluster stacks.

    Args:
        ctx: Click context for the command invocation.
        yes: Skip the confirmation prompt.
    """
    settings = _load_settings(ctx)
    stacks = ", ".join([settings.service_stack, settings.alb_stack, settings.cluster_stack])
    console.print(f"[yellow]Deleting stacks: {stacks}[/yellow]")
    if not yes and not questionary.confirm("Delete these stacks?", default=False).ask():
        console.print("[yellow]Clean up cancelled.[/yellow]")
        return

    results = _sequencer(settings).destroy()
    print_cleanup_summary(results)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the state of the deployment stacks and service.

    Args:
        ctx: Click context for the command invocation.
    """
    settings = _load_settings(ctx)
    aws = _create_aws_session(settings)
    try:
        results = check_deployment(aws, settings)
        dns_name = load_balancer_dns(aws, settings)
    except BotoCoreError as exc:
        report_remote_error(exc)
        ctx.exit(1)
    print_status_table(results, dns_name)


def main() -> None:
    """Run the CLI."""
    cli()


def _load_settings(ctx: click.Context) -> DeploymentSettings:
    """Build settings from the environment and CLI overrides."""
    overrides: dict[str, Any] = ctx.obj or {}
    try:
        return get_settings(**overrides)
    except ConfigError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise SystemExit(1) from exc


def _create_aws_session(settings: DeploymentSettings) -> Any:
    try:
        return create_session(settings)
    except BotoCoreError as exc:
        report_remote_error(exc)
        raise SystemExit(1) from exc


def _sequencer(settings: DeploymentSettings) -> DeploymentSequencer:
    return DeploymentSequencer(settings, _create_aws_session(settings), report_step)


def _confirm_always(session: DeploymentSession) -> bool:
    return True
