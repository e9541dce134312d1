"""Deployment plan, confirmation and result rendering for the CLI."""

import questionary
from rich.markup import escape
from rich.table import Table

from ecs_deployer.cli.errors import report_remote_error
from ecs_deployer.cli.ui import console
from ecs_deployer.core.deployments.aws_cfn import (
    CleanupResult,
    DeploymentSession,
    DeploymentState,
)
from ecs_deployer.core.settings import DeploymentSettings


def print_deployment_plan(settings: DeploymentSettings) -> None:
    """Print the stacks that will be deployed.

    Args:
        settings: Deployment settings.
    """
    console.print("[bold]Deployment plan:[/bold]")
    console.print(f"- Region: {settings.aws_region}")
    console.print(f"- Deploy ECS cluster stack: {settings.cluster_stack}")
    console.print(f"- Deploy Application Load Balancer stack: {settings.alb_stack}")
    console.print(f"- Register task definition from {settings.task_definition_template}")
    console.print(
        f"- Deploy ECS service stack: {settings.service_stack} "
        f"(desired {settings.desired_count}, min {settings.min_capacity}, "
        f"max {settings.max_capacity})"
    )
    console.print(f"- Wait for service {settings.service_name} to stabilise")


def prompt_confirmation(session: DeploymentSession) -> bool:
    """Ask the operator to confirm before anything is deployed.

    Args:
        session: Session holding the resolved network context.

    Returns:
        True when the operator confirmed.
    """
    if session.network is not None:
        console.print(f"[dim]VPC {session.network.vpc_id}[/dim]")
    answer = questionary.confirm("Proceed with the deployment?", default=False).ask()
    return bool(answer)


def print_session_summary(session: DeploymentSession, settings: DeploymentSettings) -> None:
    """Print the outcome of a deployment session.

    Args:
        session: Finished deployment session.
        settings: Deployment settings.
    """
    if session.state == DeploymentState.CANCELLED:
        console.print("[yellow]Deployment cancelled by the operator.[/yellow]")
        return

    if session.state == DeploymentState.FAILED:
        if session.error is not None:
            report_remote_error(session.error)
        if session.rollback is not None:
            colour = "green" if session.rollback.succeeded else "yellow"
            console.print(
                f"[{colour}]Rollback of {session.rollback.target}: "
                f"{escape(session.rollback.message)}[/{colour}]"
            )
        console.print(
            "[dim]Stacks that already converged were left in place. "
            "Run `ecs-deployer destroy` to remove them.[/dim]"
        )
        return

    if session.stabilized is False:
        console.print("[yellow]The service took longer than expected to stabilise.[/yellow]")

    dns_name = session.output(settings.alb_stack, settings.load_balancer_dns_output)
    console.print("[bold green]Deployment completed successfully![/bold green]")
    if dns_name:
        console.print("[green]Application available at:[/green]")
        console.print(f"  - HTTP: [yellow]http://{dns_name}[/yellow]")
        console.print(f"  - Alternate port: [yellow]http://{dns_name}:8080[/yellow]")
        console.print(f"  - HTTPS: [yellow]https://{dns_name}[/yellow] (requires a certificate)")


def print_cleanup_summary(results: list[CleanupResult]) -> None:
    """Print the outcome of stack deletion requests.

    Args:
        results: Clean-up results in request order.
    """
    for result in results:
        if result.succeeded:
            console.print(f"[green]{result.target}: {escape(result.message)}[/green]")
        else:
            console.print(f"[yellow]{result.target}: {escape(result.message)}[/yellow]")
    console.print("Stacks marked for deletion.")


def print_status_table(results: dict[str, str], dns_name: str | None) -> None:
    """Print a deployment status table.

    Args:
        results: Status values keyed by stack or resource name.
        dns_name: Load balancer DNS name, when known.
    """
    table = Table(title="Deployment resources", show_header=True, header_style="bold cyan")
    table.add_column("Resource", style="white", no_wrap=True)
    table.add_column("Status", style="white")
    for name, status in results.items():
        table.add_row(name, style_status(status))
    console.print(table)
    if dns_name:
        console.print(f"Load balancer: [yellow]http://{dns_name}[/yellow]")


def style_status(status: str) -> str:
    """Return colourised status text for terminal output.

    Args:
        status: Resource status string.

    Returns:
        Rich-marked status text.
    """
    if status.startswith("present"):
        return f"[green]{escape(status)}[/green]"
    if status.startswith("missing") or status.startswith("error"):
        return f"[red]{escape(status)}[/red]"
    return f"[yellow]{escape(status)}[/yellow]"
