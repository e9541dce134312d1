"""Shared Rich console and logging setup for the CLI."""

import logging
from importlib.metadata import PackageNotFoundError, version

import questionary
import questionary.constants as questionary_constants
import questionary.styles as questionary_styles
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.text import Text

console = Console()

QUESTIONARY_STYLE = questionary.Style(
    [
        ("qmark", "fg:#5f819d"),
        ("question", "fg:#e0e0e0 bold"),
        ("answer", "fg:#FF9D00 bold"),
        ("pointer", "fg:#e0e0e0"),
        ("highlighted", "fg:#f2f2f2"),
        ("instruction", "fg:#e0e0e0"),
        ("text", "fg:#e0e0e0"),
    ]
)

# Use the CLI palette as the default Questionary style for all prompts.
questionary_constants.DEFAULT_STYLE = QUESTIONARY_STYLE
setattr(questionary_styles, "DEFAULT_STYLE", QUESTIONARY_STYLE)


def configure_logging(verbose: bool = False) -> None:
    """Route log records through the shared console.

    Args:
        verbose: Emit debug records when true.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
        force=True,
    )
    # botocore is chatty at debug level.
    logging.getLogger("botocore").setLevel(logging.WARNING)


def print_banner() -> None:
    """Print the deployment banner."""
    title = Text("ECS Deployer", style="bold cyan")
    title.append(f"  v{_get_version()}", style="dim white")
    subtitle = Text("Cluster • Load balancer • Task definition • Service", style="dim white")
    console.print(Panel(Text.assemble(title, "\n", subtitle), border_style="cyan", expand=False))


def report_step(message: str) -> None:
    """Report deployment progress to the user.

    Args:
        message: Progress message to display.
    """
    console.print(f"[bold cyan]•[/bold cyan] {message}")


def _get_version() -> str:
    try:
        return version("ecs-deployer")
    except PackageNotFoundError:
        return "dev"
