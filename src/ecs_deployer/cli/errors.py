"""Error rendering for deployment failures."""

from collections.abc import Iterator

from botocore.exceptions import (
    ClientError,
    EndpointConnectionError,
    NoCredentialsError,
    ProfileNotFound,
)
from rich.markup import escape

from ecs_deployer.cli.ui import console
from ecs_deployer.core.deployments.aws_cfn import DeploymentError

CATEGORY_LABELS = {
    "preflight": "Preflight check failed",
    "network": "Network discovery failed",
    "deploy": "Deployment failed",
    "stabilization": "Service stabilisation",
}

AUTH_ERROR_CODES = frozenset(
    {
        "ExpiredToken",
        "ExpiredTokenException",
        "UnrecognizedClientException",
        "InvalidClientTokenId",
        "InvalidSignatureException",
        "AccessDenied",
        "AccessDeniedException",
    }
)
EXPIRED_TOKEN_TEXT = "security token included in the request is expired"


def report_remote_error(exc: BaseException) -> None:
    """Render a deployment error with actionable guidance.

    Credential and connectivity problems get a hint on how to fix them. Other
    errors are printed with their category label.

    Args:
        exc: Raised exception, usually a ``DeploymentError``.
    """
    kind = classify_remote_error(exc)
    if kind == "auth":
        console.print(
            "[red]AWS authentication failed. Your credentials are missing, invalid, "
            "or expired.[/red]"
        )
        console.print(
            "[dim]Refresh them (for SSO: aws sso login --profile <profile>) "
            "or pass --profile, then retry.[/dim]"
        )
    elif kind == "endpoint":
        console.print("[red]Could not reach the AWS endpoint.[/red]")
        console.print("[dim]Check network connectivity and the --region setting.[/dim]")
    else:
        console.print(f"[red]{error_label(exc)}: {escape(str(exc))}[/red]")


def error_label(exc: BaseException) -> str:
    """Return the category label for an error."""
    if isinstance(exc, DeploymentError):
        return CATEGORY_LABELS.get(exc.category, "Deployment error")
    return "Unexpected error"


def classify_remote_error(exc: BaseException) -> str | None:
    """Return ``"auth"`` or ``"endpoint"`` when a cause explains the failure.

    Args:
        exc: Raised exception; its cause and context chain is searched too.

    Returns:
        The problem kind, or None for ordinary deployment errors.
    """
    for item in causes(exc):
        if isinstance(item, (NoCredentialsError, ProfileNotFound)):
            return "auth"
        if isinstance(item, ClientError):
            if item.response.get("Error", {}).get("Code") in AUTH_ERROR_CODES:
                return "auth"
        if EXPIRED_TOKEN_TEXT in str(item).lower():
            return "auth"
        if isinstance(item, EndpointConnectionError):
            return "endpoint"
    return None


def causes(exc: BaseException) -> Iterator[BaseException]:
    """Yield an exception followed by its causes, each once."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__
