"""AWS session and caller identity."""

from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ecs_deployer.core.deployments.aws_cfn.errors import PreflightFailure
from ecs_deployer.core.settings import DeploymentSettings


def create_session(settings: DeploymentSettings) -> boto3.session.Session:
    """Create a boto3 session for the configured region and optional profile."""
    options: dict[str, Any] = {"region_name": settings.aws_region}
    if settings.aws_profile:
        options["profile_name"] = settings.aws_profile
    return boto3.session.Session(**options)


def get_identity(session: Any) -> dict[str, str]:
    """Return the account and ARN of the caller.

    This is the first remote call of a run, so unusable credentials surface
    here as a preflight failure.
    """
    try:
        response = session.client("sts").get_caller_identity()
    except (BotoCoreError, ClientError) as exc:
        raise PreflightFailure(f"Failed to read AWS identity: {exc}") from exc

    return {key: str(response.get(key, "")) for key in ("Account", "Arn", "UserId")}
