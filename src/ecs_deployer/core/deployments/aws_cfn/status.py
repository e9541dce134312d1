"""Deployment status checks for the cluster, load balancer and service stacks."""

from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from ecs_deployer.core.deployments.aws_cfn.errors import DeployFailed, StabilizationTimeout
from ecs_deployer.core.deployments.aws_cfn.stability import service_condition
from ecs_deployer.core.deployments.aws_cfn.stacks import get_stack_outputs, stack_status
from ecs_deployer.core.settings import DeploymentSettings


def check_deployment(session: Any, settings: DeploymentSettings) -> dict[str, str]:
    """Check the state of each deployment stack and the ECS service."""
    cfn = session.client("cloudformation")
    results: dict[str, str] = {}
    for stack_name in (settings.cluster_stack, settings.alb_stack, settings.service_stack):
        results[stack_name] = _check_stack(cfn, stack_name)

    results["ECS service"] = _check_service(session, settings)
    return results


def load_balancer_dns(session: Any, settings: DeploymentSettings) -> str | None:
    """Return the DNS name exported by the load balancer stack, if any."""
    cfn = session.client("cloudformation")
    try:
        outputs = get_stack_outputs(cfn, settings.alb_stack)
    except DeployFailed:
        return None
    return outputs.get(settings.load_balancer_dns_output)


def _check_stack(cfn: Any, stack_name: str) -> str:
    try:
        status = stack_status(cfn, stack_name)
    except DeployFailed as exc:
        return f"error: {exc.cause}"
    if status is None:
        return "missing"
    if status.endswith("_COMPLETE") and "ROLLBACK" not in status and "DELETE" not in status:
        return f"present {status}"
    return f"status {status}"


def _check_service(session: Any, settings: DeploymentSettings) -> str:
    ecs = session.client("ecs")
    try:
        stable, detail = service_condition(ecs, settings.cluster_name, settings.service_name)
    except StabilizationTimeout as exc:
        cause = exc.__cause__
        if isinstance(cause, ClientError):
            return f"error: {cause.response.get('Error', {}).get('Code')}"
        if isinstance(cause, BotoCoreError):
            return f"error: {cause}"
        return f"error: {exc}"
    if stable:
        return f"present stable ({detail})"
    return detail
