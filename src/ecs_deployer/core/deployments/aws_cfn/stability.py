"""Post-deployment stability polling for ECS services."""

import time
from collections.abc import Callable
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from ecs_deployer.core.deployments.aws_cfn.errors import StabilizationTimeout


def wait_for_service_stable(
    session: Any,
    cluster_name: str,
    service_name: str,
    reporter: Callable[[str], None],
    timeout_seconds: int = 600,
    poll_interval_seconds: int = 15,
) -> None:
    """Poll a service until it has a single deployment at its desired count."""
    ecs = session.client("ecs")
    deadline = time.monotonic() + timeout_seconds

    while True:
        stable, detail = service_condition(ecs, cluster_name, service_name)
        if stable:
            reporter(f"Service {service_name} is stable ({detail})")
            return
        if time.monotonic() >= deadline:
            raise StabilizationTimeout(
                f"Service {service_name} did not stabilise within {timeout_seconds} seconds "
                f"({detail})."
            )
        reporter(f"Waiting for service {service_name} to stabilise ({detail})")
        time.sleep(poll_interval_seconds)


def service_condition(ecs: Any, cluster_name: str, service_name: str) -> tuple[bool, str]:
    """Return whether a service is stable and a short description of its state."""
    try:
        response = ecs.describe_services(cluster=cluster_name, services=[service_name])
    except (BotoCoreError, ClientError) as exc:
        raise StabilizationTimeout(f"Failed to read service {service_name}: {exc}") from exc

    services = response.get("services", [])
    if not services:
        failures = response.get("failures", [])
        reason = failures[0].get("reason", "missing") if failures else "missing"
        return False, f"service {reason.lower()}"

    service = services[0]
    status = str(service.get("status", ""))
    running = int(service.get("runningCount", 0))
    desired = int(service.get("desiredCount", 0))
    deployments = len(service.get("deployments", []))
    detail = f"{running}/{desired} running, {deployments} deployment(s)"
    if status != "ACTIVE":
        return False, f"status {status}"
    return deployments == 1 and running == desired, detail
