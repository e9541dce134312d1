"""Create-or-update of CloudFormation stacks through change sets."""

import logging
import time
from collections.abc import Callable
from typing import Any, cast

from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from ecs_deployer.core.deployments.aws_cfn.errors import DeployFailed
from ecs_deployer.core.deployments.aws_cfn.models import StackOutputs, StackSpec
from ecs_deployer.core.deployments.aws_cfn.templates import read_template

logger = logging.getLogger(__name__)

CHANGE_SET_PREFIX = "ecs-deployer"
EMPTY_CHANGE_SET_REASONS = (
    "The submitted information didn't contain changes.",
    "No updates are to be performed.",
)
# A stack that failed its first creation cannot be updated, only deleted.
UNRECOVERABLE_STATUSES = frozenset({"ROLLBACK_COMPLETE", "ROLLBACK_FAILED", "DELETE_FAILED"})


def deploy_stack(
    session: Any,
    spec: StackSpec,
    reporter: Callable[[str], None],
    poll_seconds: int = 5,
) -> StackOutputs:
    """Converge a stack to its StackSpec and return its outputs.

    An empty change set means the stack already matches and is treated as
    success without executing anything.
    """
    cfn = session.client("cloudformation")
    template_body = read_template(spec.name, spec.template_path)
    status = stack_status(cfn, spec.name)
    if status in UNRECOVERABLE_STATUSES:
        raise DeployFailed(
            spec.name,
            f"stack is in {status} and must be deleted before it can be deployed again",
        )

    change_set_type = "CREATE" if status in (None, "REVIEW_IN_PROGRESS") else "UPDATE"
    change_set_name = f"{CHANGE_SET_PREFIX}-{int(time.time())}"
    waiter_config = {"Delay": poll_seconds}

    reporter(f"Creating {change_set_type.lower()} change set for stack {spec.name}")
    try:
        cfn.create_change_set(
            StackName=spec.name,
            ChangeSetName=change_set_name,
            ChangeSetType=change_set_type,
            TemplateBody=template_body,
            Parameters=spec.cfn_parameters(),
            Capabilities=sorted(spec.capabilities),
            Tags=spec.cfn_tags(),
        )
    except (BotoCoreError, ClientError) as exc:
        raise DeployFailed(spec.name, _error_message(exc)) from exc

    try:
        cfn.get_waiter("change_set_create_complete").wait(
            StackName=spec.name,
            ChangeSetName=change_set_name,
            WaiterConfig=waiter_config,
        )
    except WaiterError as exc:
        reason = _change_set_failure_reason(cfn, spec.name, change_set_name)
        if any(marker in reason for marker in EMPTY_CHANGE_SET_REASONS):
            reporter(f"No changes to deploy for stack {spec.name}")
            _delete_change_set(cfn, spec.name, change_set_name)
            return get_stack_outputs(cfn, spec.name)
        raise DeployFailed(spec.name, reason or str(exc)) from exc

    reporter(f"Executing change set for stack {spec.name}")
    try:
        cfn.execute_change_set(StackName=spec.name, ChangeSetName=change_set_name)
    except (BotoCoreError, ClientError) as exc:
        raise DeployFailed(spec.name, _error_message(exc)) from exc

    waiter_name = (
        "stack_create_complete" if change_set_type == "CREATE" else "stack_update_complete"
    )
    try:
        cfn.get_waiter(waiter_name).wait(StackName=spec.name, WaiterConfig=waiter_config)
    except WaiterError as exc:
        raise DeployFailed(spec.name, _stack_failure_reason(cfn, spec.name) or str(exc)) from exc

    outputs = get_stack_outputs(cfn, spec.name)
    return StackOutputs(stack_name=outputs.stack_name, values=outputs.values, changed=True)


def stack_status(cfn: Any, stack_name: str) -> str | None:
    """Return the status of a stack, or None when it does not exist."""
    try:
        response = cfn.describe_stacks(StackName=stack_name)
    except ClientError as exc:
        if _is_missing_stack(exc):
            return None
        raise DeployFailed(stack_name, _error_message(exc)) from exc
    except BotoCoreError as exc:
        raise DeployFailed(stack_name, str(exc)) from exc

    stacks = response.get("Stacks", [])
    if not stacks:
        return None
    return cast(str, stacks[0].get("StackStatus"))


def get_stack_outputs(cfn: Any, stack_name: str) -> StackOutputs:
    """Read the outputs of a deployed stack."""
    try:
        response = cfn.describe_stacks(StackName=stack_name)
    except (BotoCoreError, ClientError) as exc:
        raise DeployFailed(stack_name, _error_message(exc)) from exc

    stacks = response.get("Stacks", [])
    if not stacks:
        raise DeployFailed(stack_name, "stack not found after deployment")
    values = {
        str(output["OutputKey"]): str(output.get("OutputValue", ""))
        for output in stacks[0].get("Outputs", [])
    }
    return StackOutputs(stack_name=stack_name, values=values)


def _change_set_failure_reason(cfn: Any, stack_name: str, change_set_name: str) -> str:
    """Return why a change set could not be created."""
    try:
        response = cfn.describe_change_set(StackName=stack_name, ChangeSetName=change_set_name)
    except (BotoCoreError, ClientError) as exc:
        logger.debug(f"Could not describe change set {change_set_name}: {exc}")
        return ""
    return str(response.get("StatusReason", ""))


def _delete_change_set(cfn: Any, stack_name: str, change_set_name: str) -> None:
    """Remove an empty change set."""
    try:
        cfn.delete_change_set(StackName=stack_name, ChangeSetName=change_set_name)
    except (BotoCoreError, ClientError) as exc:
        logger.debug(f"Could not delete empty change set {change_set_name}: {exc}")


def _stack_failure_reason(cfn: Any, stack_name: str) -> str:
    """Return the first failed resource event for a stack."""
    try:
        response = cfn.describe_stack_events(StackName=stack_name)
    except (BotoCoreError, ClientError) as exc:
        logger.debug(f"Could not read events for stack {stack_name}: {exc}")
        return ""

    for event in response.get("StackEvents", []):
        status = str(event.get("ResourceStatus", ""))
        if status.endswith("_FAILED"):
            resource = event.get("LogicalResourceId", "?")
            return f"{resource} {status}: {event.get('ResourceStatusReason', '')}".strip()
    return ""


def _is_missing_stack(exc: ClientError) -> bool:
    error = exc.response.get("Error", {})
    return error.get("Code") == "ValidationError" and "does not exist" in str(
        error.get("Message", "")
    )


def _error_message(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        return str(exc.response.get("Error", {}).get("Message") or exc)
    return str(exc)
