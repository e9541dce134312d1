"""Best-effort rollback and teardown of deployment stacks."""

import logging
from collections.abc import Callable, Iterable
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from ecs_deployer.core.deployments.aws_cfn.models import CleanupResult

logger = logging.getLogger(__name__)


def rollback_stack(session: Any, stack_name: str) -> CleanupResult:
    """Cancel an in-flight update of a stack.

    Earlier stacks are never touched. Failures, including the common case of
    there being no update to cancel, are logged and returned, never raised.
    """
    cfn = session.client("cloudformation")
    logger.info(f"Rolling back: cancelling in-flight update of stack {stack_name}")
    try:
        cfn.cancel_update_stack(StackName=stack_name)
    except (BotoCoreError, ClientError) as exc:
        message = _error_message(exc)
        logger.warning(f"Could not cancel update of stack {stack_name}: {message}")
        return CleanupResult(target=stack_name, succeeded=False, message=message)

    logger.info(f"Cancellation requested for stack {stack_name}")
    return CleanupResult(
        target=stack_name, succeeded=True, message="Update cancellation requested"
    )


def destroy_stacks(
    session: Any,
    stack_names: Iterable[str],
    reporter: Callable[[str], None],
) -> list[CleanupResult]:
    """Request deletion of stacks in the given order."""
    cfn = session.client("cloudformation")
    results = []
    for stack_name in stack_names:
        reporter(f"Requesting deletion of stack {stack_name}")
        try:
            cfn.delete_stack(StackName=stack_name)
        except (BotoCoreError, ClientError) as exc:
            message = _error_message(exc)
            logger.warning(f"Failed to delete stack {stack_name}: {message}")
            results.append(CleanupResult(target=stack_name, succeeded=False, message=message))
            continue
        results.append(
            CleanupResult(target=stack_name, succeeded=True, message="Marked for deletion")
        )
    return results


def _error_message(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        return str(exc.response.get("Error", {}).get("Message") or exc)
    return str(exc)
