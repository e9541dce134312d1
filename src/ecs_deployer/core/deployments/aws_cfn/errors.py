"""Deployment error taxonomy."""

from collections.abc import Iterable


class DeploymentError(RuntimeError):
    """Base class for orchestration failures."""

    category = "deployment"


class PreflightFailure(DeploymentError):
    """Raised before any mutation when credentials or inputs are unusable."""

    category = "preflight"


class InvalidTemplate(PreflightFailure):
    """Raised when a stack template fails validation."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Template {name} is invalid: {reason}")
        self.name = name
        self.reason = reason


class MissingCapabilities(PreflightFailure):
    """Raised when a template needs capabilities the stack does not declare."""

    def __init__(self, name: str, missing: Iterable[str]) -> None:
        self.name = name
        self.missing = sorted(missing)
        super().__init__(
            f"Template {name} requires undeclared capabilities: {', '.join(self.missing)}"
        )


class NetworkDiscoveryFailure(DeploymentError):
    """Raised when the network context cannot be discovered."""

    category = "network"


class NoDefaultNetwork(NetworkDiscoveryFailure):
    """Raised when no VPC can be identified."""


class NoPublicSubnets(NetworkDiscoveryFailure):
    """Raised when the VPC has no public subnets."""


class DeployFailed(DeploymentError):
    """Raised when CloudFormation rejects a stack operation."""

    category = "deploy"

    def __init__(self, stack_name: str, cause: str) -> None:
        super().__init__(f"Deployment of stack {stack_name} failed: {cause}")
        self.stack_name = stack_name
        self.cause = cause


class TaskDefinitionFailed(DeploymentError):
    """Raised when a task definition cannot be resolved or registered."""

    category = "deploy"


class StabilizationTimeout(DeploymentError):
    """Raised when a service does not stabilise in time."""

    category = "stabilization"
