"""Data models for CloudFormation-driven ECS deployment."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Any

from ecs_deployer.core.settings import ALLOWED_CAPABILITIES


class DeploymentState(StrEnum):
    """States of a deployment session."""

    IDLE = "Idle"
    NETWORK_RESOLVED = "NetworkResolved"
    CLUSTER_DEPLOYED = "ClusterDeployed"
    LOAD_BALANCER_DEPLOYED = "LoadBalancerDeployed"
    TASK_DEFINITION_REGISTERED = "TaskDefinitionRegistered"
    SERVICE_DEPLOYED = "ServiceDeployed"
    STABILIZING = "Stabilizing"
    COMPLETE = "Complete"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


TERMINAL_STATES = frozenset(
    {DeploymentState.COMPLETE, DeploymentState.FAILED, DeploymentState.CANCELLED}
)


class StageStatus(StrEnum):
    """Outcome of a single sequencer stage."""

    SUCCEEDED = "succeeded"
    DEGRADED = "degraded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class NetworkContext:
    """Network facts discovered before any stack is deployed."""

    vpc_id: str
    public_subnet_ids: tuple[str, ...]
    private_subnet_ids: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.public_subnet_ids:
            raise ValueError("A network context needs at least one public subnet.")

    @property
    def private_falls_back_to_public(self) -> bool:
        """Return true when no dedicated private subnets were found."""
        return self.private_subnet_ids == self.public_subnet_ids


@dataclass(frozen=True)
class StackSpec:
    """Everything needed to converge one CloudFormation stack."""

    name: str
    template_path: Path
    parameters: Mapping[str, str] = field(default_factory=dict)
    capabilities: frozenset[str] = field(default_factory=frozenset)
    tags: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        unknown = set(self.capabilities) - ALLOWED_CAPABILITIES
        if unknown:
            raise ValueError(f"Unsupported capabilities for {self.name}: {sorted(unknown)}")

    def cfn_parameters(self) -> list[dict[str, str]]:
        """Return parameters in the CloudFormation request shape."""
        return [
            {"ParameterKey": key, "ParameterValue": str(value)}
            for key, value in self.parameters.items()
        ]

    def cfn_tags(self) -> list[dict[str, str]]:
        """Return tags in the CloudFormation request shape."""
        return [{"Key": key, "Value": str(value)} for key, value in self.tags.items()]


@dataclass(frozen=True)
class StackOutputs:
    """Outputs exposed by a converged stack."""

    stack_name: str
    values: Mapping[str, str] = field(default_factory=dict)
    changed: bool = field(default=False, compare=False)

    def get(self, key: str, default: str | None = None) -> str | None:
        """Return an output value by key."""
        return self.values.get(key, default)


@dataclass(frozen=True)
class ResolvedTaskDefinition:
    """A substituted task definition and the revision it was registered as."""

    document: dict[str, Any]
    arn: str
    unresolved_tokens: tuple[str, ...] = ()


@dataclass(frozen=True)
class CleanupResult:
    """Result of a best-effort clean-up call."""

    target: str
    succeeded: bool
    message: str


@dataclass
class StageResult:
    """A recorded sequencer stage."""

    stage: str
    status: StageStatus
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    error: str | None = None


@dataclass
class DeploymentSession:
    """Mutable record of a single orchestration run."""

    state: DeploymentState = DeploymentState.IDLE
    stages: list[StageResult] = field(default_factory=list)
    network: NetworkContext | None = None
    outputs: dict[str, StackOutputs] = field(default_factory=dict)
    account_id: str | None = None
    task_definition_arn: str | None = None
    last_attempted_stack: str | None = None
    stabilized: bool | None = None
    rollback: CleanupResult | None = None
    error: Exception | None = None

    @property
    def is_terminal(self) -> bool:
        """Return true once the session can no longer change state."""
        return self.state in TERMINAL_STATES

    @property
    def exit_code(self) -> int:
        """Return the process exit status for this session."""
        return 1 if self.state == DeploymentState.FAILED else 0

    def enter(self, state: DeploymentState) -> None:
        """Move to a new state."""
        if self.is_terminal:
            raise RuntimeError(f"Session already finished in state {self.state}.")
        self.state = state

    def advance(self, state: DeploymentState, stage: str) -> None:
        """Move to a new state and record the stage that got us there."""
        self.enter(state)
        self.stages.append(StageResult(stage=stage, status=StageStatus.SUCCEEDED))

    def record(self, stage: str, status: StageStatus, error: str | None = None) -> None:
        """Record a stage outcome without changing state."""
        self.stages.append(StageResult(stage=stage, status=status, error=error))

    def fail(self, stage: str, error: Exception) -> None:
        """Move to the failed state."""
        self.error = error
        self.stages.append(StageResult(stage=stage, status=StageStatus.FAILED, error=str(error)))
        self.state = DeploymentState.FAILED

    def cancel(self) -> None:
        """Move to the cancelled state."""
        self.stages.append(StageResult(stage="confirmation", status=StageStatus.SKIPPED))
        self.state = DeploymentState.CANCELLED

    def output(self, stack_name: str, key: str) -> str | None:
        """Return an output value recorded for a stack."""
        outputs = self.outputs.get(stack_name)
        if outputs is None:
            return None
        return outputs.get(key)
