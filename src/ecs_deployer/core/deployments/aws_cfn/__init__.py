"""CloudFormation-driven ECS deployment helpers."""

from ecs_deployer.core.deployments.aws_cfn.cleanup import destroy_stacks, rollback_stack
from ecs_deployer.core.deployments.aws_cfn.errors import (
    DeployFailed,
    DeploymentError,
    InvalidTemplate,
    MissingCapabilities,
    NetworkDiscoveryFailure,
    NoDefaultNetwork,
    NoPublicSubnets,
    PreflightFailure,
    StabilizationTimeout,
    TaskDefinitionFailed,
)
from ecs_deployer.core.deployments.aws_cfn.models import (
    CleanupResult,
    DeploymentSession,
    DeploymentState,
    NetworkContext,
    ResolvedTaskDefinition,
    StackOutputs,
    StackSpec,
    StageResult,
    StageStatus,
)
from ecs_deployer.core.deployments.aws_cfn.network import resolve_network
from ecs_deployer.core.deployments.aws_cfn.sequencer import DeploymentSequencer
from ecs_deployer.core.deployments.aws_cfn.session import create_session, get_identity
from ecs_deployer.core.deployments.aws_cfn.stability import wait_for_service_stable
from ecs_deployer.core.deployments.aws_cfn.stacks import deploy_stack, get_stack_outputs
from ecs_deployer.core.deployments.aws_cfn.status import check_deployment, load_balancer_dns
from ecs_deployer.core.deployments.aws_cfn.task_definitions import (
    find_unresolved_tokens,
    register_task_definition,
    substitute_placeholders,
)
from ecs_deployer.core.deployments.aws_cfn.templates import validate_templates

__all__ = [
    "CleanupResult",
    "DeployFailed",
    "DeploymentError",
    "DeploymentSequencer",
    "DeploymentSession",
    "DeploymentState",
    "InvalidTemplate",
    "MissingCapabilities",
    "NetworkContext",
    "NetworkDiscoveryFailure",
    "NoDefaultNetwork",
    "NoPublicSubnets",
    "PreflightFailure",
    "ResolvedTaskDefinition",
    "StabilizationTimeout",
    "StackOutputs",
    "StackSpec",
    "StageResult",
    "StageStatus",
    "TaskDefinitionFailed",
    "check_deployment",
    "create_session",
    "deploy_stack",
    "destroy_stacks",
    "find_unresolved_tokens",
    "get_identity",
    "get_stack_outputs",
    "load_balancer_dns",
    "register_task_definition",
    "resolve_network",
    "rollback_stack",
    "substitute_placeholders",
    "validate_templates",
    "wait_for_service_stable",
]
