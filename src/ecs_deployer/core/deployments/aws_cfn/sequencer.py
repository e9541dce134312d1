"""Ordered deployment of the cluster, load balancer, task definition and service."""

import logging
from collections.abc import Callable
from typing import Any

from ecs_deployer.core.deployments.aws_cfn.cleanup import destroy_stacks, rollback_stack
from ecs_deployer.core.deployments.aws_cfn.errors import (
    DeployFailed,
    DeploymentError,
    InvalidTemplate,
    StabilizationTimeout,
)
from ecs_deployer.core.deployments.aws_cfn.models import (
    CleanupResult,
    DeploymentSession,
    DeploymentState,
    NetworkContext,
    StackSpec,
    StageStatus,
)
from ecs_deployer.core.deployments.aws_cfn.network import resolve_network
from ecs_deployer.core.deployments.aws_cfn.session import get_identity
from ecs_deployer.core.deployments.aws_cfn.stability import wait_for_service_stable
from ecs_deployer.core.deployments.aws_cfn.stacks import deploy_stack
from ecs_deployer.core.deployments.aws_cfn.task_definitions import register_task_definition
from ecs_deployer.core.deployments.aws_cfn.templates import (
    check_capabilities,
    validate_templates,
)
from ecs_deployer.core.settings import DeploymentSettings

logger = logging.getLogger(__name__)

Confirm = Callable[[DeploymentSession], bool]

CLUSTER_TEMPLATE = "cluster"
LOAD_BALANCER_TEMPLATE = "load-balancer"
SERVICE_TEMPLATE = "service"
TASK_DEFINITION_TEMPLATE = "task-definition"


class DeploymentSequencer:
    """Deploy the three stacks and the task definition in dependency order.

    The run goes through preflight, network discovery, an operator
    confirmation, the cluster stack, the load balancer stack, task definition
    registration, the service stack and finally a stability wait. A failed
    stack deploy cancels the in-flight update of that stack only. A
    stabilisation timeout is reported but does not fail the run.
    """

    def __init__(
        self,
        settings: DeploymentSettings,
        session: Any,
        reporter: Callable[[str], None],
    ) -> None:
        self._settings = settings
        self._aws = session
        self._reporter = reporter
        self._capabilities = frozenset(settings.capabilities)
        self._deployed_by: str | None = None

    def validate(self) -> DeploymentSession:
        """Run the read-only stages: preflight, template validation and network discovery."""
        session = DeploymentSession()
        self._run_preflight(session)
        return session

    def run(self, confirm: Confirm) -> DeploymentSession:
        """Run the full deployment.

        Args:
            confirm: Called once before the first mutating stage. Returning
                False ends the session as cancelled.

        Returns:
            The finished deployment session.
        """
        session = DeploymentSession()
        if not self._run_preflight(session):
            return session

        if not confirm(session):
            self._reporter("Deployment cancelled by the operator")
            session.cancel()
            return session

        stages: list[tuple[str, Callable[[DeploymentSession], None]]] = [
            ("cluster", self._deploy_cluster),
            ("load_balancer", self._deploy_load_balancer),
            ("task_definition", self._register_task_definition),
            ("service", self._deploy_service),
        ]
        for stage, step in stages:
            try:
                step(session)
            except DeployFailed as exc:
                session.fail(stage, exc)
                session.rollback = self._rollback(session)
                return session
            except DeploymentError as exc:
                session.fail(stage, exc)
                return session

        self._stabilize(session)
        self._report_endpoint(session)
        session.advance(DeploymentState.COMPLETE, "complete")
        return session

    def destroy(self) -> list[CleanupResult]:
        """Request deletion of the service, load balancer and cluster stacks, in that order."""
        settings = self._settings
        return destroy_stacks(
            self._aws,
            [settings.service_stack, settings.alb_stack, settings.cluster_stack],
            self._reporter,
        )

    def _run_preflight(self, session: DeploymentSession) -> bool:
        """Check credentials and templates, then resolve the network."""
        try:
            self._check_identity(session)
            self._validate_templates()
        except DeploymentError as exc:
            session.fail("preflight", exc)
            return False

        try:
            self._resolve_network(session)
        except DeploymentError as exc:
            session.fail("network", exc)
            return False
        return True

    def _check_identity(self, session: DeploymentSession) -> None:
        self._reporter("Checking AWS credentials")
        identity = get_identity(self._aws)
        session.account_id = identity["Account"]
        self._deployed_by = identity["Arn"] or None
        self._reporter(f"Using AWS account {identity['Account']} in {self._settings.aws_region}")

    def _validate_templates(self) -> None:
        settings = self._settings
        self._reporter("Validating CloudFormation templates")
        templates = {
            CLUSTER_TEMPLATE: settings.template_path(settings.cluster_template),
            LOAD_BALANCER_TEMPLATE: settings.template_path(settings.alb_template),
            SERVICE_TEMPLATE: settings.template_path(settings.service_template),
        }
        required = validate_templates(self._aws, templates, self._reporter)
        for name, capabilities in required.items():
            check_capabilities(name, capabilities, self._capabilities)

        task_template = settings.template_path(settings.task_definition_template)
        if not task_template.is_file():
            raise InvalidTemplate(TASK_DEFINITION_TEMPLATE, f"{task_template} not found")

    def _resolve_network(self, session: DeploymentSession) -> None:
        self._reporter("Discovering network configuration")
        network = resolve_network(
            self._aws,
            vpc_id=self._settings.vpc_id,
            max_subnets=self._settings.max_subnets,
        )
        session.network = network
        self._reporter(f"VPC: {network.vpc_id}")
        self._reporter(f"Public subnets: {', '.join(network.public_subnet_ids)}")
        self._reporter(f"Private subnets: {', '.join(network.private_subnet_ids)}")
        session.advance(DeploymentState.NETWORK_RESOLVED, "network")

    def _deploy_cluster(self, session: DeploymentSession) -> None:
        _expect(session, DeploymentState.NETWORK_RESOLVED)
        settings = self._settings
        spec = self._stack_spec(
            settings.cluster_stack,
            settings.cluster_template,
            {
                "ClusterName": settings.cluster_name,
                "EnableContainerInsights": settings.container_insights,
            },
        )
        self._deploy(session, spec, "ECS cluster")
        session.advance(DeploymentState.CLUSTER_DEPLOYED, "cluster")

    def _deploy_load_balancer(self, session: DeploymentSession) -> None:
        _expect(session, DeploymentState.CLUSTER_DEPLOYED)
        settings = self._settings
        network = _network(session)
        spec = self._stack_spec(
            settings.alb_stack,
            settings.alb_template,
            {
                "VpcId": network.vpc_id,
                "PublicSubnets": ",".join(network.public_subnet_ids),
                "CertificateArn": settings.certificate_arn,
            },
        )
        self._deploy(session, spec, "Application Load Balancer")
        session.advance(DeploymentState.LOAD_BALANCER_DEPLOYED, "load_balancer")

    def _register_task_definition(self, session: DeploymentSession) -> None:
        _expect(session, DeploymentState.LOAD_BALANCER_DEPLOYED)
        settings = self._settings
        self._reporter("Registering task definition")
        resolved = register_task_definition(
            self._aws,
            settings.template_path(settings.task_definition_template),
            settings.substitutions(session.account_id or ""),
            self._reporter,
            strict=settings.strict_placeholders,
        )
        session.task_definition_arn = resolved.arn
        self._reporter(f"Task definition registered: {resolved.arn}")
        session.advance(DeploymentState.TASK_DEFINITION_REGISTERED, "task_definition")

    def _deploy_service(self, session: DeploymentSession) -> None:
        _expect(session, DeploymentState.TASK_DEFINITION_REGISTERED)
        settings = self._settings
        network = _network(session)
        spec = self._stack_spec(
            settings.service_stack,
            settings.service_template,
            {
                "ClusterStackName": settings.cluster_stack,
                "ALBStackName": settings.alb_stack,
                "VpcId": network.vpc_id,
                "PrivateSubnets": ",".join(network.private_subnet_ids),
                "TaskDefinitionArn": session.task_definition_arn or "",
                "DesiredCount": str(settings.desired_count),
                "MinCapacity": str(settings.min_capacity),
                "MaxCapacity": str(settings.max_capacity),
            },
        )
        self._deploy(session, spec, "ECS service")
        session.advance(DeploymentState.SERVICE_DEPLOYED, "service")

    def _deploy(self, session: DeploymentSession, spec: StackSpec, label: str) -> None:
        self._reporter(f"Deploying {label} (stack {spec.name})")
        session.last_attempted_stack = spec.name
        session.outputs[spec.name] = deploy_stack(
            self._aws,
            spec,
            self._reporter,
            poll_seconds=self._settings.change_set_poll_seconds,
        )
        self._reporter(f"{label} deployed")

    def _stack_spec(self, name: str, template: str, parameters: dict[str, str]) -> StackSpec:
        tags = self._settings.tags()
        if self._deployed_by:
            tags["DeployedBy"] = self._deployed_by
        return StackSpec(
            name=name,
            template_path=self._settings.template_path(template),
            parameters=parameters,
            capabilities=self._capabilities,
            tags=tags,
        )

    def _rollback(self, session: DeploymentSession) -> CleanupResult | None:
        if session.last_attempted_stack is None:
            return None
        self._reporter(f"Error detected, rolling back stack {session.last_attempted_stack}")
        result = rollback_stack(self._aws, session.last_attempted_stack)
        self._reporter(f"Rollback of {result.target}: {result.message}")
        return result

    def _stabilize(self, session: DeploymentSession) -> None:
        _expect(session, DeploymentState.SERVICE_DEPLOYED)
        settings = self._settings
        session.enter(DeploymentState.STABILIZING)
        self._reporter("Waiting for the service to stabilise")
        try:
            wait_for_service_stable(
                self._aws,
                settings.cluster_name,
                settings.service_name,
                self._reporter,
                timeout_seconds=settings.stabilization_timeout_seconds,
                poll_interval_seconds=settings.stabilization_poll_seconds,
            )
        except StabilizationTimeout as exc:
            logger.warning(f"Service took longer than expected to stabilise: {exc}")
            session.stabilized = False
            session.record("stabilization", StageStatus.DEGRADED, str(exc))
            return
        session.stabilized = True
        session.record("stabilization", StageStatus.SUCCEEDED)

    def _report_endpoint(self, session: DeploymentSession) -> None:
        settings = self._settings
        dns_name = session.output(settings.alb_stack, settings.load_balancer_dns_output)
        if not dns_name:
            logger.warning(
                f"Stack {settings.alb_stack} exposes no {settings.load_balancer_dns_output} output"
            )


def _expect(session: DeploymentSession, state: DeploymentState) -> None:
    """Refuse to run a stage before the stages it depends on have completed."""
    if session.state != state:
        raise RuntimeError(f"Stage requires state {state}, session is in {session.state}.")


def _network(session: DeploymentSession) -> NetworkContext:
    if session.network is None:
        raise RuntimeError("Network context has not been resolved.")
    return session.network
