"""Shared fixtures for deployment tests. AWS clients are replaced with mocks."""

import json
from pathlib import Path

import pytest
from fakes import (
    ACCOUNT_ID,
    ALB_DNS,
    CALLER_ARN,
    TASK_DEFINITION_ARN,
    TASK_DEFINITION_TEMPLATE,
    FakeAwsSession,
    FakeCloudFormation,
    configure_network,
    stable_service,
)

from ecs_deployer.core.settings import DeploymentSettings


@pytest.fixture
def templates_dir(tmp_path: Path) -> Path:
    """Write minimal stack templates and a task definition template."""
    for relative in (
        "clusters/ecs-cluster.json",
        "loadbalancers/nginx-alb.json",
        "services/nginx-service.json",
    ):
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({"Resources": {}}), encoding="utf-8")

    task_path = tmp_path / "task-definitions/nginx-task.json"
    task_path.parent.mkdir(parents=True, exist_ok=True)
    task_path.write_text(json.dumps(TASK_DEFINITION_TEMPLATE, indent=2), encoding="utf-8")
    return tmp_path


@pytest.fixture
def settings(templates_dir: Path) -> DeploymentSettings:
    """Settings pointing at the temporary templates, with no waiting."""
    return DeploymentSettings(
        _env_file=None,
        aws_region="us-east-1",
        aws_profile=None,
        cluster_stack="ecs-cluster-stack",
        alb_stack="alb-stack",
        service_stack="nginx-service-stack",
        templates_dir=templates_dir,
        change_set_poll_seconds=1,
        stabilization_timeout_seconds=0,
        stabilization_poll_seconds=1,
    )


@pytest.fixture
def aws() -> FakeAwsSession:
    """A fake AWS session where every call succeeds."""
    cloudformation = FakeCloudFormation(outputs={"alb-stack": {"LoadBalancerDNS": ALB_DNS}})
    session = FakeAwsSession(cloudformation)
    session.client("sts").get_caller_identity.return_value = {
        "Account": ACCOUNT_ID,
        "Arn": CALLER_ARN,
        "UserId": "AIDEXAMPLE",
    }
    configure_network(session)
    ecs = session.client("ecs")
    ecs.register_task_definition.return_value = {
        "taskDefinition": {"taskDefinitionArn": TASK_DEFINITION_ARN}
    }
    ecs.describe_services.return_value = stable_service()
    return session
