"""Tests for service stability polling."""

from unittest.mock import MagicMock

import pytest

from ecs_deployer.core.deployments.aws_cfn import StabilizationTimeout, wait_for_service_stable
from ecs_deployer.core.deployments.aws_cfn.stability import service_condition

from fakes import FakeAwsSession, client_error, stable_service


def _service(running: int, desired: int, deployments: int, status: str = "ACTIVE") -> dict:
    return {
        "services": [
            {
                "status": status,
                "runningCount": running,
                "desiredCount": desired,
                "deployments": [{"status": "ACTIVE"}] * deployments,
            }
        ]
    }


def test_stable_service_returns_immediately(monkeypatch: pytest.MonkeyPatch) -> None:
    """A converged service needs a single poll."""
    sleep = MagicMock()
    monkeypatch.setattr("ecs_deployer.core.deployments.aws_cfn.stability.time.sleep", sleep)
    session = FakeAwsSession()
    session.client("ecs").describe_services.return_value = stable_service()
    reporter = MagicMock()

    wait_for_service_stable(session, "cluster", "nginx-service", reporter)

    sleep.assert_not_called()
    session.client("ecs").describe_services.assert_called_once_with(
        cluster="cluster", services=["nginx-service"]
    )
    assert "is stable" in reporter.call_args.args[0]


def test_service_stabilises_after_polling(monkeypatch: pytest.MonkeyPatch) -> None:
    """Polling continues until the rollout settles."""
    sleep = MagicMock()
    monkeypatch.setattr("ecs_deployer.core.deployments.aws_cfn.stability.time.sleep", sleep)
    session = FakeAwsSession()
    session.client("ecs").describe_services.side_effect = [
        _service(running=1, desired=2, deployments=2),
        _service(running=2, desired=2, deployments=2),
        _service(running=2, desired=2, deployments=1),
    ]

    wait_for_service_stable(
        session, "cluster", "nginx-service", MagicMock(), poll_interval_seconds=3
    )

    assert sleep.call_count == 2
    sleep.assert_called_with(3)


def test_timeout_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    """A service that never settles times out."""
    monkeypatch.setattr(
        "ecs_deployer.core.deployments.aws_cfn.stability.time.sleep", MagicMock()
    )
    session = FakeAwsSession()
    session.client("ecs").describe_services.return_value = _service(1, 2, 1)

    with pytest.raises(StabilizationTimeout) as excinfo:
        wait_for_service_stable(
            session, "cluster", "nginx-service", MagicMock(), timeout_seconds=0
        )

    assert excinfo.value.category == "stabilization"
    assert "1/2 running" in str(excinfo.value)


@pytest.mark.parametrize(
    "response",
    [
        _service(running=2, desired=2, deployments=2),
        _service(running=1, desired=2, deployments=1),
        _service(running=2, desired=2, deployments=1, status="DRAINING"),
        {"services": [], "failures": [{"reason": "MISSING"}]},
    ],
)
def test_unstable_conditions(response: dict) -> None:
    """Each unsettled shape is reported as not stable."""
    ecs = MagicMock()
    ecs.describe_services.return_value = response

    stable, _ = service_condition(ecs, "cluster", "nginx-service")

    assert not stable


def test_describe_error_is_wrapped() -> None:
    """Errors reading the service surface as a stabilisation problem."""
    ecs = MagicMock()
    ecs.describe_services.side_effect = client_error(
        "ClusterNotFoundException", "Cluster not found.", "DescribeServices"
    )

    with pytest.raises(StabilizationTimeout, match="Cluster not found"):
        service_condition(ecs, "cluster", "nginx-service")
