"""Fake AWS clients and canned responses for deployment tests."""

from typing import Any
from unittest.mock import MagicMock

from botocore.exceptions import ClientError, WaiterError

ACCOUNT_ID = "123456789012"
CALLER_ARN = f"arn:aws:iam::{ACCOUNT_ID}:user/deployer"
TASK_DEFINITION_ARN = f"arn:aws:ecs:us-east-1:{ACCOUNT_ID}:task-definition/nginx-task:1"
ALB_DNS = "nginx-alb-123.us-east-1.elb.amazonaws.com"

TASK_DEFINITION_TEMPLATE = {
    "family": "nginx-task",
    "networkMode": "awsvpc",
    "requiresCompatibilities": ["FARGATE"],
    "cpu": "256",
    "memory": "512",
    "executionRoleArn": "arn:aws:iam::${AWS_ACCOUNT_ID}:role/ecsTaskExecutionRole",
    "containerDefinitions": [
        {
            "name": "nginx",
            "image": "nginx:latest",
            "logConfiguration": {
                "logDriver": "awslogs",
                "options": {"awslogs-region": "${AWS_REGION}"},
            },
        }
    ],
    "volumes": [
        {
            "name": "config",
            "efsVolumeConfiguration": {
                "fileSystemId": "${EFS_ID}",
                "authorizationConfig": {"accessPointId": "${EFS_ACCESS_POINT_CONFIG}"},
            },
        },
        {
            "name": "html",
            "efsVolumeConfiguration": {
                "fileSystemId": "${EFS_ID}",
                "authorizationConfig": {"accessPointId": "${EFS_ACCESS_POINT_HTML}"},
            },
        },
    ],
}


def client_error(code: str, message: str, operation: str = "Operation") -> ClientError:
    """Build a botocore ClientError."""
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def missing_stack_error(stack_name: str) -> ClientError:
    """Build the error CloudFormation returns for an unknown stack."""
    return client_error(
        "ValidationError", f"Stack with id {stack_name} does not exist", "DescribeStacks"
    )


def waiter_error(name: str, reason: str = "Waiter encountered a terminal failure") -> WaiterError:
    """Build a botocore WaiterError."""
    return WaiterError(name=name, reason=reason, last_response={})


class FakeCloudFormation:
    """CloudFormation client stand-in that tracks stack existence."""

    def __init__(self, outputs: dict[str, dict[str, str]] | None = None) -> None:
        self.stacks: dict[str, str] = {}
        self.outputs = outputs or {}
        self.waiters: dict[str, MagicMock] = {}
        self.client = MagicMock(name="cloudformation")
        self.client.describe_stacks.side_effect = self._describe_stacks
        self.client.execute_change_set.side_effect = self._execute_change_set
        self.client.get_waiter.side_effect = self._get_waiter
        self.client.validate_template.return_value = {
            "Parameters": [],
            "Capabilities": ["CAPABILITY_NAMED_IAM"],
        }
        self.client.describe_change_set.return_value = {
            "Status": "FAILED",
            "StatusReason": (
                "The submitted information didn't contain changes. "
                "Submit different information to create a change set."
            ),
        }
        self.client.describe_stack_events.return_value = {"StackEvents": []}

    def waiter(self, name: str) -> MagicMock:
        """Return the mock waiter for a waiter name."""
        return self.waiters.setdefault(name, MagicMock(name=name))

    def converge(self, stack_name: str) -> None:
        """Mark a stack as already deployed."""
        self.stacks[stack_name] = "CREATE_COMPLETE"

    def deployed(self) -> list[str]:
        """Return stack names in the order change sets were executed."""
        return [call.kwargs["StackName"] for call in self.client.execute_change_set.call_args_list]

    def _get_waiter(self, name: str) -> MagicMock:
        return self.waiter(name)

    def _describe_stacks(self, StackName: str) -> dict[str, Any]:  # noqa: N803
        if StackName not in self.stacks:
            raise missing_stack_error(StackName)
        outputs = [
            {"OutputKey": key, "OutputValue": value}
            for key, value in self.outputs.get(StackName, {}).items()
        ]
        return {
            "Stacks": [
                {"StackName": StackName, "StackStatus": self.stacks[StackName], "Outputs": outputs}
            ]
        }

    def _execute_change_set(
        self, StackName: str, ChangeSetName: str  # noqa: N803
    ) -> dict[str, Any]:
        previous = self.stacks.get(StackName)
        self.stacks[StackName] = "UPDATE_COMPLETE" if previous else "CREATE_COMPLETE"
        return {}


class FakeAwsSession:
    """boto3 session stand-in handing out one client per service."""

    def __init__(self, cloudformation: FakeCloudFormation | None = None) -> None:
        self.cloudformation = cloudformation or FakeCloudFormation()
        self.clients: dict[str, Any] = {"cloudformation": self.cloudformation.client}

    def client(self, service_name: str, **kwargs: Any) -> Any:
        if service_name not in self.clients:
            self.clients[service_name] = MagicMock(name=service_name)
        return self.clients[service_name]


def subnet_response(*subnet_ids: str) -> dict[str, Any]:
    """Build a describe_subnets response."""
    return {"Subnets": [{"SubnetId": subnet_id} for subnet_id in subnet_ids]}


def configure_network(
    session: FakeAwsSession,
    public: tuple[str, ...] = ("subnet-pub-a", "subnet-pub-b"),
    private: tuple[str, ...] = ("subnet-priv-a", "subnet-priv-b"),
    vpc_id: str | None = "vpc-0abc",
) -> MagicMock:
    """Point the EC2 mock at a VPC with the given subnets."""
    ec2 = session.client("ec2")
    ec2.describe_vpcs.return_value = {"Vpcs": [{"VpcId": vpc_id}] if vpc_id else []}

    def _describe_subnets(Filters: list[dict[str, Any]]) -> dict[str, Any]:  # noqa: N803
        public_flag = next(f for f in Filters if f["Name"] == "map-public-ip-on-launch")
        if public_flag["Values"] == ["true"]:
            return subnet_response(*public)
        return subnet_response(*private)

    ec2.describe_subnets.side_effect = _describe_subnets
    return ec2


def stable_service(desired: int = 2) -> dict[str, Any]:
    """Build a describe_services response for a converged service."""
    return {
        "services": [
            {
                "serviceName": "nginx-service",
                "status": "ACTIVE",
                "desiredCount": desired,
                "runningCount": desired,
                "deployments": [{"status": "PRIMARY"}],
            }
        ],
        "failures": [],
    }
