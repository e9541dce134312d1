"""VPC and subnet discovery for the load balancer and service stacks."""

import logging
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from ecs_deployer.core.deployments.aws_cfn.errors import (
    NetworkDiscoveryFailure,
    NoDefaultNetwork,
    NoPublicSubnets,
)
from ecs_deployer.core.deployments.aws_cfn.models import NetworkContext

logger = logging.getLogger(__name__)


def resolve_network(
    session: Any,
    vpc_id: str | None = None,
    max_subnets: int = 2,
) -> NetworkContext:
    """Discover the VPC and subnets to deploy into.

    The default VPC is used unless ``vpc_id`` is given. Subnets are split on
    ``map-public-ip-on-launch`` and the first ``max_subnets`` of each kind are
    kept in the order EC2 returns them. When no private subnets exist the
    public ones are reused.
    """
    ec2 = session.client("ec2")
    resolved_vpc_id = vpc_id or _default_vpc_id(ec2)

    public_subnet_ids = _subnet_ids(ec2, resolved_vpc_id, public=True, limit=max_subnets)
    if not public_subnet_ids:
        raise NoPublicSubnets(f"No public subnets found in VPC {resolved_vpc_id}.")

    private_subnet_ids = _subnet_ids(ec2, resolved_vpc_id, public=False, limit=max_subnets)
    if not private_subnet_ids:
        logger.warning(
            f"No private subnets found in VPC {resolved_vpc_id}, using the public subnets"
        )
        private_subnet_ids = public_subnet_ids

    return NetworkContext(
        vpc_id=resolved_vpc_id,
        public_subnet_ids=public_subnet_ids,
        private_subnet_ids=private_subnet_ids,
    )


def _default_vpc_id(ec2: Any) -> str:
    """Return the default VPC of the region."""
    try:
        response = ec2.describe_vpcs(Filters=[{"Name": "is-default", "Values": ["true"]}])
    except (BotoCoreError, ClientError) as exc:
        raise NetworkDiscoveryFailure(f"Failed to describe VPCs: {exc}") from exc

    vpcs = response.get("Vpcs", [])
    if not vpcs or not vpcs[0].get("VpcId"):
        raise NoDefaultNetwork("No default VPC found in this region.")
    return str(vpcs[0]["VpcId"])


def _subnet_ids(ec2: Any, vpc_id: str, public: bool, limit: int) -> tuple[str, ...]:
    """Return up to ``limit`` subnet IDs of one kind."""
    try:
        response = ec2.describe_subnets(
            Filters=[
                {"Name": "vpc-id", "Values": [vpc_id]},
                {"Name": "map-public-ip-on-launch", "Values": ["true" if public else "false"]},
            ]
        )
    except (BotoCoreError, ClientError) as exc:
        code = getattr(exc, "response", {}).get("Error", {}).get("Code")
        if code == "InvalidVpcID.NotFound":
            raise NoDefaultNetwork(f"VPC {vpc_id} does not exist.") from exc
        raise NetworkDiscoveryFailure(f"Failed to describe subnets: {exc}") from exc

    subnets = response.get("Subnets", [])
    return tuple(str(subnet["SubnetId"]) for subnet in subnets[:limit])
