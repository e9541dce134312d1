"""Runtime settings for the deployment orchestrator."""

import json
from pathlib import Path
from typing import Annotated, Any, Self

from pydantic import AliasChoices, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic_settings.exceptions import SettingsError

from ecs_deployer.config.paths import (
    ALB_TEMPLATE,
    CLUSTER_TEMPLATE,
    SERVICE_TEMPLATE,
    TASK_DEFINITION_TEMPLATE,
    env_path,
)

ENV_FILE_PATH = str(env_path())
ENV_PREFIX = "ECS_DEPLOYER_"

ALLOWED_CAPABILITIES = frozenset(
    {"CAPABILITY_IAM", "CAPABILITY_NAMED_IAM", "CAPABILITY_AUTO_EXPAND"}
)


class ConfigError(RuntimeError):
    """Configuration related errors."""


def _env(name: str) -> AliasChoices:
    """Read a field from an unprefixed variable while still accepting its field name."""
    return AliasChoices(name, name.lower())


class DeploymentSettings(BaseSettings):
    """Deployment parameters for the cluster, load balancer and service stacks.

    Region, profile and the three stack names are read from ``AWS_REGION``,
    ``AWS_PROFILE``, ``CLUSTER_STACK``, ``ALB_STACK`` and ``SERVICE_STACK``.
    Every other field is read from its ``ECS_DEPLOYER_``-prefixed variable,
    e.g. ``ECS_DEPLOYER_DESIRED_COUNT``, so generic names such as
    ``ENVIRONMENT`` in the shell are never picked up.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=ENV_FILE_PATH,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    aws_region: str = Field(default="us-east-1", validation_alias=_env("AWS_REGION"))
    aws_profile: str | None = Field(default=None, validation_alias=_env("AWS_PROFILE"))

    cluster_stack: str = Field(
        default="ecs-cluster-stack", validation_alias=_env("CLUSTER_STACK")
    )
    alb_stack: str = Field(default="alb-stack", validation_alias=_env("ALB_STACK"))
    service_stack: str = Field(
        default="nginx-service-stack", validation_alias=_env("SERVICE_STACK")
    )

    # Template locations, relative to templates_dir.
    templates_dir: Path = Field(default=Path("."))
    cluster_template: str = CLUSTER_TEMPLATE
    alb_template: str = ALB_TEMPLATE
    service_template: str = SERVICE_TEMPLATE
    task_definition_template: str = TASK_DEFINITION_TEMPLATE

    cluster_name: str = "nginx-production-cluster"
    service_name: str = "nginx-service"
    container_insights: str = "enabled"
    certificate_arn: str = ""

    desired_count: int = Field(default=2, ge=0)
    min_capacity: int = Field(default=1, ge=0)
    max_capacity: int = Field(default=4, ge=1)

    # Storage-mount placeholder values for the task definition template.
    efs_id: str = "fs-12345678"
    efs_access_point_config: str = "fsap-config123"
    efs_access_point_html: str = "fsap-html456"
    strict_placeholders: bool = False

    environment: str = "Production"
    managed_by: str = "Manual"
    # Accepts a JSON list or a comma-separated string from the environment.
    capabilities: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["CAPABILITY_NAMED_IAM"]
    )

    vpc_id: str | None = None
    max_subnets: int = Field(default=2, ge=1)

    load_balancer_dns_output: str = "LoadBalancerDNS"
    change_set_poll_seconds: int = Field(default=5, ge=1)
    stabilization_timeout_seconds: int = Field(default=600, ge=0)
    stabilization_poll_seconds: int = Field(default=15, ge=1)

    @field_validator("capabilities", mode="before")
    @classmethod
    def _split_capabilities(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        if value.strip().startswith("["):
            return json.loads(value)
        return [item.strip() for item in value.split(",") if item.strip()]

    @field_validator("capabilities")
    @classmethod
    def _check_capabilities(cls, value: list[str]) -> list[str]:
        unknown = set(value) - ALLOWED_CAPABILITIES
        if unknown:
            raise ValueError(f"Unsupported capabilities: {sorted(unknown)}")
        return value

    @model_validator(mode="after")
    def _check_capacity(self) -> Self:
        if not self.min_capacity <= self.desired_count <= self.max_capacity:
            raise ValueError(
                "Capacity must satisfy min_capacity <= desired_count <= max_capacity "
                f"(got {self.min_capacity} <= {self.desired_count} <= {self.max_capacity})."
            )
        return self

    def template_path(self, relative: str) -> Path:
        """Return the location of a template file."""
        return self.templates_dir / relative

    def substitutions(self, account_id: str) -> dict[str, str]:
        """Return the placeholder map for the task definition template."""
        return {
            "AWS_ACCOUNT_ID": account_id,
            "AWS_REGION": self.aws_region,
            "EFS_ID": self.efs_id,
            "EFS_ACCESS_POINT_CONFIG": self.efs_access_point_config,
            "EFS_ACCESS_POINT_HTML": self.efs_access_point_html,
        }

    def tags(self) -> dict[str, str]:
        """Return the ownership tags attached to every stack."""
        return {"Environment": self.environment, "ManagedBy": self.managed_by}


def get_settings(**overrides: Any) -> DeploymentSettings:
    """Load deployment settings from the environment.

    Args:
        overrides: Field values that take precedence over the environment.
            ``None`` values are ignored.

    Returns:
        The validated settings.
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        return DeploymentSettings(**values)
    except (ValidationError, SettingsError) as exc:
        raise ConfigError(f"Invalid deployment settings: {exc}") from exc
