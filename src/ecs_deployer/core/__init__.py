"""Deployment orchestrator core modules."""

from ecs_deployer.core.settings import ConfigError, DeploymentSettings, get_settings

__all__ = [
    "ConfigError",
    "DeploymentSettings",
    "get_settings",
]
