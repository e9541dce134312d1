"""Filesystem locations: the user env file and the default template layout."""

from pathlib import Path

from platformdirs import user_config_dir

APP_NAME = "ecs-deployer"

# Template files, relative to the templates directory.
CLUSTER_TEMPLATE = "clusters/ecs-cluster.json"
ALB_TEMPLATE = "loadbalancers/nginx-alb.json"
SERVICE_TEMPLATE = "services/nginx-service.json"
TASK_DEFINITION_TEMPLATE = "task-definitions/nginx-task.json"


def env_path() -> Path:
    """Return the optional ``.env`` file read by the deployment settings.

    Returns:
        ``<user config dir>/ecs-deployer/.env``.
    """
    return Path(user_config_dir(APP_NAME)) / ".env"
