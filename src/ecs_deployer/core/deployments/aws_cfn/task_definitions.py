"""ECS task definition placeholder resolution and registration."""

import json
import logging
import re
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, cast

from botocore.exceptions import BotoCoreError, ClientError

from ecs_deployer.core.deployments.aws_cfn.errors import TaskDefinitionFailed
from ecs_deployer.core.deployments.aws_cfn.models import ResolvedTaskDefinition

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def substitute_placeholders(template: str, substitutions: Mapping[str, str]) -> str:
    """Replace ``${TOKEN}`` placeholders with values from the map.

    Tokens without an entry are left untouched.
    """

    def _replace(match: re.Match[str]) -> str:
        return substitutions.get(match.group(1), match.group(0))

    return PLACEHOLDER_PATTERN.sub(_replace, template)


def find_unresolved_tokens(document: str) -> tuple[str, ...]:
    """Return placeholder names still present in a document, in order of appearance."""
    seen: dict[str, None] = {}
    for match in PLACEHOLDER_PATTERN.finditer(document):
        seen.setdefault(match.group(1), None)
    return tuple(seen)


def register_task_definition(
    session: Any,
    template_path: Path,
    substitutions: Mapping[str, str],
    reporter: Callable[[str], None],
    strict: bool = False,
) -> ResolvedTaskDefinition:
    """Resolve a task definition template and register it as a new revision.

    Every call registers a new revision. Older revisions are left in place.
    Unresolved placeholders are reported and, unless ``strict`` is set, sent
    to ECS as-is so that the remote validation decides.
    """
    try:
        template = template_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise TaskDefinitionFailed(f"Cannot read task definition template {template_path}") from exc

    resolved = substitute_placeholders(template, substitutions)
    unresolved = find_unresolved_tokens(resolved)
    if unresolved:
        names = ", ".join(unresolved)
        if strict:
            raise TaskDefinitionFailed(f"Task definition has unresolved placeholders: {names}")
        logger.warning(f"Task definition still contains unresolved placeholders: {names}")

    try:
        document = json.loads(resolved)
    except json.JSONDecodeError as exc:
        raise TaskDefinitionFailed(f"Resolved task definition is not valid JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise TaskDefinitionFailed("Task definition template must contain a JSON object.")

    reporter(f"Registering task definition family {document.get('family', '?')}")
    ecs = session.client("ecs")
    try:
        response = ecs.register_task_definition(**document)
    except ClientError as exc:
        message = exc.response.get("Error", {}).get("Message") or str(exc)
        raise TaskDefinitionFailed(f"Task definition registration failed: {message}") from exc
    except BotoCoreError as exc:
        raise TaskDefinitionFailed(f"Task definition registration failed: {exc}") from exc

    arn = cast(str, response["taskDefinition"]["taskDefinitionArn"])
    return ResolvedTaskDefinition(document=document, arn=arn, unresolved_tokens=unresolved)
