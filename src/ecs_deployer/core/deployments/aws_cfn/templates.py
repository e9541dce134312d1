"""Pre-flight validation of CloudFormation templates."""

import json
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from ecs_deployer.core.deployments.aws_cfn.errors import InvalidTemplate, MissingCapabilities

# CloudFormation rejects inline template bodies larger than this.
MAX_TEMPLATE_BODY_BYTES = 51_200


def read_template(name: str, path: Path) -> str:
    """Read a template body from disk."""
    try:
        body = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise InvalidTemplate(name, f"cannot read {path}: {exc.strerror or exc}") from exc

    if len(body.encode("utf-8")) > MAX_TEMPLATE_BODY_BYTES:
        raise InvalidTemplate(
            name, f"{path} exceeds the {MAX_TEMPLATE_BODY_BYTES} byte inline template limit"
        )
    if path.suffix == ".json":
        try:
            json.loads(body)
        except json.JSONDecodeError as exc:
            raise InvalidTemplate(name, f"{path} is not valid JSON: {exc}") from exc
    return body


def validate_templates(
    session: Any,
    templates: Mapping[str, Path],
    reporter: Callable[[str], None],
) -> dict[str, frozenset[str]]:
    """Validate every template before anything is deployed.

    Templates are checked in order and the first invalid one stops the run.
    Passing validation does not guarantee that a later deploy succeeds.

    Returns:
        The capabilities each template requires, keyed by template name.
    """
    cfn = session.client("cloudformation")
    required: dict[str, frozenset[str]] = {}
    for name, path in templates.items():
        body = read_template(name, path)
        try:
            response = cfn.validate_template(TemplateBody=body)
        except ClientError as exc:
            message = exc.response.get("Error", {}).get("Message") or str(exc)
            raise InvalidTemplate(name, message) from exc
        except BotoCoreError as exc:
            raise InvalidTemplate(name, str(exc)) from exc

        required[name] = frozenset(response.get("Capabilities", []))
        reporter(f"Template {name} is valid")
    return required


def check_capabilities(name: str, required: Iterable[str], declared: Iterable[str]) -> None:
    """Fail when a template needs capabilities that were not declared."""
    missing = set(required) - set(declared)
    # Named IAM resources imply plain IAM resources.
    if "CAPABILITY_NAMED_IAM" in set(declared):
        missing.discard("CAPABILITY_IAM")
    if missing:
        raise MissingCapabilities(name, missing)
