"""Tests for template pre-flight validation."""

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from ecs_deployer.core.deployments.aws_cfn import InvalidTemplate, MissingCapabilities
from ecs_deployer.core.deployments.aws_cfn.templates import (
    MAX_TEMPLATE_BODY_BYTES,
    check_capabilities,
    read_template,
    validate_templates,
)

from fakes import FakeAwsSession, client_error


def _write(path: Path, content: str) -> Path:
    path.write_text(content, encoding="utf-8")
    return path


def test_valid_templates_return_required_capabilities(tmp_path: Path) -> None:
    """Each template is validated and its required capabilities returned."""
    session = FakeAwsSession()
    reporter = MagicMock()
    templates = {
        "cluster": _write(tmp_path / "cluster.json", json.dumps({"Resources": {}})),
        "service": _write(tmp_path / "service.json", json.dumps({"Resources": {}})),
    }

    required = validate_templates(session, templates, reporter)

    assert required == {
        "cluster": frozenset({"CAPABILITY_NAMED_IAM"}),
        "service": frozenset({"CAPABILITY_NAMED_IAM"}),
    }
    assert session.cloudformation.client.validate_template.call_count == 2
    reporter.assert_any_call("Template cluster is valid")


def test_first_invalid_template_stops_validation(tmp_path: Path) -> None:
    """A rejected template names itself and later templates are not checked."""
    session = FakeAwsSession()
    session.cloudformation.client.validate_template.side_effect = client_error(
        "ValidationError", "Template format error: unsupported structure.", "ValidateTemplate"
    )
    templates = {
        "cluster": _write(tmp_path / "cluster.json", "{}"),
        "service": _write(tmp_path / "service.json", "{}"),
    }

    with pytest.raises(InvalidTemplate) as excinfo:
        validate_templates(session, templates, MagicMock())

    assert excinfo.value.name == "cluster"
    assert "unsupported structure" in excinfo.value.reason
    assert excinfo.value.category == "preflight"
    assert session.cloudformation.client.validate_template.call_count == 1


def test_missing_template_file(tmp_path: Path) -> None:
    """A template that cannot be read is invalid."""
    with pytest.raises(InvalidTemplate) as excinfo:
        read_template("cluster", tmp_path / "absent.json")

    assert excinfo.value.name == "cluster"


def test_malformed_json_template(tmp_path: Path) -> None:
    """JSON templates must parse locally before they are sent."""
    path = _write(tmp_path / "broken.json", "{not json")

    with pytest.raises(InvalidTemplate, match="not valid JSON"):
        read_template("load-balancer", path)


def test_oversized_template(tmp_path: Path) -> None:
    """Templates above the inline body limit are rejected."""
    path = _write(tmp_path / "big.yaml", "#" * (MAX_TEMPLATE_BODY_BYTES + 1))

    with pytest.raises(InvalidTemplate, match="byte inline template limit"):
        read_template("service", path)


def test_undeclared_capabilities_fail() -> None:
    """Templates needing capabilities that were not declared are rejected."""
    with pytest.raises(MissingCapabilities) as excinfo:
        check_capabilities("service", {"CAPABILITY_AUTO_EXPAND"}, {"CAPABILITY_NAMED_IAM"})

    assert excinfo.value.missing == ["CAPABILITY_AUTO_EXPAND"]


def test_named_iam_covers_plain_iam() -> None:
    """Declaring named IAM also satisfies plain IAM."""
    check_capabilities("cluster", {"CAPABILITY_IAM"}, {"CAPABILITY_NAMED_IAM"})
