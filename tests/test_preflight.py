"""Tests for the environment precondition checks."""

from unittest.mock import MagicMock, PropertyMock

from stackctl.core.exceptions import AuthenticationError
from stackctl.pipeline.models import Severity
from stackctl.pipeline.preflight import PreflightChecker

DIRS = ["01-directory", "02-servers", "03-docker/rstudio", "04-ecs"]


def which_all(tool: str) -> str:
    return f"/usr/bin/{tool}"


def which_none(tool: str) -> None:
    return None


def test_all_checks_pass(env_root):
    report = PreflightChecker(env_root, DIRS, which=which_all).run()

    assert report.passed
    assert [c.name for c in report.checks] == [
        "tool:terraform",
        "tool:docker",
        "dir:01-directory",
        "dir:02-servers",
        "dir:03-docker/rstudio",
        "dir:04-ecs",
    ]


def test_missing_tool(env_root):
    report = PreflightChecker(env_root, DIRS, which=which_none).run()

    assert not report.passed
    assert {c.name for c in report.failures} == {"tool:terraform", "tool:docker"}
    assert report.failures[0].message == "terraform not found on PATH"


def test_missing_directory(tmp_path):
    (tmp_path / "01-directory").mkdir()

    report = PreflightChecker(tmp_path, ["01-directory", "02-servers"], tools=(), which=which_all).run()

    assert [c.name for c in report.failures] == ["dir:02-servers"]


def test_credentials_ok(env_root):
    aws = MagicMock()
    aws.account_id = "123456789012"
    aws.region = "us-east-1"

    report = PreflightChecker(env_root, DIRS, aws=aws, which=which_all).run()

    assert report.passed
    assert report.checks[-1].message == "account 123456789012 in us-east-1"


def test_credentials_failure(env_root):
    aws = MagicMock()
    type(aws).account_id = PropertyMock(
        side_effect=AuthenticationError("Failed to retrieve AWS account ID")
    )

    report = PreflightChecker(env_root, DIRS, aws=aws, which=which_all).run()

    assert not report.passed
    assert report.failures[0].name == "aws:credentials"
    assert report.failures[0].severity == Severity.FATAL


def test_rows(env_root):
    rows = PreflightChecker(env_root, ["missing"], tools=("terraform",), which=which_all).run().to_rows()
    assert rows[0] == {"Check": "tool:terraform", "Status": "ok", "Detail": "/usr/bin/terraform"}
    assert rows[1]["Status"] == "fatal"
