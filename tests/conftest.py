"""Pytest fixtures for stackctl tests."""

import os
from pathlib import Path
from typing import Generator

import pytest
from click.testing import CliRunner

from stackctl.config import (
    AWSConfig,
    EnvironmentConfig,
    ProfileConfig,
    StackCtlConfig,
    ValidationConfig,
)
from stackctl.core.context import StackCtlContext
from stackctl.core.output import OutputFormat, OutputFormatter
from stackctl.pipeline.models import StageContext

STAGE_DIRS = ["01-directory", "02-servers", "03-docker/rstudio", "04-ecs"]


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click CLI runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def clean_env() -> Generator[None, None, None]:
    """Clean environment variables before each test."""
    env_vars = [
        "STACKCTL_AWS_PROFILE",
        "STACKCTL_AWS_REGION",
        "STACKCTL_ROOT",
        "STACKCTL_PROFILE",
        "STACKCTL_CONFIG",
        "AWS_PROFILE",
        "AWS_REGION",
        "AWS_DEFAULT_REGION",
    ]

    original = {k: os.environ.get(k) for k in env_vars}

    for k in env_vars:
        os.environ.pop(k, None)

    yield

    for k, v in original.items():
        if v is not None:
            os.environ[k] = v
        else:
            os.environ.pop(k, None)


@pytest.fixture
def aws_credentials(monkeypatch) -> None:
    """Fake credentials so boto3 never reaches a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def env_root(tmp_path: Path) -> Path:
    """An environment root holding the four bundle directories."""
    for d in STAGE_DIRS:
        (tmp_path / d).mkdir(parents=True)
    (tmp_path / "03-docker/rstudio/Dockerfile").write_text("FROM rocker/rstudio\n")
    return tmp_path


@pytest.fixture
def mock_config(env_root: Path) -> StackCtlConfig:
    """Configuration pointing at the temporary environment root."""
    return StackCtlConfig(
        profiles={
            "default": ProfileConfig(
                aws=AWSConfig(region="us-east-1"),
                environment=EnvironmentConfig(
                    root_dir=str(env_root),
                    validation=ValidationConfig(max_attempts=3, interval=0),
                ),
            )
        }
    )


@pytest.fixture
def mock_context(mock_config: StackCtlConfig) -> StackCtlContext:
    """Create a quiet StackCtl context."""
    return StackCtlContext(
        config=mock_config,
        profile="default",
        output_format=OutputFormat.TABLE,
        quiet=True,
        no_color=True,
    )


@pytest.fixture
def output() -> OutputFormatter:
    """Uncoloured formatter so captured output is plain text."""
    return OutputFormatter(color=False)


@pytest.fixture
def stage_context(env_root: Path) -> StageContext:
    return StageContext(region="us-east-1", root_dir=env_root, account_id="123456789012")


@pytest.fixture
def temp_config_file(tmp_path: Path, env_root: Path) -> str:
    """Create a temporary config file."""
    config_content = f"""
global:
  output_format: table
profiles:
  default:
    aws:
      region: us-east-1
    environment:
      root_dir: {env_root}
      validation:
        max_attempts: 3
        interval: 0
"""
    config_file = tmp_path / "stackctl.yaml"
    config_file.write_text(config_content)
    return str(config_file)
