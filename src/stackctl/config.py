"""Configuration management for stackctl using Pydantic."""

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from stackctl.core.exceptions import ConfigError
from stackctl.core.logging import LogLevel
from stackctl.core.output import OutputFormat

DEFAULT_REGION = "us-east-1"


class AWSConfig(BaseModel):
    """AWS configuration."""

    profile: str | None = None
    region: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None
    session_token: str | None = None
    endpoint_url: str | None = None

    def get_profile(self) -> str | None:
        """Get AWS profile from config or environment."""
        return (
            os.environ.get("STACKCTL_AWS_PROFILE")
            or os.environ.get("AWS_PROFILE")
            or self.profile
        )

    def get_region(self) -> str:
        """Get AWS region from config or environment."""
        return (
            os.environ.get("STACKCTL_AWS_REGION")
            or os.environ.get("AWS_REGION")
            or os.environ.get("AWS_DEFAULT_REGION")
            or self.region
            or DEFAULT_REGION
        )


class StageDirsConfig(BaseModel):
    """Terraform bundle directories, relative to the environment root."""

    directory: str = "01-directory"
    servers: str = "02-servers"
    image: str = "03-docker/rstudio"
    cluster: str = "04-ecs"


class ImageConfig(BaseModel):
    """RStudio image build settings."""

    repository: str = "rstudio"
    tag: str = "rstudio-server-rc1"
    password_secret: str = "rstudio_credentials"
    password_field: str = "password"
    build_arg: str = "RSTUDIO_PASSWORD"
    dockerfile: str = "Dockerfile"


class InstanceLookupConfig(BaseModel):
    """Auxiliary EC2 instance looked up by Name tag during validation."""

    label: str
    tag: str
    dns: Literal["public", "private"] = "private"


def _default_lookups() -> list[InstanceLookupConfig]:
    return [
        InstanceLookupConfig(label="Windows AD Instance", tag="windows-ad-admin", dns="public"),
        InstanceLookupConfig(label="EFS Gateway Instance", tag="efs-samba-gateway", dns="private"),
    ]


class ValidationConfig(BaseModel):
    """Readiness probe settings."""

    load_balancer: str = "rstudio-alb"
    path: str = "/auth-sign-in"
    scheme: str = "http"
    expected_status: int = 200
    max_attempts: int = Field(default=30, ge=1)
    interval: float = Field(default=10.0, ge=0)
    timeout: float = Field(default=10.0, gt=0)
    instances: list[InstanceLookupConfig] = Field(default_factory=_default_lookups)

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("path must start with '/'")
        return v


def _default_secrets() -> list[str]:
    return [
        "akumar_ad_credentials",
        "jsmith_ad_credentials",
        "edavis_ad_credentials",
        "rpatel_ad_credentials",
        "rstudio_credentials",
        "admin_ad_credentials",
    ]


class EnvironmentConfig(BaseModel):
    """Layout and names of the deployed environment."""

    root_dir: str = "."
    stages: StageDirsConfig = Field(default_factory=StageDirsConfig)
    image: ImageConfig = Field(default_factory=ImageConfig)
    secrets: list[str] = Field(default_factory=_default_secrets)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)

    def get_root_dir(self) -> Path:
        """Get the environment root from config or environment."""
        return Path(os.environ.get("STACKCTL_ROOT") or self.root_dir).expanduser()


class ProfileConfig(BaseModel):
    """Profile configuration grouping all settings for one environment."""

    aws: AWSConfig = Field(default_factory=AWSConfig)
    environment: EnvironmentConfig = Field(default_factory=EnvironmentConfig)


class GlobalConfig(BaseModel):
    """Global settings."""

    output_format: OutputFormat = OutputFormat.TABLE
    color: str = "auto"  # auto, always, never
    verbosity: LogLevel = LogLevel.WARNING
    dry_run: bool = False
    confirm_destructive: bool = True

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        if v not in ("auto", "always", "never"):
            raise ValueError("color must be 'auto', 'always', or 'never'")
        return v


class StackCtlConfig(BaseModel):
    """Main configuration model."""

    model_config = {"populate_by_name": True}

    global_settings: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    profiles: dict[str, ProfileConfig] = Field(default_factory=lambda: {"default": ProfileConfig()})

    def get_profile(self, name: str | None = None) -> ProfileConfig:
        """Get a profile by name, defaulting to 'default'."""
        profile_name = name or "default"
        if profile_name not in self.profiles:
            raise ConfigError(f"Profile '{profile_name}' not found")
        return self.profiles[profile_name]


class ConfigLoader:
    """Loads and merges configuration from multiple sources."""

    CONFIG_FILENAMES = ["stackctl.yaml", "stackctl.yml", ".stackctl.yaml", ".stackctl.yml"]

    def load(self, config_file: str | Path | None = None) -> StackCtlConfig:
        """Load configuration from files.

        Priority (highest to lowest):
        1. Explicitly specified config file
        2. Project config (./stackctl.yaml or a parent directory)
        3. User config (~/.stackctl/config.yaml)

        Args:
            config_file: Optional explicit config file path

        Returns:
            Merged configuration
        """
        configs: list[dict[str, Any]] = []

        user_config_path = Path.home() / ".stackctl" / "config.yaml"
        if user_config_path.exists():
            configs.append(self._load_yaml_file(user_config_path))

        project_config = self._find_project_config()
        if project_config:
            configs.append(self._load_yaml_file(project_config))

        if config_file:
            config_path = Path(config_file)
            if not config_path.exists():
                raise ConfigError(f"Config file not found: {config_file}")
            configs.append(self._load_yaml_file(config_path))

        merged = self._merge_configs(configs)

        try:
            return StackCtlConfig(**merged)
        except ValueError as e:
            raise ConfigError(f"Invalid configuration: {e}")

    def _find_project_config(self) -> Path | None:
        """Find project config file in current or parent directories."""
        current = Path.cwd()

        while current != current.parent:
            for filename in self.CONFIG_FILENAMES:
                config_path = current / filename
                if config_path.exists():
                    return config_path
            current = current.parent

        return None

    def _load_yaml_file(self, path: Path) -> dict[str, Any]:
        try:
            with open(path) as f:
                content = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}")
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}")

        if not isinstance(content, dict):
            raise ConfigError(f"Expected a mapping at the top of {path}")
        return content

    def _merge_configs(self, configs: list[dict[str, Any]]) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for config in configs:
            result = self._deep_merge(result, config)
        return result

    def _deep_merge(
        self,
        base: dict[str, Any],
        override: dict[str, Any],
    ) -> dict[str, Any]:
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result


_config_loader = ConfigLoader()


def load_config(config_file: str | Path | None = None) -> StackCtlConfig:
    """Load stackctl configuration."""
    return _config_loader.load(config_file)


def get_default_config() -> StackCtlConfig:
    """Get default configuration without loading from files."""
    return StackCtlConfig()
