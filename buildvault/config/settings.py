"""Configuration management using Pydantic.

This module defines configuration models for secrets and provisioning
profile management, loaded from ``buildvault.yml`` with environment
variable interpolation.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from buildvault.exceptions import ConfigurationError

DEFAULT_CONFIG_FILE = "buildvault.yml"


class SecretOutputConfig(BaseModel):
    """One generated source file and the secret prefixes that feed it."""

    path: str = Field(..., description="Output file path, relative to the working directory")
    prefixes: list[str] = Field(..., min_length=1, description="Secret name prefixes, e.g. [all, ios]")

    @field_validator("prefixes")
    @classmethod
    def strip_separator(cls, value: list[str]) -> list[str]:
        """Accept ``all_`` as well as ``all``."""
        prefixes = [prefix.rstrip("_") for prefix in value]
        if not all(prefixes):
            raise ValueError("prefixes must not be empty strings")
        return prefixes


class SecretsConfig(BaseModel):
    """Secret document and code generation configuration."""

    environments_dir: str = Field(default="env", description="Directory holding <scope>/keys.json")
    outputs: list[SecretOutputConfig] = Field(default_factory=list, description="Generated source files")


class ProvisionConfig(BaseModel):
    """Provisioning profile archive configuration."""

    enabled: bool = Field(default=False, description="Whether profile management is enabled")
    archive_path: str = Field(default="provision/profiles.zip.enc", description="Encrypted archive")
    extract_path: str = Field(default="provision/profiles/", description="Where decrypted profiles go")
    source_path: str = Field(default="provision/source/", description="Profiles to encrypt")
    install_path: str = Field(
        default="~/Library/MobileDevice/Provisioning Profiles",
        description="System directory profiles are installed into",
    )
    pattern: str = Field(default="*.mobileprovision", description="Glob selecting profile files")


class BuildVaultSettings(BaseSettings):
    """Main buildvault settings.

    Combines all configuration sections and provides loading from YAML
    files with environment variable interpolation.
    """

    model_config = SettingsConfigDict(
        env_prefix="BUILDVAULT_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    app_name: str = Field(..., min_length=1, description="Application name, used in keyring service names")
    secrets: SecretsConfig | None = None
    provision: ProvisionConfig | None = None

    def require_secrets(self) -> SecretsConfig:
        """Return the secrets section, or fail with a configuration hint."""
        if self.secrets is None:
            raise ConfigurationError(
                "Secret management is not configured",
                suggestion=(
                    "Add a secrets section to buildvault.yml:\n"
                    "  secrets:\n"
                    "    outputs:\n"
                    "      - path: app/generated/app_keys.py\n"
                    "        prefixes: [all, ios]"
                ),
            )
        return self.secrets

    def require_provision(self) -> ProvisionConfig:
        """Return the provision section if profile management is enabled."""
        if self.provision is None or not self.provision.enabled:
            raise ConfigurationError(
                "Provisioning profile management is not enabled",
                suggestion="Enable it in buildvault.yml:\n  provision:\n    enabled: true",
            )
        return self.provision

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> BuildVaultSettings:
        """Load settings from YAML file with environment variable interpolation.

        Supports ${VAR_NAME} syntax for environment variable substitution.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            BuildVaultSettings instance

        Raises:
            ConfigurationError: If config file is invalid or missing required fields
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_path}",
                suggestion=f"Create {DEFAULT_CONFIG_FILE} with at least 'app_name: MyApp'",
            )

        try:
            with open(config_file, encoding="utf-8") as f:
                yaml_content = f.read()
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file: {config_path}") from e

        try:
            yaml_content = cls._interpolate_env_vars(yaml_content)
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment variable reference in config: {e}") from e

        try:
            config_dict = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {config_path}: {e}") from e
        if not isinstance(config_dict, dict):
            raise ConfigurationError("Configuration must be a YAML object, not a list or scalar")

        try:
            return cls(**config_dict)
        except ValidationError as e:
            raise ConfigurationError(f"Failed to validate configuration: {e}") from e
        except TypeError as e:
            raise ConfigurationError(f"Missing or invalid configuration fields: {e}") from e

    @staticmethod
    def _interpolate_env_vars(content: str) -> str:
        """Interpolate ${VAR_NAME} placeholders with environment variables.

        Supports two syntaxes:
        - ${VAR_NAME} - Required environment variable (raises if not set)
        - ${VAR_NAME:-default} - Optional with default value

        YAML comment lines are left unchanged.

        Raises:
            ValueError: If a required environment variable is not set
        """
        pattern = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default_value = match.group(2)
            value = os.getenv(var_name)

            if value is not None:
                return value
            if default_value is not None:
                return default_value
            raise ValueError(f"Environment variable {var_name} is not set")

        def process_line(line: str) -> str:
            if line.lstrip().startswith("#"):
                return line
            return pattern.sub(replace_var, line)

        return "\n".join(process_line(line) for line in content.split("\n"))
