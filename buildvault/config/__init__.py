"""Configuration loading for buildvault."""

from .settings import (
    DEFAULT_CONFIG_FILE,
    BuildVaultSettings,
    ProvisionConfig,
    SecretOutputConfig,
    SecretsConfig,
)

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "BuildVaultSettings",
    "ProvisionConfig",
    "SecretOutputConfig",
    "SecretsConfig",
]
