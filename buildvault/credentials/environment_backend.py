"""Environment variable lookup for CI/CD and containerized environments."""

import os
from collections.abc import Mapping

import structlog

log = structlog.get_logger(__name__)


class EnvironmentBackend:
    """Environment variable credential source.

    This source is ideal for:
    - CI/CD pipelines where secrets are injected as env vars
    - Docker containers
    - One-off invocations (``SECRETS_PRIVATE_KEY_DEV=... buildvault ...``)

    Empty values are treated as unset.

    Example:
        >>> backend = EnvironmentBackend({"SECRETS_PRIVATE_KEY": "ab" * 32})
        >>> backend.get("SECRETS_PRIVATE_KEY")
        'abab...'
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        """Initialize the backend.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``)
        """
        self._environ = environ

    @property
    def name(self) -> str:
        """Get backend identifier.

        Returns:
            Backend name constant "environment"
        """
        return "environment"

    @property
    def available(self) -> bool:
        """Environment backend is always available."""
        return True

    def get(self, var_name: str) -> str | None:
        """Retrieve credential from an environment variable.

        Args:
            var_name: Environment variable name (e.g., 'SECRETS_PRIVATE_KEY_DEV')

        Returns:
            Credential value or None if not set or empty
        """
        environ = self._environ if self._environ is not None else os.environ
        value = environ.get(var_name)

        if not value:
            return None

        log.debug("credential_found_in_environment", var_name=var_name)
        return value
