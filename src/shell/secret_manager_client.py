"""Secret Manager Client - Imperative Shell.

This module handles reading secrets from Google Cloud Secret Manager and
resolving ${...} placeholders in configuration values.
All I/O is contained here; configuration models are in the core module.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from google.api_core import exceptions as gcp_exceptions
from google.cloud import secretmanager


logger = logging.getLogger(__name__)


SECRET_PREFIX = "secret:"


@dataclass
class SecretManagerConfig:
    """Configuration for Secret Manager client.

    Attributes:
        project_id: GCP project ID (None for default)
    """
    project_id: Optional[str] = None


class SecretManagerClient:
    """Client for reading secrets from Google Cloud Secret Manager.

    This is part of the imperative shell - it handles secret I/O.
    """

    def __init__(self, config: Optional[SecretManagerConfig] = None) -> None:
        """Initialize Secret Manager client.

        Args:
            config: Secret Manager configuration
        """
        self.config = config or SecretManagerConfig()
        self._client: Optional[secretmanager.SecretManagerServiceClient] = None

    @property
    def client(self) -> secretmanager.SecretManagerServiceClient:
        """Lazy initialization of Secret Manager client."""
        if self._client is None:
            self._client = secretmanager.SecretManagerServiceClient()
        return self._client

    def get_secret(
        self,
        secret_name: str,
        version: str = "latest",
    ) -> Optional[str]:
        """Fetch a secret value from Secret Manager.

        This method performs I/O.

        Args:
            secret_name: Name of the secret (not the full resource path)
            version: Version of the secret (default: "latest")

        Returns:
            Secret value as string, or None if not found
        """
        if not self.config.project_id:
            logger.error("No project ID configured for Secret Manager")
            return None

        name = f"projects/{self.config.project_id}/secrets/{secret_name}/versions/{version}"

        try:
            logger.info("Fetching secret: %s", secret_name)
            response = self.client.access_secret_version(request={"name": name})
            secret_value = response.payload.data.decode("UTF-8")
            logger.info("Successfully fetched secret: %s", secret_name)
            return secret_value

        except gcp_exceptions.GoogleAPIError as e:
            logger.error("Failed to fetch secret %s: %s", secret_name, str(e))
            return None

    def resolve(self, value: str) -> str:
        """Resolve a ${secret:name} or ${ENV_VAR} placeholder.

        Values that are not a placeholder, or that cannot be resolved,
        are returned unchanged.

        Args:
            value: Raw configuration value

        Returns:
            Resolved value
        """
        if not (value.startswith("${") and value.endswith("}")):
            return value

        var_spec = value[2:-1]
        if var_spec.startswith(SECRET_PREFIX):
            secret = self.get_secret(var_spec[len(SECRET_PREFIX):])
            if secret is not None:
                return secret.strip()
            logger.warning("Secret %s could not be resolved", var_spec)
            return value

        env_value = os.environ.get(var_spec)
        if env_value:
            return env_value
        logger.warning("Environment variable %s not set", var_spec)
        return value
