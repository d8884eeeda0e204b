"""Configuration Loader - Imperative Shell.

This module handles loading configuration from YAML files and
environment variables. All I/O is contained here.

Models (Config, ProximityConfig, PushConfig) are defined in
src/core/config.py to avoid information leakage between layers.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Any, Optional

import yaml

from src.core.config import (
    Config,
    ProximityConfig,
    PushConfig,
    DEFAULT_NEARBY_DISTANCE_M,
    DEFAULT_NOTIFICATION_INTERVAL_SECONDS,
    DEFAULT_NEARBY_INTERVAL_SECONDS,
    DEFAULT_LOCATION_STALE_AGE_SECONDS,
    validate_config,
)
from src.shell.secret_manager_client import SecretManagerClient, SecretManagerConfig


logger = logging.getLogger(__name__)


def _get_secret_manager_client() -> Optional[SecretManagerClient]:
    """Get or create a Secret Manager client.

    Returns None if GCP_PROJECT is not set (e.g., local development).
    """
    project_id = os.environ.get("GCP_PROJECT")
    if not project_id:
        # Try to get from gcloud config
        try:
            result = subprocess.run(
                ["gcloud", "config", "get-value", "project"],
                capture_output=True,
                text=True,
                timeout=2,
            )
            if result.returncode == 0 and result.stdout.strip():
                project_id = result.stdout.strip()
        except (OSError, subprocess.SubprocessError):
            pass

    if project_id:
        return SecretManagerClient(SecretManagerConfig(project_id=project_id))
    return None


def _resolve_value(value: Any, secret_client: Optional[SecretManagerClient] = None) -> Any:
    """Resolve a value that may contain secret or env var placeholders.

    Delegates to SecretManagerClient.resolve() when a client is
    available; otherwise only ${ENV_VAR} placeholders are handled.

    Args:
        value: Value to resolve (may contain ${...} placeholders)
        secret_client: Client for resolving secrets

    Returns:
        Resolved value
    """
    if not isinstance(value, str):
        return value

    if secret_client:
        return secret_client.resolve(value)

    # No secret client - only handle env vars
    if value.startswith("${") and value.endswith("}"):
        var_spec = value[2:-1]
        if not var_spec.startswith("secret:"):
            env_value = os.environ.get(var_spec)
            if env_value:
                return env_value
            logger.warning("Environment variable %s not set", var_spec)

    return value


def _parse_proximity(data: dict[str, Any]) -> ProximityConfig:
    """Parse proximity rules from config data."""
    nearby_distance = float(data.get("nearby_distance_m", DEFAULT_NEARBY_DISTANCE_M))
    return ProximityConfig(
        nearby_distance_m=nearby_distance,
        notification_interval_seconds=int(data.get(
            "notification_interval_seconds",
            DEFAULT_NOTIFICATION_INTERVAL_SECONDS,
        )),
        nearby_interval_seconds=int(data.get(
            "nearby_interval_seconds",
            DEFAULT_NEARBY_INTERVAL_SECONDS,
        )),
        wave_distance_m=float(data.get("wave_distance_m", nearby_distance * 2)),
        location_stale_age_seconds=int(data.get(
            "location_stale_age_seconds",
            DEFAULT_LOCATION_STALE_AGE_SECONDS,
        )),
        nearby_expiration_seconds=int(data.get("nearby_expiration_seconds", 60 * 30)),
        wave_expiration_seconds=int(data.get("wave_expiration_seconds", 60 * 60 * 24)),
    )


def _parse_push(
    data: dict[str, Any],
    secret_client: Optional[SecretManagerClient] = None,
) -> PushConfig:
    """Parse push gateway settings from config data."""
    return PushConfig(
        gateway_url=_resolve_value(data.get("gateway_url", ""), secret_client),
        api_key=_resolve_value(data.get("api_key", ""), secret_client),
        timeout_seconds=int(data.get("timeout_seconds", 10)),
        max_workers=int(data.get("max_workers", 8)),
    )


def load_config_from_dict(data: dict[str, Any]) -> Config:
    """Load configuration from a dictionary.

    This is a pure-ish function (only placeholder expansion has side effects).

    Args:
        data: Configuration dictionary

    Returns:
        Parsed Config object
    """
    # Get Secret Manager client for secret expansion
    secret_client = _get_secret_manager_client()

    return Config(
        proximity=_parse_proximity(data.get("proximity") or {}),
        push=_parse_push(data.get("push") or {}, secret_client),
        firestore_database=data.get("firestore_database"),
        firestore_collection=data.get("firestore_collection", "alerts"),
        refresh_stale_locations=bool(data.get("refresh_stale_locations", True)),
    )


def _log_validation(config: Config) -> None:
    result = validate_config(config)
    for warning in result.warnings:
        logger.warning("Config warning (%s): %s", warning.field, warning.message)
    for error in result.critical_errors:
        logger.error("Config error (%s): %s", error.field, error.message)


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file.

    This method performs file I/O.

    Args:
        config_path: Path to YAML config file.
                    If None, uses CONFIG_PATH env var or default.

    Returns:
        Parsed Config object

    Raises:
        yaml.YAMLError: If config file is invalid YAML
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config/config.yaml")

    path = Path(config_path)

    logger.info("Loading configuration from %s", path)

    if not path.exists():
        logger.warning("Config file not found: %s, using defaults", path)
        return Config()

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        logger.warning("Config file is empty, using defaults")
        return Config()

    config = load_config_from_dict(data)
    _log_validation(config)

    logger.info(
        "Loaded config: nearby %.0fm, cooldown %ds, collection %s",
        config.proximity.nearby_distance_m,
        config.proximity.notification_interval_seconds,
        config.firestore_collection,
    )

    return config


def load_config_from_env() -> Config:
    """Load configuration from environment variables.

    Useful for simple deployments without a YAML file.

    Environment variables:
        NEARBY_DISTANCE: Nearby radius in meters
        NOTIFICATION_INTERVAL: Cooldown between alerts for a pair (seconds)
        NEARBY_INTERVAL: Reserved confirmation window (seconds)
        PUSH_GATEWAY_URL: Push gateway endpoint
        PUSH_API_KEY: Push gateway token (or use Secret Manager)
        PUSH_API_KEY_SECRET: Secret name in Secret Manager (alternative to PUSH_API_KEY)
        FIRESTORE_DATABASE: Firestore database name
        FIRESTORE_COLLECTION: Firestore collection for alert records

    Returns:
        Config object from environment
    """
    secret_client = _get_secret_manager_client()
    api_key = None

    # Check if user specified a secret name
    secret_name = os.environ.get("PUSH_API_KEY_SECRET")
    if secret_client and secret_name:
        api_key = secret_client.get_secret(secret_name)
        if api_key:
            logger.info("Using push API key from Secret Manager")

    # Fall back to environment variable
    if not api_key:
        api_key = os.environ.get("PUSH_API_KEY", "")

    nearby_distance = float(os.environ.get("NEARBY_DISTANCE", DEFAULT_NEARBY_DISTANCE_M))

    proximity = ProximityConfig(
        nearby_distance_m=nearby_distance,
        notification_interval_seconds=int(os.environ.get(
            "NOTIFICATION_INTERVAL",
            DEFAULT_NOTIFICATION_INTERVAL_SECONDS,
        )),
        nearby_interval_seconds=int(os.environ.get(
            "NEARBY_INTERVAL",
            DEFAULT_NEARBY_INTERVAL_SECONDS,
        )),
        wave_distance_m=nearby_distance * 2,
    )

    push = PushConfig(
        gateway_url=os.environ.get("PUSH_GATEWAY_URL", ""),
        api_key=api_key.strip(),
    )

    config = Config(
        proximity=proximity,
        push=push,
        firestore_database=os.environ.get("FIRESTORE_DATABASE"),
        firestore_collection=os.environ.get("FIRESTORE_COLLECTION", "alerts"),
    )
    _log_validation(config)
    return config
