"""Configuration models - Pure data structures.

These are domain models for configuration. The actual loading
(I/O) is handled by the shell layer.
"""

from dataclasses import dataclass, field


# Max distance between nearby users
# 150 meters =~ 0.1 miles =~ 2 minute walk
DEFAULT_NEARBY_DISTANCE_M = 150.0

# Seconds before another alert can be sent about the same friend
DEFAULT_NOTIFICATION_INTERVAL_SECONDS = 60 * 30

# Reserved: seconds a friend must stay nearby before an alert is sent.
# Loaded and validated, but no transition consults it yet.
DEFAULT_NEARBY_INTERVAL_SECONDS = 60

# Seconds before a location is considered stale
DEFAULT_LOCATION_STALE_AGE_SECONDS = 60 * 5


@dataclass
class ProximityConfig:
    """Proximity and throttling rules.

    Attributes:
        nearby_distance_m: Max distance between nearby users
        notification_interval_seconds: Cooldown between alerts for a pair
        nearby_interval_seconds: Reserved confirmation window (unused)
        wave_distance_m: Max distance to wave at a non-best friend
        location_stale_age_seconds: Age after which a location is refreshed
        nearby_expiration_seconds: Push expiration for nearby alerts
        wave_expiration_seconds: Push expiration for waves
    """
    nearby_distance_m: float = DEFAULT_NEARBY_DISTANCE_M
    notification_interval_seconds: int = DEFAULT_NOTIFICATION_INTERVAL_SECONDS
    nearby_interval_seconds: int = DEFAULT_NEARBY_INTERVAL_SECONDS
    wave_distance_m: float = DEFAULT_NEARBY_DISTANCE_M * 2
    location_stale_age_seconds: int = DEFAULT_LOCATION_STALE_AGE_SECONDS
    nearby_expiration_seconds: int = 60 * 30
    wave_expiration_seconds: int = 60 * 60 * 24


@dataclass
class PushConfig:
    """Push gateway settings.

    Attributes:
        gateway_url: URL the push payloads are POSTed to
        api_key: Bearer token for the gateway
        timeout_seconds: Request timeout
        max_workers: Concurrent sends per cycle
    """
    gateway_url: str = ""
    api_key: str = ""
    timeout_seconds: int = 10
    max_workers: int = 8


@dataclass
class Config:
    """Application configuration.

    This is a pure data structure - no I/O or side effects.

    Attributes:
        proximity: Proximity and throttling rules
        push: Push gateway settings
        firestore_database: Firestore database name (None for default)
        firestore_collection: Firestore collection for alert records
        refresh_stale_locations: Ask nearby friends for fresh locations
    """
    proximity: ProximityConfig = field(default_factory=ProximityConfig)
    push: PushConfig = field(default_factory=PushConfig)
    firestore_database: str | None = None
    firestore_collection: str = "alerts"
    refresh_stale_locations: bool = True


@dataclass
class ValidationError:
    """A configuration validation error.

    Attributes:
        field: The field that has an error
        message: Human-readable error description
        severity: 'error' or 'warning'
    """
    field: str
    message: str
    severity: str = "error"


@dataclass
class ValidationResult:
    """Result of validating configuration.

    Attributes:
        valid: True if no errors (warnings are OK)
        errors: List of validation errors/warnings
    """
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def warnings(self) -> list[ValidationError]:
        """Get only warnings."""
        return [e for e in self.errors if e.severity == "warning"]

    @property
    def critical_errors(self) -> list[ValidationError]:
        """Get only critical errors."""
        return [e for e in self.errors if e.severity == "error"]


def _check_positive(value: float, field_name: str) -> list[ValidationError]:
    if value <= 0:
        return [ValidationError(
            field=field_name,
            message=f"Must be positive, got {value}",
        )]
    return []


def _check_non_negative(value: float, field_name: str) -> list[ValidationError]:
    if value < 0:
        return [ValidationError(
            field=field_name,
            message=f"Must not be negative, got {value}",
        )]
    return []


def validate_config(config: Config) -> ValidationResult:
    """Validate configuration for errors and warnings.

    Pure function.

    Args:
        config: Configuration to validate

    Returns:
        ValidationResult with any errors/warnings found
    """
    errors: list[ValidationError] = []
    proximity = config.proximity

    errors.extend(_check_positive(proximity.nearby_distance_m, "proximity.nearby_distance_m"))
    errors.extend(_check_positive(proximity.wave_distance_m, "proximity.wave_distance_m"))
    errors.extend(_check_non_negative(
        proximity.notification_interval_seconds,
        "proximity.notification_interval_seconds",
    ))
    errors.extend(_check_non_negative(
        proximity.nearby_interval_seconds,
        "proximity.nearby_interval_seconds",
    ))
    errors.extend(_check_non_negative(
        proximity.location_stale_age_seconds,
        "proximity.location_stale_age_seconds",
    ))
    errors.extend(_check_positive(
        proximity.nearby_expiration_seconds,
        "proximity.nearby_expiration_seconds",
    ))
    errors.extend(_check_positive(
        proximity.wave_expiration_seconds,
        "proximity.wave_expiration_seconds",
    ))

    if proximity.wave_distance_m < proximity.nearby_distance_m:
        errors.append(ValidationError(
            field="proximity.wave_distance_m",
            message=(
                f"Wave distance ({proximity.wave_distance_m}) is smaller than "
                f"nearby distance ({proximity.nearby_distance_m})"
            ),
            severity="warning",
        ))

    errors.extend(_check_positive(config.push.max_workers, "push.max_workers"))
    errors.extend(_check_positive(config.push.timeout_seconds, "push.timeout_seconds"))

    # Warn about missing gateway
    if not config.push.gateway_url or config.push.gateway_url.startswith("${"):
        errors.append(ValidationError(
            field="push.gateway_url",
            message="Push gateway URL not set (notifications will fail)",
            severity="warning",
        ))

    if config.push.api_key.startswith("${"):
        errors.append(ValidationError(
            field="push.api_key",
            message="Push API key not resolved (still contains placeholder)",
            severity="warning",
        ))

    if not config.firestore_collection:
        errors.append(ValidationError(
            field="firestore_collection",
            message="Firestore collection must not be empty",
        ))

    has_critical = any(e.severity == "error" for e in errors)

    return ValidationResult(
        valid=not has_critical,
        errors=errors,
    )
