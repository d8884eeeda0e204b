"""Unit tests for configuration validation.

Pure function tests - no mocks needed.
"""

from src.core.config import (
    Config,
    ProximityConfig,
    PushConfig,
    validate_config,
)


def _configured(**proximity) -> Config:
    return Config(
        proximity=ProximityConfig(**proximity),
        push=PushConfig(gateway_url="https://push.example.com/send", api_key="k"),
    )


class TestDefaults:
    """Tests for default configuration values."""

    def test_reference_defaults(self):
        """Defaults match the reference deployment."""
        proximity = ProximityConfig()
        assert proximity.nearby_distance_m == 150
        assert proximity.notification_interval_seconds == 1800
        assert proximity.nearby_interval_seconds == 60
        assert proximity.wave_distance_m == 300
        assert proximity.location_stale_age_seconds == 300
        assert proximity.nearby_expiration_seconds == 1800
        assert proximity.wave_expiration_seconds == 86400


class TestValidateConfig:
    """Tests for validate_config() function."""

    def test_valid_config(self):
        """A fully configured setup has no errors or warnings."""
        result = validate_config(_configured())
        assert result.valid is True
        assert result.errors == []

    def test_negative_distance_is_error(self):
        """Nearby distance must be positive."""
        result = validate_config(_configured(nearby_distance_m=-1))
        assert result.valid is False
        assert any(e.field == "proximity.nearby_distance_m" for e in result.critical_errors)

    def test_negative_interval_is_error(self):
        """Cooldown cannot be negative."""
        result = validate_config(_configured(notification_interval_seconds=-5))
        assert result.valid is False

    def test_zero_interval_is_allowed(self):
        """A zero cooldown disables throttling."""
        result = validate_config(_configured(notification_interval_seconds=0))
        assert result.valid is True

    def test_small_wave_distance_warns(self):
        """Wave distance below nearby distance is suspicious but allowed."""
        result = validate_config(_configured(nearby_distance_m=150, wave_distance_m=100))
        assert result.valid is True
        assert [w.field for w in result.warnings] == ["proximity.wave_distance_m"]

    def test_missing_gateway_warns(self):
        """A missing push gateway is a warning."""
        result = validate_config(Config())
        assert result.valid is True
        assert any(w.field == "push.gateway_url" for w in result.warnings)

    def test_unresolved_api_key_warns(self):
        """Unresolved placeholders are reported."""
        config = Config(push=PushConfig(
            gateway_url="https://push.example.com/send",
            api_key="${secret:push-key}",
        ))
        result = validate_config(config)
        assert any(w.field == "push.api_key" for w in result.warnings)

    def test_empty_collection_is_error(self):
        """Alert records need a collection."""
        config = _configured()
        config.firestore_collection = ""
        assert validate_config(config).valid is False
