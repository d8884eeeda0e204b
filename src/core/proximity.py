"""Proximity classification - Pure functions.

This module decides which friends are nearby a user, which friends have
stale locations, and whether a wave is allowed. All functions are pure
with no side effects.
"""

from dataclasses import dataclass
from datetime import datetime

from src.core.geo import distance_between, is_within_radius
from src.core.user import User


class MissingLocationError(ValueError):
    """Raised when a user required to have a location has none."""


@dataclass(frozen=True)
class WaveDecision:
    """Result of checking whether a wave may be sent.

    Attributes:
        allowed: Whether the wave is allowed
        reason: Human-readable refusal (None if allowed)
    """
    allowed: bool
    reason: str | None = None


def classify_nearby(
    user: User,
    candidates: list[User],
    radius_m: float,
) -> list[User]:
    """Select the candidates within a radius of the user.

    Pure function. Candidate order is preserved; candidates without a
    location are never nearby.

    Args:
        user: The user whose surroundings are checked
        candidates: Friends to classify (already filtered upstream)
        radius_m: Nearby radius in meters (inclusive)

    Returns:
        Candidates within the radius

    Raises:
        MissingLocationError: If the user has no location
    """
    if user.location is None:
        raise MissingLocationError(f"User {user.id} has no location")

    return [
        candidate for candidate in candidates
        if candidate.location is not None
        and is_within_radius(candidate.location, user.location, radius_m)
    ]


def is_location_stale(
    user: User,
    now: datetime,
    stale_age_seconds: float,
) -> bool:
    """Check whether a user's location should be refreshed.

    Pure function. A missing location, or one without a timestamp, is
    stale.
    """
    if user.location is None or user.location.timestamp is None:
        return True
    age = (now - user.location.timestamp).total_seconds()
    return age > stale_age_seconds


def find_stale_locations(
    users: list[User],
    now: datetime,
    stale_age_seconds: float,
) -> list[User]:
    """Get users that should be asked for a fresh location.

    Pure function. Users hiding their location are never asked.

    Args:
        users: Users to check
        now: Current time (UTC)
        stale_age_seconds: Maximum acceptable location age

    Returns:
        Users with a missing or stale location
    """
    return [
        u for u in users
        if not u.hide_location and is_location_stale(u, now, stale_age_seconds)
    ]


def evaluate_wave(
    sender: User,
    recipient: User,
    wave_distance_m: float,
    is_best_friend: bool = False,
    blocked: bool = False,
) -> WaveDecision:
    """Decide whether sender may wave at recipient.

    Pure function. Best friends may wave at any distance; everyone else
    must be within the wave distance. Hidden or blocking recipients
    always refuse, with the same message so the reason is not leaked.

    Args:
        sender: User sending the wave
        recipient: User receiving the wave
        wave_distance_m: Maximum waving distance in meters
        is_best_friend: Whether sender and recipient are best friends
        blocked: Whether recipient has blocked sender

    Returns:
        WaveDecision
    """
    refusal = f"{recipient.short_name} is no longer nearby."

    if recipient.hide_location or blocked:
        return WaveDecision(allowed=False, reason=refusal)

    if not is_best_friend:
        if sender.location is None or recipient.location is None:
            return WaveDecision(allowed=False, reason=refusal)
        if distance_between(sender.location, recipient.location) > wave_distance_m:
            return WaveDecision(allowed=False, reason=refusal)

    return WaveDecision(allowed=True)
