"""User data models and parsing - Pure functions.

This module handles parsing request payloads into typed User objects.
The social graph lives elsewhere; a User here is only the slice of
profile data the proximity logic needs.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from src.core.geo import Location


@dataclass(frozen=True)
class User:
    """Immutable user data model.

    Attributes:
        id: Opaque user identifier
        name: Display name used in notifications
        first_name: First name used in short messages
        location: Last reported location (None if never reported)
        hide_location: Whether the user hides their location from friends
    """
    id: str
    name: str
    first_name: str = ""
    location: Location | None = None
    hide_location: bool = False

    @property
    def short_name(self) -> str:
        """First name, falling back to the display name."""
        return self.first_name or self.name


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a location timestamp.

    Accepts seconds since epoch (int/float) or an ISO-8601 string.
    Naive datetimes are assumed to be UTC.

    Pure function.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value, tz=timezone.utc)
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_location(data: dict[str, Any] | None) -> Location | None:
    """Parse a location payload into a Location.

    Pure function: returns None for missing or malformed data.

    Args:
        data: Dict with latitude, longitude and optional timestamp

    Returns:
        Location object or None
    """
    if not data:
        return None

    try:
        return Location(
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            timestamp=parse_timestamp(data.get("timestamp")),
        )
    except (KeyError, TypeError, ValueError, OverflowError, OSError):
        return None


def parse_user(data: dict[str, Any]) -> User | None:
    """Parse a single user payload into a User.

    Pure function: takes raw dict, returns typed User or None if invalid.

    Args:
        data: User dict from the request body

    Returns:
        User object or None if the id is missing
    """
    if not isinstance(data, dict):
        return None

    user_id = data.get("id") or data.get("objectId")
    if not user_id:
        return None

    name = data.get("name") or ""
    return User(
        id=str(user_id),
        name=name,
        first_name=data.get("firstName") or data.get("first_name") or "",
        location=parse_location(data.get("location")),
        hide_location=bool(data.get("hideLocation", data.get("hide_location", False))),
    )


def parse_users(items: list[dict[str, Any]] | None) -> list[User]:
    """Parse a list of user payloads.

    Pure function: skips invalid entries and duplicate ids, keeps order.
    """
    users: list[User] = []
    seen: set[str] = set()
    for item in items or []:
        user = parse_user(item)
        if user is not None and user.id not in seen:
            seen.add(user.id)
            users.append(user)
    return users


def user_to_dict(user: User) -> dict[str, Any]:
    """Serialize a user for a response payload.

    Pure function.
    """
    data: dict[str, Any] = {
        "id": user.id,
        "name": user.name,
    }
    if user.first_name:
        data["firstName"] = user.first_name
    if user.location is not None and not user.hide_location:
        data["location"] = {
            "latitude": user.location.latitude,
            "longitude": user.location.longitude,
        }
        if user.location.timestamp is not None:
            data["location"]["timestamp"] = user.location.timestamp.timestamp()
    return data
