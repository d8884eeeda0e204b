"""Message formatting - Pure functions.

This module formats proximity events into push notification intents.
All functions are pure with no side effects.
"""

from dataclasses import dataclass, field
from typing import Any

from src.core.alert import AlertRecord, pair_key
from src.core.user import User


NEARBY_FRIEND_TYPE = "nearbyFriend"
WAVE_TYPE = "wave"
UPDATE_LOCATION_TYPE = "updateLocation"

DEFAULT_WAVE_MESSAGE = "👋🏽"


@dataclass(frozen=True)
class NotificationIntent:
    """A notification to hand to the dispatcher.

    Not persisted; consumed immediately.

    Attributes:
        recipient_id: User who receives the push
        message: Alert text (empty for silent pushes)
        metadata: Push data (type, sender, expiration)
        record: Alert record the push is about, if any
    """
    recipient_id: str
    message: str
    metadata: dict[str, Any] = field(default_factory=dict)
    record: AlertRecord | None = None


def format_nearby_summary(friends: list[User]) -> str:
    """Format the message telling a user which friends are nearby.

    Pure function. The first friend is named and the rest are counted.
    Order is the caller's.

    Args:
        friends: Friends to mention, first one named

    Returns:
        Message text, or an empty string if there are no friends
    """
    if not friends:
        return ""

    first_name = friends[0].name
    others_count = len(friends) - 1

    if others_count > 1:
        return f"{first_name} and {others_count} other friends are nearby!"
    elif others_count == 1:
        return f"{first_name} and 1 other friend are nearby!"
    else:
        return f"{first_name} is nearby!"


def format_friend_nearby_message(user: User) -> str:
    """Format the message telling a friend that user is nearby.

    Pure function.
    """
    return f"{user.name} is nearby!"


def format_wave_message(sender: User, message: str | None = None) -> str:
    """Format a wave message.

    Pure function.
    """
    return f"{sender.name}: {message or DEFAULT_WAVE_MESSAGE}"


def build_nearby_notifications(
    user: User,
    friends: list[User],
    records: dict[str, AlertRecord],
    expiration_seconds: int,
) -> list[NotificationIntent]:
    """Build the pushes for one alert phase.

    Pure function. Each alerted friend hears about the user, and the
    user gets one summary naming the first friend.

    Args:
        user: User who ran the cycle
        friends: Friends being alerted, in caller order
        records: Records keyed by pair key
        expiration_seconds: Push expiration interval

    Returns:
        Notification intents, friend pushes first, summary last
    """
    if not friends:
        return []

    intents = [
        NotificationIntent(
            recipient_id=friend.id,
            message=format_friend_nearby_message(user),
            metadata={
                "type": NEARBY_FRIEND_TYPE,
                "senderId": user.id,
                "senderName": user.name,
                "expiration_interval": expiration_seconds,
            },
            record=records.get(pair_key(user.id, friend.id)),
        )
        for friend in friends
    ]

    first_friend = friends[0]
    intents.append(NotificationIntent(
        recipient_id=user.id,
        message=format_nearby_summary(friends),
        metadata={
            "type": NEARBY_FRIEND_TYPE,
            "senderId": first_friend.id,
            "senderName": first_friend.name,
            "expiration_interval": expiration_seconds,
        },
        record=records.get(pair_key(user.id, first_friend.id)),
    ))

    return intents


def build_wave_notification(
    sender: User,
    recipient: User,
    message: str | None,
    expiration_seconds: int,
) -> NotificationIntent:
    """Build the push for a wave.

    Pure function.
    """
    return NotificationIntent(
        recipient_id=recipient.id,
        message=format_wave_message(sender, message),
        metadata={
            "type": WAVE_TYPE,
            "sound": "default",
            "senderId": sender.id,
            "senderName": sender.name,
            "expiration_interval": expiration_seconds,
        },
    )


def build_location_requests(users: list[User]) -> list[NotificationIntent]:
    """Build silent pushes asking devices for a fresh location.

    Pure function.
    """
    return [
        NotificationIntent(
            recipient_id=u.id,
            message="",
            metadata={
                "content-available": 1,
                "type": UPDATE_LOCATION_TYPE,
            },
        )
        for u in users
    ]
