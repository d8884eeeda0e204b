"""Functional Core - Pure functions with no side effects.

This module contains all business logic as pure functions:
- User and location parsing
- Geo/distance calculations
- Proximity classification
- Alert lifecycle transitions and throttling
- Message formatting

All functions here are deterministic and have no I/O.
"""

from src.core.user import User, parse_user, parse_users
from src.core.geo import Location, calculate_distance, is_within_radius
from src.core.proximity import classify_nearby, find_stale_locations, evaluate_wave
from src.core.alert import (
    AlertRecord,
    pair_key,
    should_send,
    reconcile_nearby,
    mark_sent,
)
from src.core.formatter import NotificationIntent, format_nearby_summary

__all__ = [
    # User
    "User",
    "parse_user",
    "parse_users",
    # Geo
    "Location",
    "calculate_distance",
    "is_within_radius",
    # Proximity
    "classify_nearby",
    "find_stale_locations",
    "evaluate_wave",
    # Alert
    "AlertRecord",
    "pair_key",
    "should_send",
    "reconcile_nearby",
    "mark_sent",
    # Formatter
    "NotificationIntent",
    "format_nearby_summary",
]
