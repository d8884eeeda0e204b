"""Cloud Function Entry Point.

This module provides the entry points for Google Cloud Functions.
They are thin wrappers that parse the request, load configuration and
invoke the orchestrator.
"""

import logging
import os
from typing import Any

import functions_framework
from flask import Request

from src.core.config import Config
from src.core.user import parse_user, parse_users, user_to_dict
from src.orchestrator import Orchestrator
from src.shell.config_loader import load_config, load_config_from_env


# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


NO_USER_MESSAGE = "Request does not have an associated user."
NO_LOCATION_MESSAGE = "User's location is not set."
INVALID_BODY_MESSAGE = "Request body must be a JSON object."


def _get_config() -> Config:
    """Load configuration from file or environment."""
    config_path = os.environ.get("CONFIG_PATH")

    if config_path:
        return load_config(config_path)
    elif os.environ.get("PUSH_GATEWAY_URL"):
        # Simple env-based config
        return load_config_from_env()
    else:
        # Try default config path
        return load_config()


def _error(message: str, status_code: int) -> tuple[dict[str, Any], int]:
    return {"status": "error", "message": message}, status_code


def _get_body(request: Request) -> dict[str, Any] | None:
    """Get the JSON object body, or None if the body is not an object."""
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        return None
    return body


@functions_framework.http
def nearby_friends(request: Request) -> tuple[dict[str, Any], int]:
    """HTTP Cloud Function entry point for a nearby-friends cycle.

    Expected JSON body:
        user: The requesting user, with a location
        friends: Candidate friends, already filtered for hidden/blocked
        alertFriendIds: Optional subset of friends to alert

    Args:
        request: Flask request object

    Returns:
        Tuple of (response dict, HTTP status code)
    """
    body = _get_body(request)
    if body is None:
        return _error(INVALID_BODY_MESSAGE, 400)

    user = parse_user(body.get("user"))
    if user is None:
        return _error(NO_USER_MESSAGE, 400)
    if user.location is None:
        return _error(NO_LOCATION_MESSAGE, 400)

    raw_friends = body.get("friends")
    if raw_friends is not None and not isinstance(raw_friends, list):
        return _error("friends must be a list.", 400)
    friends = parse_users(raw_friends)

    alert_friend_ids = body.get("alertFriendIds")
    if alert_friend_ids is not None:
        if not isinstance(alert_friend_ids, list):
            return _error("alertFriendIds must be a list.", 400)
        alert_friend_ids = [str(fid) for fid in alert_friend_ids]

    logger.info("Starting nearby cycle for user %s", user.id)

    try:
        config = _get_config()
        orchestrator = Orchestrator(config)
        result = orchestrator.process_nearby(user, friends, alert_friend_ids)

        if not result.success:
            return _error("; ".join(result.errors), 500)

        response = {
            "status": "success" if not result.notifications_failed else "partial_failure",
            "summary": result.summary,
            "nearbyFriends": [user_to_dict(f) for f in result.nearby_friends],
            "alertedFriendIds": result.alerted_friend_ids,
            "departedFriendIds": result.departed_friend_ids,
            "notificationsSent": len(result.notifications_sent),
            "notificationsFailed": len(result.notifications_failed),
        }

        if result.notifications_failed:
            response["failedRecipients"] = [
                r.intent.recipient_id for r in result.notifications_failed
            ]

        logger.info("Completed: %s", result.summary)

        status_code = 207 if result.notifications_failed else 200  # 207 = Multi-Status
        return response, status_code

    except Exception as e:
        logger.exception("Unexpected error in nearby friends cycle")
        return _error(str(e), 500)


@functions_framework.http
def wave(request: Request) -> tuple[dict[str, Any], int]:
    """HTTP Cloud Function entry point for waving at a friend.

    Expected JSON body:
        sender: The requesting user
        recipient: The friend to wave at
        message: Optional wave text
        bestFriend: Whether sender and recipient are best friends
        blocked: Whether recipient has blocked sender

    Args:
        request: Flask request object

    Returns:
        Tuple of (response dict, HTTP status code)
    """
    body = _get_body(request)
    if body is None:
        return _error(INVALID_BODY_MESSAGE, 400)

    sender = parse_user(body.get("sender"))
    if sender is None:
        return _error(NO_USER_MESSAGE, 400)

    recipient = parse_user(body.get("recipient"))
    if recipient is None:
        return _error("No friend found.", 404)

    try:
        config = _get_config()
        orchestrator = Orchestrator(config)
        result = orchestrator.wave(
            sender,
            recipient,
            message=body.get("message"),
            is_best_friend=bool(body.get("bestFriend", False)),
            blocked=bool(body.get("blocked", False)),
        )

        if result.refused:
            return _error(result.error or "Wave refused", 400)
        if not result.success:
            return _error(result.error or "Wave failed", 502)

        return {"status": "success"}, 200

    except Exception as e:
        logger.exception("Unexpected error sending wave")
        return _error(str(e), 500)
