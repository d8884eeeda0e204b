#!/usr/bin/env python3
"""Send a test push notification to one user.

⚠️  WARNING: This script sends a REAL notification through the configured
    push gateway to the given user's devices.

The notification is built with the same formatters as production pushes.
A [TEST] marker is added to the alert text.

Usage:
    # Dry run (preview only, no send)
    python scripts/send_test_push.py USER_ID --dry-run

    # Nearby alert as if "Test Friend" were nearby
    python scripts/send_test_push.py USER_ID

    # Wave with a custom message
    python scripts/send_test_push.py USER_ID --kind wave --message "hello"

    # Silent location request
    python scripts/send_test_push.py USER_ID --kind location

Environment:
    CONFIG_PATH: Path to config file (default: config/config.yaml)
    PUSH_GATEWAY_URL: Use environment configuration instead of a file
    GCP_PROJECT: GCP project ID for Secret Manager access
"""

import argparse
import json
import logging
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.core.formatter import (
    NotificationIntent,
    build_location_requests,
    build_nearby_notifications,
    build_wave_notification,
)
from src.core.user import User
from src.shell.config_loader import load_config, load_config_from_env
from src.shell.push_client import PushClient, build_payload

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


TEST_SENDER = User(id="test-sender", name="Test Friend", first_name="Test")


def build_test_intent(kind: str, recipient: User, config, message: str | None) -> NotificationIntent:
    """Build the notification for the requested kind."""
    proximity = config.proximity

    if kind == "wave":
        intent = build_wave_notification(
            TEST_SENDER,
            recipient,
            message,
            proximity.wave_expiration_seconds,
        )
    elif kind == "location":
        return build_location_requests([recipient])[0]
    else:
        # First intent goes to the friend, which is our recipient
        intent = build_nearby_notifications(
            TEST_SENDER,
            [recipient],
            {},
            proximity.nearby_expiration_seconds,
        )[0]

    return NotificationIntent(
        recipient_id=intent.recipient_id,
        message=f"[TEST] {intent.message}",
        metadata=intent.metadata,
    )


def main():
    parser = argparse.ArgumentParser(
        description="Send a test push notification to one user",
        epilog="⚠️  WARNING: This sends a REAL notification! Use --dry-run first.",
    )
    parser.add_argument("user_id", help="Recipient user id")
    parser.add_argument(
        "--kind",
        choices=["nearby", "wave", "location"],
        default="nearby",
        help="Notification kind (default: nearby)",
    )
    parser.add_argument(
        "--message",
        type=str,
        default=None,
        help="Wave text (default: waving hand)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the payload without sending",
    )
    args = parser.parse_args()

    if os.environ.get("PUSH_GATEWAY_URL") and not os.environ.get("CONFIG_PATH"):
        config = load_config_from_env()
    else:
        config = load_config()

    recipient = User(id=args.user_id, name=args.user_id)
    intent = build_test_intent(args.kind, recipient, config, args.message)
    payload = build_payload(intent.recipient_id, intent.message, intent.metadata)

    if args.dry_run:
        logger.info("DRY RUN - Would send to %s:", config.push.gateway_url or "<no gateway>")
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0

    client = PushClient(
        gateway_url=config.push.gateway_url,
        api_key=config.push.api_key,
        timeout=config.push.timeout_seconds,
    )
    response = client.send_intent(intent)

    if response.success:
        logger.info("  ✓ Test %s push sent to %s", args.kind, args.user_id)
        return 0

    logger.error("  ✗ Failed to send test push: %s", response.error)
    return 1


if __name__ == "__main__":
    sys.exit(main())
