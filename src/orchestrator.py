"""Orchestrator - Wires Functional Core and Imperative Shell.

This module coordinates the flow of data between the pure functional
core and the I/O-performing shell components. It's the "glue" that
makes the application work.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from src.core.alert import (
    AlertRecord,
    eligible_friend_ids,
    mark_sent,
    reconcile_nearby,
)
from src.core.config import Config
from src.core.formatter import (
    NotificationIntent,
    build_location_requests,
    build_nearby_notifications,
    build_wave_notification,
)
from src.core.proximity import classify_nearby, evaluate_wave, find_stale_locations
from src.core.user import User
from src.shell.firestore_client import AlertStoreError, FirestoreClient, FirestoreConfig
from src.shell.push_client import PushClient


logger = logging.getLogger(__name__)


@dataclass
class NotificationResult:
    """Result of dispatching a single notification.

    Attributes:
        intent: The notification that was dispatched
        success: Whether the push was accepted
        error: Error message if failed
    """
    intent: NotificationIntent
    success: bool
    error: str | None = None


@dataclass
class NearbyResult:
    """Result of a complete nearby-friends cycle.

    Attributes:
        nearby_friends: Friends within the nearby radius
        records_updated: Alert records written this cycle
        alerted_friend_ids: Friends marked as notified this cycle
        departed_friend_ids: Friends whose nearby episode ended this cycle
        notifications_sent: Successfully dispatched notifications
        notifications_failed: Failed notification attempts
        errors: Cycle-level errors (store failures)
    """
    nearby_friends: list[User]
    records_updated: int = 0
    alerted_friend_ids: list[str] = field(default_factory=list)
    departed_friend_ids: list[str] = field(default_factory=list)
    notifications_sent: list[NotificationResult] = field(default_factory=list)
    notifications_failed: list[NotificationResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Returns True if no cycle-level errors occurred."""
        return len(self.errors) == 0

    @property
    def summary(self) -> str:
        """Human-readable summary of the cycle result."""
        return (
            f"{len(self.nearby_friends)} friends nearby, "
            f"{self.records_updated} records updated, "
            f"{len(self.alerted_friend_ids)} alerted, "
            f"{len(self.notifications_sent)} notifications sent, "
            f"{len(self.notifications_failed)} failed"
        )


@dataclass
class WaveResult:
    """Result of sending a wave.

    Attributes:
        success: Whether the wave was delivered to the gateway
        error: Refusal or delivery error
        refused: Whether the wave was refused before sending
    """
    success: bool
    error: str | None = None
    refused: bool = False


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Orchestrator:
    """Coordinates proximity alerting.

    This class wires together:
    - Core functions (classification, lifecycle transitions, formatting)
    - Firestore client (alert record state)
    - Push client (sending notifications)
    """

    def __init__(
        self,
        config: Config,
        firestore_client: FirestoreClient | None = None,
        push_client: PushClient | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize orchestrator with configuration.

        Args:
            config: Application configuration
            firestore_client: Firestore client (created if not provided)
            push_client: Push client (created if not provided)
            clock: Returns the current UTC time (defaults to the system clock)
        """
        self.config = config
        self.firestore_client = firestore_client or FirestoreClient(
            FirestoreConfig(
                database=config.firestore_database,
                collection=config.firestore_collection,
            )
        )
        self.push_client = push_client or PushClient(
            gateway_url=config.push.gateway_url,
            api_key=config.push.api_key,
            timeout=config.push.timeout_seconds,
            max_workers=config.push.max_workers,
        )
        self.clock = clock or _utcnow

    def _persist(
        self,
        index: dict[str, AlertRecord],
        changed: list[AlertRecord],
    ) -> dict[str, AlertRecord]:
        """Write changed records and fold their new versions into the index."""
        written = self.firestore_client.batch_upsert(changed)
        updated = dict(index)
        for record in written:
            updated[record.key] = record
        return updated

    def _dispatch(
        self,
        intents: list[NotificationIntent],
    ) -> tuple[list[NotificationResult], list[NotificationResult]]:
        """Send notifications and split the outcomes.

        Returns:
            Tuple of (sent, failed)
        """
        sent: list[NotificationResult] = []
        failed: list[NotificationResult] = []

        responses = self.push_client.send_many(intents)
        for intent, response in zip(intents, responses):
            result = NotificationResult(
                intent=intent,
                success=response.success,
                error=response.error,
            )
            if result.success:
                sent.append(result)
            else:
                logger.error(
                    "Failed to notify %s: %s",
                    intent.recipient_id,
                    result.error,
                )
                failed.append(result)

        return sent, failed

    def _request_locations(self, users: list[User], now: datetime) -> None:
        """Ask friends with stale locations to report a fresh one."""
        stale = find_stale_locations(
            users,
            now,
            self.config.proximity.location_stale_age_seconds,
        )
        if not stale:
            return

        logger.info("Requesting updated locations from %d friends", len(stale))
        responses = self.push_client.send_many(build_location_requests(stale))
        for response in responses:
            if not response.success:
                logger.warning(
                    "Location request to %s failed: %s",
                    response.recipient_id,
                    response.error,
                )

    def process_nearby(
        self,
        user: User,
        candidates: list[User],
        alert_friend_ids: list[str] | None = None,
    ) -> NearbyResult:
        """Run a complete nearby-friends cycle for a user.

        This is the main entry point that:
        1. Classifies which candidates are nearby
        2. Reconciles the nearby set against stored alert records
        3. Marks the friends to alert as sent
        4. Sends notifications
        5. Asks friends with stale locations for fresh ones

        Args:
            user: User making the request (must have a location)
            candidates: Friends already filtered for hiding/blocking
            alert_friend_ids: Friends to alert this cycle
                             (None alerts every eligible nearby friend)

        Returns:
            NearbyResult with details of what happened

        Raises:
            MissingLocationError: If the user has no location
        """
        proximity = self.config.proximity
        now = self.clock()

        # Step 1: Classify (pure core function)
        nearby = classify_nearby(user, candidates, proximity.nearby_distance_m)
        nearby_by_id = {friend.id: friend for friend in nearby}
        nearby_ids = list(nearby_by_id)

        logger.info(
            "%d of %d friends nearby user %s",
            len(nearby),
            len(candidates),
            user.id,
        )

        # Step 2: Reconcile apart/nearby transitions
        try:
            existing = self.firestore_client.find_records_involving(user.id)
            plan = reconcile_nearby(
                user.id,
                nearby_ids,
                existing,
                now,
                proximity.notification_interval_seconds,
            )
            index = self._persist(plan.records, plan.changed)
        except AlertStoreError as e:
            error_msg = f"Failed to reconcile alerts: {e}"
            logger.error(error_msg)
            return NearbyResult(nearby_friends=nearby, errors=[error_msg])

        records_updated = len(plan.changed)
        departed = [
            record.counterpart(user.id)
            for record in plan.changed
            if not record.currently_nearby
        ]
        if departed:
            logger.info("%d friends left user %s", len(departed), user.id)

        # Step 3: Mark friends to alert as sent
        if alert_friend_ids is None:
            selected = eligible_friend_ids(
                index,
                user.id,
                nearby_ids,
                now,
                proximity.notification_interval_seconds,
            )
        else:
            selected = [fid for fid in alert_friend_ids if fid in nearby_by_id]

        send_plan = mark_sent(
            index,
            user.id,
            selected,
            now,
            proximity.notification_interval_seconds,
        )

        if send_plan.skipped_ids:
            logger.info(
                "Skipped %d friends not eligible for alerts",
                len(send_plan.skipped_ids),
            )

        try:
            index = self._persist(send_plan.records, send_plan.changed)
        except AlertStoreError as e:
            error_msg = f"Failed to record sent alerts: {e}"
            logger.error(error_msg)
            return NearbyResult(
                nearby_friends=nearby,
                records_updated=records_updated,
                departed_friend_ids=departed,
                errors=[error_msg],
            )

        records_updated += len(send_plan.changed)

        # Step 4: Send notifications
        alerted_friends = [nearby_by_id[fid] for fid in send_plan.alerted_ids]
        intents = build_nearby_notifications(
            user,
            alerted_friends,
            index,
            proximity.nearby_expiration_seconds,
        )
        sent, failed = self._dispatch(intents)

        # Step 5: Refresh stale locations
        if self.config.refresh_stale_locations:
            self._request_locations(nearby, now)

        result = NearbyResult(
            nearby_friends=nearby,
            records_updated=records_updated,
            alerted_friend_ids=send_plan.alerted_ids,
            departed_friend_ids=departed,
            notifications_sent=sent,
            notifications_failed=failed,
        )
        logger.info("Nearby cycle for %s: %s", user.id, result.summary)
        return result

    def wave(
        self,
        sender: User,
        recipient: User,
        message: str | None = None,
        is_best_friend: bool = False,
        blocked: bool = False,
    ) -> WaveResult:
        """Send a wave from sender to recipient.

        Args:
            sender: User sending the wave
            recipient: Friend receiving the wave
            message: Optional wave text (defaults to a waving hand)
            is_best_friend: Whether the two are best friends
            blocked: Whether recipient has blocked sender

        Returns:
            WaveResult
        """
        decision = evaluate_wave(
            sender,
            recipient,
            self.config.proximity.wave_distance_m,
            is_best_friend=is_best_friend,
            blocked=blocked,
        )
        if not decision.allowed:
            logger.info("Wave from %s to %s refused", sender.id, recipient.id)
            return WaveResult(success=False, error=decision.reason, refused=True)

        intent = build_wave_notification(
            sender,
            recipient,
            message,
            self.config.proximity.wave_expiration_seconds,
        )
        response = self.push_client.send_intent(intent)
        if not response.success:
            logger.error("Failed to send wave to %s: %s", recipient.id, response.error)
        return WaveResult(success=response.success, error=response.error)
