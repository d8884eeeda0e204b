"""Alert lifecycle logic - Pure functions.

This module owns the per-pair proximity state machine:

- Apart: no record, or currently_nearby=False
- Nearby-Unsent: currently_nearby=True, sent=False
- Nearby-Sent: currently_nearby=True, sent=True

A cycle runs in two ordered phases. reconcile_nearby() applies the
apart/nearby transitions against the fresh nearby set; mark_sent() then
marks eligible pairs as notified. Phase two depends on the sent flag
written by phase one, so the phases must not be fused.

Records are immutable. Every function returns new records and never
modifies its inputs. Persistence is handled by the imperative shell.
"""

import hashlib
import json
from dataclasses import dataclass, field, replace
from datetime import datetime


@dataclass(frozen=True)
class AlertRecord:
    """Proximity/notification state between two users.

    The orientation (from_user, to_user) is fixed when the record is
    created and never swapped.

    Attributes:
        from_user: User who first detected the proximity
        to_user: The other user of the pair
        currently_nearby: Whether the pair was nearby at the last cycle
        sent: Whether a notification went out for the current episode
        last_sent: Time of the most recent notification, across episodes
        update_time: Store version of the record (None if never persisted)
    """
    from_user: str
    to_user: str
    currently_nearby: bool = True
    sent: bool = False
    last_sent: datetime | None = None
    update_time: datetime | None = None

    @property
    def key(self) -> str:
        """Canonical key of the unordered pair."""
        return pair_key(self.from_user, self.to_user)

    @property
    def is_new(self) -> bool:
        """Whether this record has never been persisted."""
        return self.update_time is None

    def includes_user(self, user_id: str) -> bool:
        """Check if the user is one side of this pair."""
        return user_id in (self.from_user, self.to_user)

    def counterpart(self, user_id: str) -> str:
        """Return the other user of the pair."""
        return self.to_user if self.from_user == user_id else self.from_user


@dataclass(frozen=True)
class ReconciliationPlan:
    """Result of reconciling a fresh nearby set against stored records.

    Attributes:
        records: Post-transition records keyed by pair key
        changed: Records that must be persisted, in transition order
    """
    records: dict[str, AlertRecord]
    changed: list[AlertRecord] = field(default_factory=list)


@dataclass(frozen=True)
class SendPlan:
    """Result of marking friends as notified.

    Attributes:
        records: Post-transition records keyed by pair key
        changed: Records that must be persisted
        alerted_ids: Friends that were marked sent, in caller order
        skipped_ids: Friends that were not eligible
    """
    records: dict[str, AlertRecord]
    changed: list[AlertRecord] = field(default_factory=list)
    alerted_ids: list[str] = field(default_factory=list)
    skipped_ids: list[str] = field(default_factory=list)


def pair_key(user_a: str, user_b: str) -> str:
    """Build the canonical key for an unordered user pair.

    Pure function. User ids are opaque, so the key is a digest of the
    sorted pair rather than a joined string. It never contains "/" and
    is safe as a Firestore document id.
    """
    encoded = json.dumps(sorted((user_a, user_b)), ensure_ascii=True)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def index_records(records: list[AlertRecord]) -> dict[str, AlertRecord]:
    """Build a pair-keyed mapping of records.

    Pure function. If the store returns duplicates for a pair, the first
    one wins.
    """
    index: dict[str, AlertRecord] = {}
    for record in records:
        index.setdefault(record.key, record)
    return index


def recently_sent(
    record: AlertRecord,
    now: datetime,
    interval_seconds: float,
) -> bool:
    """Check if a notification for this pair is inside the cooldown.

    Pure function.

    Args:
        record: Alert record to check
        now: Current time
        interval_seconds: Notification cooldown in seconds

    Returns:
        True if last_sent is set and less than interval_seconds ago
    """
    if record.last_sent is None:
        return False
    elapsed = (now - record.last_sent).total_seconds()
    return elapsed < interval_seconds


def should_send(
    record: AlertRecord,
    now: datetime,
    interval_seconds: float,
) -> bool:
    """Check if a notification may be sent for this pair.

    Pure function.
    """
    return (
        record.currently_nearby
        and not record.sent
        and not recently_sent(record, now, interval_seconds)
    )


def reconcile_nearby(
    user_id: str,
    nearby_ids: list[str],
    existing: list[AlertRecord],
    now: datetime,
    interval_seconds: float,
) -> ReconciliationPlan:
    """Apply apart/nearby transitions for one cycle.

    Pure function.

    1. Friends in the nearby set that were apart enter Nearby. A pair
       inside the cooldown enters already spent (sent=True) so it is not
       re-evaluated every cycle.
    2. Pairs that were nearby but are no longer in the nearby set return
       to Apart, which clears the sent flag. last_sent is kept.

    Pairs that stay nearby or stay apart are untouched, so running this
    twice with the same nearby set changes nothing the second time.

    Args:
        user_id: The user running the cycle
        nearby_ids: Friends currently within the nearby radius
        existing: Stored records involving the user
        now: Current time
        interval_seconds: Notification cooldown in seconds

    Returns:
        ReconciliationPlan with the full post-transition index
    """
    index = index_records([r for r in existing if r.includes_user(user_id)])
    changed: list[AlertRecord] = []
    nearby_keys: set[str] = set()

    for friend_id in nearby_ids:
        if friend_id == user_id:
            continue
        key = pair_key(user_id, friend_id)
        if key in nearby_keys:
            continue
        nearby_keys.add(key)

        record = index.get(key)
        if record is None:
            record = AlertRecord(
                from_user=user_id,
                to_user=friend_id,
                currently_nearby=True,
                sent=False,
                last_sent=None,
            )
        elif not record.currently_nearby:
            record = replace(
                record,
                currently_nearby=True,
                sent=recently_sent(record, now, interval_seconds),
            )
        else:
            continue

        index[key] = record
        changed.append(record)

    for key, record in list(index.items()):
        if record.currently_nearby and key not in nearby_keys:
            record = replace(record, currently_nearby=False, sent=False)
            index[key] = record
            changed.append(record)

    return ReconciliationPlan(records=index, changed=changed)


def eligible_friend_ids(
    records: dict[str, AlertRecord],
    user_id: str,
    friend_ids: list[str],
    now: datetime,
    interval_seconds: float,
) -> list[str]:
    """Get the friends whose pair currently passes should_send.

    Pure function. Caller order is preserved.
    """
    eligible = []
    for friend_id in friend_ids:
        record = records.get(pair_key(user_id, friend_id))
        if record is not None and should_send(record, now, interval_seconds):
            eligible.append(friend_id)
    return eligible


def mark_sent(
    records: dict[str, AlertRecord],
    user_id: str,
    friend_ids: list[str],
    now: datetime,
    interval_seconds: float,
) -> SendPlan:
    """Mark the selected friends as notified.

    Pure function. Each eligible pair moves from Nearby-Unsent to
    Nearby-Sent with last_sent=now. Friends without a record or failing
    should_send are skipped.

    Args:
        records: Records keyed by pair key (output of reconcile_nearby)
        user_id: The user running the cycle
        friend_ids: Friends selected for alerting, in caller order
        now: Current time
        interval_seconds: Notification cooldown in seconds

    Returns:
        SendPlan with updated index and the alerted friends
    """
    index = dict(records)
    changed: list[AlertRecord] = []
    alerted: list[str] = []
    skipped: list[str] = []

    for friend_id in friend_ids:
        key = pair_key(user_id, friend_id)
        record = index.get(key)
        if record is None or not should_send(record, now, interval_seconds):
            skipped.append(friend_id)
            continue

        record = replace(record, sent=True, last_sent=now)
        index[key] = record
        changed.append(record)
        alerted.append(friend_id)

    return SendPlan(
        records=index,
        changed=changed,
        alerted_ids=alerted,
        skipped_ids=skipped,
    )


def check_invariants(record: AlertRecord) -> list[str]:
    """Get invariant violations for a record.

    Pure function.

    Returns:
        List of violation descriptions (empty if valid)
    """
    violations = []

    if record.from_user == record.to_user:
        violations.append(f"Record {record.key} pairs a user with themselves")

    if record.sent and record.last_sent is None:
        violations.append(f"Record {record.key} is sent but has no last_sent")

    if not record.currently_nearby and record.sent:
        violations.append(f"Record {record.key} is apart but still marked sent")

    return violations
