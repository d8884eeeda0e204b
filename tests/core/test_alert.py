"""Unit tests for the alert lifecycle.

Pure function tests - no mocks needed.
"""

import pytest
from datetime import datetime, timedelta, timezone

from src.core.alert import (
    AlertRecord,
    check_invariants,
    eligible_friend_ids,
    index_records,
    mark_sent,
    pair_key,
    recently_sent,
    reconcile_nearby,
    should_send,
)


INTERVAL = 1800
T = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def assert_invariants(records):
    """Every record must satisfy the lifecycle invariants."""
    for record in records:
        assert check_invariants(record) == []


@pytest.fixture
def nearby_sent_record():
    """A-B pair nearby and already notified at T."""
    return AlertRecord(
        from_user="A",
        to_user="B",
        currently_nearby=True,
        sent=True,
        last_sent=T,
        update_time=T,
    )


class TestPairKey:
    """Tests for pair_key() function."""

    def test_is_order_independent(self):
        """Both orientations of a pair share one key."""
        assert pair_key("A", "B") == pair_key("B", "A")

    def test_distinct_pairs_have_distinct_keys(self):
        """Different pairs get different keys."""
        assert pair_key("A", "B") != pair_key("A", "C")

    def test_ids_containing_separators_do_not_collide(self):
        """Ids with underscores or slashes never merge two pairs."""
        assert pair_key("a_b", "c") != pair_key("a", "b_c")
        assert pair_key("a/b", "c") != pair_key("a", "b/c")

    def test_key_is_safe_document_id(self):
        """Keys contain no path separators."""
        assert "/" not in pair_key("users/a", "users/b")

    def test_reconcile_keeps_lookalike_pairs_apart(self):
        """A stored (a_b, c) record is not mistaken for the (a, b_c) pair."""
        stored = AlertRecord(from_user="a_b", to_user="c", update_time=T)

        plan = reconcile_nearby("a", ["b_c"], [stored], T, 1800)

        created = plan.changed[0]
        assert created.is_new
        assert created.key != stored.key
        assert stored.key not in plan.records

    def test_record_key_matches_pair_key(self):
        """Record key ignores orientation."""
        record = AlertRecord(from_user="Z", to_user="A")
        assert record.key == pair_key("A", "Z")


class TestAlertRecord:
    """Tests for AlertRecord helpers."""

    def test_includes_both_users(self):
        """Both sides of the pair are included."""
        record = AlertRecord(from_user="A", to_user="B")
        assert record.includes_user("A")
        assert record.includes_user("B")
        assert not record.includes_user("C")

    def test_counterpart(self):
        """Counterpart is the other side of the pair."""
        record = AlertRecord(from_user="A", to_user="B")
        assert record.counterpart("A") == "B"
        assert record.counterpart("B") == "A"

    def test_new_until_persisted(self):
        """A record without update_time has never been stored."""
        assert AlertRecord(from_user="A", to_user="B").is_new
        assert not AlertRecord(from_user="A", to_user="B", update_time=T).is_new


class TestIndexRecords:
    """Tests for index_records() function."""

    def test_keys_by_pair(self, nearby_sent_record):
        """Records are reachable by canonical pair key."""
        index = index_records([nearby_sent_record])
        assert index[pair_key("B", "A")] is nearby_sent_record

    def test_first_duplicate_wins(self, nearby_sent_record):
        """Duplicate pairs keep the first record."""
        duplicate = AlertRecord(from_user="B", to_user="A", currently_nearby=False)
        index = index_records([nearby_sent_record, duplicate])
        assert len(index) == 1
        assert index[pair_key("A", "B")] is nearby_sent_record


class TestRecentlySent:
    """Tests for recently_sent() function."""

    def test_never_sent(self):
        """A record without last_sent was not recently sent."""
        record = AlertRecord(from_user="A", to_user="B")
        assert recently_sent(record, T, INTERVAL) is False

    def test_inside_cooldown(self, nearby_sent_record):
        """100 seconds after a send is inside the cooldown."""
        assert recently_sent(nearby_sent_record, T + timedelta(seconds=100), INTERVAL) is True

    def test_boundary_is_outside_cooldown(self, nearby_sent_record):
        """Exactly one interval later the cooldown has expired."""
        assert recently_sent(nearby_sent_record, T + timedelta(seconds=INTERVAL), INTERVAL) is False

    def test_after_cooldown(self, nearby_sent_record):
        """1900 seconds after a send is outside the cooldown."""
        assert recently_sent(nearby_sent_record, T + timedelta(seconds=1900), INTERVAL) is False


class TestShouldSend:
    """Tests for should_send() function."""

    def test_nearby_unsent_never_notified(self):
        """Fresh nearby pair is eligible."""
        record = AlertRecord(from_user="A", to_user="B")
        assert should_send(record, T, INTERVAL) is True

    def test_already_sent(self, nearby_sent_record):
        """Sent pairs are not eligible again in the same episode."""
        later = T + timedelta(hours=5)
        assert should_send(nearby_sent_record, later, INTERVAL) is False

    def test_apart(self):
        """Apart pairs are never eligible."""
        record = AlertRecord(from_user="A", to_user="B", currently_nearby=False)
        assert should_send(record, T, INTERVAL) is False

    def test_unsent_inside_cooldown(self):
        """Nearby and unsent but inside the cooldown is not eligible."""
        record = AlertRecord(from_user="A", to_user="B", sent=False, last_sent=T)
        assert should_send(record, T + timedelta(seconds=100), INTERVAL) is False


class TestReconcileNearby:
    """Tests for reconcile_nearby() function."""

    def test_creates_record_for_new_nearby_friend(self):
        """First detected proximity creates a Nearby-Unsent record."""
        plan = reconcile_nearby("A", ["B"], [], T, INTERVAL)

        assert len(plan.changed) == 1
        record = plan.changed[0]
        assert record.from_user == "A"
        assert record.to_user == "B"
        assert record.currently_nearby is True
        assert record.sent is False
        assert record.last_sent is None
        assert record.is_new

    def test_no_record_for_friends_not_nearby(self):
        """Apart friends without a record stay without a record."""
        plan = reconcile_nearby("A", ["B"], [], T, INTERVAL)
        assert pair_key("A", "C") not in plan.records

    def test_episode_end_clears_sent(self, nearby_sent_record):
        """A friend moving away returns the pair to Apart."""
        plan = reconcile_nearby("A", [], [nearby_sent_record], T + timedelta(minutes=5), INTERVAL)

        assert len(plan.changed) == 1
        record = plan.changed[0]
        assert record.currently_nearby is False
        assert record.sent is False
        assert record.last_sent == T
        assert_invariants(plan.records.values())

    def test_orientation_is_kept(self, nearby_sent_record):
        """Reconciling from the other side never swaps from/to."""
        plan = reconcile_nearby("B", [], [nearby_sent_record], T, INTERVAL)
        record = plan.changed[0]
        assert record.from_user == "A"
        assert record.to_user == "B"

    def test_new_episode_inside_cooldown_is_spent(self):
        """An episode starting 100s after a send enters already sent."""
        apart = AlertRecord(
            from_user="A", to_user="B",
            currently_nearby=False, sent=False, last_sent=T, update_time=T,
        )
        now = T + timedelta(seconds=100)

        plan = reconcile_nearby("A", ["B"], [apart], now, INTERVAL)

        record = plan.records[pair_key("A", "B")]
        assert record.currently_nearby is True
        assert record.sent is True
        assert record.last_sent == T
        assert should_send(record, now, INTERVAL) is False
        assert_invariants(plan.records.values())

    def test_new_episode_after_cooldown_is_eligible(self):
        """An episode starting 1900s after a send is eligible."""
        apart = AlertRecord(
            from_user="A", to_user="B",
            currently_nearby=False, sent=False, last_sent=T, update_time=T,
        )
        now = T + timedelta(seconds=1900)

        plan = reconcile_nearby("A", ["B"], [apart], now, INTERVAL)

        record = plan.records[pair_key("A", "B")]
        assert record.currently_nearby is True
        assert record.sent is False
        assert should_send(record, now, INTERVAL) is True

    def test_is_idempotent(self, nearby_sent_record):
        """A second run with the same nearby set changes nothing."""
        leaving = AlertRecord(
            from_user="C", to_user="A",
            currently_nearby=True, sent=False, update_time=T,
        )
        first = reconcile_nearby("A", ["B", "D"], [nearby_sent_record, leaving], T, INTERVAL)
        second = reconcile_nearby("A", ["B", "D"], list(first.records.values()), T, INTERVAL)

        assert len(first.changed) == 2  # D created, C apart
        assert second.changed == []

    def test_staying_nearby_is_untouched(self, nearby_sent_record):
        """Nearby-Sent pairs that stay nearby are not rewritten."""
        plan = reconcile_nearby("A", ["B"], [nearby_sent_record], T, INTERVAL)
        assert plan.changed == []
        assert plan.records[pair_key("A", "B")] is nearby_sent_record

    def test_duplicate_and_self_ids_are_ignored(self):
        """Repeated ids and the user's own id do not create records."""
        plan = reconcile_nearby("A", ["B", "B", "A"], [], T, INTERVAL)
        assert len(plan.changed) == 1
        assert set(plan.records) == {pair_key("A", "B")}

    def test_ignores_records_of_other_users(self):
        """Records not involving the user are left alone."""
        other = AlertRecord(from_user="X", to_user="Y", currently_nearby=True)
        plan = reconcile_nearby("A", [], [other], T, INTERVAL)
        assert plan.changed == []
        assert plan.records == {}

    def test_does_not_modify_input(self, nearby_sent_record):
        """Input records are never mutated."""
        reconcile_nearby("A", [], [nearby_sent_record], T, INTERVAL)
        assert nearby_sent_record.currently_nearby is True
        assert nearby_sent_record.sent is True


class TestMarkSent:
    """Tests for mark_sent() and eligible_friend_ids()."""

    def test_marks_eligible_friend(self):
        """Nearby-Unsent moves to Nearby-Sent with last_sent=now."""
        plan = reconcile_nearby("A", ["B"], [], T, INTERVAL)

        send_plan = mark_sent(plan.records, "A", ["B"], T, INTERVAL)

        record = send_plan.records[pair_key("A", "B")]
        assert record.sent is True
        assert record.last_sent == T
        assert send_plan.alerted_ids == ["B"]
        assert send_plan.changed == [record]
        assert_invariants(send_plan.records.values())

    def test_skips_ineligible_and_unknown(self, nearby_sent_record):
        """Already sent or unknown friends are skipped."""
        index = index_records([nearby_sent_record])

        send_plan = mark_sent(index, "A", ["B", "Z"], T + timedelta(hours=2), INTERVAL)

        assert send_plan.alerted_ids == []
        assert send_plan.skipped_ids == ["B", "Z"]
        assert send_plan.changed == []

    def test_preserves_caller_order(self):
        """Alerted friends come back in the order they were given."""
        plan = reconcile_nearby("A", ["B", "C", "D"], [], T, INTERVAL)

        send_plan = mark_sent(plan.records, "A", ["D", "B", "C"], T, INTERVAL)

        assert send_plan.alerted_ids == ["D", "B", "C"]

    def test_eligible_friend_ids(self):
        """Only pairs passing should_send are eligible."""
        spent = AlertRecord(
            from_user="A", to_user="C",
            currently_nearby=False, last_sent=T, update_time=T,
        )
        now = T + timedelta(seconds=100)
        plan = reconcile_nearby("A", ["B", "C"], [spent], now, INTERVAL)

        assert eligible_friend_ids(plan.records, "A", ["B", "C"], now, INTERVAL) == ["B"]

    def test_second_mark_sends_nothing(self):
        """A pair is only notified once per episode."""
        plan = reconcile_nearby("A", ["B"], [], T, INTERVAL)
        first = mark_sent(plan.records, "A", ["B"], T, INTERVAL)
        second = mark_sent(first.records, "A", ["B"], T + timedelta(hours=1), INTERVAL)

        assert second.alerted_ids == []


class TestCheckInvariants:
    """Tests for check_invariants() function."""

    def test_valid_record(self, nearby_sent_record):
        """Valid records have no violations."""
        assert check_invariants(nearby_sent_record) == []

    def test_sent_without_last_sent(self):
        """sent implies last_sent."""
        record = AlertRecord(from_user="A", to_user="B", sent=True)
        assert len(check_invariants(record)) == 1

    def test_apart_but_sent(self):
        """Apart implies not sent."""
        record = AlertRecord(
            from_user="A", to_user="B",
            currently_nearby=False, sent=True, last_sent=T,
        )
        assert len(check_invariants(record)) == 1

    def test_self_pair(self):
        """A user cannot be paired with themselves."""
        record = AlertRecord(from_user="A", to_user="A")
        assert len(check_invariants(record)) == 1
