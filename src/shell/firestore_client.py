"""Firestore Client - Imperative Shell.

This module persists alert records, one document per unordered user
pair. Uses Google Cloud Firestore.

All I/O is contained here; lifecycle logic is in the core module.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from src.core.alert import AlertRecord, check_invariants


logger = logging.getLogger(__name__)


# Default collection name for storing alert records
DEFAULT_COLLECTION = "alerts"

# Firestore rejects batches with more writes than this
MAX_BATCH_WRITES = 500


class AlertStoreError(Exception):
    """Raised when the alert store cannot be read or written."""


@dataclass
class FirestoreConfig:
    """Configuration for Firestore client.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
        collection: Firestore collection name
    """
    project_id: str | None = None
    database: str | None = None
    collection: str = DEFAULT_COLLECTION


def record_to_document(record: AlertRecord) -> dict[str, Any]:
    """Convert an alert record to Firestore document data."""
    return {
        "fromUser": record.from_user,
        "toUser": record.to_user,
        "participants": [record.from_user, record.to_user],
        "currentlyNearby": record.currently_nearby,
        "sent": record.sent,
        "lastSent": record.last_sent,
        "updatedAt": firestore.SERVER_TIMESTAMP,
    }


def record_from_document(
    data: dict[str, Any],
    update_time: Any = None,
) -> AlertRecord:
    """Convert Firestore document data to an alert record."""
    return AlertRecord(
        from_user=data["fromUser"],
        to_user=data["toUser"],
        currently_nearby=bool(data.get("currentlyNearby", False)),
        sent=bool(data.get("sent", False)),
        last_sent=data.get("lastSent"),
        update_time=update_time,
    )


class FirestoreClient:
    """Client for persisting alert records to Firestore.

    This is part of the imperative shell - it handles database I/O.

    Document structure (document id is the pair key):
    {
        "fromUser": "user_a",
        "toUser": "user_b",
        "participants": ["user_a", "user_b"],
        "currentlyNearby": true,
        "sent": false,
        "lastSent": <timestamp or null>,
        "updatedAt": <timestamp>
    }
    """

    def __init__(self, config: FirestoreConfig | None = None) -> None:
        """Initialize Firestore client.

        Args:
            config: Firestore configuration
        """
        self.config = config or FirestoreConfig()
        self._client: firestore.Client | None = None

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs = {}
            if self.config.project_id:
                kwargs['project'] = self.config.project_id
            if self.config.database:
                kwargs['database'] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client

    def _collection(self) -> Any:
        return self.client.collection(self.config.collection)

    def find_records_involving(self, user_id: str) -> list[AlertRecord]:
        """Fetch every alert record where the user is one side of the pair.

        This method performs database I/O.

        Args:
            user_id: User to look up

        Returns:
            Alert records involving the user

        Raises:
            AlertStoreError: If the query fails
        """
        logger.info("Fetching alert records for user %s", user_id)

        try:
            query = self._collection().where(
                filter=FieldFilter("participants", "array_contains", user_id)
            )
            snapshots = list(query.stream())
        except gcp_exceptions.GoogleAPIError as e:
            logger.error("Failed to fetch alert records: %s", str(e))
            raise AlertStoreError(f"Failed to fetch alert records: {e}") from e

        records = []
        for snapshot in snapshots:
            data = snapshot.to_dict() or {}
            try:
                record = record_from_document(data, snapshot.update_time)
            except KeyError:
                logger.warning("Skipping malformed alert record %s", snapshot.id)
                continue

            for violation in check_invariants(record):
                logger.warning("Stored alert record violates invariant: %s", violation)
            records.append(record)

        logger.info("Fetched %d alert records for user %s", len(records), user_id)
        return records

    def batch_upsert(self, records: list[AlertRecord]) -> list[AlertRecord]:
        """Write alert records in one atomic batch.

        New records are created only if the pair document does not exist
        yet. Existing records are updated only if nobody else wrote them
        since they were read. Any conflict fails the whole batch.

        This method performs database I/O.

        Args:
            records: Records to write

        Returns:
            The written records, carrying their new update_time

        Raises:
            AlertStoreError: If the batch is too large or the commit fails
        """
        if not records:
            return []

        if len(records) > MAX_BATCH_WRITES:
            raise AlertStoreError(
                f"Batch of {len(records)} records exceeds {MAX_BATCH_WRITES} writes"
            )

        logger.info("Writing %d alert records to Firestore", len(records))

        try:
            batch = self.client.batch()
            collection = self._collection()

            for record in records:
                doc_ref = collection.document(record.key)
                data = record_to_document(record)
                if record.is_new:
                    batch.create(doc_ref, data)
                else:
                    batch.update(
                        doc_ref,
                        data,
                        option=self.client.write_option(
                            last_update_time=record.update_time,
                        ),
                    )

            write_results = batch.commit()

        except gcp_exceptions.GoogleAPIError as e:
            logger.error("Failed to write alert records: %s", str(e))
            raise AlertStoreError(f"Failed to write alert records: {e}") from e

        logger.info("Successfully wrote %d alert records", len(records))

        # Write results come back in the order the writes were added
        return [
            replace(record, update_time=result.update_time)
            for record, result in zip(records, write_results)
        ]
