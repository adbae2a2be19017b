"""
Queue Coordinator

Composes the entry and result repositories into the claim/release/complete
protocol shared by every producer and worker process.

Lifecycle per business id:
    Absent -> Queued -> Claimed -> Completed        (row removed)
                                -> Released -> Queued
                                -> Rejected         (row kept, never claimable)

Mutual exclusion comes entirely from the store's atomic find-and-update;
the coordinator holds no locks and caches no entry state. It does not
retry: StoreError propagates to the caller unchanged.

Usage:
    coordinator = build_queue_coordinator()
    coordinator.enqueue("https://example.com/app/1")

    entry = coordinator.claim_next()
    if entry:
        coordinator.record_result(ResultRecord(id=entry.id, fields={...}))
        coordinator.complete(entry.id)
"""

import logging
from typing import Dict, Optional

from src.common.queue_types import (
    DEFAULT_ROUTING_KEY,
    FIELD_BUSY,
    FIELD_ID,
    FIELD_REJECTED,
    FIELD_UPLOADED,
    EnqueueOutcome,
    QueueEntry,
    ResultRecord,
)
from src.common.repositories import (
    DocumentStoreInterface,
    EntryRepository,
    RepositoryConfig,
    ResultRepository,
    build_document_store,
)

logger = logging.getLogger(__name__)


class QueueCoordinator:
    """
    Public contract of the crawl queue.

    Sole writer of `busy` and `rejected`. Safe to share between threads
    and to run in any number of processes against the same collections.
    """

    QUEUE_INDEX_FIELDS = (FIELD_ID, FIELD_BUSY, FIELD_REJECTED)
    RESULT_INDEX_FIELDS = (FIELD_ID, FIELD_UPLOADED)

    def __init__(
        self,
        entries: EntryRepository,
        results: ResultRepository,
        store: Optional[DocumentStoreInterface] = None,
    ):
        """
        Args:
            entries: Queue collection repository
            results: Result collection repository
            store: Store to close on close() (None if owned elsewhere)
        """
        self.entries = entries
        self.results = results
        self._store = store

    def enqueue(self, entry_id: str, routing_key: str = DEFAULT_ROUTING_KEY) -> EnqueueOutcome:
        """
        Add an id to the queue unless it was processed or is already queued.

        Both checks are reads before the insert, so two producers racing on
        the same id can both insert. Downstream complete/reject are keyed by
        id and clear or flag every duplicate row.

        Args:
            entry_id: Business id (usually a URL)
            routing_key: Opaque classification stored with the entry

        Returns:
            ENQUEUED, ALREADY_PROCESSED or ALREADY_QUEUED
        """
        if self.results.is_processed(entry_id):
            logger.debug(f"Skip enqueue, already processed: {entry_id}")
            return EnqueueOutcome.ALREADY_PROCESSED

        if self.entries.exists(entry_id):
            logger.debug(f"Skip enqueue, already queued: {entry_id}")
            return EnqueueOutcome.ALREADY_QUEUED

        self.entries.insert(entry_id, routing_key)
        logger.info(f"Enqueued: {entry_id}")
        return EnqueueOutcome.ENQUEUED

    def claim_next(self, owner: Optional[str] = None) -> Optional[QueueEntry]:
        """
        Claim one available entry for the calling worker.

        The caller owns the returned id until it calls complete, reject
        or release. An abandoned call may still have committed the claim;
        pass `owner` so claimed_by can find it afterwards.

        Args:
            owner: Worker id stored with the claim

        Returns:
            Claimed entry (busy=True), or None if nothing is available
        """
        entry = self.entries.claim_one(owner)
        if entry is not None:
            logger.info(f"Claimed: {entry.id}")
        return entry

    def claimed_by(self, owner: str) -> Optional[QueueEntry]:
        """Entry this owner currently holds, e.g. after a claim whose reply was lost."""
        return self.entries.find_claimed_by(owner)

    def complete(self, entry_id: str) -> None:
        """
        Remove a finished entry from the queue.

        Write the result record first (record_result); this call does not
        check that it exists.
        """
        result = self.entries.remove(entry_id)
        logger.info(f"Completed: {entry_id} (rows removed: {result.deleted_count})")

    def reject(self, entry_id: str) -> bool:
        """
        Flag an entry as failing acceptance criteria.

        The row stays for audit and keeps blocking re-enqueue.

        Returns:
            True if the entry was found
        """
        found = self.entries.reject(entry_id)
        if found:
            logger.info(f"Rejected: {entry_id}")
        return found

    def release(self, entry_id: str) -> None:
        """Hand a claimed entry back so another worker can take it."""
        self.entries.release(entry_id, False)
        logger.info(f"Released: {entry_id}")

    def mark_secondary_complete(self, entry_id: str) -> None:
        """Record that post-processing (upload) finished; independent of queue state."""
        self.results.mark_uploaded(entry_id)
        logger.info(f"Marked uploaded: {entry_id}")

    def record_result(self, record: ResultRecord) -> None:
        """Persist the result record for a processed entry."""
        self.results.insert(record)
        logger.debug(f"Result recorded: {record.id}")

    def status(self) -> Dict[str, int]:
        """
        Snapshot of queue counts.

        Returns:
            Dict with queued (claimable), claimed, rejected and total counts
        """
        return {
            "queued": self.entries.count(busy=False, rejected=False),
            "claimed": self.entries.count(busy=True, rejected=False),
            "rejected": self.entries.count(rejected=True),
            "total": self.entries.count(),
        }

    def ensure_indexes(self) -> None:
        """Request background lookup indexes on both collections."""
        for field in self.QUEUE_INDEX_FIELDS:
            self.entries.ensure_lookup_index(field)
        for field in self.RESULT_INDEX_FIELDS:
            self.results.ensure_lookup_index(field)
        logger.info("Queue indexes ensured")

    def close(self) -> None:
        """Close the store this coordinator was built with, if it owns one."""
        if self._store is not None:
            self._store.close()


def build_queue_coordinator(
    config: Optional[RepositoryConfig] = None,
    store: Optional[DocumentStoreInterface] = None,
) -> QueueCoordinator:
    """
    Wire the store, repositories and coordinator for one process.

    Args:
        config: Repository configuration (loads from env if not provided)
        store: Existing store to reuse (built from config if not provided)

    Returns:
        QueueCoordinator instance

    Raises:
        ValueError: If no store is given and MONGODB_URI is not configured
    """
    owned = None
    if store is None:
        config = config or RepositoryConfig.from_env()
        store = owned = build_document_store(config)
    elif config is None:
        config = RepositoryConfig(mongodb_uri="")

    return QueueCoordinator(
        EntryRepository(store, config.queue_collection),
        ResultRepository(store, config.results_collection),
        store=owned,
    )
