"""
Queue Entry Repository

Maps queue operations (enqueue, claim, release, reject, remove,
dedupe check) onto document store calls against the queue collection.
All operations are keyed by the entry's business id.
"""

import logging
from typing import List, Optional

from src.common.queue_types import (
    DEFAULT_ROUTING_KEY,
    FIELD_BUSY,
    FIELD_CLAIMED_BY,
    FIELD_ID,
    FIELD_REJECTED,
    QueueEntry,
)

from .base import DocumentStoreInterface, WriteResult

logger = logging.getLogger(__name__)

# Entries a worker may claim
_CLAIMABLE = {FIELD_BUSY: False, FIELD_REJECTED: False}


class EntryRepository:
    """
    Repository for the queue collection.

    Only claim_one needs read-modify-write atomicity; every other call
    is a plain filtered read or single-field update.
    """

    def __init__(self, store: DocumentStoreInterface, collection: str = "queued_apps"):
        """
        Args:
            store: Document store shared by the process
            collection: Queue collection name
        """
        self._store = store
        self._collection = collection

    @property
    def collection(self) -> str:
        return self._collection

    def exists(self, entry_id: str) -> bool:
        """True if an entry with this id is present, whatever its busy/rejected state."""
        return self._store.find_one(self._collection, {FIELD_ID: entry_id}) is not None

    def insert(self, entry_id: str, routing_key: str = DEFAULT_ROUTING_KEY) -> WriteResult:
        """
        Append a new claimable entry (busy=False, rejected=False).

        Raises:
            DuplicateKey: If a unique index on `id` rejects the insert
        """
        entry = QueueEntry(id=entry_id, routing_key=routing_key)
        return self._store.insert_one(self._collection, entry.to_document())

    def claim_one(self, owner: Optional[str] = None) -> Optional[QueueEntry]:
        """
        Atomically pick one claimable entry and flip it to busy.

        The store returns the pre-claim image; the entry handed back
        reflects the committed claim (busy=True).

        Args:
            owner: Worker id written with the claim so a lost reply can be
                recovered with find_claimed_by

        Returns:
            Claimed entry, or None if nothing is claimable
        """
        changes = {FIELD_BUSY: True}
        if owner is not None:
            changes[FIELD_CLAIMED_BY] = owner
        doc = self._store.find_one_and_update(
            self._collection,
            dict(_CLAIMABLE),
            {"$set": changes},
        )
        if doc is None:
            return None
        entry = QueueEntry.from_document(doc)
        entry.busy = True
        entry.claimed_by = owner
        return entry

    def find_claimed_by(self, owner: str) -> Optional[QueueEntry]:
        """Entry currently held (busy, not rejected) by this owner, if any."""
        doc = self._store.find_one(
            self._collection,
            {FIELD_CLAIMED_BY: owner, FIELD_BUSY: True, FIELD_REJECTED: False},
        )
        return QueueEntry.from_document(doc) if doc is not None else None

    def release(self, entry_id: str, busy: bool = False) -> WriteResult:
        """
        Set `busy` on every entry with this id. Missing ids are a no-op.

        Args:
            entry_id: Business id
            busy: New busy value (False to hand the entry back)
        """
        return self._store.update_many(
            self._collection,
            {FIELD_ID: entry_id},
            {"$set": {FIELD_BUSY: busy}},
        )

    def reject(self, entry_id: str) -> bool:
        """
        Mark the entry as not meeting criteria. `busy` is left as last set.

        Returns:
            True if a matching entry was found and updated
        """
        doc = self._store.find_one_and_update(
            self._collection,
            {FIELD_ID: entry_id},
            {"$set": {FIELD_REJECTED: True}},
        )
        if doc is None:
            logger.debug(f"No queue entry to reject: {entry_id}")
            return False
        return True

    def remove(self, entry_id: str) -> WriteResult:
        """Delete every entry with this id. Missing ids are a no-op."""
        return self._store.delete_many(self._collection, {FIELD_ID: entry_id})

    def count(self, busy: Optional[bool] = None, rejected: Optional[bool] = None) -> int:
        """Count entries, optionally filtered by busy and/or rejected."""
        query = {}
        if busy is not None:
            query[FIELD_BUSY] = busy
        if rejected is not None:
            query[FIELD_REJECTED] = rejected
        return self._store.count_documents(self._collection, query)

    def find_busy(self, limit: int = 0) -> List[QueueEntry]:
        """List entries currently held by a worker (including rejected ones)."""
        docs = self._store.find(self._collection, {FIELD_BUSY: True}, limit=limit)
        return [QueueEntry.from_document(d) for d in docs]

    def ensure_lookup_index(self, field: str) -> str:
        """Request a background index on `field` for the queue collection."""
        return self._store.create_index(self._collection, field, background=True)
