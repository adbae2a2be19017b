"""
Result Repository

Records terminal outcomes in the output collection. The presence of a
record for an id means that id must never be enqueued again.
"""

import logging
from typing import Any, Dict, List, Optional

from src.common.queue_types import FIELD_ID, FIELD_UPLOADED, ResultRecord

from .base import DocumentStoreInterface, WriteResult

logger = logging.getLogger(__name__)


class ResultRepository:
    """Repository for the result collection; sole writer of `uploaded`."""

    def __init__(self, store: DocumentStoreInterface, collection: str = "apps"):
        self._store = store
        self._collection = collection

    @property
    def collection(self) -> str:
        return self._collection

    def is_processed(self, entry_id: str) -> bool:
        """True if a result record exists for the id."""
        return self._store.find_one(self._collection, {FIELD_ID: entry_id}) is not None

    def insert(self, record: ResultRecord) -> WriteResult:
        """Append a result record. Duplicate inserts are not guarded here."""
        return self._store.insert_one(self._collection, record.to_document())

    def mark_uploaded(self, entry_id: str) -> WriteResult:
        """Set uploaded=True on the record for the id; no-op if absent."""
        result = self._store.update_many(
            self._collection,
            {FIELD_ID: entry_id},
            {"$set": {FIELD_UPLOADED: True}},
        )
        if result.matched_count == 0:
            logger.debug(f"No result record to mark uploaded: {entry_id}")
        return result

    def get(self, entry_id: str) -> Optional[ResultRecord]:
        doc = self._store.find_one(self._collection, {FIELD_ID: entry_id})
        return ResultRecord.from_document(doc) if doc else None

    def find(
        self,
        filter: Optional[Dict[str, Any]] = None,
        limit: int = 0,
        skip: int = 0,
    ) -> List[ResultRecord]:
        """Paged read of result records matching an equality filter."""
        docs = self._store.find(self._collection, filter or {}, limit=limit, skip=skip)
        return [ResultRecord.from_document(d) for d in docs]

    def find_not_uploaded(self, limit: int = 0) -> List[ResultRecord]:
        """Records still waiting for the secondary upload step."""
        return self.find({FIELD_UPLOADED: False}, limit=limit)

    def ensure_lookup_index(self, field: str) -> str:
        """Request a background index on `field` for the result collection."""
        return self._store.create_index(self._collection, field, background=True)
