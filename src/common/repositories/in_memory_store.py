"""In-memory document store.

Process-local backend implementing the DocumentStoreInterface contract.
Every operation runs under one lock, so find_one_and_update is atomic
across threads. Documents are copied on the way in and out; callers never
hold references to stored state.

Intended for tests and local dry runs; nothing is persisted.
"""

import copy
import threading
import uuid
from typing import Any, Dict, List, Optional

from .base import DocumentStoreInterface, WriteResult, apply_set_update, matches


class InMemoryDocumentStore(DocumentStoreInterface):
    def __init__(self) -> None:
        self._collections: Dict[str, List[Dict[str, Any]]] = {}
        self._indexes: Dict[str, List[str]] = {}
        self._lock = threading.Lock()

    # Internal helpers --------------------------------------------------
    def _rows(self, collection: str) -> List[Dict[str, Any]]:
        return self._collections.setdefault(collection, [])

    def indexes(self, collection: str) -> List[str]:
        """Test helper: fields indexed on a collection."""
        with self._lock:
            return list(self._indexes.get(collection, []))

    def clear(self) -> None:
        """Test helper: drop every collection and index."""
        with self._lock:
            self._collections.clear()
            self._indexes.clear()

    # Read ops ----------------------------------------------------------
    def find_one(self, collection: str, filter: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            for row in self._rows(collection):
                if matches(row, filter):
                    return copy.deepcopy(row)
        return None

    def find(
        self,
        collection: str,
        filter: Dict[str, Any],
        limit: int = 0,
        skip: int = 0,
    ) -> List[Dict[str, Any]]:
        with self._lock:
            found = [copy.deepcopy(r) for r in self._rows(collection) if matches(r, filter)]
        found = found[skip:]
        if limit > 0:
            found = found[:limit]
        return found

    def count_documents(self, collection: str, filter: Dict[str, Any]) -> int:
        with self._lock:
            return sum(1 for r in self._rows(collection) if matches(r, filter))

    # Write ops ---------------------------------------------------------
    def insert_one(self, collection: str, document: Dict[str, Any]) -> WriteResult:
        stored = copy.deepcopy(document)
        stored.setdefault("_id", uuid.uuid4().hex)
        with self._lock:
            self._rows(collection).append(stored)
        return WriteResult(inserted_id=str(stored["_id"]))

    def update_many(
        self,
        collection: str,
        filter: Dict[str, Any],
        update: Dict[str, Any],
    ) -> WriteResult:
        matched = modified = 0
        with self._lock:
            rows = self._rows(collection)
            for idx, row in enumerate(rows):
                if not matches(row, filter):
                    continue
                matched += 1
                updated = apply_set_update(row, update)
                if updated != row:
                    rows[idx] = updated
                    modified += 1
        return WriteResult(matched_count=matched, modified_count=modified)

    def find_one_and_update(
        self,
        collection: str,
        filter: Dict[str, Any],
        update: Dict[str, Any],
        return_new: bool = False,
    ) -> Optional[Dict[str, Any]]:
        with self._lock:
            rows = self._rows(collection)
            for idx, row in enumerate(rows):
                if matches(row, filter):
                    updated = apply_set_update(row, update)
                    rows[idx] = updated
                    return copy.deepcopy(updated if return_new else row)
        return None

    def delete_many(self, collection: str, filter: Dict[str, Any]) -> WriteResult:
        with self._lock:
            rows = self._rows(collection)
            kept = [r for r in rows if not matches(r, filter)]
            deleted = len(rows) - len(kept)
            self._collections[collection] = kept
        return WriteResult(matched_count=deleted, deleted_count=deleted)

    def create_index(self, collection: str, field: str, background: bool = True) -> str:
        with self._lock:
            fields = self._indexes.setdefault(collection, [])
            if field not in fields:
                fields.append(field)
        return f"{field}_1"


__all__ = ["InMemoryDocumentStore"]
