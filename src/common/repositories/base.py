"""
Document Store Interface Definitions

Defines the abstract contract the queue repositories run against.
This enables swapping backends (MongoDB, in-process) without changing
repository or coordinator code.

The whole at-most-one-claim guarantee rests on find_one_and_update being
a single indivisible "match, mutate, return" step per document. A backend
that cannot provide that must not implement this interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass
class WriteResult:
    """
    Result of a write operation.

    Attributes:
        matched_count: Number of documents that matched the filter
        modified_count: Number of documents actually modified
        deleted_count: Number of documents deleted
        inserted_id: Storage key of the inserted document (if any)
    """
    matched_count: int = 0
    modified_count: int = 0
    deleted_count: int = 0
    inserted_id: Optional[str] = None


class DocumentStoreInterface(ABC):
    """
    Abstract interface for keyed, filterable document collections.

    Implementations:
    - MongoDocumentStore: MongoDB via PyMongo
    - InMemoryDocumentStore: process-local, lock-serialised

    Filters are equality documents; updates use the `$set` operator.
    Every method may raise StoreError; none retries internally.
    """

    @abstractmethod
    def find_one(self, collection: str, filter: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Find a single document.

        Args:
            collection: Collection name
            filter: Equality filter (e.g., {"id": "a.com"})

        Returns:
            Document dict if found, None otherwise
        """
        pass

    @abstractmethod
    def find(
        self,
        collection: str,
        filter: Dict[str, Any],
        limit: int = 0,
        skip: int = 0,
    ) -> List[Dict[str, Any]]:
        """
        Find multiple documents.

        Args:
            collection: Collection name
            filter: Equality filter
            limit: Maximum documents to return (0 = no limit)
            skip: Number of documents to skip

        Returns:
            List of matching documents
        """
        pass

    @abstractmethod
    def count_documents(self, collection: str, filter: Dict[str, Any]) -> int:
        """Count documents matching the filter."""
        pass

    @abstractmethod
    def insert_one(self, collection: str, document: Dict[str, Any]) -> WriteResult:
        """
        Insert a single document.

        Returns:
            WriteResult with inserted_id set to the new document's storage key

        Raises:
            DuplicateKey: If a unique index rejects the document
        """
        pass

    @abstractmethod
    def update_many(
        self,
        collection: str,
        filter: Dict[str, Any],
        update: Dict[str, Any],
    ) -> WriteResult:
        """
        Update every matching document. No match is a no-op, not an error.

        Args:
            collection: Collection name
            filter: Equality filter
            update: Update operations (e.g., {"$set": {"busy": False}})

        Returns:
            WriteResult with match/modify counts
        """
        pass

    @abstractmethod
    def find_one_and_update(
        self,
        collection: str,
        filter: Dict[str, Any],
        update: Dict[str, Any],
        return_new: bool = False,
    ) -> Optional[Dict[str, Any]]:
        """
        Atomically match one document, apply the update and return it.

        Two concurrent callers whose filter matches the same document must
        never both receive it: the second one sees the already-updated
        state and therefore no longer matches.

        Args:
            collection: Collection name
            filter: Equality filter
            update: Update operations
            return_new: Return the post-image instead of the pre-image

        Returns:
            Pre- (default) or post-image of the updated document, None if no match
        """
        pass

    @abstractmethod
    def delete_many(self, collection: str, filter: Dict[str, Any]) -> WriteResult:
        """
        Delete every matching document. No match is a no-op, not an error.

        Returns:
            WriteResult with deleted_count
        """
        pass

    @abstractmethod
    def create_index(self, collection: str, field: str, background: bool = True) -> str:
        """
        Request an ascending secondary index on a field.

        Args:
            collection: Collection name
            field: Field to index
            background: Build without blocking writers

        Returns:
            Index name
        """
        pass

    def close(self) -> None:
        """Release any held connections."""
        pass


def apply_set_update(document: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply a `$set`-only update document to a copy of `document`.

    Raises:
        ValueError: If the update uses an operator other than `$set`
    """
    unsupported = [op for op in update if op != "$set"]
    if unsupported:
        raise ValueError(f"Unsupported update operators: {', '.join(unsupported)}")
    updated = dict(document)
    updated.update(update.get("$set", {}))
    return updated


def matches(document: Dict[str, Any], filter: Dict[str, Any]) -> bool:
    """Equality match of every filter field against the document."""
    return all(
        key in document and document[key] == value
        for key, value in filter.items()
    )
