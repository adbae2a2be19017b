"""
MongoDB Document Store

PyMongo implementation of the document store contract used by the queue
repositories. The atomic claim maps onto `find_one_and_update`, which
MongoDB executes as a single-document atomic operation.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database

from src.common.error_handling import store_operation

from .base import DocumentStoreInterface, WriteResult

if TYPE_CHECKING:
    from .config import RepositoryConfig

logger = logging.getLogger(__name__)


class MongoDocumentStore(DocumentStoreInterface):
    """
    Document store backed by a single MongoDB database.

    Connection Management:
    - Holds one MongoClient, created once per process and injected here
    - PyMongo handles the connection pool internally
    - No class-level client: two stores never share state implicitly

    Error Handling:
    - Fail-fast: driver errors are translated to StoreError and propagate
    - No retries here; callers own retry policy
    """

    def __init__(self, client: MongoClient, database: str):
        """
        Initialize the store with an existing client.

        Args:
            client: Long-lived MongoClient
            database: Database name
        """
        self._client = client
        self._db: Database = client[database]
        self._database_name = database

    @classmethod
    def from_config(cls, config: "RepositoryConfig") -> "MongoDocumentStore":
        """
        Create the MongoClient from configuration and wrap it.

        Args:
            config: Repository configuration

        Returns:
            MongoDocumentStore instance
        """
        client = MongoClient(
            config.mongodb_uri,
            connectTimeoutMS=config.timeout_ms,
            serverSelectionTimeoutMS=config.timeout_ms,
        )
        logger.info(f"MongoDB document store connected: {config.database}")
        return cls(client, config.database)

    def _collection(self, name: str) -> Collection:
        return self._db[name]

    @store_operation("find_one")
    def find_one(self, collection: str, filter: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Find a single document."""
        return self._collection(collection).find_one(filter)

    @store_operation("find")
    def find(
        self,
        collection: str,
        filter: Dict[str, Any],
        limit: int = 0,
        skip: int = 0,
    ) -> List[Dict[str, Any]]:
        """Find multiple documents."""
        cursor = self._collection(collection).find(filter)

        if skip > 0:
            cursor = cursor.skip(skip)
        if limit > 0:
            cursor = cursor.limit(limit)

        return list(cursor)

    @store_operation("count_documents")
    def count_documents(self, collection: str, filter: Dict[str, Any]) -> int:
        """Count documents matching the filter."""
        return self._collection(collection).count_documents(filter)

    @store_operation("insert_one")
    def insert_one(self, collection: str, document: Dict[str, Any]) -> WriteResult:
        """Insert a single document."""
        # insert_one adds `_id` to the dict it is given
        result = self._collection(collection).insert_one(dict(document))

        return WriteResult(
            inserted_id=str(result.inserted_id) if result.inserted_id else None,
        )

    @store_operation("update_many")
    def update_many(
        self,
        collection: str,
        filter: Dict[str, Any],
        update: Dict[str, Any],
    ) -> WriteResult:
        """Update multiple documents."""
        result = self._collection(collection).update_many(filter, update)

        return WriteResult(
            matched_count=result.matched_count,
            modified_count=result.modified_count,
        )

    @store_operation("find_one_and_update")
    def find_one_and_update(
        self,
        collection: str,
        filter: Dict[str, Any],
        update: Dict[str, Any],
        return_new: bool = False,
    ) -> Optional[Dict[str, Any]]:
        """Atomically match, update and return one document."""
        return self._collection(collection).find_one_and_update(
            filter,
            update,
            return_document=ReturnDocument.AFTER if return_new else ReturnDocument.BEFORE,
        )

    @store_operation("delete_many")
    def delete_many(self, collection: str, filter: Dict[str, Any]) -> WriteResult:
        """Delete multiple documents."""
        result = self._collection(collection).delete_many(filter)

        return WriteResult(
            matched_count=result.deleted_count,
            deleted_count=result.deleted_count,
        )

    @store_operation("create_index")
    def create_index(self, collection: str, field: str, background: bool = True) -> str:
        """Request an ascending index on a single field."""
        name = self._collection(collection).create_index(
            [(field, ASCENDING)],
            background=background,
        )
        logger.info(f"Index ensured: {self._database_name}.{collection}.{name}")
        return name

    def close(self) -> None:
        """Close the MongoClient."""
        self._client.close()
        logger.info("MongoDB document store connection closed")
