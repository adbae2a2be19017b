"""
Repository Pattern for the crawl queue

Provides the document store abstraction and the two repositories the
queue coordinator composes.

Public API:
- DocumentStoreInterface: Abstract store contract (find/insert/update/atomic claim)
- MongoDocumentStore: PyMongo implementation
- InMemoryDocumentStore: Process-local implementation for tests and dry runs
- EntryRepository: Queue collection operations
- ResultRepository: Result collection operations
- RepositoryConfig / build_document_store: Configuration and factory
- WriteResult: Result dataclass for write operations

Usage:
    from src.common.repositories import (
        RepositoryConfig, build_document_store, EntryRepository, ResultRepository
    )

    config = RepositoryConfig.from_env()
    store = build_document_store(config)
    entries = EntryRepository(store, config.queue_collection)
    results = ResultRepository(store, config.results_collection)
"""

from .base import DocumentStoreInterface, WriteResult
from .config import RepositoryConfig, build_document_store
from .entry_repository import EntryRepository
from .in_memory_store import InMemoryDocumentStore
from .mongo_store import MongoDocumentStore
from .result_repository import ResultRepository

__all__ = [
    # Store
    "DocumentStoreInterface",
    "MongoDocumentStore",
    "InMemoryDocumentStore",
    "build_document_store",
    # Repositories
    "EntryRepository",
    "ResultRepository",
    # Shared
    "WriteResult",
    "RepositoryConfig",
]
