"""
Repository Configuration and Factory

Loads store settings from the environment and builds the document store
a process hands to its repositories. The store is created once at
startup and passed explicitly; there is no module-level singleton.
"""

import os
import logging
from dataclasses import dataclass

from .base import DocumentStoreInterface

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 30000


@dataclass
class RepositoryConfig:
    """
    Configuration for store and repository initialization.

    Loaded from environment variables with sensible defaults.
    """
    mongodb_uri: str

    # Database/collection names
    database: str = "crawler"
    queue_collection: str = "queued_apps"
    results_collection: str = "apps"

    # Applied to both connect and server selection
    timeout_ms: int = DEFAULT_TIMEOUT_MS

    @classmethod
    def from_env(cls) -> "RepositoryConfig":
        """
        Load configuration from environment variables.

        Environment variables:
        - MONGODB_URI (required): MongoDB connection string
        - MONGODB_DATABASE: Database name
        - QUEUE_COLLECTION: Queue collection name
        - RESULTS_COLLECTION: Result collection name
        - MONGODB_TIMEOUT_MS: Connect/server selection timeout

        Returns:
            RepositoryConfig instance

        Raises:
            ValueError: If MONGODB_URI is not set
        """
        mongodb_uri = os.getenv("MONGODB_URI")
        if not mongodb_uri:
            raise ValueError("MONGODB_URI environment variable is required")

        timeout_str = os.getenv("MONGODB_TIMEOUT_MS", str(DEFAULT_TIMEOUT_MS))
        try:
            timeout_ms = int(timeout_str)
        except ValueError:
            logger.warning(
                f"Invalid MONGODB_TIMEOUT_MS '{timeout_str}', defaulting to {DEFAULT_TIMEOUT_MS}"
            )
            timeout_ms = DEFAULT_TIMEOUT_MS

        return cls(
            mongodb_uri=mongodb_uri,
            database=os.getenv("MONGODB_DATABASE", "crawler"),
            queue_collection=os.getenv("QUEUE_COLLECTION", "queued_apps"),
            results_collection=os.getenv("RESULTS_COLLECTION", "apps"),
            timeout_ms=timeout_ms,
        )


def build_document_store(config: RepositoryConfig) -> DocumentStoreInterface:
    """
    Build the process-wide document store.

    Args:
        config: Repository configuration

    Returns:
        DocumentStoreInterface implementation (MongoDB)
    """
    from .mongo_store import MongoDocumentStore

    store = MongoDocumentStore.from_config(config)
    logger.info(
        f"Document store ready: {config.database} "
        f"(queue={config.queue_collection}, results={config.results_collection})"
    )
    return store
