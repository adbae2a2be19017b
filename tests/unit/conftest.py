"""
Global fixtures for all unit tests.

Provides:
- Project root on sys.path so `src` and `scripts` import without install
- Environment isolation (no real MongoDB URI leaks into tests)
- In-memory store, repositories and coordinator wired the way a process
  wires them at startup
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from src.common.repositories import EntryRepository, InMemoryDocumentStore, ResultRepository
from src.services.queue_coordinator import QueueCoordinator

QUEUE_COLLECTION = "queued_apps"
RESULTS_COLLECTION = "apps"


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """
    Isolate test environment from real store configuration.

    Prevents accidental connections to a developer's MongoDB.
    """
    for name in (
        "MONGODB_URI",
        "MONGODB_DATABASE",
        "MONGODB_TIMEOUT_MS",
        "QUEUE_COLLECTION",
        "RESULTS_COLLECTION",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def store():
    """Fresh in-memory document store."""
    return InMemoryDocumentStore()


@pytest.fixture
def entries(store):
    return EntryRepository(store, QUEUE_COLLECTION)


@pytest.fixture
def results(store):
    return ResultRepository(store, RESULTS_COLLECTION)


@pytest.fixture
def coordinator(entries, results):
    return QueueCoordinator(entries, results)
