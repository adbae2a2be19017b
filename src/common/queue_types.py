"""
Queue Data Models

Defines the queue entry and result record structures, their persisted
document layout, and the outcome values returned by queue operations.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

# Persisted field names
FIELD_ID = "id"
FIELD_BUSY = "busy"
FIELD_REJECTED = "rejected"
FIELD_ROUTING_KEY = "routingKey"
FIELD_UPLOADED = "uploaded"
# Worker id written by the claim, used to recover a claim whose reply was lost
FIELD_CLAIMED_BY = "claimedBy"

# Routing key stored when the producer does not classify the entry
DEFAULT_ROUTING_KEY = "NA"

# Storage-assigned key, never part of the domain model
_STORE_KEY = "_id"


class EnqueueOutcome(str, Enum):
    """Result of an enqueue attempt."""

    ENQUEUED = "enqueued"                    # New entry inserted
    ALREADY_PROCESSED = "already_processed"  # A result record exists for the id
    ALREADY_QUEUED = "already_queued"        # An entry already exists for the id

    @property
    def accepted(self) -> bool:
        """True only when a new entry was inserted."""
        return self is EnqueueOutcome.ENQUEUED


class ProcessOutcome(str, Enum):
    """How a worker finished with a claimed entry."""

    PROCESSED = "processed"  # Result recorded, entry removed
    REJECTED = "rejected"    # Fails acceptance criteria, entry kept for audit
    RELEASED = "released"    # Handed back to the pool


@dataclass
class QueueEntry:
    """
    A unit of pending, claimed or rejected work.

    `id` is the business key (usually a URL), not the storage key.
    """

    id: str
    busy: bool = False
    rejected: bool = False
    routing_key: str = DEFAULT_ROUTING_KEY
    claimed_by: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        """Convert to the persisted queue document."""
        doc = {
            FIELD_ID: self.id,
            FIELD_BUSY: self.busy,
            FIELD_REJECTED: self.rejected,
            FIELD_ROUTING_KEY: self.routing_key,
        }
        if self.claimed_by is not None:
            doc[FIELD_CLAIMED_BY] = self.claimed_by
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "QueueEntry":
        """
        Create QueueEntry from a queue collection document.

        Args:
            doc: Document as returned by the store (may include `_id`)

        Returns:
            QueueEntry instance
        """
        return cls(
            id=doc[FIELD_ID],
            busy=bool(doc.get(FIELD_BUSY, False)),
            rejected=bool(doc.get(FIELD_REJECTED, False)),
            routing_key=doc.get(FIELD_ROUTING_KEY) or DEFAULT_ROUTING_KEY,
            claimed_by=doc.get(FIELD_CLAIMED_BY),
        )


@dataclass
class ResultRecord:
    """
    A unit that completed primary processing.

    `fields` holds the domain payload stored alongside the business key.
    """

    id: str
    uploaded: bool = False
    fields: Dict[str, Any] = field(default_factory=dict)

    def to_document(self) -> Dict[str, Any]:
        """Convert to the persisted result document (business keys win)."""
        doc = {k: v for k, v in self.fields.items() if k != _STORE_KEY}
        doc[FIELD_ID] = self.id
        doc[FIELD_UPLOADED] = self.uploaded
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "ResultRecord":
        """Create ResultRecord from a result collection document."""
        reserved = {FIELD_ID, FIELD_UPLOADED, _STORE_KEY}
        return cls(
            id=doc[FIELD_ID],
            uploaded=bool(doc.get(FIELD_UPLOADED, False)),
            fields={k: v for k, v in doc.items() if k not in reserved},
        )


@dataclass
class ProcessResult:
    """Returned by a worker handler for one claimed entry."""

    outcome: ProcessOutcome
    record: Optional[Dict[str, Any]] = None

    @classmethod
    def processed(cls, record: Optional[Dict[str, Any]] = None) -> "ProcessResult":
        return cls(ProcessOutcome.PROCESSED, record)

    @classmethod
    def rejected(cls) -> "ProcessResult":
        return cls(ProcessOutcome.REJECTED)

    @classmethod
    def released(cls) -> "ProcessResult":
        return cls(ProcessOutcome.RELEASED)
