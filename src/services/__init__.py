"""
Services module for queue producers and workers.

QueueCoordinator is the public queue contract; QueueWorker is the
host-side loop that drives it.
"""

from src.services.queue_coordinator import QueueCoordinator, build_queue_coordinator
from src.services.queue_worker import HandlerFailed, QueueWorker

__all__ = [
    "QueueCoordinator",
    "build_queue_coordinator",
    "QueueWorker",
    "HandlerFailed",
]
