"""
Queue Worker

Host-side claim loop: claims one entry at a time, hands it to a handler
and finishes the entry according to the handler's outcome.

Retry policy lives here, not in the coordinator: store calls that fail
with StoreUnavailable are retried with exponential backoff (tenacity);
any other StoreError propagates. Claims are written with the worker id,
so a claim that committed before its reply was lost is picked up again
on the next attempt instead of being left busy.

An entry whose handler keeps failing is released back to the pool until
it has failed max_failures times in this worker, then rejected.

Usage:
    def handle(entry: QueueEntry) -> ProcessResult:
        page = fetch(entry.id)
        if not meets_criteria(page):
            return ProcessResult.rejected()
        return ProcessResult.processed({"title": page.title})

    worker = QueueWorker(coordinator, handle)
    stats = worker.run(stop_when_empty=True)
"""

import time
import uuid
from typing import Any, Callable, Dict, Optional, TypeVar

from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.common.config import Config
from src.common.error_handling import StoreError, StoreUnavailable
from src.common.logger import get_logger
from src.common.queue_types import (
    FIELD_ID,
    ProcessOutcome,
    ProcessResult,
    QueueEntry,
    ResultRecord,
)
from src.services.queue_coordinator import QueueCoordinator

T = TypeVar("T")

Handler = Callable[[QueueEntry], ProcessResult]


class QueueWorker:
    """
    Processes entries from the queue until stopped or drained.

    Finishing order for a processed entry is fixed: the result record is
    written before the entry is removed, so a crash in between never
    loses the "already processed" knowledge.
    """

    def __init__(
        self,
        coordinator: QueueCoordinator,
        handler: Handler,
        worker_id: Optional[str] = None,
        poll_interval: Optional[float] = None,
        max_retries: Optional[int] = None,
        max_failures: Optional[int] = None,
        retry_min_wait: float = 1.0,
        retry_max_wait: float = 10.0,
    ):
        """
        Args:
            coordinator: Shared queue coordinator
            handler: Called with each claimed entry, returns a ProcessResult
            worker_id: Identifier stored with claims and used in logs (random if not given)
            poll_interval: Seconds to sleep when the queue is empty
            max_retries: Attempts per store call on StoreUnavailable
            max_failures: Handler failures on one entry before it is rejected
            retry_min_wait: Lower bound of the exponential backoff (seconds)
            retry_max_wait: Upper bound of the exponential backoff (seconds)
        """
        self.coordinator = coordinator
        self.handler = handler
        self.worker_id = worker_id or uuid.uuid4().hex
        self.poll_interval = Config.WORKER_POLL_INTERVAL if poll_interval is None else poll_interval
        self.max_retries = Config.WORKER_MAX_RETRIES if max_retries is None else max_retries
        self.max_failures = Config.WORKER_MAX_FAILURES if max_failures is None else max_failures
        self._retry_min_wait = retry_min_wait
        self._retry_max_wait = retry_max_wait
        self._stopped = False
        self._claim_pending = False
        self._failures: Dict[str, int] = {}
        self._logger = get_logger(__name__, worker_id=self.worker_id)

    def _log_retry(self, retry_state) -> None:
        self._logger.warning(
            f"Store unavailable, retrying (attempt {retry_state.attempt_number}/{self.max_retries}): "
            f"{retry_state.outcome.exception()}"
        )

    def _with_retry(self, func: Callable[..., T], *args: Any) -> T:
        """Run a coordinator call, retrying while the store is unavailable."""
        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=1, min=self._retry_min_wait, max=self._retry_max_wait),
            retry=retry_if_exception_type(StoreUnavailable),
            before_sleep=self._log_retry,
            reraise=True,
        )
        return retrying(func, *args)

    def _claim(self) -> Optional[QueueEntry]:
        # A previous attempt failed after sending the claim; it may have committed.
        if self._claim_pending:
            held = self.coordinator.claimed_by(self.worker_id)
            if held is not None:
                self._claim_pending = False
                self._logger.warning("Recovered claim from a failed attempt", entry_id=held.id)
                return held

        self._claim_pending = True
        entry = self.coordinator.claim_next(self.worker_id)
        self._claim_pending = False
        return entry

    def _finish(self, entry: QueueEntry, result: ProcessResult) -> ProcessOutcome:
        if result.outcome is ProcessOutcome.PROCESSED:
            fields = {k: v for k, v in (result.record or {}).items() if k != FIELD_ID}
            self._with_retry(self.coordinator.record_result, ResultRecord(id=entry.id, fields=fields))
            self._with_retry(self.coordinator.complete, entry.id)
        elif result.outcome is ProcessOutcome.REJECTED:
            self._with_retry(self.coordinator.reject, entry.id)
        else:
            self._with_retry(self.coordinator.release, entry.id)
        return result.outcome

    def _after_handler_failure(self, entry: QueueEntry) -> bool:
        """Release the entry, or reject it once it has failed max_failures times. Returns True if rejected."""
        failures = self._failures.pop(entry.id, 0) + 1
        if failures >= self.max_failures:
            self._logger.error(f"Handler failed {failures} times, rejecting", entry_id=entry.id)
            self._with_retry(self.coordinator.reject, entry.id)
            return True

        self._failures[entry.id] = failures
        self._logger.warning(f"Releasing after failure {failures}/{self.max_failures}", entry_id=entry.id)
        self._with_retry(self.coordinator.release, entry.id)
        return False

    def _release_after_finish_error(self, entry: QueueEntry) -> None:
        try:
            self._with_retry(self.coordinator.release, entry.id)
        except StoreError as e:
            self._logger.error(f"Release after failed finish also failed: {e}", entry_id=entry.id)

    def run_once(self) -> Optional[ProcessOutcome]:
        """
        Claim and process a single entry.

        Returns:
            The outcome, None if nothing was claimable

        Raises:
            HandlerFailed: If the handler raised or returned something other
                than a ProcessResult (the entry was released or rejected)
            StoreError: If the store keeps failing after retries; a claimed
                entry is released first when possible
        """
        entry = self._with_retry(self._claim)
        if entry is None:
            return None

        self._logger.info("Processing", entry_id=entry.id)
        try:
            result = self.handler(entry)
            if not isinstance(result, ProcessResult):
                raise TypeError(f"handler returned {type(result).__name__}, expected ProcessResult")
        except Exception as e:
            self._logger.exception(f"Handler failed: {e}", entry_id=entry.id)
            rejected = self._after_handler_failure(entry)
            raise HandlerFailed(entry.id, rejected=rejected) from e

        try:
            outcome = self._finish(entry, result)
        except StoreError:
            self._logger.exception("Finishing failed, releasing", entry_id=entry.id)
            self._release_after_finish_error(entry)
            raise

        self._failures.pop(entry.id, None)
        self._logger.info(f"Finished: {outcome.value}", entry_id=entry.id)
        return outcome

    def run(self, max_units: Optional[int] = None, stop_when_empty: bool = False) -> Dict[str, int]:
        """
        Process entries until stopped, drained (stop_when_empty) or max_units.

        Handler failures are counted and do not end the loop.

        Returns:
            Stats dict with processed, rejected, released and failed counts
        """
        stats = {"processed": 0, "rejected": 0, "released": 0, "failed": 0}
        handled = 0
        self._stopped = False
        self._logger.info("Worker started")

        while not self._stopped and (max_units is None or handled < max_units):
            try:
                outcome = self.run_once()
            except HandlerFailed:
                stats["failed"] += 1
                handled += 1
                continue

            if outcome is None:
                if stop_when_empty:
                    break
                time.sleep(self.poll_interval)
                continue

            stats[outcome.value] += 1
            handled += 1

        self._logger.info(
            f"Worker stopped: {stats['processed']} processed, {stats['rejected']} rejected, "
            f"{stats['released']} released, {stats['failed']} failed"
        )
        return stats

    def stop(self) -> None:
        """End run() after the current entry."""
        self._stopped = True


class HandlerFailed(Exception):
    """A handler raised or returned a non-ProcessResult; the entry was released or rejected."""

    def __init__(self, entry_id: str, rejected: bool = False):
        self.entry_id = entry_id
        self.rejected = rejected
        super().__init__(f"Handler failed for {entry_id}")
