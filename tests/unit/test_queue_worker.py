"""
Tests for QueueWorker.

Handlers are plain functions; the coordinator is the real one over the
in-memory store, except in the retry tests where a MagicMock lets us
script store failures.
"""

import pytest
from unittest.mock import MagicMock, patch

from src.common.error_handling import StoreUnavailable, WriteConflict
from src.common.queue_types import ProcessOutcome, ProcessResult
from src.common.repositories import EntryRepository, InMemoryDocumentStore, ResultRepository
from src.services.queue_coordinator import QueueCoordinator
from src.services.queue_worker import HandlerFailed, QueueWorker


def _worker(coordinator, handler, **kwargs):
    kwargs.setdefault("poll_interval", 0)
    kwargs.setdefault("max_retries", 3)
    kwargs.setdefault("max_failures", 3)
    kwargs.setdefault("retry_min_wait", 0)
    kwargs.setdefault("retry_max_wait", 0)
    return QueueWorker(coordinator, handler, worker_id="worker-test", **kwargs)


def _mock_coordinator():
    coordinator = MagicMock()
    coordinator.claimed_by.return_value = None
    return coordinator


class TestRunOnce:

    def test_empty_queue_returns_none(self, coordinator):
        handler = MagicMock()
        worker = _worker(coordinator, handler)

        assert worker.run_once() is None
        handler.assert_not_called()

    def test_processed_writes_result_then_removes_entry(self, coordinator):
        coordinator.enqueue("a.com")
        worker = _worker(coordinator, lambda entry: ProcessResult.processed({"title": "A"}))

        assert worker.run_once() == ProcessOutcome.PROCESSED

        assert coordinator.entries.exists("a.com") is False
        record = coordinator.results.get("a.com")
        assert record.fields == {"title": "A"}
        assert record.uploaded is False

    def test_processed_ignores_id_in_record(self, coordinator):
        coordinator.enqueue("a.com")
        worker = _worker(coordinator, lambda entry: ProcessResult.processed({"id": "b.com"}))

        worker.run_once()

        assert coordinator.results.is_processed("a.com") is True
        assert coordinator.results.is_processed("b.com") is False

    def test_processed_blocks_reenqueue(self, coordinator):
        coordinator.enqueue("a.com")
        _worker(coordinator, lambda entry: ProcessResult.processed()).run_once()

        assert coordinator.enqueue("a.com").accepted is False

    def test_rejected_keeps_entry(self, coordinator):
        coordinator.enqueue("a.com")
        worker = _worker(coordinator, lambda entry: ProcessResult.rejected())

        assert worker.run_once() == ProcessOutcome.REJECTED

        assert coordinator.entries.exists("a.com") is True
        assert coordinator.results.is_processed("a.com") is False
        assert worker.run_once() is None

    def test_released_entry_is_claimable_again(self, coordinator):
        coordinator.enqueue("a.com")
        worker = _worker(coordinator, lambda entry: ProcessResult.released())

        assert worker.run_once() == ProcessOutcome.RELEASED

        assert coordinator.claim_next().id == "a.com"

    def test_handler_receives_claimed_entry(self, coordinator):
        coordinator.enqueue("a.com", routing_key="games")
        seen = []

        def handler(entry):
            seen.append(entry)
            return ProcessResult.released()

        _worker(coordinator, handler).run_once()

        assert len(seen) == 1
        assert seen[0].id == "a.com"
        assert seen[0].busy is True
        assert seen[0].routing_key == "games"

    def test_handler_error_releases_and_raises(self, coordinator):
        coordinator.enqueue("a.com")

        def handler(entry):
            raise RuntimeError("parse failed")

        worker = _worker(coordinator, handler)

        with pytest.raises(HandlerFailed) as exc_info:
            worker.run_once()

        assert exc_info.value.entry_id == "a.com"
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert coordinator.claim_next().id == "a.com"


class TestRetry:

    def test_claim_retried_while_store_unavailable(self):
        coordinator = _mock_coordinator()
        coordinator.claim_next.side_effect = [StoreUnavailable("find_one_and_update", "down"), None]
        worker = _worker(coordinator, MagicMock())

        assert worker.run_once() is None
        assert coordinator.claim_next.call_count == 2

    def test_gives_up_after_max_retries(self):
        coordinator = _mock_coordinator()
        coordinator.claim_next.side_effect = StoreUnavailable("find_one_and_update", "down")
        worker = _worker(coordinator, MagicMock(), max_retries=3)

        with pytest.raises(StoreUnavailable):
            worker.run_once()

        assert coordinator.claim_next.call_count == 3

    def test_other_store_errors_not_retried(self):
        coordinator = _mock_coordinator()
        coordinator.claim_next.side_effect = WriteConflict("find_one_and_update", "bad update")
        worker = _worker(coordinator, MagicMock())

        with pytest.raises(WriteConflict):
            worker.run_once()

        assert coordinator.claim_next.call_count == 1

    def test_finish_calls_are_retried(self):
        entry = MagicMock(id="a.com")
        coordinator = _mock_coordinator()
        coordinator.claim_next.return_value = entry
        coordinator.complete.side_effect = [StoreUnavailable("delete_many", "down"), None]
        worker = _worker(coordinator, lambda e: ProcessResult.processed({"title": "A"}))

        assert worker.run_once() == ProcessOutcome.PROCESSED

        coordinator.record_result.assert_called_once()
        assert coordinator.complete.call_count == 2


class TestRun:

    def test_drains_queue_and_counts_outcomes(self, coordinator):
        for entry_id in ("a.com", "b.com", "c.com", "d.com"):
            coordinator.enqueue(entry_id)

        def handler(entry):
            if entry.id == "b.com":
                return ProcessResult.rejected()
            if entry.id == "c.com":
                raise ValueError("boom")
            return ProcessResult.processed()

        handler_calls = []

        def counting_handler(entry):
            handler_calls.append(entry.id)
            if handler_calls.count(entry.id) > 1:
                return ProcessResult.rejected()
            return handler(entry)

        stats = _worker(coordinator, counting_handler).run(stop_when_empty=True)

        assert stats == {"processed": 2, "rejected": 2, "released": 0, "failed": 1}
        assert coordinator.status()["total"] == 2

    def test_max_units(self, coordinator):
        for entry_id in ("a.com", "b.com", "c.com"):
            coordinator.enqueue(entry_id)

        stats = _worker(coordinator, lambda e: ProcessResult.processed()).run(max_units=2)

        assert stats["processed"] == 2
        assert coordinator.status()["queued"] == 1

    def test_stop_when_empty_on_empty_queue(self, coordinator):
        stats = _worker(coordinator, MagicMock()).run(stop_when_empty=True)

        assert stats == {"processed": 0, "rejected": 0, "released": 0, "failed": 0}

    def test_sleeps_when_empty_until_stopped(self, coordinator):
        worker = _worker(coordinator, MagicMock(), poll_interval=2.5)

        with patch("src.services.queue_worker.time.sleep") as mock_sleep:
            mock_sleep.side_effect = lambda seconds: worker.stop()
            stats = worker.run()

        mock_sleep.assert_called_once_with(2.5)
        assert stats["processed"] == 0

    def test_stop_from_handler(self, coordinator):
        for entry_id in ("a.com", "b.com"):
            coordinator.enqueue(entry_id)
        worker = None

        def handler(entry):
            worker.stop()
            return ProcessResult.processed()

        worker = _worker(coordinator, handler)
        stats = worker.run()

        assert stats["processed"] == 1
        assert coordinator.entries.exists("b.com") is True


class TestConstruction:

    def test_defaults_from_config(self, coordinator):
        with patch("src.services.queue_worker.Config") as mock_config:
            mock_config.WORKER_POLL_INTERVAL = 7.0
            mock_config.WORKER_MAX_RETRIES = 5
            mock_config.WORKER_MAX_FAILURES = 4
            worker = QueueWorker(coordinator, MagicMock())

        assert worker.poll_interval == 7.0
        assert worker.max_retries == 5
        assert worker.max_failures == 4
        assert len(worker.worker_id) == 32

    def test_explicit_zero_retries_kept(self, coordinator):
        with patch("src.services.queue_worker.Config") as mock_config:
            mock_config.WORKER_MAX_RETRIES = 5
            worker = QueueWorker(coordinator, MagicMock(), max_retries=0)

        assert worker.max_retries == 0

    def test_zero_retries_still_makes_one_attempt(self):
        coordinator = _mock_coordinator()
        coordinator.claim_next.side_effect = StoreUnavailable("find_one_and_update", "down")
        worker = _worker(coordinator, MagicMock(), max_retries=0)

        with pytest.raises(StoreUnavailable):
            worker.run_once()

        assert coordinator.claim_next.call_count == 1


class ReplyLostStore(InMemoryDocumentStore):
    """Commits the next `lost` claims, then raises as if the reply never arrived."""

    def __init__(self, lost=1):
        super().__init__()
        self.lost = lost

    def find_one_and_update(self, *args, **kwargs):
        doc = super().find_one_and_update(*args, **kwargs)
        if self.lost:
            self.lost -= 1
            raise StoreUnavailable("find_one_and_update", "connection reset")
        return doc


class TestLostClaimReply:

    def _coordinator(self, store):
        return QueueCoordinator(EntryRepository(store, "queued_apps"), ResultRepository(store, "apps"))

    def test_committed_claim_is_recovered(self):
        coordinator = self._coordinator(ReplyLostStore())
        coordinator.enqueue("a.com")
        coordinator.enqueue("b.com")
        seen = []

        def handler(entry):
            seen.append(entry.id)
            return ProcessResult.processed()

        assert _worker(coordinator, handler).run_once() == ProcessOutcome.PROCESSED

        assert seen == ["a.com"]
        assert coordinator.status() == {"queued": 1, "claimed": 0, "rejected": 0, "total": 1}

    def test_recovered_on_next_call_after_retries_exhausted(self):
        coordinator = self._coordinator(ReplyLostStore(lost=1))
        coordinator.enqueue("a.com")
        coordinator.enqueue("b.com")
        worker = _worker(coordinator, lambda e: ProcessResult.released(), max_retries=1)

        with pytest.raises(StoreUnavailable):
            worker.run_once()
        assert coordinator.status()["claimed"] == 1

        assert worker.run_once() == ProcessOutcome.RELEASED
        assert coordinator.status()["claimed"] == 0

    def test_no_lookup_before_first_attempt(self):
        coordinator = _mock_coordinator()
        coordinator.claim_next.return_value = None

        _worker(coordinator, MagicMock()).run_once()

        coordinator.claimed_by.assert_not_called()
        coordinator.claim_next.assert_called_once_with("worker-test")


class TestFailedEntries:

    def test_bad_entry_does_not_block_queue(self, coordinator):
        coordinator.enqueue("bad.com")
        coordinator.enqueue("good.com")
        seen = []

        def handler(entry):
            seen.append(entry.id)
            if entry.id == "bad.com":
                raise RuntimeError("unparseable")
            return ProcessResult.processed()

        stats = _worker(coordinator, handler, max_failures=3).run(max_units=10, stop_when_empty=True)

        assert seen == ["bad.com", "bad.com", "bad.com", "good.com"]
        assert stats == {"processed": 1, "rejected": 0, "released": 0, "failed": 3}
        assert coordinator.results.is_processed("good.com") is True
        assert coordinator.status() == {"queued": 0, "claimed": 0, "rejected": 1, "total": 1}

    def test_rejected_flag_on_last_failure(self, coordinator):
        coordinator.enqueue("bad.com")

        def handler(entry):
            raise RuntimeError("unparseable")

        worker = _worker(coordinator, handler, max_failures=2)

        with pytest.raises(HandlerFailed) as first:
            worker.run_once()
        with pytest.raises(HandlerFailed) as second:
            worker.run_once()

        assert first.value.rejected is False
        assert second.value.rejected is True
        assert worker.run_once() is None

    def test_success_resets_failure_count(self, coordinator):
        coordinator.enqueue("a.com")
        calls = []

        def handler(entry):
            calls.append(entry.id)
            if len(calls) == 1:
                raise RuntimeError("flaky")
            return ProcessResult.released()

        worker = _worker(coordinator, handler, max_failures=2)

        with pytest.raises(HandlerFailed):
            worker.run_once()
        assert worker.run_once() == ProcessOutcome.RELEASED
        assert worker._failures == {}

    def test_non_result_return_releases_entry(self, coordinator):
        coordinator.enqueue("a.com")
        worker = _worker(coordinator, lambda entry: None)

        with pytest.raises(HandlerFailed) as exc_info:
            worker.run_once()

        assert isinstance(exc_info.value.__cause__, TypeError)
        assert coordinator.status()["claimed"] == 0
        assert coordinator.claim_next().id == "a.com"

    def test_record_result_error_releases_entry(self):
        coordinator = _mock_coordinator()
        coordinator.claim_next.return_value = MagicMock(id="a.com")
        coordinator.record_result.side_effect = WriteConflict("insert_one", "rejected")
        worker = _worker(coordinator, lambda e: ProcessResult.processed())

        with pytest.raises(WriteConflict):
            worker.run_once()

        coordinator.complete.assert_not_called()
        coordinator.release.assert_called_once_with("a.com")

    def test_reject_error_releases_entry(self):
        coordinator = _mock_coordinator()
        coordinator.claim_next.return_value = MagicMock(id="a.com")
        coordinator.reject.side_effect = WriteConflict("find_one_and_update", "rejected")
        worker = _worker(coordinator, lambda e: ProcessResult.rejected())

        with pytest.raises(WriteConflict):
            worker.run_once()

        coordinator.release.assert_called_once_with("a.com")

    def test_failed_release_keeps_original_error(self):
        coordinator = _mock_coordinator()
        coordinator.claim_next.return_value = MagicMock(id="a.com")
        error = WriteConflict("update_many", "first")
        coordinator.release.side_effect = [error, WriteConflict("update_many", "second")]
        worker = _worker(coordinator, lambda e: ProcessResult.released())

        with pytest.raises(WriteConflict) as exc_info:
            worker.run_once()

        assert exc_info.value is error
        assert coordinator.release.call_count == 2
