"""
Logging setup for queue producers and workers.

Many workers write to the same log stream, so every worker log record
carries the worker id and, while an entry is being handled, the entry id.
Both are attached to the record as attributes; the simple format shows
them as a message prefix, the json format as separate fields.
"""

import json
import logging
import sys
from typing import Any, Dict, MutableMapping, Optional, Tuple

# Record attributes attached by QueueLogger
CONTEXT_FIELDS = ("worker_id", "entry_id")


class JsonLineFormatter(logging.Formatter):
    """One JSON object per line; None fields are omitted."""

    def format(self, record: logging.LogRecord) -> str:
        data: Dict[str, Any] = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            data[key] = getattr(record, key, None)
        if record.exc_info:
            data["error"] = self.formatException(record.exc_info)
        return json.dumps({k: v for k, v in data.items() if v is not None}, default=str)


class QueueLogger(logging.LoggerAdapter):
    """
    Adapter that tags records with the worker id and an optional entry id.

    Usage:
        log = get_logger(__name__, worker_id="3f2a...")
        log.info("Claimed", entry_id="https://example.com/app/1")
        # [worker:3f2a....] [https://example.com/app/1] Claimed
    """

    def __init__(self, logger: logging.Logger, worker_id: Optional[str] = None):
        super().__init__(logger, {"worker_id": worker_id})
        self.worker_id = worker_id

    @property
    def level(self) -> int:
        return self.logger.level

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        entry_id = kwargs.pop("entry_id", None)

        extra = dict(kwargs.get("extra") or {})
        extra["worker_id"] = self.worker_id
        extra["entry_id"] = entry_id
        kwargs["extra"] = extra

        prefix = []
        if self.worker_id:
            prefix.append(f"[worker:{self.worker_id[:8]}]")
        if entry_id:
            prefix.append(f"[{entry_id}]")
        if prefix:
            msg = f"{' '.join(prefix)} {msg}"
        return msg, kwargs


def setup_logging(level: str = "INFO", format: str = "simple") -> None:
    """
    Configure the root logger with a single stdout handler.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        format: "simple" or "json"
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)

    if format == "json":
        handler.setFormatter(JsonLineFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))

    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)


def get_logger(name: str, worker_id: Optional[str] = None, debug_mode: bool = False) -> QueueLogger:
    """
    Get a worker-tagged logger.

    Args:
        name: Logger name (usually __name__)
        worker_id: Worker identifier added to every record
        debug_mode: If True, set this logger to DEBUG regardless of root level
    """
    logger = logging.getLogger(name)
    if debug_mode:
        logger.setLevel(logging.DEBUG)
    return QueueLogger(logger, worker_id)
