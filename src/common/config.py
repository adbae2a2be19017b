"""
Configuration loader for the crawl queue.

Loads all settings from environment variables (.env file).
Validates required settings and provides type-safe access.
"""

import os
from typing import List

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


class Config:
    """
    Centralized configuration for queue producers and workers.

    All values loaded from environment variables - NO SECRETS IN CODE.
    Credentials, if any, live inside MONGODB_URI.
    """

    # ===== MongoDB =====
    MONGODB_URI: str = os.getenv("MONGODB_URI", "")
    MONGODB_DATABASE: str = os.getenv("MONGODB_DATABASE", "crawler")
    MONGODB_TIMEOUT_MS: int = _int_env("MONGODB_TIMEOUT_MS", 30000)

    # ===== Collections =====
    QUEUE_COLLECTION: str = os.getenv("QUEUE_COLLECTION", "queued_apps")
    RESULTS_COLLECTION: str = os.getenv("RESULTS_COLLECTION", "apps")

    # ===== Logging =====
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "simple")

    # ===== Workers =====
    # Seconds to sleep between polls when the queue is empty
    WORKER_POLL_INTERVAL: float = _float_env("WORKER_POLL_INTERVAL", 5.0)
    # Attempts per store call when the store is unavailable
    WORKER_MAX_RETRIES: int = _int_env("WORKER_MAX_RETRIES", 3)
    # Handler failures on one entry before the worker rejects it
    WORKER_MAX_FAILURES: int = _int_env("WORKER_MAX_FAILURES", 3)

    @classmethod
    def validate(cls) -> None:
        """
        Validate that all required configuration is present.
        Raises ValueError if critical settings are missing.
        """
        required_settings = {
            "MONGODB_URI": cls.MONGODB_URI,
            "MONGODB_DATABASE": cls.MONGODB_DATABASE,
            "QUEUE_COLLECTION": cls.QUEUE_COLLECTION,
            "RESULTS_COLLECTION": cls.RESULTS_COLLECTION,
        }

        missing: List[str] = [name for name, value in required_settings.items() if not value]

        if missing:
            raise ValueError(
                f"Missing required configuration: {', '.join(missing)}. "
                f"Please check your .env file."
            )

        if cls.QUEUE_COLLECTION == cls.RESULTS_COLLECTION:
            raise ValueError(
                "QUEUE_COLLECTION and RESULTS_COLLECTION must name different collections."
            )

        if cls.WORKER_MAX_RETRIES < 1:
            raise ValueError("WORKER_MAX_RETRIES must be at least 1.")

        if cls.WORKER_MAX_FAILURES < 1:
            raise ValueError("WORKER_MAX_FAILURES must be at least 1.")

    @classmethod
    def summary(cls) -> str:
        """Return a summary of the current configuration (safe for logging)."""
        return f"""
Configuration Summary:
  MongoDB: {'✓ Configured' if cls.MONGODB_URI else '✗ Missing'}
  Database: {cls.MONGODB_DATABASE}
  Queue Collection: {cls.QUEUE_COLLECTION}
  Results Collection: {cls.RESULTS_COLLECTION}
  Timeout: {cls.MONGODB_TIMEOUT_MS}ms
  Worker Poll Interval: {cls.WORKER_POLL_INTERVAL}s
  Worker Max Retries: {cls.WORKER_MAX_RETRIES}
  Worker Max Failures: {cls.WORKER_MAX_FAILURES}
  Logging: {cls.LOG_LEVEL} ({cls.LOG_FORMAT})
        """.strip()
