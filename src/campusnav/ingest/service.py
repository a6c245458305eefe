"""Backend ingestion handler: validate, then upsert."""

import logging
import threading
from collections.abc import Mapping
from typing import Any

from sqlmodel import Session

from campusnav import database
from campusnav.ingest.base import Detection
from campusnav.ingest.validator import DetectionValidator, Rejection
from campusnav.location.store import UpsertResult, upsert_location

logger = logging.getLogger(__name__)


class IngestionService:
    """Turns raw scanner payloads into location upserts.

    Counters are per instance; the app owns one service for its lifetime.
    Handlers may run concurrently from worker threads.
    """

    def __init__(self, validator: DetectionValidator) -> None:
        self.validator = validator
        self._lock = threading.Lock()
        self._processed = 0
        self._rejected = 0
        self._store_errors = 0

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "messages_processed": self._processed,
                "rejected": self._rejected,
                "store_errors": self._store_errors,
            }

    def handle_message(self, topic: str, payload: bytes) -> UpsertResult | Rejection:
        """Transport callback: one message, one short-lived session."""
        try:
            with Session(database.engine) as session:
                return self.ingest(session, payload, source=topic)
        except Exception:
            # Never let a single message take the subscriber down
            logger.exception("Error handling message on %s", topic)
            with self._lock:
                self._store_errors += 1
            return UpsertResult(success=False, error="internal error")

    def ingest(
        self,
        session: Session,
        raw: bytes | str | Mapping[str, Any],
        source: str = "http",
    ) -> UpsertResult | Rejection:
        """Validate ``raw`` and, if it passes, upsert it into the store."""
        result = self.validator.validate(raw)
        if isinstance(result, Rejection):
            with self._lock:
                self._rejected += 1
            logger.warning(
                "Rejected message from %s [%s]: %s", source, result.reason, result.detail
            )
            return result

        self._check_topic(source, result)
        with self._lock:
            self._processed += 1
            count = self._processed
        logger.debug(
            "#%d received: %s -> %s (RSSI: %d) via %s",
            count,
            result.faculty_id,
            result.room,
            result.rssi,
            result.scanner_id,
        )

        outcome = upsert_location(session, result)
        if not outcome.success:
            with self._lock:
                self._store_errors += 1
            logger.error("DB update failed for %s: %s", result.faculty_id, outcome.error)
        return outcome

    @staticmethod
    def _check_topic(source: str, detection: Detection) -> None:
        if "/" not in source:
            return
        topic_scanner = source.rsplit("/", 1)[-1]
        if topic_scanner != detection.scanner_id:
            logger.debug(
                "Topic %s carries scannerId %s; storing anyway",
                source,
                detection.scanner_id,
            )
