"""
Skip Tracker
Classifies and counts sellers skipped during one batch run
"""

import logging
import threading
from typing import List

from settlement.domain.exceptions import (
    SettlementAlreadyExistsError,
    SettlementProcessingError,
    SettlementWriteError,
)
from settlement.domain.models import Seller, SkipEvent, SkipReason
from settlement.utils.time import now_local_naive

logger = logging.getLogger(__name__)


class SkipTracker:
    """
    In-memory skip log for a single run.

    ALREADY_EXISTS events are kept for reporting but are not failures;
    every other reason is counted by error_skip_count().
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._events: List[SkipEvent] = []

    @staticmethod
    def classify(error: BaseException) -> SkipReason:
        if isinstance(error, SettlementAlreadyExistsError):
            return SkipReason.ALREADY_EXISTS
        if isinstance(error, SettlementProcessingError):
            return SkipReason.PROCESSING_ERROR
        if isinstance(error, SettlementWriteError):
            return SkipReason.WRITE_ERROR
        return SkipReason.UNKNOWN

    def record(self, seller: Seller, reason: SkipReason, message: str) -> SkipEvent:
        event = SkipEvent(
            seller_id=seller.id,
            seller_code=seller.code,
            seller_name=seller.name,
            reason=reason,
            message=message,
            timestamp=now_local_naive(),
        )
        with self._lock:
            self._events.append(event)

        if reason is SkipReason.ALREADY_EXISTS:
            logger.info(f"Seller {seller.code} skipped: {message}")
        else:
            logger.error(f"❌ Seller {seller.code} skipped ({reason.value}): {message}")
        return event

    def record_error(self, seller: Seller, error: BaseException) -> SkipEvent:
        """Classify the error and record it"""
        return self.record(seller, self.classify(error), str(error) or type(error).__name__)

    def error_skip_count(self) -> int:
        with self._lock:
            return sum(1 for e in self._events if e.reason.counts_as_failure)

    def already_exists_count(self) -> int:
        with self._lock:
            return sum(1 for e in self._events if e.reason is SkipReason.ALREADY_EXISTS)

    @property
    def events(self) -> List[SkipEvent]:
        """Snapshot of recorded events"""
        with self._lock:
            return list(self._events)

    def failure_messages(self) -> List[str]:
        with self._lock:
            return [
                f"[{e.reason.value}] {e.seller_code}: {e.message}"
                for e in self._events
                if e.reason.counts_as_failure
            ]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
