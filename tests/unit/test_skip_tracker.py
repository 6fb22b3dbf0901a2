import threading
from datetime import date
from decimal import Decimal

from settlement.domain.exceptions import (
    SettlementAlreadyExistsError,
    SettlementProcessingError,
    SettlementWriteError,
)
from settlement.domain.models import Seller, SkipReason
from settlement.services.skip_tracker import SkipTracker


def seller(n: int) -> Seller:
    return Seller(id=n, code=f"S{n:03d}", name=f"Seller {n}", commission_rate=Decimal("0.1000"))


def test_classification():
    tracker = SkipTracker()
    tracker.record_error(seller(1), SettlementAlreadyExistsError(1, date(2026, 10, 18), date(2026, 10, 18), "PENDING"))
    tracker.record_error(seller(2), SettlementProcessingError(2, "S002"))
    tracker.record_error(seller(3), SettlementWriteError(["S003"], "chunk failed"))
    tracker.record_error(seller(4), KeyError("boom"))

    reasons = [e.reason for e in tracker.events]
    assert reasons == [
        SkipReason.ALREADY_EXISTS,
        SkipReason.PROCESSING_ERROR,
        SkipReason.WRITE_ERROR,
        SkipReason.UNKNOWN,
    ]


def test_already_exists_is_not_a_failure():
    tracker = SkipTracker()
    tracker.record(seller(1), SkipReason.ALREADY_EXISTS, "exists")
    tracker.record(seller(2), SkipReason.ALREADY_EXISTS, "exists")
    tracker.record(seller(3), SkipReason.PROCESSING_ERROR, "bad data")

    assert tracker.error_skip_count() == 1
    assert tracker.already_exists_count() == 2
    assert tracker.failure_messages() == ["[PROCESSING_ERROR] S003: bad data"]


def test_event_carries_seller_identity():
    tracker = SkipTracker()
    event = tracker.record(seller(5), SkipReason.UNKNOWN, "oops")

    assert event.seller_id == 5
    assert event.seller_code == "S005"
    assert event.seller_name == "Seller 5"
    assert event.timestamp is not None


def test_events_is_a_snapshot_and_clear_resets():
    tracker = SkipTracker()
    tracker.record(seller(1), SkipReason.WRITE_ERROR, "x")
    snapshot = tracker.events
    tracker.record(seller(2), SkipReason.WRITE_ERROR, "y")

    assert len(snapshot) == 1
    assert len(tracker.events) == 2

    tracker.clear()
    assert tracker.events == []
    assert tracker.error_skip_count() == 0


def test_concurrent_records_are_all_kept():
    tracker = SkipTracker()

    def worker(offset):
        for i in range(100):
            tracker.record(seller(offset + i), SkipReason.UNKNOWN, "x")

    threads = [threading.Thread(target=worker, args=(n * 1000,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert tracker.error_skip_count() == 400
