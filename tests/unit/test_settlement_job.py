"""
Unit Tests for DailySettlementJob

✅ Outcome routing and counting
✅ Write failure marks the whole chunk
✅ Stop between chunks
✅ Loop failure → FAILED
"""

import pytest
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Dict, List

from settlement.domain.exceptions import (
    SettlementAlreadyExistsError,
    SettlementProcessingError,
    SettlementWriteError,
)
from settlement.domain.models import (
    CycleType,
    ExecutionContext,
    Failed,
    JobExecutionRecord,
    JobExecutionStatus,
    JobRunStatus,
    NoOp,
    Seller,
    Settlement,
    SettlementDraft,
    SkipReason,
    Skipped,
    Success,
)
from settlement.services.chunk_writer import ChunkWriteResult
from settlement.services.execution_tracker import ExecutionTracker
from settlement.services.settlement_job import DailySettlementJob, chunked

JOB = "dailySettlementJob"
TARGET = date(2026, 10, 18)


def make_seller(n: int) -> Seller:
    return Seller(id=n, code=f"S{n:03d}", name=f"Seller {n}", commission_rate=Decimal("0.1000"))


def make_draft(seller: Seller) -> SettlementDraft:
    settlement = Settlement(
        seller_id=seller.id,
        cycle_type=CycleType.DAILY,
        period_start=TARGET,
        period_end=TARGET,
        gross_sales_amount=Decimal("100.00"),
        refund_amount=Decimal("0.00"),
        commission_rate=seller.commission_rate,
        commission_amount=Decimal("10.00"),
        tax_amount=Decimal("1.00"),
        adjustment_amount=Decimal("0.00"),
        payout_amount=Decimal("89.00"),
    )
    return SettlementDraft(seller=seller, settlement=settlement, items=[])


class FakeSellerSource:
    def __init__(self, sellers: List[Seller], fail_after: int = None):
        self.sellers = sellers
        self.fail_after = fail_after
        self.iterations = 0

    async def eligible_sellers(self):
        self.iterations += 1
        for i, seller in enumerate(self.sellers):
            if self.fail_after is not None and i >= self.fail_after:
                raise RuntimeError("seller source unavailable")
            yield seller

    async def count_eligible(self):
        return len(self.sellers)


class FakeProcessor:
    """Outcome per seller id: 'ok', 'noop', 'exists', 'error', 'crash'"""

    def __init__(self, plan: Dict[int, str]):
        self.plan = plan
        self.processed = []

    async def process(self, seller, target_date):
        self.processed.append(seller.id)
        kind = self.plan.get(seller.id, "ok")
        if kind == "noop":
            return NoOp(seller=seller)
        if kind == "exists":
            return Skipped(seller=seller, error=SettlementAlreadyExistsError(seller.id, target_date, target_date, "PENDING"))
        if kind == "error":
            return Failed(seller=seller, error=SettlementProcessingError(seller.id, seller.code))
        if kind == "crash":
            raise ValueError("unexpected")
        return Success(draft=make_draft(seller))


class FakeWriter:
    def __init__(self, fail_chunks=()):
        self.fail_chunks = set(fail_chunks)
        self.calls = 0
        self.written: List[List[int]] = []

    async def write(self, drafts):
        self.calls += 1
        if self.calls in self.fail_chunks:
            raise SettlementWriteError([d.seller.code for d in drafts], "duplicate key")
        self.written.append([d.seller.id for d in drafts])
        return ChunkWriteResult(written_count=len(drafts))


class MemoryStore:
    def __init__(self):
        self.records = {}

    async def find_by_name_and_date(self, job_name, execution_date):
        return self.records.get((job_name, execution_date))

    async def save(self, record):
        if record.id is None:
            record.id = len(self.records) + 1
        self.records[(record.job_name, record.execution_date)] = record
        return record

    async def delete(self, record):
        self.records.pop((record.job_name, record.execution_date), None)


def build_job(sellers, plan=None, writer=None, store=None, chunk_size=2, source=None):
    source = source or FakeSellerSource(sellers)
    store = store or MemoryStore()
    job = DailySettlementJob(
        seller_source=source,
        processor=FakeProcessor(plan or {}),
        writer=writer or FakeWriter(),
        tracker=ExecutionTracker(store, source),
        chunk_size=chunk_size,
    )
    return job, store


def context():
    return ExecutionContext(job_name=JOB, target_date=TARGET, run_token="1760000000000")


@pytest.mark.asyncio
async def test_chunked_groups_sellers():
    async def gen():
        for n in range(5):
            yield make_seller(n)

    chunks = [c async for c in chunked(gen(), 2)]
    assert [len(c) for c in chunks] == [2, 2, 1]


@pytest.mark.asyncio
async def test_all_success_completes():
    sellers = [make_seller(n) for n in range(1, 6)]
    writer = FakeWriter()
    job, store = build_job(sellers, writer=writer)

    summary = await job.run(context())

    assert summary.status == JobRunStatus.COMPLETED
    assert summary.success_count == 5
    assert summary.failure_count == 0
    assert summary.chunk_count == 3
    assert writer.written == [[1, 2], [3, 4], [5]]
    record = store.records[(JOB, TARGET)]
    assert record.status == JobExecutionStatus.COMPLETED
    assert record.success_count == 5


@pytest.mark.asyncio
async def test_outcomes_are_classified():
    sellers = [make_seller(n) for n in range(1, 6)]
    plan = {2: "noop", 3: "exists", 4: "error", 5: "crash"}
    job, store = build_job(sellers, plan=plan)

    summary = await job.run(context())

    assert summary.status == JobRunStatus.PARTIALLY_FAILED
    assert summary.success_count == 1
    assert summary.noop_count == 1
    assert summary.already_exists_count == 1
    assert summary.failure_count == 2
    reasons = {e.seller_id: e.reason for e in summary.skip_events}
    assert reasons == {
        3: SkipReason.ALREADY_EXISTS,
        4: SkipReason.PROCESSING_ERROR,
        5: SkipReason.UNKNOWN,
    }
    assert store.records[(JOB, TARGET)].failure_count == 2


@pytest.mark.asyncio
async def test_only_already_exists_is_completed():
    sellers = [make_seller(1), make_seller(2)]
    job, store = build_job(sellers, plan={1: "exists", 2: "exists"})

    summary = await job.run(context())

    assert summary.status == JobRunStatus.COMPLETED
    assert summary.failure_count == 0
    assert summary.already_exists_count == 2


@pytest.mark.asyncio
async def test_write_error_fails_every_seller_in_chunk():
    sellers = [make_seller(n) for n in range(1, 6)]
    writer = FakeWriter(fail_chunks={2})
    job, store = build_job(sellers, writer=writer)

    summary = await job.run(context())

    assert summary.status == JobRunStatus.PARTIALLY_FAILED
    assert summary.success_count == 3
    assert summary.failure_count == 2
    failed = sorted(e.seller_id for e in summary.skip_events if e.reason == SkipReason.WRITE_ERROR)
    assert failed == [3, 4]
    assert writer.written == [[1, 2], [5]]


@pytest.mark.asyncio
async def test_completed_date_is_not_reprocessed():
    sellers = [make_seller(1)]
    store = MemoryStore()
    store.records[(JOB, TARGET)] = JobExecutionRecord(
        job_name=JOB,
        execution_date=TARGET,
        status=JobExecutionStatus.COMPLETED,
        total_sellers=1,
        success_count=1,
        id=42,
    )
    source = FakeSellerSource(sellers)
    writer = FakeWriter()
    job, _ = build_job(sellers, writer=writer, store=store, source=source)

    summary = await job.run(context())

    assert summary.status == JobRunStatus.ALREADY_COMPLETED
    assert summary.execution_id == 42
    assert source.iterations == 0
    assert writer.calls == 0


@pytest.mark.asyncio
async def test_stop_between_chunks_leaves_record_started():
    sellers = [make_seller(n) for n in range(1, 6)]
    writer = FakeWriter()
    job, store = build_job(sellers, writer=writer)

    original_write = writer.write

    async def write_then_stop(drafts):
        result = await original_write(drafts)
        job.request_stop()
        return result

    writer.write = write_then_stop

    summary = await job.run(context())

    assert summary.status == JobRunStatus.STOPPED
    assert summary.chunk_count == 1
    assert writer.written == [[1, 2]]
    assert store.records[(JOB, TARGET)].status == JobExecutionStatus.STARTED


@pytest.mark.asyncio
async def test_error_escaping_loop_marks_failed():
    sellers = [make_seller(n) for n in range(1, 6)]
    source = FakeSellerSource(sellers, fail_after=3)
    job, store = build_job(sellers, source=source)

    summary = await job.run(context())

    assert summary.status == JobRunStatus.FAILED
    assert "seller source unavailable" in summary.error_message
    record = store.records[(JOB, TARGET)]
    assert record.status == JobExecutionStatus.FAILED
    assert record.success_count == 2
    assert "RuntimeError: seller source unavailable" in record.error_message


def test_chunk_size_must_be_positive():
    with pytest.raises(ValueError):
        build_job([], chunk_size=0)


class FlakyStore(MemoryStore):
    """Stores copies like a database and raises on the chosen save calls"""

    def __init__(self, fail_on_saves=()):
        super().__init__()
        self.fail_on_saves = set(fail_on_saves)
        self.saves = 0

    async def save(self, record):
        self.saves += 1
        if self.saves in self.fail_on_saves:
            raise RuntimeError("db connection reset")
        if record.id is None:
            record.id = len(self.records) + 1
        self.records[(record.job_name, record.execution_date)] = replace(record)
        return record


@pytest.mark.asyncio
async def test_final_record_save_failure_marks_failed_and_allows_retry():
    sellers = [make_seller(n) for n in range(1, 4)]
    store = FlakyStore(fail_on_saves={2})
    job, _ = build_job(sellers, store=store)

    summary = await job.run(context())

    assert summary.status == JobRunStatus.FAILED
    assert "db connection reset" in summary.error_message
    record = store.records[(JOB, TARGET)]
    assert record.status == JobExecutionStatus.FAILED
    assert "RuntimeError: db connection reset" in record.error_message

    retry, _ = build_job(sellers, store=store)
    retried = await retry.run(context())

    assert retried.status == JobRunStatus.COMPLETED
    assert store.records[(JOB, TARGET)].status == JobExecutionStatus.COMPLETED


@pytest.mark.asyncio
async def test_failed_save_of_failure_is_logged_not_raised():
    sellers = [make_seller(n) for n in range(1, 4)]
    store = FlakyStore(fail_on_saves={2, 3})
    job, _ = build_job(sellers, store=store)

    summary = await job.run(context())

    assert summary.status == JobRunStatus.FAILED
    assert store.records[(JOB, TARGET)].status == JobExecutionStatus.STARTED
