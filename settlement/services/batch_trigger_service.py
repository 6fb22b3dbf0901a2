"""
BATCH TRIGGER SERVICE
Entry point for running the daily settlement job (scheduler and admin API)

RESPONSIBILITIES:
- Validate the target date
- Refuse a second run for a date already running in this process
- Stamp a run token and wire the job to the database

RULES:
❌ Future target dates are rejected
❌ Same target date cannot run twice concurrently
✅ Unexpected failures become a FAILED response
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession

from settlement.config import settings
from settlement.domain.exceptions import BatchAlreadyRunningError, InvalidTargetDateError
from settlement.domain.models import ExecutionContext, JobRunStatus, JobRunSummary
from settlement.domain.services.settlement_processor import SettlementProcessor
from settlement.infrastructure.db.repositories.job_execution_repository import SqlJobExecutionStore
from settlement.infrastructure.db.repositories.order_repository import OrderRepository
from settlement.infrastructure.db.repositories.refund_repository import RefundRepository
from settlement.infrastructure.db.repositories.seller_repository import SellerRepository
from settlement.infrastructure.db.repositories.settlement_repository import SettlementRepository
from settlement.services.chunk_writer import ChunkWriter
from settlement.services.execution_tracker import ExecutionTracker
from settlement.services.settlement_job import DailySettlementJob
from settlement.utils.time import now_local_naive, today_local

logger = logging.getLogger(__name__)


@dataclass
class BatchTriggerResponse:
    job_name: str
    target_date: date
    status: JobRunStatus
    started_at: datetime
    message: str
    run_token: Optional[str] = None
    execution_id: Optional[int] = None
    summary: Optional[JobRunSummary] = None


def new_run_token() -> str:
    """Epoch milliseconds"""
    return str(int(time.time() * 1000))


class BatchTriggerService:
    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        job_name: Optional[str] = None,
        chunk_size: Optional[int] = None,
        seller_page_size: Optional[int] = None,
        stale_after_minutes: Optional[int] = None,
        today: Callable[[], date] = today_local,
    ):
        self.session_factory = session_factory
        self.job_name = job_name or settings.SETTLEMENT_JOB_NAME
        self.chunk_size = chunk_size or settings.SETTLEMENT_CHUNK_SIZE
        self.seller_page_size = seller_page_size or settings.SETTLEMENT_SELLER_PAGE_SIZE
        self.stale_after_minutes = stale_after_minutes or settings.SETTLEMENT_STALE_EXECUTION_MINUTES
        self.today = today

        self._running: Set[date] = set()
        self._lock = asyncio.Lock()

    def is_running(self, target_date: date) -> bool:
        return target_date in self._running

    def validate_target_date(self, target_date: date) -> None:
        if target_date > self.today():
            raise InvalidTargetDateError(
                f"Target date cannot be in the future: {target_date}"
            )

    def build_job(self, read_session: AsyncSession) -> DailySettlementJob:
        """Wire a job whose reads share `read_session`"""
        seller_source = SellerRepository(read_session, page_size=self.seller_page_size)
        processor = SettlementProcessor(
            existence_check=SettlementRepository(read_session),
            order_fetcher=OrderRepository(read_session),
            refund_fetcher=RefundRepository(read_session),
        )
        writer = ChunkWriter(self.session_factory, SettlementRepository)
        tracker = ExecutionTracker(
            store=SqlJobExecutionStore(self.session_factory),
            seller_source=seller_source,
            stale_after_minutes=self.stale_after_minutes,
        )
        return DailySettlementJob(
            seller_source=seller_source,
            processor=processor,
            writer=writer,
            tracker=tracker,
            chunk_size=self.chunk_size,
            read_session=read_session,
        )

    async def trigger(self, target_date: date) -> BatchTriggerResponse:
        """
        Run the settlement job for target_date

        Raises:
            InvalidTargetDateError: target_date is in the future
            BatchAlreadyRunningError: a run for target_date is in progress
        """
        self.validate_target_date(target_date)

        async with self._lock:
            if target_date in self._running:
                raise BatchAlreadyRunningError(self.job_name, target_date)
            self._running.add(target_date)

        started_at = now_local_naive()
        ctx = ExecutionContext(
            job_name=self.job_name,
            target_date=target_date,
            run_token=new_run_token(),
        )
        logger.info(f"▶️ Triggering {self.job_name} for {target_date} (runToken={ctx.run_token})")

        try:
            async with self.session_factory() as read_session:
                summary = await self.build_job(read_session).run(ctx)
        except BatchAlreadyRunningError:
            raise
        except Exception as e:
            logger.exception(f"❌ Settlement batch failed for {target_date}: {e}")
            return BatchTriggerResponse(
                job_name=self.job_name,
                target_date=target_date,
                status=JobRunStatus.FAILED,
                started_at=started_at,
                message=f"Settlement batch failed: {e}",
                run_token=ctx.run_token,
                execution_id=ctx.execution_id,
            )
        finally:
            async with self._lock:
                self._running.discard(target_date)

        return BatchTriggerResponse(
            job_name=self.job_name,
            target_date=target_date,
            status=summary.status,
            started_at=started_at,
            message=self._message(summary),
            run_token=ctx.run_token,
            execution_id=summary.execution_id,
            summary=summary,
        )

    @staticmethod
    def _message(summary: JobRunSummary) -> str:
        if summary.status == JobRunStatus.ALREADY_COMPLETED:
            return f"Settlement already completed for {summary.target_date}"
        if summary.status == JobRunStatus.STOPPED:
            return f"Settlement stopped after {summary.chunk_count} chunks"
        if summary.status == JobRunStatus.FAILED:
            return f"Settlement failed: {summary.error_message}"
        return (
            f"Settlement {summary.status.value.lower()}: "
            f"success={summary.success_count}, failure={summary.failure_count}, "
            f"skipped={summary.already_exists_count}, noop={summary.noop_count}"
        )


_service: Optional[BatchTriggerService] = None


def get_batch_trigger_service() -> BatchTriggerService:
    """Process-wide service shared by the scheduler and the admin API"""
    global _service
    if _service is None:
        from settlement.infrastructure.db.database import async_session_factory
        _service = BatchTriggerService(async_session_factory)
    return _service
