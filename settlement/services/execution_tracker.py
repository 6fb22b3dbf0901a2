"""
EXECUTION TRACKER
Job-level lifecycle of JobExecutionRecord

STATES:
STARTED → COMPLETED | PARTIALLY_FAILED | FAILED

RULES:
✅ COMPLETED for the same job and date → run is short-circuited
✅ FAILED / PARTIALLY_FAILED → old record deleted, fresh run starts
✅ STARTED older than the stale threshold → reclaimed like a failed run
❌ STARTED and recent → BatchAlreadyRunningError
"""

import logging
from datetime import timedelta

from settlement.domain.exceptions import BatchAlreadyRunningError
from settlement.domain.models import (
    ExecutionContext,
    JobExecutionRecord,
    JobExecutionStatus,
)
from settlement.domain.services.batch_ports import JobExecutionStore, SellerSource
from settlement.services.skip_tracker import SkipTracker
from settlement.utils.time import now_local_naive

logger = logging.getLogger(__name__)


class ExecutionTracker:
    def __init__(
        self,
        store: JobExecutionStore,
        seller_source: SellerSource,
        stale_after_minutes: int = 180,
    ):
        self.store = store
        self.seller_source = seller_source
        self.stale_after = timedelta(minutes=stale_after_minutes)

    def _is_stale(self, record: JobExecutionRecord) -> bool:
        return now_local_naive() - record.started_at > self.stale_after

    async def before_run(self, ctx: ExecutionContext) -> None:
        """
        Resolve the existing record for (job_name, target_date) and create
        a fresh STARTED record when the run should proceed.

        Raises:
            BatchAlreadyRunningError: a recent STARTED record exists
        """
        existing = await self.store.find_by_name_and_date(ctx.job_name, ctx.target_date)

        if existing is not None:
            if existing.status == JobExecutionStatus.COMPLETED:
                logger.info(
                    f"✅ {ctx.job_name} already completed for {ctx.target_date} "
                    f"(executionId={existing.id}), skipping run"
                )
                ctx.record = existing
                ctx.already_completed = True
                return

            if existing.is_retryable:
                logger.info(
                    f"🔁 Retrying {ctx.job_name} for {ctx.target_date} "
                    f"(previous status={existing.status.value}, "
                    f"success={existing.success_count}, failure={existing.failure_count})"
                )
                await self.store.delete(existing)
            elif existing.is_running and self._is_stale(existing):
                logger.warning(
                    f"⚠️ Reclaiming stale STARTED record for {ctx.job_name} {ctx.target_date} "
                    f"(executionId={existing.id}, started_at={existing.started_at})"
                )
                await self.store.delete(existing)
            else:
                raise BatchAlreadyRunningError(ctx.job_name, ctx.target_date)

        total_sellers = await self.seller_source.count_eligible()
        record = JobExecutionRecord(
            job_name=ctx.job_name,
            execution_date=ctx.target_date,
            status=JobExecutionStatus.STARTED,
            total_sellers=total_sellers,
        )
        ctx.record = await self.store.save(record)

        logger.info(
            f"🚀 {ctx.job_name} started for {ctx.target_date}: "
            f"executionId={ctx.record.id}, totalSellers={total_sellers}, runToken={ctx.run_token}"
        )

    async def complete(self, ctx: ExecutionContext, skip_tracker: SkipTracker) -> JobExecutionRecord:
        record = ctx.record
        record.complete(ctx.write_count, skip_tracker.error_skip_count())

        messages = skip_tracker.failure_messages()
        record.error_message = "\n".join(messages) if messages else None
        ctx.record = await self.store.save(record)

        logger.info(
            f"🏁 {ctx.job_name} finished for {ctx.target_date}: status={record.status.value}, "
            f"total={record.total_sellers}, success={record.success_count}, "
            f"failure={record.failure_count}, "
            f"successRate={record.success_rate():.2f}%, "
            f"elapsed={record.execution_time_seconds()}s"
        )
        return ctx.record

    async def fail(self, ctx: ExecutionContext, error: BaseException, skip_tracker: SkipTracker) -> JobExecutionRecord:
        record = ctx.record
        messages = skip_tracker.failure_messages()
        messages.append(f"{type(error).__name__}: {error}")

        record.success_count = ctx.write_count
        record.failure_count = skip_tracker.error_skip_count()
        record.fail("\n".join(messages))
        ctx.record = await self.store.save(record)

        logger.error(
            f"❌ {ctx.job_name} failed for {ctx.target_date}: "
            f"executionId={record.id}, error={error}"
        )
        return ctx.record
