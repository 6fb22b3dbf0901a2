"""
DAILY SETTLEMENT JOB
Read → process → write loop over all eligible sellers, in chunks

RESPONSIBILITIES:
- Job-level idempotency through ExecutionTracker
- Route each ProcessOutcome (buffer / no-op / skip)
- Persist each chunk through ChunkWriter
- Finalize the execution record

RULES:
❌ Per-seller errors never abort the run
✅ A failed chunk write marks every seller in that chunk as failed
✅ Stop requests are honoured between chunks only
✅ Errors escaping the loop or the final record save mark the run FAILED
"""

import logging
from typing import AsyncIterator, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from settlement.domain.exceptions import SettlementWriteError
from settlement.domain.models import (
    ExecutionContext,
    Failed,
    JobRunStatus,
    JobRunSummary,
    NoOp,
    Seller,
    SettlementDraft,
    SkipReason,
    Skipped,
    Success,
)
from settlement.domain.services.batch_ports import SellerSource
from settlement.domain.services.settlement_processor import SettlementProcessor
from settlement.services.chunk_writer import ChunkWriter
from settlement.services.execution_tracker import ExecutionTracker
from settlement.services.skip_tracker import SkipTracker

logger = logging.getLogger(__name__)


async def chunked(sellers: AsyncIterator[Seller], size: int) -> AsyncIterator[List[Seller]]:
    """Group an async seller stream into lists of at most `size`"""
    chunk: List[Seller] = []
    async for seller in sellers:
        chunk.append(seller)
        if len(chunk) >= size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


class DailySettlementJob:
    """
    One settlement run for one target date.

    The read session (if given) is shared by the seller source and the
    processor's fetchers; its identity map is released after every chunk.
    """

    def __init__(
        self,
        seller_source: SellerSource,
        processor: SettlementProcessor,
        writer: ChunkWriter,
        tracker: ExecutionTracker,
        skip_tracker: Optional[SkipTracker] = None,
        chunk_size: int = 100,
        read_session: Optional[AsyncSession] = None,
    ):
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        self.seller_source = seller_source
        self.processor = processor
        self.writer = writer
        self.tracker = tracker
        self.skip_tracker = skip_tracker or SkipTracker()
        self.chunk_size = chunk_size
        self.read_session = read_session
        self._stop_requested = False

    def request_stop(self) -> None:
        """Stop after the chunk currently in progress"""
        logger.warning("🛑 Stop requested for settlement job")
        self._stop_requested = True

    async def run(self, ctx: ExecutionContext) -> JobRunSummary:
        """
        Execute the job for ctx.target_date

        Raises:
            BatchAlreadyRunningError: from ExecutionTracker.before_run
        """
        self.skip_tracker.clear()
        await self.tracker.before_run(ctx)

        if ctx.already_completed:
            return self._summary(ctx, JobRunStatus.ALREADY_COMPLETED)

        try:
            async for sellers in chunked(self.seller_source.eligible_sellers(), self.chunk_size):
                await self._run_chunk(ctx, sellers)

                if self._stop_requested:
                    ctx.stop_requested = True
                    break

            if ctx.stop_requested:
                logger.warning(
                    f"🛑 Settlement job stopped for {ctx.target_date} after "
                    f"{ctx.chunk_count} chunks; execution record left STARTED"
                )
                return self._summary(ctx, JobRunStatus.STOPPED)

            record = await self.tracker.complete(ctx, self.skip_tracker)
        except Exception as e:
            logger.exception(f"❌ Settlement job aborted for {ctx.target_date}: {e}")
            await self._mark_failed(ctx, e)
            return self._summary(ctx, JobRunStatus.FAILED, error_message=str(e))

        return self._summary(ctx, JobRunStatus(record.status.value), error_message=record.error_message)

    async def _mark_failed(self, ctx: ExecutionContext, error: Exception) -> None:
        """Best-effort FAILED save; a store error here is logged, not raised"""
        try:
            await self.tracker.fail(ctx, error, self.skip_tracker)
        except Exception as save_error:
            logger.error(
                f"❌ Could not mark execution {ctx.execution_id} FAILED for "
                f"{ctx.target_date}: {save_error}",
                exc_info=save_error,
            )

    async def _run_chunk(self, ctx: ExecutionContext, sellers: List[Seller]) -> None:
        drafts: List[SettlementDraft] = []

        for seller in sellers:
            ctx.processed_count += 1
            try:
                outcome = await self.processor.process(seller, ctx.target_date)
            except Exception as e:
                self.skip_tracker.record(seller, SkipReason.UNKNOWN, str(e) or type(e).__name__)
                continue

            if isinstance(outcome, Success):
                drafts.append(outcome.draft)
            elif isinstance(outcome, NoOp):
                ctx.noop_count += 1
            elif isinstance(outcome, Skipped):
                self.skip_tracker.record(seller, SkipReason.ALREADY_EXISTS, str(outcome.error))
            elif isinstance(outcome, Failed):
                self.skip_tracker.record_error(seller, outcome.error)

        try:
            result = await self.writer.write(drafts)
            ctx.write_count += result.written_count
        except SettlementWriteError as e:
            for draft in drafts:
                self.skip_tracker.record(draft.seller, SkipReason.WRITE_ERROR, str(e))
        finally:
            drafts.clear()
            if self.read_session is not None:
                self.read_session.expunge_all()

        ctx.chunk_count += 1
        logger.info(
            f"📦 Chunk {ctx.chunk_count} done: processed={ctx.processed_count}, "
            f"written={ctx.write_count}, skipped={len(self.skip_tracker.events)}"
        )

    def _summary(
        self,
        ctx: ExecutionContext,
        status: JobRunStatus,
        error_message: Optional[str] = None,
    ) -> JobRunSummary:
        record = ctx.record
        return JobRunSummary(
            job_name=ctx.job_name,
            target_date=ctx.target_date,
            run_token=ctx.run_token,
            status=status,
            execution_id=ctx.execution_id,
            total_sellers=record.total_sellers if record else 0,
            processed_count=ctx.processed_count,
            success_count=record.success_count if ctx.already_completed else ctx.write_count,
            failure_count=self.skip_tracker.error_skip_count(),
            already_exists_count=self.skip_tracker.already_exists_count(),
            noop_count=ctx.noop_count,
            chunk_count=ctx.chunk_count,
            error_message=error_message,
            skip_events=self.skip_tracker.events,
        )
