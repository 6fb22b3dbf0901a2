"""
Settlement Scheduler
Runs the daily settlement batch for yesterday on a cron schedule
"""

import asyncio
import logging
from typing import Optional

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from settlement.config import settings
from settlement.core.logging import setup_logging
from settlement.domain.exceptions import BatchAlreadyRunningError
from settlement.services.batch_trigger_service import (
    BatchTriggerResponse,
    BatchTriggerService,
    get_batch_trigger_service,
)
from settlement.utils.time import yesterday_local

logger = logging.getLogger(__name__)

DAILY_SETTLEMENT_JOB_ID = "daily_settlement"


class SettlementScheduler:
    """
    Daily settlement scheduler
    Default: 02:00 Asia/Seoul, settling the previous day
    """

    def __init__(self, trigger_service: Optional[BatchTriggerService] = None):
        """Initialize scheduler"""
        self.scheduler = AsyncIOScheduler(timezone=pytz.timezone(settings.TIMEZONE))
        self.trigger_service = trigger_service or get_batch_trigger_service()

    async def daily_settlement_job(self) -> Optional[BatchTriggerResponse]:
        """
        Settle yesterday for every eligible seller
        """
        target_date = yesterday_local()
        logger.info(f"🔄 Starting scheduled settlement for {target_date}...")

        try:
            response = await self.trigger_service.trigger(target_date)
        except BatchAlreadyRunningError as e:
            logger.warning(f"⏭️  Skipping scheduled run: {e}")
            return None

        logger.info(f"✅ Scheduled settlement finished: {response.status.value} - {response.message}")
        return response

    def start(self):
        """Start the scheduler"""
        logger.info("🚀 Starting settlement scheduler...")

        self.scheduler.add_job(
            self.daily_settlement_job,
            CronTrigger(
                hour=settings.SETTLEMENT_CRON_HOUR,
                minute=settings.SETTLEMENT_CRON_MINUTE,
            ),
            id=DAILY_SETTLEMENT_JOB_ID,
            name="Daily Seller Settlement",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        self.scheduler.start()

        for job in self.scheduler.get_jobs():
            logger.info(f"📅 {job.name} - Next run: {job.next_run_time}")

    def stop(self):
        """Stop the scheduler"""
        logger.info("🛑 Stopping settlement scheduler...")
        self.scheduler.shutdown(wait=False)
        logger.info("✅ Scheduler stopped")

    @property
    def running(self) -> bool:
        return bool(getattr(self.scheduler, "running", False))


async def main():
    """Standalone scheduler process"""
    setup_logging(settings.LOG_LEVEL)
    scheduler = SettlementScheduler()
    scheduler.start()

    try:
        while True:
            await asyncio.sleep(1)
    except (KeyboardInterrupt, SystemExit):
        scheduler.stop()


if __name__ == "__main__":
    asyncio.run(main())
