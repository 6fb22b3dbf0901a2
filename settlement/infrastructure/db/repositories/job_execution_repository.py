"""
Job Execution Repository
Persistence for settlement batch execution records
"""

from datetime import date
from typing import Callable, Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from settlement.domain.models import JobExecutionRecord, JobExecutionStatus
from settlement.infrastructure.db.models import SettlementJobExecutionModel


class JobExecutionRepository:
    """Repository for JobExecutionRecord data access"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    async def find_by_name_and_date(self, job_name: str, execution_date: date) -> Optional[JobExecutionRecord]:
        """
        Get the execution record for a job and target date

        Args:
            job_name: Batch job name
            execution_date: Target settlement date

        Returns:
            JobExecutionRecord or None
        """
        model = await self._get_model(job_name, execution_date)
        return self._to_domain(model) if model else None

    async def save(self, record: JobExecutionRecord) -> JobExecutionRecord:
        """
        Insert a new record or update the existing one (matched by id)
        """
        model = None
        if record.id is not None:
            model = await self.session.get(SettlementJobExecutionModel, record.id)

        if model is None:
            model = SettlementJobExecutionModel(
                job_name=record.job_name,
                execution_date=record.execution_date,
            )
            self.session.add(model)

        model.execution_status = record.status
        model.total_sellers = record.total_sellers
        model.success_count = record.success_count
        model.failure_count = record.failure_count
        model.error_message = record.error_message
        model.started_at = record.started_at
        model.completed_at = record.completed_at

        await self.session.flush()
        record.id = model.id
        return record

    async def delete(self, record: JobExecutionRecord) -> None:
        if record.id is not None:
            await self.session.execute(
                delete(SettlementJobExecutionModel)
                .where(SettlementJobExecutionModel.id == record.id)
            )
        else:
            await self.session.execute(
                delete(SettlementJobExecutionModel)
                .where(
                    SettlementJobExecutionModel.job_name == record.job_name,
                    SettlementJobExecutionModel.execution_date == record.execution_date,
                )
            )
        await self.session.flush()

    async def _get_model(self, job_name: str, execution_date: date) -> Optional[SettlementJobExecutionModel]:
        result = await self.session.execute(
            select(SettlementJobExecutionModel).where(
                SettlementJobExecutionModel.job_name == job_name,
                SettlementJobExecutionModel.execution_date == execution_date,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _to_domain(model: SettlementJobExecutionModel) -> JobExecutionRecord:
        """Convert database model to domain entity"""
        return JobExecutionRecord(
            id=model.id,
            job_name=model.job_name,
            execution_date=model.execution_date,
            status=JobExecutionStatus(model.execution_status),
            total_sellers=model.total_sellers,
            success_count=model.success_count,
            failure_count=model.failure_count,
            error_message=model.error_message,
            started_at=model.started_at,
            completed_at=model.completed_at,
        )


class SqlJobExecutionStore:
    """
    JobExecutionStore backed by the database.

    Every call runs in its own committed transaction so the execution
    record stays visible even when a chunk transaction rolls back.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    async def find_by_name_and_date(self, job_name: str, execution_date: date) -> Optional[JobExecutionRecord]:
        async with self.session_factory() as session:
            return await JobExecutionRepository(session).find_by_name_and_date(job_name, execution_date)

    async def save(self, record: JobExecutionRecord) -> JobExecutionRecord:
        async with self.session_factory() as session:
            async with session.begin():
                return await JobExecutionRepository(session).save(record)

    async def delete(self, record: JobExecutionRecord) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                await JobExecutionRepository(session).delete(record)
