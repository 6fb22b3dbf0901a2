"""
Settlement Query Service
Read-side queries behind the admin and seller APIs
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from settlement.config import settings
from settlement.domain.exceptions import (
    InvalidTargetDateError,
    SettlementAccessDeniedError,
    SettlementNotFoundError,
)
from settlement.domain.models import JobExecutionRecord, Settlement, SettlementStatus
from settlement.infrastructure.db.repositories.job_execution_repository import JobExecutionRepository
from settlement.infrastructure.db.repositories.settlement_repository import SettlementRepository


@dataclass
class SettlementPage:
    items: List[Settlement]
    page: int
    size: int


@dataclass
class SettlementStatistics:
    period_start: date
    period_end: date
    status_counts: Dict[SettlementStatus, int]
    totals: Dict[str, Decimal]

    @property
    def total_count(self) -> int:
        return sum(self.status_counts.values())


class SettlementQueryService:
    def __init__(self, session: AsyncSession, job_name: Optional[str] = None):
        self.settlements = SettlementRepository(session)
        self.executions = JobExecutionRepository(session)
        self.job_name = job_name or settings.SETTLEMENT_JOB_NAME

    @staticmethod
    def _check_period(period_start: date, period_end: date) -> None:
        if period_start > period_end:
            raise InvalidTargetDateError(
                f"Period start {period_start} is after period end {period_end}"
            )

    async def get_settlement(self, settlement_id: int) -> Settlement:
        settlement = await self.settlements.get_with_items(settlement_id)
        if settlement is None:
            raise SettlementNotFoundError(settlement_id)
        return settlement

    async def list_settlements(
        self,
        period_start: Optional[date] = None,
        period_end: Optional[date] = None,
        page: int = 0,
        size: int = 20,
    ) -> SettlementPage:
        """
        Zero-based page of settlements, newest first

        Without a period every settlement is listed; start and end must be
        given together.
        """
        if period_start is None and period_end is None:
            items = await self.settlements.list_all(offset=page * size, limit=size)
            return SettlementPage(items=items, page=page, size=size)

        if period_start is None or period_end is None:
            raise InvalidTargetDateError("Period start and end must be given together")

        self._check_period(period_start, period_end)
        items = await self.settlements.list_by_period(
            period_start, period_end, offset=page * size, limit=size
        )
        return SettlementPage(items=items, page=page, size=size)

    async def list_seller_settlements(self, seller_id: int, page: int = 0, size: int = 20) -> SettlementPage:
        """Zero-based page of one seller's settlements, newest first"""
        items = await self.settlements.list_by_seller(seller_id, offset=page * size, limit=size)
        return SettlementPage(items=items, page=page, size=size)

    async def get_seller_settlement(self, seller_id: int, settlement_id: int) -> Settlement:
        """
        Settlement with items, only if it belongs to seller_id

        Raises:
            SettlementNotFoundError: no such settlement
            SettlementAccessDeniedError: settlement belongs to another seller
        """
        settlement = await self.get_settlement(settlement_id)
        if settlement.seller_id != seller_id:
            raise SettlementAccessDeniedError(seller_id, settlement_id)
        return settlement

    async def statistics(self, period_start: date, period_end: date) -> SettlementStatistics:
        self._check_period(period_start, period_end)
        return SettlementStatistics(
            period_start=period_start,
            period_end=period_end,
            status_counts=await self.settlements.count_by_period_and_status(period_start, period_end),
            totals=await self.settlements.amount_totals_by_period(period_start, period_end),
        )

    async def get_execution(self, execution_date: date) -> Optional[JobExecutionRecord]:
        return await self.executions.find_by_name_and_date(self.job_name, execution_date)
