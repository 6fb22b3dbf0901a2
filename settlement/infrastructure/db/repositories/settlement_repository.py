"""
Settlement Repository
Idempotency lookup, chunk persistence and admin read queries
"""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from settlement.domain.models import (
    CycleType,
    Settlement,
    SettlementItem,
    SettlementItemType,
    SettlementSource,
    SettlementStatus,
)
from settlement.infrastructure.db.models import SettlementItemModel, SettlementModel


class SettlementRepository:
    """Repository for Settlement and its items"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    async def find(
        self,
        seller_id: int,
        cycle_type: CycleType,
        period_start: date,
        period_end: date,
    ) -> Optional[Settlement]:
        """
        Get the non-cancelled settlement for an idempotency key

        Args:
            seller_id: Seller ID
            cycle_type: Settlement cycle
            period_start: Period start
            period_end: Period end

        Returns:
            Settlement (without items) or None
        """
        result = await self.session.execute(
            select(SettlementModel)
            .where(
                SettlementModel.seller_id == seller_id,
                SettlementModel.cycle_type == cycle_type,
                SettlementModel.period_start == period_start,
                SettlementModel.period_end == period_end,
                SettlementModel.status != SettlementStatus.CANCELLED,
            )
        )
        model = result.scalars().first()
        return self._to_domain(model, with_items=False) if model else None

    async def save_all(self, settlements: List[Settlement]) -> List[Settlement]:
        """
        Insert settlements and their attached items

        Items are cascaded through the relationship. Generated ids are
        written back onto the domain objects. Does not commit.
        """
        pairs = []
        for settlement in settlements:
            model = self._to_model(settlement)
            self.session.add(model)
            pairs.append((settlement, model))

        await self.session.flush()

        for settlement, model in pairs:
            settlement.id = model.id
            settlement.version = model.version
            settlement.created_at = model.created_at
            for item, item_model in zip(settlement.items, model.settlement_items):
                item.id = item_model.id
                item.settlement_id = model.id

        return settlements

    async def get_with_items(self, settlement_id: int) -> Optional[Settlement]:
        result = await self.session.execute(
            select(SettlementModel)
            .options(selectinload(SettlementModel.settlement_items))
            .where(SettlementModel.id == settlement_id)
        )
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def _newest_first(self, *conditions, offset: int, limit: int) -> List[Settlement]:
        result = await self.session.execute(
            select(SettlementModel)
            .where(*conditions)
            .order_by(SettlementModel.created_at.desc(), SettlementModel.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return [self._to_domain(m, with_items=False) for m in result.scalars().all()]

    async def list_all(self, offset: int = 0, limit: int = 20) -> List[Settlement]:
        """All settlements, newest first"""
        return await self._newest_first(offset=offset, limit=limit)

    async def list_by_seller(self, seller_id: int, offset: int = 0, limit: int = 20) -> List[Settlement]:
        """Settlements of one seller, newest first"""
        return await self._newest_first(
            SettlementModel.seller_id == seller_id, offset=offset, limit=limit
        )

    async def list_by_period(
        self,
        period_start: date,
        period_end: date,
        offset: int = 0,
        limit: int = 20,
    ) -> List[Settlement]:
        """Settlements whose period lies inside [period_start, period_end], newest first"""
        return await self._newest_first(
            SettlementModel.period_start >= period_start,
            SettlementModel.period_end <= period_end,
            offset=offset,
            limit=limit,
        )

    async def count_by_period_and_status(
        self,
        period_start: date,
        period_end: date,
    ) -> Dict[SettlementStatus, int]:
        result = await self.session.execute(
            select(SettlementModel.status, func.count(SettlementModel.id))
            .where(
                SettlementModel.period_start >= period_start,
                SettlementModel.period_end <= period_end,
            )
            .group_by(SettlementModel.status)
        )
        counts = {status: 0 for status in SettlementStatus}
        for status, count in result.all():
            counts[SettlementStatus(status)] = int(count)
        return counts

    async def amount_totals_by_period(self, period_start: date, period_end: date) -> Dict[str, Decimal]:
        """
        Sum of amount columns over non-cancelled settlements in the period
        """
        columns = {
            "gross_sales_amount": SettlementModel.gross_sales_amount,
            "refund_amount": SettlementModel.refund_amount,
            "commission_amount": SettlementModel.commission_amount,
            "tax_amount": SettlementModel.tax_amount,
            "payout_amount": SettlementModel.payout_amount,
        }
        result = await self.session.execute(
            select(*(func.coalesce(func.sum(col), 0) for col in columns.values()))
            .where(
                SettlementModel.period_start >= period_start,
                SettlementModel.period_end <= period_end,
                SettlementModel.status != SettlementStatus.CANCELLED,
            )
        )
        row = result.one()
        return {
            name: Decimal(str(value)).quantize(Decimal("0.01"))
            for name, value in zip(columns.keys(), row)
        }

    # -------------------------------------------------------------------
    # Mapping
    # -------------------------------------------------------------------

    @staticmethod
    def _item_to_model(item: SettlementItem) -> SettlementItemModel:
        return SettlementItemModel(
            item_type=item.item_type,
            source_type=item.source_type,
            source_id=item.source_id,
            gross_amount=item.gross_amount,
            commission_rate=item.commission_rate,
            commission_amount=item.commission_amount,
            net_amount=item.net_amount,
            description=item.description,
        )

    def _to_model(self, settlement: Settlement) -> SettlementModel:
        return SettlementModel(
            seller_id=settlement.seller_id,
            cycle_type=settlement.cycle_type,
            period_start=settlement.period_start,
            period_end=settlement.period_end,
            gross_sales_amount=settlement.gross_sales_amount,
            refund_amount=settlement.refund_amount,
            commission_rate=settlement.commission_rate,
            commission_amount=settlement.commission_amount,
            tax_amount=settlement.tax_amount,
            adjustment_amount=settlement.adjustment_amount,
            payout_amount=settlement.payout_amount,
            status=settlement.status,
            settlement_items=[self._item_to_model(i) for i in settlement.items],
        )

    @staticmethod
    def _item_to_domain(model: SettlementItemModel) -> SettlementItem:
        return SettlementItem(
            id=model.id,
            settlement_id=model.settlement_id,
            item_type=SettlementItemType(model.item_type),
            source_type=SettlementSource(model.source_type),
            source_id=model.source_id,
            gross_amount=model.gross_amount,
            commission_rate=model.commission_rate,
            commission_amount=model.commission_amount,
            net_amount=model.net_amount,
            description=model.description,
        )

    def _to_domain(self, model: SettlementModel, with_items: bool = True) -> Settlement:
        """Convert ORM model to domain object"""
        return Settlement(
            id=model.id,
            version=model.version,
            seller_id=model.seller_id,
            cycle_type=CycleType(model.cycle_type),
            period_start=model.period_start,
            period_end=model.period_end,
            gross_sales_amount=model.gross_sales_amount,
            refund_amount=model.refund_amount,
            commission_rate=model.commission_rate,
            commission_amount=model.commission_amount,
            tax_amount=model.tax_amount,
            adjustment_amount=model.adjustment_amount,
            payout_amount=model.payout_amount,
            status=SettlementStatus(model.status),
            created_at=model.created_at,
            items=[self._item_to_domain(i) for i in model.settlement_items] if with_items else [],
        )
