"""
Refund Repository
Completed refunds attributed to a seller through order item -> order
"""

from datetime import datetime
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from settlement.domain.models import Refund, RefundStatus, RefundType
from settlement.infrastructure.db.models import OrderItemModel, OrderModel, RefundModel


class RefundRepository:
    """Repository for Refund (read-only)"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _completed_for_seller(self, seller_id: int, period_start: datetime, period_end: datetime):
        # Callers join refund -> order_item -> order
        return (
            OrderModel.seller_id == seller_id,
            RefundModel.refunded_at.between(period_start, period_end),
            RefundModel.refund_status == RefundStatus.COMPLETED,
        )

    async def completed_refunds(
        self,
        seller_id: int,
        period_start: datetime,
        period_end: datetime,
    ) -> List[Refund]:
        """
        Get COMPLETED refunds for a seller refunded inside the window
        """
        result = await self.session.execute(
            select(RefundModel)
            .join(OrderItemModel, RefundModel.order_item_id == OrderItemModel.id)
            .join(OrderModel, OrderItemModel.order_id == OrderModel.id)
            .where(*self._completed_for_seller(seller_id, period_start, period_end))
            .order_by(RefundModel.id)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    @staticmethod
    def _to_domain(model: RefundModel) -> Refund:
        """Convert ORM model to domain object"""
        return Refund(
            id=model.id,
            order_item_id=model.order_item_id,
            refund_amount=model.refund_amount,
            status=RefundStatus(model.refund_status),
            refund_type=RefundType(model.refund_type),
            refund_quantity=model.refund_quantity,
            refund_reason=model.refund_reason,
            refunded_at=model.refunded_at,
        )
