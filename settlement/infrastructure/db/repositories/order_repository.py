"""
Order Repository
Settlement-target orders with their line items
"""

from datetime import datetime
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from settlement.domain.models import (
    Order,
    OrderItem,
    OrderStatus,
    SETTLEMENT_TARGET_ORDER_STATUSES,
)
from settlement.infrastructure.db.models import OrderItemModel, OrderModel


class OrderRepository:
    """Repository for Order (read-only)"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def settlement_target_orders_with_items(
        self,
        seller_id: int,
        period_start: datetime,
        period_end: datetime,
    ) -> List[Order]:
        """
        Get CONFIRMED / SHIPPED / DELIVERED orders placed in the window

        Args:
            seller_id: Seller ID
            period_start: Window start (inclusive)
            period_end: Window end (inclusive)

        Returns:
            Orders with their items loaded
        """
        result = await self.session.execute(
            select(OrderModel)
            .options(selectinload(OrderModel.order_items))
            .where(
                OrderModel.seller_id == seller_id,
                OrderModel.order_date.between(period_start, period_end),
                OrderModel.order_status.in_(SETTLEMENT_TARGET_ORDER_STATUSES),
            )
            .order_by(OrderModel.id)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    @staticmethod
    def _item_to_domain(model: OrderItemModel) -> OrderItem:
        return OrderItem(
            id=model.id,
            order_id=model.order_id,
            product_name=model.product_name,
            unit_price=model.unit_price,
            quantity=model.quantity,
            total_amount=model.total_amount,
            is_refunded=model.is_refunded,
        )

    def _to_domain(self, model: OrderModel) -> Order:
        """Convert ORM model to domain object"""
        return Order(
            id=model.id,
            order_no=model.order_no,
            seller_id=model.seller_id,
            status=OrderStatus(model.order_status),
            order_date=model.order_date,
            total_amount=model.total_amount,
            shipping_fee=model.shipping_fee,
            items=tuple(self._item_to_domain(i) for i in model.order_items),
        )
