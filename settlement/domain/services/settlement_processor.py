"""
SETTLEMENT PROCESSOR
Per-seller settlement computation

RESPONSIBILITIES:
- Idempotency check (one non-cancelled settlement per seller and period)
- Fetch settlement-target orders and completed refunds
- Compute amounts via CommissionCalculator
- Build Settlement + SettlementItems

RULES:
❌ No persistence here
❌ No exceptions escape process(); every outcome is a ProcessOutcome value
✅ Already-existing settlement is an expected outcome, not a failure
✅ No data in the period → NoOp
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Protocol

from settlement.domain.exceptions import (
    SettlementAlreadyExistsError,
    SettlementProcessingError,
)
from settlement.domain.models import (
    CycleType,
    NoOp,
    Order,
    ProcessOutcome,
    Refund,
    Seller,
    Settlement,
    SettlementDraft,
    SettlementItem,
    SettlementStatus,
    Failed,
    Skipped,
    Success,
)
from settlement.domain.services.commission_calculator import CommissionCalculator
from settlement.utils.time import day_window

logger = logging.getLogger(__name__)


class OrderFetcher(Protocol):
    """Protocol for settlement-target order access - ASYNC"""

    async def settlement_target_orders_with_items(
        self,
        seller_id: int,
        period_start: datetime,
        period_end: datetime,
    ) -> List[Order]:
        """CONFIRMED / SHIPPED / DELIVERED orders in the window, with items"""
        ...


class RefundFetcher(Protocol):
    """Protocol for completed refund access - ASYNC"""

    async def completed_refunds(
        self,
        seller_id: int,
        period_start: datetime,
        period_end: datetime,
    ) -> List[Refund]:
        """COMPLETED refunds for the seller in the window"""
        ...


class SettlementExistenceCheck(Protocol):
    """Protocol for the idempotency lookup - ASYNC"""

    async def find(
        self,
        seller_id: int,
        cycle_type: CycleType,
        period_start: date,
        period_end: date,
    ) -> Optional[Settlement]:
        """Existing non-cancelled settlement for the key, if any"""
        ...


@dataclass(frozen=True)
class SettlementAmounts:
    gross_sales_amount: Decimal
    refund_amount: Decimal
    net_sales_amount: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    tax_amount: Decimal
    adjustment_amount: Decimal
    payout_amount: Decimal


class SettlementProcessor:
    """
    Settlement Processor
    Turns one seller + one target date into a settlement draft
    """

    def __init__(
        self,
        existence_check: SettlementExistenceCheck,
        order_fetcher: OrderFetcher,
        refund_fetcher: RefundFetcher,
        calculator: Optional[CommissionCalculator] = None,
        cycle_type: CycleType = CycleType.DAILY,
    ):
        self.existence_check = existence_check
        self.order_fetcher = order_fetcher
        self.refund_fetcher = refund_fetcher
        self.calculator = calculator or CommissionCalculator()
        self.cycle_type = cycle_type

    async def process(self, seller: Seller, target_date: date) -> ProcessOutcome:
        """
        Compute the daily settlement for one seller

        Args:
            seller: Eligible seller
            target_date: Settlement day (period_start == period_end)

        Returns:
            Success(draft) | NoOp | Skipped(already exists) | Failed(processing error)
        """
        logger.info(f"Processing seller: {seller.name} ({seller.code})")
        period_start = period_end = target_date

        try:
            existing = await self.existence_check.find(
                seller.id, self.cycle_type, period_start, period_end
            )
        except Exception as exc:
            return self._failed(seller, exc)

        if existing is not None:
            logger.warning(f"Settlement already exists for seller: {seller.code}")
            return Skipped(
                seller=seller,
                error=SettlementAlreadyExistsError(
                    seller.id, period_start, period_end, existing.status.value
                ),
            )

        try:
            window_start, window_end = day_window(period_start, period_end)
            orders = await self.order_fetcher.settlement_target_orders_with_items(
                seller.id, window_start, window_end
            )
            refunds = await self.refund_fetcher.completed_refunds(
                seller.id, window_start, window_end
            )
            orders = [o for o in orders if o.is_settlement_target]
            refunds = [r for r in refunds if r.is_settlement_target]

            if not orders and not refunds:
                logger.info(f"No settlement target data for seller: {seller.code}")
                return NoOp(seller=seller)

            amounts = self.calculate_amounts(orders, refunds, seller.commission_rate)
            settlement = self._build_settlement(seller, period_start, period_end, amounts)
            items = self._build_items(orders, refunds, seller.commission_rate)
        except Exception as exc:
            return self._failed(seller, exc)

        logger.info(
            f"Calculated settlement for {seller.code}: "
            f"grossSales={amounts.gross_sales_amount}, refund={amounts.refund_amount}, "
            f"commission={amounts.commission_amount}, tax={amounts.tax_amount}, "
            f"payout={amounts.payout_amount}"
        )
        return Success(draft=SettlementDraft(seller=seller, settlement=settlement, items=items))

    def calculate_amounts(
        self,
        orders: List[Order],
        refunds: List[Refund],
        commission_rate: Decimal,
    ) -> SettlementAmounts:
        """
        Settlement formula

        - net sales  = gross sales - refunds
        - commission = net sales x commission rate
        - tax        = commission x 10%
        - payout     = net sales - commission - tax + adjustment
        """
        calc = self.calculator

        gross_sales = calc.sum(*(item.total_amount for order in orders for item in order.items))
        refund_total = calc.sum(*(refund.refund_amount for refund in refunds))
        net_sales = calc.net_amount(gross_sales, refund_total)

        commission = calc.commission(net_sales, commission_rate)
        tax = calc.tax(commission)
        # Reserved for manual adjustments; the daily batch never sets it
        adjustment = calc.normalize(Decimal("0"))
        payout = calc.payout(net_sales, commission, tax, adjustment)

        return SettlementAmounts(
            gross_sales_amount=gross_sales,
            refund_amount=refund_total,
            net_sales_amount=net_sales,
            commission_rate=commission_rate,
            commission_amount=commission,
            tax_amount=tax,
            adjustment_amount=adjustment,
            payout_amount=payout,
        )

    def _build_settlement(
        self,
        seller: Seller,
        period_start: date,
        period_end: date,
        amounts: SettlementAmounts,
    ) -> Settlement:
        return Settlement(
            seller_id=seller.id,
            cycle_type=self.cycle_type,
            period_start=period_start,
            period_end=period_end,
            gross_sales_amount=amounts.gross_sales_amount,
            refund_amount=amounts.refund_amount,
            commission_rate=amounts.commission_rate,
            commission_amount=amounts.commission_amount,
            tax_amount=amounts.tax_amount,
            adjustment_amount=amounts.adjustment_amount,
            payout_amount=amounts.payout_amount,
            status=SettlementStatus.PENDING,
        )

    def _build_items(
        self,
        orders: List[Order],
        refunds: List[Refund],
        commission_rate: Decimal,
    ) -> List[SettlementItem]:
        calc = self.calculator
        items: List[SettlementItem] = []

        for order in orders:
            for order_item in order.items:
                amount = calc.normalize(order_item.total_amount)
                items.append(
                    SettlementItem.sale(
                        order_item_id=order_item.id,
                        amount=amount,
                        commission_rate=commission_rate,
                        commission_amount=calc.commission(amount, commission_rate),
                    )
                )

        for refund in refunds:
            amount = calc.normalize(refund.refund_amount)
            items.append(
                SettlementItem.refund(
                    refund_id=refund.id,
                    refund_amount=amount,
                    commission_rate=commission_rate,
                    commission_amount=calc.commission(amount, commission_rate),
                )
            )

        return items

    @staticmethod
    def _failed(seller: Seller, exc: Exception) -> Failed:
        logger.error(f"Error processing seller: {seller.code}", exc_info=exc)
        error = SettlementProcessingError(
            seller.id,
            seller.code,
            f"Failed to process settlement for seller: {seller.code} ({exc})",
        )
        error.__cause__ = exc
        return Failed(seller=seller, error=error)
