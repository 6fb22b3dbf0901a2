"""
Domain Models - Entities
Pure domain objects with no infrastructure dependencies

Relations between owner and child records are ID-based: a Settlement holds
its items, and each item carries the owning settlement_id once the attach
step has run (see Settlement.attach_items).
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple

from settlement.utils.time import now_local_naive


ZERO = Decimal("0.00")


class SellerStatus(str, Enum):
    """Seller account status"""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class OrderStatus(str, Enum):
    """Order lifecycle status"""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


SETTLEMENT_TARGET_ORDER_STATUSES = (
    OrderStatus.CONFIRMED,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)


class RefundType(str, Enum):
    FULL = "FULL"
    PARTIAL_AMOUNT = "PARTIAL_AMOUNT"
    PARTIAL_QUANTITY = "PARTIAL_QUANTITY"


class RefundStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"


class CycleType(str, Enum):
    """Settlement cycle"""
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"


class SettlementStatus(str, Enum):
    """Settlement status (only PENDING is produced by the batch)"""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class SettlementItemType(str, Enum):
    SALE = "SALE"
    REFUND = "REFUND"
    ADJUSTMENT = "ADJUSTMENT"


class SettlementSource(str, Enum):
    ORDER_ITEM = "ORDER_ITEM"
    REFUND = "REFUND"
    MANUAL = "MANUAL"


class JobExecutionStatus(str, Enum):
    """Job execution status. STARTED is the only non-terminal state."""
    STARTED = "STARTED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    PARTIALLY_FAILED = "PARTIALLY_FAILED"


@dataclass(frozen=True)
class Seller:
    """Marketplace seller - read-only input to the batch"""
    id: int
    code: str
    name: str
    commission_rate: Decimal
    status: SellerStatus = SellerStatus.ACTIVE


@dataclass(frozen=True)
class OrderItem:
    """Single order line"""
    id: int
    order_id: int
    product_name: str
    unit_price: Decimal
    quantity: int
    total_amount: Decimal
    is_refunded: bool = False


@dataclass(frozen=True)
class Order:
    """Order with its line items"""
    id: int
    order_no: str
    seller_id: int
    status: OrderStatus
    order_date: datetime
    total_amount: Decimal
    shipping_fee: Decimal = ZERO
    items: Tuple[OrderItem, ...] = ()

    @property
    def is_settlement_target(self) -> bool:
        return self.status in SETTLEMENT_TARGET_ORDER_STATUSES


@dataclass(frozen=True)
class Refund:
    """Refund against an order line"""
    id: int
    order_item_id: int
    refund_amount: Decimal
    status: RefundStatus
    refund_type: RefundType = RefundType.FULL
    refund_quantity: int = 0
    refund_reason: Optional[str] = None
    refunded_at: Optional[datetime] = None

    @property
    def is_settlement_target(self) -> bool:
        return self.status == RefundStatus.COMPLETED


@dataclass
class SettlementItem:
    """
    One line contributing to a Settlement's totals.

    REFUND lines carry negated gross and commission amounts so that summing
    the lines of a settlement yields its aggregate directly.
    """
    item_type: SettlementItemType
    source_type: SettlementSource
    source_id: Optional[int]
    gross_amount: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    net_amount: Decimal
    description: Optional[str] = None
    settlement_id: Optional[int] = None
    id: Optional[int] = None

    @classmethod
    def sale(
        cls,
        order_item_id: int,
        amount: Decimal,
        commission_rate: Decimal,
        commission_amount: Decimal,
    ) -> "SettlementItem":
        return cls(
            item_type=SettlementItemType.SALE,
            source_type=SettlementSource.ORDER_ITEM,
            source_id=order_item_id,
            gross_amount=amount,
            commission_rate=commission_rate,
            commission_amount=commission_amount,
            net_amount=amount - commission_amount,
            description="Sale settlement",
        )

    @classmethod
    def refund(
        cls,
        refund_id: int,
        refund_amount: Decimal,
        commission_rate: Decimal,
        commission_amount: Decimal,
    ) -> "SettlementItem":
        gross = -refund_amount
        commission = -commission_amount
        return cls(
            item_type=SettlementItemType.REFUND,
            source_type=SettlementSource.REFUND,
            source_id=refund_id,
            gross_amount=gross,
            commission_rate=commission_rate,
            commission_amount=commission,
            net_amount=gross - commission,
            description="Refund deduction",
        )

    @classmethod
    def adjustment(cls, description: str, amount: Decimal) -> "SettlementItem":
        """Manual adjustment line. Never produced by the daily batch."""
        return cls(
            item_type=SettlementItemType.ADJUSTMENT,
            source_type=SettlementSource.MANUAL,
            source_id=None,
            gross_amount=ZERO,
            commission_rate=Decimal("0.0000"),
            commission_amount=ZERO,
            net_amount=amount,
            description=description,
        )

    @property
    def is_refund(self) -> bool:
        return self.item_type == SettlementItemType.REFUND

    @property
    def is_adjustment(self) -> bool:
        return self.item_type == SettlementItemType.ADJUSTMENT


@dataclass
class Settlement:
    """Computed payout record for one seller over one period"""
    seller_id: int
    cycle_type: CycleType
    period_start: date
    period_end: date
    gross_sales_amount: Decimal
    refund_amount: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    tax_amount: Decimal
    adjustment_amount: Decimal
    payout_amount: Decimal
    status: SettlementStatus = SettlementStatus.PENDING
    id: Optional[int] = None
    version: Optional[int] = None
    created_at: Optional[datetime] = None
    items: List[SettlementItem] = field(default_factory=list)

    def attach_items(self, items: List[SettlementItem]) -> None:
        """
        Take ownership of items. Runs once, right before persistence;
        settlement_id is filled in again once the row id is assigned.
        """
        for item in items:
            item.settlement_id = self.id
            self.items.append(item)

    @property
    def net_sales_amount(self) -> Decimal:
        """Gross sales minus refunds"""
        return self.gross_sales_amount - self.refund_amount

    @property
    def total_deduction_amount(self) -> Decimal:
        """Commission + tax - adjustment"""
        return self.commission_amount + self.tax_amount - self.adjustment_amount

    @property
    def is_cancelled(self) -> bool:
        return self.status == SettlementStatus.CANCELLED


@dataclass
class JobExecutionRecord:
    """Audit row tracking one batch invocation for one target date"""
    job_name: str
    execution_date: date
    status: JobExecutionStatus = JobExecutionStatus.STARTED
    total_sellers: int = 0
    success_count: int = 0
    failure_count: int = 0
    error_message: Optional[str] = None
    started_at: datetime = field(default_factory=now_local_naive)
    completed_at: Optional[datetime] = None
    id: Optional[int] = None

    def complete(self, success_count: int, failure_count: int) -> None:
        self.status = (
            JobExecutionStatus.PARTIALLY_FAILED
            if failure_count > 0
            else JobExecutionStatus.COMPLETED
        )
        self.success_count = success_count
        self.failure_count = failure_count
        self.completed_at = now_local_naive()

    def fail(self, error_message: str) -> None:
        self.status = JobExecutionStatus.FAILED
        self.error_message = error_message
        self.completed_at = now_local_naive()

    @property
    def is_running(self) -> bool:
        return self.status == JobExecutionStatus.STARTED

    @property
    def is_retryable(self) -> bool:
        return self.status in (JobExecutionStatus.FAILED, JobExecutionStatus.PARTIALLY_FAILED)

    def success_rate(self) -> float:
        """Successful sellers as a percentage of total sellers"""
        if self.total_sellers == 0:
            return 0.0
        return self.success_count / self.total_sellers * 100

    def execution_time_seconds(self) -> int:
        if self.completed_at is None:
            return 0
        return int((self.completed_at - self.started_at).total_seconds())
