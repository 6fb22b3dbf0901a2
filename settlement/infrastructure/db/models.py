"""
Database Models (SQLAlchemy ORM)
Sellers, orders and refunds are read by the batch; settlements and
job executions are written by it.
"""

from decimal import Decimal

from sqlalchemy import (
    Column, Integer, String, Numeric, Date, DateTime,
    Boolean, ForeignKey, Text, Enum as SQLEnum, Index, UniqueConstraint, text
)
from sqlalchemy.orm import relationship

from settlement.domain.models import (
    CycleType,
    JobExecutionStatus,
    OrderStatus,
    RefundStatus,
    RefundType,
    SellerStatus,
    SettlementItemType,
    SettlementSource,
    SettlementStatus,
)
from settlement.infrastructure.db.database import Base
from settlement.utils.time import now_local_naive


# Money columns: 15 digits, 2 fractional; rates: 4 fractional
Money = Numeric(15, 2)
Rate = Numeric(5, 4)


# -------------------------------------------------------------------
# Source data (read-only for the batch)
# -------------------------------------------------------------------

class SellerModel(Base):
    """Marketplace seller"""
    __tablename__ = "sellers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    seller_code = Column(String(50), nullable=False, unique=True, index=True)
    seller_name = Column(String(100), nullable=False)
    commission_rate = Column(Rate, nullable=False, default=Decimal("0.1000"))
    status = Column(SQLEnum(SellerStatus), nullable=False, default=SellerStatus.ACTIVE, index=True)
    created_at = Column(DateTime, nullable=False, default=now_local_naive)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_no = Column(String(100), nullable=False, unique=True)
    seller_id = Column(Integer, ForeignKey("sellers.id"), nullable=False, index=True)
    order_status = Column(SQLEnum(OrderStatus), nullable=False, default=OrderStatus.PENDING, index=True)
    order_date = Column(DateTime, nullable=False, default=now_local_naive, index=True)
    total_amount = Column(Money, nullable=False, default=0)
    shipping_fee = Column(Numeric(10, 2), nullable=False, default=0)

    order_items = relationship("OrderItemModel", back_populates="order", order_by="OrderItemModel.id")


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_name = Column(String(200), nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False, default=0)
    quantity = Column(Integer, nullable=False, default=0)
    total_amount = Column(Money, nullable=False, default=0)
    is_refunded = Column(Boolean, nullable=False, default=False, index=True)

    order = relationship("OrderModel", back_populates="order_items")
    refunds = relationship("RefundModel", back_populates="order_item")


class RefundModel(Base):
    __tablename__ = "refunds"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_item_id = Column(Integer, ForeignKey("order_items.id"), nullable=False, index=True)
    refund_type = Column(SQLEnum(RefundType), nullable=False, default=RefundType.FULL)
    refund_amount = Column(Money, nullable=False, default=0)
    refund_quantity = Column(Integer, nullable=False, default=0)
    refund_reason = Column(String(500), nullable=True)
    refund_status = Column(SQLEnum(RefundStatus), nullable=False, default=RefundStatus.PENDING, index=True)
    refunded_at = Column(DateTime, nullable=True, index=True)

    order_item = relationship("OrderItemModel", back_populates="refunds")


# -------------------------------------------------------------------
# Settlement output
# -------------------------------------------------------------------

class SettlementModel(Base):
    """Seller settlement - one non-cancelled row per seller and period"""
    __tablename__ = "settlements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    version = Column(Integer, nullable=False)
    seller_id = Column(Integer, ForeignKey("sellers.id"), nullable=False, index=True)
    cycle_type = Column(SQLEnum(CycleType), nullable=False, default=CycleType.DAILY)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)

    gross_sales_amount = Column(Money, nullable=False, default=0)
    refund_amount = Column(Money, nullable=False, default=0)
    commission_rate = Column(Rate, nullable=False)
    commission_amount = Column(Money, nullable=False, default=0)
    tax_amount = Column(Money, nullable=False, default=0)
    adjustment_amount = Column(Money, nullable=False, default=0)
    payout_amount = Column(Money, nullable=False, default=0)

    status = Column(SQLEnum(SettlementStatus), nullable=False, default=SettlementStatus.PENDING, index=True)
    confirmed_at = Column(DateTime, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancel_reason = Column(String(500), nullable=True)
    created_at = Column(DateTime, nullable=False, default=now_local_naive)

    # Relationships
    seller = relationship("SellerModel")
    settlement_items = relationship(
        "SettlementItemModel",
        back_populates="settlement",
        cascade="all, delete-orphan",
        order_by="SettlementItemModel.id",
    )

    __mapper_args__ = {"version_id_col": version}

    # Indexes
    __table_args__ = (
        Index(
            "uk_settlement_active_period",
            "seller_id", "cycle_type", "period_start", "period_end",
            unique=True,
            postgresql_where=text("status <> 'CANCELLED'"),
            sqlite_where=text("status <> 'CANCELLED'"),
        ),
        Index("ix_settlements_period", "period_start", "period_end"),
    )


class SettlementItemModel(Base):
    """Settlement line (sale / refund / adjustment)"""
    __tablename__ = "settlement_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    settlement_id = Column(Integer, ForeignKey("settlements.id"), nullable=False, index=True)
    item_type = Column(SQLEnum(SettlementItemType), nullable=False, index=True)
    source_type = Column(SQLEnum(SettlementSource), nullable=False)
    source_id = Column(Integer, nullable=True)
    gross_amount = Column(Money, nullable=False, default=0)
    commission_rate = Column(Rate, nullable=False, default=0)
    commission_amount = Column(Money, nullable=False, default=0)
    net_amount = Column(Money, nullable=False, default=0)
    description = Column(String(500), nullable=True)

    settlement = relationship("SettlementModel", back_populates="settlement_items")

    __table_args__ = (
        Index("ix_settlement_items_source", "source_type", "source_id"),
    )


class SettlementJobExecutionModel(Base):
    """Batch job execution audit row - one per job name and target date"""
    __tablename__ = "settlement_job_executions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_name = Column(String(100), nullable=False)
    execution_date = Column(Date, nullable=False, index=True)
    execution_status = Column(SQLEnum(JobExecutionStatus), nullable=False, index=True)
    total_sellers = Column(Integer, nullable=False, default=0)
    success_count = Column(Integer, nullable=False, default=0)
    failure_count = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)
    started_at = Column(DateTime, nullable=False, default=now_local_naive)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("job_name", "execution_date", name="uk_job_execution"),
    )
