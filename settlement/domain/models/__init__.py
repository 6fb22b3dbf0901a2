"""
Domain Models Package
Export all domain entities
"""

from .entities import (
    # Enums
    CycleType,
    JobExecutionStatus,
    OrderStatus,
    RefundStatus,
    RefundType,
    SellerStatus,
    SettlementItemType,
    SettlementSource,
    SettlementStatus,

    # Entities
    JobExecutionRecord,
    Order,
    OrderItem,
    Refund,
    Seller,
    Settlement,
    SettlementItem,

    SETTLEMENT_TARGET_ORDER_STATUSES,
)
from .results import (
    ExecutionContext,
    Failed,
    JobRunStatus,
    JobRunSummary,
    NoOp,
    ProcessOutcome,
    SettlementDraft,
    SkipEvent,
    SkipReason,
    Skipped,
    Success,
)

__all__ = [
    # Enums
    "CycleType",
    "JobExecutionStatus",
    "OrderStatus",
    "RefundStatus",
    "RefundType",
    "SellerStatus",
    "SettlementItemType",
    "SettlementSource",
    "SettlementStatus",

    # Entities
    "JobExecutionRecord",
    "Order",
    "OrderItem",
    "Refund",
    "Seller",
    "Settlement",
    "SettlementItem",

    "SETTLEMENT_TARGET_ORDER_STATUSES",

    # Batch results
    "ExecutionContext",
    "Failed",
    "JobRunStatus",
    "JobRunSummary",
    "NoOp",
    "ProcessOutcome",
    "SettlementDraft",
    "SkipEvent",
    "SkipReason",
    "Skipped",
    "Success",
]
