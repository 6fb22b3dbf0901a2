"""
Domain Models - Batch Results
Values passed between the processor, the writer and the job
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Union

from settlement.domain.exceptions import (
    SettlementAlreadyExistsError,
    SettlementProcessingError,
)
from settlement.domain.models.entities import (
    JobExecutionRecord,
    Seller,
    Settlement,
    SettlementItem,
    SettlementItemType,
)


@dataclass
class SettlementDraft:
    """
    Processor output handed to the writer: a settlement and the items that
    will be attached to it right before persistence.
    """
    seller: Seller
    settlement: Settlement
    items: List[SettlementItem]

    def link_items(self) -> Settlement:
        """Attach items to the settlement (one-time step)"""
        if not self.settlement.items:
            self.settlement.attach_items(self.items)
        return self.settlement

    def _count(self, item_type: SettlementItemType) -> int:
        return sum(1 for item in self.items if item.item_type == item_type)

    @property
    def sale_item_count(self) -> int:
        return self._count(SettlementItemType.SALE)

    @property
    def refund_item_count(self) -> int:
        return self._count(SettlementItemType.REFUND)


# -------------------------------------------------------------------
# Per-seller outcome of SettlementProcessor.process
# -------------------------------------------------------------------

@dataclass(frozen=True)
class Success:
    draft: SettlementDraft


@dataclass(frozen=True)
class NoOp:
    """No qualifying orders or refunds in the period"""
    seller: Seller


@dataclass(frozen=True)
class Skipped:
    """Settlement already exists for the period"""
    seller: Seller
    error: SettlementAlreadyExistsError


@dataclass(frozen=True)
class Failed:
    seller: Seller
    error: SettlementProcessingError


ProcessOutcome = Union[Success, NoOp, Skipped, Failed]


# -------------------------------------------------------------------
# Skip bookkeeping
# -------------------------------------------------------------------

class SkipReason(str, Enum):
    ALREADY_EXISTS = "ALREADY_EXISTS"
    PROCESSING_ERROR = "PROCESSING_ERROR"
    WRITE_ERROR = "WRITE_ERROR"
    UNKNOWN = "UNKNOWN"

    @property
    def counts_as_failure(self) -> bool:
        return self is not SkipReason.ALREADY_EXISTS


@dataclass(frozen=True)
class SkipEvent:
    """One skipped seller in the current run (not persisted)"""
    seller_id: int
    seller_code: str
    seller_name: str
    reason: SkipReason
    message: str
    timestamp: datetime


# -------------------------------------------------------------------
# Job level
# -------------------------------------------------------------------

class JobRunStatus(str, Enum):
    COMPLETED = "COMPLETED"
    PARTIALLY_FAILED = "PARTIALLY_FAILED"
    FAILED = "FAILED"
    ALREADY_COMPLETED = "ALREADY_COMPLETED"
    STOPPED = "STOPPED"


@dataclass
class JobRunSummary:
    """What a single job invocation did"""
    job_name: str
    target_date: date
    run_token: str
    status: JobRunStatus
    execution_id: Optional[int] = None
    total_sellers: int = 0
    processed_count: int = 0
    success_count: int = 0
    failure_count: int = 0
    already_exists_count: int = 0
    noop_count: int = 0
    chunk_count: int = 0
    error_message: Optional[str] = None
    skip_events: List[SkipEvent] = field(default_factory=list)


@dataclass
class ExecutionContext:
    """
    State of one job invocation, passed explicitly to the tracker and
    the chunk loop.
    """
    job_name: str
    target_date: date
    run_token: str
    record: Optional[JobExecutionRecord] = None
    write_count: int = 0
    processed_count: int = 0
    noop_count: int = 0
    chunk_count: int = 0
    stop_requested: bool = False
    already_completed: bool = False

    @property
    def execution_id(self) -> Optional[int]:
        return self.record.id if self.record else None
