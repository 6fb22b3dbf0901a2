"""
Settlement Admin API Routes
Trigger the daily batch and inspect its results

Endpoints:
- POST /batch/trigger            run the batch for a target date
- GET  /executions/{date}        job execution record for a date
- GET  /?start=&end=&page=&size= settlements, optionally in a period
- GET  /statistics?start=&end=   counts per status and amount totals
- GET  /{settlement_id}          settlement with items
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from settlement.domain.exceptions import (
    BatchAlreadyRunningError,
    InvalidTargetDateError,
    SettlementNotFoundError,
)
from settlement.domain.models import JobExecutionRecord, Settlement, SettlementItem
from settlement.infrastructure.db.database import get_db
from settlement.services.batch_trigger_service import (
    BatchTriggerService,
    get_batch_trigger_service,
)
from settlement.services.settlement_query_service import SettlementQueryService

router = APIRouter()


# -------------------------------------------------------------------
# Request / Response models
# -------------------------------------------------------------------

class BatchTriggerRequest(BaseModel):
    """Request to run the settlement batch"""
    target_date: date = Field(..., description="Settlement date (YYYY-MM-DD), not in the future")


class BatchTriggerResponseModel(BaseModel):
    execution_id: Optional[int] = None
    job_name: str
    target_date: date
    status: str
    started_at: datetime
    message: str
    run_token: Optional[str] = None
    total_sellers: int = 0
    success_count: int = 0
    failure_count: int = 0
    already_exists_count: int = 0
    noop_count: int = 0


class JobExecutionResponse(BaseModel):
    id: Optional[int]
    job_name: str
    execution_date: date
    status: str
    total_sellers: int
    success_count: int
    failure_count: int
    success_rate: float
    error_message: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None
    execution_time_seconds: int

    @classmethod
    def from_domain(cls, record: JobExecutionRecord) -> "JobExecutionResponse":
        return cls(
            id=record.id,
            job_name=record.job_name,
            execution_date=record.execution_date,
            status=record.status.value,
            total_sellers=record.total_sellers,
            success_count=record.success_count,
            failure_count=record.failure_count,
            success_rate=round(record.success_rate(), 2),
            error_message=record.error_message,
            started_at=record.started_at,
            completed_at=record.completed_at,
            execution_time_seconds=record.execution_time_seconds(),
        )


class SettlementItemResponse(BaseModel):
    id: Optional[int]
    item_type: str
    source_type: str
    source_id: Optional[int]
    gross_amount: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    net_amount: Decimal
    description: Optional[str] = None

    @classmethod
    def from_domain(cls, item: SettlementItem) -> "SettlementItemResponse":
        return cls(
            id=item.id,
            item_type=item.item_type.value,
            source_type=item.source_type.value,
            source_id=item.source_id,
            gross_amount=item.gross_amount,
            commission_rate=item.commission_rate,
            commission_amount=item.commission_amount,
            net_amount=item.net_amount,
            description=item.description,
        )


class SettlementResponse(BaseModel):
    id: int
    seller_id: int
    cycle_type: str
    period_start: date
    period_end: date
    gross_sales_amount: Decimal
    refund_amount: Decimal
    net_sales_amount: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    tax_amount: Decimal
    total_deduction_amount: Decimal
    adjustment_amount: Decimal
    payout_amount: Decimal
    status: str
    version: Optional[int] = None
    created_at: Optional[datetime] = None
    items: List[SettlementItemResponse] = []

    @classmethod
    def from_domain(cls, settlement: Settlement) -> "SettlementResponse":
        return cls(
            id=settlement.id,
            seller_id=settlement.seller_id,
            cycle_type=settlement.cycle_type.value,
            period_start=settlement.period_start,
            period_end=settlement.period_end,
            gross_sales_amount=settlement.gross_sales_amount,
            refund_amount=settlement.refund_amount,
            net_sales_amount=settlement.net_sales_amount,
            commission_rate=settlement.commission_rate,
            commission_amount=settlement.commission_amount,
            tax_amount=settlement.tax_amount,
            total_deduction_amount=settlement.total_deduction_amount,
            adjustment_amount=settlement.adjustment_amount,
            payout_amount=settlement.payout_amount,
            status=settlement.status.value,
            version=settlement.version,
            created_at=settlement.created_at,
            items=[SettlementItemResponse.from_domain(i) for i in settlement.items],
        )


class SettlementPageResponse(BaseModel):
    page: int
    size: int
    items: List[SettlementResponse]


class SettlementStatisticsResponse(BaseModel):
    period_start: date
    period_end: date
    total_count: int
    status_counts: Dict[str, int]
    totals: Dict[str, Decimal]


# -------------------------------------------------------------------
# Dependencies
# -------------------------------------------------------------------

def get_query_service(db: AsyncSession = Depends(get_db)) -> SettlementQueryService:
    return SettlementQueryService(db)


# -------------------------------------------------------------------
# Routes
# -------------------------------------------------------------------

@router.post("/batch/trigger", response_model=BatchTriggerResponseModel)
async def trigger_batch(
    request: BatchTriggerRequest,
    service: BatchTriggerService = Depends(get_batch_trigger_service),
):
    """
    Run the daily settlement batch for target_date

    - 400 when target_date is in the future
    - 409 when a run for target_date is already in progress
    """
    try:
        response = await service.trigger(request.target_date)
    except InvalidTargetDateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BatchAlreadyRunningError as e:
        raise HTTPException(status_code=409, detail=str(e))

    summary = response.summary
    return BatchTriggerResponseModel(
        execution_id=response.execution_id,
        job_name=response.job_name,
        target_date=response.target_date,
        status=response.status.value,
        started_at=response.started_at,
        message=response.message,
        run_token=response.run_token,
        total_sellers=summary.total_sellers if summary else 0,
        success_count=summary.success_count if summary else 0,
        failure_count=summary.failure_count if summary else 0,
        already_exists_count=summary.already_exists_count if summary else 0,
        noop_count=summary.noop_count if summary else 0,
    )


@router.get("/executions/{execution_date}", response_model=JobExecutionResponse)
async def get_execution(
    execution_date: date,
    service: SettlementQueryService = Depends(get_query_service),
):
    """Job execution record for a target date"""
    record = await service.get_execution(execution_date)
    if record is None:
        raise HTTPException(
            status_code=404,
            detail=f"No execution found for {service.job_name} on {execution_date}",
        )
    return JobExecutionResponse.from_domain(record)


@router.get("/statistics", response_model=SettlementStatisticsResponse)
async def get_statistics(
    start: date = Query(..., description="Period start (YYYY-MM-DD)"),
    end: date = Query(..., description="Period end (YYYY-MM-DD)"),
    service: SettlementQueryService = Depends(get_query_service),
):
    """Settlement counts per status and amount totals (non-cancelled)"""
    try:
        stats = await service.statistics(start, end)
    except InvalidTargetDateError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return SettlementStatisticsResponse(
        period_start=stats.period_start,
        period_end=stats.period_end,
        total_count=stats.total_count,
        status_counts={status.value: count for status, count in stats.status_counts.items()},
        totals=stats.totals,
    )


@router.get("", response_model=SettlementPageResponse)
async def list_settlements(
    start: Optional[date] = Query(None, description="Period start (YYYY-MM-DD)"),
    end: Optional[date] = Query(None, description="Period end (YYYY-MM-DD)"),
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    service: SettlementQueryService = Depends(get_query_service),
):
    """All settlements, or those in the period when start and end are given; newest first"""
    try:
        result = await service.list_settlements(start, end, page=page, size=size)
    except InvalidTargetDateError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return SettlementPageResponse(
        page=result.page,
        size=result.size,
        items=[SettlementResponse.from_domain(s) for s in result.items],
    )


@router.get("/{settlement_id}", response_model=SettlementResponse)
async def get_settlement(
    settlement_id: int,
    service: SettlementQueryService = Depends(get_query_service),
):
    """Settlement with its items"""
    try:
        settlement = await service.get_settlement(settlement_id)
    except SettlementNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return SettlementResponse.from_domain(settlement)
