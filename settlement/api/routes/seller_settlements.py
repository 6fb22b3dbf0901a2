"""
Seller Settlement API Routes
Sellers read their own settlements

The caller's seller id comes from the X-Seller-Id header.

Endpoints:
- GET /?page=&size=      my settlements, newest first
- GET /{settlement_id}   one of my settlements with items
"""

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from settlement.api.routes.settlements import (
    SettlementPageResponse,
    SettlementResponse,
    get_query_service,
)
from settlement.domain.exceptions import (
    SettlementAccessDeniedError,
    SettlementNotFoundError,
)
from settlement.services.settlement_query_service import SettlementQueryService

router = APIRouter()


@router.get("", response_model=SettlementPageResponse)
async def list_my_settlements(
    seller_id: int = Header(..., alias="X-Seller-Id"),
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    service: SettlementQueryService = Depends(get_query_service),
):
    """Settlements of the calling seller, newest first"""
    result = await service.list_seller_settlements(seller_id, page=page, size=size)
    return SettlementPageResponse(
        page=result.page,
        size=result.size,
        items=[SettlementResponse.from_domain(s) for s in result.items],
    )


@router.get("/{settlement_id}", response_model=SettlementResponse)
async def get_my_settlement(
    settlement_id: int,
    seller_id: int = Header(..., alias="X-Seller-Id"),
    service: SettlementQueryService = Depends(get_query_service),
):
    """
    One settlement with its items

    - 404 when the settlement does not exist
    - 403 when it belongs to another seller
    """
    try:
        settlement = await service.get_seller_settlement(seller_id, settlement_id)
    except SettlementNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SettlementAccessDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return SettlementResponse.from_domain(settlement)
