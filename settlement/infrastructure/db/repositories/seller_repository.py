"""
Seller Repository
Source of eligible (ACTIVE) sellers for the settlement batch
"""

from typing import AsyncIterator

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from settlement.domain.models import Seller, SellerStatus
from settlement.infrastructure.db.models import SellerModel

class SellerRepository:
    """Repository for Seller (read-only)"""

    def __init__(self, session: AsyncSession, page_size: int = 500):
        """Initialize with database session"""
        self.session = session
        self.page_size = page_size

    async def eligible_sellers(self) -> AsyncIterator[Seller]:
        """
        Iterate ACTIVE sellers ordered by id

        Pages with keyset pagination so large seller tables are never
        loaded at once. Every call starts from the beginning.
        """
        last_id = 0
        while True:
            result = await self.session.execute(
                select(SellerModel)
                .where(
                    SellerModel.status == SellerStatus.ACTIVE,
                    SellerModel.id > last_id,
                )
                .order_by(SellerModel.id)
                .limit(self.page_size)
            )
            page = result.scalars().all()
            if not page:
                return

            for model in page:
                yield self._to_domain(model)

            last_id = page[-1].id
            if len(page) < self.page_size:
                return

    async def count_eligible(self) -> int:
        """Number of ACTIVE sellers"""
        result = await self.session.execute(
            select(func.count(SellerModel.id))
            .where(SellerModel.status == SellerStatus.ACTIVE)
        )
        return int(result.scalar() or 0)

    @staticmethod
    def _to_domain(model: SellerModel) -> Seller:
        """Convert ORM model to domain object"""
        return Seller(
            id=model.id,
            code=model.seller_code,
            name=model.seller_name,
            commission_rate=model.commission_rate,
            status=SellerStatus(model.status),
        )
