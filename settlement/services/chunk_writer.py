"""
CHUNK WRITER
Persists one chunk of settlement drafts

RULES:
✅ One session and one transaction per chunk
✅ Items are attached to their settlement right before persistence
✅ A failure rolls back this chunk only
✅ Session identity map is released after every chunk
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List

from sqlalchemy.ext.asyncio import AsyncSession

from settlement.domain.exceptions import SettlementWriteError
from settlement.domain.models import SettlementDraft
from settlement.domain.services.batch_ports import SettlementPersister

logger = logging.getLogger(__name__)


@dataclass
class ChunkWriteResult:
    written_count: int = 0
    settlement_ids: List[int] = field(default_factory=list)
    seller_codes: List[str] = field(default_factory=list)


class ChunkWriter:
    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        persister_factory: Callable[[AsyncSession], SettlementPersister],
    ):
        self.session_factory = session_factory
        self.persister_factory = persister_factory

    async def write(self, drafts: List[SettlementDraft]) -> ChunkWriteResult:
        """
        Persist all drafts in a single transaction

        Raises:
            SettlementWriteError: the chunk was rolled back
        """
        if not drafts:
            return ChunkWriteResult()

        settlements = [draft.link_items() for draft in drafts]
        seller_codes = [draft.seller.code for draft in drafts]

        session = self.session_factory()
        try:
            async with session.begin():
                saved = await self.persister_factory(session).save_all(settlements)
            session.expunge_all()
        except Exception as e:
            logger.error(f"❌ Chunk write failed for {len(drafts)} sellers: {e}")
            raise SettlementWriteError(
                seller_codes,
                f"Failed to write settlement chunk ({len(drafts)} sellers): {e}",
            ) from e
        finally:
            await session.close()

        for draft in drafts:
            logger.debug(
                f"💾 {draft.seller.code}: settlementId={draft.settlement.id}, "
                f"saleItems={draft.sale_item_count}, refundItems={draft.refund_item_count}"
            )
        logger.info(f"💾 Chunk written: {len(saved)} settlements")
        return ChunkWriteResult(
            written_count=len(saved),
            settlement_ids=[s.id for s in saved],
            seller_codes=seller_codes,
        )
