"""
Batch collaborator protocols

The settlement job only talks to these interfaces; the SQLAlchemy
repositories in settlement.infrastructure implement them and tests
replace them with in-memory fakes.
"""

from datetime import date
from typing import AsyncIterator, List, Optional, Protocol

from settlement.domain.models import JobExecutionRecord, Seller, Settlement


class SellerSource(Protocol):
    """Protocol for eligible seller access - ASYNC"""

    def eligible_sellers(self) -> AsyncIterator[Seller]:
        """ACTIVE sellers ordered by id; each call restarts from the beginning"""
        ...

    async def count_eligible(self) -> int:
        ...


class SettlementPersister(Protocol):
    """Protocol for settlement persistence - ASYNC"""

    async def save_all(self, settlements: List[Settlement]) -> List[Settlement]:
        """Persist settlements with their items and assign ids"""
        ...


class JobExecutionStore(Protocol):
    """Protocol for job execution records - each call is its own transaction"""

    async def find_by_name_and_date(self, job_name: str, execution_date: date) -> Optional[JobExecutionRecord]:
        ...

    async def save(self, record: JobExecutionRecord) -> JobExecutionRecord:
        ...

    async def delete(self, record: JobExecutionRecord) -> None:
        ...
