"""
Settlement exception hierarchy

Per-seller errors (already exists / processing / write) never escape the
batch loop; they are converted into skip events. The remaining errors are
raised at the trigger and API level.
"""

from datetime import date
from typing import Optional, Sequence


class SettlementError(Exception):
    """Base class for all settlement errors"""


class SettlementAlreadyExistsError(SettlementError):
    """A non-cancelled settlement already exists for the seller and period"""

    def __init__(self, seller_id: int, period_start: date, period_end: date, status: str):
        self.seller_id = seller_id
        self.period_start = period_start
        self.period_end = period_end
        self.status = status
        super().__init__(
            f"Settlement already exists: sellerId={seller_id}, "
            f"period={period_start}~{period_end}, status={status}"
        )


class SettlementProcessingError(SettlementError):
    """Data fetch or computation failed for one seller"""

    def __init__(self, seller_id: int, seller_code: str, message: Optional[str] = None):
        self.seller_id = seller_id
        self.seller_code = seller_code
        super().__init__(message or f"Failed to process settlement for seller: {seller_code}")


class SettlementWriteError(SettlementError):
    """Persisting a chunk failed; the whole chunk was rolled back"""

    def __init__(self, seller_codes: Sequence[str], message: str):
        self.seller_codes = list(seller_codes)
        super().__init__(message)


class BatchAlreadyRunningError(SettlementError):
    """A run for the same job and target date is still in progress"""

    def __init__(self, job_name: str, target_date: date):
        self.job_name = job_name
        self.target_date = target_date
        super().__init__(f"Batch job is already running: {job_name} ({target_date})")


class InvalidTargetDateError(SettlementError, ValueError):
    """Target date cannot be settled (e.g. it is in the future)"""


class SettlementNotFoundError(SettlementError):
    def __init__(self, settlement_id: int):
        self.settlement_id = settlement_id
        super().__init__(f"Settlement not found: id={settlement_id}")


class SettlementAccessDeniedError(SettlementError):
    """Settlement belongs to a different seller"""

    def __init__(self, seller_id: int, settlement_id: int):
        self.seller_id = seller_id
        self.settlement_id = settlement_id
        super().__init__(f"Seller {seller_id} does not have access to settlement {settlement_id}")
