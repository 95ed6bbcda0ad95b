"""Credit Transaction Repository Interface

Defines the contract for credit transaction persistence operations.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional, Tuple
from src.domain.credit_transaction import CreditTransaction


class CreditTransactionRepository(ABC):
    """
    Repository interface for CreditTransaction persistence

    Transactions are immutable and append-only for audit trail.
    Idempotency is enforced via unique idempotency_key.
    """

    @abstractmethod
    async def create(self, transaction: CreditTransaction) -> CreditTransaction:
        """
        Create a new credit transaction

        Raises:
            LedgerWriteConflict: If idempotency_key already exists (concurrent duplicate)
        """
        pass

    @abstractmethod
    async def get_by_idempotency_key(self, idempotency_key: str) -> Optional[CreditTransaction]:
        pass

    @abstractmethod
    async def get_by_company_id(
        self, company_id: str, limit: int = 20, offset: int = 0
    ) -> Tuple[List[CreditTransaction], int]:
        """
        Paginated transaction history, most recent first

        Returns:
            (transactions, total count)
        """
        pass

    @abstractmethod
    async def get_replayed_balance(self, company_id: str) -> Decimal:
        """
        Replay a company's entries: reserve adds, deduct/refund/restore
        subtract, adjust adds its signed amount
        """
        pass
