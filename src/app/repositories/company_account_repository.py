"""Company Account Repository Interface

Defines the contract for company credit account persistence.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional
from src.domain.company_account import CompanyAccount


class CompanyAccountRepository(ABC):
    """
    Repository interface for CompanyAccount persistence

    The company row is the serialization point for all ledger writers:
    callers lock it with for_update=True before touching its orders.
    """

    @abstractmethod
    async def get_by_id(self, company_id: str, for_update: bool = False) -> Optional[CompanyAccount]:
        """
        Retrieve company account by ID

        Args:
            company_id: Company identifier
            for_update: If True, lock the row with SELECT FOR UPDATE and
                refresh any instance already loaded in the session

        Returns:
            CompanyAccount if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_all(self) -> List[CompanyAccount]:
        pass

    @abstractmethod
    async def create(self, company: CompanyAccount) -> CompanyAccount:
        pass

    @abstractmethod
    async def update_credit_limit(self, company_id: str, credit_limit: Decimal) -> None:
        """
        Update the company credit limit

        Note:
            Should be called with the company row already locked
        """
        pass
