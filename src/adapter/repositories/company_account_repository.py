"""SQLAlchemy implementation of CompanyAccountRepository

Company rows are the lock target for every ledger mutation, so for_update
reads also repopulate instances already held by the session.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.adapter.repositories.base import flush_or_conflict
from src.app.repositories.company_account_repository import CompanyAccountRepository
from src.domain.company_account import CompanyAccount


class SqlAlchemyCompanyAccountRepository(CompanyAccountRepository):
    """
    SQLAlchemy implementation of CompanyAccountRepository

    Features:
    - Pessimistic locking via SELECT FOR UPDATE
    - Fresh reads under lock (populate_existing)
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, company_id: str, for_update: bool = False) -> Optional[CompanyAccount]:
        """
        Retrieve company by ID

        Args:
            company_id: Company ID
            for_update: Lock the row (SELECT FOR UPDATE) for a ledger mutation

        Returns:
            CompanyAccount if found, None otherwise
        """
        stmt = select(CompanyAccount).where(CompanyAccount.id == company_id)

        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_all(self) -> List[CompanyAccount]:
        """
        List every company, oldest first

        Returns:
            All CompanyAccount rows
        """
        stmt = select(CompanyAccount).order_by(CompanyAccount.created_at)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, company: CompanyAccount) -> CompanyAccount:
        """
        Create a new company

        Args:
            company: CompanyAccount entity to persist

        Returns:
            Created CompanyAccount with database defaults loaded

        Raises:
            LedgerWriteConflict: If a unique constraint rejects the row
        """
        self.session.add(company)
        await flush_or_conflict(self.session)
        await self.session.refresh(company)
        return company

    async def update_credit_limit(self, company_id: str, credit_limit: Decimal) -> None:
        """
        Set a company's credit limit; unknown IDs are ignored

        Args:
            company_id: Company ID
            credit_limit: New limit

        Raises:
            LedgerWriteConflict: On a lock failure during flush
        """
        company = await self.get_by_id(company_id)
        if company:
            company.credit_limit = credit_limit
            company.updated_at = datetime.utcnow()
            self.session.add(company)
            await flush_or_conflict(self.session)
