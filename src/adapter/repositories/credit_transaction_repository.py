"""SQLAlchemy implementation of CreditTransactionRepository

Provides persistence for CreditTransaction entities with idempotency enforcement
via unique constraint on idempotency_key.
"""

from decimal import Decimal
from typing import List, Optional, Tuple
from sqlalchemy import case, func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.adapter.repositories.base import flush_or_conflict
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.credit_transaction import CreditTransaction, TransactionType
from src.domain.money import to_money


class SqlAlchemyCreditTransactionRepository(CreditTransactionRepository):
    """
    SQLAlchemy implementation of CreditTransactionRepository

    Features:
    - Idempotency enforcement via unique idempotency_key constraint
    - Immutable append-only transactions
    - Ledger replay computed in the database
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, transaction: CreditTransaction) -> CreditTransaction:
        """
        Append a ledger entry

        Args:
            transaction: CreditTransaction entity to persist

        Returns:
            Created CreditTransaction with generated ID

        Raises:
            LedgerWriteConflict: If idempotency_key already exists (a concurrent writer won)
        """
        self.session.add(transaction)
        await flush_or_conflict(self.session)
        await self.session.refresh(transaction)
        return transaction

    async def get_by_idempotency_key(self, idempotency_key: str) -> Optional[CreditTransaction]:
        """
        Retrieve ledger entry by idempotency key

        Used to decide whether a one-shot entry (reserve, deduct, refund,
        restore) was already written for an order.

        Args:
            idempotency_key: Unique idempotency key

        Returns:
            CreditTransaction if found, None otherwise
        """
        stmt = select(CreditTransaction).where(
            CreditTransaction.idempotency_key == idempotency_key
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_company_id(
        self, company_id: str, limit: int = 20, offset: int = 0
    ) -> Tuple[List[CreditTransaction], int]:
        """
        Retrieve a page of a company's ledger, most recent first

        Args:
            company_id: Company ID
            limit: Maximum number of entries to return
            offset: Number of entries to skip

        Returns:
            Tuple of (entries, total count)
        """
        count_stmt = (
            select(func.count())
            .select_from(CreditTransaction)
            .where(CreditTransaction.company_id == company_id)
        )
        total = (await self.session.execute(count_stmt)).scalar_one()

        stmt = (
            select(CreditTransaction)
            .where(CreditTransaction.company_id == company_id)
            .order_by(CreditTransaction.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def get_replayed_balance(self, company_id: str) -> Decimal:
        """
        Replay a company's ledger into the credit it implies is in use

        Reserve and adjust entries add their (signed) amount; deduct, refund
        and restore entries subtract theirs.

        Args:
            company_id: Company ID

        Returns:
            Replayed balance as money, 0.00 for an empty ledger
        """
        signed_amount = case(
            (CreditTransaction.transaction_type == TransactionType.RESERVE, CreditTransaction.credit_amount),
            (CreditTransaction.transaction_type == TransactionType.ADJUST, CreditTransaction.credit_amount),
            else_=-CreditTransaction.credit_amount,
        )
        stmt = select(func.sum(signed_amount)).where(CreditTransaction.company_id == company_id)
        result = await self.session.execute(stmt)
        return to_money(result.scalar_one_or_none())
