"""Credit limit administration

Company and user limit edits. Each edit is recorded in the ledger as a
zero-amount adjust entry so the history shows who changed what.
"""

import logging
from decimal import Decimal
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.b2b_order_repository import B2BOrderRepository
from src.app.repositories.company_account_repository import CompanyAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.app.repositories.portal_user_repository import PortalUserRepository
from src.domain.credit_transaction import CreditTransaction, TransactionType
from src.domain.money import ZERO, format_money, to_money
from .dtos import (
    CreditLimitResponseDTO,
    SetCompanyCreditLimitCommandDTO,
    SetUserCreditLimitCommandDTO,
)

logger = logging.getLogger(__name__)


def _describe(limit: Optional[Decimal]) -> str:
    return format_money(limit) if limit is not None else "unlimited"


class SetCompanyCreditLimit:
    """
    Use Case: Set a company's credit limit

    Business Rules:
    1. Limit must be >= 0
    2. Lowering below current usage is allowed; available credit goes
       negative and new orders are rejected until usage drops
    3. The change is recorded as a zero-amount adjust transaction
    """

    def __init__(
        self,
        uow: UnitOfWork,
        company_repo: CompanyAccountRepository,
        order_repo: B2BOrderRepository,
        transaction_repo: CreditTransactionRepository,
    ):
        self.uow = uow
        self.company_repo = company_repo
        self.order_repo = order_repo
        self.transaction_repo = transaction_repo

    async def execute(self, command: SetCompanyCreditLimitCommandDTO) -> Result[CreditLimitResponseDTO]:
        try:
            company = await self.company_repo.get_by_id(command.company_id, for_update=True)
            if not company:
                return Return.err(
                    Error(code="COMPANY_NOT_FOUND", message=f"Company {command.company_id} not found")
                )

            previous_limit = to_money(company.credit_limit)
            new_limit = to_money(command.credit_limit)
            used_credit = await self.order_repo.sum_outstanding(company.id)

            await self.company_repo.update_credit_limit(company.id, new_limit)
            await self.transaction_repo.create(
                CreditTransaction(
                    company_id=company.id,
                    transaction_type=TransactionType.ADJUST,
                    credit_amount=ZERO,
                    previous_balance=used_credit,
                    new_balance=used_credit,
                    notes=(
                        f"Company credit limit changed from {format_money(previous_limit)} "
                        f"to {format_money(new_limit)}"
                    ),
                    created_by=command.set_by,
                    idempotency_key=CreditTransaction.order_key(f"company-{company.id}", TransactionType.ADJUST),
                )
            )
            await self.uow.commit()

            if new_limit < used_credit:
                logger.warning(
                    f"Company {company.id} limit {new_limit} set below current usage {used_credit}"
                )
            logger.info(f"Company {company.id} credit limit {previous_limit} -> {new_limit} by {command.set_by}")

            return Return.ok(
                CreditLimitResponseDTO(
                    subject_id=company.id,
                    previous_limit=previous_limit,
                    credit_limit=new_limit,
                    message=f"Credit limit updated to {format_money(new_limit)}",
                )
            )

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="SET_CREDIT_LIMIT_FAILED",
                    message="Failed to update company credit limit",
                    reason=str(e),
                )
            )


class SetUserCreditLimit:
    """
    Use Case: Set or remove a user's personal credit sub-limit

    Business Rules:
    1. None removes the personal cap
    2. A limit below the user's current usage is rejected
    3. The change is recorded as a zero-amount adjust transaction on the
       user's company
    """

    def __init__(
        self,
        uow: UnitOfWork,
        company_repo: CompanyAccountRepository,
        user_repo: PortalUserRepository,
        order_repo: B2BOrderRepository,
        transaction_repo: CreditTransactionRepository,
    ):
        self.uow = uow
        self.company_repo = company_repo
        self.user_repo = user_repo
        self.order_repo = order_repo
        self.transaction_repo = transaction_repo

    async def execute(self, command: SetUserCreditLimitCommandDTO) -> Result[CreditLimitResponseDTO]:
        try:
            user = await self.user_repo.get_by_id(command.user_id)
            if not user:
                return Return.err(Error(code="USER_NOT_FOUND", message=f"User {command.user_id} not found"))
            if not user.company_id:
                return Return.err(
                    Error(
                        code="USER_HAS_NO_COMPANY",
                        message=f"User {command.user_id} is not assigned to a company",
                    )
                )

            # Company row first, then the user, same order as ledger writers
            company = await self.company_repo.get_by_id(user.company_id, for_update=True)
            user = await self.user_repo.get_by_id(user.id, for_update=True)

            previous_limit = to_money(user.user_credit_limit) if user.user_credit_limit is not None else None
            new_limit = to_money(command.credit_limit) if command.credit_limit is not None else None
            user_used = to_money(user.user_credit_used)

            if new_limit is not None and new_limit < user_used:
                await self.uow.rollback()
                return Return.err(
                    Error(
                        code="USER_LIMIT_BELOW_USAGE",
                        message=(
                            f"Credit limit {format_money(new_limit)} is below current usage "
                            f"{format_money(user_used)}"
                        ),
                        reason=f"user_credit_used={user_used}",
                    )
                )

            used_credit = await self.order_repo.sum_outstanding(company.id)

            await self.user_repo.update_credit_limit(user.id, new_limit)
            await self.transaction_repo.create(
                CreditTransaction(
                    company_id=company.id,
                    user_id=user.id,
                    transaction_type=TransactionType.ADJUST,
                    credit_amount=ZERO,
                    previous_balance=used_credit,
                    new_balance=used_credit,
                    notes=(
                        f"Credit limit for {user.email} changed from {_describe(previous_limit)} "
                        f"to {_describe(new_limit)}"
                    ),
                    created_by=command.set_by,
                    idempotency_key=CreditTransaction.order_key(f"user-{user.id}", TransactionType.ADJUST),
                )
            )
            await self.uow.commit()

            logger.info(f"User {user.id} credit limit {previous_limit} -> {new_limit} by {command.set_by}")

            return Return.ok(
                CreditLimitResponseDTO(
                    subject_id=user.id,
                    previous_limit=previous_limit,
                    credit_limit=new_limit,
                    message=f"Credit limit updated to {_describe(new_limit)}",
                )
            )

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="SET_CREDIT_LIMIT_FAILED",
                    message="Failed to update user credit limit",
                    reason=str(e),
                )
            )
