"""Credit status queries

Tiered credit views for the admin dashboard and the portal account page.
"""

import logging
from libs.result import Result, Return, Error
from src.app.repositories.b2b_order_repository import B2BOrderRepository
from src.app.repositories.company_account_repository import CompanyAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.app.repositories.portal_user_repository import PortalUserRepository
from .credit_state import load_company_credit, user_credit_info
from .dtos import CompanyCreditStatusDTO, CreditTransactionDTO, UserCreditStatusDTO

logger = logging.getLogger(__name__)

RECENT_TRANSACTIONS = 10


class GetCompanyCreditStatus:
    """
    Use Case: Company credit status

    Returns limit / used / pending / available credit, the number of
    outstanding orders and the most recent ledger entries.
    """

    def __init__(
        self,
        company_repo: CompanyAccountRepository,
        order_repo: B2BOrderRepository,
        transaction_repo: CreditTransactionRepository,
    ):
        self.company_repo = company_repo
        self.order_repo = order_repo
        self.transaction_repo = transaction_repo

    async def execute(self, company_id: str) -> Result[CompanyCreditStatusDTO]:
        try:
            company = await self.company_repo.get_by_id(company_id)
            if not company:
                return Return.err(
                    Error(
                        code="COMPANY_NOT_FOUND",
                        message=f"Company {company_id} not found",
                    )
                )

            credit = await load_company_credit(company, self.order_repo)
            outstanding = await self.order_repo.list_outstanding(company.id)
            transactions, _ = await self.transaction_repo.get_by_company_id(
                company.id, limit=RECENT_TRANSACTIONS
            )

            return Return.ok(
                CompanyCreditStatusDTO(
                    company_id=company.id,
                    name=company.name,
                    credit=credit,
                    outstanding_order_count=len(outstanding),
                    recent_transactions=[CreditTransactionDTO.from_entity(t) for t in transactions],
                )
            )

        except Exception as e:
            logger.error(f"Failed to load credit status for company {company_id}: {e}")
            return Return.err(
                Error(
                    code="GET_CREDIT_STATUS_FAILED",
                    message="Failed to load company credit status",
                    reason=str(e),
                )
            )


class GetUserCreditStatus:
    """Use Case: Portal user's personal credit alongside their company's"""

    def __init__(
        self,
        company_repo: CompanyAccountRepository,
        user_repo: PortalUserRepository,
        order_repo: B2BOrderRepository,
    ):
        self.company_repo = company_repo
        self.user_repo = user_repo
        self.order_repo = order_repo

    async def execute(self, user_id: str) -> Result[UserCreditStatusDTO]:
        try:
            user = await self.user_repo.get_by_id(user_id)
            if not user:
                return Return.err(Error(code="USER_NOT_FOUND", message=f"User {user_id} not found"))

            if not user.company_id:
                return Return.err(
                    Error(
                        code="USER_HAS_NO_COMPANY",
                        message=f"User {user_id} is not assigned to a company",
                    )
                )

            company = await self.company_repo.get_by_id(user.company_id)
            if not company:
                return Return.err(
                    Error(code="COMPANY_NOT_FOUND", message=f"Company {user.company_id} not found")
                )

            return Return.ok(
                UserCreditStatusDTO(
                    user_id=user.id,
                    name=user.full_name,
                    email=user.email,
                    company=await load_company_credit(company, self.order_repo),
                    user=user_credit_info(user),
                )
            )

        except Exception as e:
            logger.error(f"Failed to load credit status for user {user_id}: {e}")
            return Return.err(
                Error(
                    code="GET_CREDIT_STATUS_FAILED",
                    message="Failed to load user credit status",
                    reason=str(e),
                )
            )
