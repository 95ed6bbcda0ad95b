"""ValidateOrderCredit Use Case

Answers "may this user place an order of this amount right now?" for the
checkout extension. Read-only: nothing is reserved.
"""

import logging
from libs.result import Result, Return, Error
from src.app.repositories.b2b_order_repository import B2BOrderRepository
from src.app.repositories.company_account_repository import CompanyAccountRepository
from src.app.repositories.portal_user_repository import PortalUserRepository
from src.domain.money import to_money
from .credit_state import load_company_credit, user_credit_info
from .dtos import CreditInfoDTO, CreditValidationResponseDTO, ValidateCreditCommandDTO
from .evaluate_credit import evaluate_credit

logger = logging.getLogger(__name__)


class ValidateOrderCredit:
    """
    Use Case: Interactive credit validation

    Business Rules:
    1. User must be active, APPROVED and belong to the requested company
    2. Company limit is checked before the user's personal limit
    3. State is read at decision time; the answer is advisory only
    """

    def __init__(
        self,
        company_repo: CompanyAccountRepository,
        user_repo: PortalUserRepository,
        order_repo: B2BOrderRepository,
    ):
        self.company_repo = company_repo
        self.user_repo = user_repo
        self.order_repo = order_repo

    async def execute(self, command: ValidateCreditCommandDTO) -> Result[CreditValidationResponseDTO]:
        try:
            user = await self.user_repo.get_by_id(command.user_id)
            if not user or not user.can_order or user.company_id != command.company_id:
                return Return.err(
                    Error(
                        code="USER_NOT_AUTHORIZED",
                        message="User is not authorized to order for this company",
                        reason=f"user_id={command.user_id}, company_id={command.company_id}",
                    )
                )

            company = await self.company_repo.get_by_id(command.company_id)
            if not company:
                return Return.err(
                    Error(
                        code="COMPANY_NOT_FOUND",
                        message=f"Company {command.company_id} not found",
                    )
                )

            company_state = await load_company_credit(company, self.order_repo)
            user_state = user_credit_info(user)
            decision = evaluate_credit(company_state, user_state, to_money(command.order_amount))

            if not decision.admit:
                logger.info(
                    f"Credit validation rejected for user {user.id} "
                    f"({decision.limiting_factor}): {decision.message}"
                )

            return Return.ok(
                CreditValidationResponseDTO(
                    can_create=decision.admit,
                    limiting_factor=decision.limiting_factor,
                    message=decision.message,
                    credit_info=CreditInfoDTO(company=company_state, user=user_state),
                )
            )

        except Exception as e:
            logger.error(f"Credit validation failed: {e}")
            return Return.err(
                Error(
                    code="CREDIT_VALIDATION_FAILED",
                    message="Failed to validate order credit",
                    reason=str(e),
                )
            )
