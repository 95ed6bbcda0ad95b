"""Credit Evaluator

Pure admission decision over a credit snapshot. Callers are responsible for
the snapshot being fresh (read under lock, or re-read at decision time).
"""

from decimal import Decimal
from typing import Optional
from src.domain.money import format_money, to_money
from .dtos import CompanyCreditInfoDTO, CreditDecisionDTO, UserCreditInfoDTO


def evaluate_credit(
    company: CompanyCreditInfoDTO,
    user: Optional[UserCreditInfoDTO],
    proposed_amount: Decimal,
) -> CreditDecisionDTO:
    """
    Decide whether an order of proposed_amount may be admitted

    Rules:
    1. A zero amount always admits
    2. Company check first: available_credit >= proposed_amount
    3. User check only when the user has a personal limit:
       user_credit_available >= proposed_amount
    4. limiting_factor names the first failing check

    Raises:
        ValueError: If proposed_amount is negative
    """
    amount = to_money(proposed_amount)
    if amount < 0:
        raise ValueError(f"Proposed amount must be >= 0, got {amount}")

    if amount == 0:
        return CreditDecisionDTO(admit=True, limiting_factor=None, message="Credit validation passed")

    if company.available_credit < amount:
        return CreditDecisionDTO(
            admit=False,
            limiting_factor="company",
            message=(
                f"Insufficient company credit. Available: {format_money(company.available_credit)}, "
                f"Required: {format_money(amount)}"
            ),
        )

    if user is not None and user.has_limit and user.user_credit_available < amount:
        return CreditDecisionDTO(
            admit=False,
            limiting_factor="user",
            message=(
                f"Insufficient personal credit. Available: {format_money(user.user_credit_available)}, "
                f"Required: {format_money(amount)}"
            ),
        )

    return CreditDecisionDTO(admit=True, limiting_factor=None, message="Credit validation passed")
