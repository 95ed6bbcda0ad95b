"""Credit snapshots read from the live store

Used credit is always derived from order balances at call time; nothing
here is cached between calls.
"""

from decimal import Decimal
from typing import Optional
from src.app.repositories.b2b_order_repository import B2BOrderRepository
from src.domain.b2b_order import PENDING_ORDER_STATUSES
from src.domain.company_account import CompanyAccount
from src.domain.money import ZERO, to_money
from src.domain.portal_user import PortalUser
from .dtos import CompanyCreditInfoDTO, UserCreditInfoDTO


async def load_company_credit(
    company: CompanyAccount,
    order_repo: B2BOrderRepository,
    exclude_order_id: Optional[str] = None,
) -> CompanyCreditInfoDTO:
    """
    Build the company snapshot from current order balances

    Args:
        company: Company account (lock it first when the result drives a write)
        order_repo: Order repository bound to the same session
        exclude_order_id: Leave this order's exposure out (the order being decided)
    """
    credit_limit = to_money(company.credit_limit)
    used_credit = await order_repo.sum_outstanding(company.id, exclude_order_id=exclude_order_id)
    pending_credit = await order_repo.sum_outstanding(
        company.id,
        exclude_order_id=exclude_order_id,
        order_statuses=PENDING_ORDER_STATUSES,
    )
    return CompanyCreditInfoDTO(
        company_id=company.id,
        credit_limit=credit_limit,
        used_credit=used_credit,
        pending_credit=pending_credit,
        available_credit=credit_limit - used_credit,
    )


def user_credit_info(user: PortalUser, exclude_amount: Decimal = ZERO) -> UserCreditInfoDTO:
    """
    Build the user snapshot

    Args:
        user: Portal user
        exclude_amount: Exposure already counted in user_credit_used that belongs
            to the order being decided
    """
    used = max(to_money(user.user_credit_used) - to_money(exclude_amount), ZERO)
    has_limit = user.user_credit_limit is not None
    limit = to_money(user.user_credit_limit) if has_limit else None
    return UserCreditInfoDTO(
        user_id=user.id,
        has_limit=has_limit,
        user_credit_limit=limit,
        user_credit_used=used,
        user_credit_available=(limit - used) if has_limit else None,
    )
