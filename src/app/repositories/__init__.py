from .store_repository import StoreRepository
from .company_account_repository import CompanyAccountRepository
from .portal_user_repository import PortalUserRepository
from .b2b_order_repository import B2BOrderRepository
from .credit_transaction_repository import CreditTransactionRepository

__all__ = [
    "StoreRepository",
    "CompanyAccountRepository",
    "PortalUserRepository",
    "B2BOrderRepository",
    "CreditTransactionRepository",
]
