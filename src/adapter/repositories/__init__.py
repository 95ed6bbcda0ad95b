from .store_repository import SqlAlchemyStoreRepository
from .company_account_repository import SqlAlchemyCompanyAccountRepository
from .portal_user_repository import SqlAlchemyPortalUserRepository
from .b2b_order_repository import SqlAlchemyB2BOrderRepository
from .credit_transaction_repository import SqlAlchemyCreditTransactionRepository

__all__ = [
    "SqlAlchemyStoreRepository",
    "SqlAlchemyCompanyAccountRepository",
    "SqlAlchemyPortalUserRepository",
    "SqlAlchemyB2BOrderRepository",
    "SqlAlchemyCreditTransactionRepository",
]
