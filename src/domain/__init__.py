from .base import BaseModel, generate_uuid
from .store import Store
from .company_account import CompanyAccount
from .portal_user import PortalUser, UserStatus
from .b2b_order import B2BOrder, PaymentStatus, OrderStatus
from .credit_transaction import CreditTransaction, TransactionType

__all__ = [
    "BaseModel",
    "generate_uuid",
    "Store",
    "CompanyAccount",
    "PortalUser",
    "UserStatus",
    "B2BOrder",
    "PaymentStatus",
    "OrderStatus",
    "CreditTransaction",
    "TransactionType",
]
