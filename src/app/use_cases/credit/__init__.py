"""Credit domain use cases"""
from .evaluate_credit import evaluate_credit
from .credit_applier import ApplyOutcome, CreditApplier
from .validate_order_credit import ValidateOrderCredit
from .place_order import PlaceOrderWithCredit
from .cancel_order import CancelOrder
from .record_order_payment import RecordOrderPayment
from .get_credit_status import GetCompanyCreditStatus, GetUserCreditStatus
from .list_credit_transactions import ListCreditTransactions
from .set_credit_limit import SetCompanyCreditLimit, SetUserCreditLimit
from .audit_credit_ledger import AuditCreditLedger
from .recalculate_company_credit import RecalculateCompanyCredit
from .dtos import (
    CompanyCreditInfoDTO,
    UserCreditInfoDTO,
    CreditDecisionDTO,
    CreditInfoDTO,
    ValidateCreditCommandDTO,
    CreditValidationResponseDTO,
    PlaceOrderCommandDTO,
    OrderResponseDTO,
    CancelOrderCommandDTO,
    CancelOrderResponseDTO,
    RecordOrderPaymentCommandDTO,
    OrderPaymentResponseDTO,
    CreditTransactionDTO,
    ListCreditTransactionsResponseDTO,
    CompanyCreditStatusDTO,
    UserCreditStatusDTO,
    SetCompanyCreditLimitCommandDTO,
    SetUserCreditLimitCommandDTO,
    CreditLimitResponseDTO,
    LedgerDiscrepancyDTO,
    AuditResultDTO,
    RecalculationResultDTO,
)

__all__ = [
    "evaluate_credit",
    "ApplyOutcome",
    "CreditApplier",
    "ValidateOrderCredit",
    "PlaceOrderWithCredit",
    "CancelOrder",
    "RecordOrderPayment",
    "GetCompanyCreditStatus",
    "GetUserCreditStatus",
    "ListCreditTransactions",
    "SetCompanyCreditLimit",
    "SetUserCreditLimit",
    "AuditCreditLedger",
    "RecalculateCompanyCredit",
    "CompanyCreditInfoDTO",
    "UserCreditInfoDTO",
    "CreditDecisionDTO",
    "CreditInfoDTO",
    "ValidateCreditCommandDTO",
    "CreditValidationResponseDTO",
    "PlaceOrderCommandDTO",
    "OrderResponseDTO",
    "CancelOrderCommandDTO",
    "CancelOrderResponseDTO",
    "RecordOrderPaymentCommandDTO",
    "OrderPaymentResponseDTO",
    "CreditTransactionDTO",
    "ListCreditTransactionsResponseDTO",
    "CompanyCreditStatusDTO",
    "UserCreditStatusDTO",
    "SetCompanyCreditLimitCommandDTO",
    "SetUserCreditLimitCommandDTO",
    "CreditLimitResponseDTO",
    "LedgerDiscrepancyDTO",
    "AuditResultDTO",
    "RecalculationResultDTO",
]
