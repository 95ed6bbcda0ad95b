"""Credit API Routes

FastAPI routes for tiered company/user credit: validation, order placement,
cancellation, payments, status, history and limit administration.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from src.api.schemas.credit_request import (
    CancelOrderRequestSchema,
    PlaceOrderRequestSchema,
    RecalculateCreditRequestSchema,
    RecordOrderPaymentRequestSchema,
    SetCompanyCreditLimitRequestSchema,
    SetUserCreditLimitRequestSchema,
    ValidateCreditRequestSchema,
)
from src.app.use_cases.credit.dtos import (
    CancelOrderCommandDTO,
    CancelOrderResponseDTO,
    CompanyCreditStatusDTO,
    CreditLimitResponseDTO,
    CreditValidationResponseDTO,
    ListCreditTransactionsResponseDTO,
    OrderPaymentResponseDTO,
    OrderResponseDTO,
    PlaceOrderCommandDTO,
    RecalculationResultDTO,
    RecordOrderPaymentCommandDTO,
    SetCompanyCreditLimitCommandDTO,
    SetUserCreditLimitCommandDTO,
    UserCreditStatusDTO,
    ValidateCreditCommandDTO,
)
from src.app.use_cases.credit.cancel_order import CancelOrder
from src.app.use_cases.credit.get_credit_status import GetCompanyCreditStatus, GetUserCreditStatus
from src.app.use_cases.credit.list_credit_transactions import ListCreditTransactions
from src.app.use_cases.credit.place_order import PlaceOrderWithCredit
from src.app.use_cases.credit.recalculate_company_credit import RecalculateCompanyCredit
from src.app.use_cases.credit.record_order_payment import RecordOrderPayment
from src.app.use_cases.credit.set_credit_limit import SetCompanyCreditLimit, SetUserCreditLimit
from src.app.use_cases.credit.validate_order_credit import ValidateOrderCredit
from src.adapter.repositories.b2b_order_repository import SqlAlchemyB2BOrderRepository
from src.adapter.repositories.company_account_repository import SqlAlchemyCompanyAccountRepository
from src.adapter.repositories.credit_transaction_repository import SqlAlchemyCreditTransactionRepository
from src.adapter.repositories.portal_user_repository import SqlAlchemyPortalUserRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.depends import get_session
from src.api.error import ClientError

router = APIRouter(prefix="/credit", tags=["Credit"])

NOT_FOUND_CODES = {"COMPANY_NOT_FOUND", "USER_NOT_FOUND", "ORDER_NOT_FOUND"}


def _raise_for(error):
    """Map use case error codes to HTTP status codes"""
    mapping = {
        "INSUFFICIENT_CREDIT": status.HTTP_402_PAYMENT_REQUIRED,
        "USER_NOT_AUTHORIZED": status.HTTP_403_FORBIDDEN,
        "LEDGER_WRITE_CONFLICT": status.HTTP_409_CONFLICT,
    }
    if error.code in NOT_FOUND_CODES:
        raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
    raise ClientError(error, status_code=mapping.get(error.code, status.HTTP_400_BAD_REQUEST))


@router.post(
    "/validate",
    response_model=CreditValidationResponseDTO,
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
)
async def validate_credit(
    request: ValidateCreditRequestSchema,
    session: AsyncSession = Depends(get_session),
):
    """
    Check whether a user may place an order of the given amount.

    Returns `{canCreate, limitingFactor, message, creditInfo: {company, user}}`.
    A rejection is a 200 with `canCreate: false`; nothing is reserved.
    """
    command = ValidateCreditCommandDTO(
        company_id=request.company_id,
        user_id=request.user_id,
        order_amount=request.order_amount,
    )
    use_case = ValidateOrderCredit(
        SqlAlchemyCompanyAccountRepository(session),
        SqlAlchemyPortalUserRepository(session),
        SqlAlchemyB2BOrderRepository(session),
    )
    result = await use_case.execute(command)

    if result.is_err():
        _raise_for(result.error)

    return result.value


@router.post(
    "/orders",
    response_model=OrderResponseDTO,
    status_code=status.HTTP_201_CREATED,
    responses={
        402: {
            "description": "Insufficient credit",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "INSUFFICIENT_CREDIT",
                            "message": "Insufficient company credit. Available: $50.00, Required: $100.00",
                            "reason": "limiting_factor=company"
                        }
                    }
                }
            }
        }
    }
)
async def place_order(
    request: PlaceOrderRequestSchema,
    session: AsyncSession = Depends(get_session),
):
    """
    Record a portal order and reserve its total against company and user credit.

    **Returns:**
    - 201: Order recorded and credit reserved
    - 402: Company or personal credit insufficient
    - 403: User may not place B2B orders
    """
    use_case = PlaceOrderWithCredit(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyCompanyAccountRepository(session),
        SqlAlchemyPortalUserRepository(session),
        SqlAlchemyB2BOrderRepository(session),
        SqlAlchemyCreditTransactionRepository(session),
    )
    result = await use_case.execute(
        PlaceOrderCommandDTO(
            user_id=request.user_id,
            order_total=request.order_total,
            shopify_order_id=request.shopify_order_id,
            notes=request.notes,
        )
    )

    if result.is_err():
        _raise_for(result.error)

    return result.value


@router.post("/orders/{order_id}/cancel", response_model=CancelOrderResponseDTO, response_model_by_alias=False)
async def cancel_order(
    order_id: str,
    request: Optional[CancelOrderRequestSchema] = None,
    session: AsyncSession = Depends(get_session),
):
    """
    Cancel a portal order and restore the credit it still holds.

    **Returns:**
    - 200: Order cancelled
    - 400: Already cancelled, or shipped / delivered
    - 404: Order not found
    """
    use_case = CancelOrder(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyCompanyAccountRepository(session),
        SqlAlchemyPortalUserRepository(session),
        SqlAlchemyB2BOrderRepository(session),
        SqlAlchemyCreditTransactionRepository(session),
    )
    result = await use_case.execute(
        CancelOrderCommandDTO(
            order_id=order_id,
            cancelled_by=request.cancelled_by if request else None,
            reason=request.reason if request else None,
        )
    )

    if result.is_err():
        _raise_for(result.error)

    return result.value


@router.post(
    "/orders/{order_id}/payments", response_model=OrderPaymentResponseDTO, response_model_by_alias=False
)
async def record_order_payment(
    order_id: str,
    request: RecordOrderPaymentRequestSchema,
    session: AsyncSession = Depends(get_session),
):
    """
    Record money received on a portal order.

    **Returns:**
    - 200: Payment recorded; the order is partial or paid
    - 400: Order cancelled or already paid, or amount above the remaining balance
    - 404: Order not found
    """
    use_case = RecordOrderPayment(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyCompanyAccountRepository(session),
        SqlAlchemyPortalUserRepository(session),
        SqlAlchemyB2BOrderRepository(session),
        SqlAlchemyCreditTransactionRepository(session),
    )
    result = await use_case.execute(
        RecordOrderPaymentCommandDTO(
            order_id=order_id,
            amount=request.amount,
            payment_method=request.payment_method,
            notes=request.notes,
            recorded_by=request.recorded_by,
        )
    )

    if result.is_err():
        _raise_for(result.error)

    return result.value


@router.get("/companies/{company_id}/status", response_model=CompanyCreditStatusDTO, response_model_by_alias=False)
async def get_company_credit_status(
    company_id: str,
    session: AsyncSession = Depends(get_session),
):
    """Company limit, used / pending / available credit and recent ledger entries."""
    use_case = GetCompanyCreditStatus(
        SqlAlchemyCompanyAccountRepository(session),
        SqlAlchemyB2BOrderRepository(session),
        SqlAlchemyCreditTransactionRepository(session),
    )
    result = await use_case.execute(company_id)

    if result.is_err():
        _raise_for(result.error)

    return result.value


@router.get("/users/{user_id}/status", response_model=UserCreditStatusDTO, response_model_by_alias=False)
async def get_user_credit_status(
    user_id: str,
    session: AsyncSession = Depends(get_session),
):
    """A user's personal limit and usage alongside their company's credit."""
    use_case = GetUserCreditStatus(
        SqlAlchemyCompanyAccountRepository(session),
        SqlAlchemyPortalUserRepository(session),
        SqlAlchemyB2BOrderRepository(session),
    )
    result = await use_case.execute(user_id)

    if result.is_err():
        _raise_for(result.error)

    return result.value


@router.get("/companies/{company_id}/transactions", response_model=ListCreditTransactionsResponseDTO)
async def list_company_transactions(
    company_id: str,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    session: AsyncSession = Depends(get_session),
):
    """Paginated credit ledger history, most recent first."""
    use_case = ListCreditTransactions(
        SqlAlchemyCompanyAccountRepository(session),
        SqlAlchemyCreditTransactionRepository(session),
    )
    result = await use_case.execute(company_id, limit=limit, offset=offset)

    if result.is_err():
        _raise_for(result.error)

    return result.value


@router.put("/companies/{company_id}/limit", response_model=CreditLimitResponseDTO)
async def set_company_credit_limit(
    company_id: str,
    request: SetCompanyCreditLimitRequestSchema,
    session: AsyncSession = Depends(get_session),
):
    """Set a company's credit limit. Lowering below usage is allowed."""
    use_case = SetCompanyCreditLimit(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyCompanyAccountRepository(session),
        SqlAlchemyB2BOrderRepository(session),
        SqlAlchemyCreditTransactionRepository(session),
    )
    result = await use_case.execute(
        SetCompanyCreditLimitCommandDTO(
            company_id=company_id,
            credit_limit=request.credit_limit,
            set_by=request.set_by,
        )
    )

    if result.is_err():
        _raise_for(result.error)

    return result.value


@router.put("/users/{user_id}/limit", response_model=CreditLimitResponseDTO)
async def set_user_credit_limit(
    user_id: str,
    request: SetUserCreditLimitRequestSchema,
    session: AsyncSession = Depends(get_session),
):
    """Set or remove (null) a user's personal credit limit."""
    use_case = SetUserCreditLimit(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyCompanyAccountRepository(session),
        SqlAlchemyPortalUserRepository(session),
        SqlAlchemyB2BOrderRepository(session),
        SqlAlchemyCreditTransactionRepository(session),
    )
    result = await use_case.execute(
        SetUserCreditLimitCommandDTO(
            user_id=user_id,
            credit_limit=request.credit_limit,
            set_by=request.set_by,
        )
    )

    if result.is_err():
        _raise_for(result.error)

    return result.value


@router.post("/companies/{company_id}/recalculate", response_model=RecalculationResultDTO)
async def recalculate_company_credit(
    company_id: str,
    request: Optional[RecalculateCreditRequestSchema] = None,
    session: AsyncSession = Depends(get_session),
):
    """Realign order, user and ledger credit state with current order balances."""
    use_case = RecalculateCompanyCredit(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyCompanyAccountRepository(session),
        SqlAlchemyPortalUserRepository(session),
        SqlAlchemyB2BOrderRepository(session),
        SqlAlchemyCreditTransactionRepository(session),
    )
    requested_by = request.requested_by if request else "admin"
    result = await use_case.execute(company_id, requested_by=requested_by)

    if result.is_err():
        _raise_for(result.error)

    return result.value
