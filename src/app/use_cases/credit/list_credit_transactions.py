"""
List Credit Transactions Use Case

Retrieves a company's credit ledger history with pagination.
"""
from libs.result import Result, Return, Error
from src.app.repositories.company_account_repository import CompanyAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from .dtos import CreditTransactionDTO, ListCreditTransactionsResponseDTO


class ListCreditTransactions:
    """
    Use case: View a company's credit transactions

    Transactions are ordered by created_at DESC (most recent first).
    """

    def __init__(
        self,
        company_repo: CompanyAccountRepository,
        transaction_repo: CreditTransactionRepository,
    ):
        self.company_repo = company_repo
        self.transaction_repo = transaction_repo

    async def execute(
        self, company_id: str, limit: int = 20, offset: int = 0
    ) -> Result[ListCreditTransactionsResponseDTO]:
        """
        List transactions for a company with pagination.

        Args:
            company_id: Company identifier
            limit: Maximum number of transactions to return (default 20)
            offset: Number of transactions to skip (default 0)
        """
        company = await self.company_repo.get_by_id(company_id)
        if not company:
            return Return.err(Error(code="COMPANY_NOT_FOUND", message=f"Company {company_id} not found"))

        transactions, total = await self.transaction_repo.get_by_company_id(
            company_id=company_id,
            limit=limit,
            offset=offset,
        )

        return Return.ok(
            ListCreditTransactionsResponseDTO(
                transactions=[CreditTransactionDTO.from_entity(txn) for txn in transactions],
                total=total,
                limit=limit,
                offset=offset,
            )
        )
