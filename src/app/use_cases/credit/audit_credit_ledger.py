"""AuditCreditLedger Use Case

Replays every company's credit transactions and compares the result with the
used credit derived from live order balances.
"""

import logging
import time
from datetime import datetime
from libs.result import Result, Return, Error
from src.app.repositories.b2b_order_repository import B2BOrderRepository
from src.app.repositories.company_account_repository import CompanyAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from .dtos import AuditResultDTO, LedgerDiscrepancyDTO

logger = logging.getLogger(__name__)


class AuditCreditLedger:
    """
    Use Case: Audit credit ledger against order balances

    Business Rules:
    1. used_credit comes from Σ remaining_balance of counted orders
    2. Replay: reserve and adjust add, deduct/refund/restore subtract
    3. Any mismatch is reported and logged
    4. Does NOT modify any data; repair is RecalculateCompanyCredit's job
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

    async def execute(self) -> Result[AuditResultDTO]:
        start_time = time.time()
        audit_time = datetime.utcnow()

        try:
            logger.info("Starting credit ledger audit")

            # Step 1: Get all companies
            companies = await self.company_repo.list_all()
            total_companies = len(companies)

            # Step 2: Compare replayed ledger with live usage
            discrepancies: list[LedgerDiscrepancyDTO] = []

            for company in companies:
                used_credit = await self.order_repo.sum_outstanding(company.id)
                replayed = await self.transaction_repo.get_replayed_balance(company.id)

                if used_credit != replayed:
                    discrepancy = LedgerDiscrepancyDTO(
                        company_id=company.id,
                        used_credit=used_credit,
                        replayed_balance=replayed,
                        discrepancy=used_credit - replayed,
                    )
                    discrepancies.append(discrepancy)

                    logger.warning(
                        f"Ledger discrepancy for company {company.id} ({company.name}): "
                        f"used_credit={used_credit}, replayed={replayed}, "
                        f"discrepancy={discrepancy.discrepancy}"
                    )

            # Step 3: Build response
            execution_time_ms = int((time.time() - start_time) * 1000)

            if discrepancies:
                logger.warning(
                    f"Audit complete. Found {len(discrepancies)} discrepancies "
                    f"out of {total_companies} companies in {execution_time_ms}ms"
                )
            else:
                logger.info(f"Audit complete. All {total_companies} companies balanced in {execution_time_ms}ms")

            return Return.ok(
                AuditResultDTO(
                    total_companies_checked=total_companies,
                    discrepancies_found=len(discrepancies),
                    discrepancies=discrepancies,
                    audit_time=audit_time,
                    execution_time_ms=execution_time_ms,
                )
            )

        except Exception as e:
            logger.error(f"Credit ledger audit failed: {e}")
            return Return.err(
                Error(
                    code="AUDIT_FAILED",
                    message="Failed to audit credit ledger",
                    reason=str(e),
                )
            )
