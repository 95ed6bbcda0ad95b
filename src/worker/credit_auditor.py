"""Credit Ledger Audit Background Worker

Periodically replays every company's credit transactions and compares the
result with used credit derived from order balances. Optionally repairs
drifting companies by recalculating their credit state.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories.b2b_order_repository import SqlAlchemyB2BOrderRepository
from src.adapter.repositories.company_account_repository import SqlAlchemyCompanyAccountRepository
from src.adapter.repositories.credit_transaction_repository import SqlAlchemyCreditTransactionRepository
from src.adapter.repositories.portal_user_repository import SqlAlchemyPortalUserRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.use_cases.credit import AuditCreditLedger, AuditResultDTO, RecalculateCompanyCredit

logger = logging.getLogger(__name__)

AUDITOR_ACTOR = "credit-auditor"


class CreditAuditorWorker:
    """
    Background worker for credit ledger audits

    Features:
    - Compares transaction replay against live order balances
    - Logs discrepancies for investigation
    - Optional repair via RecalculateCompanyCredit
    - Can run once or continuously (default: daily)

    Usage:
        worker = CreditAuditorWorker()
        result = await worker.run_once()
        await worker.run_forever(interval_seconds=86400)
    """

    def __init__(self, db_uri: Optional[str] = None, repair: bool = False):
        """
        Args:
            db_uri: Database URI (defaults to ApplicationConfig.DB_URI)
            repair: Recalculate companies whose ledger disagrees with their orders
        """
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.repair = repair

        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

        logger.info("CreditAuditorWorker initialized")

    async def run_once(self) -> AuditResultDTO:
        """
        Run the audit once

        Raises:
            RuntimeError: If the audit itself failed
        """
        if not ApplicationConfig.AUDIT_ENABLED:
            logger.info("Credit ledger audit is disabled, skipping")
            return AuditResultDTO(
                total_companies_checked=0,
                discrepancies_found=0,
                discrepancies=[],
                audit_time=datetime.utcnow(),
                execution_time_ms=0,
            )

        async with self.async_session_factory() as session:
            use_case = AuditCreditLedger(
                company_repo=SqlAlchemyCompanyAccountRepository(session),
                order_repo=SqlAlchemyB2BOrderRepository(session),
                transaction_repo=SqlAlchemyCreditTransactionRepository(session),
            )
            result = await use_case.execute()

        if result.is_err():
            logger.error(f"Credit audit failed: {result.error.message}")
            raise RuntimeError(f"Credit audit failed: {result.error.message}")

        response = result.value

        if response.discrepancies_found > 0:
            logger.error(f"ALERT: {response.discrepancies_found} credit ledger discrepancies found!")
            for d in response.discrepancies:
                logger.error(
                    f"  - Company {d.company_id}: used={d.used_credit}, "
                    f"replayed={d.replayed_balance}, diff={d.discrepancy}"
                )
            if self.repair:
                await self._repair(response)

        return response

    async def _repair(self, audit: AuditResultDTO) -> None:
        for d in audit.discrepancies:
            async with self.async_session_factory() as session:
                use_case = RecalculateCompanyCredit(
                    uow=SqlAlchemyUnitOfWork(session),
                    company_repo=SqlAlchemyCompanyAccountRepository(session),
                    user_repo=SqlAlchemyPortalUserRepository(session),
                    order_repo=SqlAlchemyB2BOrderRepository(session),
                    transaction_repo=SqlAlchemyCreditTransactionRepository(session),
                )
                result = await use_case.execute(d.company_id, requested_by=AUDITOR_ACTOR)

            if result.is_err():
                logger.error(f"Repair failed for company {d.company_id}: {result.error.reason}")
            else:
                logger.info(f"Repaired company {d.company_id}: {result.value.message}")

    async def run_forever(self, interval_seconds: int = 86400):
        logger.info(f"Starting continuous credit audit with {interval_seconds}s interval")

        while True:
            try:
                result = await self.run_once()
                logger.info(
                    f"Audit cycle complete. "
                    f"Checked {result.total_companies_checked} companies, "
                    f"found {result.discrepancies_found} discrepancies "
                    f"in {result.execution_time_ms}ms"
                )
            except Exception as e:
                logger.error(f"Audit cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        """Cleanup resources"""
        await self.engine.dispose()
        logger.info("CreditAuditorWorker shutdown complete")


async def main():
    """
    Entry point for running the worker as a standalone script

    Usage:
        python -m src.worker.credit_auditor --once
        python -m src.worker.credit_auditor --once --repair
        python -m src.worker.credit_auditor --interval 3600
    """
    import argparse

    logging.basicConfig(
        level=getattr(logging, str(ApplicationConfig.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Credit Ledger Audit Worker")
    parser.add_argument("--once", action="store_true", help="Run once and exit")
    parser.add_argument(
        "--repair", action="store_true", help="Recalculate companies with discrepancies"
    )
    parser.add_argument(
        "--interval", type=int, default=ApplicationConfig.AUDIT_INTERVAL_SECONDS,
        help="Interval between runs in seconds (default: AUDIT_INTERVAL_SECONDS)"
    )
    args = parser.parse_args()

    worker = CreditAuditorWorker(repair=args.repair)

    try:
        if args.once:
            result = await worker.run_once()
            logger.info(
                f"Audit complete: {result.total_companies_checked} companies checked, "
                f"{result.discrepancies_found} discrepancies, {result.execution_time_ms}ms"
            )
        else:
            await worker.run_forever(interval_seconds=args.interval)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
