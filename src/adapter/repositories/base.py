"""Shared helpers for SQLAlchemy repositories"""

import logging
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlmodel.ext.asyncio.session import AsyncSession
from src.domain.exceptions import LedgerWriteConflict

logger = logging.getLogger(__name__)


async def flush_or_conflict(session: AsyncSession) -> None:
    """
    Flush pending writes, translating unique-key and lock failures

    Raises:
        LedgerWriteConflict: Duplicate key, deadlock, lock timeout or
            serialization failure caused by a concurrent writer
    """
    try:
        await session.flush()
    except IntegrityError as e:
        logger.warning(f"Integrity conflict while flushing ledger writes: {e.orig}")
        raise LedgerWriteConflict(str(e.orig)) from e
    except OperationalError as e:
        logger.warning(f"Lock conflict while flushing ledger writes: {e.orig}")
        raise LedgerWriteConflict(str(e.orig)) from e
