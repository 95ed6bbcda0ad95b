"""Unit of Work Interface

One unit of work wraps every ledger-mutating sequence (read, decide, write)
so it commits or rolls back as a whole.
"""

from abc import ABC, abstractmethod


class UnitOfWork(ABC):
    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.rollback()

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass
