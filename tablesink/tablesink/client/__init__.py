"""
Table storage client interfaces and implementations.
"""

from abc import ABC, abstractmethod
from typing import Any, List

from ..entity import LogEntity


class TableStorageClient(ABC):
    """
    Abstract base class for table storage clients.

    A client hands out table handles and performs the remote calls the
    dispatcher needs. Every remote call is a coroutine.
    """

    # Largest batch the dispatcher will ever pass to insert_batch().
    max_batch_size: int = 100

    @abstractmethod
    def table(self, name: str) -> Any:
        """
        Get a handle for a table. Must not perform a remote call.

        Args:
            name: Sanitized table name
        """
        pass

    @abstractmethod
    async def create_if_missing(self, table: Any) -> None:
        """
        Create the table behind a handle if it does not exist yet.
        """
        pass

    @abstractmethod
    async def insert_one(self, table: Any, entity: LogEntity) -> None:
        """
        Insert a single entity.
        """
        pass

    @abstractmethod
    async def insert_batch(self, table: Any, entities: List[LogEntity]) -> None:
        """
        Insert up to max_batch_size entities in one call.
        """
        pass


__all__ = ['TableStorageClient']
