"""
In-memory table client.

Keeps rows in process memory. Useful for development and for embedding
the sink where no remote store is available.
"""

from dataclasses import dataclass
from typing import Any, Dict, List

from ..entity import LogEntity
from . import TableStorageClient


@dataclass(frozen=True)
class MemoryTable:
    """Handle for an in-memory table."""
    name: str


class InMemoryTableClient(TableStorageClient):
    """
    Table client backed by a dict of table name -> rows.

    Tables only accept inserts once create_if_missing() was called for them,
    matching the behaviour of a real store.
    """

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.provision_count = 0
        self.batch_count = 0

    def table(self, name: str) -> MemoryTable:
        return MemoryTable(name)

    async def create_if_missing(self, table: MemoryTable) -> None:
        self.provision_count += 1
        self.tables.setdefault(table.name, [])

    async def insert_one(self, table: MemoryTable, entity: LogEntity) -> None:
        self._rows(table).append(entity.to_item())

    async def insert_batch(self, table: MemoryTable, entities: List[LogEntity]) -> None:
        if len(entities) > self.max_batch_size:
            raise ValueError(
                f"Batch of {len(entities)} exceeds max_batch_size={self.max_batch_size}"
            )
        rows = self._rows(table)
        rows.extend(entity.to_item() for entity in entities)
        self.batch_count += 1

    def rows(self, name: str) -> List[Dict[str, Any]]:
        """Rows stored in a table, oldest insert first."""
        return list(self.tables.get(name, []))

    def _rows(self, table: MemoryTable) -> List[Dict[str, Any]]:
        try:
            return self.tables[table.name]
        except KeyError:
            raise LookupError(f"Table {table.name!r} does not exist") from None
