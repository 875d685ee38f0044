"""
Batch dispatcher - routes log records to their destination tables.

Single records:
    render table name -> sanitize -> ensure table -> insert_one

Lists of records:
    bucket sort by rendered table name -> per bucket:
        sanitize -> ensure table -> insert_batch in chunks of <= batch_size

Chunks of one bucket are written strictly in order, each awaited before the
next. Buckets are independent: a failing bucket does not stop the others,
and the failure is raised once every bucket has been attempted.
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .cache import DestinationCache
from .client import TableStorageClient
from .entity import LogEntity
from .errors import DispatchError
from .layout import DEFAULT_LAYOUT, DEFAULT_TABLE_NAME_LAYOUT, render
from .naming import sanitize_table_name
from .sorting import bucket_sort

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 100

Renderer = Callable[[logging.LogRecord, str], str]


class BatchDispatcher:
    """
    Writes log records to table storage, grouped by destination table.

    Args:
        client: Storage client
        table_name: Layout template that renders the raw table name
        layout: Layout template that renders the stored message
        renderer: render(record, template) -> str
        batch_size: Max records per insert_batch call (1-100)
        concurrent_buckets: Write different tables concurrently. Ordering
            across tables is unspecified either way; per-table order is kept.
    """

    def __init__(
        self,
        client: TableStorageClient,
        table_name: str = DEFAULT_TABLE_NAME_LAYOUT,
        layout: str = DEFAULT_LAYOUT,
        renderer: Renderer = render,
        batch_size: int = MAX_BATCH_SIZE,
        concurrent_buckets: bool = False,
    ):
        if not 1 <= batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}, got {batch_size}")
        self.client = client
        self.table_name = table_name
        self.layout = layout
        self.renderer = renderer
        self.batch_size = batch_size
        self.concurrent_buckets = concurrent_buckets
        self._cache = DestinationCache()

    @property
    def cache(self) -> DestinationCache:
        return self._cache

    def _table_key(self, record: logging.LogRecord) -> str:
        return self.renderer(record, self.table_name)

    def _entity(self, record: logging.LogRecord) -> LogEntity:
        return LogEntity.from_record(record, self.renderer(record, self.layout))

    async def dispatch_one(self, record: logging.LogRecord) -> Optional[LogEntity]:
        """
        Write a single record.

        Records with an empty message are dropped without touching the store.

        Returns:
            The written entity, or None if the record was dropped

        Raises:
            ProvisioningError: If the table could not be provisioned
            DispatchError: If the insert failed
        """
        if not record.getMessage():
            return None

        table_name = sanitize_table_name(self._table_key(record))
        table = await self._cache.ensure(self.client, table_name)
        entity = self._entity(record)
        try:
            await self.client.insert_one(table, entity)
        except Exception as e:
            logger.error(f"Insert into {table_name} failed: {e}")
            raise DispatchError(f"Insert into {table_name} failed", destination=table_name) from e
        return entity

    async def dispatch_many(self, records: Sequence[logging.LogRecord]) -> Dict[str, int]:
        """
        Write a list of records, grouped by table.

        Buckets are keyed by the raw rendered table name; two raw names that
        sanitize to the same table are still written as separate buckets.

        Returns:
            Sanitized table name -> number of records written

        Raises:
            DispatchError: If any bucket failed. Raised after all buckets were
                attempted; carries `failures` and the partial `written` counts.
        """
        buckets = bucket_sort(records, self._table_key)

        if self.concurrent_buckets:
            outcomes = await asyncio.gather(
                *(self._dispatch_bucket_safely(key, bucket) for key, bucket in buckets.items())
            )
        else:
            outcomes = [
                await self._dispatch_bucket_safely(key, bucket) for key, bucket in buckets.items()
            ]

        written: Dict[str, int] = {}
        failures: Dict[str, BaseException] = {}
        for raw_key, table_name, count, error in outcomes:
            if count:
                written[table_name] = written.get(table_name, 0) + count
            if error is not None:
                failures[raw_key] = error

        if failures:
            first = next(iter(failures.values()))
            raise DispatchError(
                f"{len(failures)} of {len(buckets)} table batches failed",
                failures=failures,
                written=written,
            ) from first
        return written

    async def _dispatch_bucket_safely(
        self, raw_key: str, records: List[logging.LogRecord]
    ) -> Tuple[str, str, int, Optional[Exception]]:
        table_name = sanitize_table_name(raw_key)
        sent = 0
        try:
            table = await self._cache.ensure(self.client, table_name)
            for start in range(0, len(records), self.batch_size):
                chunk = [self._entity(record) for record in records[start:start + self.batch_size]]
                try:
                    await self.client.insert_batch(table, chunk)
                except Exception as e:
                    logger.error(f"Batch insert of {len(chunk)} records into {table_name} failed: {e}")
                    raise DispatchError(
                        f"Batch insert into {table_name} failed", destination=table_name, written={table_name: sent}
                    ) from e
                sent += len(chunk)
        except Exception as e:
            return raw_key, table_name, sent, e
        logger.debug(f"Wrote {sent} records to {table_name}")
        return raw_key, table_name, sent, None
