"""
TableStorageHandler - logging.Handler that ships records to table storage.

Architecture:
    logger.info(...) → emit() → bounded buffer → event loop thread → dispatch_many → store

The handler owns a private asyncio event loop running on a daemon thread.
Every dispatch runs on that loop, so emit() never waits on the network in
buffered mode.

Components:
    TableStorageHandler: the handler
    init_handler: build client, dispatcher and handler from configuration
"""

import asyncio
import copy
import logging
import threading
from collections import deque
from typing import Deque, List, Mapping, Optional, Union

from .client.dynamodb import DynamoDBTableClient
from .config import SinkConfig, load_config, resolve_connection_string
from .dispatcher import BatchDispatcher

logger = logging.getLogger(__name__)

# Records from these loggers are never shipped: they are emitted by the
# sink itself or by the libraries it calls while dispatching.
INTERNAL_LOGGERS = ("tablesink", "boto3", "botocore", "s3transfer", "urllib3", "asyncio")

_exception_formatter = logging.Formatter()


def _is_internal(record: logging.LogRecord) -> bool:
    return any(
        record.name == prefix or record.name.startswith(prefix + ".")
        for prefix in INTERNAL_LOGGERS
    )


class TableStorageHandler(logging.Handler):
    """
    Logging handler writing to table storage through a BatchDispatcher.

    Buffered mode (default):
        - emit() snapshots the record (see prepare()) and appends it to a
          bounded in-memory buffer (drops oldest on overflow)
        - the buffer is dispatched every flush_interval_ms and on flush()
        - dispatch failures are logged on the `tablesink` logger and counted

    Unbuffered mode:
        - emit() dispatches the record and waits for the write
        - failures go through logging.Handler.handleError()
    """

    def __init__(
        self,
        dispatcher: BatchDispatcher,
        *,
        buffered: bool = True,
        flush_interval_ms: int = 1000,
        max_events: int = 10000,
        flush_timeout: float = 30.0,
        level: Union[int, str] = logging.NOTSET,
    ):
        super().__init__(level)
        self.dispatcher = dispatcher
        self.buffered = buffered
        self.flush_interval_ms = flush_interval_ms
        self.max_events = max_events
        self.flush_timeout = flush_timeout
        self.last_error: Optional[BaseException] = None

        self._buffer: Deque[logging.LogRecord] = deque(maxlen=max_events)
        self._buffer_lock = threading.Lock()
        self._dropped_count = 0
        self._failed_count = 0
        self._stopped = False

        self.addFilter(lambda record: not _is_internal(record))

        self._loop = asyncio.new_event_loop()
        self._flush_lock = asyncio.Lock()
        self._timer_task: Optional[asyncio.Task] = None
        self._started = threading.Event()
        self._thread = threading.Thread(
            target=self._run_loop,
            daemon=True,
            name="tablesink-dispatch",
        )
        self._thread.start()
        self._started.wait()

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._timer_task = self._loop.create_task(self._flush_loop())
        self._started.set()
        self._loop.run_forever()

    def _on_loop_thread(self) -> bool:
        return threading.current_thread() is self._thread

    def emit(self, record: logging.LogRecord) -> None:
        """
        Ship a record.

        Records emitted from the dispatch thread itself are always buffered,
        since waiting on the loop from inside it would deadlock.
        """
        if self._stopped:
            return

        if self.buffered or self._on_loop_thread():
            try:
                prepared = self.prepare(record)
            except Exception:
                self.handleError(record)
                return
            self._append(prepared)
            return

        try:
            # Raises RuntimeError if close() stopped the loop after the check above
            future = asyncio.run_coroutine_threadsafe(self.dispatcher.dispatch_one(record), self._loop)
            future.result(timeout=self.flush_timeout)
        except Exception:
            self._failed_count += 1
            self.handleError(record)

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        """
        Snapshot a record for buffering.

        The message is merged with its args and the traceback is rendered to
        text now, so later changes to the args cannot alter what is stored
        and a record that fails to format is rejected on its own. Works on a
        copy; the caller's record is left as is.
        """
        message = record.getMessage()
        prepared = copy.copy(record)
        prepared.message = message
        prepared.msg = message
        prepared.args = None
        if prepared.exc_info:
            if not prepared.exc_text:
                prepared.exc_text = _exception_formatter.formatException(prepared.exc_info)
            prepared.exc_info = None
        return prepared

    def _append(self, record: logging.LogRecord) -> None:
        with self._buffer_lock:
            if len(self._buffer) >= self.max_events:
                # Drop oldest (deque handles this with maxlen)
                self._dropped_count += 1
                if self._dropped_count % 100 == 1:
                    logger.warning(
                        f"TableStorageHandler buffer full, dropped {self._dropped_count} records"
                    )
            self._buffer.append(record)

    def _drain(self) -> List[logging.LogRecord]:
        with self._buffer_lock:
            batch = list(self._buffer)
            self._buffer.clear()
        return batch

    async def _flush_loop(self) -> None:
        interval = self.flush_interval_ms / 1000.0
        while True:
            await asyncio.sleep(interval)
            await self._flush_async()

    async def _flush_async(self) -> None:
        # Serialized so that per-table order holds across consecutive flushes.
        async with self._flush_lock:
            batch = self._drain()
            if not batch:
                return
            try:
                await self.dispatcher.dispatch_many(batch)
            except Exception as e:
                self._failed_count += 1
                self.last_error = e
                logger.error(f"Failed to ship {len(batch)} log records: {e}")

    def flush(self) -> None:
        """
        Dispatch everything buffered so far and wait for it (blocking).
        """
        if self._stopped or self._on_loop_thread() or not self._thread.is_alive():
            return
        future = asyncio.run_coroutine_threadsafe(self._flush_async(), self._loop)
        future.result(timeout=self.flush_timeout)

    async def _shutdown(self) -> None:
        if self._timer_task is not None:
            self._timer_task.cancel()
            try:
                await self._timer_task
            except asyncio.CancelledError:
                pass

    def close(self) -> None:
        """
        Flush remaining records, then stop the dispatch thread.
        """
        if self._stopped:
            super().close()
            return
        try:
            self.flush()
        finally:
            self._stopped = True
            if self._thread.is_alive():
                asyncio.run_coroutine_threadsafe(self._shutdown(), self._loop).result(timeout=self.flush_timeout)
                self._loop.call_soon_threadsafe(self._loop.stop)
                self._thread.join(timeout=5.0)
            if not self._thread.is_alive():
                self._loop.close()
            super().close()

    @property
    def pending_count(self) -> int:
        """Number of records waiting to be dispatched."""
        with self._buffer_lock:
            return len(self._buffer)

    @property
    def dropped_count(self) -> int:
        """Number of records dropped due to buffer overflow."""
        return self._dropped_count

    @property
    def failed_count(self) -> int:
        """Number of failed dispatches (batches in buffered mode, records otherwise)."""
        return self._failed_count


def init_handler(
    config: Optional[SinkConfig] = None,
    settings: Optional[Mapping] = None,
    logger_name: Optional[str] = None,
) -> TableStorageHandler:
    """
    Build a DynamoDB-backed handler and attach it to a logger.

    Convenience function for setting up log shipping.

    Args:
        config: Sink configuration. If None, read from the `sink:` section
            of the settings, falling back to TABLESINK_* environment variables.
        settings: Settings mapping. If None, loaded with load_config().
        logger_name: Logger to attach to (root logger when None)

    Returns:
        The attached TableStorageHandler

    Raises:
        ConfigurationError: If no connection string can be resolved
    """
    if settings is None:
        settings = load_config()
    if config is None:
        section = settings.get("sink")
        config = SinkConfig.from_dict(section) if section else SinkConfig.from_env()

    connection_string = resolve_connection_string(config, settings)
    client = DynamoDBTableClient.from_connection_string(connection_string)
    dispatcher = BatchDispatcher(
        client,
        table_name=config.table_name,
        layout=config.layout,
        batch_size=config.batch_size,
        concurrent_buckets=config.concurrent_buckets,
    )
    handler = TableStorageHandler(
        dispatcher,
        buffered=config.buffered,
        flush_interval_ms=config.flush_interval_ms,
        max_events=config.max_events,
        level=config.level.upper(),
    )
    logging.getLogger(logger_name).addHandler(handler)
    logger.debug("TableStorageHandler initialized")
    return handler
