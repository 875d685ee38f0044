"""
tablesink - Ship Python log records to partitioned table storage

This package provides:
- A logging.Handler that buffers records and writes them to table storage
- A batch dispatcher that routes records to tables named from their content
- Table name repair for the store's naming rules
- In-memory and Amazon DynamoDB storage clients
"""

from tablesink.errors import (
    TableSinkError,
    ConfigurationError,
    ProvisioningError,
    DispatchError,
)
from tablesink.naming import sanitize_table_name, DEFAULT_TABLE_NAME
from tablesink.sorting import bucket_sort
from tablesink.layout import Layout, render
from tablesink.entity import LogEntity
from tablesink.cache import DestinationCache
from tablesink.client import TableStorageClient
from tablesink.client.memory import InMemoryTableClient
from tablesink.client.dynamodb import DynamoDBTableClient
from tablesink.dispatcher import BatchDispatcher, MAX_BATCH_SIZE
from tablesink.config import (
    SinkConfig,
    load_config,
    resolve_connection_string,
    parse_connection_string,
)
from tablesink.handler import TableStorageHandler, init_handler

__version__ = "0.1.0"

__all__ = [
    # Errors
    "TableSinkError",
    "ConfigurationError",
    "ProvisioningError",
    "DispatchError",
    # Naming
    "sanitize_table_name",
    "DEFAULT_TABLE_NAME",
    # Sorting
    "bucket_sort",
    # Layout
    "Layout",
    "render",
    # Entity
    "LogEntity",
    # Cache
    "DestinationCache",
    # Clients
    "TableStorageClient",
    "InMemoryTableClient",
    "DynamoDBTableClient",
    # Dispatch
    "BatchDispatcher",
    "MAX_BATCH_SIZE",
    # Config
    "SinkConfig",
    "load_config",
    "resolve_connection_string",
    "parse_connection_string",
    # Handler
    "TableStorageHandler",
    "init_handler",
]
