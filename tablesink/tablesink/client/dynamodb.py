"""
Amazon DynamoDB table client.

Tables are created on demand with on-demand billing and the key schema
    PartitionKey (HASH, S) / RowKey (RANGE, S)

boto3 is synchronous, so every remote call runs in a worker thread via
asyncio.to_thread() and never blocks the event loop.
"""

import asyncio
import logging
import math
from decimal import Decimal
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

from ..config import parse_connection_string
from ..entity import LogEntity
from . import TableStorageClient

logger = logging.getLogger(__name__)

KEY_SCHEMA = [
    {"AttributeName": "PartitionKey", "KeyType": "HASH"},
    {"AttributeName": "RowKey", "KeyType": "RANGE"},
]
ATTRIBUTE_DEFINITIONS = [
    {"AttributeName": "PartitionKey", "AttributeType": "S"},
    {"AttributeName": "RowKey", "AttributeType": "S"},
]


def to_attribute(value: Any) -> Any:
    """
    Convert a Python value into something boto3 can serialize.

    Floats become Decimal (non-finite floats become strings), containers are
    converted recursively, and anything else unsupported is stringified.
    """
    if value is None or isinstance(value, (bool, int, str, bytes, Decimal)):
        return value
    if isinstance(value, float):
        return Decimal(str(value)) if math.isfinite(value) else str(value)
    if isinstance(value, dict):
        return {str(key): to_attribute(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_attribute(item) for item in value]
    return str(value)


def to_item(entity: LogEntity) -> Dict[str, Any]:
    return {key: to_attribute(value) for key, value in entity.to_item().items()}


class DynamoDBTableClient(TableStorageClient):
    """
    Writes log entities to DynamoDB tables.

    Usage:
        client = DynamoDBTableClient.from_connection_string(
            "Region=eu-west-1;EndpointUrl=http://localhost:8000"
        )
    """

    def __init__(self, resource: Any = None, endpoint_url: Optional[str] = None, **session_kwargs: str):
        """
        Initialize the client.

        Args:
            resource: Pre-built boto3 DynamoDB service resource. Built lazily
                from the remaining arguments when omitted.
            endpoint_url: Alternative endpoint (DynamoDB Local, LocalStack)
            session_kwargs: Keyword arguments for boto3.session.Session
                (region_name, profile_name, aws_access_key_id, ...)
        """
        self._resource = resource
        self.endpoint_url = endpoint_url
        self.session_kwargs = session_kwargs

    @classmethod
    def from_connection_string(cls, connection_string: str) -> "DynamoDBTableClient":
        return cls(**parse_connection_string(connection_string))

    @property
    def resource(self) -> Any:
        """Lazy initialize the DynamoDB resource."""
        if self._resource is None:
            session = boto3.session.Session(**self.session_kwargs)
            self._resource = session.resource("dynamodb", endpoint_url=self.endpoint_url)
        return self._resource

    def table(self, name: str) -> Any:
        return self.resource.Table(name)

    async def create_if_missing(self, table: Any) -> None:
        await asyncio.to_thread(self._create_if_missing, table)

    async def insert_one(self, table: Any, entity: LogEntity) -> None:
        await asyncio.to_thread(table.put_item, Item=to_item(entity))

    async def insert_batch(self, table: Any, entities: List[LogEntity]) -> None:
        await asyncio.to_thread(self._write_batch, table, entities)

    def _create_if_missing(self, table: Any) -> None:
        try:
            self.resource.create_table(
                TableName=table.name,
                KeySchema=KEY_SCHEMA,
                AttributeDefinitions=ATTRIBUTE_DEFINITIONS,
                BillingMode="PAY_PER_REQUEST",
            )
            logger.info(f"Created DynamoDB table {table.name}")
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") != "ResourceInUseException":
                raise
            logger.debug(f"DynamoDB table {table.name} already exists")
        table.wait_until_exists()

    def _write_batch(self, table: Any, entities: List[LogEntity]) -> None:
        # batch_writer splits into 25-item requests and resends unprocessed items.
        with table.batch_writer() as batch:
            for entity in entities:
                batch.put_item(Item=to_item(entity))
