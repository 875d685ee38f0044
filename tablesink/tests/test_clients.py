"""Tests for tablesink.client implementations."""

from decimal import Decimal
from unittest.mock import MagicMock, Mock, patch

import pytest
from botocore.exceptions import ClientError

from tablesink.client.dynamodb import DynamoDBTableClient, to_attribute, to_item
from tablesink.client.memory import InMemoryTableClient, MemoryTable
from tablesink.entity import LogEntity


def make_entity(message="hello", **fields):
    return LogEntity(
        partition_key="app",
        row_key="0001-abc",
        message=message,
        level="INFO",
        logger_name="app",
        timestamp="2024-01-01T00:00:00+00:00",
        fields=fields,
    )


class TestInMemoryTableClient:
    """Tests for InMemoryTableClient."""

    def test_table_handle(self, memory_client):
        assert memory_client.table("orders") == MemoryTable("orders")
        assert memory_client.tables == {}

    @pytest.mark.asyncio
    async def test_create_and_insert(self, memory_client):
        table = memory_client.table("orders")
        await memory_client.create_if_missing(table)
        await memory_client.insert_one(table, make_entity("a"))
        await memory_client.insert_batch(table, [make_entity("b"), make_entity("c")])

        assert [row["Message"] for row in memory_client.rows("orders")] == ["a", "b", "c"]
        assert memory_client.provision_count == 1
        assert memory_client.batch_count == 1

    @pytest.mark.asyncio
    async def test_create_is_idempotent(self, memory_client):
        table = memory_client.table("orders")
        await memory_client.create_if_missing(table)
        await memory_client.insert_one(table, make_entity())
        await memory_client.create_if_missing(table)

        assert len(memory_client.rows("orders")) == 1

    @pytest.mark.asyncio
    async def test_insert_into_missing_table(self, memory_client):
        with pytest.raises(LookupError):
            await memory_client.insert_one(memory_client.table("nope"), make_entity())

    @pytest.mark.asyncio
    async def test_rejects_oversized_batch(self, memory_client):
        table = memory_client.table("orders")
        await memory_client.create_if_missing(table)
        with pytest.raises(ValueError):
            await memory_client.insert_batch(table, [make_entity()] * 101)

    def test_rows_of_unknown_table(self, memory_client):
        assert memory_client.rows("unknown") == []


class TestToAttribute:
    """Tests for DynamoDB value conversion."""

    def test_passthrough(self):
        for value in ("s", 1, True, None, b"x", Decimal("1.5")):
            assert to_attribute(value) == value

    def test_float_to_decimal(self):
        assert to_attribute(0.1) == Decimal("0.1")

    def test_non_finite_float_to_string(self):
        assert to_attribute(float("inf")) == "inf"

    def test_nested_containers(self):
        assert to_attribute({"a": [1.5, {"b": 2.0}], 3: (1,)}) == {
            "a": [Decimal("1.5"), {"b": Decimal("2.0")}],
            "3": [1],
        }

    def test_unsupported_values_stringified(self):
        assert to_attribute(object).startswith("<class")

    def test_to_item(self):
        item = to_item(make_entity(latency=1.25))
        assert item["latency"] == Decimal("1.25")
        assert item["PartitionKey"] == "app"


class TestDynamoDBTableClient:
    """Tests for DynamoDBTableClient with a mocked boto3 resource."""

    @pytest.fixture
    def resource(self):
        return Mock()

    @pytest.fixture
    def client(self, resource):
        return DynamoDBTableClient(resource=resource)

    def test_table_returns_resource_table(self, client, resource):
        assert client.table("orders") is resource.Table.return_value
        resource.Table.assert_called_once_with("orders")

    @pytest.mark.asyncio
    async def test_create_if_missing_creates_table(self, client, resource):
        table = Mock()
        table.name = "orders"

        await client.create_if_missing(table)

        kwargs = resource.create_table.call_args.kwargs
        assert kwargs["TableName"] == "orders"
        assert kwargs["BillingMode"] == "PAY_PER_REQUEST"
        assert [k["AttributeName"] for k in kwargs["KeySchema"]] == ["PartitionKey", "RowKey"]
        table.wait_until_exists.assert_called_once()

    @pytest.mark.asyncio
    async def test_create_if_missing_tolerates_existing_table(self, client, resource):
        resource.create_table.side_effect = ClientError(
            {"Error": {"Code": "ResourceInUseException", "Message": "exists"}}, "CreateTable"
        )
        table = Mock()
        table.name = "orders"

        await client.create_if_missing(table)
        table.wait_until_exists.assert_called_once()

    @pytest.mark.asyncio
    async def test_create_if_missing_propagates_other_errors(self, client, resource):
        resource.create_table.side_effect = ClientError(
            {"Error": {"Code": "AccessDeniedException", "Message": "no"}}, "CreateTable"
        )
        table = Mock()
        table.name = "orders"

        with pytest.raises(ClientError):
            await client.create_if_missing(table)
        table.wait_until_exists.assert_not_called()

    @pytest.mark.asyncio
    async def test_insert_one(self, client):
        table = Mock()
        await client.insert_one(table, make_entity("a", ratio=0.5))

        item = table.put_item.call_args.kwargs["Item"]
        assert item["Message"] == "a"
        assert item["ratio"] == Decimal("0.5")

    @pytest.mark.asyncio
    async def test_insert_batch_uses_batch_writer(self, client):
        table = MagicMock()
        writer = table.batch_writer.return_value.__enter__.return_value

        await client.insert_batch(table, [make_entity("a"), make_entity("b")])

        messages = [call.kwargs["Item"]["Message"] for call in writer.put_item.call_args_list]
        assert messages == ["a", "b"]
        table.batch_writer.return_value.__exit__.assert_called_once()

    @patch("tablesink.client.dynamodb.boto3")
    def test_from_connection_string(self, mock_boto3):
        client = DynamoDBTableClient.from_connection_string(
            "Region=eu-west-1;EndpointUrl=http://localhost:8000;Profile=dev"
        )

        resource = client.resource

        mock_boto3.session.Session.assert_called_once_with(region_name="eu-west-1", profile_name="dev")
        session = mock_boto3.session.Session.return_value
        session.resource.assert_called_once_with("dynamodb", endpoint_url="http://localhost:8000")
        assert resource is session.resource.return_value

    @patch("tablesink.client.dynamodb.boto3")
    def test_resource_is_built_once(self, mock_boto3):
        client = DynamoDBTableClient(region_name="us-east-1")
        assert client.resource is client.resource
        assert mock_boto3.session.Session.call_count == 1
