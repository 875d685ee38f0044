"""
Plain Python demo of tablesink with the in-memory client.

This example demonstrates:
1. Attaching a TableStorageHandler to an application logger
2. Routing records to tables with a table name template
3. Driving the BatchDispatcher directly from async code

Run this script to see tablesink in action without any remote store.
"""

import asyncio
import logging

from tablesink import BatchDispatcher, InMemoryTableClient, TableStorageHandler


def handler_demo(client):
    """Route records to one table per tenant."""
    print("=== Example 1: logging handler ===")
    dispatcher = BatchDispatcher(
        client,
        table_name="%(tenant)s-logs",
        layout="%(levelname)s %(message)s",
    )
    handler = TableStorageHandler(dispatcher, flush_interval_ms=500)

    logger = logging.getLogger("shop")
    logger.setLevel(logging.INFO)
    logger.addHandler(handler)

    logger.info("order placed", extra={"tenant": "acme", "order_id": 1})
    logger.info("order placed", extra={"tenant": "globex", "order_id": 2})
    logger.warning("payment retried", extra={"tenant": "acme", "order_id": 1})
    # No tenant: the rendered name "-logs" is repaired to "logs"
    logger.error("unknown tenant")

    handler.close()
    logger.removeHandler(handler)


async def dispatcher_demo(client):
    """Write a large batch straight through the dispatcher."""
    print("=== Example 2: dispatcher ===")
    dispatcher = BatchDispatcher(client, table_name="%(name)s")
    records = [
        logging.makeLogRecord({"name": "metrics", "msg": f"sample {i}", "levelname": "INFO"})
        for i in range(230)
    ]
    written = await dispatcher.dispatch_many(records)
    print(f"  Written: {written}")


def main():
    client = InMemoryTableClient()

    handler_demo(client)
    asyncio.run(dispatcher_demo(client))

    print("=== Tables ===")
    for name in sorted(client.tables):
        rows = client.rows(name)
        print(f"  {name}: {len(rows)} rows")
        for row in rows[:3]:
            print(f"    [{row['Level']}] {row['Message']}")
    print(f"  Provisioning calls: {client.provision_count}")
    print(f"  Batch calls: {client.batch_count}")


if __name__ == "__main__":
    main()
