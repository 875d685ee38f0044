#!/usr/bin/env python3
"""
Ship script - Write JSON-lines log files to table storage.

Each input line is a JSON object holding LogRecord attributes, e.g.
    {"name": "billing", "levelname": "ERROR", "msg": "card declined", "created": 1700000000.0}

Records are grouped into tables with the configured table name template and
written in batches of up to 100.

Usage:
    # Ship a file using tablesink.yaml from the current directory
    python scripts/ship_logs.py app.log.jsonl

    # Ship stdin with an explicit connection string
    cat app.log.jsonl | python scripts/ship_logs.py - \\
        --connection-string "Region=eu-west-1;EndpointUrl=http://localhost:8000"

    # Route by level instead of logger name
    python scripts/ship_logs.py app.log.jsonl --table-name "%(levelname)s"
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import IO, Any, Dict, List, Optional

from tablesink import (
    MAX_BATCH_SIZE,
    BatchDispatcher,
    DynamoDBTableClient,
    SinkConfig,
    TableSinkError,
    load_config,
    resolve_connection_string,
)


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def read_records(stream: IO[str]) -> List[logging.LogRecord]:
    """
    Rebuild LogRecords from JSON lines. Blank lines are skipped; lines that
    are not JSON objects are reported and skipped.
    """
    records = []
    for lineno, line in enumerate(stream, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            data: Dict[str, Any] = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping line {lineno}: {e}")
            continue
        if not isinstance(data, dict):
            logger.warning(f"Skipping line {lineno}: not a JSON object")
            continue
        if "levelname" in data and "levelno" not in data:
            levelno = logging.getLevelName(data["levelname"])
            if isinstance(levelno, int):
                data["levelno"] = levelno
        records.append(logging.makeLogRecord(data))
    return records


def batch_size_arg(value: str) -> int:
    """argparse type for --batch-size."""
    try:
        size = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}")
    if not 1 <= size <= MAX_BATCH_SIZE:
        raise argparse.ArgumentTypeError(f"must be between 1 and {MAX_BATCH_SIZE}, got {size}")
    return size


def build_config(args: argparse.Namespace, settings: Dict[str, Any]) -> SinkConfig:
    """Merge the `sink:` settings section with command-line overrides."""
    config = SinkConfig.from_dict(settings.get("sink") or {})
    if args.table_name:
        config.table_name = args.table_name
    if args.layout:
        config.layout = args.layout
    if args.connection_string:
        config.connection_string = args.connection_string
    if args.batch_size:
        config.batch_size = args.batch_size
    return config


def ship(records: List[logging.LogRecord], config: SinkConfig, connection_string: str) -> Dict[str, int]:
    """Dispatch records and return rows written per table."""
    client = DynamoDBTableClient.from_connection_string(connection_string)
    dispatcher = BatchDispatcher(
        client,
        table_name=config.table_name,
        layout=config.layout,
        batch_size=config.batch_size,
        concurrent_buckets=config.concurrent_buckets,
    )
    return asyncio.run(dispatcher.dispatch_many(records))


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Ship JSON-lines log records to table storage",
    )
    parser.add_argument(
        "input",
        type=str,
        help="JSON-lines file to ship, or - for stdin",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to tablesink.yaml configuration file",
    )
    parser.add_argument(
        "--table-name",
        type=str,
        help="Table name template, e.g. %%(name)s",
    )
    parser.add_argument(
        "--layout",
        type=str,
        help="Message layout template, e.g. %%(levelname)s %%(message)s",
    )
    parser.add_argument(
        "--connection-string",
        type=str,
        help="Connection string (overrides configuration)",
    )
    parser.add_argument(
        "--batch-size",
        type=batch_size_arg,
        help="Max records per batch insert (1-100)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        settings = load_config(str(args.config) if args.config else None)
        config = build_config(args, settings)
        connection_string = resolve_connection_string(config, settings)

        if args.input == "-":
            records = read_records(sys.stdin)
        else:
            with open(args.input, "r", encoding="utf-8") as f:
                records = read_records(f)

        logger.info(f"Shipping {len(records)} records")
        written = ship(records, config, connection_string)
    except (TableSinkError, ValueError) as e:
        logger.error(f"Shipping failed: {e}")
        return 1

    for table_name, count in sorted(written.items()):
        print(f"{table_name}: {count}")
    print("\nDone!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
