"""Tests for scripts/ship_logs.py."""

import importlib.util
import io
import logging
from pathlib import Path

import pytest

SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "ship_logs.py"


@pytest.fixture
def ship_logs():
    """Import the script as a module."""
    spec = importlib.util.spec_from_file_location("ship_logs", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def input_file(tmp_path):
    path = tmp_path / "app.log.jsonl"
    path.write_text('{"name": "web", "levelname": "INFO", "msg": "up"}\n')
    return path


@pytest.mark.parametrize("value", ["0", "500", "ten"])
def test_invalid_batch_size_argument(ship_logs, input_file, value):
    with pytest.raises(SystemExit) as exc_info:
        ship_logs.main([str(input_file), "--batch-size", value, "--connection-string", "Region=eu-west-1"])
    assert exc_info.value.code == 2


def test_invalid_batch_size_in_settings(ship_logs, input_file, tmp_path):
    config_file = tmp_path / "tablesink.yaml"
    config_file.write_text(
        "sink:\n"
        "  batch_size: 500\n"
        "  connection_string: \"Region=eu-west-1\"\n"
    )

    assert ship_logs.main([str(input_file), "--config", str(config_file)]) == 1


def test_missing_connection_string(ship_logs, input_file, tmp_path):
    config_file = tmp_path / "tablesink.yaml"
    config_file.write_text("sink:\n  table_name: audit\n")

    assert ship_logs.main([str(input_file), "--config", str(config_file)]) == 1


def test_read_records(ship_logs):
    stream = io.StringIO(
        '{"name": "web", "levelname": "WARNING", "msg": "slow"}\n'
        "\n"
        "not json\n"
        "[1, 2]\n"
        '{"name": "db", "msg": "ok"}\n'
    )

    records = ship_logs.read_records(stream)

    assert [r.name for r in records] == ["web", "db"]
    assert records[0].levelno == logging.WARNING
    assert records[0].getMessage() == "slow"
