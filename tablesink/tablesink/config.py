"""
Configuration loader for tablesink.yaml files.

Example tablesink.yaml:

    sink:
      table_name: "%(name)s"
      layout: "%(asctime)s %(levelname)s %(message)s"
      connection_string_key: ConnectionStrings:Logs
      batch_size: 100
      flush_interval_ms: 1000

    ConnectionStrings:
      Logs: "Region=eu-west-1;EndpointUrl=http://localhost:8000"

Environment Variables:
    TABLESINK_CONFIG: Path to the settings file
    TABLESINK_<FIELD>: Overrides any SinkConfig field when building from env
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .errors import ConfigurationError
from .layout import DEFAULT_LAYOUT, DEFAULT_TABLE_NAME_LAYOUT

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "tablesink.yaml"
ENV_PREFIX = "TABLESINK_"

# Connection string keys (case-insensitive) -> boto3 keyword arguments
_CONNECTION_KEYS = {
    "region": "region_name",
    "endpointurl": "endpoint_url",
    "accesskeyid": "aws_access_key_id",
    "secretaccesskey": "aws_secret_access_key",
    "sessiontoken": "aws_session_token",
    "profile": "profile_name",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class SinkConfig:
    """Configuration for the table sink handler."""
    table_name: str = DEFAULT_TABLE_NAME_LAYOUT
    layout: str = DEFAULT_LAYOUT
    connection_string: Optional[str] = None
    connection_string_key: Optional[str] = None
    batch_size: int = 100
    flush_interval_ms: int = 1000
    max_events: int = 10000
    buffered: bool = True
    concurrent_buckets: bool = False
    level: str = "NOTSET"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SinkConfig":
        """
        Build a config from the `sink:` section of a settings file.

        Unknown keys are ignored with a warning. Null values keep the
        field default.
        """
        known = {f.name: f for f in fields(cls)}
        values = {}
        for key, value in data.items():
            if key not in known:
                logger.warning(f"Ignoring unknown sink setting: {key}")
                continue
            if value is None:
                continue
            values[key] = _coerce(value, known[key].type, key)
        return cls(**values)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SinkConfig":
        """Build a config from TABLESINK_* environment variables."""
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is not None:
                values[f.name] = raw
        return cls.from_dict(values)


def _coerce(value: Any, annotation: Any, key: str) -> Any:
    if annotation is bool:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
        raise ConfigurationError(f"Invalid value for {key}: {value!r} (expected true or false)")
    try:
        if annotation is int:
            return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid value for {key}: {value!r}") from e
    return str(value)


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load settings from tablesink.yaml.

    Search order:
    1. Provided config_path
    2. TABLESINK_CONFIG environment variable
    3. ./tablesink.yaml in current directory
    4. tablesink.yaml in parent directories (walk up the tree)

    Args:
        config_path: Optional explicit path to config file

    Returns:
        Settings mapping (empty if no file was found)
    """
    if config_path:
        return _load_from_path(Path(config_path))

    env_path = os.environ.get("TABLESINK_CONFIG")
    if env_path:
        return _load_from_path(Path(env_path))

    current = Path.cwd()
    while True:
        config_file = current / CONFIG_FILENAME
        if config_file.exists():
            return _load_from_path(config_file)

        # Stop at filesystem root
        if current == current.parent:
            break
        current = current.parent

    return {}


def _load_from_path(path: Path) -> Dict[str, Any]:
    """Load settings from a specific path"""
    with open(path, "r", encoding="utf-8") as f:
        settings = yaml.safe_load(f) or {}
    if not isinstance(settings, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")
    logger.debug(f"Loaded tablesink settings from {path}")
    return settings


def lookup_setting(settings: Mapping[str, Any], key: str) -> Optional[Any]:
    """
    Look up a key in nested settings.

    Colon-separated keys descend into nested mappings, so
    "ConnectionStrings:Logs" reads settings["ConnectionStrings"]["Logs"].
    """
    node: Any = settings
    for part in key.split(":"):
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    return node


def resolve_connection_string(config: SinkConfig, settings: Optional[Mapping[str, Any]] = None) -> str:
    """
    Resolve the connection string for a sink.

    An explicit connection_string wins. Otherwise connection_string_key is
    looked up in the settings, then in the environment.

    Raises:
        ConfigurationError: If no connection string can be resolved
    """
    if config.connection_string and config.connection_string.strip():
        return config.connection_string

    key = config.connection_string_key
    if key and key.strip():
        value = lookup_setting(settings or {}, key)
        if value is None:
            value = os.environ.get(key)
        if isinstance(value, str) and value.strip():
            return value

    logger.error("A connection_string or connection_string_key is required")
    raise ConfigurationError("A connection_string or connection_string_key is required")


def parse_connection_string(connection_string: str) -> Dict[str, str]:
    """
    Parse "Key=Value;Key=Value" into boto3 keyword arguments.

    Supported keys: Region, EndpointUrl, AccessKeyId, SecretAccessKey,
    SessionToken, Profile.

    Raises:
        ConfigurationError: On malformed segments or unknown keys
    """
    parsed: Dict[str, str] = {}
    for segment in connection_string.split(";"):
        segment = segment.strip()
        if not segment:
            continue
        name, sep, value = segment.partition("=")
        if not sep or not name.strip():
            raise ConfigurationError(f"Malformed connection string segment: {segment!r}")
        target = _CONNECTION_KEYS.get(name.strip().lower())
        if target is None:
            raise ConfigurationError(f"Unknown connection string key: {name.strip()!r}")
        parsed[target] = value.strip()
    return parsed
