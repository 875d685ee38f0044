"""
Error taxonomy for the table sink.

ConfigurationError is fatal at startup. ProvisioningError and DispatchError
are raised from the dispatch path and always chain the underlying client
exception.
"""

from typing import Dict, Optional


class TableSinkError(Exception):
    """Base class for all tablesink errors."""


class ConfigurationError(TableSinkError):
    """No usable credential or a malformed connection string."""


class ProvisioningError(TableSinkError):
    """A destination table could not be created or verified."""

    def __init__(self, message: str, destination: str):
        super().__init__(message)
        self.destination = destination


class DispatchError(TableSinkError):
    """
    An insert (single or batch) failed.

    Attributes:
        destination: Sanitized table name of the failing insert, if a single
            destination was involved
        failures: Raw bucket key -> exception, for multi-bucket dispatches
        written: Sanitized table name -> records written before the failure
    """

    def __init__(
        self,
        message: str,
        destination: Optional[str] = None,
        failures: Optional[Dict[str, BaseException]] = None,
        written: Optional[Dict[str, int]] = None,
    ):
        super().__init__(message)
        self.destination = destination
        self.failures = failures or {}
        self.written = written or {}
