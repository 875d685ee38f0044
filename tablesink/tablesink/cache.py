"""
Last-used destination cache.

Remembers the handle of the most recently provisioned table so that
consecutive writes to the same table skip the existence check. Only the
immediately preceding table is remembered; switching tables always
provisions again.
"""

import asyncio
import logging
from typing import Any, Optional

from .errors import ProvisioningError

logger = logging.getLogger(__name__)


class DestinationCache:
    """
    Holds at most one provisioned table handle.

    States:
        Empty       no handle cached
        Bound(name) handle for `name` cached

    ensure() calls are serialized with an asyncio.Lock, so concurrent
    dispatches never observe a half-updated handle.
    """

    def __init__(self):
        self._name: Optional[str] = None
        self._handle: Any = None
        self._lock = asyncio.Lock()

    @property
    def name(self) -> Optional[str]:
        """Name of the cached table, or None when empty."""
        return self._name

    async def ensure(self, client: Any, name: str) -> Any:
        """
        Get a handle for `name`, provisioning the table if it was not the
        last one used.

        Args:
            client: TableStorageClient providing handles
            name: Sanitized table name

        Returns:
            Table handle

        Raises:
            ProvisioningError: If the table could not be created or verified.
                The previously cached handle stays in place.
        """
        async with self._lock:
            if self._handle is not None and self._name == name:
                return self._handle

            try:
                handle = client.table(name)
                await client.create_if_missing(handle)
            except Exception as e:
                logger.error(f"Failed to get a reference to storage table {name}: {e}")
                raise ProvisioningError(f"Failed to provision table {name}", destination=name) from e

            self._name = name
            self._handle = handle
            return handle

    def clear(self) -> None:
        """Forget the cached handle."""
        self._name = None
        self._handle = None
