"""
Shared document-database connection.

One client is created per process and reused by every request. The first
request that needs the database establishes the connection; concurrent
requests wait on the same attempt.
"""

import asyncio
from typing import Any, Awaitable, Dict, Optional, TypeVar

from pymongo import AsyncMongoClient
from pymongo.errors import ConfigurationError as MongoConfigurationError
from pymongo.errors import PyMongoError

from graphgate.core.config import Settings
from graphgate.core.errors import DependencyUnavailableError
from graphgate.core.logging import get_logger, log_performance

logger = get_logger(__name__)

T = TypeVar("T")

DEPENDENCY_NAME = "database"


class MongoConnection:
    """
    Lazily established, process-wide MongoDB connection.

    Wraps an ``AsyncMongoClient`` and maps driver failures and timeouts to
    ``DependencyUnavailableError`` so that callers never hang on a dead
    database.
    """

    def __init__(
        self,
        uri: str,
        database: Optional[str] = None,
        *,
        connect_timeout_ms: int = 5000,
        operation_timeout: float = 10.0,
        client: Optional[Any] = None,
    ):
        """
        Initialize the connection handle without touching the network.

        Args:
            uri: MongoDB connection string
            database: Database name, defaults to the one in the URI
            connect_timeout_ms: Server selection timeout for the driver
            operation_timeout: Upper bound in seconds for a single operation
            client: Pre-built client, mainly for tests
        """
        self.uri = uri
        self.database_name = database
        self.operation_timeout = operation_timeout
        self._client = client or AsyncMongoClient(
            uri,
            serverSelectionTimeoutMS=connect_timeout_ms,
            connect=False,
        )
        self._database = None
        self._connected = False
        self._lock = asyncio.Lock()
        self.logger = get_logger(__name__)

    @classmethod
    def from_settings(cls, settings: Settings) -> "MongoConnection":
        """Create the connection described by the application settings."""
        return cls(
            settings.mongo_uri,
            settings.mongo_database,
            connect_timeout_ms=settings.mongo_connect_timeout_ms,
            operation_timeout=settings.request_timeout_seconds,
        )

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def ensure_connected(self) -> None:
        """
        Establish the connection if it is not established yet.

        Raises:
            DependencyUnavailableError: If the server cannot be reached
        """
        if self._connected:
            return
        async with self._lock:
            if self._connected:
                return
            await self._connect()

    @log_performance("database connection")
    async def _connect(self) -> None:
        try:
            await asyncio.wait_for(
                self._client.admin.command("ping"),
                timeout=self.operation_timeout,
            )
            if self.database_name:
                self._database = self._client[self.database_name]
            else:
                self._database = self._client.get_default_database()
        except asyncio.TimeoutError as e:
            raise DependencyUnavailableError(DEPENDENCY_NAME, "connection timed out") from e
        except MongoConfigurationError as e:
            raise DependencyUnavailableError(DEPENDENCY_NAME, f"no database selected: {e}") from e
        except PyMongoError as e:
            raise DependencyUnavailableError(DEPENDENCY_NAME, str(e)) from e

        self._connected = True
        self.logger.info("Database connection established", database=self._database.name)

    def collection(self, name: str) -> Any:
        """
        Get a collection from the connected database.

        Raises:
            DependencyUnavailableError: If called before the connection is up
        """
        if not self._connected:
            raise DependencyUnavailableError(DEPENDENCY_NAME, "not connected")
        return self._database[name]

    async def run(self, operation: Awaitable[T]) -> T:
        """
        Await a driver operation with the per-request timeout applied.

        Raises:
            DependencyUnavailableError: On timeout or driver failure
        """
        try:
            return await asyncio.wait_for(operation, timeout=self.operation_timeout)
        except asyncio.TimeoutError as e:
            raise DependencyUnavailableError(DEPENDENCY_NAME, "operation timed out") from e
        except PyMongoError as e:
            raise DependencyUnavailableError(DEPENDENCY_NAME, str(e)) from e

    async def health_check(self) -> Dict[str, Any]:
        """Report connection status without raising."""
        try:
            await self.ensure_connected()
            await self.run(self._client.admin.command("ping"))
            return {"status": "healthy", "connected": True}
        except DependencyUnavailableError as e:
            return {"status": "unavailable", "connected": self._connected, "error": e.reason}

    async def close(self) -> None:
        """Close the client and forget the connection state."""
        await self._client.close()
        self._connected = False
        self._database = None
        self.logger.info("Database connection closed")
