"""Document store connection with bounded startup retries.

The connection is an explicit state machine::

    DISCONNECTED -> CONNECTING -> CONNECTED
                              \\-> FAILED

``connect()`` never raises. When every attempt fails the process keeps
running and writes fail with ``StoreUnavailableError`` until the operator
restarts it or calls ``connect()`` again.
"""

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum

import redis.asyncio as redis
from redis.exceptions import RedisError

from ai_flow.config import Settings, get_redis_client
from ai_flow.errors import StoreUnavailableError
from ai_flow.protocols import EventLogger


class ConnectionState(str, Enum):
    """Lifecycle states of the store connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class StoreConnection:
    """Owns the Redis client and its connectivity state.

    Other components read ``state`` to observe connectivity and use
    ``client`` to get a live client; ``client`` raises while the store is
    not connected.
    """

    def __init__(
        self,
        client_factory: Callable[[], redis.Redis] | None,
        logger: EventLogger,
        max_retries: int = 5,
        retry_delay: float = 5.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the connection.

        Args:
            client_factory: Builds a new Redis client per attempt. None means
                no connection string is configured.
            logger: Structured logger.
            max_retries: Number of connection attempts before giving up.
            retry_delay: Seconds to wait between attempts.
            sleep: Awaitable sleep (injected by tests).
        """
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self._client_factory = client_factory
        self._logger = logger
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._sleep = sleep
        self._client: redis.Redis | None = None
        self._state = ConnectionState.DISCONNECTED
        self._attempts = 0
        self._last_error: str | None = None

    @classmethod
    def create(cls, settings: Settings, logger: EventLogger) -> "StoreConnection":
        """Factory method to create StoreConnection from settings."""
        factory = (lambda: get_redis_client(settings)) if settings.redis_url else None
        return cls(
            client_factory=factory,
            logger=logger,
            max_retries=settings.db_connect_retries,
            retry_delay=settings.db_retry_delay,
        )

    async def connect(self) -> ConnectionState:
        """Try to connect, retrying a bounded number of times.

        Returns:
            The final state, CONNECTED or FAILED
        """
        if self._client_factory is None:
            self._state = ConnectionState.FAILED
            self._last_error = "No store connection string configured"
            self._logger.warning("Store connection skipped", reason=self._last_error)
            return self._state

        self._state = ConnectionState.CONNECTING
        self._attempts = 0

        for attempt in range(1, self._max_retries + 1):
            self._attempts = attempt
            client = None
            try:
                client = self._client_factory()
                await client.ping()
            except ValueError as e:
                # Malformed connection string; another attempt cannot succeed
                self._state = ConnectionState.FAILED
                self._last_error = str(e)
                self._logger.error("Invalid store connection string", error=self._last_error)
                return self._state
            except (RedisError, OSError) as e:
                self._last_error = str(e)
                if client is not None:
                    await client.aclose()
                self._logger.error(
                    "Store connection attempt failed",
                    attempt=attempt,
                    max_retries=self._max_retries,
                    error=self._last_error,
                )
                if attempt < self._max_retries:
                    self._logger.info("Retrying store connection", delay_seconds=self._retry_delay)
                    await self._sleep(self._retry_delay)
                continue

            self._client = client
            self._state = ConnectionState.CONNECTED
            self._last_error = None
            self._logger.info("Store connected", attempt=attempt)
            return self._state

        self._state = ConnectionState.FAILED
        self._logger.error(
            "All store connection attempts failed, continuing without database",
            attempts=self._attempts,
        )
        return self._state

    @property
    def client(self) -> redis.Redis:
        """Get the connected client.

        Raises:
            StoreUnavailableError: If the store is not connected
        """
        if self._state is not ConnectionState.CONNECTED or self._client is None:
            raise StoreUnavailableError("Database unavailable")
        return self._client

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    async def close(self) -> None:
        """Close the client and return to DISCONNECTED."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self._state = ConnectionState.DISCONNECTED
