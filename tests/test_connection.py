"""
Tests for the store connection state machine.
"""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from ai_flow.config import Settings
from ai_flow.errors import StoreUnavailableError
from ai_flow.repositories import ConnectionState, StoreConnection
from conftest import RecordingLogger


class PingClient:
    def __init__(self, ok=True):
        self.ok = ok
        self.closed = False

    async def ping(self):
        if not self.ok:
            raise RedisConnectionError("Connection refused")
        return True

    async def aclose(self):
        self.closed = True


class ClientFactory:
    """Hands out clients whose ping fails ``failures`` times, then succeeds."""

    def __init__(self, failures):
        self.failures = failures
        self.clients: list[PingClient] = []

    def __call__(self):
        client = PingClient(ok=len(self.clients) >= self.failures)
        self.clients.append(client)
        return client


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.mark.asyncio
async def test_connects_on_first_attempt(sleep):
    factory = ClientFactory(failures=0)
    connection = StoreConnection(factory, RecordingLogger(), sleep=sleep)

    assert connection.state is ConnectionState.DISCONNECTED
    state = await connection.connect()

    assert state is ConnectionState.CONNECTED
    assert connection.is_connected
    assert connection.attempts == 1
    assert connection.client is factory.clients[0]
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_retries_with_fixed_delay_until_connected(sleep):
    factory = ClientFactory(failures=2)
    connection = StoreConnection(factory, RecordingLogger(), max_retries=5, retry_delay=5, sleep=sleep)

    state = await connection.connect()

    assert state is ConnectionState.CONNECTED
    assert connection.attempts == 3
    assert sleep.delays == [5, 5]
    assert [c.closed for c in factory.clients] == [True, True, False]
    assert connection.last_error is None


@pytest.mark.asyncio
async def test_gives_up_after_max_retries(sleep):
    logger = RecordingLogger()
    factory = ClientFactory(failures=10)
    connection = StoreConnection(factory, logger, max_retries=5, retry_delay=5, sleep=sleep)

    state = await connection.connect()

    assert state is ConnectionState.FAILED
    assert connection.attempts == 5
    assert len(factory.clients) == 5
    assert sleep.delays == [5, 5, 5, 5]
    assert "Connection refused" in connection.last_error
    assert "All store connection attempts failed, continuing without database" in logger.events("error")
    with pytest.raises(StoreUnavailableError):
        connection.client


@pytest.mark.asyncio
async def test_missing_connection_string_fails_without_attempts(sleep):
    connection = StoreConnection(None, RecordingLogger(), sleep=sleep)

    state = await connection.connect()

    assert state is ConnectionState.FAILED
    assert connection.attempts == 0
    assert connection.last_error == "No store connection string configured"


def test_client_unavailable_before_connect():
    connection = StoreConnection(ClientFactory(0), RecordingLogger())
    with pytest.raises(StoreUnavailableError, match="Database unavailable"):
        connection.client


@pytest.mark.asyncio
async def test_close_returns_to_disconnected(sleep):
    factory = ClientFactory(failures=0)
    connection = StoreConnection(factory, RecordingLogger(), sleep=sleep)
    await connection.connect()

    await connection.close()

    assert connection.state is ConnectionState.DISCONNECTED
    assert factory.clients[0].closed


@pytest.mark.asyncio
async def test_create_without_redis_url_fails_fast():
    connection = StoreConnection.create(Settings(redis_url=None), RecordingLogger())

    assert await connection.connect() is ConnectionState.FAILED
    assert connection.attempts == 0


def test_rejects_non_positive_retries():
    with pytest.raises(ValueError):
        StoreConnection(ClientFactory(0), RecordingLogger(), max_retries=0)


@pytest.mark.asyncio
async def test_malformed_connection_string_fails_without_retry(sleep):
    def factory():
        raise ValueError("Redis URL must specify one of the following schemes")

    logger = RecordingLogger()
    connection = StoreConnection(factory, logger, max_retries=5, sleep=sleep)

    state = await connection.connect()

    assert state is ConnectionState.FAILED
    assert connection.state is ConnectionState.FAILED
    assert connection.attempts == 1
    assert sleep.delays == []
    assert "schemes" in connection.last_error
    assert "Invalid store connection string" in logger.events("error")


@pytest.mark.asyncio
async def test_create_with_url_missing_scheme_fails():
    connection = StoreConnection.create(Settings(redis_url="localhost:6379"), RecordingLogger())

    assert await connection.connect() is ConnectionState.FAILED
    assert connection.last_error
    with pytest.raises(StoreUnavailableError):
        connection.client
