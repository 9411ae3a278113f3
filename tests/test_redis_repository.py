"""
Tests for the Redis prompt-response repository.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from ai_flow.entities import PromptResponseEntity
from ai_flow.errors import (
    DuplicateEntryError,
    StoreError,
    StoreUnavailableError,
    StoreValidationError,
)
from ai_flow.repositories import RedisPromptResponseRepository, StoreConnection
from ai_flow.repositories.redis_repository import new_document_id
from conftest import RecordingLogger


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the repository."""

    def __init__(self):
        self.values: dict[str, str] = {}
        self.zsets: dict[str, dict[str, float]] = {}
        self.error: Exception | None = None
        self.writes = 0

    def _maybe_fail(self):
        if self.error is not None:
            raise self.error

    async def ping(self):
        self._maybe_fail()
        return True

    async def aclose(self):
        pass

    async def eval(self, script, numkeys, *args):
        """Run the save script: SET NX on the document, then ZADD on the index."""
        self._maybe_fail()
        self.writes += 1
        doc_key, index_key = args[:numkeys]
        document, score, member = args[numkeys:]
        assert "NX" in script and "ZADD" in script
        if doc_key in self.values:
            return 0
        self.values[doc_key] = document
        self.zsets.setdefault(index_key, {})[member] = float(score)
        return 1

    async def zrevrange(self, key, start, end):
        self._maybe_fail()
        members = sorted(self.zsets.get(key, {}).items(), key=lambda item: item[1], reverse=True)
        return [member for member, _ in members[start : end + 1]]

    async def mget(self, keys):
        self._maybe_fail()
        return [self.values.get(key) for key in keys]

    async def zcard(self, key):
        self._maybe_fail()
        return len(self.zsets.get(key, {}))


@pytest.fixture
def redis_client():
    return FakeRedis()


@pytest_asyncio.fixture
async def connection(redis_client):
    conn = StoreConnection(lambda: redis_client, RecordingLogger())
    await conn.connect()
    return conn


@pytest.fixture
def repository(connection):
    return RedisPromptResponseRepository(connection, key_prefix="test_pairs")


@pytest.mark.asyncio
async def test_save_returns_id_and_stores_document(repository, redis_client):
    created_at = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    doc_id = await repository.save(PromptResponseEntity("x", "y", created_at=created_at))

    assert isinstance(doc_id, str)
    assert len(doc_id) == 24
    stored = json.loads(redis_client.values[f"test_pairs:{doc_id}"])
    assert stored == {"prompt": "x", "response": "y", "createdAt": "2024-05-01T12:00:00+00:00"}
    assert redis_client.zsets["test_pairs:index"] == {doc_id: created_at.timestamp()}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "pair",
    [
        PromptResponseEntity("valid prompt", ""),
        PromptResponseEntity("valid prompt", "   "),
        PromptResponseEntity("", "response"),
        PromptResponseEntity("x" * 10_001, "response"),
    ],
)
async def test_invalid_pair_rejected_before_write(repository, redis_client, pair):
    with pytest.raises(StoreValidationError):
        await repository.save(pair)

    assert redis_client.writes == 0


@pytest.mark.asyncio
async def test_duplicate_id_is_reported(connection, redis_client):
    repository = RedisPromptResponseRepository(connection, id_factory=lambda: "a" * 24)
    await repository.save(PromptResponseEntity("first", "one"))

    with pytest.raises(DuplicateEntryError):
        await repository.save(PromptResponseEntity("second", "two"))

    assert json.loads(redis_client.values["prompt_response:" + "a" * 24])["prompt"] == "first"


@pytest.mark.asyncio
async def test_connection_error_is_unavailable(repository, redis_client):
    redis_client.error = RedisConnectionError("Connection reset by peer")

    with pytest.raises(StoreUnavailableError):
        await repository.save(PromptResponseEntity("x", "y"))

    assert redis_client.values == {}
    assert redis_client.zsets == {}


@pytest.mark.asyncio
async def test_document_and_index_written_in_one_command(repository, redis_client):
    doc_id = await repository.save(PromptResponseEntity("x", "y"))

    assert redis_client.writes == 1
    assert list(redis_client.values) == [f"test_pairs:{doc_id}"]
    assert list(redis_client.zsets["test_pairs:index"]) == [doc_id]


@pytest.mark.asyncio
async def test_save_after_failed_save_is_indexed_once(repository, redis_client):
    redis_client.error = RedisConnectionError("Connection reset by peer")
    with pytest.raises(StoreUnavailableError):
        await repository.save(PromptResponseEntity("x", "y"))

    redis_client.error = None
    doc_id = await repository.save(PromptResponseEntity("x", "y"))

    assert [p.id for p in await repository.find_recent()] == [doc_id]
    assert len(redis_client.values) == 1


@pytest.mark.asyncio
async def test_other_redis_error_is_store_error(repository, redis_client):
    redis_client.error = ResponseError("OOM command not allowed")

    with pytest.raises(StoreError) as excinfo:
        await repository.save(PromptResponseEntity("x", "y"))

    assert not isinstance(excinfo.value, StoreUnavailableError)


@pytest.mark.asyncio
async def test_save_without_connection_is_unavailable():
    repository = RedisPromptResponseRepository(StoreConnection(None, RecordingLogger()))

    with pytest.raises(StoreUnavailableError):
        await repository.save(PromptResponseEntity("x", "y"))


@pytest.mark.asyncio
async def test_find_recent_newest_first(repository, redis_client):
    base = datetime(2024, 5, 1, tzinfo=timezone.utc)
    ids = []
    for minutes in range(3):
        pair = PromptResponseEntity(f"prompt {minutes}", "r", created_at=base + timedelta(minutes=minutes))
        ids.append(await repository.save(pair))

    recent = await repository.find_recent(limit=2)

    assert [p.id for p in recent] == [ids[2], ids[1]]
    assert recent[0].prompt == "prompt 2"
    assert recent[0].created_at == base + timedelta(minutes=2)
    assert len(redis_client.zsets["test_pairs:index"]) == 3


@pytest.mark.asyncio
async def test_find_recent_skips_missing_documents(repository, redis_client):
    doc_id = await repository.save(PromptResponseEntity("gone", "r"))
    kept = await repository.save(PromptResponseEntity("kept", "r"))
    del redis_client.values[f"test_pairs:{doc_id}"]

    recent = await repository.find_recent()

    assert [p.id for p in recent] == [kept]


@pytest.mark.asyncio
async def test_find_recent_empty(repository):
    assert await repository.find_recent() == []


@pytest.mark.asyncio
async def test_health_check(repository, redis_client):
    assert await repository.health_check() is True
    redis_client.error = RedisConnectionError("down")
    assert await repository.health_check() is False


def test_new_document_id_is_hex():
    doc_id = new_document_id()
    assert len(doc_id) == 24
    int(doc_id, 16)
