"""Shared fixtures and in-memory fakes for the test suite."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from ai_flow.api.app import create_app
from ai_flow.config import Settings
from ai_flow.entities import PromptResponseEntity
from ai_flow.errors import StoreUnavailableError
from ai_flow.rate_limiter import RateLimiter


class RecordingLogger:
    """EventLogger that keeps every record in memory."""

    def __init__(self):
        self.records: list[tuple[str, str, dict]] = []

    def _record(self, level, event, fields):
        self.records.append((level, event, fields))

    def debug(self, event, **fields):
        self._record("debug", event, fields)

    def info(self, event, **fields):
        self._record("info", event, fields)

    def warning(self, event, **fields):
        self._record("warning", event, fields)

    def error(self, event, **fields):
        self._record("error", event, fields)

    def events(self, level=None):
        return [event for lvl, event, _ in self.records if level is None or lvl == level]


class FakeCompletionProvider:
    """CompletionProvider returning a canned reply or raising a canned error."""

    def __init__(self, reply="4", error=None, delay=0.0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.prompts: list[str] = []
        self.closed = False

    @property
    def model_name(self):
        return "mistralai/mistral-7b-instruct:free"

    def available_models(self):
        return ["mistralai/mistral-7b-instruct:free"]

    async def complete(self, prompt, model=None):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply

    async def close(self):
        self.closed = True


class InMemoryPairStore:
    """PromptResponseStore keeping pairs in a dict."""

    def __init__(self, error=None, delay=0.0):
        self.error = error
        self.delay = delay
        self.pairs: dict[str, PromptResponseEntity] = {}
        self._next = 0

    async def save(self, pair):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self._next += 1
        doc_id = f"{self._next:024x}"
        self.pairs[doc_id] = PromptResponseEntity(
            prompt=pair.prompt, response=pair.response, created_at=pair.created_at, id=doc_id
        )
        return doc_id

    async def find_recent(self, limit=10):
        if self.error is not None:
            raise self.error
        ordered = sorted(self.pairs.values(), key=lambda p: p.created_at, reverse=True)
        return ordered[:limit]

    async def health_check(self):
        return self.error is None


@pytest.fixture
def settings():
    return Settings(
        openrouter_api_key="test-key",
        redis_url=None,
        environment="test",
        cors_origins=("*",),
    )


@pytest.fixture
def provider():
    return FakeCompletionProvider()


@pytest.fixture
def store():
    return InMemoryPairStore()


@pytest.fixture
def event_logger():
    return RecordingLogger()


@pytest.fixture
def limiter():
    return RateLimiter(max_requests=30, window_seconds=60)


@pytest.fixture
def client(settings, provider, store, event_logger, limiter):
    """Test client with every outbound dependency faked."""
    app = create_app(
        settings,
        completion_provider=provider,
        pair_store=store,
        rate_limiter=limiter,
        event_logger=event_logger,
    )
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def unavailable_store():
    return InMemoryPairStore(error=StoreUnavailableError("Database connection error: refused"))
