"""Redis implementation of PromptResponseStore.

Each pair is stored as a JSON document under ``<prefix>:<id>`` and indexed
in a sorted set ``<prefix>:index`` scored by creation time, which backs the
"recent pairs" listing.
"""

import json
import secrets

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from ai_flow.entities import PromptResponseEntity
from ai_flow.errors import (
    DuplicateEntryError,
    StoreError,
    StoreUnavailableError,
    StoreValidationError,
)
from ai_flow.repositories.connection import StoreConnection
from ai_flow.validation import MAX_PROMPT_LENGTH

# Writes the document and its index entry in one step; the index entry is
# only added when the document key did not exist yet.
_SAVE_SCRIPT = """
if redis.call("SET", KEYS[1], ARGV[1], "NX") then
    redis.call("ZADD", KEYS[2], ARGV[2], ARGV[3])
    return 1
end
return 0
"""


def new_document_id() -> str:
    """Return a random 24 hex digit document id."""
    return secrets.token_hex(12)


class RedisPromptResponseRepository:
    """Redis implementation of the PromptResponseStore protocol.

    This class satisfies the PromptResponseStore protocol through structural
    typing - no explicit inheritance needed.

    Writes run as one server-side script: ``SET ... NX`` for the document,
    then ``ZADD`` for the index only when the document was created. An id
    collision surfaces as DuplicateEntryError instead of silently
    overwriting a document, and a failed save leaves nothing behind.
    """

    def __init__(
        self,
        connection: StoreConnection,
        key_prefix: str = "prompt_response",
        id_factory=new_document_id,
    ) -> None:
        """Initialize the repository.

        Args:
            connection: Store connection that owns the Redis client.
            key_prefix: Prefix for document keys and the index key.
            id_factory: Callable returning a new document id.
        """
        self._connection = connection
        self._prefix = key_prefix
        self._new_id = id_factory

    @property
    def index_key(self) -> str:
        return f"{self._prefix}:index"

    def _key(self, doc_id: str) -> str:
        return f"{self._prefix}:{doc_id}"

    @staticmethod
    def _check_constraints(pair: PromptResponseEntity) -> None:
        """Pre-storage constraint check."""
        if not pair.prompt or not pair.prompt.strip():
            raise StoreValidationError("Prompt cannot be empty or contain only whitespace")
        if len(pair.prompt) > MAX_PROMPT_LENGTH:
            raise StoreValidationError("Prompt cannot exceed 10,000 characters")
        if not pair.response or not pair.response.strip():
            raise StoreValidationError("Response cannot be empty or contain only whitespace")

    async def save(self, pair: PromptResponseEntity) -> str:
        """Store a prompt-response pair.

        Args:
            pair: The validated pair

        Returns:
            The new document id

        Raises:
            StoreValidationError: Pair violates the stored schema
            DuplicateEntryError: Document id already exists
            StoreUnavailableError: Store not connected or unreachable
            StoreError: Any other store failure
        """
        self._check_constraints(pair)
        client = self._connection.client

        doc_id = self._new_id()
        key = self._key(doc_id)
        document = json.dumps(pair.to_document())

        try:
            created = await client.eval(
                _SAVE_SCRIPT, 2, key, self.index_key, document, pair.created_at.timestamp(), doc_id
            )
        except (RedisConnectionError, RedisTimeoutError) as e:
            raise StoreUnavailableError(f"Database connection error: {e}") from e
        except RedisError as e:
            raise StoreError(str(e)) from e

        if not created:
            raise DuplicateEntryError(f"Document {doc_id} already exists")
        return doc_id

    async def find_recent(self, limit: int = 10) -> list[PromptResponseEntity]:
        """Return the most recent pairs, newest first.

        Index entries whose document is gone are skipped.
        """
        client = self._connection.client
        try:
            ids = await client.zrevrange(self.index_key, 0, limit - 1)
            if not ids:
                return []
            documents = await client.mget([self._key(doc_id) for doc_id in ids])
        except (RedisConnectionError, RedisTimeoutError) as e:
            raise StoreUnavailableError(f"Database connection error: {e}") from e
        except RedisError as e:
            raise StoreError(str(e)) from e

        pairs = []
        for doc_id, raw in zip(ids, documents):
            if raw is None:
                continue
            pairs.append(PromptResponseEntity.from_document(doc_id, json.loads(raw)))
        return pairs

    async def health_check(self) -> bool:
        """Check if Redis is reachable.

        Returns:
            True if healthy, False otherwise
        """
        if not self._connection.is_connected:
            return False
        try:
            return bool(await self._connection.client.ping())
        except (RedisError, OSError):
            return False
