"""OpenRouter chat-completion client.

Sends a single user message to OpenRouter's OpenAI-compatible
``/chat/completions`` endpoint and returns the reply text.

Key behaviour:
- One attempt per call, no retries
- Only models from the free allow-list may be used
- The API key is checked on first use, not at construction
- Every failure is raised as a ``CompletionError`` subclass so callers can
  classify it without parsing messages
"""

import httpx

from ai_flow.config import FREE_MODELS, Settings
from ai_flow.errors import (
    CompletionAuthError,
    CompletionConfigError,
    CompletionError,
    CompletionFormatError,
    CompletionRateLimitError,
    CompletionTimeoutError,
    CompletionUnavailableError,
    InvalidPromptError,
    ModelNotAllowedError,
)


class OpenRouterClient:
    """OpenRouter implementation of the CompletionProvider protocol.

    This class satisfies the CompletionProvider protocol through structural
    typing - no explicit inheritance needed.

    Example:
        ```python
        client = OpenRouterClient.create(settings)
        reply = await client.complete("What is 2+2?")
        await client.close()
        ```
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://openrouter.ai/api/v1",
        model: str = FREE_MODELS[0],
        site_url: str = "http://localhost:3000",
        app_title: str = "AI Flow Visualizer",
        timeout: float = 30.0,
        allowed_models: tuple[str, ...] = FREE_MODELS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the OpenRouter client.

        Args:
            api_key: OpenRouter API key. May be None; calls then fail with
                CompletionConfigError.
            base_url: API base URL.
            model: Default model, must be in ``allowed_models``.
            site_url: Sent as HTTP-Referer for OpenRouter attribution.
            app_title: Sent as X-Title for OpenRouter attribution.
            timeout: Transport timeout in seconds.
            allowed_models: Allow-list of model identifiers.
            transport: Optional httpx transport (used by tests).
        """
        if model not in allowed_models:
            raise ModelNotAllowedError(
                f"Model {model} is not available. Available models: {', '.join(allowed_models)}"
            )
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._site_url = site_url
        self._app_title = app_title
        self._timeout = timeout
        self._allowed_models = allowed_models
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def create(cls, settings: Settings) -> "OpenRouterClient":
        """Factory method to create OpenRouterClient from settings.

        Args:
            settings: Application settings

        Returns:
            Configured OpenRouterClient
        """
        return cls(
            api_key=settings.openrouter_api_key,
            base_url=settings.openrouter_base_url,
            model=settings.openrouter_model,
            site_url=settings.site_url,
            app_title=settings.app_title,
            timeout=settings.ai_http_timeout,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
                limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
            )
        return self._client

    @property
    def model_name(self) -> str:
        """Get the default model identifier."""
        return self._model

    def available_models(self) -> list[str]:
        """Get all models this client may call."""
        return list(self._allowed_models)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self._site_url,
            "X-Title": self._app_title,
        }

    async def complete(self, prompt: str, model: str | None = None) -> str:
        """Request a chat completion for a single user prompt.

        Args:
            prompt: The prompt text (already validated and sanitized)
            model: Optional model override from the allow-list

        Returns:
            The assistant message content

        Raises:
            InvalidPromptError: Prompt is empty or not a string
            ModelNotAllowedError: Model is outside the allow-list
            CompletionConfigError: API key is not configured
            CompletionAuthError: HTTP 401
            CompletionRateLimitError: HTTP 429
            CompletionUnavailableError: HTTP 5xx or connection failure
            CompletionTimeoutError: Transport timeout
            CompletionFormatError: 2xx response without message content
            CompletionError: Any other upstream failure
        """
        if not isinstance(prompt, str) or not prompt.strip():
            raise InvalidPromptError("Prompt is required and must be a non-empty string")

        selected_model = model or self._model
        if selected_model not in self._allowed_models:
            raise ModelNotAllowedError(
                f"Model {selected_model} is not available. "
                f"Available models: {', '.join(self._allowed_models)}"
            )

        if not self._api_key:
            raise CompletionConfigError("OPENROUTER_API_KEY environment variable is required")

        payload = {
            "model": selected_model,
            "messages": [{"role": "user", "content": prompt.strip()}],
        }

        try:
            response = await self.client.post(
                "/chat/completions", json=payload, headers=self._headers()
            )
        except httpx.TimeoutException as e:
            raise CompletionTimeoutError("OpenRouter API request timed out") from e
        except httpx.ConnectError as e:
            raise CompletionUnavailableError("Unable to connect to OpenRouter API") from e
        except httpx.HTTPError as e:
            raise CompletionError(f"Request failed: {e}") from e

        if not response.is_success:
            raise self._classify_status(response)

        try:
            data = response.json()
        except ValueError as e:
            raise CompletionFormatError("Failed to parse OpenRouter API response") from e

        return self._extract_content(data)

    def _classify_status(self, response: httpx.Response) -> CompletionError:
        status_code = response.status_code
        if status_code == 401:
            return CompletionAuthError("Invalid OpenRouter API key")
        if status_code == 429:
            return CompletionRateLimitError("Rate limit exceeded. Please try again later")
        if status_code >= 500:
            return CompletionUnavailableError("OpenRouter API service unavailable")

        message = f"HTTP {status_code}: {response.text}"
        try:
            error = response.json().get("error")
        except (ValueError, AttributeError):
            error = None
        if isinstance(error, dict) and error.get("message"):
            message = str(error["message"])
        return CompletionError(message)

    @staticmethod
    def _extract_content(data: object) -> str:
        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list) or not choices:
            raise CompletionFormatError("No response choices received from OpenRouter API")

        first = choices[0] if isinstance(choices[0], dict) else {}
        message = first.get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        if not content or not isinstance(content, str):
            raise CompletionFormatError("Invalid response format from OpenRouter API")
        return content

    async def close(self) -> None:
        """Close the async HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None
