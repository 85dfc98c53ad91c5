"""LLM client interface and implementations."""

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from catalog_rag.config import LLMSettings, get_settings
from catalog_rag.exceptions import (
    EmptyReplyError,
    ErrorCode,
    LLMError,
    UpstreamError,
    ValidationError,
)
from catalog_rag.llm.models import GenerationResult, Message, Role
from catalog_rag.llm.prompts import SupportPromptTemplate
from catalog_rag.logging_config import get_logger
from catalog_rag.observability.metrics import track_llm_fallback, track_llm_request

logger = get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, LLMError) and exc.retryable


def _error_payload(response: httpx.Response) -> Any:
    """Best-effort body of an error response for diagnostics."""
    try:
        return response.json()
    except ValueError:
        return response.text[:2000]


def _extract_reply(data: Any) -> str | None:
    """Pull reply text from ``choices[0].message`` or ``choices[0].delta``."""
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    choice = choices[0]
    for key in ("message", "delta"):
        part = choice.get(key)
        if isinstance(part, dict):
            content = part.get("content")
            if isinstance(content, str) and content.strip():
                return content
    return None


class LLMClient(ABC):
    """Abstract base class for LLM clients.

    Defines the interface for generating text with LLMs.
    """

    @abstractmethod
    async def generate(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> GenerationResult:
        """Generate text from messages.

        Args:
            messages: Conversation messages.
            temperature: Sampling temperature override.
            max_tokens: Maximum tokens override.

        Returns:
            GenerationResult with generated text.

        Raises:
            UpstreamError: If every candidate model failed.
            EmptyReplyError: If every candidate answered without content.
        """
        ...

    @abstractmethod
    async def list_models(self, contains: str | None = None) -> list[str]:
        """List model ids offered by the provider.

        Args:
            contains: Case-insensitive substring filter.

        Returns:
            Model identifiers.
        """
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Get the preferred model name."""
        ...

    async def generate_text(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> GenerationResult:
        """Generate text from a simple prompt.

        Args:
            prompt: User prompt.
            system_prompt: Optional system prompt.
            temperature: Sampling temperature override.
            max_tokens: Maximum tokens override.

        Returns:
            GenerationResult with generated text.
        """
        messages: list[Message] = []

        if system_prompt:
            messages.append(Message(role=Role.SYSTEM, content=system_prompt))

        messages.append(Message(role=Role.USER, content=prompt))

        return await self.generate(
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )

    async def ask(
        self,
        message: str,
        prompt_template: SupportPromptTemplate,
    ) -> GenerationResult:
        """Answer a customer message with the support system prompt.

        Single shot, no catalog context; the usual model fallback applies.

        Raises:
            ValidationError: If the message is blank.
        """
        if not message.strip():
            raise ValidationError("Message is required", details={"field": "message"})

        return await self.generate_text(
            prompt=prompt_template.format(message=message),
            system_prompt=prompt_template.system_prompt,
        )


class OpenAICompatibleClient(LLMClient):
    """LLM client for OpenAI-compatible chat completion APIs.

    Candidate models are tried in order. Within one model, rate limits
    (429) and server errors (5xx) are retried with exponential backoff
    (``base_delay * 2 ** (attempt - 1)``) up to ``max_attempts``; any other
    failure moves straight on to the next model. The first usable reply
    wins.
    """

    def __init__(
        self,
        settings: LLMSettings | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """Initialize the OpenAI-compatible client.

        Args:
            settings: LLM configuration.
            client: HTTP client (for testing).
            sleep: Coroutine used for backoff waits (for testing).
        """
        self._settings = settings or get_settings().llm
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._settings.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def model_name(self) -> str:
        """Get the first candidate model."""
        return self._settings.models[0] if self._settings.models else ""

    @property
    def candidate_models(self) -> list[str]:
        """Models tried, in order."""
        return list(self._settings.models)

    def _headers(self) -> dict[str, str]:
        headers = {
            "HTTP-Referer": self._settings.referer,
            "X-Title": self._settings.app_name,
        }
        api_key = self._settings.api_key.get_secret_value()
        if api_key and api_key != "not-required":
            headers["Authorization"] = f"Bearer {api_key}"
        return headers

    def _log_backoff(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            f"Retrying after {delay:.2f}s",
            extra={
                "attempt": retry_state.attempt_number,
                "status_code": getattr(exc, "status_code", None),
            },
        )

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            sleep=self._sleep,
            retry=retry_if_exception(_is_retryable),
            stop=stop_after_attempt(self._settings.max_attempts),
            wait=wait_exponential(multiplier=self._settings.base_delay),
            before_sleep=self._log_backoff,
            reraise=True,
        )

    async def generate(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> GenerationResult:
        """Generate a reply, falling back across candidate models."""
        payload_messages = [
            {"role": msg.role.value, "content": msg.content} for msg in messages
        ]
        attempts = 0
        last_error: LLMError | None = None
        only_empty_replies = True

        for model in self._settings.models:
            model_attempts = 0

            async def attempt(current: str = model) -> GenerationResult:
                nonlocal model_attempts
                model_attempts += 1
                return await self._complete(
                    current, payload_messages, temperature, max_tokens
                )

            try:
                result = await self._retrying()(attempt)
            except LLMError as e:
                attempts += model_attempts
                last_error = e
                only_empty_replies = only_empty_replies and isinstance(e, EmptyReplyError)
                track_llm_fallback(model)
                logger.warning(
                    f"Model {model} failed, trying next candidate",
                    extra={
                        "model": model,
                        "attempts": model_attempts,
                        "error_code": e.code.value,
                        "status_code": e.status_code,
                    },
                )
                continue

            attempts += model_attempts
            return result.model_copy(update={"attempts": attempts})

        details: dict[str, Any] = {
            "status_code": last_error.status_code if last_error else None,
            "payload": last_error.details.get("payload") if last_error else None,
            "model": last_error.details.get("model") if last_error else None,
            "attempts": attempts,
            "models": list(self._settings.models),
        }
        if last_error is not None and only_empty_replies:
            raise EmptyReplyError(details=details) from last_error

        message = last_error.message if last_error else "No candidate models configured"
        logger.error(f"All candidate models failed: {message}", extra={"attempts": attempts})
        raise UpstreamError(
            f"All candidate models failed: {message}",
            details=details,
        ) from last_error

    async def _complete(
        self,
        model: str,
        messages: list[dict[str, str]],
        temperature: float | None,
        max_tokens: int | None,
    ) -> GenerationResult:
        """Make one chat completion request against one model."""
        client = await self._get_client()
        url = f"{self._settings.base_url}/chat/completions"

        payload = {
            "model": model,
            "messages": messages,
            "temperature": self._settings.temperature if temperature is None else temperature,
            "max_tokens": max_tokens or self._settings.max_tokens,
        }

        logger.info("Requesting completion", extra={"model": model})
        start_time = time.perf_counter()

        try:
            response = await client.post(url, json=payload, headers=self._headers())
            response.raise_for_status()

        except httpx.TimeoutException as e:
            track_llm_request(model, time.perf_counter() - start_time, 0, 0, success=False)
            logger.error(f"LLM request timed out: {e}", extra={"model": model})
            raise LLMError(
                "LLM request timed out",
                code=ErrorCode.LLM_TIMEOUT,
                details={"model": model, "timeout": self._settings.timeout},
            ) from e

        except httpx.HTTPStatusError as e:
            track_llm_request(model, time.perf_counter() - start_time, 0, 0, success=False)
            status = e.response.status_code
            error_payload = _error_payload(e.response)
            logger.error(
                f"LLM request failed: {status}",
                extra={"model": model, "status_code": status},
            )

            if status == 429:
                code = ErrorCode.LLM_RATE_LIMIT
            elif 500 <= status <= 599:
                code = ErrorCode.LLM_SERVER_ERROR
            else:
                code = ErrorCode.LLM_SERVICE_ERROR

            raise LLMError(
                f"LLM service returned {status}",
                code=code,
                details={"model": model, "status_code": status, "payload": error_payload},
            ) from e

        except httpx.RequestError as e:
            track_llm_request(model, time.perf_counter() - start_time, 0, 0, success=False)
            logger.error(f"LLM connection error: {e}", extra={"model": model})
            raise LLMError(
                f"Failed to connect to LLM service: {e}",
                code=ErrorCode.LLM_SERVICE_ERROR,
                details={"model": model, "url": url},
            ) from e

        duration = time.perf_counter() - start_time

        try:
            data = response.json()
        except ValueError as e:
            track_llm_request(model, duration, 0, 0, success=False)
            raise LLMError(
                f"Invalid response from LLM: {e}",
                code=ErrorCode.LLM_SERVICE_ERROR,
                details={"model": model, "error": str(e)},
            ) from e

        content = _extract_reply(data)
        if content is None:
            track_llm_request(model, duration, 0, 0, success=False)
            logger.error("LLM reply has no content", extra={"model": model})
            raise EmptyReplyError(details={"model": model, "payload": data})

        usage = data.get("usage") or {}
        result = GenerationResult(
            content=content,
            model=data.get("model") or model,
            prompt_tokens=usage.get("prompt_tokens") or 0,
            completion_tokens=usage.get("completion_tokens") or 0,
            total_tokens=usage.get("total_tokens") or 0,
        )
        track_llm_request(
            model,
            duration,
            result.prompt_tokens,
            result.completion_tokens,
            success=True,
        )
        return result

    async def list_models(self, contains: str | None = None) -> list[str]:
        """List provider model ids, optionally filtered by substring."""
        client = await self._get_client()
        url = f"{self._settings.base_url}/models"

        try:
            response = await client.get(url, headers=self._headers())
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"Model listing failed: {status}")
            raise LLMError(
                f"LLM service returned {status}",
                code=ErrorCode.LLM_SERVICE_ERROR,
                details={"status_code": status, "payload": _error_payload(e.response)},
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Model listing error: {e}")
            raise LLMError(
                f"Failed to connect to LLM service: {e}",
                code=ErrorCode.LLM_SERVICE_ERROR,
                details={"url": url},
            ) from e

        try:
            model_ids = [str(item["id"]) for item in response.json()["data"]]
        except (KeyError, TypeError, ValueError) as e:
            raise LLMError(
                f"Invalid model listing from LLM service: {e}",
                code=ErrorCode.LLM_SERVICE_ERROR,
                details={"error": str(e)},
            ) from e

        if contains:
            needle = contains.lower()
            model_ids = [model_id for model_id in model_ids if needle in model_id.lower()]
        return model_ids
