"""Retry, backoff and fallback on top of :class:`ProviderClient`."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from ..cancellation import CancelToken
from ..config import ProviderSettings
from ..errors import (
    ConfigurationError,
    ProviderError,
    ProvidersExhaustedError,
    TransientProviderError,
)
from .client import ProviderClient
from .providers import ProviderResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionResult:
    """A normalized completion plus which providers were tried to get it."""

    text: str
    model: str
    provider: str
    usage: Dict[str, int] = field(default_factory=dict)
    attempted: Tuple[str, ...] = ()

    @classmethod
    def from_response(
        cls, response: ProviderResponse, provider: str, attempted: List[str]
    ) -> "CompletionResult":
        return cls(
            text=response.text,
            model=response.model,
            provider=provider,
            usage=dict(response.usage),
            attempted=tuple(attempted),
        )


class ResilientCompletion:
    """Completion entry point used by agents.

    The primary provider gets up to ``max_retries`` attempts; only timeouts and
    rate limits are retried, with a linear backoff of ``attempt * backoff_base``
    seconds. In aggressive mode each fallback provider then gets exactly one
    attempt. A provider is never tried again once it has failed in the same
    call.
    """

    def __init__(
        self,
        client: ProviderClient,
        settings: ProviderSettings | None = None,
        *,
        attempt_timeout: float = 30.0,
    ) -> None:
        self.client = client
        self.settings = settings or ProviderSettings()
        self.attempt_timeout = attempt_timeout

    async def complete(
        self,
        prompt: str,
        provider: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        token: CancelToken | None = None,
    ) -> CompletionResult:
        primary = provider or self.settings.default
        params = {
            "max_tokens": max_tokens if max_tokens is not None else self.settings.max_tokens,
            "temperature": temperature if temperature is not None else self.settings.temperature,
            "timeout": timeout if timeout is not None else self.attempt_timeout,
            "token": token,
        }
        retries = max_retries if max_retries is not None else self.settings.max_retries
        attempted: List[str] = [primary]
        last_error: BaseException | None = None

        try:
            response = await self._with_retries(primary, prompt, model, retries, **params)
            return CompletionResult.from_response(response, primary, attempted)
        except (ProviderError, ConfigurationError) as exc:
            logger.warning("[provider=%s] failed: %s", primary, exc)
            last_error = exc

        if self.settings.aggressive:
            for fallback in self.settings.fallback:
                if fallback in attempted:
                    continue
                if not self.client.has_credential(fallback):
                    logger.debug("[provider=%s] skipped fallback, no credential", fallback)
                    continue
                attempted.append(fallback)
                logger.info("[provider=%s] trying fallback provider", fallback)
                try:
                    response = await self._attempt(fallback, prompt, None, **params)
                    return CompletionResult.from_response(response, fallback, attempted)
                except (ProviderError, ConfigurationError) as exc:
                    logger.warning("[provider=%s] fallback also failed: %s", fallback, exc)
                    last_error = exc

        raise ProvidersExhaustedError(attempted, last_error)

    async def _with_retries(
        self,
        provider: str,
        prompt: str,
        model: str | None,
        retries: int,
        **params: Any,
    ) -> ProviderResponse:
        token: CancelToken | None = params["token"]
        retrying = AsyncRetrying(
            sleep=token.sleep if token is not None else asyncio.sleep,
            stop=stop_after_attempt(max(1, retries)),
            wait=wait_incrementing(
                start=self.settings.backoff_base, increment=self.settings.backoff_base
            ),
            retry=retry_if_exception_type(TransientProviderError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._attempt(provider, prompt, model, **params)
        raise AssertionError("unreachable")  # pragma: no cover

    async def _attempt(
        self,
        provider: str,
        prompt: str,
        model: str | None,
        *,
        max_tokens: int,
        temperature: float,
        timeout: float,
        token: CancelToken | None,
    ) -> ProviderResponse:
        try:
            return await asyncio.wait_for(
                self.client.invoke(
                    provider,
                    prompt,
                    model=model,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    token=token,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            raise TransientProviderError(
                f"{provider} timed out after {timeout}s", provider=provider
            ) from exc

    def available_providers(self) -> List[str]:
        return self.client.available_providers()

    async def test_connection(self, provider: str) -> Dict[str, Any]:
        try:
            response = await self._attempt(
                provider,
                "Hello",
                None,
                max_tokens=10,
                temperature=self.settings.temperature,
                timeout=self.attempt_timeout,
                token=None,
            )
        except (ProviderError, ConfigurationError) as exc:
            return {"success": False, "provider": provider, "error": str(exc)}
        return {"success": True, "provider": provider, "model": response.model}
