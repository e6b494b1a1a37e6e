"""Single-shot HTTP client for the upstream completion providers."""

from __future__ import annotations

import json
import logging
import os
from typing import Dict, Mapping

import httpx

from ..cancellation import CancelToken
from ..errors import ConfigurationError, PermanentProviderError, TransientProviderError
from .providers import PROVIDERS, ProviderResponse, ProviderSpec

logger = logging.getLogger(__name__)

RATE_LIMIT_MARKERS = ("too many requests", "rate limit", "rate_limit")


def is_rate_limited(status_code: int, body: str) -> bool:
    if status_code == 429:
        return True
    lowered = body.lower()
    return any(marker in lowered for marker in RATE_LIMIT_MARKERS)


class ProviderClient:
    """Sends one completion request to one named provider.

    Looks up the static :class:`ProviderSpec`, places the credential where the
    provider expects it, issues exactly one POST and normalizes the response.
    Retries and the per-attempt budget are the caller's business; an owned
    HTTP client only gets a transport timeout when one is passed in.
    """

    def __init__(
        self,
        credentials: Mapping[str, str] | None = None,
        *,
        providers: Mapping[str, ProviderSpec] | None = None,
        http_client: httpx.AsyncClient | None = None,
        environ: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> None:
        self.credentials: Dict[str, str] = dict(credentials or {})
        self.providers: Dict[str, ProviderSpec] = dict(providers or PROVIDERS)
        self._environ = os.environ if environ is None else environ
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    def spec(self, provider: str) -> ProviderSpec:
        try:
            return self.providers[provider]
        except KeyError as exc:
            raise ConfigurationError(f"Unknown provider: {provider}") from exc

    def credential(self, provider: str) -> str | None:
        spec = self.providers.get(provider)
        if spec is None:
            return None
        return self.credentials.get(spec.credential_field) or self._environ.get(spec.env_var) or None

    def has_credential(self, provider: str) -> bool:
        return self.credential(provider) is not None

    def available_providers(self) -> list[str]:
        return [name for name in self.providers if self.has_credential(name)]

    async def invoke(
        self,
        provider: str,
        prompt: str,
        *,
        model: str | None = None,
        max_tokens: int,
        temperature: float,
        token: CancelToken | None = None,
    ) -> ProviderResponse:
        spec = self.spec(provider)
        api_key = self.credential(provider)
        if not api_key:
            raise ConfigurationError(f"No API key configured for {provider}")
        model = model or spec.default_model
        if token is not None:
            token.raise_if_cancelled()
        request = self._http.post(
            spec.endpoint(model),
            headers=spec.auth_headers(api_key),
            params=spec.auth_params(api_key),
            json=spec.build_body(prompt, model, max_tokens, temperature),
        )
        logger.debug("[provider=%s] POST model=%s max_tokens=%s", provider, model, max_tokens)
        try:
            if token is not None:
                response = await token.guard(request)
            else:
                response = await request
        except httpx.TimeoutException as exc:
            raise TransientProviderError(
                f"{provider} timed out ({exc.__class__.__name__}): {exc}", provider=provider
            ) from exc
        except httpx.HTTPError as exc:
            raise PermanentProviderError(
                f"{provider} failed to respond: {exc}", provider=provider
            ) from exc

        if not response.is_success:
            body = response.text
            error_cls = (
                TransientProviderError
                if is_rate_limited(response.status_code, body)
                else PermanentProviderError
            )
            raise error_cls(
                f"API error {response.status_code}: {body}",
                provider=provider,
                status_code=response.status_code,
                body=body,
            )
        try:
            data = response.json()
            if not isinstance(data, Mapping):
                raise ValueError("response root is not an object")
            return spec.parse_response(data, model)
        except (json.JSONDecodeError, ValueError, AttributeError, TypeError, KeyError, IndexError) as exc:
            raise PermanentProviderError(
                f"{provider} returned unexpected payload: {exc}",
                provider=provider,
                status_code=response.status_code,
                body=response.text,
            ) from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()
