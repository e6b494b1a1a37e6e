"""Static request/response mapping for each supported upstream provider.

Adding a provider means adding a :class:`ProviderSpec` entry to
:data:`PROVIDERS`; the client never branches on provider names.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping

BodyBuilder = Callable[[str, str, int, float], Dict[str, Any]]
ResponseParser = Callable[[Mapping[str, Any], str], "ProviderResponse"]


@dataclass(frozen=True)
class ProviderResponse:
    """Normalized completion returned by every provider."""

    text: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class ProviderSpec:
    """Everything needed to talk to one provider."""

    name: str
    url: str
    credential_field: str
    env_var: str
    default_model: str
    build_body: BodyBuilder
    parse_response: ResponseParser
    credential_placement: str = "bearer"
    headers: Mapping[str, str] = field(default_factory=dict)

    def endpoint(self, model: str) -> str:
        return self.url.format(model=model)

    def auth_headers(self, api_key: str) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", **self.headers}
        if self.credential_placement == "bearer":
            headers["Authorization"] = f"Bearer {api_key}"
        elif self.credential_placement == "x-api-key":
            headers["x-api-key"] = api_key
        return headers

    def auth_params(self, api_key: str) -> Dict[str, str]:
        if self.credential_placement == "query":
            return {"key": api_key}
        return {}


def _usage(input_tokens: Any, output_tokens: Any) -> Dict[str, int]:
    prompt = int(input_tokens or 0)
    completion = int(output_tokens or 0)
    return {
        "input_tokens": prompt,
        "output_tokens": completion,
        "total_tokens": prompt + completion,
    }


def _chat_body(prompt: str, model: str, max_tokens: int, temperature: float) -> Dict[str, Any]:
    return {
        "model": model,
        "messages": [{"role": "user", "content": prompt}],
        "max_tokens": max_tokens,
        "temperature": temperature,
    }


def _chat_response(data: Mapping[str, Any], model: str) -> ProviderResponse:
    choices = data.get("choices") or []
    text = ""
    if choices:
        text = (choices[0].get("message") or {}).get("content") or ""
    usage = data.get("usage") or {}
    return ProviderResponse(
        text=text,
        model=data.get("model") or model,
        usage=_usage(usage.get("prompt_tokens"), usage.get("completion_tokens")),
    )


def _anthropic_body(prompt: str, model: str, max_tokens: int, temperature: float) -> Dict[str, Any]:
    return {
        "model": model,
        "max_tokens": max_tokens,
        "temperature": temperature,
        "messages": [{"role": "user", "content": prompt}],
    }


def _anthropic_response(data: Mapping[str, Any], model: str) -> ProviderResponse:
    blocks = data.get("content") or []
    text = blocks[0].get("text", "") if blocks else ""
    usage = data.get("usage") or {}
    return ProviderResponse(
        text=text or "",
        model=data.get("model") or model,
        usage=_usage(usage.get("input_tokens"), usage.get("output_tokens")),
    )


def _google_body(prompt: str, model: str, max_tokens: int, temperature: float) -> Dict[str, Any]:
    # model travels in the URL
    return {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": {"temperature": temperature, "maxOutputTokens": max_tokens},
    }


def _google_response(data: Mapping[str, Any], model: str) -> ProviderResponse:
    text = ""
    candidates = data.get("candidates") or []
    if candidates:
        parts = (candidates[0].get("content") or {}).get("parts") or []
        if parts:
            text = parts[0].get("text") or ""
    usage = data.get("usageMetadata") or {}
    return ProviderResponse(
        text=text,
        model=model,
        usage=_usage(usage.get("promptTokenCount"), usage.get("candidatesTokenCount")),
    )


PROVIDERS: Dict[str, ProviderSpec] = {
    "anthropic": ProviderSpec(
        name="anthropic",
        url="https://api.anthropic.com/v1/messages",
        credential_field="anthropic",
        env_var="ANTHROPIC_API_KEY",
        default_model="claude-3-5-sonnet-20241022",
        build_body=_anthropic_body,
        parse_response=_anthropic_response,
        credential_placement="x-api-key",
        headers={"anthropic-version": "2023-06-01"},
    ),
    "openai": ProviderSpec(
        name="openai",
        url="https://api.openai.com/v1/chat/completions",
        credential_field="openai",
        env_var="OPENAI_API_KEY",
        default_model="gpt-4-turbo-preview",
        build_body=_chat_body,
        parse_response=_chat_response,
    ),
    "google": ProviderSpec(
        name="google",
        url="https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent",
        credential_field="google",
        env_var="GOOGLE_API_KEY",
        default_model="gemini-pro",
        build_body=_google_body,
        parse_response=_google_response,
        credential_placement="query",
    ),
    "groq": ProviderSpec(
        name="groq",
        url="https://api.groq.com/openai/v1/chat/completions",
        credential_field="groq",
        env_var="GROQ_API_KEY",
        default_model="llama-3.3-70b-versatile",
        build_body=_chat_body,
        parse_response=_chat_response,
    ),
    "cerebras": ProviderSpec(
        name="cerebras",
        url="https://api.cerebras.ai/v1/chat/completions",
        credential_field="cerebras",
        env_var="CEREBRAS_API_KEY",
        default_model="llama-3.3-70b",
        build_body=_chat_body,
        parse_response=_chat_response,
    ),
}
