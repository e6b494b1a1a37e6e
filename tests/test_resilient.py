import asyncio

import pytest

from workforce.cancellation import CancelToken
from workforce.config import ProviderSettings
from workforce.errors import (
    ConfigurationError,
    PermanentProviderError,
    ProvidersExhaustedError,
    RunCancelledError,
    TransientProviderError,
)
from workforce.llm.providers import ProviderResponse
from workforce.llm.resilient import ResilientCompletion


class ScriptedClient:
    """Stands in for ProviderClient; replays a script of outcomes per provider."""

    def __init__(self, scripts, credentials=("anthropic", "groq", "cerebras"), delay=0.0):
        self.scripts = {name: list(outcomes) for name, outcomes in scripts.items()}
        self.credentials = set(credentials)
        self.delay = delay
        self.calls = []

    def has_credential(self, provider):
        return provider in self.credentials

    def available_providers(self):
        return sorted(self.credentials)

    async def invoke(self, provider, prompt, *, model=None, max_tokens, temperature, token=None):
        self.calls.append((provider, model))
        if self.delay:
            await asyncio.sleep(self.delay)
        if provider not in self.credentials:
            raise ConfigurationError(f"No API key configured for {provider}")
        outcome = self.scripts[provider].pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return ProviderResponse(text=outcome, model=model or f"{provider}-default")


def transient(provider="anthropic"):
    return TransientProviderError("API error 429: slow down", provider=provider, status_code=429)


def permanent(provider="anthropic"):
    return PermanentProviderError("API error 400: bad", provider=provider, status_code=400)


def settings(**overrides):
    overrides.setdefault("backoff_base", 0.0)
    return ProviderSettings(**overrides)


def complete(client, config, **kwargs):
    return asyncio.run(ResilientCompletion(client, config).complete("prompt", **kwargs))


def test_primary_success():
    client = ScriptedClient({"anthropic": ["hello"]})

    result = complete(client, settings(), model="claude-x")

    assert result.text == "hello"
    assert result.provider == "anthropic"
    assert result.model == "claude-x"
    assert result.attempted == ("anthropic",)


def test_transient_errors_retried_on_primary():
    client = ScriptedClient({"anthropic": [transient(), transient(), "third time"]})

    result = complete(client, settings(max_retries=3))

    assert result.text == "third time"
    assert [provider for provider, _ in client.calls] == ["anthropic"] * 3
    assert result.attempted == ("anthropic",)


def test_retries_bounded_then_exhausted_in_standard_mode():
    client = ScriptedClient({"anthropic": [transient(), transient()], "groq": ["unused"]})

    with pytest.raises(ProvidersExhaustedError) as excinfo:
        complete(client, settings(max_retries=2))

    assert excinfo.value.attempted == ("anthropic",)
    assert len(client.calls) == 2
    assert "All providers failed (1 attempted)" in str(excinfo.value)


def test_permanent_error_is_not_retried():
    client = ScriptedClient({"anthropic": [permanent(), "never"]})

    with pytest.raises(ProvidersExhaustedError):
        complete(client, settings(max_retries=3))

    assert len(client.calls) == 1


def test_aggressive_fallback_uses_provider_default_model():
    client = ScriptedClient({"anthropic": [permanent()], "groq": ["from groq"]})

    result = complete(client, settings(mode="aggressive"), model="claude-x")

    assert result.provider == "groq"
    assert result.model == "groq-default"
    assert result.attempted == ("anthropic", "groq")
    assert client.calls == [("anthropic", "claude-x"), ("groq", None)]


def test_fallbacks_get_one_attempt_and_skip_missing_credentials():
    client = ScriptedClient(
        {"anthropic": [permanent()], "groq": [transient("groq"), "never"]},
        credentials=("anthropic", "groq"),
    )

    with pytest.raises(ProvidersExhaustedError) as excinfo:
        complete(client, settings(mode="aggressive"))

    assert excinfo.value.attempted == ("anthropic", "groq")
    assert isinstance(excinfo.value.last_error, TransientProviderError)
    assert [provider for provider, _ in client.calls] == ["anthropic", "groq"]


def test_provider_never_attempted_twice():
    client = ScriptedClient({"anthropic": [permanent(), "again?"], "groq": [permanent("groq")]})

    with pytest.raises(ProvidersExhaustedError) as excinfo:
        complete(client, settings(mode="aggressive", fallback=["anthropic", "groq"]))

    assert excinfo.value.attempted == ("anthropic", "groq")
    assert len(client.calls) == 2


def test_missing_primary_credential_falls_over():
    client = ScriptedClient({"groq": ["rescued"]}, credentials=("groq",))

    result = complete(client, settings(mode="aggressive"))

    assert result.provider == "groq"
    assert result.attempted == ("anthropic", "groq")


def test_attempt_timeout_counts_as_transient():
    client = ScriptedClient({"anthropic": ["late", "late"]}, delay=1.0)
    completion = ResilientCompletion(client, settings(max_retries=2), attempt_timeout=0.05)

    with pytest.raises(ProvidersExhaustedError) as excinfo:
        asyncio.run(completion.complete("prompt"))

    assert isinstance(excinfo.value.last_error, TransientProviderError)
    assert len(client.calls) == 2


def test_cancellation_interrupts_backoff():
    client = ScriptedClient({"anthropic": [transient(), "never"]})
    completion = ResilientCompletion(client, settings(backoff_base=30.0))

    async def main():
        token = CancelToken()
        asyncio.get_running_loop().call_later(0.05, token.cancel)
        await asyncio.wait_for(completion.complete("prompt", token=token), timeout=5)

    with pytest.raises(RunCancelledError):
        asyncio.run(main())
    assert len(client.calls) == 1


def test_test_connection_reports_instead_of_raising():
    client = ScriptedClient({"anthropic": ["pong"], "groq": [permanent("groq")]})
    completion = ResilientCompletion(client, settings())

    ok = asyncio.run(completion.test_connection("anthropic"))
    failed = asyncio.run(completion.test_connection("groq"))

    assert ok == {"success": True, "provider": "anthropic", "model": "anthropic-default"}
    assert failed["success"] is False
    assert "API error 400" in failed["error"]


class RecordingToken(CancelToken):
    """Token whose backoff sleeps return at once and are recorded."""

    def __init__(self):
        super().__init__()
        self.delays = []

    async def sleep(self, seconds):
        self.delays.append(seconds)


def test_backoff_grows_linearly_with_attempt_number():
    client = ScriptedClient({"anthropic": [transient(), transient(), "third time"]})
    completion = ResilientCompletion(client, settings(max_retries=3, backoff_base=0.5))

    async def main():
        token = RecordingToken()
        result = await completion.complete("prompt", token=token)
        return result, token.delays

    result, delays = asyncio.run(main())

    assert result.text == "third time"
    assert delays == [0.5, 1.0]


def test_no_backoff_after_last_attempt():
    client = ScriptedClient({"anthropic": [transient(), transient(), transient()]})
    completion = ResilientCompletion(client, settings(max_retries=3, backoff_base=2.0))

    async def main():
        token = RecordingToken()
        with pytest.raises(ProvidersExhaustedError):
            await completion.complete("prompt", token=token)
        return token.delays

    assert asyncio.run(main()) == [2.0, 4.0]
