"""Configuration helpers for the workforce runtime."""

from __future__ import annotations

import importlib
import pathlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, MutableMapping, Optional

import yaml

from .errors import ConfigurationError

PROVIDER_MODES = ("standard", "aggressive")


@dataclass
class ProviderSettings:
    """Provider selection, sampling parameters and credentials."""

    default: str = "anthropic"
    fallback: List[str] = field(default_factory=lambda: ["groq", "cerebras"])
    mode: str = "standard"
    max_tokens: int = 4096
    temperature: float = 0.7
    max_retries: int = 3
    backoff_base: float = 1.0
    credentials: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.mode not in PROVIDER_MODES:
            raise ConfigurationError(
                f"Provider mode must be one of {', '.join(PROVIDER_MODES)}, got '{self.mode}'"
            )
        if self.max_retries < 1:
            raise ConfigurationError("providers.max_retries must be at least 1")
        if self.backoff_base < 0:
            raise ConfigurationError("providers.backoff_base cannot be negative")

    @property
    def aggressive(self) -> bool:
        return self.mode == "aggressive"

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "ProviderSettings":
        if not data:
            return cls()
        fallback = data.get("fallback", ["groq", "cerebras"]) or []
        if isinstance(fallback, str):
            fallback = [fallback]
        credentials = {
            str(name): str(value)
            for name, value in (data.get("credentials") or {}).items()
            if value
        }
        return cls(
            default=str(data.get("default", "anthropic")),
            fallback=[str(item) for item in fallback],
            mode=str(data.get("mode", "standard")),
            max_tokens=int(data.get("max_tokens", 4096)),
            temperature=float(data.get("temperature", 0.7)),
            max_retries=int(data.get("max_retries", 3)),
            backoff_base=float(data.get("backoff_base", 1.0)),
            credentials=credentials,
        )


@dataclass
class ExecutionLimits:
    """Time budgets, in seconds, for a run, an agent and a provider attempt."""

    task_timeout: float = 60.0
    agent_timeout: float = 30.0
    attempt_timeout: float = 30.0

    def __post_init__(self) -> None:
        if min(self.task_timeout, self.agent_timeout, self.attempt_timeout) <= 0:
            raise ConfigurationError("Execution timeouts must be positive")
        if not self.attempt_timeout <= self.agent_timeout <= self.task_timeout:
            raise ConfigurationError(
                "Timeouts must satisfy attempt_timeout <= agent_timeout <= task_timeout "
                f"(got {self.attempt_timeout} / {self.agent_timeout} / {self.task_timeout})"
            )

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "ExecutionLimits":
        if not data:
            return cls()
        return cls(
            task_timeout=float(data.get("task_timeout", 60.0)),
            agent_timeout=float(data.get("agent_timeout", 30.0)),
            attempt_timeout=float(data.get("attempt_timeout", 30.0)),
        )


@dataclass
class AgentSpec:
    """Per-agent switches from config."""

    kind: str
    enabled: bool = True
    type: Optional[str] = None
    max_tokens: Optional[int] = None
    provider: Optional[str] = None

    @classmethod
    def from_mapping(cls, kind: str, data: Optional[Mapping[str, Any]]) -> "AgentSpec":
        if data is None:
            return cls(kind=kind)
        if isinstance(data, bool):
            return cls(kind=kind, enabled=data)
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Agent '{kind}' must be a mapping or a boolean")
        max_tokens = data.get("max_tokens")
        return cls(
            kind=kind,
            enabled=bool(data.get("enabled", True)),
            type=data.get("type"),
            max_tokens=int(max_tokens) if max_tokens is not None else None,
            provider=data.get("provider"),
        )


@dataclass
class HistorySpec:
    max_items: int = 100

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "HistorySpec":
        if not data:
            return cls()
        return cls(max_items=int(data.get("max_items", 100)))


@dataclass
class WorkforceConfig:
    """Representation of the YAML configuration."""

    providers: ProviderSettings = field(default_factory=ProviderSettings)
    execution: ExecutionLimits = field(default_factory=ExecutionLimits)
    agents: Dict[str, AgentSpec] = field(default_factory=dict)
    history: HistorySpec = field(default_factory=HistorySpec)
    file_path: Optional[pathlib.Path] = None

    @classmethod
    def from_file(cls, path: str | pathlib.Path) -> "WorkforceConfig":
        p = pathlib.Path(path)
        if not p.exists():
            raise ConfigurationError(f"Config not found: {p}")
        data = yaml.safe_load(p.read_text()) or {}
        if not isinstance(data, MutableMapping):
            raise ConfigurationError("Configuration root must be a mapping")
        return cls.from_mapping(data, p)

    @classmethod
    def from_yaml(cls, content: str) -> "WorkforceConfig":
        data = yaml.safe_load(content) or {}
        if not isinstance(data, MutableMapping):
            raise ConfigurationError("Configuration root must be a mapping")
        return cls.from_mapping(data)

    @classmethod
    def from_mapping(
        cls, data: Mapping[str, Any], path: Optional[pathlib.Path] = None
    ) -> "WorkforceConfig":
        agents = {
            str(kind): AgentSpec.from_mapping(str(kind), info)
            for kind, info in (data.get("agents") or {}).items()
        }
        return cls(
            providers=ProviderSettings.from_mapping(data.get("providers")),
            execution=ExecutionLimits.from_mapping(data.get("execution")),
            agents=agents,
            history=HistorySpec.from_mapping(data.get("history")),
            file_path=path,
        )

    def agent(self, kind: str) -> AgentSpec:
        return self.agents.get(kind) or AgentSpec(kind=kind)


def import_string(path: str) -> Any:
    """Return attribute from module specified by path "module:qualname"."""

    if ":" not in path:
        raise ConfigurationError(f"Import path '{path}' must use module:qualname format")
    module_path, attr = path.split(":", 1)
    module = importlib.import_module(module_path)
    try:
        return getattr(module, attr)
    except AttributeError as exc:
        raise ConfigurationError(f"Module '{module_path}' has no attribute '{attr}'") from exc


def instantiate_from_path(path: str, *args: Any, **kwargs: Any) -> Any:
    """Import and instantiate a class given its dotted path."""

    cls = import_string(path)
    return cls(*args, **kwargs)
