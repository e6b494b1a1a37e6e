"""Registry that keeps track of available agents."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from ..config import AgentSpec, WorkforceConfig, instantiate_from_path
from ..errors import ConfigurationError
from ..llm.resilient import ResilientCompletion
from ..tasks.base import AgentKind
from .base import Agent
from .builtin import builtin_agent_path

AgentFactory = Callable[[], Agent]


class AgentRegistry:
    """Stores agent factories and lazily instantiates them when requested."""

    def __init__(self) -> None:
        self._factories: Dict[AgentKind, AgentFactory] = {}
        self._instances: Dict[AgentKind, Agent] = {}
        self._enabled: Dict[AgentKind, bool] = {}

    def register_instance(self, agent: Agent, *, enabled: bool = True, overwrite: bool = False) -> None:
        if agent.kind in self._instances and not overwrite:
            raise ValueError(f"Agent {agent.kind.value} already registered")
        self._instances[agent.kind] = agent
        self._enabled[agent.kind] = enabled

    def register_factory(
        self, kind: AgentKind, factory: AgentFactory, *, enabled: bool = True, overwrite: bool = False
    ) -> None:
        if kind in self._factories and not overwrite:
            raise ValueError(f"Agent factory {kind.value} already registered")
        self._factories[kind] = factory
        self._enabled[kind] = enabled

    def register_from_spec(self, spec: AgentSpec, completion: ResilientCompletion) -> None:
        kind = AgentKind(spec.kind)
        path = spec.type or builtin_agent_path(kind)

        def factory() -> Agent:
            instance = instantiate_from_path(
                path, completion, provider=spec.provider, max_tokens=spec.max_tokens
            )
            if not isinstance(instance, Agent):  # pragma: no cover - guard
                raise TypeError(f"Agent '{kind.value}' must inherit Agent")
            return instance

        self.register_factory(kind, factory, enabled=spec.enabled, overwrite=True)

    @classmethod
    def from_config(cls, config: WorkforceConfig, completion: ResilientCompletion) -> "AgentRegistry":
        known = {kind.value for kind in AgentKind}
        unknown = sorted(set(config.agents) - known)
        if unknown:
            raise ConfigurationError(f"Unknown agents in config: {', '.join(unknown)}")
        registry = cls()
        for kind in AgentKind:
            registry.register_from_spec(config.agent(kind.value), completion)
        return registry

    def get(self, kind: AgentKind) -> Agent:
        if kind in self._instances:
            return self._instances[kind]
        if kind not in self._factories:
            raise KeyError(f"Agent {kind.value} not registered")
        instance = self._factories[kind]()
        self._instances[kind] = instance
        return instance

    def is_enabled(self, kind: AgentKind) -> bool:
        return kind in self and self._enabled.get(kind, True)

    def set_enabled(self, kind: AgentKind, enabled: bool) -> None:
        if kind not in self:
            raise KeyError(f"Agent {kind.value} not registered")
        self._enabled[kind] = enabled

    def __contains__(self, kind: object) -> bool:
        return kind in self._instances or kind in self._factories

    def list_agents(self, kinds: Optional[List[AgentKind]] = None) -> List[Dict[str, object]]:
        selected = kinds or [kind for kind in AgentKind if kind in self]
        return [self.get(kind).describe(enabled=self.is_enabled(kind)) for kind in selected]
