"""High-level entry point wiring the provider client, agents and coordinator."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from .agents.registry import AgentRegistry
from .config import WorkforceConfig
from .events import ProgressObserver
from .history import TaskHistory
from .llm.client import ProviderClient
from .llm.resilient import ResilientCompletion
from .tasks.base import RunStatus, Task
from .tasks.coordinator import ExecutionCoordinator
from .tasks.planner import ExecutionPlan
from .tasks.synthesizer import SynthesizedOutcome

logger = logging.getLogger(__name__)


class Workforce:
    """Builds agents and providers from config and runs submitted tasks."""

    def __init__(
        self,
        config: Optional[WorkforceConfig] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        observer: Optional[ProgressObserver] = None,
    ) -> None:
        self.config = config or WorkforceConfig()
        self.client = ProviderClient(
            self.config.providers.credentials,
            http_client=http_client,
            timeout=self.config.execution.attempt_timeout,
        )
        self.completion = ResilientCompletion(
            self.client,
            self.config.providers,
            attempt_timeout=self.config.execution.attempt_timeout,
        )
        self.agents = AgentRegistry.from_config(self.config, self.completion)
        self.history = TaskHistory(max_items=self.config.history.max_items)
        self.coordinator = ExecutionCoordinator(
            self.agents,
            limits=self.config.execution,
            history=self.history,
            observer=observer,
        )

    @classmethod
    def from_file(cls, path: str, **kwargs: Any) -> "Workforce":
        return cls(WorkforceConfig.from_file(path), **kwargs)

    async def run(self, task: Task, observer: Optional[ProgressObserver] = None) -> SynthesizedOutcome:
        return await self.coordinator.run(task, observer=observer)

    def plan(self, task: Task) -> ExecutionPlan:
        return self.coordinator.planner.plan(task)

    async def status(self, task_id: str) -> RunStatus:
        return await self.coordinator.status(task_id)

    async def cancel(self, task_id: str) -> bool:
        return await self.coordinator.cancel(task_id)

    def list_agents(self) -> List[Dict[str, object]]:
        return self.coordinator.list_agents()

    def available_providers(self) -> List[str]:
        return self.completion.available_providers()

    async def test_connection(self, provider: str) -> Dict[str, Any]:
        return await self.completion.test_connection(provider)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "Workforce":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
