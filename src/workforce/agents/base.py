"""Base class for the task-handling agents."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..cancellation import CancelToken
from ..errors import RunCancelledError, WorkforceError
from ..llm.resilient import CompletionResult, ResilientCompletion
from ..tasks.base import AgentKind, AgentResult, Task

logger = logging.getLogger(__name__)


class Agent:
    """An opaque capability turning a task into one :class:`AgentResult`.

    Subclasses implement :meth:`perform`. Provider and configuration failures
    raised from it are folded into an error result; cancellation is not.
    """

    kind: AgentKind
    name: str = "Agent"
    description: str = ""
    max_tokens: Optional[int] = None

    def __init__(
        self,
        completion: ResilientCompletion,
        *,
        provider: Optional[str] = None,
        max_tokens: Optional[int] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> None:
        self.completion = completion
        self.provider = provider
        if max_tokens is not None:
            self.max_tokens = max_tokens
        if name:
            self.name = name
        if description:
            self.description = description

    async def execute(self, task: Task, token: Optional[CancelToken] = None) -> AgentResult:
        try:
            return await self.perform(task, token)
        except RunCancelledError:
            raise
        except WorkforceError as exc:
            logger.warning("[task=%s] %s failed: %s", task.id, self.kind.value, exc)
            return AgentResult.failure(str(exc))

    async def perform(self, task: Task, token: Optional[CancelToken]) -> AgentResult:  # pragma: no cover - abstract
        raise NotImplementedError

    async def ask(self, prompt: str, token: Optional[CancelToken], **overrides: Any) -> CompletionResult:
        params: Dict[str, Any] = {"provider": self.provider, "max_tokens": self.max_tokens}
        params.update(overrides)
        return await self.completion.complete(prompt, token=token, **params)

    def describe(self, enabled: bool = True) -> Dict[str, Any]:
        return {
            "id": self.kind.value,
            "name": self.name,
            "description": self.description,
            "enabled": enabled,
        }
