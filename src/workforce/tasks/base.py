"""Task dataclasses used by the coordinator."""

from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from ..cancellation import CancelToken


class AgentKind(str, Enum):
    """The four agent variants, declared in canonical plan order."""

    CODE = "developer"
    RESEARCH = "search"
    DOCUMENT = "document"
    ANALYSIS = "multimodal"

    @classmethod
    def canonical(cls, kinds: Iterable["AgentKind"]) -> Tuple["AgentKind", ...]:
        wanted = set(kinds)
        return tuple(kind for kind in cls if kind in wanted)


class AgentStatus(str, Enum):
    COMPLETE = "complete"
    ERROR = "error"


class RunStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETE = "complete"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"
    FAILED = "failed"
    NOT_FOUND = "not_found"

    @property
    def terminal(self) -> bool:
        return self in (
            RunStatus.COMPLETE,
            RunStatus.CANCELLED,
            RunStatus.TIMED_OUT,
            RunStatus.FAILED,
        )


def new_task_id() -> str:
    alphabet = string.ascii_lowercase + string.digits
    suffix = "".join(secrets.choice(alphabet) for _ in range(9))
    return f"task_{int(time.time() * 1000)}_{suffix}"


@dataclass(frozen=True)
class TaskOptions:
    human_in_loop: bool = True
    parallel: bool = True


@dataclass(frozen=True)
class Task:
    """A user submission. Immutable; agents get copies with extra context."""

    id: str
    content: str
    type: Optional[str] = None
    agents: Optional[Tuple[AgentKind, ...]] = None
    options: TaskOptions = field(default_factory=TaskOptions)
    context: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        content: str,
        *,
        type: Optional[str] = None,
        agents: Optional[Iterable[AgentKind | str]] = None,
        parallel: bool = True,
        human_in_loop: bool = True,
        context: Optional[Mapping[str, Any]] = None,
        task_id: Optional[str] = None,
    ) -> "Task":
        return cls(
            id=task_id or new_task_id(),
            content=content,
            type=type,
            agents=tuple(AgentKind(kind) for kind in agents) if agents else None,
            options=TaskOptions(human_in_loop=human_in_loop, parallel=parallel),
            context=dict(context or {}),
        )

    def with_context(self, **extra: Any) -> "Task":
        merged = dict(self.context)
        merged.update(extra)
        return replace(self, context=merged)


@dataclass(frozen=True)
class Artifact:
    """Opaque payload produced by an agent and carried through synthesis."""

    type: str
    fields: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, **self.fields}


@dataclass(frozen=True)
class AgentResult:
    """Outcome of one agent invocation."""

    status: AgentStatus
    output: Optional[str] = None
    summary: Optional[str] = None
    artifacts: Tuple[Artifact, ...] = ()
    error: Optional[str] = None

    @classmethod
    def complete(
        cls,
        output: str,
        summary: Optional[str] = None,
        artifacts: Iterable[Artifact] = (),
    ) -> "AgentResult":
        return cls(
            status=AgentStatus.COMPLETE,
            output=output,
            summary=summary,
            artifacts=tuple(artifacts),
        )

    @classmethod
    def failure(cls, error: str) -> "AgentResult":
        return cls(status=AgentStatus.ERROR, error=error)

    @property
    def ok(self) -> bool:
        return self.status is AgentStatus.COMPLETE

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "status": self.status.value,
            "artifacts": [artifact.to_dict() for artifact in self.artifacts],
        }
        for key in ("output", "summary", "error"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@dataclass
class TaskRun:
    """Live state of one task execution, owned by the coordinator."""

    task_id: str
    token: CancelToken = field(default_factory=CancelToken)
    status: RunStatus = RunStatus.PENDING
    per_agent_results: Dict[AgentKind, AgentResult] = field(default_factory=dict)
    started_at: float = field(default_factory=time.time)
