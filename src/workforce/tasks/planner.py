"""Decides which agents a task needs and how they must be scheduled."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Pattern, Tuple

from .base import AgentKind, Task


class ExecutionMode(str, Enum):
    PARALLEL = "parallel"
    SEQUENTIAL = "sequential"


@dataclass(frozen=True)
class Dependency:
    source: AgentKind
    target: AgentKind


@dataclass(frozen=True)
class ExecutionPlan:
    agent_kinds: Tuple[AgentKind, ...]
    mode: ExecutionMode = ExecutionMode.PARALLEL
    dependencies: Tuple[Dependency, ...] = ()

    def to_dict(self) -> Dict[str, object]:
        return {
            "agents": [kind.value for kind in self.agent_kinds],
            "mode": self.mode.value,
            "dependencies": [
                {"from": dep.source.value, "to": dep.target.value} for dep in self.dependencies
            ],
        }


CATEGORY_PATTERNS: Dict[AgentKind, Pattern[str]] = {
    AgentKind.CODE: re.compile(r"code|program|script|function|debug|implement", re.IGNORECASE),
    AgentKind.RESEARCH: re.compile(r"research|find|search|look up|investigate", re.IGNORECASE),
    AgentKind.DOCUMENT: re.compile(r"document|report|write|create|generate.*file", re.IGNORECASE),
    AgentKind.ANALYSIS: re.compile(r"analyze|summarize|extract|process", re.IGNORECASE),
}

TYPE_ALIASES: Dict[str, AgentKind] = {
    "developer": AgentKind.CODE,
    "code": AgentKind.CODE,
    "search": AgentKind.RESEARCH,
    "research": AgentKind.RESEARCH,
    "document": AgentKind.DOCUMENT,
    "multimodal": AgentKind.ANALYSIS,
    "analysis": AgentKind.ANALYSIS,
}

DEFAULT_KIND = AgentKind.ANALYSIS


class TaskPlanner:
    """Pure classification of a task into an :class:`ExecutionPlan`."""

    def plan(self, task: Task) -> ExecutionPlan:
        kinds = AgentKind.canonical(self._select(task))
        if not kinds:
            kinds = (DEFAULT_KIND,)

        dependencies: List[Dependency] = []
        mode = ExecutionMode.PARALLEL
        if AgentKind.RESEARCH in kinds and AgentKind.DOCUMENT in kinds:
            mode = ExecutionMode.SEQUENTIAL
            dependencies.append(Dependency(AgentKind.RESEARCH, AgentKind.DOCUMENT))
        elif not task.options.parallel and len(kinds) > 1:
            mode = ExecutionMode.SEQUENTIAL
        return ExecutionPlan(agent_kinds=kinds, mode=mode, dependencies=tuple(dependencies))

    def _select(self, task: Task) -> List[AgentKind]:
        if task.agents:
            return list(task.agents)
        explicit = self._kind_for_type(task.type)
        if explicit is not None:
            return [explicit]
        content = task.content or ""
        return [kind for kind, pattern in CATEGORY_PATTERNS.items() if pattern.search(content)]

    @staticmethod
    def _kind_for_type(task_type: Optional[str]) -> Optional[AgentKind]:
        if not task_type:
            return None
        return TYPE_ALIASES.get(task_type.strip().lower())
