"""Merges per-agent results into the outcome reported to the caller."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple

from .base import AgentKind, AgentResult, Artifact, Task

DEFAULT_SUMMARY = "Task completed"


@dataclass(frozen=True)
class SynthesizedOutcome:
    task_id: str
    task: str
    summary: str
    agent_results: Dict[AgentKind, AgentResult] = field(default_factory=dict)
    artifacts: Tuple[Artifact, ...] = ()
    timestamp: float = field(default_factory=time.time)

    @property
    def failed_agents(self) -> List[AgentKind]:
        return [kind for kind, result in self.agent_results.items() if not result.ok]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "taskId": self.task_id,
            "timestamp": int(self.timestamp * 1000),
            "task": self.task,
            "summary": self.summary,
            "agentResults": {
                kind.value: result.to_dict() for kind, result in self.agent_results.items()
            },
            "artifacts": [artifact.to_dict() for artifact in self.artifacts],
        }


class ResultSynthesizer:
    """Pure merge step; agent errors are reported as data, never raised."""

    def synthesize(
        self, per_agent_results: Mapping[AgentKind, AgentResult], original_task: Task
    ) -> SynthesizedOutcome:
        ordered = {kind: per_agent_results[kind] for kind in AgentKind.canonical(per_agent_results)}
        artifacts: List[Artifact] = []
        for result in ordered.values():
            artifacts.extend(result.artifacts)
        return SynthesizedOutcome(
            task_id=original_task.id,
            task=original_task.content or original_task.type or "",
            summary=self._summarize(ordered),
            agent_results=ordered,
            artifacts=tuple(artifacts),
        )

    def _summarize(self, results: Mapping[AgentKind, AgentResult]) -> str:
        if len(results) == 1:
            (only,) = results.values()
            return only.summary or only.output or DEFAULT_SUMMARY
        lines = [f"Task completed with {len(results)} agents:"]
        lines.extend(f"  - {kind.value}: {result.status.value}" for kind, result in results.items())
        return "\n".join(lines)
