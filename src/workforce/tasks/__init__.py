"""Task primitives, planning, coordination and synthesis."""

from .base import AgentKind, AgentResult, AgentStatus, Artifact, RunStatus, Task, TaskOptions, TaskRun
from .coordinator import ExecutionCoordinator, RunRegistry
from .planner import Dependency, ExecutionMode, ExecutionPlan, TaskPlanner
from .synthesizer import ResultSynthesizer, SynthesizedOutcome

__all__ = [
    "AgentKind",
    "AgentResult",
    "AgentStatus",
    "Artifact",
    "RunStatus",
    "Task",
    "TaskOptions",
    "TaskRun",
    "Dependency",
    "ExecutionMode",
    "ExecutionPlan",
    "TaskPlanner",
    "ExecutionCoordinator",
    "RunRegistry",
    "ResultSynthesizer",
    "SynthesizedOutcome",
]
