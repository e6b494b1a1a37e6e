"""Runs execution plans: scheduling, time budgets, cancellation and cleanup."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Dict, List, Optional

from ..config import ExecutionLimits
from ..errors import DuplicateRunError, RunCancelledError, RunTimeoutError
from ..events import ProgressEmitter, ProgressObserver, ProgressStage
from ..history import HistoryRecord, TaskHistory
from .base import AgentKind, AgentResult, RunStatus, Task, TaskRun
from .planner import ExecutionMode, ExecutionPlan, TaskPlanner
from .synthesizer import ResultSynthesizer, SynthesizedOutcome

if TYPE_CHECKING:
    from ..agents.registry import AgentRegistry

logger = logging.getLogger(__name__)


class RunRegistry:
    """Live runs keyed by task id; every access goes through one lock."""

    def __init__(self) -> None:
        self._runs: Dict[str, TaskRun] = {}
        self._lock = asyncio.Lock()

    async def register(self, run: TaskRun) -> None:
        async with self._lock:
            if run.task_id in self._runs:
                raise DuplicateRunError(f"Task {run.task_id} is already running")
            self._runs[run.task_id] = run

    async def remove(self, task_id: str) -> Optional[TaskRun]:
        async with self._lock:
            return self._runs.pop(task_id, None)

    async def status(self, task_id: str) -> RunStatus:
        async with self._lock:
            run = self._runs.get(task_id)
            return run.status if run is not None else RunStatus.NOT_FOUND

    async def cancel(self, task_id: str) -> bool:
        async with self._lock:
            run = self._runs.get(task_id)
            if run is None or run.status.terminal:
                return False
            run.token.cancel("cancelled")
            return True

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._runs

    def __len__(self) -> int:
        return len(self._runs)


class ExecutionCoordinator:
    """Dispatches the agents of a plan and synthesizes their results.

    Parallel plans run every agent concurrently, each under its own budget;
    one agent failing or timing out never affects its siblings. Sequential
    plans run agents in plan order and pass the accumulated results along as
    ``previous_results``. The global deadline and explicit cancellation abort
    the whole run and discard whatever partial results were collected.
    """

    def __init__(
        self,
        agents: AgentRegistry,
        *,
        limits: Optional[ExecutionLimits] = None,
        planner: Optional[TaskPlanner] = None,
        synthesizer: Optional[ResultSynthesizer] = None,
        runs: Optional[RunRegistry] = None,
        history: Optional[TaskHistory] = None,
        observer: Optional[ProgressObserver] = None,
    ) -> None:
        self.agents = agents
        self.limits = limits or ExecutionLimits()
        self.planner = planner or TaskPlanner()
        self.synthesizer = synthesizer or ResultSynthesizer()
        self.runs = runs if runs is not None else RunRegistry()
        self.history = history if history is not None else TaskHistory()
        self.observer = observer

    async def run(self, task: Task, observer: Optional[ProgressObserver] = None) -> SynthesizedOutcome:
        run = TaskRun(task_id=task.id)
        await self.runs.register(run)
        emitter = ProgressEmitter(task.id, [self.observer, observer])
        try:
            return await self._execute(task, run, emitter)
        finally:
            await self.runs.remove(task.id)

    async def status(self, task_id: str) -> RunStatus:
        return await self.runs.status(task_id)

    async def cancel(self, task_id: str) -> bool:
        cancelled = await self.runs.cancel(task_id)
        if cancelled:
            logger.info("[task=%s] cancellation requested", task_id)
        return cancelled

    def list_agents(self) -> List[Dict[str, object]]:
        return self.agents.list_agents()

    async def _execute(self, task: Task, run: TaskRun, emitter: ProgressEmitter) -> SynthesizedOutcome:
        run.status = RunStatus.RUNNING
        try:
            plan = self.planner.plan(task)
            logger.info(
                "[task=%s] plan agents=%s mode=%s",
                task.id,
                ",".join(kind.value for kind in plan.agent_kinds),
                plan.mode.value,
            )
            emitter.emit(ProgressStage.PLANNING, "Task analysis complete")
            results = await asyncio.wait_for(
                run.token.guard(self._dispatch(plan, task, run, emitter)),
                timeout=self.limits.task_timeout,
            )
        except asyncio.TimeoutError:
            run.token.cancel("timeout")
            message = f"Task timed out after {self.limits.task_timeout:g}s"
            self._abort(task, run, emitter, RunStatus.TIMED_OUT, ProgressStage.ERROR, message)
            raise RunTimeoutError(message) from None
        except RunCancelledError:
            self._abort(task, run, emitter, RunStatus.CANCELLED, ProgressStage.CANCELLED, "Task cancelled")
            raise
        except asyncio.CancelledError:
            run.token.cancel("cancelled")
            self._abort(task, run, emitter, RunStatus.CANCELLED, ProgressStage.CANCELLED, "Task cancelled")
            raise
        except Exception as exc:
            self._abort(task, run, emitter, RunStatus.FAILED, ProgressStage.ERROR, str(exc))
            raise

        outcome = self.synthesizer.synthesize(results, task)
        run.status = RunStatus.COMPLETE
        emitter.emit(ProgressStage.COMPLETE, "Task completed successfully")
        logger.info(
            "[task=%s] complete agents=%d failed=%d",
            task.id,
            len(outcome.agent_results),
            len(outcome.failed_agents),
        )
        self.history.add(
            HistoryRecord(
                task_id=task.id,
                status=run.status,
                content=task.content,
                summary=outcome.summary,
                artifacts=len(outcome.artifacts),
            )
        )
        return outcome

    def _abort(
        self,
        task: Task,
        run: TaskRun,
        emitter: ProgressEmitter,
        status: RunStatus,
        stage: ProgressStage,
        message: str,
    ) -> None:
        run.status = status
        run.per_agent_results.clear()
        logger.warning("[task=%s] %s: %s", task.id, status.value, message)
        emitter.emit(stage, message)
        self.history.add(
            HistoryRecord(task_id=task.id, status=status, content=task.content, error=message)
        )

    async def _dispatch(
        self,
        plan: ExecutionPlan,
        task: Task,
        run: TaskRun,
        emitter: ProgressEmitter,
    ) -> Dict[AgentKind, AgentResult]:
        if plan.mode is ExecutionMode.PARALLEL:
            await asyncio.gather(
                *(self._run_agent(kind, task, run, emitter) for kind in plan.agent_kinds)
            )
        else:
            previous: List[AgentResult] = []
            for kind in plan.agent_kinds:
                agent_task = task.with_context(previous_results=tuple(previous))
                previous.append(await self._run_agent(kind, agent_task, run, emitter))
        return {kind: run.per_agent_results[kind] for kind in plan.agent_kinds}

    async def _run_agent(
        self,
        kind: AgentKind,
        task: Task,
        run: TaskRun,
        emitter: ProgressEmitter,
    ) -> AgentResult:
        emitter.emit(ProgressStage.AGENT_STARTING, "Starting work...", agent=kind.value)
        if not self.agents.is_enabled(kind):
            result = AgentResult.failure(f"Agent '{kind.value}' is disabled")
        else:
            budget = self.limits.agent_timeout
            try:
                agent = self.agents.get(kind)
                result = await asyncio.wait_for(agent.execute(task, run.token), timeout=budget)
            except asyncio.TimeoutError:
                result = AgentResult.failure(f"Agent '{kind.value}' timed out after {budget:g}s")
            except RunCancelledError:
                raise
            except Exception as exc:
                logger.exception("[task=%s] agent %s raised", task.id, kind.value)
                result = AgentResult.failure(str(exc) or exc.__class__.__name__)

        run.per_agent_results[kind] = result
        if result.ok:
            emitter.emit(ProgressStage.AGENT_COMPLETE, "Complete", agent=kind.value)
        else:
            emitter.emit(ProgressStage.AGENT_FAILED, result.error or "Failed", agent=kind.value)
        return result
