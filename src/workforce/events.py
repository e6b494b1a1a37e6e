"""Progress events emitted by the coordinator."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class ProgressStage(str, Enum):
    PLANNING = "planning"
    AGENT_STARTING = "agent.starting"
    AGENT_COMPLETE = "agent.complete"
    AGENT_FAILED = "agent.failed"
    COMPLETE = "complete"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def final(self) -> bool:
        return self in (ProgressStage.COMPLETE, ProgressStage.ERROR, ProgressStage.CANCELLED)


@dataclass(frozen=True)
class ProgressEvent:
    task_id: str
    stage: ProgressStage
    message: str
    agent: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "taskId": self.task_id,
            "stage": self.stage.value,
            "message": self.message,
            "timestamp": self.timestamp,
        }
        if self.agent is not None:
            data["agent"] = self.agent
        return data


ProgressObserver = Callable[[ProgressEvent], None]


class ProgressEmitter:
    """Delivers events synchronously; the run never waits on an observer."""

    def __init__(self, task_id: str, observers: List[ProgressObserver]) -> None:
        self.task_id = task_id
        self._observers = [observer for observer in observers if observer is not None]

    def emit(self, stage: ProgressStage, message: str, agent: Optional[str] = None) -> None:
        event = ProgressEvent(task_id=self.task_id, stage=stage, message=message, agent=agent)
        for observer in self._observers:
            try:
                observer(event)
            except Exception:
                logger.exception("[task=%s] progress observer raised", self.task_id)


class QueueObserver:
    """Fans events into asyncio queues without blocking, e.g. for websockets."""

    def __init__(self, maxsize: int = 0) -> None:
        self.maxsize = maxsize
        self._queues: Dict[str, List[asyncio.Queue]] = {}

    def subscribe(self, task_id: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(self.maxsize)
        self._queues.setdefault(task_id, []).append(queue)
        return queue

    def unsubscribe(self, task_id: str, queue: asyncio.Queue) -> None:
        queues = self._queues.get(task_id, [])
        if queue in queues:
            queues.remove(queue)
        if not queues:
            self._queues.pop(task_id, None)

    def __call__(self, event: ProgressEvent) -> None:
        for queue in list(self._queues.get(event.task_id, [])):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("[task=%s] dropping progress event for slow subscriber", event.task_id)
