"""Bounded in-memory record of finished runs."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from .tasks.base import RunStatus


@dataclass
class HistoryRecord:
    task_id: str
    status: RunStatus
    content: str
    summary: Optional[str] = None
    error: Optional[str] = None
    artifacts: int = 0
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.task_id,
            "status": self.status.value,
            "task": self.content,
            "summary": self.summary,
            "error": self.error,
            "artifacts": self.artifacts,
            "timestamp": int(self.timestamp * 1000),
        }


class TaskHistory:
    """Keeps the most recent ``max_items`` records, newest first."""

    def __init__(self, max_items: int = 100) -> None:
        self.max_items = max_items
        self._items: List[HistoryRecord] = []

    def add(self, record: HistoryRecord) -> None:
        self._items.insert(0, record)
        if len(self._items) > self.max_items:
            self._items = self._items[: self.max_items]

    def recent(self, limit: int = 20) -> List[HistoryRecord]:
        return list(self._items[:limit])

    def get(self, task_id: str) -> Optional[HistoryRecord]:
        for record in self._items:
            if record.task_id == task_id:
                return record
        return None

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)
