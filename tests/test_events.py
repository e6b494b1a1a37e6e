import asyncio

import pytest

from workforce.cancellation import CancelToken
from workforce.errors import RunCancelledError
from workforce.events import ProgressEmitter, ProgressStage, QueueObserver
from workforce.history import HistoryRecord, TaskHistory
from workforce.tasks.base import RunStatus


def test_emitter_skips_missing_observers_and_survives_errors():
    received = []

    def broken(event):
        raise RuntimeError("nope")

    emitter = ProgressEmitter("t-1", [None, broken, received.append])
    emitter.emit(ProgressStage.AGENT_STARTING, "Starting work...", agent="developer")

    (event,) = received
    assert event.to_dict()["agent"] == "developer"
    assert event.to_dict()["stage"] == "agent.starting"


def test_queue_observer_routes_by_task():
    async def main():
        observer = QueueObserver(maxsize=1)
        queue = observer.subscribe("t-1")
        other = observer.subscribe("t-2")
        emitter = ProgressEmitter("t-1", [observer])
        emitter.emit(ProgressStage.PLANNING, "Task analysis complete")
        emitter.emit(ProgressStage.COMPLETE, "dropped, queue is full")
        assert other.empty()
        event = queue.get_nowait()
        assert event.stage is ProgressStage.PLANNING
        assert not event.stage.final
        observer.unsubscribe("t-1", queue)
        emitter.emit(ProgressStage.COMPLETE, "nobody listening")
        assert queue.empty()

    asyncio.run(main())


def test_history_keeps_newest_first_and_bounded():
    history = TaskHistory(max_items=2)
    for index in range(3):
        history.add(HistoryRecord(task_id=f"t-{index}", status=RunStatus.COMPLETE, content="x"))

    assert [record.task_id for record in history.recent()] == ["t-2", "t-1"]
    assert history.get("t-0") is None
    assert history.get("t-1").to_dict()["status"] == "complete"
    history.clear()
    assert len(history) == 0


def test_token_guard_and_sleep():
    async def slow():
        await asyncio.sleep(5)
        return "late"

    async def main():
        token = CancelToken()
        assert await token.guard(asyncio.sleep(0, result="fast")) == "fast"
        asyncio.get_running_loop().call_later(0.05, token.cancel, "stop")
        with pytest.raises(RunCancelledError, match="stop"):
            await asyncio.wait_for(token.guard(slow()), timeout=2)
        with pytest.raises(RunCancelledError):
            await token.sleep(5)
        with pytest.raises(RunCancelledError):
            await token.guard(slow())

    asyncio.run(main())
