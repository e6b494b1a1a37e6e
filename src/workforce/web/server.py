"""FastAPI server exposing run/status/cancel/agents with live progress."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
from typing import Any, AsyncIterator, Dict, List, Optional, Set

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from ..config import WorkforceConfig
from ..errors import (
    ConfigurationError,
    DuplicateRunError,
    RunCancelledError,
    RunTimeoutError,
    WorkforceError,
)
from ..events import ProgressEvent, ProgressStage, QueueObserver
from ..history import HistoryRecord
from ..orchestrator import Workforce
from ..tasks.base import RunStatus, Task
from ..tasks.synthesizer import SynthesizedOutcome

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    RunTimeoutError: 504,
    RunCancelledError: 409,
    DuplicateRunError: 409,
    ConfigurationError: 400,
}


class TaskRequest(BaseModel):
    content: str
    type: Optional[str] = None
    agents: Optional[List[str]] = None
    parallel: bool = True
    human_in_loop: bool = True
    task_id: Optional[str] = None
    wait: bool = True


def _http_error(exc: WorkforceError) -> HTTPException:
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


FINAL_STAGES = {
    RunStatus.COMPLETE: ProgressStage.COMPLETE,
    RunStatus.CANCELLED: ProgressStage.CANCELLED,
}


def _final_event(record: HistoryRecord) -> ProgressEvent:
    """Replays a finished run as the last event a live subscriber would have seen."""

    return ProgressEvent(
        task_id=record.task_id,
        stage=FINAL_STAGES.get(record.status, ProgressStage.ERROR),
        message=record.summary or record.error or record.status.value,
        timestamp=record.timestamp,
    )


def create_app(workforce: Optional[Workforce] = None) -> FastAPI:
    """Build the app; without a workforce one is created from ``WORKFORCE_CONFIG``."""

    observer = QueueObserver()
    background: Set[asyncio.Task] = set()

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = workforce is None
        if owned:
            path = os.environ.get("WORKFORCE_CONFIG")
            config = WorkforceConfig.from_file(path) if path else WorkforceConfig()
            app.state.workforce = Workforce(config)
        try:
            yield
        finally:
            for pending in list(background):
                pending.cancel()
            if owned:
                await app.state.workforce.aclose()

    app = FastAPI(title="Workforce", lifespan=lifespan)
    app.state.workforce = workforce
    app.state.observer = observer

    def current() -> Workforce:
        return app.state.workforce

    async def execute(task: Task) -> SynthesizedOutcome:
        return await current().run(task, observer=observer)

    @app.post("/api/tasks")
    async def submit_task(request: TaskRequest) -> Dict[str, Any]:
        try:
            task = Task.create(
                request.content,
                type=request.type,
                agents=request.agents,
                parallel=request.parallel,
                human_in_loop=request.human_in_loop,
                task_id=request.task_id,
            )
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

        if not request.wait:
            pending = asyncio.create_task(_run_detached(task))
            background.add(pending)
            pending.add_done_callback(background.discard)
            return {"success": True, "taskId": task.id}

        try:
            outcome = await execute(task)
        except WorkforceError as exc:
            raise _http_error(exc) from exc
        return {"success": True, "taskId": task.id, "result": outcome.to_dict()}

    async def _run_detached(task: Task) -> None:
        try:
            await execute(task)
        except WorkforceError as exc:
            logger.info("[task=%s] detached run ended: %s", task.id, exc)

    @app.get("/api/tasks/{task_id}/status")
    async def task_status(task_id: str) -> Dict[str, Any]:
        status = await current().status(task_id)
        return {"taskId": task_id, "status": status.value}

    @app.post("/api/tasks/{task_id}/cancel")
    async def cancel_task(task_id: str) -> Dict[str, Any]:
        return {"success": await current().cancel(task_id)}

    @app.get("/api/agents")
    async def list_agents() -> Dict[str, Any]:
        return {"agents": current().list_agents()}

    @app.get("/api/history")
    async def history(limit: int = 20) -> Dict[str, Any]:
        return {"tasks": [record.to_dict() for record in current().history.recent(limit)]}

    @app.websocket("/ws/{task_id}")
    async def progress_stream(websocket: WebSocket, task_id: str) -> None:
        queue = observer.subscribe(task_id)
        await websocket.accept()
        idle_timeout = current().config.execution.task_timeout
        try:
            record = current().history.get(task_id)
            if record is not None and queue.empty():
                await websocket.send_text(json.dumps(_final_event(record).to_dict()))
                await websocket.close()
                return
            while True:
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=idle_timeout)
                except asyncio.TimeoutError:
                    # subscribed ahead of a submission that never arrived
                    if await current().status(task_id) is RunStatus.NOT_FOUND:
                        await websocket.close(code=1000, reason="Unknown task")
                        return
                    continue
                await websocket.send_text(json.dumps(event.to_dict()))
                if event.stage.final:
                    break
            await websocket.close()
        except WebSocketDisconnect:
            logger.debug("[task=%s] progress subscriber disconnected", task_id)
        finally:
            observer.unsubscribe(task_id, queue)

    return app
