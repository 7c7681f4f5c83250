#store_engine\api\routes\operations.py

import asyncio
import json
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from starlette.concurrency import run_in_threadpool

from store_engine.api.container import get_orchestrator
from store_engine.api.schemas.store import OperationResponse
from store_engine.core.models import Operation, OperationEvent, OperationEventType

router = APIRouter(prefix="/store/operations", tags=["operations"])

TERMINAL_EVENT_TYPES = {OperationEventType.COMPLETED.value, OperationEventType.FAILED.value}
KEEPALIVE_SECONDS = 15


def _format_sse(payload: Dict[str, Any]) -> str:
    return f"event: {payload['type']}\ndata: {json.dumps(payload)}\n\n"


def _to_response(operation: Operation) -> OperationResponse:
    return OperationResponse(
        id=operation.operation_id,
        app_id=operation.app_id,
        action=operation.action.value,
        status=operation.status.value,
        progress_percent=operation.progress_percent,
        current_step=operation.current_step,
        error_message=operation.error_message,
        started_at=operation.started_at,
        finished_at=operation.finished_at,
        updated_at=operation.updated_at,
    )


@router.get("/{operation_id}", response_model=OperationResponse)
def get_operation(operation_id: str, orchestrator=Depends(get_orchestrator)):
    operation = orchestrator.get_operation(operation_id)

    if not operation:
        raise HTTPException(status_code=404, detail="Operation not found")

    return _to_response(operation)


@router.get("/{operation_id}/stream")
async def stream_operation(operation_id: str, orchestrator=Depends(get_orchestrator)):
    """
    Server-sent events for one operation.

    The latest event is replayed first; the stream closes after completed or
    failed. A finished operation whose event is no longer cached gets a single
    snapshot event built from the stored record.
    """
    operation = await run_in_threadpool(orchestrator.get_operation, operation_id)
    if not operation:
        raise HTTPException(status_code=404, detail="Operation not found")

    if operation.is_terminal() and orchestrator.get_latest_event(operation_id) is None:
        snapshot = {"type": "snapshot", **operation.to_dict()}

        async def single():
            yield _format_sse(snapshot)

        return StreamingResponse(single(), media_type="text/event-stream")

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def on_event(event: OperationEvent) -> None:
        # Called from worker threads
        loop.call_soon_threadsafe(queue.put_nowait, event.to_wire())

    unsubscribe = orchestrator.subscribe(operation_id, on_event)

    async def event_stream():
        try:
            while True:
                try:
                    payload = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue

                yield _format_sse(payload)
                if payload["type"] in TERMINAL_EVENT_TYPES:
                    break
        finally:
            unsubscribe()

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
