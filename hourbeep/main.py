"""FastAPI entry point: local control API for the beep scheduler."""
import asyncio
from contextlib import asynccontextmanager
from typing import Optional, Dict, Any

from fastapi import FastAPI, WebSocket, WebSocketDisconnect, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from loguru import logger

from . import __version__
from .config import Settings, settings
from .scheduler import (
    SchedulerService,
    SoundNotifier,
    alarm_to_human,
    interval_to_human,
    is_valid_offset,
    is_valid_period,
    resolve_timezone,
)
from .scheduler.types import DisplayState, SchedulerEvent

# Global service instance
scheduler: Optional[SchedulerService] = None


def create_scheduler(config: Settings) -> SchedulerService:
    """Build the scheduler service from settings."""
    return SchedulerService(
        notifier=SoundNotifier(config.sound_path, volume=config.volume),
        tz=resolve_timezone(config.timezone),
        default_intervals=config.default_intervals,
        default_alarm_offsets=config.default_alarm_offsets,
        live_update_interval_ms=config.live_update_interval_ms,
        max_sleep_seconds=config.max_sleep_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: ARG001
    """Application lifecycle."""
    global scheduler

    logger.info("=" * 50)
    logger.info("  HourBeep")
    logger.info(f"  Sound: {settings.sound_path or 'system alert'}")
    logger.info(f"  Time zone: {settings.timezone or 'local'}")
    logger.info("=" * 50)

    scheduler = create_scheduler(settings)
    scheduler.on_event(ws_manager.publish_event)
    await scheduler.start()

    logger.info(f"API docs: http://{settings.host}:{settings.port}/docs")
    logger.info(f"WebSocket: ws://{settings.host}:{settings.port}/ws")

    yield

    logger.info("Shutting down...")
    await scheduler.stop()
    scheduler = None
    logger.info("Goodbye!")


app = FastAPI(
    title="HourBeep",
    description="Hourly alarms and interval timers that beep",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============== Pydantic Models ==============

class ToggleResponse(BaseModel):
    kind: str
    value: int
    enabled: bool
    changed: bool


def _require_scheduler() -> SchedulerService:
    if not scheduler:
        raise HTTPException(status_code=503, detail="Service not ready")
    return scheduler


def _check_period(period: int) -> None:
    if not is_valid_period(period):
        raise HTTPException(status_code=400, detail=f"Invalid timer period: {period}")


def _check_offset(offset: int) -> None:
    if not is_valid_offset(offset):
        raise HTTPException(status_code=400, detail=f"Invalid alarm offset: {offset}")


# ============== Status API ==============

@app.get("/api/health")
async def health():
    """Health check."""
    service = _require_scheduler()
    return {"status": "ok", "running": service.running}


@app.get("/api/state")
async def get_state():
    """Current countdowns and enabled schedules."""
    return _require_scheduler().current_display_state().to_dict()


@app.get("/api/menu")
async def get_menu():
    """Menu model with checkmarks for the enabled presets."""
    service = _require_scheduler()
    state = service.current_display_state()

    return {
        "items": [
            {"id": "beep", "title": "Beep"},
            {"id": "timer-header", "title": "Timer", "enabled": False, "detail": state.interval_line},
            *[
                {
                    "id": f"timer-{period}",
                    "title": interval_to_human(period),
                    "checked": period in state.checked_intervals,
                }
                for period in settings.interval_presets
            ],
            {"id": "alarm-header", "title": "Alarm", "enabled": False, "detail": state.alarm_line},
            *[
                {
                    "id": f"alarm-{offset}",
                    "title": alarm_to_human(offset),
                    "checked": offset in state.checked_alarm_offsets,
                }
                for offset in settings.alarm_presets
            ],
        ],
    }


@app.post("/api/beep")
async def beep():
    """Play the alert now."""
    await _require_scheduler().beep()
    return {"status": "beeped"}


# ============== Timer API ==============

@app.put("/api/timers/{period}", response_model=ToggleResponse)
async def enable_timer(period: int):
    """Enable an interval timer."""
    service = _require_scheduler()
    _check_period(period)
    changed = await service.enable_timer(period)
    return ToggleResponse(kind="timer", value=period, enabled=True, changed=changed)


@app.delete("/api/timers/{period}", response_model=ToggleResponse)
async def disable_timer(period: int):
    """Disable an interval timer."""
    service = _require_scheduler()
    _check_period(period)
    changed = await service.disable_timer(period)
    return ToggleResponse(kind="timer", value=period, enabled=False, changed=changed)


@app.post("/api/timers/{period}/toggle", response_model=ToggleResponse)
async def toggle_timer(period: int):
    """Flip an interval timer."""
    service = _require_scheduler()
    _check_period(period)
    enabled = await service.toggle_timer(period)
    return ToggleResponse(kind="timer", value=period, enabled=enabled, changed=True)


# ============== Alarm API ==============

@app.put("/api/alarms/{offset}", response_model=ToggleResponse)
async def enable_alarm(offset: int):
    """Enable an hourly alarm."""
    service = _require_scheduler()
    _check_offset(offset)
    changed = await service.enable_alarm(offset)
    return ToggleResponse(kind="alarm", value=offset, enabled=True, changed=changed)


@app.delete("/api/alarms/{offset}", response_model=ToggleResponse)
async def disable_alarm(offset: int):
    """Disable an hourly alarm."""
    service = _require_scheduler()
    _check_offset(offset)
    changed = await service.disable_alarm(offset)
    return ToggleResponse(kind="alarm", value=offset, enabled=False, changed=changed)


@app.post("/api/alarms/{offset}/toggle", response_model=ToggleResponse)
async def toggle_alarm(offset: int):
    """Flip an hourly alarm."""
    service = _require_scheduler()
    _check_offset(offset)
    enabled = await service.toggle_alarm(offset)
    return ToggleResponse(kind="alarm", value=offset, enabled=enabled, changed=True)


# ============== WebSocket Live Updates ==============

class ConnectionManager:
    """Fan-out of display states and scheduler events to WebSocket clients."""

    def __init__(self):
        self.queues: Dict[int, asyncio.Queue] = {}

    def connect(self, client_id: int) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=16)
        self.queues[client_id] = queue
        logger.debug(f"WebSocket connected: {client_id}")
        return queue

    def disconnect(self, client_id: int):
        if client_id in self.queues:
            del self.queues[client_id]
            logger.debug(f"WebSocket disconnected: {client_id}")

    def publish_event(self, event: SchedulerEvent) -> None:
        for queue in self.queues.values():
            _offer(queue, {"type": "event", "payload": event.to_dict()})

    def count(self) -> int:
        return len(self.queues)


def _offer(queue: asyncio.Queue, message: Dict[str, Any]) -> None:
    """Queue a message, dropping the oldest one for slow clients."""
    if queue.full():
        queue.get_nowait()
    queue.put_nowait(message)


ws_manager = ConnectionManager()


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Push live countdowns while the client stays connected."""
    service = scheduler
    if service is None:
        await websocket.close(code=1013, reason="Service not ready")
        return

    await websocket.accept()
    client_id = id(websocket)
    queue = ws_manager.connect(client_id)

    def sink(state: DisplayState) -> None:
        _offer(queue, {"type": "state", "payload": state.to_dict()})

    async def pump():
        while True:
            message = await queue.get()
            await websocket.send_json(message)

    async def drain():
        # Clients only listen; this returns when they disconnect
        while True:
            await websocket.receive_text()

    service.begin_live_updates(sink)
    tasks = [asyncio.create_task(pump()), asyncio.create_task(drain())]
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            error = task.exception()
            if error and not isinstance(error, WebSocketDisconnect):
                logger.error(f"WebSocket error: {error}")
    finally:
        for task in tasks:
            task.cancel()
        service.end_live_updates(sink)
        ws_manager.disconnect(client_id)


# ============== Entry Point ==============

def main():
    """Start the HourBeep service."""
    import uvicorn

    uvicorn.run(
        "hourbeep.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
