"""
Particle Vision Main Application
================================

FastAPI entry point for the particle engine service.

The service owns one ParticleEngine, one video source and one TickLoop.
Ticks run in the background at `loop.target_fps`; request handlers only
swap controls, update the pointer, and read snapshots.

Endpoints:
    GET  /          - Service information
    GET  /health    - Liveness probe (is process alive?)
    GET  /ready     - Readiness probe (is the video source producing frames?)
    GET  /metrics   - Tick loop, engine and analytics counters
    GET  /controls  - Current scene controls
    PUT  /controls  - Partial controls update
    POST /pointer   - Pointer position (normalized) or release
    WS   /ws/layers - Latest layer buffers, pushed at `server.broadcast_hz`
"""

import asyncio
import logging
import os
import signal
import threading
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import Body, FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from particle_vision.config import settings
from particle_vision.engine import ParticleEngine
from particle_vision.render import SnapshotStore
from particle_vision.runner import PointerState, TickLoop
from particle_vision.video import OpenCVVideoSource, VideoSource


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

_shutdown_flag: bool = False

_engine: Optional[ParticleEngine] = None
_source: Optional[VideoSource] = None
_store: Optional[SnapshotStore] = None
_pointer: Optional[PointerState] = None
_tick_loop: Optional[TickLoop] = None
_loop_task: Optional[asyncio.Task] = None
_startup_time: float = 0.0


# =============================================================================
# Getters
# =============================================================================

def get_engine() -> Optional[ParticleEngine]:
    return _engine

def get_store() -> Optional[SnapshotStore]:
    return _store

def get_pointer() -> Optional[PointerState]:
    return _pointer

def get_tick_loop() -> Optional[TickLoop]:
    return _tick_loop


# =============================================================================
# Request Models
# =============================================================================

class PointerUpdate(BaseModel):
    """
    Pointer input.

    Either {"x": ..., "y": ...} with normalized coordinates in [-1, 1]
    (+y up), or {"active": false} to release the pointer.
    """

    x: Optional[float] = Field(default=None, ge=-1.0, le=1.0)
    y: Optional[float] = Field(default=None, ge=-1.0, le=1.0)
    active: bool = Field(default=True, description="False releases the pointer")


# =============================================================================
# Signal Handlers
# =============================================================================

def _handle_sigterm(signum, frame):
    """Handle SIGTERM for graceful shutdown."""
    global _shutdown_flag
    logger.info("Received SIGTERM, initiating graceful shutdown...")
    _shutdown_flag = True


# =============================================================================
# Component Wiring
# =============================================================================

def init_components(
    engine: Optional[ParticleEngine] = None,
    source: Optional[VideoSource] = None,
) -> None:
    """
    Build (or adopt) the engine and wire it to the snapshot store.

    Args:
        engine: Pre-built engine; built from settings when None
        source: Video source to bind; may be None
    """
    global _engine, _source, _store, _pointer, _tick_loop

    _store = SnapshotStore()
    _pointer = PointerState(pointer_scale=settings.interaction.pointer_scale)

    if engine is None:
        engine = ParticleEngine.from_settings(settings, sink=_store)
    else:
        engine.sink = _store
    _engine = engine

    _source = source
    _engine.set_source(source)

    _tick_loop = TickLoop(
        engine=_engine,
        target_fps=settings.loop.target_fps,
        offload=settings.loop.offload,
        pointer=_pointer,
    )


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _loop_task, _startup_time, _shutdown_flag

    if threading.current_thread() is threading.main_thread():
        signal.signal(signal.SIGTERM, _handle_sigterm)

    # Startup
    _startup_time = time.time()
    _shutdown_flag = False
    logger.info(f"Starting {settings.app.name} {settings.app.version}")

    source = OpenCVVideoSource(
        device=settings.video.device,
        requested_width=settings.video.requested_width,
        requested_height=settings.video.requested_height,
    )
    if not source.open():
        logger.warning("Running without video; motion layer will idle")

    init_components(source=source)

    _loop_task = asyncio.create_task(_tick_loop.run(), name="tick_loop")
    logger.info("All components started")

    yield

    # Shutdown
    logger.info("Shutting down gracefully...")
    _shutdown_flag = True

    if _tick_loop:
        await _tick_loop.stop()

    if _loop_task:
        _loop_task.cancel()
        try:
            await _loop_task
        except asyncio.CancelledError:
            pass

    source.close()
    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="Particle Vision",
    description="Video-reactive particle field engine",
    version=settings.app.version,
    lifespan=lifespan,
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

def _not_initialized() -> JSONResponse:
    return JSONResponse({"error": "Engine not initialized"}, status_code=503)


@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "Particle Vision",
        "version": settings.app.version,
        "name": settings.app.name,
        "status": "running",
        "layers": [layer.kind.value for layer in _engine.layers] if _engine else [],
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1) if _startup_time else 0.0,
    })


@app.get("/ready")
async def ready() -> JSONResponse:
    """
    Readiness probe - is the video source producing frames?

    Returns 200 when frames are flowing, 503 otherwise. The service still
    ticks (idle motion layer) while not ready.
    """
    source = _engine.source if _engine else None
    source_ready = source is not None and source.is_ready()
    loop_running = _tick_loop.running if _tick_loop else False

    body = {
        "status": "ready" if source_ready else "not_ready",
        "source_ready": source_ready,
        "loop_running": loop_running,
    }
    if source_ready:
        body["dimensions"] = list(source.dimensions or ())
        return JSONResponse(body)
    return JSONResponse(body, status_code=503)


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Detailed metrics for observability."""
    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1) if _startup_time else 0.0,
        "loop": _tick_loop.get_metrics() if _tick_loop else {},
        "engine": _engine.get_metrics() if _engine else {},
        "snapshots_published": _store.sequence if _store else 0,
    })


@app.get("/controls")
async def get_controls() -> JSONResponse:
    """Current scene controls."""
    if _engine is None:
        return _not_initialized()
    return JSONResponse(_engine.controls.model_dump(mode="json"))


@app.put("/controls")
async def put_controls(update: Dict[str, Any] = Body(...)) -> JSONResponse:
    """
    Apply a partial controls update.

    Nested layer settings merge field by field. The new controls take
    effect on the next tick. Invalid updates are rejected with 422 and
    leave the current controls untouched.
    """
    if _engine is None:
        return _not_initialized()

    try:
        controls = _engine.controls.merged(update)
    except ValidationError as e:
        logger.info(f"Rejected controls update: {e.error_count()} error(s)")
        return JSONResponse(
            {
                "error": "Invalid controls",
                "detail": [
                    {"loc": list(err["loc"]), "msg": err["msg"]}
                    for err in e.errors()
                ],
            },
            status_code=422,
        )

    _engine.controls = controls
    logger.info(f"Controls updated: {sorted(update)}")
    return JSONResponse(controls.model_dump(mode="json"))


@app.post("/pointer")
async def post_pointer(update: PointerUpdate) -> JSONResponse:
    """Set or release the pointer."""
    if _pointer is None:
        return _not_initialized()

    if not update.active:
        _pointer.clear()
        return JSONResponse({"active": False})

    if update.x is None or update.y is None:
        return JSONResponse(
            {"error": "x and y are required while the pointer is active"},
            status_code=422,
        )

    _pointer.set(update.x, update.y)
    world = _pointer.world()
    return JSONResponse({"active": True, "world": list(world)})


# =============================================================================
# WebSocket Endpoints
# =============================================================================

@app.websocket("/ws/layers")
async def layer_stream(websocket: WebSocket) -> None:
    """WebSocket endpoint pushing the latest layer buffers."""
    await websocket.accept()
    logger.info("Client connected to /ws/layers")

    interval = 1.0 / settings.server.broadcast_hz
    last_sent = 0

    try:
        while not _shutdown_flag:
            store = get_store()
            if store is not None and store.sequence != last_sent:
                payload = store.payload()
                if payload is not None:
                    await websocket.send_json(payload)
                    last_sent = payload["sequence"]

            # Client messages are ignored; waiting on them detects disconnects
            try:
                message = await asyncio.wait_for(websocket.receive(), timeout=interval)
            except asyncio.TimeoutError:
                continue
            if message["type"] == "websocket.disconnect":
                break

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning(f"WebSocket error: {e}")
    finally:
        logger.info("Client disconnected from /ws/layers")


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "particle_vision.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )
