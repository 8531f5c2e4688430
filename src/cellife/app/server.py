from __future__ import annotations

import asyncio
import json
import logging
import os
from collections import deque
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Set

import yaml
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.core.config import AppConfig, SimulationConfig, load_app_config
from ..sim.core.world import World

logger = logging.getLogger(__name__)

# Speeds above 1.0 would step faster than the configured time_step (30 Hz by default).
_SPEED_RANGE = (0.1, 1.0)
# Unacknowledged snapshots kept for slow clients; older ones are dropped.
_SNAPSHOT_QUEUE_LIMIT = 300


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1):
        self.world = World(config)
        self.broadcast_interval = max(1, broadcast_interval)
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=_SNAPSHOT_QUEUE_LIMIT)
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._loop_task: asyncio.Task | None = None

    @property
    def config(self) -> SimulationConfig:
        return self.world.config

    @property
    def running(self) -> bool:
        return self.world.running

    @property
    def tick(self) -> int:
        return self.world.state.tick

    def ensure_loop(self) -> None:
        if self._loop_task is None or self._loop_task.done():
            self._loop_task = asyncio.create_task(self._loop())
            self._loop_task.add_done_callback(self._on_loop_done)

    def _on_loop_done(self, task: asyncio.Task) -> None:
        if task is self._loop_task:
            self._loop_task = None
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Simulation loop crashed at tick %d", self.tick, exc_info=exc)

    async def start(self) -> None:
        self.ensure_loop()
        self.world.running = True
        logger.info("Simulation started at tick %d", self.tick)

    async def stop(self) -> None:
        self.world.running = False
        logger.info("Simulation paused at tick %d", self.tick)

    async def shutdown(self) -> None:
        await self.stop()
        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None

    async def reset(self) -> None:
        async with self._lock:
            self.world.reset()
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def step_once(self) -> None:
        async with self._lock:
            self.world.step()
        await self._broadcast_snapshot()

    async def update_settings(self, changes: Dict[str, Any]) -> SimulationConfig:
        async with self._lock:
            return self.world.update_settings(changes)

    def set_speed(self, multiplier: float) -> float:
        low, high = _SPEED_RANGE
        self.speed_multiplier = max(low, min(high, multiplier))
        return self.speed_multiplier

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.time_step / self.speed_multiplier)
            if not self.running:
                continue
            async with self._lock:
                self.world.step()
            if self.tick % self.broadcast_interval == 0:
                await self._broadcast_snapshot()

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    def snapshot_payload(self) -> Dict[str, Any]:
        snapshot = self.world.snapshot()
        return {
            "tick": snapshot.tick,
            "generation": snapshot.generation,
            "running": self.running,
            "metrics": asdict(snapshot.metrics),
            "organisms": snapshot.organisms,
            "grid": asdict(snapshot.grid),
            "metadata": asdict(snapshot.metadata),
            "palette": snapshot.palette,
        }

    def _serialize_snapshot(self) -> QueuedSnapshot:
        payload = self.snapshot_payload()
        message = {"type": "snapshot", "tick": payload["tick"], "payload": payload}
        return QueuedSnapshot(tick=payload["tick"], payload=json.dumps(message))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        if not self.clients:
            return
        queued = self._serialize_snapshot()
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in list(self.clients):
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)


def _load_app_config() -> AppConfig:
    path = os.environ.get("CELLIFE_CONFIG")
    if not path:
        return AppConfig()
    raw = yaml.safe_load(Path(path).read_text()) or {}
    return load_app_config(raw)


app_config = _load_app_config()
app = FastAPI(title="Cellife Simulation")
controller = SimulationController(app_config.simulation, app_config.broadcast_interval)


@app.on_event("startup")
async def _startup() -> None:
    controller.ensure_loop()


@app.on_event("shutdown")
async def _shutdown() -> None:
    await controller.shutdown()


@app.get("/api/status")
async def status() -> JSONResponse:
    metrics = controller.world.metrics
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "generation": controller.world.state.generation,
            "population": len(controller.world.organisms),
            "metrics": asdict(metrics) if metrics is not None else None,
        }
    )


@app.get("/api/state")
async def state() -> JSONResponse:
    return JSONResponse(controller.snapshot_payload())


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    await controller.start()
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    await controller.stop()
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "tick": controller.tick})


@app.post("/api/control/step")
async def step_simulation() -> JSONResponse:
    await controller.step_once()
    return JSONResponse({"tick": controller.tick, "population": len(controller.world.organisms)})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    speed = controller.set_speed(float(payload.get("multiplier", 1.0)))
    return JSONResponse({"multiplier": speed})


@app.post("/api/settings")
async def update_settings(payload: dict) -> JSONResponse:
    config = await controller.update_settings(payload)
    return JSONResponse(
        {
            "mutation_rate": config.mutation_rate,
            "food_spawn_rate": config.food_spawn_rate,
            "max_organisms": config.max_organisms,
        }
    )


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    controller.clients.add(websocket)
    controller._client_last_sent[websocket] = -1
    logger.info("Client connected (%d total)", len(controller.clients))
    await controller._broadcast_snapshot()
    try:
        while True:
            message = await websocket.receive_text()
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                continue
            if isinstance(payload, dict) and payload.get("type") == "ack":
                tick = payload.get("tick")
                if isinstance(tick, int):
                    await controller.acknowledge(tick)
    except WebSocketDisconnect:
        controller.clients.discard(websocket)
        controller._client_last_sent.pop(websocket, None)
        logger.info("Client disconnected (%d remaining)", len(controller.clients))


__all__ = ["app", "controller"]
