# src/services/location_relay/app.py
"""
FastAPI приложение для Location Relay.

WebSocket endpoints:
- /ws — потоковый канал веб- и мобильных клиентов

REST endpoints:
- POST /broadcast/location — one-shot обновление локации от мобильного приложения
- GET /health — проверка здоровья
- GET /stats — статистика соединений и записи
"""

from __future__ import annotations

import json
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect, status
from starlette.websockets import WebSocketState
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.common.constants import (
    ERR_INTERNAL,
    ERR_MISSING_LOCATION_DATA,
    MSG_LOCATION_BROADCASTED,
    TypeMsg,
)
from src.common.logger import log_debug, log_error, log_info, setup_logging
from src.config import settings
from src.services.location_relay.dependencies import (
    close_dependencies,
    get_relay_service,
    init_dependencies,
)
from src.shared.models.common import BroadcastResponse, HealthStatus, StatsResponse
from src.shared.models.location import LocationUpdate


_started_at: float = time.monotonic()


# === LIFESPAN ===

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Жизненный цикл приложения."""
    global _started_at

    setup_logging()
    await log_info("Location Relay запускается...", type_msg=TypeMsg.INFO)

    await init_dependencies()
    _started_at = time.monotonic()

    yield

    await close_dependencies()
    await log_info("Location Relay остановлен", type_msg=TypeMsg.INFO)


# === APP ===

app = FastAPI(
    title="Location Relay",
    description="Realtime relay локаций поездок: подписки, fan-out и фоновая запись.",
    version=settings.system.VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.server.CLIENT_URL],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


def _broadcast_error(status_code: int, error: str) -> JSONResponse:
    body = BroadcastResponse(success=False, error=error)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
    )


# === HEALTH CHECK ===

@app.get("/health", response_model=HealthStatus, tags=["Health"])
async def health_check() -> HealthStatus:
    """Проверка здоровья сервиса."""
    service = get_relay_service()

    deps = {
        "store": "enabled" if service.sink.enabled else "disabled",
        "backplane": service.backplane.mode.value,
    }
    backplane_ok = await service.backplane.health_check()
    if not backplane_ok:
        deps["backplane"] = "unhealthy"

    return HealthStatus(
        service="location_relay",
        status="healthy" if backplane_ok else "degraded",
        version=settings.system.VERSION,
        uptime_seconds=round(time.monotonic() - _started_at, 3),
        dependencies=deps,
    )


# === STATS ===

@app.get("/stats", response_model=StatsResponse, tags=["Stats"])
async def get_stats() -> StatsResponse:
    """Получить статистику соединений, рассылки и записи."""
    return StatsResponse(**get_relay_service().get_stats())


# === ONE-SHOT BROADCAST ===

@app.post(
    "/broadcast/location",
    response_model=BroadcastResponse,
    response_model_exclude_none=True,
    responses={
        400: {"model": BroadcastResponse, "description": "Нет tripId или location"},
        500: {"model": BroadcastResponse, "description": "Внутренняя ошибка"},
    },
    tags=["Location"],
)
async def broadcast_location(request: Request) -> Any:
    """
    Принять локацию от мобильного приложения и разослать подписчикам поездки.

    Ответ отправляется сразу: запись в хранилище не ожидается.
    """
    try:
        try:
            payload = await request.json()
        except ValueError:
            payload = None

        update = LocationUpdate.from_payload(payload)
        if update is None:
            return _broadcast_error(status.HTTP_400_BAD_REQUEST, ERR_MISSING_LOCATION_DATA)

        service = get_relay_service()
        await service.broadcast_location(update.trip_id, update.location)

        await log_info(f"Broadcasting location for trip {update.trip_id}: {update.location}")

        return BroadcastResponse(success=True, message=MSG_LOCATION_BROADCASTED)

    except Exception:
        await log_error("Error in /broadcast/location", exc_info=True)
        return _broadcast_error(status.HTTP_500_INTERNAL_SERVER_ERROR, ERR_INTERNAL)


# === WEBSOCKET ===

@app.websocket("/ws")
async def websocket_relay(websocket: WebSocket) -> None:
    """
    Потоковый канал.

    Входящие кадры: {"event": "...", "data": {...}}
    - start_tracking {bookingId}
    - stop_tracking {bookingId}
    - update_location {tripId, bookingId?, location}
    - ping

    Исходящие кадры:
    - {"event": "new_location", "data": <location>}
    - {"event": "pong"}
    """
    service = get_relay_service()
    connection_id = await service.connect(websocket)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            if raw is None:
                await log_debug(f"Пустой кадр от {connection_id} отброшен")
                continue

            try:
                frame = json.loads(raw)
            except ValueError:
                await log_debug(f"Некорректный JSON от {connection_id} отброшен")
                continue

            if not isinstance(frame, dict):
                continue

            await service.handle_stream_event(connection_id, frame.get("event"), frame.get("data"))

    except WebSocketDisconnect:
        pass
    except Exception as e:
        await log_error(f"WebSocket {connection_id}: {e!r}", exc_info=True)
        if websocket.client_state == WebSocketState.CONNECTED:
            try:
                await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
            except RuntimeError as close_error:
                await log_debug(f"WebSocket {connection_id} уже закрыт: {close_error!r}")
    finally:
        await service.disconnect(connection_id)


# === STARTUP ===

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.server.HOST, port=settings.server.PORT)
