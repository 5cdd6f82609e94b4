# src/services/location_relay/service.py
"""
Бизнес-логика relay: подписки, рассылка и запись обновлений локации.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from fastapi import WebSocket

from src.common.constants import RoutingPolicy, StreamEvent
from src.common.logger import log_debug, log_info
from src.services.location_relay.connection_manager import ConnectionRegistry
from src.services.location_relay.membership import TopicMembership
from src.services.location_relay.persistence import PersistenceSink
from src.services.location_relay.routing import resolve_topic
from src.shared.models.location import LocationUpdate, TrackingRequest

if TYPE_CHECKING:
    from src.services.location_relay.backplane import LocalBackplane, RedisBackplane


StreamHandler = Callable[[str, Any], Awaitable[None]]


class LocationRelayService:
    """
    Единая точка входа для обоих ingress-адаптеров.

    Ответственности:
    - Жизненный цикл соединений потокового канала
    - Обработка событий start_tracking / stop_tracking / update_location / ping
    - Рассылка обновления в топик и запуск записи в хранилище без ожидания
    """

    def __init__(
        self,
        membership: TopicMembership,
        registry: ConnectionRegistry,
        backplane: "LocalBackplane | RedisBackplane",
        sink: PersistenceSink,
        routing_policy: RoutingPolicy = RoutingPolicy.BOOKING_FIRST,
    ) -> None:
        self._membership = membership
        self._registry = registry
        self._backplane = backplane
        self._sink = sink
        self._routing_policy = routing_policy

        # Событие -> обработчик
        self._handlers: dict[str, StreamHandler] = {
            StreamEvent.START_TRACKING.value: self._on_start_tracking,
            StreamEvent.STOP_TRACKING.value: self._on_stop_tracking,
            StreamEvent.UPDATE_LOCATION.value: self._on_update_location,
            StreamEvent.PING.value: self._on_ping,
        }

        # Статистика
        self._total_updates: int = 0

    @property
    def membership(self) -> TopicMembership:
        return self._membership

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    @property
    def backplane(self) -> "LocalBackplane | RedisBackplane":
        return self._backplane

    @property
    def sink(self) -> PersistenceSink:
        return self._sink

    # === CONNECTIONS ===

    async def connect(self, websocket: WebSocket) -> str:
        """Зарегистрировать новое соединение."""
        connection_id = await self._registry.register(websocket)
        await log_info(f"Client connected: {connection_id}")
        return connection_id

    async def disconnect(self, connection_id: str) -> None:
        """Снять соединение и все его подписки."""
        info = self._registry.get(connection_id)
        topics = await self._registry.unregister(connection_id)

        extra: dict[str, Any] = {"topics": sorted(topics)}
        if info is not None:
            extra["session_seconds"] = round(
                (datetime.now(timezone.utc) - info.connected_at).total_seconds(), 3
            )
        await log_info(f"Client disconnected: {connection_id}", extra=extra)

    # === STREAMING EVENTS ===

    async def handle_stream_event(self, connection_id: str, event: Any, data: Any) -> None:
        """
        Обработать событие потокового канала.

        Неизвестные события и некорректные payload отбрасываются молча:
        у потокового канала нет ответа на ошибку.
        """
        handler = self._handlers.get(event) if isinstance(event, str) else None
        if handler is None:
            await log_debug(f"Неизвестное событие от {connection_id}: {event!r}")
            return
        await handler(connection_id, data)

    async def _on_start_tracking(self, connection_id: str, data: Any) -> None:
        request = TrackingRequest.from_payload(data)
        if not request.booking_id:
            return
        self._membership.join(connection_id, request.booking_id)
        await log_info(f"Client {connection_id} is subscribing to trip: {request.booking_id}")

    async def _on_stop_tracking(self, connection_id: str, data: Any) -> None:
        request = TrackingRequest.from_payload(data)
        if not request.booking_id:
            return
        self._membership.leave(connection_id, request.booking_id)
        await log_info(f"Client {connection_id} is unsubscribing from trip: {request.booking_id}")

    async def _on_update_location(self, connection_id: str, data: Any) -> None:
        update = LocationUpdate.from_payload(data)
        if update is None:
            await log_debug(f"Некорректный update_location от {connection_id} отброшен")
            return
        await self.publish_update(update, exclude=connection_id)

    async def _on_ping(self, connection_id: str, data: Any) -> None:
        self._registry.send(connection_id, {"event": StreamEvent.PONG.value})

    # === UPDATES ===

    async def publish_update(self, update: LocationUpdate, exclude: str | None = None) -> int:
        """
        Разослать обновление и запустить запись в хранилище.

        Рассылка выполняется до запуска записи; запись не ожидается.

        Returns:
            Количество локальных подписчиков, получивших обновление
        """
        topic = resolve_topic(update, self._routing_policy)
        sent = await self._backplane.publish(topic, update.location, exclude=exclude)
        self._total_updates += 1

        await log_debug(
            f"Broadcasting location for trip {update.trip_id} to {topic}",
            extra={"trip_id": update.trip_id, "topic": topic, "sent": sent},
        )

        self._sink.persist(update.trip_id, update.location)
        return sent

    async def broadcast_location(self, trip_id: str, location: Any) -> int:
        """One-shot обновление: доставка в комнату tripId без исключения отправителя."""
        update = LocationUpdate(tripId=trip_id, location=location)
        return await self.publish_update(update, exclude=None)

    def get_stats(self) -> dict[str, Any]:
        """Получить статистику."""
        return {
            **self._registry.get_stats(),
            "total_topics": self._membership.topic_count,
            "total_updates": self._total_updates,
            "persistence": self._sink.get_stats(),
            "backplane": self._backplane.get_stats(),
        }
