# src/services/location_relay/connection_manager.py
"""
Реестр WebSocket соединений.
Каждое соединение получает очередь исходящих сообщений и отдельную задачу-писателя.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from fastapi import WebSocket

from src.common.logger import get_logger, log_debug, log_warning
from src.services.location_relay.membership import TopicMembership

logger = get_logger("location_relay.connections")


@dataclass
class ConnectionInfo:
    """Информация о соединении."""
    connection_id: str
    websocket: WebSocket
    queue: asyncio.Queue[dict[str, Any]]
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    writer_task: asyncio.Task | None = None
    closed: bool = False


class ConnectionRegistry:
    """
    Реестр живых соединений.

    Поддерживает:
    - Регистрацию соединения с выдачей connection_id
    - Снятие регистрации вместе со всеми подписками
    - Неблокирующую отправку через очередь соединения
    """

    def __init__(self, membership: TopicMembership, queue_size: int = 100) -> None:
        self._membership = membership
        self._queue_size = queue_size

        # connection_id -> ConnectionInfo
        self._connections: dict[str, ConnectionInfo] = {}

        # Для статистики
        self._total_connections: int = 0
        self._total_messages_queued: int = 0
        self._total_messages_dropped: int = 0

    @property
    def active_connections(self) -> int:
        """Количество активных соединений."""
        return len(self._connections)

    async def register(self, websocket: WebSocket) -> str:
        """
        Принять соединение и зарегистрировать его.

        Returns:
            Выданный сервером connection_id
        """
        await websocket.accept()

        connection_id = uuid4().hex
        conn = ConnectionInfo(
            connection_id=connection_id,
            websocket=websocket,
            queue=asyncio.Queue(maxsize=self._queue_size),
        )
        conn.writer_task = asyncio.create_task(
            self._writer(conn),
            name=f"ws-writer-{connection_id}",
        )

        self._connections[connection_id] = conn
        self._total_connections += 1
        return connection_id

    async def unregister(self, connection_id: str) -> frozenset[str]:
        """
        Снять соединение с регистрации.

        Подписки удаляются до первого await, поэтому рассылка
        не увидит уже закрытое соединение.

        Returns:
            Топики, на которые было подписано соединение
        """
        topics = self._membership.remove_connection(connection_id)
        conn = self._connections.pop(connection_id, None)
        if conn is None:
            return topics

        conn.closed = True
        task = conn.writer_task
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        return topics

    async def close_all(self) -> None:
        """Снять с регистрации все соединения (остановка сервиса)."""
        for connection_id in list(self._connections):
            await self.unregister(connection_id)

    def get(self, connection_id: str) -> ConnectionInfo | None:
        """Получить информацию о соединении."""
        return self._connections.get(connection_id)

    def send(self, connection_id: str, message: dict[str, Any]) -> bool:
        """
        Поставить сообщение в очередь соединения, не дожидаясь отправки.

        Returns:
            False если соединение неизвестно, закрыто или очередь переполнена
        """
        conn = self._connections.get(connection_id)
        if conn is None or conn.closed:
            return False

        try:
            conn.queue.put_nowait(message)
        except asyncio.QueueFull:
            self._total_messages_dropped += 1
            logger.warning("Очередь соединения %s переполнена, сообщение отброшено", connection_id)
            return False

        self._total_messages_queued += 1
        return True

    def get_stats(self) -> dict[str, Any]:
        """Получить статистику."""
        return {
            "active_connections": len(self._connections),
            "total_connections_ever": self._total_connections,
            "total_messages_queued": self._total_messages_queued,
            "total_messages_dropped": self._total_messages_dropped,
        }

    async def _writer(self, conn: ConnectionInfo) -> None:
        """Отправлять сообщения из очереди в сокет в порядке поступления."""
        while True:
            message = await conn.queue.get()
            try:
                await conn.websocket.send_json(message)
            except Exception as e:
                # Сокет закрыт во время отправки: дальнейшие сообщения отбрасываются
                conn.closed = True
                await log_warning(
                    f"Не удалось отправить сообщение соединению {conn.connection_id}: {e}",
                    extra={"connection_id": conn.connection_id},
                )
                return
            finally:
                conn.queue.task_done()
            await log_debug(
                f"Сообщение {message.get('event')} отправлено соединению {conn.connection_id}",
            )
