# src/services/location_relay/dispatcher.py
"""
Fan-out обновлений локации подписчикам топика.
"""

from __future__ import annotations

from typing import Any

from src.common.constants import StreamEvent
from src.common.logger import log_debug, log_error
from src.services.location_relay.connection_manager import ConnectionRegistry
from src.services.location_relay.membership import TopicMembership


def build_location_message(location: Any) -> dict[str, Any]:
    """Кадр new_location для клиента."""
    return {"event": StreamEvent.NEW_LOCATION.value, "data": location}


class FanOutDispatcher:
    """
    Доставка payload всем подписчикам топика.

    Отправка неблокирующая: сообщение кладётся в очередь соединения.
    Ошибка доставки одному подписчику не прерывает рассылку остальным
    и не пробрасывается вызывающему коду.
    """

    def __init__(self, membership: TopicMembership, registry: ConnectionRegistry) -> None:
        self._membership = membership
        self._registry = registry

        # Для статистики
        self._total_deliveries: int = 0
        self._total_failed: int = 0

    async def deliver(
        self,
        topic: str,
        location: Any,
        exclude: str | None = None,
    ) -> int:
        """
        Отправить локацию всем подписчикам топика, кроме exclude.

        Returns:
            Количество подписчиков, которым сообщение поставлено в очередь
        """
        members = self._membership.members_of(topic)
        if not members:
            await log_debug(f"Топик {topic}: подписчиков нет")
            return 0

        message = build_location_message(location)
        sent_count = 0

        for connection_id in members:
            if connection_id == exclude:
                continue
            try:
                delivered = self._registry.send(connection_id, message)
            except Exception as e:
                delivered = False
                await log_error(
                    f"Ошибка доставки в топик {topic} соединению {connection_id}: {e}",
                    exc_info=True,
                )

            if delivered:
                sent_count += 1
            else:
                self._total_failed += 1
                await log_debug(
                    f"Обновление топика {topic} не доставлено соединению {connection_id}",
                    extra={"topic": topic, "connection_id": connection_id},
                )

        self._total_deliveries += sent_count
        return sent_count

    def get_stats(self) -> dict[str, int]:
        """Получить статистику."""
        return {
            "total_deliveries": self._total_deliveries,
            "total_failed_deliveries": self._total_failed,
        }
