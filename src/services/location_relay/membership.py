# src/services/location_relay/membership.py
"""
Таблица подписок: топик → множество соединений.
"""

from __future__ import annotations


class TopicMembership:
    """
    Связи (соединение, топик) в обе стороны.

    Топик создаётся при первой подписке и удаляется, когда в нём не
    осталось подписчиков. Все методы синхронные: в пределах одного
    event loop изменения атомарны.
    """

    def __init__(self) -> None:
        # topic -> set of connection_ids
        self._topics: dict[str, set[str]] = {}

        # connection_id -> set of topics
        self._connections: dict[str, set[str]] = {}

    @property
    def topic_count(self) -> int:
        """Количество топиков с подписчиками."""
        return len(self._topics)

    def join(self, connection_id: str, topic: str | None) -> bool:
        """
        Подписать соединение на топик.

        Пустой топик игнорируется. Повторная подписка ничего не меняет.

        Returns:
            True если связь добавлена
        """
        if not topic:
            return False

        members = self._topics.setdefault(topic, set())
        if connection_id in members:
            return False

        members.add(connection_id)
        self._connections.setdefault(connection_id, set()).add(topic)
        return True

    def leave(self, connection_id: str, topic: str | None) -> bool:
        """
        Отписать соединение от топика.

        Returns:
            True если связь существовала
        """
        if not topic:
            return False

        members = self._topics.get(topic)
        if members is None or connection_id not in members:
            return False

        members.discard(connection_id)
        if not members:
            del self._topics[topic]

        topics = self._connections.get(connection_id)
        if topics is not None:
            topics.discard(topic)
            if not topics:
                del self._connections[connection_id]
        return True

    def remove_connection(self, connection_id: str) -> frozenset[str]:
        """
        Удалить все подписки соединения.

        Returns:
            Топики, от которых соединение было отписано
        """
        topics = self._connections.pop(connection_id, set())
        for topic in topics:
            members = self._topics.get(topic)
            if members is None:
                continue
            members.discard(connection_id)
            if not members:
                del self._topics[topic]
        return frozenset(topics)

    def members_of(self, topic: str) -> frozenset[str]:
        """Снимок подписчиков топика (пустой для неизвестного)."""
        return frozenset(self._topics.get(topic, ()))

    def topics_of(self, connection_id: str) -> frozenset[str]:
        """Снимок топиков соединения."""
        return frozenset(self._connections.get(connection_id, ()))
