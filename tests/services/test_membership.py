# tests/services/test_membership.py
"""
Unit тесты для TopicMembership.
"""

from src.services.location_relay.membership import TopicMembership


class TestJoinLeave:
    """Подписка и отписка."""

    def test_join_creates_topic(self) -> None:
        membership = TopicMembership()

        assert membership.join("c1", "book-9") is True
        assert membership.members_of("book-9") == frozenset({"c1"})
        assert membership.topics_of("c1") == frozenset({"book-9"})
        assert membership.topic_count == 1

    def test_join_is_idempotent(self) -> None:
        """Повторная подписка не создаёт дубликатов."""
        membership = TopicMembership()
        membership.join("c1", "book-9")

        assert membership.join("c1", "book-9") is False
        assert membership.members_of("book-9") == frozenset({"c1"})

    def test_join_empty_topic_ignored(self) -> None:
        """Пустой топик не создаётся."""
        membership = TopicMembership()

        assert membership.join("c1", "") is False
        assert membership.join("c1", None) is False
        assert membership.topic_count == 0
        assert membership.topics_of("c1") == frozenset()

    def test_leave_removes_empty_topic(self) -> None:
        """Топик без подписчиков удаляется."""
        membership = TopicMembership()
        membership.join("c1", "book-9")

        assert membership.leave("c1", "book-9") is True
        assert membership.members_of("book-9") == frozenset()
        assert membership.topic_count == 0
        assert membership.topics_of("c1") == frozenset()

    def test_leave_keeps_other_members(self) -> None:
        membership = TopicMembership()
        membership.join("c1", "book-9")
        membership.join("c2", "book-9")

        membership.leave("c1", "book-9")

        assert membership.members_of("book-9") == frozenset({"c2"})

    def test_leave_unknown_is_noop(self) -> None:
        """Отписка от топика без подписки ничего не делает."""
        membership = TopicMembership()
        membership.join("c2", "book-9")

        assert membership.leave("c1", "book-9") is False
        assert membership.leave("c1", "missing") is False
        assert membership.leave("c1", "") is False
        assert membership.members_of("book-9") == frozenset({"c2"})


class TestRemoveConnection:
    """Снятие всех подписок соединения."""

    def test_removes_from_all_topics(self) -> None:
        membership = TopicMembership()
        membership.join("c1", "book-9")
        membership.join("c1", "trip-42")
        membership.join("c2", "trip-42")

        removed = membership.remove_connection("c1")

        assert removed == frozenset({"book-9", "trip-42"})
        assert membership.members_of("book-9") == frozenset()
        assert membership.members_of("trip-42") == frozenset({"c2"})
        assert membership.topic_count == 1

    def test_unknown_connection(self) -> None:
        assert TopicMembership().remove_connection("ghost") == frozenset()


class TestSnapshots:
    """Снимки не зависят от последующих изменений."""

    def test_members_snapshot_is_stable(self) -> None:
        membership = TopicMembership()
        membership.join("c1", "book-9")

        snapshot = membership.members_of("book-9")
        membership.join("c2", "book-9")
        membership.remove_connection("c1")

        assert snapshot == frozenset({"c1"})

    def test_unknown_topic_is_empty(self) -> None:
        assert TopicMembership().members_of("nobody") == frozenset()
