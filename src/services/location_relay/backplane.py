# src/services/location_relay/backplane.py
"""
Backplane рассылки обновлений.

- memory: доставка напрямую через локальный dispatcher (один экземпляр)
- redis: обновления проходят через Redis Pub/Sub, и каждый экземпляр
  доставляет их своим подписчикам

Каналы Redis:
- {namespace}:relay:{topic} — обновления локации топика
"""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any

from src.common.constants import BackplaneMode
from src.common.logger import get_logger, log_debug, log_error, log_info
from src.services.location_relay.dispatcher import FanOutDispatcher

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = get_logger("location_relay.backplane")


class LocalBackplane:
    """Рассылка в пределах одного процесса."""

    mode = BackplaneMode.MEMORY

    def __init__(self, dispatcher: FanOutDispatcher) -> None:
        self._dispatcher = dispatcher

    async def start(self) -> None:
        """Нечего запускать."""

    async def stop(self) -> None:
        """Нечего останавливать."""

    async def publish(self, topic: str, location: Any, exclude: str | None = None) -> int:
        """
        Доставить обновление подписчикам топика.

        Returns:
            Количество локальных подписчиков, получивших обновление
        """
        return await self._dispatcher.deliver(topic, location, exclude=exclude)

    async def health_check(self) -> bool:
        return True

    def get_stats(self) -> dict[str, Any]:
        return {"mode": self.mode.value, **self._dispatcher.get_stats()}


class RedisBackplane:
    """
    Рассылка между экземплярами через Redis Pub/Sub.

    Публикация не блокирует приём: сообщения кладутся в очередь, которую
    разбирает одна задача-издатель, поэтому порядок обновлений сохраняется.
    """

    mode = BackplaneMode.REDIS

    def __init__(
        self,
        redis: "Redis",
        dispatcher: FanOutDispatcher,
        namespace: str = "trip_relay",
        queue_size: int = 1000,
    ) -> None:
        self._redis = redis
        self._dispatcher = dispatcher
        self._channel_prefix = f"{namespace}:relay:"

        self._queue: asyncio.Queue[tuple[str, str]] = asyncio.Queue(maxsize=queue_size)
        self._pubsub = None
        self._publisher_task: asyncio.Task | None = None
        self._listener_task: asyncio.Task | None = None
        self._running = False

        # Для статистики
        self._published: int = 0
        self._received: int = 0
        self._dropped: int = 0
        self._failed: int = 0

    def channel_for(self, topic: str) -> str:
        """Канал Redis для топика."""
        return f"{self._channel_prefix}{topic}"

    async def start(self) -> None:
        """Подписаться на каналы relay и запустить задачи."""
        if self._running:
            return

        self._pubsub = self._redis.pubsub()
        await self._pubsub.psubscribe(f"{self._channel_prefix}*")
        self._running = True

        self._publisher_task = asyncio.create_task(self._publish_loop(), name="relay-publisher")
        self._listener_task = asyncio.create_task(self._listen(), name="relay-listener")
        await log_info(f"Redis backplane запущен ({self._channel_prefix}*)")

    async def stop(self) -> None:
        """Остановить задачи и закрыть подписку."""
        self._running = False

        for task in (self._publisher_task, self._listener_task):
            if task is None:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if self._pubsub is not None:
            await self._pubsub.punsubscribe()
            await self._pubsub.aclose()
            self._pubsub = None

    async def publish(self, topic: str, location: Any, exclude: str | None = None) -> int:
        """
        Поставить обновление в очередь публикации.

        Returns:
            0: локальная доставка произойдёт, когда сообщение вернётся из Redis
        """
        payload = json.dumps(
            {"topic": topic, "location": location, "exclude": exclude},
            ensure_ascii=False,
            default=str,
        )
        try:
            self._queue.put_nowait((self.channel_for(topic), payload))
        except asyncio.QueueFull:
            self._dropped += 1
            logger.warning("Очередь публикации переполнена, обновление топика %s отброшено", topic)
        return 0

    async def health_check(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except Exception:
            return False

    async def _publish_loop(self) -> None:
        """Публиковать сообщения в порядке поступления."""
        while True:
            channel, payload = await self._queue.get()
            try:
                await self._redis.publish(channel, payload)
                self._published += 1
            except Exception as e:
                self._failed += 1
                await log_error(f"Ошибка публикации в {channel}: {e!r}")

    async def _listen(self) -> None:
        """Слушать сообщения из Redis."""
        while self._running:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=1.0,
                )

                if message is None:
                    continue

                await self._process_message(message)

            except asyncio.CancelledError:
                break
            except Exception as e:
                # Логируем ошибку, но продолжаем работу
                await log_error(f"Redis backplane error: {e!r}")
                await asyncio.sleep(1)

    async def _process_message(self, message: dict[str, Any]) -> None:
        """Доставить обновление из Redis локальным подписчикам."""
        if message.get("type") not in ("message", "pmessage"):
            return

        data = message.get("data", b"")
        if isinstance(data, bytes):
            data = data.decode("utf-8")

        try:
            parsed = json.loads(data)
        except json.JSONDecodeError:
            await log_debug(f"Некорректное сообщение backplane: {data!r}")
            return

        topic = parsed.get("topic") if isinstance(parsed, dict) else None
        if not topic:
            return

        self._received += 1
        await self._dispatcher.deliver(
            topic,
            parsed.get("location"),
            exclude=parsed.get("exclude"),
        )

    def get_stats(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "published": self._published,
            "received": self._received,
            "dropped": self._dropped,
            "failed": self._failed,
            "queued": self._queue.qsize(),
            **self._dispatcher.get_stats(),
        }
