# src/services/location_relay/dependencies.py
"""
Зависимости для Location Relay.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from src.common.constants import BackplaneMode, TypeMsg
from src.common.logger import log_error, log_info
from src.config import Settings, settings as default_settings
from src.services.location_relay.backplane import LocalBackplane, RedisBackplane
from src.services.location_relay.connection_manager import ConnectionRegistry
from src.services.location_relay.dispatcher import FanOutDispatcher
from src.services.location_relay.membership import TopicMembership
from src.services.location_relay.persistence import PersistenceSink
from src.services.location_relay.service import LocationRelayService

if TYPE_CHECKING:
    from redis.asyncio import Redis


_redis: Optional["Redis"] = None
_relay_service: Optional[LocationRelayService] = None


def build_relay_service(
    config: Settings,
    redis: Optional["Redis"] = None,
) -> LocationRelayService:
    """Собрать граф компонентов relay по настройкам."""
    membership = TopicMembership()
    registry = ConnectionRegistry(membership, queue_size=config.relay.OUTBOUND_QUEUE_SIZE)
    dispatcher = FanOutDispatcher(membership, registry)

    if config.relay.RELAY_BACKPLANE == BackplaneMode.REDIS:
        if redis is None:
            raise RuntimeError("RELAY_BACKPLANE=redis требует клиент Redis")
        backplane = RedisBackplane(
            redis,
            dispatcher,
            namespace=config.redis.REDIS_NAMESPACE,
            queue_size=config.redis.PUBLISH_QUEUE_SIZE,
        )
    else:
        backplane = LocalBackplane(dispatcher)

    sink = PersistenceSink(
        base_url=config.store.STORE_BASE_URL,
        timeout=config.store.STORE_TIMEOUT,
        max_pending=config.store.STORE_MAX_PENDING_WRITES,
        shutdown_grace=config.store.STORE_SHUTDOWN_GRACE,
    )

    return LocationRelayService(
        membership=membership,
        registry=registry,
        backplane=backplane,
        sink=sink,
        routing_policy=config.relay.ROUTING_POLICY,
    )


async def init_dependencies(config: Settings | None = None) -> LocationRelayService:
    """Инициализация всех зависимостей сервиса."""
    global _redis, _relay_service

    config = config or default_settings

    if config.relay.RELAY_BACKPLANE == BackplaneMode.REDIS:
        from redis.asyncio import Redis

        _redis = Redis.from_url(config.redis.url, decode_responses=True)
        await log_info("Redis подключён", type_msg=TypeMsg.DEBUG)

    _relay_service = build_relay_service(config, _redis)
    await _relay_service.backplane.start()

    if not config.store.enabled:
        await log_info(
            "STORE_BASE_URL не задан: запись локаций в хранилище отключена",
            type_msg=TypeMsg.WARNING,
        )

    await log_info(
        f"Location Relay инициализирован "
        f"(routing={config.relay.ROUTING_POLICY.value}, "
        f"backplane={config.relay.RELAY_BACKPLANE.value})",
        type_msg=TypeMsg.INFO,
    )
    return _relay_service


async def close_dependencies() -> None:
    """
    Закрытие всех ресурсов.

    Ошибка одного шага не отменяет остальные.
    """
    global _redis, _relay_service

    if _relay_service is not None:
        service = _relay_service
        _relay_service = None

        steps = (
            ("соединения", service.registry.close_all),
            ("backplane", service.backplane.stop),
            ("хранилище", service.sink.close),
        )
        for name, close in steps:
            try:
                await close()
            except Exception as e:
                await log_error(f"Ошибка закрытия ({name}): {e!r}", exc_info=True)

    if _redis is not None:
        redis = _redis
        _redis = None
        try:
            await redis.aclose()
        except Exception as e:
            await log_error(f"Ошибка закрытия Redis: {e!r}", exc_info=True)
        else:
            await log_info("Redis отключён", type_msg=TypeMsg.DEBUG)


def get_relay_service() -> LocationRelayService:
    """Получить сервис."""
    if _relay_service is None:
        raise RuntimeError("LocationRelayService не инициализирован")
    return _relay_service
