# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("STORE_BASE_URL", "http://store.test")
os.environ.setdefault("CLIENT_URL", "http://localhost:3000")
os.environ.setdefault("RELAY_BACKPLANE", "memory")
os.environ.setdefault("ROUTING_POLICY", "booking_first")
os.environ.setdefault("REDIS_PASSWORD", "")


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Путь к файлу конфигурации."""
    return project_root / "config" / "config.json"


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "_comment_system": "тестовая конфигурация",
        "PROJECT_NAME": "trip_relay_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "ENVIRONMENT": "test",
        "HOST": "127.0.0.1",
        "PORT": 9090,
        "CLIENT_URL": "http://web.test",
        "ROUTING_POLICY": "trip_only",
        "OUTBOUND_QUEUE_SIZE": 5,
        "RELAY_BACKPLANE": "memory",
        "STORE_BASE_URL": "http://store.test/",
        "STORE_TIMEOUT": 2.5,
        "STORE_MAX_PENDING_WRITES": 3,
        "STORE_SHUTDOWN_GRACE": 0.1,
        "REDIS_HOST": "redis.test",
        "REDIS_PORT": 6380,
        "REDIS_DB": 2,
        "REDIS_PASSWORD": "",
        "REDIS_NAMESPACE": "relay_test",
        "PUBLISH_QUEUE_SIZE": 10,
        "LOG_LEVEL": "DEBUG",
        "LOG_FORMAT": "json",
        "LOG_TO_FILE": False,
        "LOG_FILE_PATH": "logs/test.log",
        "LOG_MAX_BYTES": 1024,
    }


# =============================================================================
# ФИКСТУРЫ ТРАНСПОРТА
# =============================================================================

class FakeWebSocket:
    """WebSocket-заглушка: запоминает отправленные кадры."""

    def __init__(self, fail_on_send: bool = False, block_on_send: bool = False) -> None:
        self.accept = AsyncMock()
        self.close = AsyncMock()
        self.sent: list[dict[str, Any]] = []
        self._fail_on_send = fail_on_send
        self._block_on_send = block_on_send

    async def send_json(self, message: dict[str, Any]) -> None:
        if self._fail_on_send:
            raise RuntimeError("socket closed")
        if self._block_on_send:
            # Медленный клиент: отправка никогда не завершается
            await asyncio.Event().wait()
        self.sent.append(message)


@pytest.fixture
def fake_websocket_factory():
    """Фабрика WebSocket-заглушек."""
    return FakeWebSocket


@pytest.fixture
def drain():
    """Дать фоновым задачам event loop отработать."""
    async def _drain(rounds: int = 10) -> None:
        for _ in range(rounds):
            await asyncio.sleep(0)
    return _drain


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Мок клиента Redis."""
    redis = AsyncMock()
    redis.publish = AsyncMock(return_value=1)
    redis.ping = AsyncMock(return_value=True)
    pubsub = AsyncMock()
    # Реальный get_message ждёт до timeout; мок тоже должен отдавать управление
    async def _idle_get_message(*args, **kwargs):
        await asyncio.sleep(0.01)
        return None

    pubsub.get_message = AsyncMock(side_effect=_idle_get_message)
    redis.pubsub = MagicMock(return_value=pubsub)
    return redis


@pytest.fixture
def sample_location() -> dict[str, Any]:
    """Пример payload локации."""
    return {"lat": 50.4501, "lng": 30.5234, "heading": 90, "speed": 42.0}
