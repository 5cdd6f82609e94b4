# src/config/loader.py
"""
Загрузчик конфигурации проекта.
Единственный источник истины — config/config.json.
Параметры развертывания и секреты переопределяются из переменных окружения.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any
from urllib.parse import quote

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from src.common.constants import BackplaneMode, RoutingPolicy


# =============================================================================
# ОПРЕДЕЛЕНИЕ ПУТЕЙ
# =============================================================================

def get_project_root() -> Path:
    """Возвращает корневую директорию проекта."""
    return Path(__file__).parent.parent.parent


def get_config_path() -> Path:
    """Возвращает путь к файлу конфигурации."""
    return get_project_root() / "config" / "config.json"


def load_config_json() -> dict[str, Any]:
    """Загружает config.json и возвращает словарь."""
    config_path = get_config_path()
    if not config_path.exists():
        raise FileNotFoundError(f"Файл конфигурации не найден: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        return json.load(f)


# =============================================================================
# PYDANTIC МОДЕЛИ КОНФИГУРАЦИИ
# =============================================================================

class SystemSettings(BaseModel):
    """Системные настройки."""
    PROJECT_NAME: str = "trip_relay"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"


class ServerSettings(BaseModel):
    """Настройки HTTP/WebSocket сервера."""
    HOST: str = "0.0.0.0"
    PORT: int = Field(default=8080, ge=1, le=65535)
    CLIENT_URL: str = "http://localhost:3000"


class RelaySettings(BaseModel):
    """Настройки маршрутизации и доставки."""
    ROUTING_POLICY: RoutingPolicy = RoutingPolicy.BOOKING_FIRST
    OUTBOUND_QUEUE_SIZE: int = Field(default=100, ge=1)
    RELAY_BACKPLANE: BackplaneMode = BackplaneMode.MEMORY


class StoreSettings(BaseModel):
    """Настройки внешнего хранилища локаций."""
    STORE_BASE_URL: str = ""
    STORE_TIMEOUT: float = Field(default=10.0, gt=0)
    STORE_MAX_PENDING_WRITES: int = Field(default=100, ge=1)
    STORE_SHUTDOWN_GRACE: float = Field(default=5.0, ge=0)

    @field_validator("STORE_BASE_URL", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str:
        """Убирает завершающий слэш, чтобы не получить // в пути."""
        if not v:
            return ""
        return str(v).rstrip("/")

    @property
    def enabled(self) -> bool:
        """Включена ли запись в хранилище."""
        return bool(self.STORE_BASE_URL)


class RedisSettings(BaseModel):
    """Настройки Redis (используется только backplane)."""
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""
    REDIS_NAMESPACE: str = "trip_relay"
    PUBLISH_QUEUE_SIZE: int = Field(default=1000, ge=1)

    @field_validator("REDIS_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает пароль из переменных окружения."""
        if not v:
            return os.getenv("REDIS_PASSWORD", "")
        return v

    @property
    def url(self) -> str:
        """Возвращает URL для подключения к Redis."""
        auth = f":{quote(self.REDIS_PASSWORD, safe='')}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


class LoggingSettings(BaseModel):
    """Настройки логирования."""
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "colored"
    LOG_TO_FILE: bool = False
    LOG_FILE_PATH: str = "logs/app.log"
    LOG_MAX_BYTES: int = 10485760


# =============================================================================
# ГЛАВНЫЙ КЛАСС НАСТРОЕК
# =============================================================================

class Settings(BaseSettings):
    """
    Главный класс настроек приложения.
    Агрегирует все секции конфигурации.
    """
    system: SystemSettings = Field(default_factory=SystemSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    relay: RelaySettings = Field(default_factory=RelaySettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def from_dict(cls, config_data: dict[str, Any]) -> "Settings":
        """
        Создаёт объект Settings из плоского словаря config.json.
        Параметры развертывания переопределяются из переменных окружения.
        """
        # Фильтруем комментарии (ключи, начинающиеся с _comment_)
        filtered_data = {k: v for k, v in config_data.items() if not k.startswith("_comment_")}

        return cls(
            system=SystemSettings(
                PROJECT_NAME=filtered_data.get("PROJECT_NAME", "trip_relay"),
                VERSION=filtered_data.get("VERSION", "1.0.0"),
                DEBUG=filtered_data.get("DEBUG", False),
                ENVIRONMENT=os.getenv("ENVIRONMENT", filtered_data.get("ENVIRONMENT", "development")),
            ),
            server=ServerSettings(
                HOST=os.getenv("HOST", filtered_data.get("HOST", "0.0.0.0")),
                PORT=int(os.getenv("PORT", filtered_data.get("PORT", 8080))),
                CLIENT_URL=os.getenv("CLIENT_URL", filtered_data.get("CLIENT_URL", "http://localhost:3000")),
            ),
            relay=RelaySettings(
                ROUTING_POLICY=os.getenv("ROUTING_POLICY", filtered_data.get("ROUTING_POLICY", "booking_first")),
                OUTBOUND_QUEUE_SIZE=filtered_data.get("OUTBOUND_QUEUE_SIZE", 100),
                RELAY_BACKPLANE=os.getenv("RELAY_BACKPLANE", filtered_data.get("RELAY_BACKPLANE", "memory")),
            ),
            store=StoreSettings(
                STORE_BASE_URL=os.getenv("STORE_BASE_URL", filtered_data.get("STORE_BASE_URL", "")),
                STORE_TIMEOUT=filtered_data.get("STORE_TIMEOUT", 10.0),
                STORE_MAX_PENDING_WRITES=filtered_data.get("STORE_MAX_PENDING_WRITES", 100),
                STORE_SHUTDOWN_GRACE=filtered_data.get("STORE_SHUTDOWN_GRACE", 5.0),
            ),
            redis=RedisSettings(
                REDIS_HOST=os.getenv("REDIS_HOST", filtered_data.get("REDIS_HOST", "localhost")),
                REDIS_PORT=int(os.getenv("REDIS_PORT", filtered_data.get("REDIS_PORT", 6379))),
                REDIS_DB=filtered_data.get("REDIS_DB", 0),
                REDIS_PASSWORD=os.getenv("REDIS_PASSWORD", filtered_data.get("REDIS_PASSWORD", "")),
                REDIS_NAMESPACE=filtered_data.get("REDIS_NAMESPACE", "trip_relay"),
                PUBLISH_QUEUE_SIZE=filtered_data.get("PUBLISH_QUEUE_SIZE", 1000),
            ),
            logging=LoggingSettings(
                LOG_LEVEL=os.getenv("LOG_LEVEL", filtered_data.get("LOG_LEVEL", "INFO")),
                LOG_FORMAT=filtered_data.get("LOG_FORMAT", "colored"),
                LOG_TO_FILE=filtered_data.get("LOG_TO_FILE", False),
                LOG_FILE_PATH=filtered_data.get("LOG_FILE_PATH", "logs/app.log"),
                LOG_MAX_BYTES=filtered_data.get("LOG_MAX_BYTES", 10485760),
            ),
        )

    @classmethod
    def from_config_json(cls) -> "Settings":
        """Создаёт объект Settings из config.json."""
        return cls.from_dict(load_config_json())


@lru_cache()
def get_settings() -> Settings:
    """
    Возвращает синглтон настроек приложения.
    Использует кэширование для производительности.
    """
    from dotenv import load_dotenv

    # Загружаем .env файл
    env_path = get_project_root() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    return Settings.from_config_json()


# Экспорт синглтона для удобного импорта
settings = get_settings()
