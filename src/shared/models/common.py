# src/shared/models/common.py
"""
Общие модели для HTTP ответов сервиса.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class HealthStatus(BaseModel):
    """Статус здоровья сервиса."""

    service: str
    status: str = "healthy"  # healthy, degraded, unhealthy
    version: str | None = None
    uptime_seconds: float | None = None
    dependencies: dict[str, str] = Field(default_factory=dict)
    # dependencies: {"store": "enabled", "backplane": "memory"}


class BroadcastResponse(BaseModel):
    """Ответ one-shot эндпоинта рассылки."""

    success: bool
    message: str | None = None
    error: str | None = None


class StatsResponse(BaseModel):
    """Статистика соединений, рассылки и записи."""

    active_connections: int
    total_connections_ever: int
    total_messages_queued: int
    total_messages_dropped: int
    total_topics: int
    total_updates: int
    persistence: dict[str, Any] = Field(default_factory=dict)
    backplane: dict[str, Any] = Field(default_factory=dict)
