# src/services/__init__.py
"""
Сервисы приложения.

Сервисы:
- location_relay: WebSocket подписки на поездки, fan-out локаций и фоновая запись в хранилище
"""

__all__: list[str] = []
