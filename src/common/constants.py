# src/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class StreamEvent(str, Enum):
    """События потокового канала (WebSocket)."""
    # Клиент → сервер
    START_TRACKING = "start_tracking"
    STOP_TRACKING = "stop_tracking"
    UPDATE_LOCATION = "update_location"
    PING = "ping"

    # Сервер → клиент
    NEW_LOCATION = "new_location"
    PONG = "pong"


class RoutingPolicy(str, Enum):
    """Политика выбора топика для доставки обновления."""
    BOOKING_FIRST = "booking_first"  # bookingId, если передан, иначе tripId
    TRIP_ONLY = "trip_only"


class BackplaneMode(str, Enum):
    """Режим рассылки между экземплярами relay."""
    MEMORY = "memory"
    REDIS = "redis"


# Тексты ответов one-shot эндпоинта
MSG_LOCATION_BROADCASTED = "Location broadcasted"
ERR_MISSING_LOCATION_DATA = "Missing tripId or location data"
ERR_INTERNAL = "Internal server error"
