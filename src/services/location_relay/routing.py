# src/services/location_relay/routing.py
"""
Выбор топика доставки для обновления локации.
"""

from __future__ import annotations

from src.common.constants import RoutingPolicy
from src.shared.models.location import LocationUpdate


def resolve_topic(
    update: LocationUpdate,
    policy: RoutingPolicy = RoutingPolicy.BOOKING_FIRST,
) -> str:
    """
    Вернуть топик, в который доставляется обновление.

    - booking_first: веб-клиенты подписаны по bookingId, tripId — запасной вариант
    - trip_only: всегда tripId

    Ключом записи в хранилище всегда остаётся tripId.
    """
    if policy == RoutingPolicy.BOOKING_FIRST and update.booking_id:
        return update.booking_id
    return update.trip_id
