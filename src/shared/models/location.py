# src/shared/models/location.py
"""
Модели обновления локации поездки.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def is_missing(value: Any) -> bool:
    """
    Проверяет, что обязательное поле не передано.

    Отсутствующим считается None, пустая строка, пустой объект или массив.
    """
    if value is None:
        return True
    if isinstance(value, (str, dict, list)) and not value:
        return True
    return False


class LocationUpdate(BaseModel):
    """
    Обновление локации поездки.

    Payload `location` непрозрачен для relay и пересылается как есть.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    trip_id: str = Field(..., alias="tripId", min_length=1)
    location: Any
    booking_id: str | None = Field(default=None, alias="bookingId")

    @classmethod
    def from_payload(cls, payload: Any) -> "LocationUpdate | None":
        """
        Собирает обновление из входящего JSON.

        Returns:
            LocationUpdate или None, если payload некорректен
        """
        if not isinstance(payload, dict):
            return None

        trip_id = payload.get("tripId")
        location = payload.get("location")
        if not isinstance(trip_id, str) or is_missing(trip_id) or is_missing(location):
            return None

        booking_id = payload.get("bookingId")
        if not isinstance(booking_id, str) or not booking_id:
            booking_id = None

        return cls(tripId=trip_id, location=location, bookingId=booking_id)


class TrackingRequest(BaseModel):
    """Подписка/отписка веб-клиента на комнату бронирования."""

    model_config = ConfigDict(populate_by_name=True)

    booking_id: str | None = Field(default=None, alias="bookingId")

    @classmethod
    def from_payload(cls, payload: Any) -> "TrackingRequest":
        """Некорректный payload даёт запрос без bookingId."""
        if not isinstance(payload, dict):
            return cls()
        booking_id = payload.get("bookingId")
        if not isinstance(booking_id, str) or not booking_id:
            return cls()
        return cls(bookingId=booking_id)
