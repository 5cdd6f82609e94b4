# src/shared/models/__init__.py
"""
Общие Pydantic-модели.
"""

from src.shared.models.common import (
    BroadcastResponse,
    HealthStatus,
    StatsResponse,
)
from src.shared.models.location import (
    LocationUpdate,
    TrackingRequest,
    is_missing,
)

__all__ = [
    # Common
    "BroadcastResponse",
    "HealthStatus",
    "StatsResponse",
    # Location
    "LocationUpdate",
    "TrackingRequest",
    "is_missing",
]
