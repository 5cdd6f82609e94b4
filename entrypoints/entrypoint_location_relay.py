#!/usr/bin/env python3
"""
Entrypoint для Location Relay.

Запуск:
    python entrypoints/entrypoint_location_relay.py

Порт по умолчанию: 8080 (переменная окружения PORT)
"""

import sys
from pathlib import Path

# Добавляем корневую директорию проекта в путь
project_root = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(project_root))

import uvicorn

from src.config import settings


def main() -> None:
    """Запустить Location Relay."""
    uvicorn.run(
        "src.services.location_relay.app:app",
        host=settings.server.HOST,
        port=settings.server.PORT,
        reload=settings.system.DEBUG,
        log_level=settings.logging.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
