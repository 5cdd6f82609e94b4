#!/usr/bin/env python3
# main.py
"""
Точка входа Location Relay.
Запускает HTTP/WebSocket сервер relay под uvicorn.
"""

from __future__ import annotations

import asyncio
import signal
import sys

from src.config import settings
from src.common.logger import setup_logging, log_info, log_error
from src.common.constants import TypeMsg


# Глобальный флаг для graceful shutdown
_shutdown_event: asyncio.Event | None = None
_running_tasks: list[asyncio.Task] = []


def setup_signal_handlers() -> None:
    """Настраивает обработчики сигналов для graceful shutdown."""
    global _shutdown_event
    _shutdown_event = asyncio.Event()

    def signal_handler(sig: int) -> None:
        """Обработчик сигналов SIGINT и SIGTERM."""
        if _shutdown_event and not _shutdown_event.is_set():
            print(f"\nПолучен сигнал остановки (sig={sig}), завершаем работу...")
            _shutdown_event.set()
            for task in _running_tasks:
                if not task.done():
                    task.cancel()

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
    except NotImplementedError:
        # Windows не поддерживает add_signal_handler
        signal.signal(signal.SIGINT, lambda s, f: signal_handler(s))
        signal.signal(signal.SIGTERM, lambda s, f: signal_handler(s))


async def run_location_relay() -> None:
    """Запускает Location Relay (WebSocket подписки + one-shot broadcast)."""
    import uvicorn

    await log_info(
        f"Tracking server running on port {settings.server.PORT}",
        type_msg=TypeMsg.INFO,
    )

    config = uvicorn.Config(
        "src.services.location_relay.app:app",
        host=settings.server.HOST,
        port=settings.server.PORT,
        log_level="debug" if settings.system.DEBUG else "info",
    )

    server = uvicorn.Server(config)
    try:
        await server.serve()
    except asyncio.CancelledError:
        await log_info("Location Relay: graceful shutdown", type_msg=TypeMsg.DEBUG)
        await server.shutdown()


async def main() -> None:
    """Главная функция приложения."""
    setup_logging()
    setup_signal_handlers()

    await log_info(
        f"{settings.system.PROJECT_NAME} v{settings.system.VERSION}: запуск",
        type_msg=TypeMsg.INFO,
    )

    global _running_tasks
    _running_tasks = [asyncio.create_task(run_location_relay())]

    try:
        await asyncio.gather(*_running_tasks, return_exceptions=True)
    except asyncio.CancelledError:
        await log_info("Задача отменена, выполняется graceful shutdown", type_msg=TypeMsg.INFO)
    except Exception as e:
        await log_error(f"Критическая ошибка: {e}", exc_info=True)
        raise
    finally:
        for task in _running_tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*_running_tasks, return_exceptions=True)
        _running_tasks.clear()
        await log_info("Приложение остановлено", type_msg=TypeMsg.INFO)


def print_usage() -> None:
    """Выводит справку по использованию."""
    print("""
Location Relay — realtime relay локаций поездок

Использование:
    python main.py

Переменные окружения:
    PORT               — порт HTTP/WebSocket сервера (по умолчанию 8080)
    CLIENT_URL         — origin веб-клиента для CORS (по умолчанию http://localhost:3000)
    STORE_BASE_URL     — базовый URL хранилища локаций (пусто — запись отключена)
    ROUTING_POLICY     — booking_first | trip_only
    RELAY_BACKPLANE    — memory | redis
    """)


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1].lower() in ("--help", "-h"):
        print_usage()
        sys.exit(0)

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
