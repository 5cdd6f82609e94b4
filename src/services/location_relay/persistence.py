# src/services/location_relay/persistence.py
"""
Фоновая запись обновлений локации во внешнее хранилище.

Запись запускается отдельной задачей и никогда не ожидается вызывающим
кодом: ошибки логируются внутри задачи, повторов нет.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from src.common.constants import TypeMsg
from src.common.logger import get_logger, log_error, log_info, log_warning

logger = get_logger("location_relay.persistence")


class PersistenceSink:
    """
    Fire-and-forget клиент хранилища.

    POST <base_url>/api/trip/location?id=<trip_id>, тело — payload локации.
    """

    LOCATION_PATH = "/api/trip/location"

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        max_pending: int = 100,
        shutdown_grace: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._max_pending = max_pending
        self._shutdown_grace = shutdown_grace

        self._http: httpx.AsyncClient | None = None
        if self._base_url:
            self._http = client or httpx.AsyncClient(base_url=self._base_url, timeout=timeout)

        # Сильные ссылки на задачи до их завершения
        self._pending: set[asyncio.Task] = set()

        # Для статистики
        self._succeeded: int = 0
        self._failed: int = 0
        self._dropped: int = 0

    @property
    def enabled(self) -> bool:
        """Настроено ли хранилище."""
        return self._http is not None

    @property
    def pending_count(self) -> int:
        """Количество записей в полёте."""
        return len(self._pending)

    def persist(self, trip_id: str, location: Any) -> asyncio.Task | None:
        """
        Запустить запись и сразу вернуть управление.

        Returns:
            Задача записи или None, если запись не запущена
        """
        if self._http is None:
            logger.debug("Хранилище не настроено, локация поездки %s не сохраняется", trip_id)
            return None

        if len(self._pending) >= self._max_pending:
            self._dropped += 1
            logger.warning(
                "Запись локации поездки %s пропущена: в полёте уже %d запросов",
                trip_id,
                len(self._pending),
            )
            return None

        task = asyncio.create_task(self._write(trip_id, location), name=f"persist-{trip_id}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _write(self, trip_id: str, location: Any) -> None:
        """Выполнить запрос к хранилищу. Исключения наружу не выходят."""
        try:
            response = await self._http.post(
                self.LOCATION_PATH,
                params={"id": trip_id},
                json=location,
            )
        except httpx.HTTPError as e:
            self._failed += 1
            await log_error(
                f"Ошибка записи локации поездки {trip_id}: {e!r}",
                extra={"trip_id": trip_id},
            )
            return
        except Exception as e:
            self._failed += 1
            await log_error(
                f"Непредвиденная ошибка записи локации поездки {trip_id}: {e!r}",
                extra={"trip_id": trip_id},
                exc_info=True,
            )
            return

        if response.is_success:
            self._succeeded += 1
            await log_info(
                f"Локация поездки {trip_id} сохранена",
                type_msg=TypeMsg.INFO,
            )
            return

        self._failed += 1
        await log_error(
            f"Хранилище отклонило локацию поездки {trip_id}: "
            f"HTTP {response.status_code} {response.text}",
            extra={"trip_id": trip_id, "status_code": response.status_code},
        )

    async def close(self) -> None:
        """Дождаться записей в полёте (с ограничением по времени) и закрыть клиент."""
        if self._pending:
            _, still_pending = await asyncio.wait(
                set(self._pending),
                timeout=self._shutdown_grace,
            )
            for task in still_pending:
                task.cancel()
            if still_pending:
                await asyncio.gather(*still_pending, return_exceptions=True)
                await log_warning(f"Отменено незавершённых записей: {len(still_pending)}")

        if self._http is not None:
            await self._http.aclose()

    def get_stats(self) -> dict[str, Any]:
        """Получить статистику."""
        return {
            "enabled": self.enabled,
            "pending": self.pending_count,
            "succeeded": self._succeeded,
            "failed": self._failed,
            "dropped": self._dropped,
        }
