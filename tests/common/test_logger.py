# tests/common/test_logger.py
"""
Unit тесты для модуля логирования (src/common/logger.py).
"""

import logging
import sys
from unittest.mock import MagicMock, Mock, patch

import pytest

from src.common.constants import TypeMsg
from src.common.logger import (
    DEFAULT_LOGGER_NAME,
    ColoredFormatter,
    JsonFormatter,
    _get_caller_info,
    _loggers,
    get_logger,
    log_debug,
    log_error,
    log_info,
    log_warning,
    setup_logging,
)


def _make_record(level: int = logging.INFO, msg: str = "Test message") -> logging.LogRecord:
    record = logging.LogRecord(
        name="test_logger",
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    record.module = "test_module"
    record.funcName = "test_function"
    return record


class TestJsonFormatter:
    """Тесты для JsonFormatter."""

    def test_format_basic_record(self) -> None:
        """Тест форматирования базовой записи."""
        result = JsonFormatter().format(_make_record())

        assert '"level": "INFO"' in result
        assert '"message": "Test message"' in result
        assert '"module": "test_module"' in result
        assert '"function": "test_function"' in result
        assert '"line": 10' in result

    def test_format_with_extra_data(self) -> None:
        """Тест форматирования записи с дополнительными данными."""
        record = _make_record(logging.WARNING, "Delivery failed")
        record.extra_data = {"topic": "book-9", "connection_id": "abc"}

        result = JsonFormatter().format(record)

        assert '"extra"' in result
        assert '"topic": "book-9"' in result
        assert '"connection_id": "abc"' in result

    def test_format_with_exception(self) -> None:
        """Тест форматирования записи с исключением."""
        try:
            raise ValueError("store unavailable")
        except ValueError:
            exc_info = sys.exc_info()

        record = _make_record(logging.ERROR, "Persist failed")
        record.exc_info = exc_info

        result = JsonFormatter().format(record)

        assert '"exception"' in result
        assert "ValueError" in result
        assert "store unavailable" in result


class TestColoredFormatter:
    """Тесты для ColoredFormatter."""

    def test_format_basic_record(self) -> None:
        """Тест цветного форматирования базовой записи."""
        result = ColoredFormatter().format(_make_record())

        assert "INFO" in result
        assert "Test message" in result
        assert "\033[" in result

    def test_format_with_caller_info(self) -> None:
        """Тест форматирования с информацией о вызывающей функции."""
        record = _make_record(logging.DEBUG, "Debug message")
        record.extra_data = {
            "caller_function": "deliver",
            "caller_module": "dispatcher",
            "caller_file": "dispatcher.py",
            "caller_line": 42,
        }

        result = ColoredFormatter().format(record)

        assert "dispatcher.deliver()" in result
        assert "dispatcher.py:42" in result


class TestGetLogger:
    """Тесты для get_logger."""

    def setup_method(self) -> None:
        """Очистка кэша логгеров перед каждым тестом."""
        _loggers.clear()
        for name in ("relay_test_logger", "relay_test_settings", "relay_test_no_settings"):
            logging.getLogger(name).handlers.clear()

    def test_get_logger_creates_new_logger(self) -> None:
        """Тест создания нового логгера."""
        logger = get_logger("relay_test_logger")

        assert logger.name == "relay_test_logger"
        assert len(logger.handlers) >= 1
        assert logger.propagate is False

    def test_get_logger_returns_cached_logger(self) -> None:
        """Тест возврата кэшированного логгера."""
        assert get_logger("relay_test_logger") is get_logger("relay_test_logger")

    @patch("src.config.settings")
    def test_get_logger_uses_settings(self, mock_settings: Mock) -> None:
        """Тест использования настроек из конфига."""
        mock_settings.logging.LOG_LEVEL = "WARNING"
        mock_settings.logging.LOG_FORMAT = "json"
        mock_settings.logging.LOG_TO_FILE = False
        mock_settings.logging.LOG_FILE_PATH = "logs/test.log"
        mock_settings.logging.LOG_MAX_BYTES = 10485760

        logger = get_logger("relay_test_settings")

        assert logger.level == logging.WARNING
        assert isinstance(logger.handlers[0].formatter, JsonFormatter)

    def test_get_logger_handles_missing_settings(self) -> None:
        """Тест работы при отсутствии настроек."""
        with patch.dict("sys.modules", {"src.config": None}):
            logger = get_logger("relay_test_no_settings")

            assert logger.level == logging.DEBUG


class TestSetupLogging:
    """Тесты для setup_logging."""

    def setup_method(self) -> None:
        """Очистка перед тестом."""
        _loggers.clear()
        logging.getLogger(DEFAULT_LOGGER_NAME).handlers.clear()

    def test_setup_logging_initializes_system(self) -> None:
        """Тест инициализации системы логирования."""
        with patch("src.common.logger._LOGGING_INITIALIZED", False):
            setup_logging()

        assert DEFAULT_LOGGER_NAME in _loggers

    def test_setup_logging_sets_third_party_levels(self) -> None:
        """Тест установки уровней для сторонних библиотек."""
        with patch("src.common.logger._LOGGING_INITIALIZED", False):
            setup_logging()

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("redis").level == logging.WARNING


class TestGetCallerInfo:
    """Тесты для _get_caller_info."""

    def test_get_caller_info_returns_dict(self) -> None:
        """Тест возврата словаря с информацией о вызывающей функции."""
        def wrapper():
            return _get_caller_info()

        info = wrapper()

        assert isinstance(info, dict)
        assert info.get("caller_function") == "test_get_caller_info_returns_dict"


class TestLogFunctions:
    """Тесты для асинхронных функций логирования."""

    def setup_method(self) -> None:
        """Очистка перед тестом."""
        _loggers.clear()

    @pytest.mark.asyncio
    async def test_log_info_basic(self) -> None:
        """Тест базового логирования INFO."""
        with patch.object(logging.Logger, "info") as mock_info:
            await log_info("Client connected: abc")

            mock_info.assert_called_once()
            assert "Client connected: abc" in mock_info.call_args[0]

    @pytest.mark.asyncio
    async def test_log_info_with_type_msg(self) -> None:
        """Тест логирования с разными типами сообщений."""
        with patch.object(logging.Logger, "debug") as mock_debug:
            await log_info("Debug message", type_msg=TypeMsg.DEBUG)
            mock_debug.assert_called_once()

        with patch.object(logging.Logger, "warning") as mock_warning:
            await log_info("Warning message", type_msg=TypeMsg.WARNING)
            mock_warning.assert_called_once()

        with patch.object(logging.Logger, "error") as mock_error:
            await log_info("Error message", type_msg=TypeMsg.ERROR)
            mock_error.assert_called_once()

    @pytest.mark.asyncio
    async def test_log_info_with_extra(self) -> None:
        """Тест логирования с дополнительными данными."""
        with patch.object(logging.Logger, "info") as mock_info:
            await log_info("Broadcast", extra={"trip_id": "trip-42"})

            record_extra = mock_info.call_args[1]["extra"]
            assert record_extra["extra_data"]["trip_id"] == "trip-42"

    @pytest.mark.asyncio
    async def test_log_debug(self) -> None:
        """Тест функции log_debug."""
        with patch.object(logging.Logger, "debug") as mock_debug:
            await log_debug("Debug message")
            mock_debug.assert_called_once()

    @pytest.mark.asyncio
    async def test_log_warning(self) -> None:
        """Тест функции log_warning."""
        with patch.object(logging.Logger, "warning") as mock_warning:
            await log_warning("Warning message")
            mock_warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_log_error_with_exc_info(self) -> None:
        """Тест логирования ошибки с трейсбеком."""
        with patch.object(logging.Logger, "error") as mock_error:
            await log_error("Error message", exc_info=True)

            mock_error.assert_called_once()
            assert mock_error.call_args[1].get("exc_info") is True

    @pytest.mark.asyncio
    async def test_log_info_with_custom_logger_name(self) -> None:
        """Тест логирования с пользовательским именем логгера."""
        with patch("src.common.logger.get_logger") as mock_get_logger:
            mock_logger = MagicMock()
            mock_get_logger.return_value = mock_logger

            await log_info("Test message", logger_name="location_relay.custom")

            mock_get_logger.assert_called_once_with("location_relay.custom")
            mock_logger.info.assert_called_once()


class TestCallerAttribution:
    """Информация о вызывающем коде указывает на код, вызвавший log_*."""

    def setup_method(self) -> None:
        _loggers.clear()

    @pytest.mark.asyncio
    async def test_log_debug_reports_real_caller(self) -> None:
        with patch.object(logging.Logger, "debug") as mock_debug:
            await log_debug("Debug message")

        extra_data = mock_debug.call_args[1]["extra"]["extra_data"]
        assert extra_data["caller_function"] == "test_log_debug_reports_real_caller"
        assert extra_data["caller_file"] == "test_logger.py"

    @pytest.mark.asyncio
    async def test_log_warning_reports_real_caller(self) -> None:
        with patch.object(logging.Logger, "warning") as mock_warning:
            await log_warning("Warning message")

        extra_data = mock_warning.call_args[1]["extra"]["extra_data"]
        assert extra_data["caller_function"] == "test_log_warning_reports_real_caller"

    @pytest.mark.asyncio
    async def test_log_info_and_error_report_real_caller(self) -> None:
        with patch.object(logging.Logger, "info") as mock_info, \
                patch.object(logging.Logger, "error") as mock_error:
            await log_info("Info message")
            await log_error("Error message")

        for mock_call in (mock_info, mock_error):
            extra_data = mock_call.call_args[1]["extra"]["extra_data"]
            assert extra_data["caller_function"] == "test_log_info_and_error_report_real_caller"
