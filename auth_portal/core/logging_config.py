"""
Логирование клиента аутентификации.

Консоль: цветной формат при разработке или JSON. Файл: всегда JSON.
Значения с токенами и паролями в ``extra`` маскируются фильтром.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Атрибуты LogRecord, которые не являются полями extra
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

SENSITIVE_KEYS = frozenset(
    {
        "token",
        "access_token",
        "refresh_token",
        "refreshToken",
        "id_token",
        "idToken",
        "password",
        "confirm_password",
        "current_password",
        "new_password",
        "Authorization",
    }
)

MASK = "***"


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS}


class SensitiveDataFilter(logging.Filter):
    """Маскирует токены и пароли, переданные через extra (включая вложенный headers)"""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _extra_fields(record).items():
            if key in SENSITIVE_KEYS and value:
                setattr(record, key, MASK)
            elif isinstance(value, dict):
                setattr(record, key, {k: MASK if k in SENSITIVE_KEYS and v else v for k, v in value.items()})
        return True


class JSONFormatter(logging.Formatter):
    """Одна JSON строка на запись, поля extra попадают на верхний уровень"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(_extra_fields(record))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class ColoredFormatter(logging.Formatter):
    """Цветной уровень для консоли (разработка)"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # Копия записи, чтобы цвет не попал в файловый handler
        colored = logging.makeLogRecord(vars(record))
        colored.levelname = f"{self.COLORS.get(record.levelname, '')}{record.levelname}{self.RESET}"
        return super().format(colored)


def setup_logging(
    level: str = "INFO",
    json_logs: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """
    Настройка логирования.

    Streamlit перезапускает скрипт страницы на каждое действие, поэтому
    обработчики корневого логгера заменяются, а не добавляются.

    Args:
        level: Уровень логирования
        json_logs: JSON в консоль (production)
        log_file: Путь к файлу логов (опционально)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []

    redact = SensitiveDataFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.addFilter(redact)
    if json_logs:
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(
            ColoredFormatter(
                "[AUTH_PORTAL] %(asctime)s %(levelname)s %(name)s: %(message)s",
                datefmt="%H:%M:%S",
            )
        )
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.addFilter(redact)
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    for noisy in ("urllib3", "watchdog"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    root_logger.info("Logging configured", extra={"log_level": level, "json_logs": json_logs})
