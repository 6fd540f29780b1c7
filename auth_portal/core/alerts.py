"""Состояние алертов страницы с автоматическим скрытием."""

import logging
from dataclasses import dataclass
from typing import Optional

from auth_portal.constants import TASK_ALERT_DISMISS
from auth_portal.core.timers import TaskScheduler

logger = logging.getLogger(__name__)


@dataclass
class Alert:
    """Видимый алерт"""

    title: str
    message: str


class AlertController:
    """
    Один success и один error алерт на страницу.

    Новый error алерт отменяет таймер скрытия предыдущего.
    """

    def __init__(self, scheduler: TaskScheduler, task_name: str = TASK_ALERT_DISMISS) -> None:
        self.scheduler = scheduler
        self.task_name = task_name
        self.success: Optional[Alert] = None
        self.error: Optional[Alert] = None

    def show_success(self, title: str, message: str) -> None:
        self.error = None
        self.scheduler.cancel(self.task_name)
        self.success = Alert(title=title, message=message)

    def show_error(self, title: str, message: str, seconds: Optional[float] = None) -> None:
        self.error = Alert(title=title, message=message)
        if seconds is None:
            self.scheduler.cancel(self.task_name)
        else:
            self.scheduler.schedule(self.task_name, seconds, self.hide_error)
        logger.debug(f"Error alert shown: {message}")

    def hide_error(self) -> None:
        self.error = None

    def clear(self) -> None:
        self.success = None
        self.error = None
        self.scheduler.cancel(self.task_name)
