"""Отложенные задачи UI с отменой: скрытие алертов, редирект, кулдаун."""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass(order=True)
class ScheduledTask:
    """Задача, которая выполнится не раньше ``due_at``"""

    due_at: float
    name: str = field(compare=False)
    callback: Callable[[], None] = field(compare=False, repr=False)


class TaskScheduler:
    """
    Именованные отложенные задачи, привязанные к жизни страницы/контроллера.

    Новая задача с тем же именем заменяет старую. ``cancel_all`` вызывается
    при teardown, чтобы колбэки не трогали состояние после ухода со страницы.
    Задачи выполняет ``run_pending`` (в Streamlit его дёргает фрагмент
    с ``run_every``).
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._tasks: Dict[str, ScheduledTask] = {}
        self._lock = threading.Lock()

    def schedule(self, name: str, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        task = ScheduledTask(due_at=self._clock() + delay, name=name, callback=callback)
        with self._lock:
            if name in self._tasks:
                logger.debug(f"[TIMERS] Task '{name}' superseded")
            self._tasks[name] = task
        return task

    def cancel(self, name: str) -> bool:
        with self._lock:
            return self._tasks.pop(name, None) is not None

    def cancel_all(self) -> int:
        with self._lock:
            cancelled = len(self._tasks)
            self._tasks.clear()
        if cancelled:
            logger.debug(f"[TIMERS] {cancelled} pending tasks cancelled")
        return cancelled

    def is_scheduled(self, name: str) -> bool:
        with self._lock:
            return name in self._tasks

    def remaining(self, name: str) -> Optional[float]:
        """Секунд до срабатывания задачи или None, если её нет"""
        with self._lock:
            task = self._tasks.get(name)
        if task is None:
            return None
        return max(0.0, task.due_at - self._clock())

    def run_pending(self) -> List[str]:
        """
        Выполнить созревшие задачи в порядке срока.

        Returns:
            Имена выполненных задач
        """
        now = self._clock()
        with self._lock:
            due = sorted(task for task in self._tasks.values() if task.due_at <= now)
            for task in due:
                del self._tasks[task.name]

        for task in due:
            task.callback()
        return [task.name for task in due]
