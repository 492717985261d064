"""
Threading Timers
================

Timers periódicos con threads daemon (un thread por timer armado).
"""
import logging
import math
from threading import Event, Thread
from typing import Callable

from .interfaces import TimerHandle, TimerService
from ..logging import log_error_with_context

logger = logging.getLogger(__name__)


class PeriodicTimer(TimerHandle):
    """
    Ejecuta callback cada `period` segundos hasta cancel().

    cancel() solo setea el stop event: nunca hace join, así puede llamarse
    con el lock del coordinator tomado mientras un tick espera ese lock.
    """

    def __init__(self, period: float, callback: Callable[[], None], name: str = "periodic_timer"):
        if not math.isfinite(period) or period <= 0:
            raise ValueError(f"period must be > 0, got {period}")

        self.period = period
        self._callback = callback
        self._stopped = Event()
        self._thread = Thread(target=self._run, name=name, daemon=True)

    def start(self) -> 'PeriodicTimer':
        self._thread.start()
        return self

    def _run(self):
        while not self._stopped.wait(self.period):
            try:
                self._callback()
            except Exception as e:
                log_error_with_context(
                    logger,
                    message="❌ Error en callback de timer",
                    exception=e,
                    component="timer",
                    event="timer_callback_error",
                    period=self.period,
                )

    def cancel(self) -> None:
        self._stopped.set()

    @property
    def cancelled(self) -> bool:
        return self._stopped.is_set()

    def join(self, timeout: float = None):
        """Espera a que el thread termine (solo para cleanup/tests)."""
        self._thread.join(timeout=timeout)


class ThreadingTimerService(TimerService):
    """TimerService basado en PeriodicTimer."""

    def start(self, period: float, callback: Callable[[], None]) -> PeriodicTimer:
        logger.debug(
            f"⏱️ Timer armado cada {period:.4f}s",
            extra={"component": "timer", "event": "timer_started", "period": period}
        )
        return PeriodicTimer(period, callback).start()
