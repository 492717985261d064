"""
Collaborator Interfaces
=======================

Contratos que el DeliveryCoordinator consume (inyectados por el builder).

- FrameSource: suscripción upstream que se puede activar/desactivar
- FrameSink: publicación downstream + cantidad de suscriptores
- TimerService / TimerHandle: timers periódicos cancelables

Diseño: los tests usan fakes en memoria que heredan de estas clases,
sin broker MQTT ni threads reales.
"""
from abc import ABC, abstractmethod
from typing import Callable

from ..transform import CalibrationRecord, Frame


class FrameSource(ABC):
    """Fuente upstream de pares (Frame, CalibrationRecord)."""

    @abstractmethod
    def activate(self) -> None:
        """Suscribe al upstream (idempotente)."""

    @abstractmethod
    def deactivate(self) -> None:
        """Cancela la suscripción upstream (idempotente)."""

    @property
    @abstractmethod
    def active(self) -> bool:
        """True si la suscripción upstream está activa."""


class FrameSink(ABC):
    """Destino downstream de frames transformados."""

    @abstractmethod
    def publish(self, frame: Frame, calib: CalibrationRecord) -> None:
        """Publica un par transformado."""

    @property
    @abstractmethod
    def subscriber_count(self) -> int:
        """Cantidad de consumidores downstream conectados."""


class TimerHandle(ABC):
    """Timer periódico armado."""

    @abstractmethod
    def cancel(self) -> None:
        """Detiene los ticks futuros. No bloquea."""


class TimerService(ABC):
    """Servicio de timers periódicos."""

    @abstractmethod
    def start(self, period: float, callback: Callable[[], None]) -> TimerHandle:
        """Arma callback cada `period` segundos."""
