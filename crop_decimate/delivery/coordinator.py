"""
Delivery Coordinator
====================

Máquina de estados request-driven que decide cuándo correr el engine.

Estados:
- Idle: nunca llegó una request (frames se cachean, nada se publica)
- Active(mode): ONCE | RATE_LIMITED | FREE_RUN

Triggers (todos serializados con un único lock):
- on_frame: cachea (last-write-wins); publica solo en FREE_RUN
- on_request: reemplaza request, publica una vez, (re)arma timer en RATE_LIMITED
- tick de timer: publica solo si sigue en RATE_LIMITED y el timer es el vigente
- on_subscribers_changed: activa/desactiva el upstream (lazy activation)

El transform + publish corre dentro del critical section del trigger
(nunca se reordena una publicación respecto de su request/frame).
"""
import logging
import math
from functools import partial
from threading import RLock
from typing import Any, Callable, Dict, Optional, Tuple

from .interfaces import FrameSink, FrameSource, TimerHandle, TimerService
from .modes import DeliveryMode, DeliveryRequest
from ..transform import (
    CalibrationRecord,
    Frame,
    TransformConfig,
    TransformError,
    transform,
)
from ..logging import log_image_request, log_transform_skipped

logger = logging.getLogger(__name__)

DEFAULT_MAX_PUBLISH_FREQUENCY = 100.0

TransformFn = Callable[
    [TransformConfig, Frame, CalibrationRecord],
    Tuple[Frame, CalibrationRecord],
]


class NoDataYet(Exception):
    """Trigger antes de recibir frame + calibración (no-op normal)."""
    pass


class DeliveryCoordinator:
    """
    Coordina frames, requests y timers para un output.

    Usage:
        coordinator = DeliveryCoordinator(
            frame_source=source,
            sink=data_plane,
            timer_service=ThreadingTimerService(),
            max_publish_frequency=100.0,
        )
        coordinator.start()  # sincroniza upstream con subscriber_count

        coordinator.on_request(request)       # desde Control Plane
        coordinator.on_frame(frame, calib)    # desde FrameSource
        coordinator.on_subscribers_changed(n) # desde Data Plane
    """

    def __init__(
        self,
        frame_source: FrameSource,
        sink: FrameSink,
        timer_service: TimerService,
        max_publish_frequency: float = DEFAULT_MAX_PUBLISH_FREQUENCY,
        transform_fn: TransformFn = transform,
    ):
        """
        Args:
            frame_source: Suscripción upstream (activable)
            sink: Destino de publicación (con subscriber_count)
            timer_service: Servicio de timers periódicos
            max_publish_frequency: Techo duro (Hz) para RATE_LIMITED
            transform_fn: Engine (inyectable para tests)
        """
        if max_publish_frequency <= 0:
            raise ValueError(
                f"max_publish_frequency must be > 0, got {max_publish_frequency}"
            )

        self._frame_source = frame_source
        self._sink = sink
        self._timer_service = timer_service
        self._max_publish_frequency = max_publish_frequency
        self._transform = transform_fn

        self._lock = RLock()

        # Cache (last-write-wins)
        self._last_frame: Optional[Frame] = None
        self._last_calib: Optional[CalibrationRecord] = None

        # Request activa (None = Idle)
        self._request: Optional[DeliveryRequest] = None

        # Timer (solo RATE_LIMITED)
        self._timer: Optional[TimerHandle] = None
        self._timer_generation = 0
        self._effective_frequency: Optional[float] = None

        # Contadores
        self._published = 0
        self._failed = 0
        self._skipped = 0

    # ------------------------------------------------------------------
    # Estado
    # ------------------------------------------------------------------

    @property
    def mode(self) -> Optional[DeliveryMode]:
        """Modo activo o None si Idle."""
        with self._lock:
            return self._request.mode if self._request else None

    @property
    def is_idle(self) -> bool:
        with self._lock:
            return self._request is None

    @property
    def effective_frequency(self) -> Optional[float]:
        """Frecuencia del timer armado (None si no hay timer)."""
        with self._lock:
            return self._effective_frequency

    @property
    def has_cached_frame(self) -> bool:
        with self._lock:
            return self._last_frame is not None and self._last_calib is not None

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def start(self):
        """Sincroniza la suscripción upstream con los consumidores actuales."""
        self.on_subscribers_changed(self._sink.subscriber_count)

    def on_frame(self, frame: Frame, calib: CalibrationRecord):
        """Frame + calibración upstream."""
        with self._lock:
            self._last_frame = frame
            self._last_calib = calib

            if self._request is None:
                return

            # ONCE y RATE_LIMITED solo cachean
            if self._request.mode is DeliveryMode.FREE_RUN:
                self._publish_cropped(trigger="frame")

    def on_request(self, request: DeliveryRequest):
        """
        Nueva request: reemplaza la anterior por completo.

        Siempre publica una vez (si hay cache) antes de considerar el modo.
        """
        with self._lock:
            log_image_request(logger, request)

            self._request = request
            self._cancel_timer()

            self._publish_cropped(trigger="request")

            if request.mode is DeliveryMode.RATE_LIMITED:
                self._arm_timer(request.publish_frequency)
            elif request.mode is DeliveryMode.ONCE:
                logger.debug(
                    "ONCE: sin publicaciones automáticas hasta la próxima request",
                    extra={"component": "delivery", "event": "once_latched"}
                )
            else:
                logger.debug(
                    "FREE_RUN: publicando cada frame recibido",
                    extra={"component": "delivery", "event": "free_run_enabled"}
                )

    def on_subscribers_changed(self, count: int):
        """
        Lazy activation del upstream.

        0 → desactiva; >= 1 con upstream inactivo → activa.
        """
        with self._lock:
            if count <= 0:
                if self._frame_source.active:
                    self._frame_source.deactivate()
                    logger.info(
                        "🔕 Sin consumidores, upstream desactivado",
                        extra={"component": "delivery", "event": "upstream_deactivated"}
                    )
            elif not self._frame_source.active:
                self._frame_source.activate()
                logger.info(
                    "📡 Subscribed to camera",
                    extra={
                        "component": "delivery",
                        "event": "upstream_activated",
                        "subscriber_count": count,
                    }
                )

    def _on_timer_tick(self, generation: int):
        with self._lock:
            # Tick tardío de un timer reemplazado
            if generation != self._timer_generation or self._timer is None:
                return

            if self._request is None or self._request.mode is not DeliveryMode.RATE_LIMITED:
                return

            self._publish_cropped(trigger="timer")

    def shutdown(self):
        """Cancela timer y desactiva upstream."""
        with self._lock:
            self._cancel_timer()
            if self._frame_source.active:
                self._frame_source.deactivate()
            logger.info(
                "🛑 Delivery coordinator detenido",
                extra={"component": "delivery", "event": "shutdown", **self._stats_unlocked()}
            )

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------

    def _arm_timer(self, requested_frequency: float):
        effective = min(requested_frequency, self._max_publish_frequency)

        if not math.isfinite(effective) or effective <= 0:
            logger.info(
                "⏸️ Frecuencia inválida o <= 0: request latcheada sin auto-repeat",
                extra={
                    "component": "delivery",
                    "event": "timer_not_armed",
                    "requested_frequency": requested_frequency,
                }
            )
            return

        self._timer_generation += 1
        self._effective_frequency = effective
        self._timer = self._timer_service.start(
            1.0 / effective,
            partial(self._on_timer_tick, self._timer_generation),
        )

        if effective < requested_frequency:
            logger.info(
                f"⏱️ Frecuencia acotada: {requested_frequency} Hz → {effective} Hz",
                extra={
                    "component": "delivery",
                    "event": "frequency_capped",
                    "requested_frequency": requested_frequency,
                    "effective_frequency": effective,
                }
            )
        else:
            logger.info(
                f"⏱️ Timer armado a {effective} Hz",
                extra={
                    "component": "delivery",
                    "event": "timer_armed",
                    "effective_frequency": effective,
                }
            )

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._timer_generation += 1
        self._effective_frequency = None

    # ------------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------------

    def _publish_cropped(self, trigger: str) -> bool:
        """
        Transforma el par cacheado y publica.

        Errores del engine y NoDataYet se loggean y se cuentan; nunca
        modifican modo ni cache.

        Returns:
            True si se publicó
        """
        if not self._frame_source.active:
            self._skipped += 1
            log_transform_skipped(logger, reason="UpstreamInactive", trigger=trigger)
            return False

        try:
            if self._last_frame is None or self._last_calib is None:
                raise NoDataYet("No frame/calibration received yet")

            frame_out, calib_out = self._transform(
                self._request.config, self._last_frame, self._last_calib
            )
        except NoDataYet:
            self._skipped += 1
            log_transform_skipped(logger, reason="NoDataYet", trigger=trigger)
            return False
        except TransformError as e:
            self._failed += 1
            log_transform_skipped(
                logger, reason=type(e).__name__, trigger=trigger, error=e
            )
            return False

        self._sink.publish(frame_out, calib_out)
        self._published += 1
        return True

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def _stats_unlocked(self) -> Dict[str, Any]:
        return {
            "state": "idle" if self._request is None else "active",
            "mode": self._request.mode.value if self._request else None,
            "effective_frequency": self._effective_frequency,
            "has_cached_frame": self._last_frame is not None and self._last_calib is not None,
            "upstream_active": self._frame_source.active,
            "published": self._published,
            "failed": self._failed,
            "skipped": self._skipped,
        }

    def stats(self) -> Dict[str, Any]:
        """Snapshot del estado (para el comando 'stats')."""
        with self._lock:
            return self._stats_unlocked()
