"""
Frame Buffer
============

Cola acotada thread-safe entre el callback MQTT y el dispatch thread.

- Tamaño máximo fijo (drop-oldest al llenarse)
- No procesa ni modifica frames
- Métricas mínimas (dropped, total_put)
"""
import logging
import queue
from typing import Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FrameBuffer(Generic[T]):
    """
    Cola acotada con política drop-oldest.

    Example:
        buffer = FrameBuffer(maxsize=5)
        buffer.put(item)            # callback de red
        item = buffer.get(timeout=0.5)  # dispatch thread
    """

    def __init__(self, maxsize: int = 5) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")

        self._maxsize = maxsize
        self._queue: "queue.Queue[T]" = queue.Queue(maxsize=maxsize)
        self._dropped_count = 0
        self._total_put = 0

    @property
    def maxsize(self) -> int:
        return self._maxsize

    @property
    def size(self) -> int:
        return self._queue.qsize()

    @property
    def dropped_count(self) -> int:
        return self._dropped_count

    @property
    def total_put(self) -> int:
        return self._total_put

    def put(self, item: T) -> bool:
        """
        Agrega item, descartando el más viejo si está lleno.

        Returns:
            True si no hubo descarte
        """
        self._total_put += 1
        dropped = False

        while True:
            try:
                self._queue.put_nowait(item)
                break
            except queue.Full:
                try:
                    self._queue.get_nowait()
                    self._dropped_count += 1
                    dropped = True
                except queue.Empty:
                    pass

        if dropped:
            logger.debug(
                f"Buffer full, dropped oldest frame. Total dropped: {self._dropped_count}",
                extra={"component": "frame_buffer", "event": "frame_dropped"}
            )
        return not dropped

    def get(self, timeout: Optional[float] = None) -> Optional[T]:
        """Saca el item más viejo; None si vence el timeout."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def clear(self) -> int:
        """Vacía la cola. Retorna cantidad descartada."""
        cleared = 0
        while True:
            try:
                self._queue.get_nowait()
                cleared += 1
            except queue.Empty:
                return cleared
