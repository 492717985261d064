"""
Consumer Presence
=================

Cuenta consumidores downstream a partir de anuncios de presencia.

MQTT no expone cantidad de suscriptores, así que cada consumidor anuncia
(retained) en <presence_topic>/<client_id>:
    connect:    {"connected": true}
    disconnect: {"connected": false}

Consumidores deben registrar el anuncio de disconnect como Last Will
(retained), así una caída del consumidor también baja el contador y una
reconexión del servicio al broker recupera el estado actual.
"""
import logging
from threading import Lock
from typing import Callable, List, Optional, Set

logger = logging.getLogger(__name__)

SubscriberListener = Callable[[int], None]


class SubscriberTracker:
    """
    Set de client ids conectados + listeners de cambio.

    Listeners se invocan fuera del lock interno con el nuevo count,
    solo cuando el count cambia.
    """

    def __init__(self):
        self._clients: Set[str] = set()
        self._listeners: List[SubscriberListener] = []
        self._lock = Lock()

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._clients)

    @property
    def clients(self) -> Set[str]:
        with self._lock:
            return set(self._clients)

    def add_listener(self, listener: SubscriberListener):
        with self._lock:
            self._listeners.append(listener)

    def update(self, client_id: str, connected: bool) -> Optional[int]:
        """
        Registra un anuncio de presencia.

        Args:
            client_id: ID del consumidor
            connected: True = connect, False = disconnect

        Returns:
            Nuevo count si cambió, None si el anuncio era redundante
        """
        with self._lock:
            before = len(self._clients)
            if connected:
                self._clients.add(client_id)
            else:
                self._clients.discard(client_id)
            after = len(self._clients)
            listeners = list(self._listeners)

        if after == before:
            return None

        logger.info(
            f"👥 Consumidores downstream: {before} → {after}",
            extra={
                "component": "presence",
                "event": "subscriber_count_changed",
                "client_id": client_id,
                "connected": connected,
                "subscriber_count": after,
            }
        )

        for listener in listeners:
            listener(after)

        return after

