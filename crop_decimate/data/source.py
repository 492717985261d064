"""
MQTT Frame Source
=================

Suscripción upstream a frames de cámara (image + camera_info combinados).

- activate()/deactivate() suscriben/desuscriben el topic de entrada
- Callback de red decodifica y encola (FrameBuffer, drop-oldest)
- Dispatch thread entrega cada par al handler (DeliveryCoordinator.on_frame)

El cliente MQTT queda conectado siempre; solo la suscripción es lazy.
"""
import json
import logging
from threading import Event, Lock, Thread
from typing import Callable, Optional, Tuple

import paho.mqtt.client as mqtt

from .buffer import FrameBuffer
from .codec import CodecError, decode_pair
from ..delivery.interfaces import FrameSource
from ..transform import CalibrationRecord, Frame
from ..logging import log_error_with_context

logger = logging.getLogger(__name__)

FrameHandler = Callable[[Frame, CalibrationRecord], None]


class MQTTFrameSource(FrameSource):
    """
    FrameSource sobre MQTT con cola acotada.

    Usage:
        source = MQTTFrameSource(broker_host="localhost", input_topic="camera/image_raw")
        source.set_frame_handler(coordinator.on_frame)
        source.connect()
        source.activate()   # normalmente lo hace el coordinator
    """

    def __init__(
        self,
        broker_host: str,
        broker_port: int = 1883,
        input_topic: str = "camera/image_raw",
        client_id: str = "crop_decimate_source",
        username: Optional[str] = None,
        password: Optional[str] = None,
        queue_size: int = 5,
        qos: int = 0,
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.input_topic = input_topic
        self.client_id = client_id
        self.qos = qos

        self.buffer: FrameBuffer[Tuple[Frame, CalibrationRecord]] = FrameBuffer(maxsize=queue_size)
        self._handler: Optional[FrameHandler] = None

        self.client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id,
            protocol=mqtt.MQTTv5,
        )
        if username and password:
            self.client.username_pw_set(username, password)

        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message

        self._connected = Event()
        self._active = False
        self._lock = Lock()

        self._stop = Event()
        self._dispatcher: Optional[Thread] = None
        self._invalid = 0

    def set_frame_handler(self, handler: FrameHandler):
        self._handler = handler

    # ------------------------------------------------------------------
    # FrameSource
    # ------------------------------------------------------------------

    @property
    def active(self) -> bool:
        with self._lock:
            return self._active

    def activate(self) -> None:
        with self._lock:
            if self._active:
                return
            self._active = True
            if self._connected.is_set():
                self.client.subscribe(self.input_topic, qos=self.qos)

        logger.info(
            "Upstream subscription activated",
            extra={
                "component": "frame_source",
                "event": "subscribed",
                "topic": self.input_topic,
                "queue_size": self.buffer.maxsize,
            }
        )

    def deactivate(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._active = False
            if self._connected.is_set():
                self.client.unsubscribe(self.input_topic)

        discarded = self.buffer.clear()
        logger.info(
            "Upstream subscription deactivated",
            extra={
                "component": "frame_source",
                "event": "unsubscribed",
                "topic": self.input_topic,
                "discarded_frames": discarded,
            }
        )

    # ------------------------------------------------------------------
    # MQTT callbacks
    # ------------------------------------------------------------------

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            log_error_with_context(
                logger,
                message=f"❌ Error conectando Frame Source: {reason_code}",
                component="frame_source",
                event="connection_failed",
                broker_host=self.broker_host,
                broker_port=self.broker_port,
            )
            return

        self._connected.set()
        # Reconexión: restaurar suscripción si estaba activa
        with self._lock:
            if self._active:
                self.client.subscribe(self.input_topic, qos=self.qos)

        logger.info(
            "✅ Frame Source conectado",
            extra={
                "component": "frame_source",
                "event": "connected",
                "broker_host": self.broker_host,
                "broker_port": self.broker_port,
            }
        )

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties=None):
        logger.warning(
            "⚠️ Frame Source desconectado",
            extra={
                "component": "frame_source",
                "event": "disconnected",
                "reason_code": str(reason_code),
            }
        )
        self._connected.clear()

    def _on_message(self, client, userdata, msg):
        # Mensajes en vuelo después de unsubscribe
        if not self.active:
            return

        try:
            payload = json.loads(msg.payload.decode('utf-8'))
            pair = decode_pair(payload)
        except (json.JSONDecodeError, UnicodeDecodeError, CodecError) as e:
            self._invalid += 1
            logger.warning(
                f"⚠️ Frame upstream inválido: {e}",
                extra={
                    "component": "frame_source",
                    "event": "frame_invalid",
                    "mqtt_topic": msg.topic,
                    "invalid_count": self._invalid,
                }
            )
            return
        except Exception as e:
            self._invalid += 1
            log_error_with_context(
                logger,
                message="❌ Error procesando frame upstream",
                exception=e,
                component="frame_source",
                event="frame_error",
                mqtt_topic=msg.topic,
            )
            return

        self.buffer.put(pair)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _dispatch_loop(self):
        while not self._stop.is_set():
            pair = self.buffer.get(timeout=0.1)
            if pair is None or self._handler is None:
                continue
            try:
                self._handler(*pair)
            except Exception as e:
                log_error_with_context(
                    logger,
                    message="❌ Error entregando frame",
                    exception=e,
                    component="frame_source",
                    event="dispatch_error",
                )

    def connect(self, timeout: float = 5.0) -> bool:
        """Conecta al broker y arranca el dispatch thread."""
        try:
            logger.info(
                "🔌 Conectando Frame Source",
                extra={
                    "component": "frame_source",
                    "event": "connecting",
                    "broker_host": self.broker_host,
                    "broker_port": self.broker_port,
                }
            )
            self._stop.clear()
            self._dispatcher = Thread(target=self._dispatch_loop, name="frame_dispatch", daemon=True)
            self._dispatcher.start()

            self.client.connect(self.broker_host, self.broker_port, keepalive=60)
            self.client.loop_start()
            return self._connected.wait(timeout=timeout)
        except Exception as e:
            log_error_with_context(
                logger,
                message="❌ Error conectando Frame Source",
                exception=e,
                component="frame_source",
                event="connection_error",
                broker_host=self.broker_host,
                broker_port=self.broker_port,
            )
            return False

    def disconnect(self):
        """Detiene dispatch y desconecta del broker."""
        logger.info(
            "🔌 Desconectando Frame Source",
            extra={"component": "frame_source", "event": "disconnecting"}
        )
        self._stop.set()
        if self._dispatcher is not None:
            self._dispatcher.join(timeout=2.0)
        self.client.loop_stop()
        self.client.disconnect()

    def get_stats(self):
        return {
            "active": self.active,
            "connected": self._connected.is_set(),
            "topic": self.input_topic,
            "queued": self.buffer.size,
            "received": self.buffer.total_put,
            "dropped": self.buffer.dropped_count,
            "invalid": self._invalid,
        }
