"""
MQTT Data Plane
===============

Data Plane para publicar frames recortados vía MQTT (QoS 0 por defecto).
Fire-and-forget para máxima performance.

Además escucha anuncios de presencia de consumidores para exponer
subscriber_count (base de la lazy activation del upstream).

Diseño:
- MQTTDataPlane = infraestructura MQTT (canal)
- FramePublisher = formato de mensajes
- SubscriberTracker = conteo de consumidores
"""
import json
import logging
from threading import Event, Lock
from typing import Any, Dict

import paho.mqtt.client as mqtt

from .presence import SubscriberListener, SubscriberTracker
from .publishers import FramePublisher
from ..delivery.interfaces import FrameSink
from ..transform import CalibrationRecord, Frame
from ..logging import log_frame_publish, log_error_with_context

logger = logging.getLogger(__name__)


class MQTTDataPlane(FrameSink):
    """
    Data Plane para publicar frames transformados vía MQTT.

    Responsabilidad: Infraestructura MQTT
    - Conecta/desconecta de broker MQTT
    - Publica mensajes formateados por FramePublisher
    - Mantiene subscriber_count desde <presence_topic>/+
    """

    def __init__(
        self,
        broker_host: str,
        broker_port: int = 1883,
        output_topic: str = "camera_out/image_raw",
        presence_topic: str = "camera_out/presence",
        client_id: str = "crop_decimate_data",
        username: str = None,
        password: str = None,
        qos: int = 0,
        presence_qos: int = 1,
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.output_topic = output_topic
        self.presence_topic = presence_topic.rstrip('/')
        self.client_id = client_id
        self.qos = qos
        self.presence_qos = presence_qos

        self.frame_publisher = FramePublisher()
        self.subscribers = SubscriberTracker()

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
        self._lock = Lock()
        self._dropped = 0

    # ------------------------------------------------------------------
    # MQTT callbacks
    # ------------------------------------------------------------------

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        """Callback cuando se conecta al broker"""
        if reason_code.is_failure:
            log_error_with_context(
                logger,
                message=f"❌ Error conectando Data Plane al broker MQTT: {reason_code}",
                component="data_plane",
                event="connection_failed",
                broker_host=self.broker_host,
                broker_port=self.broker_port,
            )
            return

        presence_filter = f"{self.presence_topic}/+"
        self.client.subscribe(presence_filter, qos=self.presence_qos)
        logger.info(
            "✅ Data Plane conectado",
            extra={
                "component": "data_plane",
                "event": "connected",
                "broker_host": self.broker_host,
                "broker_port": self.broker_port,
                "presence_topic": presence_filter,
            }
        )
        self._connected.set()

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties=None):
        """Callback cuando se desconecta del broker"""
        logger.warning(
            "⚠️ Data Plane desconectado",
            extra={
                "component": "data_plane",
                "event": "disconnected",
                "reason_code": str(reason_code),
            }
        )
        self._connected.clear()

    def _on_message(self, client, userdata, msg):
        """Anuncio de presencia: <presence_topic>/<client_id> → {"connected": bool}"""
        try:
            client_id = msg.topic[len(self.presence_topic) + 1:]
            if not client_id:
                return

            if msg.payload:
                announcement = json.loads(msg.payload.decode('utf-8'))
                connected = bool(announcement.get('connected', False))
            else:
                # Retained vacío = consumidor borró su anuncio
                connected = False

            self.subscribers.update(client_id, connected)

        except (json.JSONDecodeError, UnicodeDecodeError, AttributeError) as e:
            logger.warning(
                f"⚠️ Anuncio de presencia inválido: {e}",
                extra={
                    "component": "data_plane",
                    "event": "presence_invalid",
                    "mqtt_topic": msg.topic,
                }
            )
        except Exception as e:
            log_error_with_context(
                logger,
                message="❌ Error procesando presencia",
                exception=e,
                component="data_plane",
                event="presence_error",
                mqtt_topic=msg.topic,
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self, timeout: float = 5.0) -> bool:
        """Conecta al broker MQTT"""
        try:
            logger.info(
                "🔌 Conectando Data Plane",
                extra={
                    "component": "data_plane",
                    "event": "connecting",
                    "broker_host": self.broker_host,
                    "broker_port": self.broker_port,
                    "timeout": timeout,
                }
            )
            self.client.connect(self.broker_host, self.broker_port, keepalive=60)
            self.client.loop_start()
            return self._connected.wait(timeout=timeout)
        except Exception as e:
            log_error_with_context(
                logger,
                message="❌ Error conectando Data Plane",
                exception=e,
                component="data_plane",
                event="connection_error",
                broker_host=self.broker_host,
                broker_port=self.broker_port,
            )
            return False

    def disconnect(self):
        """Desconecta del broker MQTT"""
        logger.info(
            "🔌 Desconectando Data Plane",
            extra={"component": "data_plane", "event": "disconnecting"}
        )
        self.client.loop_stop()
        self.client.disconnect()

    # ------------------------------------------------------------------
    # FrameSink
    # ------------------------------------------------------------------

    @property
    def subscriber_count(self) -> int:
        return self.subscribers.count

    def add_subscriber_listener(self, listener: SubscriberListener):
        """Registra callback(count) para cambios de consumidores."""
        self.subscribers.add_listener(listener)

    def publish(self, frame: Frame, calib: CalibrationRecord) -> None:
        """
        Publica un frame transformado.

        Errores de transporte se loggean, nunca se propagan al coordinator.
        """
        if not self._connected.is_set():
            with self._lock:
                self._dropped += 1
            logger.warning(
                "⚠️ Data Plane no conectado, frame descartado",
                extra={
                    "component": "data_plane",
                    "event": "publish_skipped",
                    "reason": "not_connected",
                }
            )
            return

        try:
            message = self.frame_publisher.format_message(frame, calib)
            payload = json.dumps(message)

            result = self.client.publish(self.output_topic, payload, qos=self.qos)

            log_frame_publish(
                logger,
                topic=self.output_topic,
                qos=self.qos,
                payload_size=len(payload),
                width=frame.width,
                height=frame.height,
                success=result.rc == mqtt.MQTT_ERR_SUCCESS,
                error_code=None if result.rc == mqtt.MQTT_ERR_SUCCESS else result.rc,
            )

        except Exception as e:
            log_error_with_context(
                logger,
                message="❌ Error en publish",
                exception=e,
                component="data_plane",
                event="publish_exception",
                topic=self.output_topic,
            )

    def get_stats(self) -> Dict[str, Any]:
        """Retorna estadísticas del data plane"""
        with self._lock:
            dropped = self._dropped
        return {
            "messages_published": self.frame_publisher.message_count,
            "messages_dropped": dropped,
            "connected": self._connected.is_set(),
            "topic": self.output_topic,
            "subscriber_count": self.subscribers.count,
        }
