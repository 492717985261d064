"""
MQTT Control Plane
==================

Control Plane del servicio vía MQTT (QoS 1).

Dos entradas:
- requests topic: image requests (crop/decimación/modo) → request handler
- commands topic: comandos de servicio ({"command": "status"}) → CommandRegistry

Cada mensaje se procesa bajo un trace_id propio (trace_context).
"""
import json
import logging
from datetime import datetime
from threading import Event
from typing import Any, Callable, Dict, Optional

import paho.mqtt.client as mqtt
from pydantic import ValidationError

from .registry import CommandRegistry, CommandNotAvailableError
from .requests import parse_image_request
from ..delivery import DeliveryRequest
from ..logging import (
    trace_context,
    generate_trace_id,
    log_error_with_context,
)

logger = logging.getLogger(__name__)

RequestHandler = Callable[[DeliveryRequest], None]


class MQTTControlPlane:
    """
    Control Plane para el servicio crop/decimate.

    Usage:
        control_plane = MQTTControlPlane(broker_host="localhost")
        control_plane.set_request_handler(coordinator.on_request)
        control_plane.command_registry.register('stop', controller.stop, "Detiene")
        control_plane.connect()
    """

    def __init__(
        self,
        broker_host: str,
        broker_port: int = 1883,
        requests_topic: str = "camera_out/image_request",
        commands_topic: str = "camera_out/commands",
        status_topic: str = "camera_out/status",
        client_id: str = "crop_decimate_control",
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1,
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.requests_topic = requests_topic
        self.commands_topic = commands_topic
        self.status_topic = status_topic
        self.client_id = client_id
        self.qos = qos

        self.command_registry = CommandRegistry()
        self._request_handler: Optional[RequestHandler] = None

        self.client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id,
            protocol=mqtt.MQTTv5,
        )
        if username and password:
            self.client.username_pw_set(username, password)

        self.client.on_connect = self._on_connect
        self.client.on_message = self._on_message
        self.client.on_disconnect = self._on_disconnect

        self._connected = Event()

    def set_request_handler(self, handler: RequestHandler):
        self._request_handler = handler

    # ------------------------------------------------------------------
    # MQTT callbacks
    # ------------------------------------------------------------------

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        """Callback cuando se conecta al broker"""
        if reason_code.is_failure:
            logger.error(
                "Failed to connect to MQTT broker",
                extra={
                    "component": "control_plane",
                    "event": "connection_error",
                    "broker_host": self.broker_host,
                    "broker_port": self.broker_port,
                    "reason_code": str(reason_code),
                }
            )
            return

        logger.info(
            "Control Plane connected to broker",
            extra={
                "component": "control_plane",
                "event": "broker_connected",
                "broker_host": self.broker_host,
                "broker_port": self.broker_port,
            }
        )
        for topic in (self.requests_topic, self.commands_topic):
            self.client.subscribe(topic, qos=self.qos)
            logger.info(
                "Subscribed to control topic",
                extra={
                    "component": "control_plane",
                    "event": "topic_subscribed",
                    "topic": topic,
                    "qos": self.qos,
                }
            )
        self._connected.set()
        self.publish_status("connected")

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties=None):
        """Callback cuando se desconecta del broker"""
        logger.warning(
            "Control Plane disconnected from broker",
            extra={
                "component": "control_plane",
                "event": "broker_disconnected",
                "reason_code": str(reason_code),
            }
        )
        self._connected.clear()

    def _on_message(self, client, userdata, msg):
        """Dispatch por topic: requests o commands."""
        if msg.topic == self.requests_topic:
            self._handle_request_message(msg)
        elif msg.topic == self.commands_topic:
            self._handle_command_message(msg)
        else:
            logger.debug(
                f"Mensaje ignorado en topic {msg.topic}",
                extra={"component": "control_plane", "mqtt_topic": msg.topic}
            )

    def _handle_request_message(self, msg):
        with trace_context(generate_trace_id(prefix="req")):
            try:
                request = parse_image_request(msg.payload)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                logger.error(
                    f"❌ Error decodificando image request: {e}",
                    extra={
                        "component": "control_plane",
                        "event": "request_invalid_json",
                        "mqtt_topic": msg.topic,
                        "raw_payload": str(msg.payload[:256]),
                    }
                )
                return
            except ValidationError as e:
                logger.warning(
                    "⚠️ Image request inválida, descartada",
                    extra={
                        "component": "control_plane",
                        "event": "request_invalid",
                        "mqtt_topic": msg.topic,
                        "errors": [
                            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                            for err in e.errors()
                        ],
                    }
                )
                return

            if self._request_handler is None:
                logger.warning(
                    "⚠️ Sin request handler registrado, request descartada",
                    extra={"component": "control_plane", "event": "request_unhandled"}
                )
                return

            try:
                self._request_handler(request)
            except Exception as e:
                log_error_with_context(
                    logger,
                    message="Error procesando image request",
                    exception=e,
                    component="control_plane",
                    event="request_processing_error",
                    mqtt_topic=msg.topic,
                )

    def _handle_command_message(self, msg):
        try:
            command_data = json.loads(msg.payload.decode('utf-8'))
            command = str(command_data.get('command', '')).lower()
        except (json.JSONDecodeError, UnicodeDecodeError, AttributeError):
            logger.error(
                f"❌ Error decodificando comando: {msg.payload}",
                extra={
                    "component": "control_plane",
                    "mqtt_topic": msg.topic,
                    "raw_payload": str(msg.payload),
                }
            )
            return

        trace_id = generate_trace_id(prefix=f"cmd-{command}")
        with trace_context(trace_id):
            logger.info(
                f"📥 Comando recibido: {command}",
                extra={
                    "component": "control_plane",
                    "command": command,
                    "mqtt_topic": msg.topic,
                    "payload": command_data,
                }
            )
            try:
                self.command_registry.execute(command)
            except CommandNotAvailableError as e:
                logger.warning(
                    f"⚠️ {e}",
                    extra={
                        "command": command,
                        "available_commands": sorted(self.command_registry.available_commands),
                    }
                )
            except Exception as e:
                log_error_with_context(
                    logger,
                    message="Error ejecutando comando",
                    exception=e,
                    component="control_plane",
                    event="command_error",
                    command=command,
                )

    # ------------------------------------------------------------------
    # Status / lifecycle
    # ------------------------------------------------------------------

    def publish_status(self, status: str, details: Optional[Dict[str, Any]] = None):
        """
        Publica el estado actual (retained).

        Args:
            status: Estado ("connected", "running", "stopped", ...)
            details: Campos extra (ej: stats del coordinator)
        """
        message = {
            "status": status,
            "timestamp": datetime.now().isoformat(),
            "client_id": self.client_id,
        }
        if details:
            message["details"] = details

        self.client.publish(
            self.status_topic,
            json.dumps(message, default=str),
            qos=self.qos,
            retain=True
        )
        logger.info(
            "Status published",
            extra={
                "component": "control_plane",
                "event": "status_published",
                "status": status,
                "topic": self.status_topic,
            }
        )

    def connect(self, timeout: float = 5.0) -> bool:
        """Conecta al broker MQTT"""
        try:
            logger.info(
                "Connecting to MQTT broker",
                extra={
                    "component": "control_plane",
                    "event": "connection_attempt",
                    "broker_host": self.broker_host,
                    "broker_port": self.broker_port,
                }
            )
            # Status "offline" si el servicio muere sin disconnect
            self.client.will_set(
                self.status_topic,
                json.dumps({"status": "offline", "client_id": self.client_id}),
                qos=self.qos,
                retain=True,
            )
            self.client.connect(self.broker_host, self.broker_port, keepalive=60)
            self.client.loop_start()
            return self._connected.wait(timeout=timeout)
        except Exception as e:
            log_error_with_context(
                logger,
                message="Failed to connect to MQTT",
                exception=e,
                component="control_plane",
                event="connection_exception",
                broker_host=self.broker_host,
                broker_port=self.broker_port,
            )
            return False

    def disconnect(self):
        """Desconecta del broker MQTT"""
        logger.info("🔌 Desconectando Control Plane...")
        self.publish_status("disconnected")
        self.client.loop_stop()
        self.client.disconnect()
