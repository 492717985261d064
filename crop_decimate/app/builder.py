"""
Service Builder
===============

Builder para construir el servicio con todas sus dependencias.

Responsabilidad:
- Construir Data Plane, Frame Source, Timer Service y Control Plane
- Construir DeliveryCoordinator con los colaboradores inyectados
- Cablear callbacks (frames, requests, presencia)

Controller solo usa Builder (no conoce detalles de construcción).
"""
import logging

from ..config import CropDecimateConfig
from ..control import MQTTControlPlane
from ..data import MQTTDataPlane, MQTTFrameSource
from ..delivery import DeliveryCoordinator, ThreadingTimerService, TimerService

logger = logging.getLogger(__name__)


class ServiceBuilder:
    """
    Builder del servicio crop/decimate.

    Usage:
        builder = ServiceBuilder(config)

        data_plane = builder.build_data_plane()
        frame_source = builder.build_frame_source()
        coordinator = builder.build_coordinator(frame_source, data_plane)
        control_plane = builder.build_control_plane(coordinator)
    """

    def __init__(self, config: CropDecimateConfig):
        self.config = config

    def _client_id(self, role: str) -> str:
        return f"{self.config.mqtt.client_id_prefix}_{role}"

    def build_data_plane(self) -> MQTTDataPlane:
        mqtt_cfg = self.config.mqtt
        logger.info(
            "Building data plane",
            extra={"component": "builder", "event": "data_plane_build"}
        )
        return MQTTDataPlane(
            broker_host=mqtt_cfg.broker.host,
            broker_port=mqtt_cfg.broker.port,
            output_topic=mqtt_cfg.topics.output,
            presence_topic=mqtt_cfg.topics.presence,
            client_id=self._client_id("data"),
            username=mqtt_cfg.broker.username,
            password=mqtt_cfg.broker.password,
            qos=mqtt_cfg.qos.data,
            presence_qos=mqtt_cfg.qos.control,
        )

    def build_frame_source(self) -> MQTTFrameSource:
        mqtt_cfg = self.config.mqtt
        logger.info(
            "Building frame source",
            extra={
                "component": "builder",
                "event": "frame_source_build",
                "queue_size": self.config.delivery.queue_size,
            }
        )
        return MQTTFrameSource(
            broker_host=mqtt_cfg.broker.host,
            broker_port=mqtt_cfg.broker.port,
            input_topic=mqtt_cfg.topics.input,
            client_id=self._client_id("source"),
            username=mqtt_cfg.broker.username,
            password=mqtt_cfg.broker.password,
            queue_size=self.config.delivery.queue_size,
            qos=mqtt_cfg.qos.data,
        )

    def build_coordinator(
        self,
        frame_source: MQTTFrameSource,
        data_plane: MQTTDataPlane,
        timer_service: TimerService = None,
    ) -> DeliveryCoordinator:
        """
        Construye el coordinator y cablea frames + presencia hacia él.

        Args:
            frame_source: Fuente upstream
            data_plane: Sink downstream (con subscriber tracking)
            timer_service: Timers (default: ThreadingTimerService)
        """
        coordinator = DeliveryCoordinator(
            frame_source=frame_source,
            sink=data_plane,
            timer_service=timer_service or ThreadingTimerService(),
            max_publish_frequency=self.config.delivery.max_video_framerate,
        )

        frame_source.set_frame_handler(coordinator.on_frame)
        data_plane.add_subscriber_listener(coordinator.on_subscribers_changed)

        logger.info(
            "Delivery coordinator built",
            extra={
                "component": "builder",
                "event": "coordinator_build",
                "max_video_framerate": self.config.delivery.max_video_framerate,
            }
        )
        return coordinator

    def build_control_plane(self, coordinator: DeliveryCoordinator) -> MQTTControlPlane:
        mqtt_cfg = self.config.mqtt
        control_plane = MQTTControlPlane(
            broker_host=mqtt_cfg.broker.host,
            broker_port=mqtt_cfg.broker.port,
            requests_topic=mqtt_cfg.topics.requests,
            commands_topic=mqtt_cfg.topics.commands,
            status_topic=mqtt_cfg.topics.status,
            client_id=self._client_id("control"),
            username=mqtt_cfg.broker.username,
            password=mqtt_cfg.broker.password,
            qos=mqtt_cfg.qos.control,
        )
        control_plane.set_request_handler(coordinator.on_request)
        return control_plane
