"""
Crop/Decimate Service Controller
================================

Control Plane: image requests + comandos de servicio vía MQTT
Data Plane: publica frames recortados vía MQTT
Frame Source: suscripción upstream lazy (solo con consumidores)
"""
import signal
import sys
import logging
from pathlib import Path
from threading import Event

from dotenv import load_dotenv
from pydantic import ValidationError

from ..config import CropDecimateConfig, DEFAULT_CONFIG_PATH
from ..logging import setup_logging
from .builder import ServiceBuilder

logger = logging.getLogger(__name__)


class CropDecimateController:
    """
    Controlador del servicio.

    Responsabilidad: Orquestación y lifecycle management
    - Setup de componentes (delega construcción a ServiceBuilder)
    - Comandos de servicio (status/stats/stop)
    - Signal handling (Ctrl+C)
    - Cleanup de recursos
    """

    def __init__(self, config: CropDecimateConfig, builder: ServiceBuilder = None):
        self.config = config
        self.builder = builder or ServiceBuilder(config)

        self.data_plane = None
        self.frame_source = None
        self.coordinator = None
        self.control_plane = None

        self.shutdown_event = Event()

    def setup(self) -> bool:
        """
        Construye y conecta todos los componentes.

        Returns:
            bool: True si setup exitoso, False si falla
        """
        logger.info("🚀 Inicializando servicio crop/decimate...")

        # 1. Data Plane (sink + presencia)
        self.data_plane = self.builder.build_data_plane()
        if not self.data_plane.connect(timeout=10):
            logger.error("❌ No se pudo conectar Data Plane")
            return False

        # 2. Frame Source (conectado, suscripción lazy)
        self.frame_source = self.builder.build_frame_source()
        if not self.frame_source.connect(timeout=10):
            logger.error("❌ No se pudo conectar Frame Source")
            return False

        # 3. Coordinator
        self.coordinator = self.builder.build_coordinator(self.frame_source, self.data_plane)
        self.coordinator.start()

        # 4. Control Plane
        self.control_plane = self.builder.build_control_plane(self.coordinator)
        self._setup_control_commands()
        if not self.control_plane.connect(timeout=10):
            logger.error("❌ No se pudo conectar Control Plane")
            return False

        self.control_plane.publish_status("running")
        logger.info("✅ Setup completado")
        return True

    def _setup_control_commands(self):
        registry = self.control_plane.command_registry
        registry.register('status', self._handle_status, "Publica estado actual")
        registry.register('stats', self._handle_stats, "Publica estadísticas del servicio")
        registry.register('stop', self._handle_stop, "Detiene y finaliza el servicio")

    def _handle_status(self):
        logger.info("📋 Comando STATUS recibido")
        status = "stopping" if self.shutdown_event.is_set() else "running"
        self.control_plane.publish_status(status)

    def _handle_stats(self):
        logger.info("📊 Comando STATS recibido")
        details = {
            "delivery": self.coordinator.stats(),
            "data_plane": self.data_plane.get_stats(),
            "frame_source": self.frame_source.get_stats(),
        }
        self.control_plane.publish_status("running", details=details)

    def _handle_stop(self):
        logger.info("⏹️ Comando STOP recibido")
        self.control_plane.publish_status("stopped")
        self.shutdown_event.set()

    def run(self):
        """Ejecuta el servicio hasta STOP o señal"""
        if not self.setup():
            logger.error("❌ Setup falló")
            self.cleanup()
            return

        topics = self.config.mqtt.topics
        logger.info(
            "🎬 Servicio crop/decimate activo",
            extra={
                "component": "controller",
                "event": "running",
                "input_topic": topics.input,
                "output_topic": topics.output,
                "requests_topic": topics.requests,
                "commands_topic": topics.commands,
            }
        )

        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        try:
            while not self.shutdown_event.is_set():
                self.shutdown_event.wait(timeout=1.0)
        except KeyboardInterrupt:
            logger.info("⚠️ Interrupción forzada...")
            self.shutdown_event.set()

        self.cleanup()

    def _signal_handler(self, signum, frame):
        logger.info("⚠️ Señal de terminación recibida...")
        self.shutdown_event.set()

    def cleanup(self):
        """Libera recursos (cada paso aislado con try/except)."""
        logger.info("🧹 Limpiando recursos...")

        if self.coordinator:
            try:
                self.coordinator.shutdown()
            except Exception as e:
                logger.error(f"❌ Error deteniendo coordinator: {e}")

        if self.control_plane:
            try:
                self.control_plane.disconnect()
                logger.info("✅ Control Plane desconectado")
            except Exception as e:
                logger.error(f"❌ Error desconectando Control Plane: {e}")

        if self.frame_source:
            try:
                self.frame_source.disconnect()
                logger.info("✅ Frame Source desconectado")
            except Exception as e:
                logger.error(f"❌ Error desconectando Frame Source: {e}")

        if self.data_plane:
            try:
                logger.info(f"📊 Data Plane stats: {self.data_plane.get_stats()}")
                self.data_plane.disconnect()
                logger.info("✅ Data Plane desconectado")
            except Exception as e:
                logger.error(f"❌ Error desconectando Data Plane: {e}")

        logger.info("👋 Hasta luego!")


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> CropDecimateConfig:
    """YAML validado, o defaults si no existe el archivo."""
    if Path(config_path).exists():
        config = CropDecimateConfig.from_yaml(config_path)
        print(f"✅ Config loaded and validated from {config_path}")
    else:
        config = CropDecimateConfig()
        print(f"⚠️  Config file not found ({config_path}), using defaults")
    return config


def main():
    """Punto de entrada principal"""
    load_dotenv()

    config_path = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_CONFIG_PATH

    try:
        config = load_config(config_path)
    except ValidationError as e:
        print("❌ Invalid configuration:")
        for error in e.errors():
            field = " -> ".join(str(loc) for loc in error['loc'])
            print(f"   • {field}: {error['msg']}")
        print(f"\nPlease fix {config_path} and try again.")
        sys.exit(1)
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        sys.exit(1)

    setup_logging(
        level=config.logging.level,
        indent=config.logging.json_indent,
        add_fields={"service": "crop_decimate"},
        log_file=config.logging.file,
        max_bytes=config.logging.max_bytes,
        backup_count=config.logging.backup_count,
    )
    logging.getLogger('paho').setLevel(getattr(logging, config.logging.paho_level))

    logger.info("🔧 Crop/decimate service starting...")

    controller = CropDecimateController(config)
    try:
        controller.run()
    except Exception as e:
        logger.error(f"❌ Error fatal: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
