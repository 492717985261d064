"""
Structured Logging Infrastructure
==================================

Logging JSON-based para queryability en producción.

Design Philosophy:
- Solo JSON (no dual output)
- Trace correlation vía contextvars (una request = un trace)
- Helpers para casos comunes (requests, publicaciones, transform skips, errores)
- File rotation automático (RotatingFileHandler)

Usage:
    from crop_decimate.logging import setup_logging

    # Stdout (desarrollo)
    setup_logging(level="DEBUG", indent=2)

    # File con rotation (producción)
    setup_logging(level="INFO", log_file="logs/crop_decimate.log")

    # Con trace propagation
    with trace_context(generate_trace_id("req")):
        logger.info("Procesando request", extra={"trace_id": get_trace_id()})
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from contextvars import ContextVar
from contextlib import contextmanager
from typing import Optional, Dict, Any, TYPE_CHECKING
import uuid

if TYPE_CHECKING:
    from .delivery.modes import DeliveryRequest

# ============================================================================
# Trace Context (propagación de trace_id)
# ============================================================================

trace_id_var: ContextVar[Optional[str]] = ContextVar('trace_id', default=None)


def get_trace_id() -> Optional[str]:
    """Trace ID actual o None si no hay contexto activo."""
    return trace_id_var.get()


def generate_trace_id(prefix: str = "trace") -> str:
    """
    Genera un nuevo trace ID único.

    Args:
        prefix: Prefijo (ej: "req", "cmd", "frame")

    Returns:
        Trace ID en formato: {prefix}-{short_uuid}
    """
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


@contextmanager
def trace_context(trace_id: Optional[str] = None):
    """
    Context manager para propagar trace_id en toda la call stack.

    Args:
        trace_id: ID de trace a propagar. Si None, genera uno automático.
    """
    if trace_id is None:
        trace_id = generate_trace_id()

    token = trace_id_var.set(trace_id)
    try:
        yield trace_id
    finally:
        trace_id_var.reset(token)


# ============================================================================
# Logger Setup
# ============================================================================

def setup_logging(
    level: str = "INFO",
    indent: Optional[int] = None,
    add_fields: Optional[Dict[str, Any]] = None,
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5,
) -> None:
    """
    Configura structured logging (JSON) para toda la aplicación.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        indent: JSON indent (None = compact, 2 = readable)
        add_fields: Campos globales (ej: {"service": "crop_decimate"})
        log_file: Path al archivo de logs (None = stdout). Si se especifica, usa rotation.
        max_bytes: Tamaño máximo por archivo antes de rotar
        backup_count: Archivos backup a mantener
    """
    from pythonjsonlogger.json import JsonFormatter

    class CustomJsonFormatter(JsonFormatter):
        def add_fields(self, log_record, record, message_dict):
            super().add_fields(log_record, record, message_dict)

            if 'levelname' in log_record:
                log_record['level'] = log_record.pop('levelname')

            if 'name' in log_record:
                log_record['logger'] = log_record.pop('name')

            current_trace_id = get_trace_id()
            if current_trace_id and 'trace_id' not in log_record:
                log_record['trace_id'] = current_trace_id

            if add_fields:
                for key, value in add_fields.items():
                    if key not in log_record:
                        log_record[key] = value

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        handler = RotatingFileHandler(
            filename=str(log_path),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        print(f"📄 Logging to file: {log_file} (max: {max_bytes//1024//1024}MB, backups: {backup_count})", file=sys.stderr)
    else:
        handler = logging.StreamHandler(sys.stdout)

    formatter = CustomJsonFormatter(
        '%(levelname)s %(name)s %(message)s',
        timestamp=True,
        json_indent=indent
    )
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper()))


# ============================================================================
# Helper Functions
# ============================================================================

def log_image_request(
    logger: logging.Logger,
    request: 'DeliveryRequest',
    topic: Optional[str] = None,
    trace_id: Optional[str] = None,
) -> None:
    """
    Helper para logs de image requests (Control Plane → Coordinator).

    Args:
        logger: Logger instance
        request: DeliveryRequest recibida
        topic: MQTT topic de origen (opcional)
        trace_id: Trace ID (usa contexto si no se especifica)
    """
    cfg = request.config
    extra = {
        "component": "delivery",
        "event": "image_requested",
        "mode": request.mode.value,
        "publish_frequency": request.publish_frequency,
        "decimation": [cfg.decimation_x, cfg.decimation_y],
        "roi": {
            "x_offset": cfg.x_offset,
            "y_offset": cfg.y_offset,
            "width": cfg.width,
            "height": cfg.height,
        },
        "trace_id": trace_id or get_trace_id(),
    }
    if topic:
        extra["mqtt_topic"] = topic

    logger.info(f"📥 Image requested ({request.mode.value})", extra=extra)


def log_frame_publish(
    logger: logging.Logger,
    topic: str,
    qos: int,
    payload_size: int,
    width: int,
    height: int,
    success: bool = True,
    error_code: Optional[int] = None,
    component: str = "data_plane",
) -> None:
    """
    Helper para logs de publicación de frames (Data Plane).

    Args:
        logger: Logger instance
        topic: MQTT topic
        qos: QoS level
        payload_size: Tamaño del payload en bytes
        width: Ancho de la imagen publicada
        height: Alto de la imagen publicada
        success: Si la publicación fue exitosa
        error_code: Código de error MQTT (si success=False)
        component: Componente que genera el log
    """
    extra = {
        "component": component,
        "mqtt_topic": topic,
        "qos": qos,
        "payload_size_bytes": payload_size,
        "image_size": [width, height],
        "success": success,
    }

    if error_code is not None:
        extra["mqtt_error_code"] = error_code

    if success:
        logger.debug(f"📤 Frame {width}x{height} publicado a {topic}", extra=extra)
    else:
        logger.warning(f"⚠️ Error publicando frame a {topic}", extra=extra)


def log_transform_skipped(
    logger: logging.Logger,
    reason: str,
    trigger: str,
    error: Optional[Exception] = None,
    component: str = "delivery",
) -> None:
    """
    Helper para ciclos sin publicación (NoDataYet, InvalidRegion, DegenerateOutput).

    NoDataYet es un no-op normal (DEBUG); errores del engine van en WARNING.

    Args:
        logger: Logger instance
        reason: Tipo de error / motivo (ej: "InvalidRegion", "NoDataYet")
        trigger: Qué disparó el ciclo ("frame", "request", "timer")
        error: Excepción del engine (opcional)
        component: Componente que genera el log
    """
    extra = {
        "component": component,
        "event": "publish_skipped",
        "reason": reason,
        "trigger": trigger,
        "trace_id": get_trace_id(),
    }

    if error is None:
        logger.debug(f"⏭️ Publicación omitida ({reason}, trigger={trigger})", extra=extra)
    else:
        extra["error_message"] = str(error)
        logger.warning(f"⚠️ Transform falló ({reason}): {error}", extra=extra)


def log_error_with_context(
    logger: logging.Logger,
    message: str,
    exception: Optional[Exception] = None,
    component: str = "unknown",
    event: Optional[str] = None,
    trace_id: Optional[str] = None,
    **kwargs: Any
) -> None:
    """
    Helper para logs de errores con contexto completo.

    Args:
        logger: Logger instance
        message: Mensaje de error
        exception: Excepción capturada (opcional)
        component: Componente donde ocurrió el error
        event: Evento que causó el error
        trace_id: Trace ID (usa contexto si no se especifica)
        **kwargs: Contexto adicional (broker_host, topic, etc.)
    """
    extra = {
        "component": component,
        "trace_id": trace_id or get_trace_id()
    }

    if event:
        extra["event"] = event

    if exception:
        extra["error_type"] = type(exception).__name__
        extra["error_message"] = str(exception)

    extra.update(kwargs)

    if exception:
        logger.error(f"{message}: {exception}", extra=extra, exc_info=True)
    else:
        logger.error(message, extra=extra)


__all__ = [
    # Setup
    "setup_logging",
    # Trace context
    "trace_context",
    "get_trace_id",
    "generate_trace_id",
    # Helpers
    "log_image_request",
    "log_frame_publish",
    "log_transform_skipped",
    "log_error_with_context",
]
