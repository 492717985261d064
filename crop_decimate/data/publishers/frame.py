"""
Frame Publisher
===============

Publisher especializado en formatear mensajes de frames recortados.

Responsabilidad:
- Conoce estructura del mensaje (image + camera_info)
- Numera mensajes y agrega timestamp de publicación
- NO conoce MQTT (eso es del DataPlane)
"""
from datetime import datetime
from typing import Any, Dict

from ..codec import encode_pair
from ...transform import CalibrationRecord, Frame


class FramePublisher:
    """
    Publisher de frames transformados.

    Formatea (Frame, CalibrationRecord) en mensajes MQTT.
    """

    def __init__(self):
        self._message_count = 0

    def format_message(self, frame: Frame, calib: CalibrationRecord) -> Dict[str, Any]:
        """
        Formatea un par transformado.

        Args:
            frame: Frame de salida
            calib: Calibración de salida

        Returns:
            Diccionario con mensaje formateado
        """
        message = encode_pair(frame, calib)

        self._message_count += 1
        message["message_id"] = self._message_count
        message["timestamp"] = datetime.now().isoformat()

        return message

    @property
    def message_count(self) -> int:
        return self._message_count
