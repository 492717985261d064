"""
Publishers
==========

Publishers especializados para formatear mensajes MQTT.

- Publishers = lógica de negocio (formato de mensaje)
- DataPlane = infraestructura MQTT
"""
from .frame import FramePublisher

__all__ = ['FramePublisher']
