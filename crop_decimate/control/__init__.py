"""
Control Plane - Image requests + service commands (QoS 1)
"""
from .plane import MQTTControlPlane
from .registry import CommandRegistry, CommandNotAvailableError
from .requests import ImageRequestMessage, RequestROI, parse_image_request

__all__ = [
    "MQTTControlPlane",
    "CommandRegistry",
    "CommandNotAvailableError",
    "ImageRequestMessage",
    "RequestROI",
    "parse_image_request",
]
