"""
Configuration Module
====================

Provides configuration loading with Pydantic validation.

Usage:
    from crop_decimate.config import CropDecimateConfig
    config = CropDecimateConfig.from_yaml("config/crop_decimate/config.yaml")
"""
from .schemas import (
    CropDecimateConfig,
    DeliverySettings,
    MQTTSettings,
    MQTTBrokerSettings,
    MQTTTopicsSettings,
    MQTTQoSSettings,
    LoggingSettings,
)

DEFAULT_CONFIG_PATH = "config/crop_decimate/config.yaml"

__all__ = [
    'CropDecimateConfig',
    'DeliverySettings',
    'MQTTSettings',
    'MQTTBrokerSettings',
    'MQTTTopicsSettings',
    'MQTTQoSSettings',
    'LoggingSettings',
    'DEFAULT_CONFIG_PATH',
]
