"""
Crop/Decimate - On-demand image crop + decimation over MQTT
===========================================================

Servicio que recorta y decima frames de cámara bajo demanda y republica
imagen + calibración reescalada.

Public API:
- transform: Engine puro (crop + decimación + calibración)
- DeliveryCoordinator: Máquina de estados request-driven
- CropDecimateConfig: Configuración del servicio
- CropDecimateController: Controlador principal

Usage:
    # Run service
    python -m crop_decimate [config.yaml]

    # Or programmatically
    from crop_decimate import CropDecimateConfig, CropDecimateController

    controller = CropDecimateController(CropDecimateConfig())
    controller.run()
"""

__version__ = "1.0.0"

from .config import CropDecimateConfig
from .transform import (
    CalibrationRecord,
    DegenerateOutput,
    Frame,
    InvalidRegion,
    RegionOfInterest,
    TransformConfig,
    TransformError,
    transform,
)
from .delivery import DeliveryCoordinator, DeliveryMode, DeliveryRequest
from .app import CropDecimateController, main

__all__ = [
    # Config
    "CropDecimateConfig",
    # Transform
    "Frame",
    "CalibrationRecord",
    "RegionOfInterest",
    "TransformConfig",
    "transform",
    "TransformError",
    "InvalidRegion",
    "DegenerateOutput",
    # Delivery
    "DeliveryCoordinator",
    "DeliveryMode",
    "DeliveryRequest",
    # App
    "CropDecimateController",
    "main",
]
