"""
Transform Engine - Crop + Decimate + Calibration Rescale
"""
from .models import CalibrationRecord, Frame, RegionOfInterest, TransformConfig
from .engine import (
    DegenerateOutput,
    InvalidRegion,
    TransformError,
    crop_decimate_pixels,
    rescale_calibration,
    resolve_region,
    transform,
)

__all__ = [
    # Models
    "Frame",
    "CalibrationRecord",
    "RegionOfInterest",
    "TransformConfig",
    # Engine
    "transform",
    "resolve_region",
    "crop_decimate_pixels",
    "rescale_calibration",
    # Errors
    "TransformError",
    "InvalidRegion",
    "DegenerateOutput",
]
