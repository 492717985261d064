"""
Application - Controller + Builder
"""
from .builder import ServiceBuilder
from .controller import CropDecimateController, load_config, main

__all__ = ["ServiceBuilder", "CropDecimateController", "load_config", "main"]
