"""
Transform Data Model
====================

Bounded Context: Image + Calibration (datos que viajan por el servicio)

- Frame: grilla de píxeles (numpy) con encoding y stride
- RegionOfInterest: ventana del sensor original (offset + tamaño)
- CalibrationRecord: intrínsecos, proyección, distorsión, binning y ROI
- TransformConfig: configuración de crop + decimación

Design:
- Dataclasses inmutables (frozen)
- Matrices como tuplas planas (row-major), numpy solo para los píxeles
- Sin dependencias de transporte (MQTT vive en data/)
"""

from dataclasses import dataclass, field
from typing import Tuple

import numpy as np


@dataclass(frozen=True)
class Frame:
    """
    Imagen inmutable.

    Attributes:
        data: Array (H, W) o (H, W, C). No se modifica nunca in-place.
        encoding: Encoding de píxel (ej: "mono8", "rgb8", "bgr8")
        frame_id: Frame de coordenadas de la cámara
        stamp: Timestamp de captura (segundos)
    """
    data: np.ndarray
    encoding: str = "mono8"
    frame_id: str = ""
    stamp: float = 0.0

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def channels(self) -> int:
        return 1 if self.data.ndim == 2 else int(self.data.shape[2])

    @property
    def step(self) -> int:
        """Row stride en bytes (imagen empaquetada)"""
        return self.width * self.channels * self.data.dtype.itemsize

    @property
    def shape(self) -> Tuple[int, int]:
        """(height, width), mismo orden que frame_shape en el resto del código"""
        return self.height, self.width


@dataclass(frozen=True)
class RegionOfInterest:
    """
    Ventana sobre el sensor original.

    width/height == 0 significa "sensor completo" (convención camera_info).
    """
    x_offset: int = 0
    y_offset: int = 0
    width: int = 0
    height: int = 0
    do_rectify: bool = False

    @property
    def is_full_sensor(self) -> bool:
        return self.width == 0 or self.height == 0


@dataclass(frozen=True)
class CalibrationRecord:
    """
    Calibración pinhole de la imagen que acompaña.

    K: 3x3 row-major (fx, 0, cx, 0, fy, cy, 0, 0, 1)
    R: 3x3 row-major (rectificación, pasa sin cambios)
    P: 3x4 row-major (fx', 0, cx', Tx, 0, fy', cy', Ty, 0, 0, 1, 0)

    Invariante: roi + binning describen el frame acompañado respecto al
    sensor original sin decimar.
    """
    width: int
    height: int
    K: Tuple[float, ...] = (1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0)
    D: Tuple[float, ...] = ()
    R: Tuple[float, ...] = (1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0)
    P: Tuple[float, ...] = (
        1.0, 0.0, 0.0, 0.0,
        0.0, 1.0, 0.0, 0.0,
        0.0, 0.0, 1.0, 0.0,
    )
    distortion_model: str = "plumb_bob"
    binning_x: int = 1
    binning_y: int = 1
    roi: RegionOfInterest = field(default_factory=RegionOfInterest)

    def __post_init__(self):
        if len(self.K) != 9:
            raise ValueError(f"K must have 9 elements, got {len(self.K)}")
        if len(self.R) != 9:
            raise ValueError(f"R must have 9 elements, got {len(self.R)}")
        if len(self.P) != 12:
            raise ValueError(f"P must have 12 elements, got {len(self.P)}")

    @property
    def effective_binning(self) -> Tuple[int, int]:
        """Binning con la convención 0 == 1"""
        return max(self.binning_x, 1), max(self.binning_y, 1)

    @property
    def fx(self) -> float:
        return self.K[0]

    @property
    def fy(self) -> float:
        return self.K[4]

    @property
    def cx(self) -> float:
        return self.K[2]

    @property
    def cy(self) -> float:
        return self.K[5]


@dataclass(frozen=True)
class TransformConfig:
    """
    Configuración de crop + decimación.

    Coordenadas en píxeles del frame de ENTRADA.
    width/height == 0 → extensión restante desde el offset hasta el borde.
    """
    decimation_x: int = 1
    decimation_y: int = 1
    x_offset: int = 0
    y_offset: int = 0
    width: int = 0
    height: int = 0

    def __post_init__(self):
        if self.decimation_x < 1 or self.decimation_y < 1:
            raise ValueError(
                f"decimation must be >= 1, got ({self.decimation_x}, {self.decimation_y})"
            )
        if self.x_offset < 0 or self.y_offset < 0:
            raise ValueError(
                f"offset must be >= 0, got ({self.x_offset}, {self.y_offset})"
            )
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"size must be >= 0, got ({self.width}, {self.height})"
            )
