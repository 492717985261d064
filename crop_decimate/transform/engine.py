"""
Crop/Decimate Engine
====================

Función pura: (config, frame, calibración) → (frame, calibración).

Pasos:
1. Resolver rectángulo de crop (0 = extensión restante)
2. Crop exacto (sin resampling)
3. Decimación por point sampling (cada dx-ésima columna, dy-ésima fila)
4. Recalcular calibración para la imagen de salida:
   - K/P en píxeles de la imagen de salida
     (cx/cy ya incluyen el offset del crop: no volver a restar roi/binning,
     como hace un modelo pinhole que reaplica la ROI)
   - ROI/binning compuestos respecto al sensor original
5. Distorsión pasa sin cambios

Composable: aplicar A y luego B equivale a aplicar la config compuesta
directamente (módulo redondeo floor).
"""

from dataclasses import replace
from typing import Tuple

from .models import CalibrationRecord, Frame, RegionOfInterest, TransformConfig


class TransformError(Exception):
    """Error base del engine (nunca fatal para el servicio)."""
    pass


class InvalidRegion(TransformError):
    """El rectángulo pedido excede los bordes del frame."""
    pass


class DegenerateOutput(TransformError):
    """La decimación colapsa una dimensión a cero."""
    pass


def resolve_region(
    config: TransformConfig,
    frame_shape: Tuple[int, int],
) -> Tuple[int, int, int, int]:
    """
    Resuelve el rectángulo efectivo de crop.

    Args:
        config: TransformConfig
        frame_shape: (height, width) del frame de entrada

    Returns:
        (x, y, width, height) en píxeles del frame de entrada

    Raises:
        InvalidRegion: Si offset + tamaño excede el frame o la extensión es <= 0
    """
    h, w = frame_shape
    x, y = config.x_offset, config.y_offset

    width = config.width if config.width > 0 else w - x
    height = config.height if config.height > 0 else h - y

    if width <= 0 or height <= 0 or x + width > w or y + height > h:
        raise InvalidRegion(
            f"Region ({x},{y}) {width}x{height} out of bounds for frame {w}x{h}"
        )

    return x, y, width, height


def crop_decimate_pixels(frame: Frame, config: TransformConfig) -> Frame:
    """Crop + decimación de la grilla de píxeles (copia contigua)."""
    x, y, width, height = resolve_region(config, frame.shape)
    dx, dy = config.decimation_x, config.decimation_y

    out_w = width // dx
    out_h = height // dy
    if out_w == 0 or out_h == 0:
        raise DegenerateOutput(
            f"Decimation ({dx},{dy}) collapses {width}x{height} region to {out_w}x{out_h}"
        )

    # Stop en out*d (no en el borde) para obtener floor(size/d) muestras
    sampled = frame.data[y:y + out_h * dy:dy, x:x + out_w * dx:dx]

    return replace(frame, data=sampled.copy())


def rescale_calibration(
    calib: CalibrationRecord,
    config: TransformConfig,
    region: Tuple[int, int, int, int],
    output_shape: Tuple[int, int],
    input_shape: Tuple[int, int],
) -> CalibrationRecord:
    """
    Recalcula la calibración para la imagen recortada + decimada.

    Args:
        calib: Calibración del frame de entrada
        config: TransformConfig aplicada
        region: (x, y, width, height) resuelto en píxeles de entrada
        output_shape: (height, width) de la imagen de salida
        input_shape: (height, width) de la imagen de entrada

    Returns:
        CalibrationRecord válida para la imagen de salida
    """
    x, y, width, height = region
    dx, dy = config.decimation_x, config.decimation_y
    bx, by = calib.effective_binning

    K = list(calib.K)
    K[0] = K[0] / dx
    K[2] = (K[2] - x) / dx
    K[4] = K[4] / dy
    K[5] = (K[5] - y) / dy

    P = list(calib.P)
    P[0] = P[0] / dx
    P[2] = (P[2] - x) / dx
    P[3] = P[3] / dx
    P[5] = P[5] / dy
    P[6] = (P[6] - y) / dy
    P[7] = P[7] / dy

    # Crop de frame completo: la ventana del sensor no cambia
    if (x, y, width, height) == (0, 0, input_shape[1], input_shape[0]):
        roi = calib.roi
    else:
        roi = RegionOfInterest(
            x_offset=calib.roi.x_offset + x * bx,
            y_offset=calib.roi.y_offset + y * by,
            width=width * bx,
            height=height * by,
            do_rectify=calib.roi.do_rectify,
        )

    return replace(
        calib,
        width=output_shape[1],
        height=output_shape[0],
        K=tuple(K),
        P=tuple(P),
        binning_x=calib.binning_x if dx == 1 else bx * dx,
        binning_y=calib.binning_y if dy == 1 else by * dy,
        roi=roi,
    )


def transform(
    config: TransformConfig,
    frame: Frame,
    calib: CalibrationRecord,
) -> Tuple[Frame, CalibrationRecord]:
    """
    Aplica crop + decimación a un frame y su calibración.

    Args:
        config: TransformConfig
        frame: Frame de entrada (no se modifica)
        calib: Calibración del frame de entrada

    Returns:
        (frame_out, calib_out)

    Raises:
        InvalidRegion: Región fuera de los bordes del frame
        DegenerateOutput: Decimación produce dimensión 0
    """
    region = resolve_region(config, frame.shape)
    frame_out = crop_decimate_pixels(frame, config)
    calib_out = rescale_calibration(
        calib,
        config,
        region=region,
        output_shape=frame_out.shape,
        input_shape=frame.shape,
    )
    return frame_out, calib_out
