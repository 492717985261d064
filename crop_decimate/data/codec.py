"""
Wire Codec
==========

Codificación JSON de Frame + CalibrationRecord para payloads MQTT.

Formato (campos compatibles con sensor_msgs/Image + CameraInfo):
    {
        "image": {
            "header": {"frame_id": "...", "stamp": 0.0},
            "height": 480, "width": 640, "encoding": "mono8", "step": 640,
            "data": "<base64>"
        },
        "camera_info": {
            "height": 480, "width": 640, "distortion_model": "plumb_bob",
            "D": [...], "K": [9], "R": [9], "P": [12],
            "binning_x": 1, "binning_y": 1,
            "roi": {"x_offset": 0, "y_offset": 0, "width": 0, "height": 0, "do_rectify": false}
        }
    }

El codec no interpreta píxeles: solo conoce dtype y canales por encoding.
"""
import base64
from typing import Any, Dict, Tuple

import numpy as np

from ..transform import CalibrationRecord, Frame, RegionOfInterest


class CodecError(ValueError):
    """Payload mal formado o encoding desconocido."""
    pass


# encoding → (dtype, channels)
ENCODINGS: Dict[str, Tuple[str, int]] = {
    "mono8": ("uint8", 1),
    "mono16": ("uint16", 1),
    "8UC1": ("uint8", 1),
    "8UC3": ("uint8", 3),
    "16UC1": ("uint16", 1),
    "32FC1": ("float32", 1),
    "rgb8": ("uint8", 3),
    "bgr8": ("uint8", 3),
    "rgba8": ("uint8", 4),
    "bgra8": ("uint8", 4),
    "bayer_rggb8": ("uint8", 1),
    "bayer_bggr8": ("uint8", 1),
    "bayer_gbrg8": ("uint8", 1),
    "bayer_grbg8": ("uint8", 1),
}


def encode_frame(frame: Frame) -> Dict[str, Any]:
    """Frame → dict JSON-serializable."""
    data = np.ascontiguousarray(frame.data)
    return {
        "header": {"frame_id": frame.frame_id, "stamp": frame.stamp},
        "height": frame.height,
        "width": frame.width,
        "encoding": frame.encoding,
        "step": frame.step,
        "data": base64.b64encode(data.tobytes()).decode("ascii"),
    }


def decode_frame(payload: Dict[str, Any]) -> Frame:
    """
    dict → Frame.

    Respeta `step` (filas con padding): descarta los bytes extra de cada fila.

    Raises:
        CodecError: Si el encoding es desconocido o el buffer no coincide
    """
    try:
        encoding = payload["encoding"]
        height = int(payload["height"])
        width = int(payload["width"])
        raw = base64.b64decode(payload["data"])
        header = payload.get("header") or {}
        frame_id = str(header.get("frame_id", ""))
        stamp = float(header.get("stamp", 0.0))
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise CodecError(f"Invalid image payload: {e}") from e

    if not isinstance(encoding, str) or encoding not in ENCODINGS:
        raise CodecError(f"Unsupported encoding: {encoding}")

    dtype_name, channels = ENCODINGS[encoding]
    dtype = np.dtype(dtype_name)
    row_bytes = width * channels * dtype.itemsize
    try:
        step = int(payload.get("step") or row_bytes)
    except (TypeError, ValueError) as e:
        raise CodecError(f"Invalid image step: {e}") from e

    if height <= 0 or width <= 0 or step < row_bytes or len(raw) < step * height:
        raise CodecError(
            f"Buffer size {len(raw)} does not match {width}x{height} {encoding} (step={step})"
        )

    rows = np.frombuffer(raw, dtype=np.uint8, count=step * height).reshape(height, step)
    pixels = rows[:, :row_bytes].copy().view(dtype)

    if channels == 1:
        pixels = pixels.reshape(height, width)
    else:
        pixels = pixels.reshape(height, width, channels)

    return Frame(
        data=pixels,
        encoding=encoding,
        frame_id=frame_id,
        stamp=stamp,
    )


def encode_calibration(calib: CalibrationRecord) -> Dict[str, Any]:
    """CalibrationRecord → dict JSON-serializable."""
    return {
        "height": calib.height,
        "width": calib.width,
        "distortion_model": calib.distortion_model,
        "D": list(calib.D),
        "K": list(calib.K),
        "R": list(calib.R),
        "P": list(calib.P),
        "binning_x": calib.binning_x,
        "binning_y": calib.binning_y,
        "roi": {
            "x_offset": calib.roi.x_offset,
            "y_offset": calib.roi.y_offset,
            "width": calib.roi.width,
            "height": calib.roi.height,
            "do_rectify": calib.roi.do_rectify,
        },
    }


def decode_calibration(payload: Dict[str, Any]) -> CalibrationRecord:
    """
    dict → CalibrationRecord.

    Raises:
        CodecError: Si faltan campos o las matrices tienen tamaño inválido
    """
    try:
        roi = payload.get("roi") or {}
        return CalibrationRecord(
            width=int(payload["width"]),
            height=int(payload["height"]),
            K=tuple(float(v) for v in payload["K"]),
            D=tuple(float(v) for v in payload.get("D", ())),
            R=tuple(float(v) for v in payload.get("R", (1, 0, 0, 0, 1, 0, 0, 0, 1))),
            P=tuple(float(v) for v in payload["P"]),
            distortion_model=str(payload.get("distortion_model", "plumb_bob")),
            binning_x=int(payload.get("binning_x", 0)),
            binning_y=int(payload.get("binning_y", 0)),
            roi=RegionOfInterest(
                x_offset=int(roi.get("x_offset", 0)),
                y_offset=int(roi.get("y_offset", 0)),
                width=int(roi.get("width", 0)),
                height=int(roi.get("height", 0)),
                do_rectify=bool(roi.get("do_rectify", False)),
            ),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise CodecError(f"Invalid camera_info payload: {e}") from e


def encode_pair(frame: Frame, calib: CalibrationRecord) -> Dict[str, Any]:
    return {
        "image": encode_frame(frame),
        "camera_info": encode_calibration(calib),
    }


def decode_pair(payload: Dict[str, Any]) -> Tuple[Frame, CalibrationRecord]:
    """Mensaje upstream combinado → (Frame, CalibrationRecord)."""
    if not isinstance(payload, dict) or "image" not in payload or "camera_info" not in payload:
        raise CodecError("Payload must contain 'image' and 'camera_info'")
    return decode_frame(payload["image"]), decode_calibration(payload["camera_info"])
