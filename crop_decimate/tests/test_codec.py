"""
Wire Codec Tests
================

Invariantes testeadas:
1. encode_pair → JSON → decode_pair preserva píxeles y calibración
2. decode respeta step con padding
3. Payloads mal formados → CodecError
"""
import base64
import json

import numpy as np
import pytest

from crop_decimate.data import CodecError, decode_pair, encode_pair
from crop_decimate.data.codec import decode_frame
from crop_decimate.transform import CalibrationRecord, Frame, RegionOfInterest


@pytest.mark.unit
class TestWireCodec:

    def test_pair_survives_json(self):
        data = np.random.default_rng(0).integers(0, 255, size=(4, 6, 3), dtype=np.uint8)
        frame = Frame(data=data, encoding="bgr8", frame_id="cam", stamp=1.5)
        calib = CalibrationRecord(
            width=6,
            height=4,
            K=(10.0, 0.0, 3.0, 0.0, 10.0, 2.0, 0.0, 0.0, 1.0),
            D=(0.1, 0.0, 0.0, 0.0, 0.0),
            binning_x=2,
            binning_y=2,
            roi=RegionOfInterest(x_offset=4, y_offset=8, width=12, height=8),
        )

        frame_out, calib_out = decode_pair(json.loads(json.dumps(encode_pair(frame, calib))))

        assert np.array_equal(frame_out.data, data)
        assert frame_out.encoding == "bgr8"
        assert frame_out.frame_id == "cam"
        assert frame_out.stamp == 1.5
        assert calib_out == calib

    def test_step_padding_is_skipped(self):
        """
        Invariante: filas con padding (step > width * bpp) se recortan.
        """
        rows = [bytes([r * 10 + c for c in range(3)]) + b"\xff\xff" for r in range(2)]
        payload = {
            "height": 2,
            "width": 3,
            "encoding": "mono8",
            "step": 5,
            "data": base64.b64encode(b"".join(rows)).decode("ascii"),
        }

        frame = decode_frame(payload)

        assert frame.data.tolist() == [[0, 1, 2], [10, 11, 12]]

    def test_mono16_decodes_dtype(self):
        data = np.arange(6, dtype=np.uint16).reshape(2, 3) * 1000
        frame = Frame(data=data, encoding="mono16")
        calib = CalibrationRecord(width=3, height=2)

        frame_out, _ = decode_pair(encode_pair(frame, calib))

        assert frame_out.data.dtype == np.uint16
        assert np.array_equal(frame_out.data, data)

    def test_unknown_encoding_raises(self):
        payload = {"height": 1, "width": 1, "encoding": "jpeg", "data": ""}
        with pytest.raises(CodecError):
            decode_frame(payload)

    def test_short_buffer_raises(self):
        payload = {
            "height": 2, "width": 2, "encoding": "mono8",
            "data": base64.b64encode(b"\x00\x00").decode("ascii"),
        }
        with pytest.raises(CodecError):
            decode_frame(payload)

    def test_missing_camera_info_raises(self):
        with pytest.raises(CodecError):
            decode_pair({"image": {}})

    def test_invalid_matrix_size_raises(self):
        payload = {
            "image": {"height": 1, "width": 1, "encoding": "mono8",
                      "data": base64.b64encode(b"\x00").decode("ascii")},
            "camera_info": {"height": 1, "width": 1, "K": [1, 0, 0], "P": [0] * 12},
        }
        with pytest.raises(CodecError):
            decode_pair(payload)

    @pytest.mark.parametrize("image_patch, info_patch", [
        ({"header": {"stamp": "abc"}}, {}),
        ({"header": ["x"]}, {}),
        ({"step": "wide"}, {}),
        ({"encoding": ["mono8"]}, {}),
        ({"height": -2}, {}),
        ({}, {"roi": [1, 2]}),
        ({}, {"K": "not a matrix"}),
    ])
    def test_malformed_fields_raise_codec_error(self, image_patch, info_patch):
        """
        Invariante: cualquier campo mal formado termina en CodecError
        (nunca AttributeError/ValueError sueltos).
        """
        frame = Frame(data=np.zeros((2, 2), dtype=np.uint8))
        payload = encode_pair(frame, CalibrationRecord(width=2, height=2))
        payload["image"].update(image_patch)
        payload["camera_info"].update(info_patch)

        with pytest.raises(CodecError):
            decode_pair(payload)
