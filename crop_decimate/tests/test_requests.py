"""
Image Request Tests
===================

Tests del parsing de image requests (payload MQTT → DeliveryRequest).

Invariantes testeadas:
1. Enumeradores de wire: 0=ONCE, 1=RATE_LIMITED, 2=FREE_RUN
2. Modo ausente o desconocido → FREE_RUN
3. binning 0 == 1
4. Offsets/tamaños negativos rechazados
"""
import json

import pytest
from pydantic import ValidationError

from crop_decimate.control import parse_image_request
from crop_decimate.delivery import DeliveryMode
from crop_decimate.transform import TransformConfig


@pytest.mark.unit
class TestDeliveryModeFromWire:
    """Tests de DeliveryMode.from_wire"""

    @pytest.mark.parametrize("value, expected", [
        (0, DeliveryMode.ONCE),
        (1, DeliveryMode.RATE_LIMITED),
        (2, DeliveryMode.FREE_RUN),
        ("once", DeliveryMode.ONCE),
        ("PUBLISH_FREQ", DeliveryMode.RATE_LIMITED),
        ("rate_limited", DeliveryMode.RATE_LIMITED),
        ("all", DeliveryMode.FREE_RUN),
        ("1", DeliveryMode.RATE_LIMITED),
        (1.0, DeliveryMode.RATE_LIMITED),
    ])
    def test_known_values(self, value, expected):
        assert DeliveryMode.from_wire(value) is expected

    @pytest.mark.parametrize("value", [None, 7, -1, "sometimes", True, False, 1.5, [1], {"mode": 1}])
    def test_unknown_values_fall_back_to_free_run(self, value):
        """
        Invariante: cualquier valor no reconocido → FREE_RUN.
        """
        assert DeliveryMode.from_wire(value) is DeliveryMode.FREE_RUN


@pytest.mark.unit
class TestParseImageRequest:
    """Tests de parse_image_request"""

    def test_full_payload(self):
        payload = json.dumps({
            "binning_x": 2,
            "binning_y": 2,
            "roi": {"x_offset": 100, "y_offset": 50, "width": 200, "height": 100},
            "mode": 1,
            "publish_frequency": 30.0,
        }).encode('utf-8')

        request = parse_image_request(payload)

        assert request.mode is DeliveryMode.RATE_LIMITED
        assert request.publish_frequency == 30.0
        assert request.config == TransformConfig(
            decimation_x=2, decimation_y=2,
            x_offset=100, y_offset=50, width=200, height=100,
        )

    def test_empty_payload_is_full_frame_free_run(self):
        request = parse_image_request("{}")

        assert request.mode is DeliveryMode.FREE_RUN
        assert request.config == TransformConfig()

    def test_zero_binning_means_one(self):
        request = parse_image_request({"binning_x": 0, "binning_y": 0, "mode": "once"})

        assert request.config.decimation_x == 1
        assert request.config.decimation_y == 1
        assert request.mode is DeliveryMode.ONCE

    def test_unknown_mode_falls_back(self):
        request = parse_image_request({"mode": 42})
        assert request.mode is DeliveryMode.FREE_RUN

    @pytest.mark.parametrize("mode", [True, False, 1.5, [1], {"value": 1}])
    def test_unrecognized_mode_types_fall_back(self, mode):
        """
        Invariante: ningún valor de mode descarta la request; no reconocido → FREE_RUN.
        """
        request = parse_image_request({"mode": mode, "binning_x": 2})

        assert request.mode is DeliveryMode.FREE_RUN
        assert request.config.decimation_x == 2

    @pytest.mark.parametrize("raw", [
        b'{"mode": 1, "publish_frequency": NaN}',
        b'{"mode": 1, "publish_frequency": Infinity}',
    ])
    def test_non_finite_frequency_rejected(self, raw):
        with pytest.raises(ValidationError):
            parse_image_request(raw)

    def test_negative_offset_rejected(self):
        with pytest.raises(ValidationError):
            parse_image_request({"roi": {"x_offset": -5}})

    def test_negative_binning_rejected(self):
        with pytest.raises(ValidationError):
            parse_image_request({"binning_x": -1})

    def test_invalid_json_raises(self):
        with pytest.raises(json.JSONDecodeError):
            parse_image_request(b"not json")
