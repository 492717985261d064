"""
Transform Engine Tests
======================

Tests del engine puro de crop + decimación.

Invariantes testeadas:
1. Passthrough: decimación 1 + región completa → imagen y calibración idénticas
2. Tamaño de salida = floor(region / decimación)
3. Point sampling: pixel (i, j) de salida = pixel (y + i*dy, x + j*dx) de entrada
4. Composabilidad: A luego B == config compuesta
5. Región fuera de bordes → InvalidRegion, dimensión 0 → DegenerateOutput
6. Calibración: K/P reescalados, ROI + binning compuestos respecto al sensor
"""
import numpy as np
import pytest

from crop_decimate.transform import (
    CalibrationRecord,
    DegenerateOutput,
    Frame,
    InvalidRegion,
    RegionOfInterest,
    TransformConfig,
    resolve_region,
    transform,
)


def make_frame(width=640, height=480, channels=1, encoding="mono8"):
    if channels == 1:
        data = (np.arange(width * height) % 251).astype(np.uint8).reshape(height, width)
    else:
        data = (np.arange(width * height * channels) % 251).astype(np.uint8)
        data = data.reshape(height, width, channels)
    return Frame(data=data, encoding=encoding, frame_id="camera", stamp=12.5)


def make_calib(width=640, height=480, binning=(1, 1), roi=None):
    return CalibrationRecord(
        width=width,
        height=height,
        K=(500.0, 0.0, 320.0, 0.0, 500.0, 240.0, 0.0, 0.0, 1.0),
        D=(-0.1, 0.01, 0.0, 0.0, 0.0),
        P=(500.0, 0.0, 320.0, -50.0, 0.0, 500.0, 240.0, 0.0, 0.0, 0.0, 1.0, 0.0),
        binning_x=binning[0],
        binning_y=binning[1],
        roi=roi or RegionOfInterest(),
    )


@pytest.mark.unit
@pytest.mark.transform
class TestResolveRegion:
    """Tests de resolución del rectángulo de crop"""

    def test_zero_size_means_remaining_extent(self):
        """
        Invariante: width/height 0 → hasta el borde desde el offset.
        """
        config = TransformConfig(x_offset=100, y_offset=50)
        assert resolve_region(config, (480, 640)) == (100, 50, 540, 430)

    def test_region_exceeding_frame_raises(self):
        config = TransformConfig(x_offset=600, width=100)
        with pytest.raises(InvalidRegion):
            resolve_region(config, (480, 640))

    def test_offset_at_border_with_zero_size_raises(self):
        """
        Edge case: offset == ancho del frame deja extensión 0.
        """
        config = TransformConfig(x_offset=640)
        with pytest.raises(InvalidRegion):
            resolve_region(config, (480, 640))

    def test_region_touching_border_is_valid(self):
        config = TransformConfig(x_offset=540, y_offset=380, width=100, height=100)
        assert resolve_region(config, (480, 640)) == (540, 380, 100, 100)


@pytest.mark.unit
@pytest.mark.transform
class TestTransformConfig:
    """Tests de validación de TransformConfig"""

    def test_decimation_must_be_positive(self):
        with pytest.raises(ValueError):
            TransformConfig(decimation_x=0)

    def test_negative_offset_rejected(self):
        with pytest.raises(ValueError):
            TransformConfig(y_offset=-1)

    def test_negative_size_rejected(self):
        with pytest.raises(ValueError):
            TransformConfig(width=-10)


@pytest.mark.unit
@pytest.mark.transform
class TestCropDecimate:
    """Tests de la grilla de píxeles"""

    def test_passthrough_is_identity(self):
        """
        Invariante CRÍTICO: config por defecto no cambia nada.
        """
        frame = make_frame()
        calib = make_calib()

        frame_out, calib_out = transform(TransformConfig(), frame, calib)

        assert np.array_equal(frame_out.data, frame.data)
        assert frame_out.encoding == frame.encoding
        assert frame_out.frame_id == frame.frame_id
        assert frame_out.stamp == frame.stamp
        assert calib_out == calib

    def test_roi_with_decimation(self):
        """
        Ejemplo canónico: 640x480, ROI (100,50) 200x100, decimación 2x2 → 100x50.
        """
        frame = make_frame()
        config = TransformConfig(
            decimation_x=2, decimation_y=2,
            x_offset=100, y_offset=50, width=200, height=100,
        )

        frame_out, calib_out = transform(config, frame, make_calib())

        assert frame_out.shape == (50, 100)
        assert np.array_equal(frame_out.data, frame.data[50:150:2, 100:300:2])
        assert (calib_out.width, calib_out.height) == (100, 50)

    def test_point_sampling_picks_exact_pixels(self):
        """
        Invariante: salida (i, j) = entrada (y + i*dy, x + j*dx), sin promediar.
        """
        frame = make_frame()
        config = TransformConfig(decimation_x=3, decimation_y=4, x_offset=7, y_offset=11)

        frame_out, _ = transform(config, frame, make_calib())

        for i, j in [(0, 0), (5, 9), (frame_out.height - 1, frame_out.width - 1)]:
            assert frame_out.data[i, j] == frame.data[11 + i * 4, 7 + j * 3]

    def test_output_size_is_floor_of_region_over_decimation(self):
        frame = make_frame()
        config = TransformConfig(decimation_x=3, decimation_y=7, width=100, height=50)

        frame_out, _ = transform(config, frame, make_calib())

        assert frame_out.shape == (50 // 7, 100 // 3)

    def test_multichannel_keeps_channels(self):
        frame = make_frame(channels=3, encoding="rgb8")
        config = TransformConfig(decimation_x=2, decimation_y=2)

        frame_out, _ = transform(config, frame, make_calib())

        assert frame_out.data.shape == (240, 320, 3)
        assert frame_out.encoding == "rgb8"
        assert frame_out.step == 320 * 3

    def test_input_frame_not_modified(self):
        frame = make_frame()
        original = frame.data.copy()

        frame_out, _ = transform(
            TransformConfig(decimation_x=2, decimation_y=2), frame, make_calib()
        )
        frame_out.data[:] = 0

        assert np.array_equal(frame.data, original)
        assert not np.shares_memory(frame.data, frame_out.data)

    def test_degenerate_output_raises(self):
        """
        Edge case: región 3x3 con decimación 4 → 0 filas/columnas.
        """
        config = TransformConfig(decimation_x=4, decimation_y=4, width=3, height=3)
        with pytest.raises(DegenerateOutput):
            transform(config, make_frame(), make_calib())

    def test_out_of_bounds_raises_invalid_region(self):
        config = TransformConfig(x_offset=100, y_offset=50, width=600, height=100)
        with pytest.raises(InvalidRegion):
            transform(config, make_frame(), make_calib())


@pytest.mark.unit
@pytest.mark.transform
class TestCalibrationRescale:
    """Tests del recálculo de calibración"""

    def test_intrinsics_rescaled_to_output_pixels(self):
        config = TransformConfig(
            decimation_x=2, decimation_y=2,
            x_offset=100, y_offset=50, width=200, height=100,
        )

        _, calib_out = transform(config, make_frame(), make_calib())

        assert calib_out.fx == pytest.approx(250.0)
        assert calib_out.fy == pytest.approx(250.0)
        assert calib_out.cx == pytest.approx(110.0)
        assert calib_out.cy == pytest.approx(95.0)
        # P: fx', cx', Tx escalados
        assert calib_out.P[0] == pytest.approx(250.0)
        assert calib_out.P[2] == pytest.approx(110.0)
        assert calib_out.P[3] == pytest.approx(-25.0)
        assert calib_out.P[6] == pytest.approx(95.0)

    def test_roi_and_binning_relative_to_sensor(self):
        config = TransformConfig(
            decimation_x=2, decimation_y=2,
            x_offset=100, y_offset=50, width=200, height=100,
        )

        _, calib_out = transform(config, make_frame(), make_calib())

        assert calib_out.roi == RegionOfInterest(
            x_offset=100, y_offset=50, width=200, height=100
        )
        assert (calib_out.binning_x, calib_out.binning_y) == (2, 2)

    def test_distortion_and_rectification_pass_through(self):
        calib = make_calib()
        config = TransformConfig(decimation_x=2, decimation_y=2, x_offset=10, y_offset=10)

        _, calib_out = transform(config, make_frame(), calib)

        assert calib_out.D == calib.D
        assert calib_out.R == calib.R
        assert calib_out.distortion_model == calib.distortion_model

    def test_existing_binning_composes(self):
        """
        Invariante: input ya decimado (binning 2) → ROI en píxeles de sensor.
        """
        frame = make_frame(width=320, height=240)
        calib = make_calib(width=320, height=240, binning=(2, 2))
        config = TransformConfig(
            decimation_x=2, decimation_y=2,
            x_offset=10, y_offset=20, width=100, height=80,
        )

        _, calib_out = transform(config, frame, calib)

        assert (calib_out.binning_x, calib_out.binning_y) == (4, 4)
        assert calib_out.roi.x_offset == 20
        assert calib_out.roi.y_offset == 40
        assert calib_out.roi.width == 200
        assert calib_out.roi.height == 160

    def test_zero_binning_treated_as_one(self):
        calib = make_calib(binning=(0, 0))

        _, same = transform(TransformConfig(x_offset=10), make_frame(), calib)
        _, decimated = transform(
            TransformConfig(decimation_x=2, decimation_y=3), make_frame(), calib
        )

        assert (same.binning_x, same.binning_y) == (0, 0)
        assert (decimated.binning_x, decimated.binning_y) == (2, 3)

    def test_crop_offsets_existing_roi(self):
        calib = make_calib(roi=RegionOfInterest(x_offset=64, y_offset=32, width=640, height=480))
        config = TransformConfig(x_offset=10, y_offset=5, width=100, height=100)

        _, calib_out = transform(config, make_frame(), calib)

        assert (calib_out.roi.x_offset, calib_out.roi.y_offset) == (74, 37)
        assert (calib_out.roi.width, calib_out.roi.height) == (100, 100)


@pytest.mark.unit
@pytest.mark.transform
class TestComposability:
    """Aplicar A y luego B == aplicar la config compuesta"""

    def test_two_steps_equal_composed_config(self):
        frame = make_frame()
        calib = make_calib()

        step_a = TransformConfig(
            decimation_x=2, decimation_y=2,
            x_offset=10, y_offset=20, width=400, height=300,
        )
        step_b = TransformConfig(
            decimation_x=2, decimation_y=2,
            x_offset=5, y_offset=5, width=100, height=50,
        )
        composed = TransformConfig(
            decimation_x=4, decimation_y=4,
            x_offset=10 + 5 * 2, y_offset=20 + 5 * 2, width=100 * 2, height=50 * 2,
        )

        frame_a, calib_a = transform(step_a, frame, calib)
        frame_ab, calib_ab = transform(step_b, frame_a, calib_a)
        frame_c, calib_c = transform(composed, frame, calib)

        assert np.array_equal(frame_ab.data, frame_c.data)
        assert calib_ab.roi == calib_c.roi
        assert (calib_ab.binning_x, calib_ab.binning_y) == (calib_c.binning_x, calib_c.binning_y)
        assert calib_ab.K == pytest.approx(calib_c.K)
        assert calib_ab.P == pytest.approx(calib_c.P)
        assert (calib_ab.width, calib_ab.height) == (calib_c.width, calib_c.height)
