import numpy as np
import pytest

from analysis.angles import pix2deg
from etl.config import DisplayConfig


@pytest.fixture
def display():
    # 38.4 px/deg horizontally, 40 px/deg vertically
    return DisplayConfig(width_px=1920, height_px=1200, h_fov_deg=50, v_fov_deg=30)


def test_zero_error_is_zero_degrees(display):
    assert pix2deg(0, 0, display) == 0


def test_axes_are_scaled_independently(display):
    assert pix2deg(38.4, 0, display) == pytest.approx(1.0)
    assert pix2deg(0, 40, display) == pytest.approx(1.0)
    assert pix2deg(3 * 38.4, 4 * 40, display) == pytest.approx(5.0)


def test_symmetric_under_sign_flip(display):
    deg = pix2deg(12.5, 7.0, display)
    assert pix2deg(-12.5, 7.0, display) == deg
    assert pix2deg(12.5, -7.0, display) == deg


def test_array_input(display):
    deg = pix2deg(np.array([0.0, 38.4]), np.array([40.0, 0.0]), display)
    np.testing.assert_allclose(deg, [1.0, 1.0])


def test_display_changes_result():
    small = DisplayConfig(width_px=800, height_px=600, h_fov_deg=40, v_fov_deg=30)
    assert pix2deg(20, 0, small) == pytest.approx(1.0)
