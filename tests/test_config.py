import pytest
from pydantic import ValidationError

from etl.config import AnalysisConfig, DeviceConfig, DisplayConfig, load_config


def test_device_defaults():
    mrc = DeviceConfig(kind="mrc")
    assert (mrc.timestamp_column, mrc.gaze_column) == (0, 7)
    assert mrc.time_scale == 1e-3
    assert mrc.drop_invalid and not mrc.normalized_coordinates

    arrington = DeviceConfig(kind="arrington")
    assert (arrington.timestamp_column, arrington.gaze_column) == (1, 5)
    assert arrington.normalized_coordinates and not arrington.drop_invalid
    assert arrington.spatial_offset == (0.0, 0.0)


def test_device_overrides():
    device = DeviceConfig(kind="mrc", gaze_column=9, spatial_offset=(384, 180))
    assert device.gaze_column == 9
    assert device.spatial_offset == (384, 180)
    assert device.time_scale == 1e-3


def test_unknown_device():
    with pytest.raises(ValidationError):
        DeviceConfig(kind="eyelink")


def test_display_ratios():
    display = DisplayConfig(width_px=1920, height_px=1200, h_fov_deg=50, v_fov_deg=30)
    assert display.pixels_per_degree == (38.4, 40.0)
    assert display.screen_size == (1920, 1200)

    with pytest.raises(ValidationError):
        DisplayConfig(width_px=0)


def test_load_config(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text(
        "display:\n  width_px: 1280\n  height_px: 1024\n"
        "utc_offset_hours: 2\n"
        "device:\n  kind: mrc\n  spatial_offset: [384, 180]\n"
        "segmentation_method: merge\n"
    )
    config = load_config(path)
    assert isinstance(config, AnalysisConfig)
    assert config.display.width_px == 1280
    assert config.display.h_fov_deg == 50
    assert config.utc_offset_hours == 2
    assert config.device.spatial_offset == (384, 180)
    assert config.segmentation_method == "merge"


def test_load_config_device_override(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text("device:\n  kind: mrc\n  spatial_offset: [384, 180]\n")

    same = load_config(path, device="mrc")
    assert same.device.spatial_offset == (384, 180)

    other = load_config(path, device="arrington")
    assert other.device.kind == "arrington"
    assert other.device.spatial_offset == (0.0, 0.0)


def test_load_config_without_device_section(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text("utc_offset_hours: 1\n")
    assert load_config(path, device="arrington").device.kind == "arrington"
    with pytest.raises(ValidationError):
        load_config(path)


def test_load_config_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")

    path = tmp_path / "bad.yaml"
    path.write_text("display:\n  width_px: -5\ndevice:\n  kind: mrc\n")
    with pytest.raises(ValidationError):
        load_config(path)


def test_shipped_configs():
    from pathlib import Path

    root = Path(__file__).resolve().parents[1] / "config"
    mrc = load_config(root / "vshd_mrc.yaml")
    assert mrc.device.spatial_offset == (384, 180)
    arrington = load_config(root / "vshd_arrington.yaml")
    assert arrington.device.clock_correction_hours == 2


def test_device_fields_filled_per_kind():
    assert DeviceConfig.model_fields["gaze_column"].is_required()
    device = DeviceConfig(kind="arrington", gaze_column=None, drop_invalid=None)
    assert device.gaze_column == 5
    assert device.drop_invalid is False
