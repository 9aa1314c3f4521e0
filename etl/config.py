"""
Configuration models for the display, the tracker and the analysis run.
"""
import logging
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, Field, model_validator

logger = logging.getLogger(__name__)


# Column indices are 0-based positions in the tracker export.
DEVICE_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "mrc": {
        "timestamp_column": 0,
        "gaze_column": 7,
        "time_scale": 1e-3,
        "normalized_coordinates": False,
        "drop_invalid": True,
    },
    "arrington": {
        "timestamp_column": 1,
        "gaze_column": 5,
        "time_scale": 1.0,
        "normalized_coordinates": True,
        "drop_invalid": False,
    },
}


class DisplayConfig(BaseModel):
    """
    Resolution and field of view of the stimulus display.
    """
    width_px: int = Field(1920, gt=0, description="Horizontal resolution.")
    height_px: int = Field(1200, gt=0, description="Vertical resolution.")
    h_fov_deg: float = Field(50.0, gt=0, description="Horizontal field of view.")
    v_fov_deg: float = Field(30.0, gt=0, description="Vertical field of view.")

    @property
    def screen_size(self) -> Tuple[int, int]:
        return self.width_px, self.height_px

    @property
    def pixels_per_degree(self) -> Tuple[float, float]:
        return self.width_px / self.h_fov_deg, self.height_px / self.v_fov_deg


class DeviceConfig(BaseModel):
    """
    How to read and reconcile one tracker's export.

    Fields left unset are filled from ``DEVICE_DEFAULTS`` for the given kind.
    """
    kind: Literal["mrc", "arrington"]
    timestamp_column: int = Field(ge=0)
    gaze_column: int = Field(ge=0, description="Column of gaze x; y is the next one.")
    time_scale: float = Field(gt=0, description="Device time unit in seconds.")
    normalized_coordinates: bool
    drop_invalid: bool
    binocular: bool = True
    clock_correction_hours: float = Field(
        0.0, description="Correction added to the header wall clock."
    )
    spatial_offset: Tuple[float, float] = Field(
        (0.0, 0.0), description="Pixel offset of the capture window on the display."
    )

    @model_validator(mode="before")
    @classmethod
    def _fill_device_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        defaults = DEVICE_DEFAULTS.get(data.get("kind"), {})
        merged = dict(defaults)
        merged.update({k: v for k, v in data.items() if v is not None})
        return merged


class AnalysisConfig(BaseModel):
    """Everything one analysis run needs besides the input files."""
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    device: DeviceConfig
    utc_offset_hours: float = Field(
        0.0, description="UTC offset of the host clock the ground truth was recorded on."
    )
    segmentation_method: Literal["scan", "merge"] = "scan"


def load_config(config_path: Union[str, Path],
                device: Optional[str] = None) -> AnalysisConfig:
    """
    Load an analysis configuration from a YAML file.

    Parameters:
    -----------
    config_path : Union[str, Path]
        Path to the YAML file
    device : Optional[str], optional
        Device kind to use when the file has no ``device`` section, by default None

    Returns:
    --------
    AnalysisConfig
        Validated configuration
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_file, 'r') as f:
        raw = yaml.safe_load(f) or {}

    if device is not None:
        device_section = raw.get("device") or {}
        if device_section.get("kind", device) != device:
            logger.warning("Config device kind %s overridden by %s",
                           device_section.get("kind"), device)
            device_section = {}
        device_section["kind"] = device
        raw["device"] = device_section

    logger.debug("Loaded configuration from %s: %s", config_file, raw)
    return AnalysisConfig.model_validate(raw)
