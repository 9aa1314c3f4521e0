"""Conversion of pixel errors to visual angle."""
import numpy as np
from typing import Union

from etl.config import DisplayConfig

ArrayLike = Union[float, np.ndarray]


def pix2deg(error_x: ArrayLike, error_y: ArrayLike, display: DisplayConfig) -> ArrayLike:
    """Convert a pixel error vector to degrees of visual angle.

    Each axis is scaled by its own pixels-per-degree ratio (resolution over
    field of view) and the two components are combined with the Euclidean
    norm. Optical distortion of the display is not modelled.

    Parameters
    ----------
    error_x, error_y : float or np.ndarray
        Horizontal and vertical error in pixels.
    display : DisplayConfig
        Resolution and field of view of the display.

    Returns
    -------
    float or np.ndarray
        Error magnitude in degrees.
    """
    ratio_x, ratio_y = display.pixels_per_degree
    deg = np.hypot(np.asarray(error_x, dtype=float) / ratio_x,
                   np.asarray(error_y, dtype=float) / ratio_y)
    return float(deg) if np.ndim(deg) == 0 else deg
