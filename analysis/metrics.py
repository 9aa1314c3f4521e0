import pandas as pd
import numpy as np
from dataclasses import dataclass
from typing import Dict, NamedTuple, Optional, Tuple, Union

from analysis.angles import pix2deg
from etl.config import DisplayConfig

INSUFFICIENT = "insufficient data"
NO_DATA = "no data"

METRIC_COLUMNS = [
    "mean_x", "mean_y",
    "accuracy_x", "accuracy_y", "accuracy_deg",
    "precision_x", "precision_y", "precision_deg",
    "rms_x", "rms_y", "rms_deg",
]


class AxisError(NamedTuple):
    """Per-axis pixel error and its combined size in degrees."""
    x: float
    y: float
    deg: float


@dataclass(frozen=True)
class FixationMetrics:
    """Summary of the gaze samples recorded while one target was shown.

    ``inter_sample_rms`` is ``None`` when the bucket holds a single sample.
    """
    n_samples: int
    mean: Tuple[float, float]
    accuracy: AxisError
    precision: AxisError
    inter_sample_rms: Optional[AxisError]


def _as_points(bucket: Union[pd.DataFrame, np.ndarray]) -> np.ndarray:
    if isinstance(bucket, pd.DataFrame):
        return bucket[["x", "y"]].to_numpy(dtype=float)
    return np.asarray(bucket, dtype=float).reshape(-1, 2)


def _axis_error(error_px: np.ndarray, display: DisplayConfig) -> AxisError:
    ex, ey = float(error_px[0]), float(error_px[1])
    return AxisError(ex, ey, pix2deg(ex, ey, display))


def compute_metrics(bucket: Union[pd.DataFrame, np.ndarray],
                    target_position: Tuple[float, float],
                    display: DisplayConfig) -> Optional[FixationMetrics]:
    """Compute mean, accuracy, precision and inter-sample RMS for one target.

    Parameters
    ----------
    bucket : pd.DataFrame or np.ndarray
        Samples of one fixation in arrival order, either a DataFrame with
        ``x`` and ``y`` columns or an ``(n, 2)`` array.
    target_position : Tuple[float, float]
        Pixel position of the target.
    display : DisplayConfig
        Display used for the conversion to degrees.

    Returns
    -------
    Optional[FixationMetrics]
        ``None`` for an empty bucket.
    """
    points = _as_points(bucket)
    n = len(points)
    if n == 0:
        return None

    target = np.asarray(target_position, dtype=float)
    mean = points.mean(axis=0)

    # Accuracy is the mean absolute deviation from the target, not the mean
    accuracy = np.abs(points - target).mean(axis=0)
    precision = points.std(axis=0, ddof=0)

    rms = None
    if n >= 2:
        diffs = np.diff(points, axis=0)
        rms = _axis_error(np.sqrt((diffs ** 2).mean(axis=0)), display)

    return FixationMetrics(
        n_samples=n,
        mean=(float(mean[0]), float(mean[1])),
        accuracy=_axis_error(accuracy, display),
        precision=_axis_error(precision, display),
        inter_sample_rms=rms,
    )


def metrics_row(metrics: Optional[FixationMetrics]) -> Dict[str, object]:
    """Flatten a metrics record; absent values become ``pd.NA``."""
    row: Dict[str, object] = {col: pd.NA for col in METRIC_COLUMNS}
    if metrics is None:
        row["n_samples"] = 0
        return row

    row["n_samples"] = metrics.n_samples
    row["mean_x"], row["mean_y"] = metrics.mean
    for name, err in (("accuracy", metrics.accuracy),
                      ("precision", metrics.precision),
                      ("rms", metrics.inter_sample_rms)):
        if err is not None:
            row[f"{name}_x"], row[f"{name}_y"], row[f"{name}_deg"] = err
    return row


def all_metrics(targets: pd.DataFrame, buckets: Dict[int, pd.DataFrame],
                display: DisplayConfig) -> pd.DataFrame:
    """Calculate fixation metrics for every target.

    Parameters
    ----------
    targets : pd.DataFrame
        Target table with ``x`` and ``y`` columns.
    buckets : Dict[int, pd.DataFrame]
        Segmented samples keyed by target position in ``targets``.
    display : DisplayConfig
        Display used for the conversion to degrees.

    Returns
    -------
    pd.DataFrame
        One row per target with ``target``, ``target_x``, ``target_y``,
        ``n_samples`` and the metric columns. Metric columns use the nullable
        ``Float64`` dtype; metrics that are not defined for a target are
        ``pd.NA``.
    """
    rows = []
    for j, (tx, ty) in enumerate(targets[["x", "y"]].itertuples(index=False)):
        bucket = buckets.get(j)
        metrics = None if bucket is None else compute_metrics(bucket, (tx, ty), display)
        row = {"target": j, "target_x": float(tx), "target_y": float(ty)}
        row.update(metrics_row(metrics))
        rows.append(row)

    columns = ["target", "target_x", "target_y", "n_samples"] + METRIC_COLUMNS
    df = pd.DataFrame(rows, columns=columns)
    return df.astype({"target": int, "n_samples": int, **{c: "Float64" for c in METRIC_COLUMNS}})


def _fmt(values, unit: str = "px") -> str:
    if any(pd.isna(v) for v in values):
        return INSUFFICIENT
    if len(values) == 3:
        return f"({values[0]:.2f}, {values[1]:.2f}) {unit}, {values[2]:.3f} deg"
    return f"({values[0]:.2f}, {values[1]:.2f}) {unit}"


def format_report(metrics: pd.DataFrame) -> str:
    """Render a metrics table as text.

    Targets without samples are reported as "no data" and undefined metrics as
    "insufficient data", never as zero.
    """
    lines = []
    for row in metrics.itertuples(index=False):
        header = f"Target {row.target} at ({row.target_x:.1f}, {row.target_y:.1f})"
        if row.n_samples == 0:
            lines.append(f"{header}: {NO_DATA}")
            continue
        lines.append(f"{header}: {row.n_samples} samples")
        lines.append(f"  mean:             {_fmt((row.mean_x, row.mean_y))}")
        lines.append(f"  accuracy:         {_fmt((row.accuracy_x, row.accuracy_y, row.accuracy_deg))}")
        lines.append(f"  precision:        {_fmt((row.precision_x, row.precision_y, row.precision_deg))}")
        lines.append(f"  inter-sample RMS: {_fmt((row.rms_x, row.rms_y, row.rms_deg))}")
    return "\n".join(lines)
