"""
Functions for loading ground truth and tracker recordings, and saving results
"""
from pathlib import Path
import logging
import pandas as pd
from typing import Optional, Union

from etl.clock import (
    InvalidHeaderError,
    apply_spatial_offset,
    compute_offset,
    parse_arrington_header,
    parse_mrc_header,
    reconcile,
)
from etl.config import AnalysisConfig, DeviceConfig, DisplayConfig

logger = logging.getLogger(__name__)

GROUND_TRUTH_COLUMNS = ['x', 'y', 'interval_start', 'interval_stop']
SAMPLE_COLUMNS = ['timestamp', 'x', 'y']

MRC_HEADER_ROWS = 4
MRC_COLUMNS = 12
ARRINGTON_START_LINE = 8
# (header rows, data columns) for monocular and binocular exports
ARRINGTON_LAYOUT = {False: (40, 13), True: (44, 27)}


def _read_line(path: Path, line_number: int) -> Optional[str]:
    """Return 1-based line ``line_number`` of ``path`` or None if too short."""
    with path.open('r', errors='replace') as f:
        for i, line in enumerate(f, start=1):
            if i == line_number:
                return line.rstrip('\r\n')
    return None


def _read_table(path: Path, skiprows: int, num_cols: int) -> pd.DataFrame:
    """
    Read a whitespace separated export as floats.

    Cells that are not numbers become NaN, rows without a numeric timestamp are
    dropped by the caller.
    """
    df = pd.read_csv(
        path,
        sep=r'\s+',
        header=None,
        skiprows=skiprows,
        names=list(range(num_cols)),
        index_col=False,
        dtype=str,
        engine='python',
    )
    # quoting is not honoured with a regex separator
    df = df.replace('"', '', regex=True)
    return df.apply(pd.to_numeric, errors='coerce')


def _canonical(raw: pd.DataFrame, device: DeviceConfig) -> pd.DataFrame:
    """Select timestamp and gaze columns and drop rows that cannot be used."""
    gaze_x, gaze_y = device.gaze_column, device.gaze_column + 1
    missing = [c for c in (device.timestamp_column, gaze_x, gaze_y) if c not in raw.columns]
    if missing:
        raise ValueError(f"Columns {missing} not found in {device.kind} recording")

    samples = raw[[device.timestamp_column, gaze_x, gaze_y]].copy()
    samples.columns = SAMPLE_COLUMNS

    malformed = samples['timestamp'].isna()
    if malformed.any():
        logger.warning("Dropping %d %s rows without a numeric timestamp",
                       int(malformed.sum()), device.kind)
        samples = samples[~malformed]

    if not device.drop_invalid:
        unparsed = samples[['x', 'y']].isna().any(axis=1)
        if unparsed.any():
            logger.warning("Dropping %d %s rows with non-numeric gaze position",
                           int(unparsed.sum()), device.kind)
            samples = samples[~unparsed]
    return samples.reset_index(drop=True)


def load_ground_truth(path: Union[str, Path]) -> pd.DataFrame:
    """
    Load the target table written by the grid test.

    Parameters:
    -----------
    path : Union[str, Path]
        CSV without header; columns x, y, start, stop

    Returns:
    --------
    pd.DataFrame
        Targets with columns ``x``, ``y``, ``interval_start``, ``interval_stop``
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Ground truth file not found: {path}")

    df = pd.read_csv(path, header=None)
    if df.shape[1] < len(GROUND_TRUTH_COLUMNS):
        raise ValueError(
            f"Ground truth file {path} has {df.shape[1]} columns, expected {len(GROUND_TRUTH_COLUMNS)}"
        )
    df = df.iloc[:, :len(GROUND_TRUTH_COLUMNS)].astype(float)
    df.columns = GROUND_TRUTH_COLUMNS
    logger.debug('Loaded %d targets from %s', len(df), path)
    return df


def read_mrc(path: Union[str, Path], device: DeviceConfig,
             utc_offset_hours: float = 0.0) -> pd.DataFrame:
    """
    Read an MRC ``.trk`` export and reconcile it with the reference clock.

    Samples are stamped with a millisecond tick counter; the header's start
    counter and start time anchor them. Positions are relative to the MRC
    stimulus window and get the configured spatial offset.

    Parameters:
    -----------
    path : Union[str, Path]
        Path to the ``.trk`` file
    device : DeviceConfig
        MRC device configuration
    utc_offset_hours : float, optional
        UTC offset of the host clock, by default 0.0

    Returns:
    --------
    pd.DataFrame
        Samples with ``timestamp`` (epoch seconds), ``x``, ``y`` (pixels, NaN on
        loss of signal)
    """
    path = Path(path)
    header = _read_line(path, 1)
    start_tick, start_time = parse_mrc_header(header)

    raw = _read_table(path, MRC_HEADER_ROWS, max(MRC_COLUMNS, device.gaze_column + 2))
    samples = _canonical(raw, device)

    offset = compute_offset(start_time, utc_offset_hours,
                            device.clock_correction_hours, start_tick_ms=start_tick)
    samples = reconcile(samples, offset, device.time_scale)
    samples = apply_spatial_offset(samples, device.spatial_offset)

    logger.info(f"Read {len(samples)} MRC samples from {path}")
    return samples


def read_arrington(path: Union[str, Path], device: DeviceConfig,
                   display: DisplayConfig, utc_offset_hours: float = 0.0) -> pd.DataFrame:
    """
    Read an Arrington export and reconcile it with the reference clock.

    Timestamps are seconds since the start time stored on line 8 of the header;
    positions are normalised to the display and scaled to pixels here.

    Parameters:
    -----------
    path : Union[str, Path]
        Path to the Arrington data file
    device : DeviceConfig
        Arrington device configuration
    display : DisplayConfig
        Display used to scale normalised coordinates
    utc_offset_hours : float, optional
        UTC offset of the host clock, by default 0.0

    Returns:
    --------
    pd.DataFrame
        Samples with ``timestamp`` (epoch seconds), ``x``, ``y`` (pixels)
    """
    path = Path(path)
    start_time = parse_arrington_header(_read_line(path, ARRINGTON_START_LINE))

    header_rows, num_cols = ARRINGTON_LAYOUT[device.binocular]
    raw = _read_table(path, header_rows, num_cols)
    samples = _canonical(raw, device)

    if device.normalized_coordinates:
        samples['x'] = samples['x'] * display.width_px
        samples['y'] = samples['y'] * display.height_px

    offset = compute_offset(start_time, utc_offset_hours, device.clock_correction_hours)
    samples = reconcile(samples, offset, device.time_scale)
    samples = apply_spatial_offset(samples, device.spatial_offset)

    logger.info(f"Read {len(samples)} Arrington samples from {path}")
    return samples


def load_recording(path: Union[str, Path], config: AnalysisConfig) -> pd.DataFrame:
    """
    Load a tracker recording onto the reference clock and screen pixels.

    Parameters:
    -----------
    path : Union[str, Path]
        Path to the tracker export
    config : AnalysisConfig
        Analysis configuration; ``config.device.kind`` selects the reader

    Returns:
    --------
    pd.DataFrame
        Samples with ``timestamp``, ``x``, ``y``
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Recording not found: {path}")

    device = config.device
    try:
        if device.kind == 'mrc':
            return read_mrc(path, device, config.utc_offset_hours)
        return read_arrington(path, device, config.display, config.utc_offset_hours)
    except InvalidHeaderError as e:
        logger.error(f"Cannot reconcile {path}: {e}")
        raise


def save_processed(df: pd.DataFrame, output_path: str, format: Optional[str] = None) -> None:
    """
    Save processed data.

    Parameters:
    -----------
    df : pd.DataFrame
        DataFrame to save
    output_path : str
        Path to save the DataFrame to
    format : Optional[str], optional
        File format ("csv", "parquet"), by default taken from the file suffix
    """
    path = Path(output_path)
    if format is None:
        format = path.suffix.lstrip('.') or 'parquet'

    # Create parent directories if they don't exist
    path.parent.mkdir(parents=True, exist_ok=True)

    if format.lower() == "csv":
        df.to_csv(path, index=False)
    elif format.lower() == "parquet":
        df.to_parquet(path, index=False)
    else:
        raise ValueError(f"Unsupported format: {format}. Use 'csv' or 'parquet'.")
