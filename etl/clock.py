"""
Clock reconciliation between a tracker and the stimulus (reference) clock.

The grid test stores target intervals as epoch seconds taken from the host
clock. Trackers stamp their samples on their own clock, anchored only by a
wall-clock start time in the export header. The functions here turn that
header into an additive offset so that ``reference = device_time + offset``.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence, Tuple

import pandas as pd

logger = logging.getLogger(__name__)

DateVector = Tuple[int, int, int, int, int, float]


class InvalidHeaderError(ValueError):
    """The recording header has no usable start timestamp."""

    def __init__(self, message: str, header: Optional[str] = None):
        super().__init__(f"{message}: {header!r}" if header is not None else message)
        self.header = header


def _date_vector(values: Sequence[str], header: str) -> DateVector:
    try:
        year, month, day, hour, minute = (int(float(v)) for v in values[:5])
        seconds = float(values[5])
    except (ValueError, IndexError, OverflowError):
        raise InvalidHeaderError("Start time is not numeric", header) from None
    vector = (year, month, day, hour, minute, seconds)
    # impossible dates, e.g. month 13
    try:
        wallclock_to_epoch(vector)
    except (ValueError, OverflowError):
        raise InvalidHeaderError("Start time is not a valid date", header) from None
    return vector


def parse_mrc_header(line: Optional[str]) -> Tuple[float, DateVector]:
    """
    Parse the first line of an MRC ``.trk`` export.

    The third whitespace separated token is the tick counter (ms) at the start
    of the recording, the fifth is a timestamp laid out as
    ``YYYY-MM-DD?HH:MM:SS.ffff``.

    Returns:
    --------
    Tuple[float, DateVector]
        (start_tick_ms, start date vector)
    """
    if not line or not line.strip():
        raise InvalidHeaderError("Missing MRC header", line)

    tokens = line.split()
    if len(tokens) < 5:
        raise InvalidHeaderError("MRC header has too few fields", line)

    try:
        start_tick = float(tokens[2])
    except ValueError:
        raise InvalidHeaderError("MRC start counter is not numeric", line) from None

    stamp = tokens[4]
    if len(stamp) < 19:
        raise InvalidHeaderError("MRC start timestamp is truncated", line)
    fields = [stamp[0:4], stamp[5:7], stamp[8:10], stamp[11:13], stamp[14:16], stamp[17:23]]
    return start_tick, _date_vector(fields, line)


def parse_arrington_header(line: Optional[str]) -> DateVector:
    """
    Parse the start time line of an Arrington export.

    Tokens three to eight hold ``year month day hour minute second``.
    """
    if not line or not line.strip():
        raise InvalidHeaderError("Missing Arrington start time line", line)

    tokens = line.split()
    if len(tokens) < 8:
        raise InvalidHeaderError("Arrington start time line has too few fields", line)
    return _date_vector(tokens[2:8], line)


def wallclock_to_epoch(device_start: DateVector, utc_offset_hours: float = 0.0,
                       correction_hours: float = 0.0) -> float:
    """
    Convert a local wall-clock date vector to epoch seconds.

    Parameters:
    -----------
    device_start : DateVector
        (year, month, day, hour, minute, second)
    utc_offset_hours : float, optional
        UTC offset of the clock the wall time was read from, by default 0.0
    correction_hours : float, optional
        Device specific correction added to the wall time, by default 0.0
    """
    year, month, day, hour, minute, seconds = device_start
    start = datetime(year, month, day, hour, minute, tzinfo=timezone.utc)
    start += timedelta(seconds=seconds, hours=correction_hours - utc_offset_hours)
    return start.timestamp()


def compute_offset(device_start: DateVector, utc_offset_hours: float = 0.0,
                   correction_hours: float = 0.0,
                   start_tick_ms: Optional[float] = None) -> float:
    """
    Compute the additive offset from device seconds to reference seconds.

    Parameters:
    -----------
    device_start : DateVector
        Recording start wall clock parsed from the device header
    utc_offset_hours : float, optional
        UTC offset of the host clock, by default 0.0
    correction_hours : float, optional
        Device clock correction, by default 0.0
    start_tick_ms : Optional[float], optional
        Tick counter value at recording start for devices that stamp samples
        with millisecond ticks, by default None

    Returns:
    --------
    float
        Offset such that ``reference = device_seconds + offset``
    """
    start_epoch = wallclock_to_epoch(device_start, utc_offset_hours, correction_hours)
    if start_tick_ms is None:
        offset = start_epoch
    else:
        offset = start_epoch - start_tick_ms / 1000.0
    logger.debug('Recording start %s -> epoch %.3f, offset %.3f', device_start, start_epoch, offset)
    return offset


def reconcile(samples: pd.DataFrame, offset: float, time_scale: float = 1.0) -> pd.DataFrame:
    """
    Move sample timestamps onto the reference clock.

    ``time_scale`` converts the raw device unit to seconds (1e-3 for ms ticks).
    """
    result = samples.copy()
    result['timestamp'] = result['timestamp'] * time_scale + offset
    return result


def apply_spatial_offset(samples: pd.DataFrame, offset: Tuple[float, float]) -> pd.DataFrame:
    """
    Shift positions reported relative to a capture window into screen pixels.
    """
    offset_x, offset_y = offset
    result = samples.copy()
    result['x'] = result['x'] + offset_x
    result['y'] = result['y'] + offset_y
    return result
