"""
Time-gated segmentation of gaze samples into per-target fixation buckets.
"""
import pandas as pd
import numpy as np
from typing import Callable, Dict, List, Tuple
import logging

logger = logging.getLogger(__name__)

BUCKET_COLUMNS = ['timestamp', 'x', 'y']

ValidityPredicate = Callable[[pd.DataFrame], np.ndarray]


def has_position(samples: pd.DataFrame) -> np.ndarray:
    """Reject loss-of-signal samples (NaN position)."""
    return samples[['x', 'y']].notna().all(axis=1).to_numpy()


def accept_all(samples: pd.DataFrame) -> np.ndarray:
    """Accept every sample; for trackers that never report loss of signal."""
    return np.ones(len(samples), dtype=bool)


def check_intervals(targets: pd.DataFrame) -> List[Tuple[int, int]]:
    """
    Warn about inverted or overlapping target intervals.

    Parameters:
    -----------
    targets : pd.DataFrame
        Target table with ``interval_start`` and ``interval_stop`` columns

    Returns:
    --------
    List[Tuple[int, int]]
        Index pairs of targets whose intervals overlap
    """
    starts = targets['interval_start'].to_numpy(dtype=float)
    stops = targets['interval_stop'].to_numpy(dtype=float)

    for i in np.flatnonzero(starts >= stops):
        logger.warning('Target %d has an empty interval [%s, %s]', i, starts[i], stops[i])

    overlaps = []
    for i in range(len(starts)):
        for j in range(i + 1, len(starts)):
            if starts[i] < stops[j] and starts[j] < stops[i]:
                overlaps.append((i, j))
    if overlaps:
        logger.warning('Overlapping target intervals: %s', overlaps)
    return overlaps


def _inside_scan(times: np.ndarray, starts: np.ndarray, stops: np.ndarray) -> np.ndarray:
    # samples x targets membership mask
    return (times[:, None] > starts[None, :]) & (times[:, None] < stops[None, :])


def _inside_merge(times: np.ndarray, starts: np.ndarray, stops: np.ndarray) -> np.ndarray:
    if len(starts) == 0:
        return np.zeros((len(times), 0), dtype=bool)
    order = np.argsort(starts, kind='stable')
    sorted_starts = starts[order]
    # last interval starting strictly before each sample
    pos = np.searchsorted(sorted_starts, times, side='left') - 1
    candidate = order[np.clip(pos, 0, None)]
    hit = (pos >= 0) & (times < stops[candidate])

    inside = np.zeros((len(times), len(starts)), dtype=bool)
    rows = np.flatnonzero(hit)
    inside[rows, candidate[rows]] = True
    return inside


def segment(targets: pd.DataFrame, samples: pd.DataFrame,
            is_valid: ValidityPredicate = has_position,
            method: str = 'scan') -> Dict[int, pd.DataFrame]:
    """
    Assign reconciled gaze samples to the targets whose interval contains them.

    Parameters:
    -----------
    targets : pd.DataFrame
        Target table with ``x``, ``y``, ``interval_start``, ``interval_stop``
    samples : pd.DataFrame
        Reconciled samples with ``timestamp``, ``x``, ``y`` in arrival order
    is_valid : ValidityPredicate, optional
        Returns a boolean mask of samples to keep, by default ``has_position``
    method : str, optional
        ``'scan'`` tests every sample against every target; ``'merge'`` uses a
        binary search over the sorted interval starts, by default 'scan'

    Returns:
    --------
    Dict[int, pd.DataFrame]
        One bucket per target position in ``targets``. Buckets keep arrival
        order and may be empty.

    Notes:
    ------
    Interval bounds are exclusive. With ``'scan'`` a sample inside several
    overlapping intervals is added to each of them.
    """
    logger.debug('segment input: %d targets, %d samples, method=%s',
                 len(targets), len(samples), method)
    times = samples['timestamp'].to_numpy(dtype=float)
    starts = targets['interval_start'].to_numpy(dtype=float)
    stops = targets['interval_stop'].to_numpy(dtype=float)

    if method == 'scan':
        inside = _inside_scan(times, starts, stops)
    elif method == 'merge':
        inside = _inside_merge(times, starts, stops)
    else:
        raise ValueError(f"Unsupported segmentation method: {method}. Use 'scan' or 'merge'.")

    valid = np.asarray(is_valid(samples), dtype=bool)
    inside &= valid[:, None]

    shared = np.count_nonzero(inside.sum(axis=1) > 1)
    if shared:
        logger.warning('%d samples fall inside more than one target interval', shared)

    data = samples[BUCKET_COLUMNS].reset_index(drop=True)
    buckets = {}
    for j in range(len(targets)):
        buckets[j] = data[inside[:, j]].reset_index(drop=True)
        if buckets[j].empty:
            logger.info('No data for target %d', j)
        else:
            logger.debug('Target %d: %d samples', j, len(buckets[j]))

    logger.debug('segment dropped %d invalid samples', np.count_nonzero(~valid))
    return buckets


def label_samples(buckets: Dict[int, pd.DataFrame]) -> pd.DataFrame:
    """
    Flatten buckets into one table with a ``target`` column.
    """
    frames = [bucket.assign(target=j) for j, bucket in buckets.items() if not bucket.empty]
    if not frames:
        return pd.DataFrame(columns=BUCKET_COLUMNS + ['target'])
    return pd.concat(frames, ignore_index=True)
