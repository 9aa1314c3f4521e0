"""
Visualization functions for gaze accuracy results.
"""
import logging
import pandas as pd
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
from typing import Dict, Optional, Tuple
import seaborn as sns
from pathlib import Path

from analysis.metrics import INSUFFICIENT

logger = logging.getLogger(__name__)

MARKERS = ['+', 'o', '*', 'x', 'v', 'd', '^', 's', '>', '<']

METRIC_LABELS = {
    'accuracy_deg': 'Accuracy (deg)',
    'precision_deg': 'Precision (deg)',
    'rms_deg': 'Inter-sample RMS (deg)',
}


def plot_gaze_accuracy(targets: pd.DataFrame, buckets: Dict[int, pd.DataFrame],
                       metrics: pd.DataFrame, fig: Optional[Figure] = None,
                       screen_size: Tuple[int, int] = (1920, 1200)) -> Figure:
    """
    Plot time-gated gaze samples against their targets.

    Parameters:
    -----------
    targets : pd.DataFrame
        Target table with 'x' and 'y' columns
    buckets : Dict[int, pd.DataFrame]
        Segmented gaze samples per target
    metrics : pd.DataFrame
        Output of ``all_metrics`` with 'mean_x' and 'mean_y'
    fig : Optional[Figure], optional
        Matplotlib figure to plot on, by default None
    screen_size : Tuple[int, int], optional
        Screen dimensions (width, height), by default (1920, 1200)

    Returns:
    --------
    Figure
        Matplotlib figure with the samples, a line from each target to the mean
        gaze position and the targets as crosses
    """
    if fig is None:
        fig = plt.figure(figsize=(12, 8))

    screen_w, screen_h = screen_size
    ax = fig.add_subplot(111)

    for j, bucket in buckets.items():
        if bucket.empty:
            continue
        ax.scatter(bucket['x'], bucket['y'], s=10, marker=MARKERS[j % len(MARKERS)],
                   label=str(j + 1))

    # Line from target to mean gaze position
    with_data = metrics[metrics['n_samples'] > 0]
    for row in with_data.itertuples(index=False):
        ax.plot([row.mean_x, row.target_x], [row.mean_y, row.target_y], 'r')
        ax.scatter(row.mean_x, row.mean_y, s=20, color='r', marker='o')

    ax.scatter(targets['x'], targets['y'], s=80, color='r', marker='x')

    ax.set_xlim(0, screen_w)
    ax.set_ylim(screen_h, 0)  # Invert Y axis to match screen coordinates
    ax.set_xlabel('X (px)')
    ax.set_ylabel('Y (px)')
    ax.set_title('Gaze Accuracy')
    if not with_data.empty:
        ax.legend(title='Target')

    return fig


def plot_metric_bars(metrics: pd.DataFrame, metric: str,
                     hue: Optional[str] = None) -> Figure:
    """Bar plot of one degree-valued metric per target.

    Parameters
    ----------
    metrics : pd.DataFrame
        Metrics DataFrame containing a ``target`` column.
    metric : str
        Column in ``metrics`` to plot.
    hue : Optional[str], optional
        Column to split bars by, e.g. ``device``.

    Returns
    -------
    Figure
        Matplotlib figure with the bar plot.
    """

    fig = plt.figure(figsize=(8, 6))
    ax = fig.add_subplot(111)

    data = pd.DataFrame()
    if metric in metrics.columns:
        data = metrics.dropna(subset=[metric]).copy()
    if data.empty:
        ax.text(0.5, 0.5, INSUFFICIENT.capitalize(), ha='center', va='center')
        ax.axis('off')
        return fig

    data[metric] = data[metric].astype(float)
    data['target'] = data['target'] + 1
    sns.barplot(data=data, x='target', y=metric, hue=hue, errorbar=None, ax=ax)
    ax.set_xlabel('Target')
    ax.set_ylabel(METRIC_LABELS.get(metric, metric))
    ax.set_title(f'{METRIC_LABELS.get(metric, metric)} by target')
    fig.tight_layout()

    return fig


def save_all_visualizations(targets: pd.DataFrame, buckets: Dict[int, pd.DataFrame],
                            metrics: pd.DataFrame, output_dir: str,
                            prefix: str = "",
                            screen_size: Tuple[int, int] = (1920, 1200)) -> None:
    """
    Generate and save all visualizations for one recording.

    Parameters:
    -----------
    targets : pd.DataFrame
        Target table
    buckets : Dict[int, pd.DataFrame]
        Segmented gaze samples per target
    metrics : pd.DataFrame
        Output of ``all_metrics``
    output_dir : str
        Directory to save visualizations
    prefix : str, optional
        File name prefix, by default ""
    screen_size : Tuple[int, int], optional
        Screen dimensions (width, height), by default (1920, 1200)
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    if prefix and not prefix.endswith('_'):
        prefix += '_'

    fig = plot_gaze_accuracy(targets, buckets, metrics, screen_size=screen_size)
    fig.savefig(output_path / f"{prefix}accuracy.png", dpi=300, bbox_inches='tight')
    plt.close(fig)

    for metric in METRIC_LABELS:
        fig = plot_metric_bars(metrics, metric)
        fig.savefig(output_path / f"{prefix}{metric}.png", dpi=300, bbox_inches='tight')
        plt.close(fig)

    logger.debug('Saved visualizations to %s', output_path)


def save_group_visualizations(metrics: pd.DataFrame, output_dir: str,
                              group_var: str = 'device') -> None:
    """Save per-target metric bar plots split by ``group_var``."""
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    for metric in METRIC_LABELS:
        fig = plot_metric_bars(metrics, metric, hue=group_var)
        fig.savefig(output_path / f"{metric}_by_{group_var}.png", dpi=300, bbox_inches='tight')
        plt.close(fig)
