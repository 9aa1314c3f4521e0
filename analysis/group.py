"""
Comparison of gaze metrics across recordings and devices.
"""
import pandas as pd
import numpy as np
from typing import List, Optional, Tuple
from scipy import stats

DEGREE_METRICS = ['accuracy_deg', 'precision_deg', 'rms_deg']


def aggregate_by_group(df: pd.DataFrame, group_var: str, metrics: Optional[List[str]] = None) -> pd.DataFrame:
    """
    Aggregate per-target metrics by group variable (mean and SEM).

    Absent metrics are skipped, so a group's mean only covers the targets that
    had enough data.
    """
    if metrics is None:
        metrics = [col for col in DEGREE_METRICS if col in df.columns]
    values = df[[group_var] + metrics].copy()
    values[metrics] = values[metrics].astype(float)
    grouped = values.groupby(group_var)[metrics]
    means = grouped.mean().add_suffix('_mean')
    sems = grouped.sem().add_suffix('_sem')
    counts = grouped.count().add_suffix('_n')
    result = pd.concat([means, sems, counts], axis=1).reset_index()
    return result


def _cohens_d(x: np.ndarray, y: np.ndarray) -> float:
    """Calculate Cohen's d for two independent samples."""
    nx, ny = len(x), len(y)
    vx, vy = np.var(x, ddof=1), np.var(y, ddof=1)
    pooled_std = np.sqrt(((nx - 1) * vx + (ny - 1) * vy) / (nx + ny - 2))
    if pooled_std == 0:
        return np.nan
    return (np.mean(x) - np.mean(y)) / pooled_std


def _eta_squared(groups: List[np.ndarray]) -> float:
    """Calculate eta-squared for one-way ANOVA."""
    all_vals = np.concatenate(groups)
    grand_mean = np.mean(all_vals)
    ss_between = sum(len(g) * (np.mean(g) - grand_mean) ** 2 for g in groups)
    ss_total = np.sum((all_vals - grand_mean) ** 2)
    if ss_total == 0:
        return np.nan
    return ss_between / ss_total


def _bootstrap_ci(func, data: List[np.ndarray], n_boot: int = 1000, ci: float = 0.95,
                  seed: Optional[int] = None) -> Tuple[float, float]:
    """Bootstrap confidence interval for the given statistic."""
    rng = np.random.default_rng(seed)
    stats_bs = []
    for _ in range(n_boot):
        samples = [rng.choice(d, size=len(d), replace=True) for d in data]
        stats_bs.append(func(*samples))
    lower = np.nanpercentile(stats_bs, (1 - ci) / 2 * 100)
    upper = np.nanpercentile(stats_bs, (1 + ci) / 2 * 100)
    return lower, upper


def compare_groups(df: pd.DataFrame, group_var: str, metric: str, ci: bool = False,
                   seed: Optional[int] = None) -> pd.DataFrame:
    """Compare groups for a given metric using ANOVA or Welch's t-test.

    Parameters
    ----------
    df : pd.DataFrame
        Per-target metrics of several recordings.
    group_var : str
        Column denoting group membership, e.g. ``device``.
    metric : str
        Metric column to compare.
    ci : bool, optional
        If True, bootstrap 95% confidence interval for the effect size.
    seed : Optional[int], optional
        Seed for the bootstrap.

    Returns
    -------
    pd.DataFrame
        Single row with test name, statistic, p-value and effect size. The
        statistic is NaN when fewer than two groups have two or more values.
    """

    groups = df[group_var].dropna().unique()
    data = [df.loc[df[group_var] == g, metric].dropna().to_numpy(dtype=float) for g in groups]
    usable = [(g, d) for g, d in zip(groups, data) if len(d) >= 2]

    stat = p = effect = ci_low = ci_high = np.nan
    test = "t-test" if len(usable) == 2 else "ANOVA" if len(usable) > 2 else "none"

    if len(usable) == 2:
        a, b = usable[0][1], usable[1][1]
        stat, p = stats.ttest_ind(a, b, equal_var=False)
        effect = _cohens_d(a, b)
        if ci:
            ci_low, ci_high = _bootstrap_ci(_cohens_d, [a, b], seed=seed)
    elif len(usable) > 2:
        arrays = [d for _, d in usable]
        stat, p = stats.f_oneway(*arrays)
        effect = _eta_squared(arrays)
        if ci:
            ci_low, ci_high = _bootstrap_ci(lambda *d: _eta_squared(list(d)), arrays, seed=seed)

    result = pd.DataFrame({
        "metric": [metric],
        "test": [test],
        "statistic": [stat],
        "p_value": [p],
        "effect_size": [effect],
        "ci_lower": [ci_low],
        "ci_upper": [ci_high],
        "groups": [str([str(g) for g, _ in usable])],
    })
    return result
