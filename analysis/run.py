"""
Analysis Pipeline runner for gaze accuracy recordings.

This module provides a command-line interface to run the analysis pipeline.
"""
import argparse
import logging
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from analysis.group import DEGREE_METRICS, aggregate_by_group, compare_groups
from analysis.metrics import all_metrics, format_report
from analysis.viz import save_all_visualizations, save_group_visualizations
from etl.config import AnalysisConfig
from etl.run import build_config, run_pipeline, setup_logging


def run_analysis(
    targets: pd.DataFrame,
    buckets: Dict[int, pd.DataFrame],
    config: AnalysisConfig,
    output_dir: str,
    output_metrics_path: Optional[str] = None,
    prefix: str = "",
    generate_visualizations: bool = True,
) -> pd.DataFrame:
    """
    Run the analysis pipeline for one segmented recording.

    Parameters:
    -----------
    targets : pd.DataFrame
        Target table
    buckets : Dict[int, pd.DataFrame]
        Segmented gaze samples per target
    config : AnalysisConfig
        Analysis configuration (display used for degrees and plots)
    output_dir : str
        Directory to save analysis results
    output_metrics_path : Optional[str], optional
        Path to save metrics data, by default None
    prefix : str, optional
        File name prefix for visualizations, by default ""
    generate_visualizations : bool, optional
        Whether to generate visualizations, by default True

    Returns:
    --------
    pd.DataFrame
        Metrics DataFrame, one row per target
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    logging.info("Calculating metrics")
    metrics_df = all_metrics(targets, buckets, config.display)

    missing = metrics_df.loc[metrics_df['n_samples'] == 0, 'target'].tolist()
    if missing:
        logging.warning(f"No gaze data for targets {missing}")

    # Save metrics if output path provided
    if output_metrics_path:
        logging.info(f"Saving metrics to {output_metrics_path}")
        metrics_df.to_csv(output_metrics_path, index=False)

    # Generate visualizations if requested
    if generate_visualizations:
        logging.info("Generating visualizations")
        save_all_visualizations(
            targets, buckets, metrics_df,
            output_path / "visualizations",
            prefix=prefix,
            screen_size=config.display.screen_size,
        )

    return metrics_df


def run_comparison(metrics_df: pd.DataFrame, output_dir: str,
                   group_var: str = 'device',
                   generate_visualizations: bool = True) -> pd.DataFrame:
    """
    Compare the degree-valued metrics of several recordings.

    Parameters:
    -----------
    metrics_df : pd.DataFrame
        Concatenated metrics with a ``group_var`` column
    output_dir : str
        Directory to save comparison results
    group_var : str, optional
        Column to compare by, by default 'device'
    generate_visualizations : bool, optional
        Whether to generate visualizations, by default True

    Returns:
    --------
    pd.DataFrame
        One comparison row per metric
    """
    group_dir = Path(output_dir) / "group_analysis"
    group_dir.mkdir(parents=True, exist_ok=True)

    logging.info(f"Performing group analysis by {group_var}")
    agg_metrics = aggregate_by_group(metrics_df, group_var)
    agg_metrics.to_csv(group_dir / "aggregated_metrics.csv", index=False)

    comparison = pd.concat(
        [compare_groups(metrics_df, group_var, metric) for metric in DEGREE_METRICS],
        ignore_index=True,
    )
    comparison.to_csv(group_dir / f"{group_var}_comparison.csv", index=False)

    if generate_visualizations:
        save_group_visualizations(metrics_df, group_dir, group_var=group_var)

    return comparison


def analyze_recordings(
    ground_truth_path: str,
    recordings: List[str],
    devices: List[str],
    output_dir: str,
    config_paths: Optional[List[str]] = None,
    generate_visualizations: bool = True,
) -> pd.DataFrame:
    """
    Run ETL and analysis for each recording and compare them.

    Parameters:
    -----------
    ground_truth_path : str
        Grid test CSV shared by all recordings
    recordings : List[str]
        Tracker recording files
    devices : List[str]
        Device kind of each recording, or a single kind for all of them
    output_dir : str
        Directory to save results
    config_paths : Optional[List[str]], optional
        YAML configuration of each recording, or a single one for all of them,
        by default None
    generate_visualizations : bool, optional
        Whether to generate visualizations, by default True

    Returns:
    --------
    pd.DataFrame
        Metrics of all recordings with ``recording`` and ``device`` columns
    """
    if len(devices) == 1:
        devices = devices * len(recordings)
    if len(devices) != len(recordings):
        raise ValueError("Give one --device for all recordings or one per recording")
    if not config_paths:
        config_paths = [None] * len(recordings)
    elif len(config_paths) == 1:
        config_paths = config_paths * len(recordings)
    if len(config_paths) != len(recordings):
        raise ValueError("Give one --config for all recordings or one per recording")

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    all_results = []
    for recording, device, config_path in zip(recordings, devices, config_paths):
        config = build_config(device, config_path)
        targets, buckets = run_pipeline(ground_truth_path, recording, config)

        name = Path(recording).stem
        metrics_df = run_analysis(
            targets, buckets, config, output_dir,
            output_metrics_path=str(output_path / f"{name}_metrics.csv"),
            prefix=name,
            generate_visualizations=generate_visualizations,
        )
        print(f"== {name} ({device}) ==")
        print(format_report(metrics_df))

        all_results.append(metrics_df.assign(recording=name, device=device))

    combined = pd.concat(all_results, ignore_index=True)
    if len(all_results) > 1:
        group_var = 'device' if combined['device'].nunique() > 1 else 'recording'
        run_comparison(combined, output_dir, group_var=group_var,
                       generate_visualizations=generate_visualizations)

    return combined


def main():
    """
    Main entry point for the analysis pipeline.
    """
    parser = argparse.ArgumentParser(description="Gaze accuracy Analysis Pipeline")
    parser.add_argument("--ground-truth", type=str, required=True,
                        help="Grid test CSV with target positions and intervals")
    parser.add_argument("--recording", type=str, action="append", required=True,
                        help="Tracker recording file (can be used multiple times)")
    parser.add_argument("--device", type=str, action="append", required=True,
                        choices=["mrc", "arrington"],
                        help="Tracker of each recording, or one for all")
    parser.add_argument("--config", type=str, action="append",
                        help="YAML configuration of each recording, or one for all")
    parser.add_argument("--output-dir", type=str, default="analysis_results",
                        help="Directory to save analysis results")
    parser.add_argument("--no-visualizations", action="store_true",
                        help="Skip generating visualizations")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase verbosity (can be used multiple times)")

    args = parser.parse_args()

    # Set up logging
    setup_logging(args.verbose)

    try:
        analyze_recordings(
            ground_truth_path=args.ground_truth,
            recordings=args.recording,
            devices=args.device,
            output_dir=args.output_dir,
            config_paths=args.config,
            generate_visualizations=not args.no_visualizations,
        )
        logging.info("Analysis pipeline completed successfully")
    except Exception as e:
        logging.error(f"Error in analysis pipeline: {e}", exc_info=True)
        return 1

    return 0


if __name__ == "__main__":
    exit(main())
