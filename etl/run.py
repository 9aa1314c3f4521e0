"""
ETL Pipeline runner for gaze accuracy recordings.

This module provides a command-line interface that reads a grid test ground
truth and a tracker recording, reconciles the clocks and writes the samples
labelled with the target they were recorded for.
"""
import argparse
import logging
from typing import Dict, Optional, Tuple

import pandas as pd

from etl.config import AnalysisConfig, DeviceConfig, load_config
from etl.io import load_ground_truth, load_recording, save_processed
from etl.preprocess import accept_all, check_intervals, has_position, label_samples, segment


def setup_logging(verbosity: int = 0) -> None:
    """
    Set up logging with appropriate verbosity.

    Parameters:
    -----------
    verbosity : int, optional
        0 = WARNING, 1 = INFO, 2 = DEBUG, by default 0
    """
    log_levels = {
        0: logging.WARNING,
        1: logging.INFO,
        2: logging.DEBUG
    }
    level = log_levels.get(verbosity, logging.DEBUG)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def build_config(device: str, config_path: Optional[str] = None) -> AnalysisConfig:
    """
    Build the analysis configuration for ``device``.

    Values from ``config_path`` are used when given, device defaults otherwise.
    """
    if config_path:
        return load_config(config_path, device=device)
    return AnalysisConfig(device=DeviceConfig(kind=device))


def run_pipeline(
    ground_truth_path: str,
    recording_path: str,
    config: AnalysisConfig,
    output_path: Optional[str] = None,
) -> Tuple[pd.DataFrame, Dict[int, pd.DataFrame]]:
    """
    Run the ETL pipeline for one recording.

    Parameters:
    -----------
    ground_truth_path : str
        Path to the grid test CSV
    recording_path : str
        Path to the tracker export
    config : AnalysisConfig
        Display, device and clock configuration
    output_path : Optional[str], optional
        Path to save the labelled samples, by default None

    Returns:
    --------
    tuple
        (targets, buckets)
    """
    logging.info(f"Loading ground truth from {ground_truth_path}")
    targets = load_ground_truth(ground_truth_path)
    check_intervals(targets)

    logging.info(f"Loading {config.device.kind} recording from {recording_path}")
    samples = load_recording(recording_path, config)

    is_valid = has_position if config.device.drop_invalid else accept_all
    buckets = segment(targets, samples, is_valid=is_valid, method=config.segmentation_method)

    # Save labelled samples if output path provided
    if output_path:
        logging.info(f"Saving labelled samples to {output_path}")
        save_processed(label_samples(buckets), output_path)

    return targets, buckets


def main():
    """
    Main entry point for the ETL pipeline.
    """
    parser = argparse.ArgumentParser(description="Gaze accuracy ETL Pipeline")
    parser.add_argument("--ground-truth", type=str, required=True,
                        help="Grid test CSV with target positions and intervals")
    parser.add_argument("--recording", type=str, required=True,
                        help="Tracker recording file")
    parser.add_argument("--device", type=str, choices=["mrc", "arrington"], required=True,
                        help="Tracker that produced the recording")
    parser.add_argument("--config", type=str,
                        help="YAML configuration file")
    parser.add_argument("--segmentation", type=str, choices=["scan", "merge"],
                        help="Segmentation method (overrides config)")
    parser.add_argument("--output", type=str, default="labelled_samples.parquet",
                        help="Path to save labelled samples")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase verbosity (can be used multiple times)")

    args = parser.parse_args()

    # Set up logging
    setup_logging(args.verbose)

    # Run the pipeline
    try:
        config = build_config(args.device, args.config)
        if args.segmentation:
            config = config.model_copy(update={"segmentation_method": args.segmentation})
        run_pipeline(
            ground_truth_path=args.ground_truth,
            recording_path=args.recording,
            config=config,
            output_path=args.output,
        )
        logging.info("ETL pipeline completed successfully")
    except Exception as e:
        logging.error(f"Error in ETL pipeline: {e}", exc_info=True)
        return 1

    return 0


if __name__ == "__main__":
    exit(main())
