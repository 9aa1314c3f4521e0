"""
Gaze recording ETL (Extract-Transform-Load) package

- config.py: Display, device and analysis configuration
- io.py: Readers for the grid test ground truth and tracker exports
- clock.py: Clock reconciliation and spatial offset correction
- preprocess.py: Time-gated segmentation of samples into target buckets
"""
