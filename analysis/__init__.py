"""
Gaze accuracy analysis package

- angles.py: Conversion of pixel errors to degrees of visual angle
- metrics.py: Per-target accuracy, precision and inter-sample RMS
- group.py: Comparison of metrics across recordings and devices
- viz.py: Visualization functions for accuracy results
"""
