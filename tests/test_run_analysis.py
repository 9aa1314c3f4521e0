import pytest

pd = pytest.importorskip("pandas")
from analysis.run import analyze_recordings, run_analysis
from etl.config import AnalysisConfig, DeviceConfig
from etl.run import run_pipeline


@pytest.fixture
def ground_truth(write_ground_truth, start_epoch):
    return write_ground_truth([
        (400, 300, start_epoch + 0.1, start_epoch + 1.0),
        (800, 600, start_epoch + 2.0, start_epoch + 3.0),
        (1200, 900, start_epoch + 4.0, start_epoch + 5.0),
    ])


@pytest.fixture
def mrc_recording(write_mrc):
    # positions relative to the capture window at (384, 180)
    return write_mrc([
        (1500, 16, 120),
        (1600, 20, 116),
        (1700, "-", "-"),
        (3500, 421, 425),
        (5500, "-", "-"),
    ])


@pytest.fixture
def mrc_config():
    return AnalysisConfig(device=DeviceConfig(kind="mrc", spatial_offset=(384, 180)))


def test_run_pipeline(ground_truth, mrc_recording, mrc_config, tmp_path):
    out = tmp_path / "labelled.csv"
    targets, buckets = run_pipeline(str(ground_truth), str(mrc_recording), mrc_config,
                                    output_path=str(out))
    assert len(targets) == 3
    assert [len(buckets[j]) for j in range(3)] == [2, 1, 0]
    assert pd.read_csv(out)['target'].tolist() == [0, 0, 1]


def test_run_pipeline_merge(ground_truth, mrc_recording, mrc_config):
    config = mrc_config.model_copy(update={"segmentation_method": "merge"})
    _, buckets = run_pipeline(str(ground_truth), str(mrc_recording), config)
    assert [len(buckets[j]) for j in range(3)] == [2, 1, 0]


def test_run_analysis_basic(ground_truth, mrc_recording, mrc_config, tmp_path):
    targets, buckets = run_pipeline(str(ground_truth), str(mrc_recording), mrc_config)
    out_dir = tmp_path / "out"
    metrics = run_analysis(targets, buckets, mrc_config, output_dir=str(out_dir),
                           output_metrics_path=str(out_dir / "metrics.csv"),
                           generate_visualizations=False)

    assert metrics['n_samples'].tolist() == [2, 1, 0]
    assert metrics.loc[0, 'mean_x'] == pytest.approx(402)
    assert metrics.loc[0, 'accuracy_y'] == pytest.approx(2)
    assert metrics.loc[1, 'accuracy_x'] == pytest.approx(5)
    assert metrics.loc[1, 'rms_deg'] is pd.NA
    assert (out_dir / "metrics.csv").exists()


def test_run_analysis_visualizations(ground_truth, mrc_recording, mrc_config, tmp_path):
    targets, buckets = run_pipeline(str(ground_truth), str(mrc_recording), mrc_config)
    out_dir = tmp_path / "out"
    run_analysis(targets, buckets, mrc_config, output_dir=str(out_dir), prefix="rec")
    viz = out_dir / "visualizations"
    for name in ["rec_accuracy.png", "rec_accuracy_deg.png", "rec_precision_deg.png", "rec_rms_deg.png"]:
        assert (viz / name).exists()


def test_analyze_two_devices(ground_truth, mrc_recording, write_arrington, tmp_path, capsys):
    arrington = write_arrington([
        (0.5, 0.25, 0.25),
        (0.6, 0.2, 0.26),
        (0.7, 0.22, 0.24),
        (2.5, 0.41, 0.5),
        (2.6, 0.42, 0.51),
        (4.5, 0.63, 0.74),
    ])
    mrc_config = tmp_path / "mrc.yaml"
    mrc_config.write_text("device:\n  kind: mrc\n  spatial_offset: [384, 180]\n")
    arrington_config = tmp_path / "arrington.yaml"
    arrington_config.write_text("device:\n  kind: arrington\n")

    out_dir = tmp_path / "out"
    combined = analyze_recordings(
        str(ground_truth), [str(mrc_recording), str(arrington)], ["mrc", "arrington"],
        output_dir=str(out_dir), config_paths=[str(mrc_config), str(arrington_config)],
        generate_visualizations=False,
    )

    assert set(combined['device']) == {'mrc', 'arrington'}
    assert len(combined) == 6
    assert (out_dir / "rec_metrics.csv").exists()
    assert (out_dir / "group_analysis" / "aggregated_metrics.csv").exists()
    comparison = pd.read_csv(out_dir / "group_analysis" / "device_comparison.csv")
    assert comparison['metric'].tolist() == ['accuracy_deg', 'precision_deg', 'rms_deg']

    report = capsys.readouterr().out
    assert "no data" in report
    assert "insufficient data" in report


def test_analyze_device_count_mismatch(ground_truth, mrc_recording, tmp_path):
    with pytest.raises(ValueError):
        analyze_recordings(str(ground_truth), [str(mrc_recording)] * 3, ["mrc", "arrington"],
                           output_dir=str(tmp_path))


def test_analyze_with_shipped_configs(ground_truth, write_mrc, write_arrington, tmp_path):
    from pathlib import Path

    config_dir = Path(__file__).resolve().parents[1] / "config"
    # MRC stamps host time (UTC+2), the Arrington clock runs two hours behind it
    mrc = write_mrc([(1500, 16, 120), (1600, 20, 116), (3500, 421, 425)],
                    header="MRC Tracker 1000 StartTime 2021-08-12_12:00:00.000", name="vshd.trk")
    arrington = write_arrington([(0.5, 0.2, 0.25), (0.6, 0.21, 0.25), (2.5, 0.42, 0.5)],
                                start="2021 8 12 10 0 0", name="vshd.txt")

    combined = analyze_recordings(
        str(ground_truth), [str(mrc), str(arrington)], ["mrc", "arrington"],
        output_dir=str(tmp_path / "out"),
        config_paths=[str(config_dir / "vshd_mrc.yaml"), str(config_dir / "vshd_arrington.yaml")],
        generate_visualizations=False,
    )

    by_device = combined.groupby('device')['n_samples'].apply(list)
    assert by_device['mrc'] == [2, 1, 0]
    assert by_device['arrington'] == [2, 1, 0]


def test_analyze_config_count_mismatch(ground_truth, mrc_recording, tmp_path):
    with pytest.raises(ValueError):
        analyze_recordings(str(ground_truth), [str(mrc_recording)] * 3, ["mrc"],
                           output_dir=str(tmp_path), config_paths=["a.yaml", "b.yaml"])
