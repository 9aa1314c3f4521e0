import matplotlib

matplotlib.use("Agg")

import pytest

# 2021-08-12 10:00:00 UTC
START_EPOCH = 1628762400.0


def _format_row(values):
    return " ".join(str(v) for v in values)


@pytest.fixture
def start_epoch():
    return START_EPOCH


@pytest.fixture
def write_ground_truth(tmp_path):
    def _write(rows, name="gridTest.csv"):
        path = tmp_path / name
        path.write_text("\n".join(",".join(repr(float(v)) for v in row) for row in rows) + "\n")
        return path
    return _write


@pytest.fixture
def write_mrc(tmp_path):
    """Write an MRC export; rows are (tick, x, y) or raw strings."""
    def _write(rows, header="MRC Tracker 1000 StartTime 2021-08-12_10:00:00.000", name="rec.trk"):
        lines = [header, "Camera 1", "Calibration ok", "Tick A B C D E F X Y G H I"]
        for row in rows:
            if isinstance(row, str):
                lines.append(row)
            else:
                tick, x, y = row
                lines.append(_format_row([tick, 0, 0, 0, 0, 0, 0, x, y, 0, 0, 0]))
        path = tmp_path / name
        path.write_text("\n".join(lines) + "\n")
        return path
    return _write


@pytest.fixture
def write_arrington(tmp_path):
    """Write an Arrington export; rows are (seconds, x_norm, y_norm)."""
    def _write(rows, binocular=True, start="2021 8 12 10 0 0", name="rec.txt"):
        header_rows, num_cols = (44, 27) if binocular else (40, 13)
        lines = [f"3\tHeader line {i}" for i in range(1, header_rows + 1)]
        lines[7] = "3\tTimeValues\t" + start.replace(" ", "\t")
        for seconds, x, y in rows:
            values = [10, seconds, 0, 0, 0, x, y] + [0] * (num_cols - 7)
            lines.append("\t".join(str(v) for v in values))
        path = tmp_path / name
        path.write_text("\n".join(lines) + "\n")
        return path
    return _write
