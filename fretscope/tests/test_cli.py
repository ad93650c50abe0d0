import json

import pytest

from fretscope.cli import main
from fretscope.tests.audio_utils import generate_sine_wave


@pytest.fixture
def sine_wav(tmp_path):
    sf = pytest.importorskip("soundfile")
    path = tmp_path / "a3.wav"
    sf.write(str(path), generate_sine_wave(220.0, 0.3, 44100, amplitude=0.5), 44100)
    return str(path)


def test_strings_table(capsys):
    assert main(["strings"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "E2\t40\t82.41 Hz"
    assert lines[-1] == "E4\t64\t329.63 Hz"


def test_strings_rejects_bad_reference(capsys):
    assert main(["strings", "--a4", "380"]) == 2
    assert "Invalid A4 value" in capsys.readouterr().err


def test_analyze_prints_one_line_per_frame(sine_wav, capsys):
    assert main(["analyze", "--audio_path", sine_wav]) == 0
    records = [json.loads(line) for line in capsys.readouterr().out.splitlines()]

    assert len(records) == 11
    assert [r["frame"] for r in records] == list(range(11))
    assert all(r["note"] == "A3" for r in records)
    assert records[0]["a4_hz"] == 440.0


def test_analyze_with_calibration_and_overrides(sine_wav, capsys):
    rc = main(["analyze", "--audio_path", sine_wav, "--calibrate", "--every", "5", "--set", "peaks.max_peaks=3"])
    assert rc == 0
    lines = capsys.readouterr().out.splitlines()
    records = [json.loads(line) for line in lines]

    assert [r["frame"] for r in records[:-1]] == [0, 5, 10]
    assert all(len(r["peaks"]) <= 3 for r in records[:-1])
    calibration = records[-1]["calibration"]
    assert calibration["applied"]
    assert calibration["samples"] > 0
    assert abs(calibration["offset_cents"]) < 5.0


def test_analyze_writes_session_logs(sine_wav, tmp_path, capsys):
    log_dir = tmp_path / "logs"
    assert main(["analyze", "--audio_path", sine_wav, "--log-dir", str(log_dir), "--every", "100"]) == 0
    capsys.readouterr()
    runs = list(log_dir.iterdir())
    assert len(runs) == 1
    assert (runs[0] / "timing.json").exists()
    assert any("snapshot" in line for line in (runs[0] / "events.jsonl").read_text().splitlines())


def test_analyze_missing_file(tmp_path, capsys):
    assert main(["analyze", "--audio_path", str(tmp_path / "missing.wav")]) == 2
    assert "Failed to load audio" in capsys.readouterr().err


def test_analyze_rejects_bad_override(sine_wav):
    assert main(["analyze", "--audio_path", sine_wav, "--set", "peaks.bogus=1"]) == 2
