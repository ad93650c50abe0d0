import numpy as np
import pytest

from fretscope.analysis.chroma import compute_chroma
from fretscope.analysis.config import FrontEndConfig
from fretscope.analysis.frontend import (
    AutocorrPitchEstimator,
    ConstantQFrontEnd,
    FrontEnd,
    autocorr_pitch,
    frame_audio,
    magnitude_spectrum,
    read_audio,
)
from fretscope.errors import FrontEndError
from fretscope.tests.audio_utils import generate_silence, generate_sine_wave

SR = 44100


class TestFraming:
    def test_frame_count_and_hop(self):
        y = np.arange(5000, dtype=np.float32)
        frames = frame_audio(y, 2048, 1024)
        assert frames.shape == (3, 2048)
        assert frames[1, 0] == 1024.0

    def test_short_input_is_padded(self):
        frames = frame_audio(np.ones(100), 2048, 1024)
        assert frames.shape == (1, 2048)
        assert frames[0, 100] == 0.0

    def test_empty_input(self):
        assert frame_audio(np.zeros(0), 2048, 1024).shape == (0, 2048)


class TestAutocorrPitch:
    @pytest.mark.parametrize("f0", [82.41, 220.0, 659.26])
    def test_sine(self, f0):
        frame = generate_sine_wave(f0, 0.1, SR)[:2048]
        hz, conf = autocorr_pitch(frame, SR, 60.0, 1400.0)
        assert hz == pytest.approx(f0, rel=0.01)
        assert conf > 0.8

    def test_silence(self):
        assert autocorr_pitch(generate_silence(0.05, SR)[:2048], SR, 60.0, 1400.0) == (0.0, 0.0)

    def test_estimator_wrapper(self):
        est = AutocorrPitchEstimator(SR)
        hz, _ = est.estimate(generate_sine_wave(220.0, 0.1, SR)[:2048])
        assert hz == pytest.approx(220.0, rel=0.01)


def test_magnitude_spectrum_peak_bin():
    spec = magnitude_spectrum(generate_sine_wave(1000.0, 0.1, SR)[:2048], SR)
    assert len(spec) == 1025
    assert spec.frequencies[np.argmax(spec.magnitudes)] == pytest.approx(1000.0, abs=SR / 2048)


def test_constant_q_front_end():
    cq = ConstantQFrontEnd(SR)
    assert cq.n_bins == 216
    assert len(cq.frequencies) == 216

    spectrum = cq.transform(generate_sine_wave(220.0, 0.1, SR)[:2048])
    assert len(spectrum) == 216
    assert int(np.argmax(compute_chroma(spectrum))) == 9

    silent = cq.transform(np.zeros(2048, dtype=np.float32))
    assert not np.any(silent.magnitudes)


def test_front_end_analyze():
    frame_input = FrontEnd(FrontEndConfig()).analyze(generate_sine_wave(220.0, 0.1, SR)[:2048])
    assert frame_input.pitch_hz == pytest.approx(220.0, rel=0.01)
    assert len(frame_input.magnitude_spectrum) == 1025
    assert len(frame_input.constant_q_spectrum) == 216


def test_read_audio_downmixes_and_resamples(tmp_path):
    sf = pytest.importorskip("soundfile")
    mono = generate_sine_wave(220.0, 0.25, 22050)
    path = tmp_path / "stereo.wav"
    sf.write(str(path), np.stack([mono, mono], axis=1), 22050)

    audio = read_audio(str(path), SR)
    assert audio.ndim == 1
    assert audio.dtype == np.float32
    assert abs(audio.size - 2 * mono.size) <= 2


def test_read_audio_missing_file(tmp_path):
    with pytest.raises(FrontEndError):
        read_audio(str(tmp_path / "nope.wav"), SR)
