import numpy as np
import pytest

from fretscope.analysis.config import PeakPickerConfig
from fretscope.analysis.models import MagnitudeSpectrum
from fretscope.analysis.peaks import local_maxima, noise_floor, pick_peaks


def _linear_freqs(n, step=21.533):
    return np.arange(n) * step


class TestNoiseFloor:
    def test_flat_spectrum_scaled_by_factor(self):
        floor = noise_floor(np.ones(100), median_length=31, noise_factor=1.2)
        assert floor.shape == (100,)
        assert np.allclose(floor, 1.2)

    def test_edge_bins_use_shorter_window(self):
        mags = np.array([5.0, 1.0, 1.0, 1.0, 1.0])
        floor = noise_floor(mags, median_length=3, noise_factor=1.0)
        # bin 0 only sees [5, 1]
        assert floor[0] == pytest.approx(3.0)
        assert floor[1] == pytest.approx(1.0)
        assert floor[-1] == pytest.approx(1.0)

    def test_empty(self):
        assert noise_floor(np.zeros(0)).size == 0


def test_local_maxima_requires_strict_neighbours_and_floor():
    mags = np.array([0.0, 2.0, 2.0, 0.0, 3.0, 0.0, 0.5, 0.0])
    floor = np.full(mags.shape, 1.0)
    # plateau at 1-2 is not strict; 0.5 is below the floor
    assert local_maxima(mags, floor).tolist() == [4]


def test_single_spike_above_flat_floor():
    mags = np.ones(1024)
    mags[100] = 10.0  # +20 dB
    spectrum = MagnitudeSpectrum(mags, _linear_freqs(1024))

    peaks = list(pick_peaks(spectrum))

    assert len(peaks) == 1
    assert peaks[0].bin == 100
    assert peaks[0].magnitude == pytest.approx(10.0)
    assert peaks[0].frequency_hz == pytest.approx(100 * 21.533)


def test_min_distance_suppresses_near_duplicates():
    freqs = np.linspace(100.0, 1000.0, 32)
    freqs[10], freqs[12], freqs[20] = 440.0, 450.0, 880.0  # 440 vs 450 is ~39 cents
    mags = np.zeros(32)
    mags[10], mags[12], mags[20] = 5.0, 4.0, 3.0

    peaks = list(pick_peaks(MagnitudeSpectrum(mags, freqs)))

    assert [p.bin for p in peaks] == [10, 20]


def test_max_peaks_and_descending_order():
    n = 400
    mags = np.zeros(n)
    spike_bins = list(range(20, 380, 30))  # 12 well separated spikes
    for i, b in enumerate(spike_bins):
        mags[b] = 1.0 + i
    spectrum = MagnitudeSpectrum(mags, _linear_freqs(n))

    peaks = list(pick_peaks(spectrum, PeakPickerConfig(max_peaks=8)))

    assert len(peaks) == 8
    magnitudes = [p.magnitude for p in peaks]
    assert magnitudes == sorted(magnitudes, reverse=True)
    assert peaks[0].bin == spike_bins[-1]


def test_no_peak_below_local_noise_floor(rng):
    mags = rng.random(2048)
    spectrum = MagnitudeSpectrum(mags, _linear_freqs(2048))
    cfg = PeakPickerConfig()
    floor = noise_floor(mags, cfg.median_length, cfg.noise_factor)

    for p in pick_peaks(spectrum, cfg):
        assert p.magnitude > floor[p.bin]


def test_empty_and_zero_spectra_yield_nothing():
    assert list(pick_peaks(MagnitudeSpectrum.empty())) == []
    assert list(pick_peaks(MagnitudeSpectrum(np.zeros(64), _linear_freqs(64)))) == []


def test_result_is_one_shot():
    mags = np.ones(256)
    mags[50] = 9.0
    gen = pick_peaks(MagnitudeSpectrum(mags, _linear_freqs(256)))
    assert len(list(gen)) == 1
    assert list(gen) == []
