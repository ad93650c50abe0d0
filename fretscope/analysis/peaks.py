# fretscope/analysis/peaks.py
"""Spectral peak picking with an adaptive (running-median) noise floor."""
from __future__ import annotations

import logging
import math
from typing import Iterator, List, Optional

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from .config import PeakPickerConfig
from .models import MagnitudeSpectrum, SpectralPeak

logger = logging.getLogger(__name__)


def noise_floor(magnitudes: np.ndarray, median_length: int = 31, noise_factor: float = 1.2) -> np.ndarray:
    """
    Centered running median of ``magnitudes`` scaled by ``noise_factor``.
    Bins near either edge take the median of the part of the window that
    exists (no padding values leak in).
    """
    mags = np.asarray(magnitudes, dtype=np.float64).reshape(-1)
    if mags.size == 0:
        return np.zeros(0, dtype=np.float64)
    half = max(0, int(median_length) // 2)
    padded = np.pad(mags, (half, half), mode="constant", constant_values=np.nan)
    windows = sliding_window_view(padded, 2 * half + 1)
    return np.nanmedian(windows, axis=1) * float(noise_factor)


def local_maxima(magnitudes: np.ndarray, floor: np.ndarray) -> np.ndarray:
    """Indices of bins above the floor and strictly above both neighbours."""
    mags = np.asarray(magnitudes, dtype=np.float64).reshape(-1)
    if mags.size < 3:
        return np.zeros(0, dtype=np.int64)
    mid = mags[1:-1]
    is_peak = (mid > mags[:-2]) & (mid > mags[2:]) & (mid > floor[1:-1])
    return np.flatnonzero(is_peak) + 1


def _too_close(freq: float, selected: List[SpectralPeak], min_distance_cents: float) -> bool:
    for p in selected:
        if p.frequency_hz <= 0.0:
            continue
        if abs(1200.0 * math.log2(freq / p.frequency_hz)) < min_distance_cents:
            return True
    return False


def pick_peaks(
    spectrum: MagnitudeSpectrum,
    config: Optional[PeakPickerConfig] = None,
) -> Iterator[SpectralPeak]:
    """Yield up to ``max_peaks`` spectral peaks, strongest first.

    Candidates are visited in descending magnitude; a candidate within
    ``min_distance_cents`` of an already chosen peak is dropped. The
    result is a one-shot generator, recomputed from scratch every frame.
    """
    cfg = config or PeakPickerConfig()
    mags = spectrum.magnitudes
    freqs = spectrum.frequencies
    if mags.size == 0 or not np.any(mags > 0.0):
        return

    floor = noise_floor(mags, cfg.median_length, cfg.noise_factor)
    candidates = local_maxima(mags, floor)
    if candidates.size == 0:
        return

    # stable sort keeps lower bins first among equal magnitudes
    order = candidates[np.argsort(-mags[candidates], kind="stable")]
    selected: List[SpectralPeak] = []
    for b in order:
        if len(selected) >= cfg.max_peaks:
            break
        freq = float(freqs[b])
        if freq <= 0.0:
            continue
        if _too_close(freq, selected, cfg.min_distance_cents):
            continue
        peak = SpectralPeak(bin=int(b), frequency_hz=freq, magnitude=float(mags[b]))
        selected.append(peak)
        yield peak
