# fretscope/analysis/chroma.py
"""
Constant-Q chroma with temporal smoothing.

Single-frame chroma is noisy under vibrato and attack transients, so the
chord recognizer and note selector work on the mean of the last few frames
(``SmoothedChroma``) rather than on the current frame alone.
"""
from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from .config import ChromaConfig
from .models import ConstantQSpectrum, RingBuffer
from .pitch import DEFAULT_A4_HZ

logger = logging.getLogger(__name__)

N_CHROMA = 12


def normalize_chroma(chroma: np.ndarray) -> np.ndarray:
    """Scale so the largest component is 1; an all-zero vector stays zero."""
    out = np.asarray(chroma, dtype=np.float64).reshape(-1).copy()
    peak = float(np.max(out)) if out.size else 0.0
    if peak > 0.0:
        out /= peak
    return out


def compute_chroma(
    spectrum: ConstantQSpectrum,
    a4_hz: float = DEFAULT_A4_HZ,
    config: Optional[ChromaConfig] = None,
) -> np.ndarray:
    """Fold one constant-Q frame into a normalized 12-bin chroma vector."""
    cfg = config or ChromaConfig()
    chroma = np.zeros(N_CHROMA, dtype=np.float64)
    mags = spectrum.magnitudes
    freqs = spectrum.frequencies
    if mags.size == 0:
        return chroma

    band = (freqs >= cfg.fmin) & (freqs <= cfg.fmax)
    if not np.any(band):
        return chroma
    f = freqs[band]
    m = np.maximum(mags[band], 0.0)

    midi = np.floor(69.0 + 12.0 * np.log2(f / a4_hz) + 0.5).astype(np.int64)
    pcs = np.mod(midi, N_CHROMA)
    # log compression, then de-emphasize thick bass content
    weights = np.log1p(m) / np.sqrt(np.maximum(1.0, f / cfg.bass_pivot_hz))
    np.add.at(chroma, pcs, weights)
    return normalize_chroma(chroma)


class ChromaHistory(RingBuffer):
    """The most recent per-frame chroma vectors, oldest first."""

    def __init__(self, capacity: int = 8):
        super().__init__(capacity, width=N_CHROMA)

    def smoothed(self) -> np.ndarray:
        """Mean over the history, re-normalized to max 1."""
        if len(self) == 0:
            return np.zeros(N_CHROMA, dtype=np.float64)
        return normalize_chroma(np.mean(self.to_array(), axis=0))


class ChromaAccumulator:
    def __init__(self, config: Optional[ChromaConfig] = None):
        self.config = config or ChromaConfig()
        self.history = ChromaHistory(self.config.history_size)
        self.last_frame = np.zeros(N_CHROMA, dtype=np.float64)

    def update(self, spectrum: ConstantQSpectrum, a4_hz: float = DEFAULT_A4_HZ) -> np.ndarray:
        """Push this frame's chroma and return the smoothed vector."""
        self.last_frame = compute_chroma(spectrum, a4_hz, self.config)
        self.history.push(self.last_frame)
        smoothed = self.history.smoothed()
        logger.debug("chroma frame=%s smoothed=%s", np.round(self.last_frame, 3), np.round(smoothed, 3))
        return smoothed

    def reset(self) -> None:
        self.history.clear()
        self.last_frame = np.zeros(N_CHROMA, dtype=np.float64)
