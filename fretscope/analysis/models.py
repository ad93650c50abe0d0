# fretscope/analysis/models.py
"""Dataclasses shared by the analysis components.

Spectra arrive from the audio front-end once per frame and are treated as
read-only. Everything derived from them (peaks, notes, readings and the
per-frame snapshot) is frozen so a consumer never sees a half-updated value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

import numpy as np


def _readonly(values) -> np.ndarray:
    arr = np.array(values, dtype=np.float64).reshape(-1)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class MagnitudeSpectrum:
    magnitudes: np.ndarray          # one magnitude per FFT bin
    frequencies: np.ndarray         # bin frequency estimates in Hz

    def __post_init__(self):
        mags = _readonly(self.magnitudes)
        freqs = _readonly(self.frequencies)
        if mags.shape != freqs.shape:
            raise ValueError(f"magnitudes/frequencies length mismatch: {mags.size} vs {freqs.size}")
        object.__setattr__(self, "magnitudes", mags)
        object.__setattr__(self, "frequencies", freqs)

    def __len__(self) -> int:
        return int(self.magnitudes.size)

    @classmethod
    def empty(cls) -> "MagnitudeSpectrum":
        return cls(np.zeros(0), np.zeros(0))


@dataclass(frozen=True, eq=False)
class ConstantQSpectrum(MagnitudeSpectrum):
    """Geometrically spaced bins; ``frequencies`` are bin centers."""


@dataclass(frozen=True)
class SpectralPeak:
    bin: int
    frequency_hz: float
    magnitude: float


@dataclass(frozen=True)
class NoteEstimate:
    name: str                       # note name with octave, e.g. "E2"
    midi: int
    frequency_hz: float             # -1.0 when no spectral peak matched the pitch class
    pitch_class: int = 0

    @property
    def has_frequency(self) -> bool:
        return self.frequency_hz > 0.0


@dataclass(frozen=True)
class FrameInput:
    """Per-frame outputs of the audio front-end."""
    pitch_hz: float                 # <= 0 means no pitch detected
    confidence: float
    magnitude_spectrum: MagnitudeSpectrum = field(default_factory=MagnitudeSpectrum.empty)
    constant_q_spectrum: ConstantQSpectrum = field(default_factory=ConstantQSpectrum.empty)


@dataclass(frozen=True)
class TunerReading:
    target: Optional[str] = None
    target_hz: Optional[float] = None
    cents: Optional[float] = None
    zone: str = "none"              # "in_tune" | "near" | "off" | "none"

    @property
    def is_none(self) -> bool:
        return self.target is None


@dataclass(frozen=True)
class CalibrationResult:
    applied: bool
    offset_cents: float
    a4_hz: float
    sample_count: int


@dataclass(frozen=True)
class AnalysisSnapshot:
    frame_index: int
    note_label: str
    frequency_hz: Optional[float]
    confidence: float
    peaks: Tuple[SpectralPeak, ...]
    magnitude_spectrum: MagnitudeSpectrum
    polyphonic_notes: Tuple[str, ...]
    chord_label: str
    gesture_label: str
    harmonics_label: str
    tuner_target: Optional[str]
    tuner_cents: Optional[float]
    a4_hz: float
    calibrating: bool = False
    smoothed_chroma: Tuple[float, ...] = ()

    def to_dict(self, include_spectrum: bool = False) -> dict:
        out = {
            "frame": self.frame_index,
            "note": self.note_label,
            "frequency_hz": self.frequency_hz,
            "confidence": round(float(self.confidence), 4),
            "peaks": [
                {"bin": p.bin, "hz": round(p.frequency_hz, 3), "mag": round(p.magnitude, 6)}
                for p in self.peaks
            ],
            "notes": list(self.polyphonic_notes),
            "chord": self.chord_label,
            "gesture": self.gesture_label,
            "harmonics": self.harmonics_label,
            "tuner_target": self.tuner_target,
            "tuner_cents": None if self.tuner_cents is None else round(self.tuner_cents, 2),
            "a4_hz": round(self.a4_hz, 3),
            "calibrating": self.calibrating,
        }
        if include_spectrum:
            out["magnitudes"] = self.magnitude_spectrum.magnitudes.tolist()
        return out


# --------------------------------------------------------------------------------------
# Fixed-capacity histories
# --------------------------------------------------------------------------------------
class RingBuffer:
    """Fixed-capacity FIFO over a preallocated numpy array.

    ``_start`` indexes the oldest entry; once full each push overwrites it.
    Iteration and :meth:`to_array` return entries oldest first.
    """

    def __init__(self, capacity: int, width: int = 0):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = int(capacity)
        self.width = int(width)
        shape = (self.capacity, self.width) if self.width else (self.capacity,)
        self._data = np.zeros(shape, dtype=np.float64)
        self._start = 0
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def push(self, value) -> None:
        idx = (self._start + self._size) % self.capacity
        self._data[idx] = value
        if self._size < self.capacity:
            self._size += 1
        else:
            self._start = (self._start + 1) % self.capacity

    def clear(self) -> None:
        self._start = 0
        self._size = 0

    def to_array(self) -> np.ndarray:
        order = (self._start + np.arange(self._size)) % self.capacity
        return self._data[order].copy()

    def __iter__(self) -> Iterator:
        return iter(self.to_array())


class PitchHistory(RingBuffer):
    """Most recent positive dominant-pitch values (Hz)."""

    def __init__(self, capacity: int = 50):
        super().__init__(capacity)

    def push(self, hz: float) -> bool:
        if not hz > 0.0:
            return False
        super().push(float(hz))
        return True

    def values(self) -> List[float]:
        return [float(v) for v in self.to_array()]
