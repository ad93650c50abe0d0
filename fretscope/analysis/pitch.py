# fretscope/analysis/pitch.py
"""Pitch arithmetic relative to an adjustable A4 reference.

Every MIDI <-> Hz conversion in fretscope goes through this module and
takes the reference frequency explicitly; nothing here reads a global.
"""
from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from ..errors import ReferencePitchError, TuningError

logger = logging.getLogger(__name__)

NOTE_NAMES: Tuple[str, ...] = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")

DEFAULT_A4_HZ = 440.0
MIN_A4_HZ = 400.0
MAX_A4_HZ = 500.0


def cents_between(f1: float, f2: float) -> float:
    """Signed interval f1 relative to f2 in cents (positive = sharp)."""
    return 1200.0 * math.log2(f1 / f2)


def hz_to_midi_float(hz: float, a4_hz: float = DEFAULT_A4_HZ) -> float:
    if hz <= 0.0:
        return 0.0
    return 69.0 + 12.0 * math.log2(hz / a4_hz)


def hz_to_midi(hz: float, a4_hz: float = DEFAULT_A4_HZ) -> int:
    """Nearest MIDI note for ``hz`` under the given reference."""
    # floor(x + 0.5) rounds halves up, unlike the banker's rounding of round()
    return int(math.floor(hz_to_midi_float(hz, a4_hz) + 0.5))


def midi_to_hz(midi: float, a4_hz: float = DEFAULT_A4_HZ) -> float:
    """Convert MIDI pitch to frequency in Hz."""
    return a4_hz * 2.0 ** ((float(midi) - 69.0) / 12.0)


def pitch_class(midi: int) -> int:
    return int(midi) % 12


def note_name(midi: int) -> str:
    return NOTE_NAMES[int(midi) % 12]


def note_label(midi: int) -> str:
    """Note name with octave, e.g. 69 -> ``A4``."""
    octave = (int(midi) // 12) - 1
    return f"{note_name(midi)}{octave}"


def validate_a4(value: Any, min_hz: float = MIN_A4_HZ, max_hz: float = MAX_A4_HZ) -> float:
    """Parse and range-check a user-supplied A4 value.

    Accepts numbers or numeric strings. Raises :class:`ReferencePitchError`
    with a user-visible message otherwise.
    """
    message = f"Invalid A4 value ({min_hz:g}-{max_hz:g} Hz)"
    try:
        hz = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError) as e:
        raise ReferencePitchError(message) from e
    if math.isnan(hz) or hz < min_hz or hz > max_hz:
        raise ReferencePitchError(message)
    return hz


class TuningReference:
    """Shared A4 reference.

    Readers call :attr:`a4_hz` once per frame and use that float for the
    whole frame. Writers are the user-input boundary (:meth:`set`) and
    calibration completion (:meth:`shift_cents`).
    """

    def __init__(self, a4_hz: float = DEFAULT_A4_HZ, min_hz: float = MIN_A4_HZ, max_hz: float = MAX_A4_HZ):
        self.min_hz = float(min_hz)
        self.max_hz = float(max_hz)
        self._lock = threading.Lock()
        self._a4_hz = validate_a4(a4_hz, self.min_hz, self.max_hz)

    @property
    def a4_hz(self) -> float:
        with self._lock:
            return self._a4_hz

    def set(self, value: Any) -> float:
        hz = validate_a4(value, self.min_hz, self.max_hz)
        with self._lock:
            self._a4_hz = hz
        logger.info("Reference pitch set to A4=%.2f Hz", hz)
        return hz

    def shift_cents(self, cents: float) -> float:
        """Move the reference by ``cents``, clamped to the valid range; returns the new A4."""
        with self._lock:
            shifted = self._a4_hz * 2.0 ** (cents / 1200.0)
            hz = min(self.max_hz, max(self.min_hz, shifted))
            self._a4_hz = hz
        if hz != shifted:
            logger.warning("Reference pitch clamped to A4=%.2f Hz (wanted %.2f Hz)", hz, shifted)
        logger.info("Reference pitch shifted by %+.2f cents to A4=%.2f Hz", cents, hz)
        return hz

    def offset_cents(self) -> float:
        """Deviation of the current reference from 440 Hz."""
        return cents_between(self.a4_hz, DEFAULT_A4_HZ)

    def describe(self) -> str:
        return f"A4: {self.a4_hz:.1f} Hz ({self.offset_cents():+.1f}c)"

    def __repr__(self) -> str:
        return f"TuningReference(a4_hz={self.a4_hz:.3f})"


@dataclass(frozen=True)
class StringTarget:
    name: str
    midi: int

    def frequency(self, a4_hz: float = DEFAULT_A4_HZ) -> float:
        return midi_to_hz(self.midi, a4_hz)


STANDARD_STRINGS: Tuple[StringTarget, ...] = (
    StringTarget("E2", 40),
    StringTarget("A2", 45),
    StringTarget("D3", 50),
    StringTarget("G3", 55),
    StringTarget("B3", 59),
    StringTarget("E4", 64),
)

AUTO_MODE = "Auto"
TUNER_MODES: Tuple[str, ...] = (AUTO_MODE,) + tuple(s.name for s in STANDARD_STRINGS)


def find_string(name: str) -> Optional[StringTarget]:
    for s in STANDARD_STRINGS:
        if s.name == name:
            return s
    return None


def validate_tuner_mode(mode: str) -> str:
    if mode not in TUNER_MODES:
        raise TuningError(f"Unknown tuner mode {mode!r}; expected one of {', '.join(TUNER_MODES)}")
    return mode
