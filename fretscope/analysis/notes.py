# fretscope/analysis/notes.py
from __future__ import annotations

from typing import Iterable, List, Sequence

import numpy as np

from .models import NoteEstimate, SpectralPeak
from .pitch import DEFAULT_A4_HZ, hz_to_midi, note_label

NO_PEAK_HZ = -1.0
REFERENCE_OCTAVE_MIDI = 60


def top_pitch_classes(chroma: Sequence[float], k: int = 6) -> List[int]:
    """Pitch classes by descending weight; equal weights keep index order."""
    c = np.asarray(chroma, dtype=np.float64).reshape(-1)
    order = np.argsort(-c, kind="stable")
    return [int(pc) for pc in order[: max(0, int(k))]]


def strongest_peak_for_pitch_class(
    peaks: Iterable[SpectralPeak],
    pc: int,
    a4_hz: float = DEFAULT_A4_HZ,
) -> float:
    """Frequency of the loudest peak folding onto ``pc``, or -1.0."""
    best_hz = NO_PEAK_HZ
    best_mag = -np.inf
    for p in peaks:
        if p.frequency_hz <= 0.0:
            continue
        if hz_to_midi(p.frequency_hz, a4_hz) % 12 == pc and p.magnitude > best_mag:
            best_mag = p.magnitude
            best_hz = p.frequency_hz
    return best_hz


def select_notes(
    chroma: Sequence[float],
    peaks: Sequence[SpectralPeak],
    a4_hz: float = DEFAULT_A4_HZ,
    k: int = 6,
) -> List[NoteEstimate]:
    """
    Most energetic pitch classes first, each labelled with an octave taken
    from the strongest matching spectral peak. Chroma is octave-blind, so
    the octave is best-effort; without a matching peak the label is placed
    in the reference octave (C4..B4) and ``frequency_hz`` is -1.0.
    """
    c = np.asarray(chroma, dtype=np.float64).reshape(-1)
    if c.size == 0 or not np.any(c > 0.0):
        return []
    peaks = list(peaks)
    notes: List[NoteEstimate] = []
    for pc in top_pitch_classes(c, k):
        hz = strongest_peak_for_pitch_class(peaks, pc, a4_hz)
        midi = hz_to_midi(hz, a4_hz) if hz > 0.0 else REFERENCE_OCTAVE_MIDI + pc
        notes.append(NoteEstimate(name=note_label(midi), midi=midi, frequency_hz=hz, pitch_class=pc))
    return notes
