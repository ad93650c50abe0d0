# fretscope/analysis/harmonics.py
from __future__ import annotations

from typing import Sequence

from .models import NoteEstimate

NO_NOTES = "--"


def count_harmonics(notes: Sequence[NoteEstimate], tolerance: float = 0.05) -> int:
    """Notes after the first that sit near an integer multiple (>= 2) of it."""
    if not notes:
        return 0
    f0 = notes[0].frequency_hz
    if f0 <= 0.0:
        return 0
    count = 0
    for note in notes[1:]:
        ratio = note.frequency_hz / f0
        nearest = round(ratio)
        if nearest >= 2 and abs(ratio - nearest) < tolerance:
            count += 1
    return count


def detect_harmonics(notes: Sequence[NoteEstimate], min_matches: int = 2) -> str:
    """``"Yes (n)"`` when at least ``min_matches`` overtones line up, else ``"No"``."""
    if not notes:
        return NO_NOTES
    count = count_harmonics(notes)
    return f"Yes ({count})" if count >= min_matches else "No"
