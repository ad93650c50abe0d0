"""Analysis components, leaves first.

peaks -> chroma -> chords / notes -> gesture / harmonics / tuner, wired
together per frame by :mod:`fretscope.analysis.engine`.
"""

from .calibration import CalibrationSession, median_offset
from .chords import recognize_chord
from .chroma import ChromaAccumulator, ChromaHistory, compute_chroma, normalize_chroma
from .engine import AnalysisEngine, FrameChannel
from .gesture import classify_gesture
from .harmonics import detect_harmonics
from .notes import select_notes
from .peaks import pick_peaks
from .tuner import tune

__all__ = [
    "CalibrationSession",
    "median_offset",
    "recognize_chord",
    "ChromaAccumulator",
    "ChromaHistory",
    "compute_chroma",
    "normalize_chroma",
    "AnalysisEngine",
    "FrameChannel",
    "classify_gesture",
    "detect_harmonics",
    "select_notes",
    "pick_peaks",
    "tune",
]
