"""
fretscope
~~~~~~~~~

Frame-by-frame analysis of a live instrument signal: dominant pitch,
co-sounding notes, chord label, articulation gesture, overtone presence,
and a tuner with A4 calibration.

Quick-start::

    from fretscope import AnalysisEngine, FrameInput

    engine = AnalysisEngine()
    snapshot = engine.process_frame(frame_input)
    print(snapshot.chord_label, snapshot.gesture_label)

Subpackages
-----------
analysis   Peak picking, chroma, chords, notes, gestures, harmonics, tuner.
"""

from __future__ import annotations

__version__: str = "0.1.0"

from fretscope.analysis.config import AnalysisConfig, load_config
from fretscope.analysis.engine import AnalysisEngine, FrameChannel
from fretscope.analysis.models import (
    AnalysisSnapshot,
    ConstantQSpectrum,
    FrameInput,
    MagnitudeSpectrum,
    NoteEstimate,
    SpectralPeak,
)
from fretscope.analysis.pitch import STANDARD_STRINGS, TuningReference
from fretscope.errors import (
    FretscopeError,
    FrontEndError,
    ReferencePitchError,
    TuningError,
    UnknownConfigKeyError,
)

__all__: list[str] = [
    "AnalysisConfig",
    "load_config",
    "AnalysisEngine",
    "FrameChannel",
    "AnalysisSnapshot",
    "ConstantQSpectrum",
    "FrameInput",
    "MagnitudeSpectrum",
    "NoteEstimate",
    "SpectralPeak",
    "STANDARD_STRINGS",
    "TuningReference",
    "FretscopeError",
    "FrontEndError",
    "ReferencePitchError",
    "TuningError",
    "UnknownConfigKeyError",
]
