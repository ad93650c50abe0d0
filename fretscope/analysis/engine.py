# fretscope/analysis/engine.py
"""
Per-frame analysis engine.

``AnalysisEngine.process_frame`` is a plain synchronous function: one call
per incoming frame, run to completion (history mutations included) before
the next frame starts. Frames can be handed over from a producer thread
through a bounded :class:`FrameChannel`.

Control methods (reference pitch, calibration, tuner mode) may be called
from any thread; the only state they share with the frame path is the
:class:`TuningReference` and the calibration session, both lock-guarded.
"""
from __future__ import annotations

import copy
import logging
import queue
from typing import Any, Callable, Iterator, List, Optional

import numpy as np

from ..errors import ReferencePitchError
from .calibration import CalibrationSession
from .chords import NO_CHORD, recognize_chord
from .chroma import ChromaAccumulator
from .config import AnalysisConfig
from .gesture import NO_GESTURE, classify_gesture
from .harmonics import NO_NOTES, detect_harmonics
from .instrumentation import SessionLogger
from .models import AnalysisSnapshot, CalibrationResult, FrameInput, PitchHistory
from .notes import select_notes
from .peaks import pick_peaks
from .pitch import TuningReference, hz_to_midi, note_label, validate_tuner_mode
from .tuner import tune

logger = logging.getLogger(__name__)

NO_NOTE = "--"


class FrameChannel:
    """Bounded hand-off from a frame producer to the analysis thread."""

    _CLOSED = object()

    def __init__(self, maxsize: int = 8):
        self._q: "queue.Queue[Any]" = queue.Queue(maxsize=maxsize)

    def put(self, frame: FrameInput, timeout: Optional[float] = None) -> None:
        self._q.put(frame, timeout=timeout)

    def close(self) -> None:
        self._q.put(self._CLOSED)

    def __iter__(self) -> Iterator[FrameInput]:
        while True:
            item = self._q.get()
            if item is self._CLOSED:
                return
            yield item


class AnalysisEngine:
    def __init__(
        self,
        config: Optional[AnalysisConfig] = None,
        reference: Optional[TuningReference] = None,
        session_logger: Optional[SessionLogger] = None,
    ):
        self.config = copy.deepcopy(config) if config is not None else AnalysisConfig()
        cfg = self.config
        self.reference = reference or TuningReference(
            cfg.reference.a4_hz, cfg.reference.min_hz, cfg.reference.max_hz
        )
        self.session_logger = session_logger

        self.chroma = ChromaAccumulator(cfg.chroma)
        self.pitch_history = PitchHistory(cfg.gesture.history_size)
        self.calibration = CalibrationSession(
            self.reference, cfg.calibration, on_complete=self._on_calibration_complete
        )
        self._tuner_mode = validate_tuner_mode(cfg.tuner.mode)
        self.source_active = False
        self.status = "Idle"
        self._frame_index = 0
        self._latest: Optional[AnalysisSnapshot] = None

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------
    @property
    def tuner_mode(self) -> str:
        return self._tuner_mode

    def set_tuner_mode(self, mode: str) -> None:
        self._tuner_mode = validate_tuner_mode(mode)

    def set_reference_pitch(self, value: Any) -> float:
        """Manual A4 entry; invalid input leaves the reference unchanged and re-raises."""
        try:
            hz = self.reference.set(value)
        except ReferencePitchError as e:
            self.status = str(e)
            logger.warning("Rejected reference pitch %r: %s", value, e)
            raise
        self.status = self.reference.describe()
        return hz

    def start_calibration(self) -> bool:
        if not self.source_active:
            self.status = "Start audio, then calibrate"
            return False
        started = self.calibration.start(source_active=True)
        if started:
            self.status = (
                f"Calibrating... Pluck a string ({self.config.calibration.window_sec:g}s)"
            )
        return started

    def _on_calibration_complete(self, result: CalibrationResult) -> None:
        self.status = "Calibration done"
        if self.session_logger is not None:
            self.session_logger.log_event("calibration", "complete", {"result": result})

    @property
    def latest(self) -> Optional[AnalysisSnapshot]:
        return self._latest

    def reset(self) -> None:
        """Forget chroma and pitch histories (e.g. when the source restarts)."""
        self.chroma.reset()
        self.pitch_history.clear()
        self._latest = None

    # ------------------------------------------------------------------
    # Frame path
    # ------------------------------------------------------------------
    def process_frame(self, frame: FrameInput) -> AnalysisSnapshot:
        timer = self.session_logger.timed if self.session_logger is not None else None
        if timer is None:
            snapshot = self._analyze(frame)
        else:
            with timer("frame"):
                snapshot = self._analyze(frame)
        self._latest = snapshot
        self._frame_index += 1
        return snapshot

    def _analyze(self, frame: FrameInput) -> AnalysisSnapshot:
        cfg = self.config
        # one reference value for the whole frame
        a4 = self.reference.a4_hz

        pitch_hz = float(frame.pitch_hz)
        confidence = float(frame.confidence)
        if pitch_hz > 0.0:
            self.calibration.offer(pitch_hz, confidence, a4)
            note = note_label(hz_to_midi(pitch_hz, a4))
            frequency: Optional[float] = pitch_hz
        else:
            note = NO_NOTE
            frequency = None

        reading = tune(pitch_hz, confidence, self._tuner_mode, a4, cfg.tuner)

        peaks = tuple(pick_peaks(frame.magnitude_spectrum, cfg.peaks))
        smoothed = self.chroma.update(frame.constant_q_spectrum, a4)
        notes = select_notes(smoothed, peaks, a4, cfg.notes.top_k)

        if cfg.gesture.pitch_source == "pitch":
            self.pitch_history.push(pitch_hz)
        elif notes:
            self.pitch_history.push(notes[0].frequency_hz)

        if notes:
            chord = recognize_chord(smoothed, cfg.chords)
            gesture = classify_gesture(self.pitch_history.to_array(), cfg.gesture)
            harmonics = detect_harmonics(notes)
        else:
            chord, gesture, harmonics = NO_CHORD, NO_GESTURE, NO_NOTES

        snapshot = AnalysisSnapshot(
            frame_index=self._frame_index,
            note_label=note,
            frequency_hz=frequency,
            confidence=confidence,
            peaks=peaks,
            magnitude_spectrum=frame.magnitude_spectrum,
            polyphonic_notes=tuple(n.name for n in notes),
            chord_label=chord,
            gesture_label=gesture,
            harmonics_label=harmonics,
            tuner_target=reading.target,
            tuner_cents=reading.cents,
            a4_hz=a4,
            calibrating=self.calibration.active,
            smoothed_chroma=tuple(float(v) for v in np.round(smoothed, 6)),
        )
        logger.debug(
            "frame %d note=%s chord=%s gesture=%s harmonics=%s",
            snapshot.frame_index, note, chord, gesture, harmonics,
        )
        return snapshot

    def run(
        self,
        channel: FrameChannel,
        on_snapshot: Optional[Callable[[AnalysisSnapshot], None]] = None,
        on_start: Optional[Callable[[], object]] = None,
    ) -> int:
        """Consume ``channel`` until it is closed; returns the frame count.

        ``on_start`` runs once the source is live and before the first frame,
        e.g. to open a calibration window that covers frame 0.
        """
        self.source_active = True
        self.status = "Listening..."
        count = 0
        try:
            if on_start is not None:
                on_start()
            for frame in channel:
                snapshot = self.process_frame(frame)
                count += 1
                if on_snapshot is not None:
                    on_snapshot(snapshot)
        finally:
            self.source_active = False
            self.status = "Idle"
        return count

    def process_all(self, frames: List[FrameInput]) -> List[AnalysisSnapshot]:
        return [self.process_frame(f) for f in frames]
