# fretscope/analysis/calibration.py
"""
Time-boxed reference-pitch calibration.

State machine: Idle -> Collecting -> Idle. While collecting, every confident
pitch contributes its deviation (cents) from the nearest semitone under the
current reference. When the window elapses, the median deviation (clamped)
is folded into the reference. The median rather than the mean keeps
transient frames and fretting inaccuracy during the pluck from skewing it.

The sample buffer and the active flag are shared between the frame thread
(:meth:`CalibrationSession.offer`) and the timer thread
(:meth:`CalibrationSession.finish`); both are only touched under ``_lock``.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional, Sequence

from .config import CalibrationConfig
from .models import CalibrationResult
from .pitch import TuningReference, cents_between, hz_to_midi, midi_to_hz

logger = logging.getLogger(__name__)


def median_offset(samples: Sequence[float], max_offset_cents: float = 50.0) -> Optional[float]:
    """Upper median of ``samples`` clamped to +/- ``max_offset_cents``; None if empty."""
    if not samples:
        return None
    ordered = sorted(float(s) for s in samples)
    median = ordered[len(ordered) // 2]
    return max(-max_offset_cents, min(max_offset_cents, median))


class CalibrationSession:
    def __init__(
        self,
        reference: TuningReference,
        config: Optional[CalibrationConfig] = None,
        on_complete: Optional[Callable[[CalibrationResult], None]] = None,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ):
        self.reference = reference
        self.config = config or CalibrationConfig()
        self.on_complete = on_complete
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._active = False
        self._samples: List[float] = []
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self.last_result: Optional[CalibrationResult] = None

    @property
    def active(self) -> bool:
        with self._lock:
            return self._active

    @property
    def sample_count(self) -> int:
        with self._lock:
            return len(self._samples)

    def start(self, source_active: bool = True) -> bool:
        """Begin collecting. Returns False (no-op) if already collecting or no audio is running."""
        if not source_active:
            logger.warning("Calibration requested without an active audio source")
            return False
        with self._lock:
            if self._active:
                return False
            self._active = True
            self._samples = []
            self._generation += 1
            generation = self._generation
            timer = self._timer_factory(self.config.window_sec, self._expire, args=(generation,))
            timer.daemon = True
            self._timer = timer
        timer.start()
        logger.info("Calibration started (%.1fs window)", self.config.window_sec)
        return True

    def offer(self, pitch_hz: float, confidence: float, a4_hz: Optional[float] = None) -> Optional[float]:
        """Record a sample if collecting and confident; returns the cents recorded.

        ``a4_hz`` is the reference the caller used for the rest of the frame;
        when omitted the current reference is read.
        """
        if pitch_hz <= 0.0 or confidence < self.config.min_confidence:
            return None
        a4 = self.reference.a4_hz if a4_hz is None else a4_hz
        target_hz = midi_to_hz(hz_to_midi(pitch_hz, a4), a4)
        if target_hz <= 0.0:
            return None
        cents = cents_between(pitch_hz, target_hz)
        with self._lock:
            if not self._active:
                return None
            self._samples.append(cents)
        return cents

    def _expire(self, generation: int) -> None:
        with self._lock:
            stale = generation != self._generation or not self._active
        if not stale:
            self.finish()

    def finish(self) -> Optional[CalibrationResult]:
        """Close the window now: apply the median offset (if any) and go idle."""
        with self._lock:
            if not self._active:
                return None
            samples, self._samples = self._samples, []
            self._active = False
            timer, self._timer = self._timer, None
        if timer is not None and timer is not threading.current_thread():
            timer.cancel()

        offset = median_offset(samples, self.config.max_offset_cents)
        if offset is None:
            result = CalibrationResult(applied=False, offset_cents=0.0, a4_hz=self.reference.a4_hz, sample_count=0)
            logger.info("Calibration finished with no qualifying samples; reference unchanged")
        else:
            a4 = self.reference.shift_cents(offset)
            result = CalibrationResult(applied=True, offset_cents=offset, a4_hz=a4, sample_count=len(samples))
            logger.info("Calibration applied %+.2f cents from %d samples", offset, len(samples))

        self.last_result = result
        if self.on_complete is not None:
            self.on_complete(result)
        return result

    def cancel(self) -> None:
        """Drop the session without touching the reference (used on shutdown)."""
        with self._lock:
            self._active = False
            self._samples = []
            self._generation += 1
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
