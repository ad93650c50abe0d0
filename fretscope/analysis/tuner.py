# fretscope/analysis/tuner.py
"""Guitar tuner readings against the standard six-string table."""
from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

from ..errors import TuningError
from .config import TunerConfig
from .models import TunerReading
from .pitch import AUTO_MODE, DEFAULT_A4_HZ, STANDARD_STRINGS, StringTarget, cents_between, find_string

NO_READING = TunerReading()


def tuning_zone(cents: float, config: Optional[TunerConfig] = None) -> str:
    cfg = config or TunerConfig()
    ac = abs(cents)
    if ac <= cfg.in_tune_cents:
        return "in_tune"
    if ac <= cfg.near_cents:
        return "near"
    return "off"


def nearest_string(
    pitch_hz: float,
    a4_hz: float = DEFAULT_A4_HZ,
    strings: Sequence[StringTarget] = STANDARD_STRINGS,
) -> Tuple[Optional[StringTarget], float]:
    """Closest string by absolute cents, and that distance."""
    best: Optional[StringTarget] = None
    best_abs = math.inf
    for s in strings:
        ac = abs(cents_between(pitch_hz, s.frequency(a4_hz)))
        if ac < best_abs:
            best_abs = ac
            best = s
    return best, best_abs


def tune(
    pitch_hz: float,
    confidence: float,
    mode: str = AUTO_MODE,
    a4_hz: float = DEFAULT_A4_HZ,
    config: Optional[TunerConfig] = None,
) -> TunerReading:
    """
    Signed cents deviation of a confident pitch from its target string.

    In ``"Auto"`` mode the nearest string is used unless it is more than
    ``max_snap_cents`` away; otherwise ``mode`` names the string. Returns
    the empty reading when there is no confident pitch or no target.
    """
    cfg = config or TunerConfig()
    if mode == AUTO_MODE:
        target = None
    else:
        target = find_string(mode)
        if target is None:
            raise TuningError(f"Unknown tuner mode {mode!r}")

    if pitch_hz <= 0.0 or confidence < cfg.min_confidence:
        return NO_READING

    if mode == AUTO_MODE:
        target, best_abs = nearest_string(pitch_hz, a4_hz)
        if target is None or best_abs > cfg.max_snap_cents:
            return NO_READING

    target_hz = target.frequency(a4_hz)
    cents = cents_between(pitch_hz, target_hz)
    return TunerReading(target=target.name, target_hz=target_hz, cents=cents, zone=tuning_zone(cents, cfg))
