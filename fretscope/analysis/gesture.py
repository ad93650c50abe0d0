# fretscope/analysis/gesture.py
"""Classify recent melodic movement from the dominant-pitch history."""
from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np

from .config import GestureConfig

logger = logging.getLogger(__name__)

NO_GESTURE = "--"
SLIDE_UP, SLIDE_DOWN = "Slide Up", "Slide Down"
BEND_UP, BEND_DOWN = "Bend Up", "Bend Down"
VIBRATO = "Vibrato"
STABLE = "Stable"


def count_sign_changes(diffs: np.ndarray) -> int:
    """Adjacent first-difference sign flips (a zero step counts as its own sign)."""
    if diffs.size < 2:
        return 0
    signs = np.sign(diffs)
    return int(np.count_nonzero(signs[1:] != signs[:-1]))


def classify_gesture(history: Sequence[float], config: Optional[GestureConfig] = None) -> str:
    """
    Label the movement across ``history`` (Hz, oldest first).

    Rules, first match wins:
      1. net drift above ``slide_cents`` with almost no reversals -> slide
      2. moderate drift with few reversals -> bend
      3. many reversals of small steps -> vibrato
      4. otherwise stable
    """
    cfg = config or GestureConfig()
    hz = np.asarray(history, dtype=np.float64).reshape(-1)
    if hz.size < cfg.min_samples or hz[0] <= 0.0:
        return NO_GESTURE

    cents = 1200.0 * np.log2(hz / hz[0])
    total = float(cents[-1] - cents[0])
    span = abs(total)
    diffs = np.diff(cents)
    sign_changes = count_sign_changes(diffs)
    avg_step = float(np.mean(np.abs(diffs)))

    if span > cfg.slide_cents and sign_changes < cfg.slide_max_sign_changes:
        return SLIDE_UP if total > 0 else SLIDE_DOWN
    if cfg.bend_min_cents < span <= cfg.slide_cents and sign_changes < cfg.bend_max_sign_changes:
        return BEND_UP if total > 0 else BEND_DOWN
    if sign_changes > cfg.vibrato_min_sign_changes and avg_step < cfg.vibrato_max_step_cents:
        return VIBRATO
    return STABLE
