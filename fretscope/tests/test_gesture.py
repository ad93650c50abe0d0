import numpy as np
import pytest

from fretscope.analysis.config import GestureConfig
from fretscope.analysis.gesture import (
    BEND_DOWN,
    BEND_UP,
    NO_GESTURE,
    SLIDE_DOWN,
    SLIDE_UP,
    STABLE,
    VIBRATO,
    classify_gesture,
    count_sign_changes,
)


def _from_cents(cents, base=220.0):
    return base * 2.0 ** (np.asarray(cents, dtype=float) / 1200.0)


def test_count_sign_changes():
    assert count_sign_changes(np.array([1.0, -1.0, 1.0])) == 2
    assert count_sign_changes(np.array([1.0, 2.0, 3.0])) == 0
    assert count_sign_changes(np.array([1.0])) == 0


@pytest.mark.parametrize(
    "history,expected",
    [
        (np.linspace(220.0, 240.0, 10), SLIDE_UP),      # ~151 cents
        (np.linspace(240.0, 220.0, 10), SLIDE_DOWN),
        (np.linspace(220.0, 235.0, 10), BEND_UP),       # ~114 cents
        (np.linspace(235.0, 220.0, 10), BEND_DOWN),
        (np.full(10, 220.0), STABLE),
    ],
)
def test_monotonic_movement(history, expected):
    assert classify_gesture(history) == expected


def test_vibrato_small_fast_oscillation():
    history = _from_cents([0.0, 10.0] * 10)
    assert classify_gesture(history) == VIBRATO


def test_wide_oscillation_is_not_vibrato():
    history = _from_cents([0.0, 80.0] * 10)
    assert classify_gesture(history) == STABLE


def test_small_drift_is_stable():
    assert classify_gesture(_from_cents(np.linspace(0.0, 20.0, 10))) == STABLE


def test_too_few_samples():
    assert classify_gesture(np.linspace(220.0, 240.0, 5)) == NO_GESTURE
    assert classify_gesture([]) == NO_GESTURE


def test_non_positive_start():
    assert classify_gesture([0.0, 220.0, 230.0, 240.0, 250.0, 260.0]) == NO_GESTURE


def test_thresholds_come_from_config():
    cfg = GestureConfig(slide_cents=100.0)
    assert classify_gesture(np.linspace(220.0, 235.0, 10), cfg) == SLIDE_UP
