import math

import numpy as np
import pytest

from fretscope.analysis.pitch import (
    STANDARD_STRINGS,
    TuningReference,
    cents_between,
    find_string,
    hz_to_midi,
    midi_to_hz,
    note_label,
    validate_a4,
    validate_tuner_mode,
)
from fretscope.errors import ReferencePitchError, TuningError


def test_nearest_midi_is_within_half_semitone():
    for hz in np.geomspace(55.0, 4000.0, 200):
        midi = hz_to_midi(float(hz))
        assert abs(cents_between(float(hz), midi_to_hz(midi))) <= 50.0 + 1e-9


def test_reference_shifts_conversions():
    assert midi_to_hz(69, 432.0) == pytest.approx(432.0)
    assert hz_to_midi(432.0, 432.0) == 69
    assert hz_to_midi(440.0, 432.0) == 69


@pytest.mark.parametrize("midi,label", [(69, "A4"), (40, "E2"), (60, "C4"), (61, "C#4"), (59, "B3"), (0, "C-1")])
def test_note_label(midi, label):
    assert note_label(midi) == label


def test_standard_strings():
    assert [s.name for s in STANDARD_STRINGS] == ["E2", "A2", "D3", "G3", "B3", "E4"]
    assert STANDARD_STRINGS[0].frequency() == pytest.approx(82.4069, abs=1e-3)
    assert find_string("G3").midi == 55
    assert find_string("X") is None


@pytest.mark.parametrize("value,expected", [("442", 442.0), (" 431.5 ", 431.5), (400, 400.0), (500.0, 500.0)])
def test_validate_a4_accepts(value, expected):
    assert validate_a4(value) == expected


@pytest.mark.parametrize("value", ["abc", "", None, 399.9, 500.1, math.nan, "inf"])
def test_validate_a4_rejects(value):
    with pytest.raises(ReferencePitchError, match="Invalid A4 value"):
        validate_a4(value)


def test_reference_set_and_shift():
    ref = TuningReference()
    assert ref.set("442") == 442.0
    with pytest.raises(ReferencePitchError):
        ref.set("999")
    assert ref.a4_hz == 442.0

    ref.set(440)
    assert ref.shift_cents(100.0) == pytest.approx(midi_to_hz(70))
    assert ref.offset_cents() == pytest.approx(100.0)


def test_reference_describe():
    assert TuningReference(440.0).describe() == "A4: 440.0 Hz (+0.0c)"


def test_reference_rejects_bad_initial_value():
    with pytest.raises(ReferencePitchError):
        TuningReference(300.0)


def test_validate_tuner_mode():
    assert validate_tuner_mode("Auto") == "Auto"
    assert validate_tuner_mode("B3") == "B3"
    with pytest.raises(TuningError):
        validate_tuner_mode("auto")


def test_shift_is_clamped_to_valid_range():
    ref = TuningReference(495.0)
    assert ref.shift_cents(50.0) == 500.0
    ref.set(405.0)
    assert ref.shift_cents(-50.0) == 400.0
    assert ref.a4_hz == 400.0
