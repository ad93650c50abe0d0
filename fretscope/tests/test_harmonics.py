from fretscope.analysis.harmonics import NO_NOTES, count_harmonics, detect_harmonics
from fretscope.analysis.models import NoteEstimate


def _notes(*freqs):
    return [NoteEstimate(name="x", midi=0, frequency_hz=f) for f in freqs]


def test_two_overtones():
    notes = _notes(110.0, 220.0, 330.5, 500.0)
    assert count_harmonics(notes) == 2
    assert detect_harmonics(notes) == "Yes (2)"


def test_single_overtone_is_not_enough():
    assert detect_harmonics(_notes(110.0, 220.0, 275.0)) == "No"


def test_unison_does_not_count():
    assert count_harmonics(_notes(110.0, 110.0, 111.0)) == 0


def test_missing_fundamental_frequency():
    assert count_harmonics(_notes(-1.0, 220.0, 330.0)) == 0
    assert detect_harmonics(_notes(-1.0, 220.0, 330.0)) == "No"


def test_unmatched_overtone_entries_are_skipped():
    assert count_harmonics(_notes(110.0, -1.0, 220.0, 330.0)) == 2


def test_no_notes():
    assert detect_harmonics([]) == NO_NOTES
