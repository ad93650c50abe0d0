# fretscope/analysis/chords.py
"""
Chord recognition by heuristic template scoring over smoothed chroma.

For every candidate root five hypotheses are scored: power chord (root +
fifth), major, minor, dominant seventh and minor seventh. Each score is a
weighted sum of the constituent chroma energies, scaled by how much of the
total energy the hypothesis explains (purity), minus a complexity penalty
per interval beyond the two-note power chord.

Ties resolve by strict ``>`` comparison: the first hypothesis (in the order
above) and the first root (C upwards) win. This keeps labelling
reproducible, it does not make it musically optimal.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .config import ChordWeights
from .pitch import NOTE_NAMES

logger = logging.getLogger(__name__)

NO_CHORD = "--"
UNCERTAIN = "Uncertain"

POWER, MAJOR, MINOR, DOM7, MIN7 = "power", "major", "minor", "dom7", "min7"
QUALITIES: Tuple[str, ...] = (POWER, MAJOR, MINOR, DOM7, MIN7)
QUALITY_SUFFIX = {POWER: "5", MAJOR: "Maj", MINOR: "Min", DOM7: "7", MIN7: "m7"}

# Score used for a hypothesis whose gate is closed
_REJECTED = -1e9


@dataclass(frozen=True)
class ChordHypothesis:
    root: int
    quality: str
    score: float

    @property
    def label(self) -> str:
        return chord_label(self.root, self.quality)


def chord_label(root: int, quality: str) -> str:
    return f"{NOTE_NAMES[root % 12]} {QUALITY_SUFFIX[quality]}"


def _purity_scale(explained: float, total: float, w: ChordWeights) -> float:
    return w.purity_floor + w.purity_gain * (explained / total)


def score_root(chroma: Sequence[float], root: int, weights: Optional[ChordWeights] = None) -> List[ChordHypothesis]:
    """Score all five hypotheses for one root, in fixed quality order."""
    w = weights or ChordWeights()
    c = np.asarray(chroma, dtype=np.float64)
    total = float(np.sum(c))
    if total <= w.silence_energy:
        return [ChordHypothesis(root, q, _REJECTED) for q in QUALITIES]

    r = float(c[root % 12])
    e5 = float(c[(root + 7) % 12])
    em3_major = float(c[(root + 4) % 12])
    em3_minor = float(c[(root + 3) % 12])
    e7 = float(c[(root + 10) % 12])

    base = max(w.silence_energy, max(r, e5))
    has_maj3 = em3_major >= w.third_gate * base
    has_min3 = em3_minor >= w.third_gate * base
    has_7 = e7 >= w.seventh_gate * base

    power = (w.power_root * r + w.power_fifth * e5) * _purity_scale(r + e5, total, w)
    # a strong third means this is not really a power chord
    third_leak = max(em3_major, em3_minor)
    power -= w.power_third_leak * max(0.0, third_leak - w.power_third_leak_rel * base)

    def triad(third: float) -> float:
        return (
            (w.triad_root * r + w.triad_third * third + w.triad_fifth * e5)
            * _purity_scale(r + e5 + third, total, w)
            - w.complexity_penalty * (3 - 2)
        )

    def seventh(third: float) -> float:
        return (
            (w.seventh_root * r + w.seventh_third * third + w.seventh_fifth * e5 + w.seventh_seventh * e7)
            * _purity_scale(r + e5 + third + e7, total, w)
            - w.complexity_penalty * (4 - 2)
        )

    major = triad(em3_major) if has_maj3 else _REJECTED
    minor = triad(em3_minor) if has_min3 else _REJECTED
    dom7 = seventh(em3_major) if (has_maj3 and has_7) else _REJECTED
    min7 = seventh(em3_minor) if (has_min3 and has_7) else _REJECTED

    scores = (power, major, minor, dom7, min7)
    return [ChordHypothesis(root % 12, q, s) for q, s in zip(QUALITIES, scores)]


def best_for_root(hypotheses: Sequence[ChordHypothesis], weights: Optional[ChordWeights] = None) -> ChordHypothesis:
    """Pick the winner for one root, demoting a marginal seventh to power."""
    w = weights or ChordWeights()
    power = hypotheses[0]
    best = power
    for h in hypotheses[1:]:
        if h.score > best.score:
            best = h
    if best.quality in (DOM7, MIN7) and (best.score - power.score) < w.seventh_demotion_margin:
        best = power
    return best


def recognize_chord(chroma: Sequence[float], weights: Optional[ChordWeights] = None) -> str:
    """Label a smoothed chroma vector.

    Returns ``"--"`` when the vector carries no energy and ``"Uncertain"``
    when no hypothesis scores at least ``uncertain_below``.
    """
    w = weights or ChordWeights()
    c = np.asarray(chroma, dtype=np.float64).reshape(-1)
    if c.size != 12 or float(np.sum(c)) <= w.silence_energy:
        return NO_CHORD

    best: Optional[ChordHypothesis] = None
    for root in range(12):
        candidate = best_for_root(score_root(c, root, w), w)
        if best is None or candidate.score > best.score:
            best = candidate

    if best is None or best.score < w.uncertain_below:
        logger.debug("chord uncertain (best=%s)", best)
        return UNCERTAIN
    return best.label
