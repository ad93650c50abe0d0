# fretscope/analysis/config.py
from __future__ import annotations

import importlib
import importlib.util
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from ..errors import UnknownConfigKeyError

if importlib.util.find_spec("tomllib"):
    tomllib = importlib.import_module("tomllib")  # type: ignore
else:  # pragma: no cover
    tomllib = importlib.import_module("tomli")  # type: ignore


# ------------------------------------------------------------
# Front-end (framing, pitch estimator, spectra)
# ------------------------------------------------------------

@dataclass
class FrontEndConfig:
    sample_rate: int = 44100
    frame_size: int = 2048           # larger buffer improves low-frequency stability
    hop_length: int = 1024           # 50% overlap

    # Autocorrelation pitch estimator bounds
    pitch_fmin: float = 60.0
    pitch_fmax: float = 1400.0

    # Constant-Q band: ~A1 to A7, covers guitar range plus a few harmonics
    cqt_fmin: float = 55.0
    cqt_fmax: float = 3520.0
    cqt_bins_per_octave: int = 36


# ------------------------------------------------------------
# Peak picker
# ------------------------------------------------------------

@dataclass
class PeakPickerConfig:
    median_length: int = 31
    noise_factor: float = 1.2
    max_peaks: int = 8
    min_distance_cents: float = 60.0  # separate at least ~semitone


# ------------------------------------------------------------
# Chroma accumulator
# ------------------------------------------------------------

@dataclass
class ChromaConfig:
    fmin: float = 55.0
    fmax: float = 4000.0
    history_size: int = 8
    # Low-frequency de-emphasis pivot: weight /= sqrt(max(1, f / pivot))
    bass_pivot_hz: float = 110.0


# ------------------------------------------------------------
# Chord recognizer
# ------------------------------------------------------------

@dataclass
class ChordWeights:
    """Empirical chord-template constants.

    These are tunable heuristics, not principled thresholds. The defaults
    reproduce the reference labelling exactly.
    """
    silence_energy: float = 1e-6
    third_gate: float = 0.35         # third must reach 35% of max(root, fifth)
    seventh_gate: float = 0.35
    complexity_penalty: float = 0.10  # per interval beyond root + fifth
    seventh_demotion_margin: float = 0.12
    uncertain_below: float = 0.20

    purity_floor: float = 0.6
    purity_gain: float = 0.4

    power_root: float = 1.00
    power_fifth: float = 0.95
    power_third_leak: float = 0.05
    power_third_leak_rel: float = 0.25

    triad_root: float = 1.00
    triad_third: float = 0.85
    triad_fifth: float = 0.90

    seventh_root: float = 1.00
    seventh_third: float = 0.80
    seventh_fifth: float = 0.90
    seventh_seventh: float = 0.60


# ------------------------------------------------------------
# Note selector / gesture / tuner / calibration
# ------------------------------------------------------------

@dataclass
class NoteSelectorConfig:
    top_k: int = 6


@dataclass
class GestureConfig:
    history_size: int = 50
    min_samples: int = 6
    slide_cents: float = 150.0
    slide_max_sign_changes: int = 2
    bend_min_cents: float = 25.0
    bend_max_sign_changes: int = 3
    vibrato_min_sign_changes: int = 6
    vibrato_max_step_cents: float = 30.0
    # "chroma": strongest selected note feeds the history; "pitch": the estimator pitch
    pitch_source: str = "chroma"


@dataclass
class TunerConfig:
    mode: str = "Auto"
    min_confidence: float = 0.75
    max_snap_cents: float = 500.0
    in_tune_cents: float = 5.0
    near_cents: float = 15.0


@dataclass
class CalibrationConfig:
    window_sec: float = 2.0
    min_confidence: float = 0.85
    max_offset_cents: float = 50.0


@dataclass
class ReferenceConfig:
    a4_hz: float = 440.0
    min_hz: float = 400.0
    max_hz: float = 500.0


# ------------------------------------------------------------
# Top-level config
# ------------------------------------------------------------

@dataclass
class AnalysisConfig:
    frontend: FrontEndConfig = field(default_factory=FrontEndConfig)
    reference: ReferenceConfig = field(default_factory=ReferenceConfig)
    peaks: PeakPickerConfig = field(default_factory=PeakPickerConfig)
    chroma: ChromaConfig = field(default_factory=ChromaConfig)
    chords: ChordWeights = field(default_factory=ChordWeights)
    notes: NoteSelectorConfig = field(default_factory=NoteSelectorConfig)
    gesture: GestureConfig = field(default_factory=GestureConfig)
    tuner: TunerConfig = field(default_factory=TunerConfig)
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    frame_channel_size: int = 8

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AnalysisConfig":
        """Build a config from nested mappings, e.g. a parsed TOML file.

        Unknown sections or keys raise :class:`UnknownConfigKeyError`.
        """
        config = cls()
        _apply_layer(config, data, prefix="")
        return config


def _apply_layer(target: Any, data: Mapping[str, Any], prefix: str) -> None:
    names = {f.name for f in fields(target)}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if key not in names:
            raise UnknownConfigKeyError(dotted)
        current = getattr(target, key)
        if is_dataclass(current) and isinstance(value, Mapping):
            _apply_layer(current, value, prefix=f"{dotted}.")
        else:
            setattr(target, key, _coerce(current, value))


def _coerce(current: Any, value: Any) -> Any:
    # Values from the command line arrive as strings.
    if isinstance(value, str) and not isinstance(current, str):
        if isinstance(current, bool):
            return value.strip().lower() in {"1", "true", "yes", "y", "on"}
        if isinstance(current, int):
            return int(value)
        if isinstance(current, float):
            return float(value)
    if isinstance(current, float) and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    return value


def apply_dotted_overrides(config: AnalysisConfig, overrides: Mapping[str, Any]) -> None:
    """
    Apply dotted-path overrides (``{"peaks.max_peaks": 5}``) in place.
    Unlike a loose setattr, unknown paths are rejected.
    """
    for dotted, value in (overrides or {}).items():
        parts = str(dotted).split(".")
        target: Any = config
        walked = []
        for part in parts[:-1]:
            walked.append(part)
            if not hasattr(target, part):
                raise UnknownConfigKeyError(".".join(walked))
            target = getattr(target, part)
        leaf = parts[-1]
        if not is_dataclass(target) or not hasattr(target, leaf) or is_dataclass(getattr(target, leaf)):
            raise UnknownConfigKeyError(str(dotted))
        setattr(target, leaf, _coerce(getattr(target, leaf), value))


def parse_override_pairs(pairs: Iterable[str]) -> Dict[str, str]:
    """Split ``key=value`` strings from the command line."""
    out: Dict[str, str] = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise UnknownConfigKeyError(f"expected key=value, got {pair!r}")
        key, value = pair.split("=", 1)
        out[key.strip()] = value.strip()
    return out


def load_config(
    path: Optional[str] = None,
    overrides: Optional[Iterable[Tuple[str, Any]]] = None,
) -> AnalysisConfig:
    """Load defaults, then an optional TOML file, then dotted overrides."""
    if path:
        with open(path, "rb") as f:
            config = AnalysisConfig.from_dict(tomllib.load(f))
    else:
        config = AnalysisConfig()
    if overrides:
        apply_dotted_overrides(config, dict(overrides))
    return config


DEFAULT_CONFIG = AnalysisConfig()
