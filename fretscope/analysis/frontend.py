# fretscope/analysis/frontend.py
"""
Audio front-end adapter.

The analysis core only consumes a pitch estimate, a magnitude spectrum and a
constant-Q spectrum per frame. This module produces them from raw frames
with library transforms (scipy.fft for the FFT/ACF, librosa for the CQT) so
the engine can be driven from a file or any other frame source.
"""
from __future__ import annotations

import logging
from typing import Iterator, Optional, Tuple

import numpy as np
import scipy.fft

from ..errors import FrontEndError
from .config import FrontEndConfig
from .models import ConstantQSpectrum, FrameInput, MagnitudeSpectrum

logger = logging.getLogger(__name__)

try:
    import librosa  # type: ignore
except Exception as e:  # pragma: no cover
    librosa = None  # type: ignore
    _LIBROSA_IMPORT_ERR = e  # type: ignore


# --------------------------------------------------------------------------------------
# Framing / IO
# --------------------------------------------------------------------------------------
def frame_audio(y: np.ndarray, frame_length: int, hop_length: int) -> np.ndarray:
    """Overlapping read-only frames of shape (n_frames, frame_length)."""
    y = np.asarray(y, dtype=np.float32).reshape(-1)
    if len(y) <= 0:
        return np.zeros((0, frame_length), dtype=np.float32)
    if len(y) < frame_length:
        y = np.pad(y, (0, frame_length - len(y)), mode="constant")

    n_frames = 1 + (len(y) - frame_length) // hop_length
    frames = np.lib.stride_tricks.as_strided(
        y,
        shape=(n_frames, frame_length),
        strides=(y.strides[0] * hop_length, y.strides[0]),
        writeable=False,
    )
    return frames


def iter_frames(y: np.ndarray, frame_length: int, hop_length: int) -> Iterator[np.ndarray]:
    for frame in frame_audio(y, frame_length, hop_length):
        yield frame


def read_audio(path: str, sample_rate: int) -> np.ndarray:
    """Load ``path`` as mono float32 at ``sample_rate``."""
    try:
        import soundfile as sf

        audio, sr = sf.read(path, dtype="float32", always_2d=False)
    except Exception as e:
        raise FrontEndError(f"Failed to load audio {path!r}: {e}") from e

    if audio.ndim > 1:
        audio = np.mean(audio, axis=1)
    if audio.size == 0:
        raise FrontEndError("Audio too short (empty)")
    if int(sr) != int(sample_rate):
        if librosa is None:
            raise FrontEndError(f"librosa is required to resample {sr} Hz audio to {sample_rate} Hz")
        audio = librosa.resample(audio, orig_sr=int(sr), target_sr=int(sample_rate))
        logger.info("Resampled %s from %d Hz to %d Hz", path, sr, sample_rate)
    return np.asarray(audio, dtype=np.float32)


# --------------------------------------------------------------------------------------
# Pitch estimator
# --------------------------------------------------------------------------------------
def autocorr_pitch(
    frame: np.ndarray,
    sr: int,
    fmin: float,
    fmax: float,
) -> Tuple[float, float]:
    """
    Normalized-autocorrelation pitch of one frame: returns (f0_hz, conf).
    conf ~ ACF peak over zero-lag energy (0..1); (0.0, 0.0) when unvoiced.
    """
    x = np.asarray(frame, dtype=np.float64).reshape(-1)
    frame_length = x.size
    lag_min = max(1, int(sr / max(fmax, 1e-6)))
    lag_max = min(max(lag_min + 1, int(sr / max(fmin, 1e-6))), frame_length - 2)
    if frame_length < 4 or lag_min >= lag_max:
        return 0.0, 0.0

    x = x - np.mean(x)
    energy = float(np.sum(x ** 2))
    if energy <= 1e-10:
        return 0.0, 0.0

    # Wiener-Khinchin: pad to >= 2L - 1 for a linear (not circular) ACF
    n_fft = scipy.fft.next_fast_len(2 * frame_length - 1)
    spec = scipy.fft.rfft(x, n=n_fft)
    ac = scipy.fft.irfft(spec * np.conj(spec), n=n_fft)[:frame_length]
    # unbiased: compensate for the shrinking overlap at long lags
    ac = ac / (frame_length - np.arange(frame_length)) * frame_length
    ac0 = ac[0] + 1e-12

    seg = ac[lag_min:lag_max]
    # first local maximum above 0.9x the global one avoids octave-down picks
    k_best = int(np.argmax(seg))
    thresh = 0.9 * seg[k_best]
    for k in range(1, seg.size - 1):
        if seg[k] >= thresh and seg[k] >= seg[k - 1] and seg[k] >= seg[k + 1]:
            k_best = k
            break

    lag = float(k_best + lag_min)
    # parabolic interpolation around the peak lag
    i = k_best + lag_min
    if 1 <= i < frame_length - 1:
        a, b, c = ac[i - 1], ac[i], ac[i + 1]
        denom = a - 2.0 * b + c
        if abs(denom) > 1e-12:
            lag += 0.5 * (a - c) / denom

    conf = float(np.clip(ac[i] / ac0, 0.0, 1.0))
    if conf <= 0.0 or lag <= 0.0:
        return 0.0, 0.0
    return float(sr / lag), conf


class AutocorrPitchEstimator:
    def __init__(self, sr: int, fmin: float = 60.0, fmax: float = 1400.0):
        self.sr = int(sr)
        self.fmin = float(fmin)
        self.fmax = float(fmax)

    def estimate(self, frame: np.ndarray) -> Tuple[float, float]:
        return autocorr_pitch(frame, self.sr, self.fmin, self.fmax)


# --------------------------------------------------------------------------------------
# Spectra
# --------------------------------------------------------------------------------------
def magnitude_spectrum(frame: np.ndarray, sr: int) -> MagnitudeSpectrum:
    """Hann-windowed rfft magnitudes with bin-center frequencies."""
    x = np.asarray(frame, dtype=np.float64).reshape(-1)
    if x.size == 0:
        return MagnitudeSpectrum.empty()
    win = np.hanning(x.size)
    mags = np.abs(scipy.fft.rfft(x * win)) / max(1.0, float(np.sum(win)) / 2.0)
    freqs = scipy.fft.rfftfreq(x.size, 1.0 / float(sr))
    return MagnitudeSpectrum(mags, freqs)


class ConstantQFrontEnd:
    """librosa CQT of a single frame, zero-padded to ``buffer_length``."""

    def __init__(
        self,
        sr: int,
        fmin: float = 55.0,
        fmax: float = 3520.0,
        bins_per_octave: int = 36,
        buffer_length: int = 8192,
        hop_length: int = 512,
    ):
        if librosa is None:
            raise FrontEndError("ConstantQFrontEnd requires librosa")
        self.sr = int(sr)
        self.fmin = float(fmin)
        self.bins_per_octave = int(bins_per_octave)
        self.n_bins = int(np.ceil(self.bins_per_octave * np.log2(float(fmax) / self.fmin)))
        self.buffer_length = int(buffer_length)
        self.hop_length = int(hop_length)
        self.frequencies = librosa.cqt_frequencies(
            n_bins=self.n_bins, fmin=self.fmin, bins_per_octave=self.bins_per_octave
        )

    def transform(self, frame: np.ndarray) -> ConstantQSpectrum:
        x = np.asarray(frame, dtype=np.float32).reshape(-1)
        if x.size == 0 or not np.any(x):
            return ConstantQSpectrum(np.zeros(self.n_bins), self.frequencies)
        buf = np.zeros(max(self.buffer_length, x.size), dtype=np.float32)
        buf[: x.size] = x
        C = librosa.cqt(
            y=buf,
            sr=self.sr,
            hop_length=self.hop_length,
            fmin=self.fmin,
            n_bins=self.n_bins,
            bins_per_octave=self.bins_per_octave,
        )
        mags = np.mean(np.abs(C), axis=1)
        return ConstantQSpectrum(mags, self.frequencies)


class FrontEnd:
    """Turns one raw frame into the per-frame inputs of the analysis engine."""

    def __init__(self, config: Optional[FrontEndConfig] = None):
        self.config = config or FrontEndConfig()
        cfg = self.config
        self.pitch = AutocorrPitchEstimator(cfg.sample_rate, cfg.pitch_fmin, cfg.pitch_fmax)
        self.cqt = ConstantQFrontEnd(
            cfg.sample_rate,
            fmin=cfg.cqt_fmin,
            fmax=cfg.cqt_fmax,
            bins_per_octave=cfg.cqt_bins_per_octave,
        )

    def analyze(self, frame: np.ndarray) -> FrameInput:
        pitch_hz, confidence = self.pitch.estimate(frame)
        return FrameInput(
            pitch_hz=pitch_hz,
            confidence=confidence,
            magnitude_spectrum=magnitude_spectrum(frame, self.config.sample_rate),
            constant_q_spectrum=self.cqt.transform(frame),
        )
