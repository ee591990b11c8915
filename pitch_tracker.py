"""
Fourier Drawings - Pitch Tracker
Estimates the sung fundamental from a microphone snapshot.
"""

import math
from dataclasses import dataclass

import numpy as np

from config import MAX_PITCH_HZ, MIN_PITCH_HZ, PitchConfig


@dataclass(frozen=True)
class PitchEstimate:
    """Result of one capture poll"""
    frequency: float | None   # None when silent or no credible period
    volume: float             # Level meter value (0.0-1.0)


def rms(buffer: np.ndarray) -> float:
    samples = np.asarray(buffer, dtype=np.float64)
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(samples ** 2)))


def estimate_volume(buffer: np.ndarray, gain: float = 8.0) -> float:
    """RMS scaled by ``gain`` and clamped to 1. Not gated by silence."""
    return min(1.0, rms(buffer) * gain)


def estimate_pitch(
    buffer: np.ndarray,
    sample_rate: int,
    min_pitch_hz: float = MIN_PITCH_HZ,
    max_pitch_hz: float = MAX_PITCH_HZ,
    silence_rms: float = 0.01,
) -> float | None:
    """
    Brute-force autocorrelation pitch estimate.

    Scans lags [floor(sr/max), floor(sr/min)) low to high and keeps the
    first strictly larger correlation, starting from zero. Returns None
    below the silence gate, when no lag correlates positively, or when
    the resulting pitch falls outside [min_pitch_hz, max_pitch_hz].
    """
    samples = np.asarray(buffer, dtype=np.float64)
    n = samples.size
    if n == 0 or rms(samples) < silence_rms:
        return None

    min_period = int(math.floor(sample_rate / max_pitch_hz))
    max_period = int(math.floor(sample_rate / min_pitch_hz))

    best_corr = 0.0
    best_period = 0
    for period in range(max(1, min_period), max_period):
        if period >= n:
            # No overlap left; correlation is zero from here on
            break
        corr = float(np.dot(samples[:n - period], samples[period:]))
        if corr > best_corr:
            best_corr = corr
            best_period = period

    if best_period == 0:
        return None

    pitch = sample_rate / best_period
    if pitch < min_pitch_hz or pitch > max_pitch_hz:
        return None
    return pitch


class PitchTracker:
    """Binds the pitch and volume estimators to a sample rate and config."""

    def __init__(self, sample_rate: int, config: PitchConfig | None = None):
        self.sample_rate = int(sample_rate)
        self.config = config or PitchConfig()

    def pitch(self, buffer: np.ndarray) -> float | None:
        cfg = self.config
        return estimate_pitch(
            buffer,
            self.sample_rate,
            min_pitch_hz=cfg.min_pitch_hz,
            max_pitch_hz=cfg.max_pitch_hz,
            silence_rms=cfg.silence_rms,
        )

    def volume(self, buffer: np.ndarray) -> float:
        return estimate_volume(buffer, self.config.volume_gain)

    def analyse(self, buffer: np.ndarray) -> PitchEstimate:
        return PitchEstimate(frequency=self.pitch(buffer), volume=self.volume(buffer))
