"""
Fourier Drawings - Harmonic Decomposer
Splits one axis of a sampled path into rotating-vector terms.
"""

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from path_sampler import Point

TWO_PI = 2.0 * math.pi


@dataclass(frozen=True)
class HarmonicTerm:
    """One rotating vector of a decomposed axis."""
    amplitude: float          # One-sided display amplitude, 2·|X_k|
    phase: float              # Starting angle in [0, 2π)
    frequency_index: int      # Signed: negative = conjugate harmonic (reverse rotation)

    @property
    def radius(self) -> float:
        """Length of the vector swept by the chain (half the display amplitude)."""
        return self.amplitude / 2.0


HarmonicSet = tuple[HarmonicTerm, ...]


@dataclass(frozen=True)
class DecomposedSignal:
    """Harmonic sets of both axes of one drawing."""
    x_set: HarmonicSet
    y_set: HarmonicSet

    @property
    def frames_per_revolution(self) -> int:
        return len(self.y_set)


def signed_frequency_index(k: int, n: int) -> int:
    """Reinterpret DFT bin ``k`` of ``n`` as a signed frequency."""
    return k if 2 * k <= n else k - n


def _normalise_phase(angle: float) -> float:
    phase = angle % TWO_PI
    # Tiny negative angles round up to exactly 2π
    if phase >= TWO_PI:
        phase = 0.0
    return phase


# Amplitudes equal to 9 places tie; rounding absorbs DFT float noise
AMPLITUDE_TIE_PLACES = 9


def _sort_key(term: HarmonicTerm):
    return (-round(term.amplitude, AMPLITUDE_TIE_PLACES), abs(term.frequency_index))


def decompose(values: Sequence[float]) -> HarmonicSet:
    """
    Direct DFT of one axis, sorted by descending amplitude.

    For each bin k in [0, N): X_k = (1/N) Σ values[n]·e^{-i2πkn/N}.
    amplitude = 2·|X_k|, phase = angle(X_k). Amplitudes that agree to
    ``AMPLITUDE_TIE_PLACES`` decimals tie and are ordered by ascending
    |frequency_index|; equal keys keep bin order. The DC term is kept.
    """
    samples = np.asarray(values, dtype=np.float64)
    n = len(samples)
    if n == 0:
        return ()

    # O(N²) summation; N is bounded by the resample target
    bins = np.arange(n)
    kernel = np.exp(-2j * np.pi * np.outer(bins, bins) / n)
    coefficients = kernel @ samples / n

    terms = [
        HarmonicTerm(
            amplitude=float(np.abs(c)) * 2.0,
            phase=_normalise_phase(float(np.angle(c))),
            frequency_index=signed_frequency_index(k, n),
        )
        for k, c in enumerate(coefficients)
    ]
    terms.sort(key=_sort_key)
    return tuple(terms)


def decompose_path(points: Sequence[Point]) -> DecomposedSignal:
    """Decompose the x and y coordinates of a path independently."""
    return DecomposedSignal(
        x_set=decompose([p.x for p in points]),
        y_set=decompose([p.y for p in points]),
    )
