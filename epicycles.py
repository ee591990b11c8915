"""
Fourier Drawings - Epicycle Synthesizer
Rebuilds a path point from a harmonic set as a chain of rotating vectors.
"""

import math
from dataclasses import dataclass, field
from typing import Iterator

from harmonics import TWO_PI, HarmonicSet
from path_sampler import Point

QUARTER_TURN = math.pi / 2.0


@dataclass(frozen=True)
class Epicycle:
    """One link of the chain: the circle it sweeps and where its vector ends."""
    center: Point
    radius: float
    tip: Point


def iter_epicycles(
    center: Point,
    rotation_offset: float,
    time: float,
    harmonics: HarmonicSet,
) -> Iterator[Epicycle]:
    """Lazily walk the chain in stored (inner-to-outer) order."""
    x, y = center.x, center.y
    for term in harmonics:
        radius = term.radius
        angle = term.phase + time * term.frequency_index + rotation_offset
        prev = Point(x, y)
        x += radius * math.cos(angle)
        y += radius * math.sin(angle)
        yield Epicycle(center=prev, radius=radius, tip=Point(x, y))


def advance(
    center: Point,
    rotation_offset: float,
    time: float,
    harmonics: HarmonicSet,
) -> Point:
    """Return the tip of the whole chain."""
    tip = center
    for epicycle in iter_epicycles(center, rotation_offset, time, harmonics):
        tip = epicycle.tip
    return tip


def combine(x_tip: Point, y_tip: Point) -> Point:
    """Pair the x-chain's x with the y-chain's y."""
    return Point(x_tip.x, y_tip.y)


@dataclass
class PlaybackState:
    """
    Playback clock and traced path.

    The angle advances 2π/N per frame and wraps after exactly N frames, at
    which point the traced path is cleared. A frame counter drives the angle
    so float accumulation can never add or drop a frame.
    """
    frames_per_revolution: int = 1
    frame: int = 0
    traced_path: list[Point] = field(default_factory=list)

    def __post_init__(self):
        self.frames_per_revolution = max(1, int(self.frames_per_revolution))

    @property
    def elapsed_angle(self) -> float:
        return TWO_PI * self.frame / self.frames_per_revolution

    def record(self, point: Point) -> None:
        self.traced_path.append(point)

    def step(self) -> bool:
        """Advance one frame. Returns True when a revolution completed."""
        self.frame += 1
        if self.frame >= self.frames_per_revolution:
            self.frame = 0
            self.traced_path.clear()
            return True
        return False
