from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class Point:
    """Canvas point relative to the canvas centre."""
    x: float
    y: float


def resample(points: Sequence[Point], target_count: int = 100) -> list[Point]:
    """Keep every k-th point so roughly ``target_count`` remain.

    ``k = max(1, len(points) // target_count)``. Order is preserved and no
    interpolation happens between skipped points, so shorter inputs pass
    through unchanged.
    """
    skip = max(1, len(points) // max(1, int(target_count)))
    return list(points[::skip])


def has_enough_points(points: Sequence[Point], minimum: int = 10) -> bool:
    """True when a capture is long enough to decompose (strictly more than ``minimum``)."""
    return len(points) > minimum
