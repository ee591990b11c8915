from config import (
    MAX_PITCH_HZ,
    MAX_TONE_HZ,
    MIN_PITCH_HZ,
    MIN_TONE_HZ,
)


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def pitch_to_vertical_position(
    pitch: float | None,
    canvas_height: float,
    min_pitch_hz: float = MIN_PITCH_HZ,
    max_pitch_hz: float = MAX_PITCH_HZ,
    band_top: float = 0.1,
    band_span: float = 0.8,
) -> float:
    """Map a voice pitch to a canvas Y inside [0.1·H, 0.9·H]; higher pitch = smaller Y."""
    if pitch is None:
        return canvas_height / 2.0
    norm = _clamp01((pitch - min_pitch_hz) / (max_pitch_hz - min_pitch_hz))
    return canvas_height * band_top + (1.0 - norm) * canvas_height * band_span


def vertical_position_to_frequency(
    y: float,
    canvas_height: float,
    min_freq_hz: float = MIN_TONE_HZ,
    max_freq_hz: float = MAX_TONE_HZ,
) -> float:
    """Map a canvas Y to a tone frequency; smaller Y = higher tone."""
    norm = _clamp01(y / canvas_height)
    return min_freq_hz + (1.0 - norm) * (max_freq_hz - min_freq_hz)


class PitchSmoother:
    """Linear blend of each new pitch with the last accepted one."""

    def __init__(self, weight: float = 0.4):
        self.weight = weight
        self.last: float | None = None

    def update(self, pitch: float) -> float:
        if self.last is not None:
            pitch = self.last + (pitch - self.last) * self.weight
        self.last = pitch
        return pitch

    def reset(self) -> None:
        self.last = None
