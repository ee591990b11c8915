# Fourier Drawings Configuration
# All default values and constants

from dataclasses import dataclass, field, is_dataclass
from enum import IntEnum

from logging_utils import log_event


CURRENT_CONFIG_VERSION = 1

# Human voice range bounding pitch detection (Hz)
MIN_PITCH_HZ = 80.0
MAX_PITCH_HZ = 800.0

# Comfortable range for the synthesized playback tone (Hz)
MIN_TONE_HZ = 100.0
MAX_TONE_HZ = 400.0


class Mode(IntEnum):
    """Session operating modes - exactly one is active"""
    DRAW = 1       # Freehand drawing (initial)
    RECORD = 2     # Voice pitch traced into a path
    ANIMATE = 3    # Epicycle playback with tone


@dataclass
class AudioConfig:
    """Audio device settings"""
    sample_rate: int = 44100
    buffer_size: int = 2048           # Pitch analysis window, power of two
    channels: int = 1
    # Device indices - None means use system default
    input_device_index: int | None = None
    output_device_index: int | None = None
    output_block_size: int = 512      # Frames per output callback


@dataclass
class PitchConfig:
    """Voice pitch detection parameters"""
    min_pitch_hz: float = MIN_PITCH_HZ
    max_pitch_hz: float = MAX_PITCH_HZ
    silence_rms: float = 0.01         # RMS below this = no pitch (silence gate)
    volume_gain: float = 8.0          # RMS multiplier for the level meter
    smoothing_weight: float = 0.4     # Lerp weight toward each new pitch (0-1)


@dataclass
class ToneConfig:
    """Playback tone (drawing -> sound) settings"""
    min_freq_hz: float = MIN_TONE_HZ
    max_freq_hz: float = MAX_TONE_HZ
    initial_freq_hz: float = 200.0
    gain: float = 0.2                 # Peak output amplitude (0.0-1.0)
    fade_ms: float = 100.0            # Fade in/out duration
    glide_time_constant_s: float = 0.02  # Frequency glide time constant


@dataclass
class CaptureConfig:
    """Drawing / voice capture settings"""
    resample_target: int = 100        # Points kept for the transform
    min_points: int = 10              # Captures with this many points or fewer are discarded
    record_margin: float = 30.0       # Left/right margin of the voice trace (px)
    record_step: float = 2.0          # Horizontal advance per recorded frame (px)
    record_step_compact: float = 1.5  # Same, for narrow canvases
    band_top: float = 0.1             # Top of the pitch band as a fraction of height
    band_span: float = 0.8            # Height of the pitch band as a fraction of height


@dataclass
class PlaybackConfig:
    """Epicycle playback layout"""
    margin: float = 80.0              # Offset of the chain anchors from the canvas edges
    margin_compact: float = 60.0
    frame_rate: int = 60              # Frame loop cadence (fps)
    compact_width: int = 700          # Windows narrower than this use compact layout


@dataclass
class Config:
    """Master configuration"""
    version: int = 1                  # Schema version for persisted configs
    audio: AudioConfig = field(default_factory=AudioConfig)
    pitch: PitchConfig = field(default_factory=PitchConfig)
    tone: ToneConfig = field(default_factory=ToneConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)

    # Global
    log_level: str = "INFO"           # Logging level (DEBUG/INFO/WARNING/ERROR)
    window_width: int = 1100
    window_height: int = 760


def apply_dict_to_dataclass(target, data) -> None:
    """Recursively apply values from a dict onto a dataclass instance.
    Unknown keys are ignored."""
    if not isinstance(data, dict):
        return

    for key, value in data.items():
        if not hasattr(target, key):
            continue

        current = getattr(target, key)

        if is_dataclass(current) and isinstance(value, dict):
            apply_dict_to_dataclass(current, value)
            continue

        setattr(target, key, value)


def _clamped_float(section, name: str, default: float, low: float, high: float) -> None:
    try:
        value = float(getattr(section, name, default))
    except (TypeError, ValueError):
        value = default
    setattr(section, name, max(low, min(high, value)))


def _is_power_of_two(value: int) -> bool:
    return value > 0 and (value & (value - 1)) == 0


def migrate_config(config: Config, loaded_version) -> None:
    """Upgrade older config structures to the current schema.
    Replaces missing values with defaults, clamps ranges and bumps version."""
    try:
        version = int(loaded_version) if loaded_version is not None else 0
    except (TypeError, ValueError):
        version = 0

    defaults = Config()

    if version < 1:
        # Pre-versioned files could carry nulls for any section value
        for section_name in ("audio", "pitch", "tone", "capture", "playback"):
            section = getattr(config, section_name)
            default_section = getattr(defaults, section_name)
            for key, default_value in vars(default_section).items():
                if key.endswith("device_index"):
                    continue
                if getattr(section, key, None) is None:
                    setattr(section, key, default_value)

    if getattr(config, "log_level", None) is None:
        config.log_level = defaults.log_level

    # Pitch range must stay ordered and inside audible voice range
    _clamped_float(config.pitch, "min_pitch_hz", MIN_PITCH_HZ, 20.0, 2000.0)
    _clamped_float(config.pitch, "max_pitch_hz", MAX_PITCH_HZ, 20.0, 2000.0)
    if config.pitch.max_pitch_hz <= config.pitch.min_pitch_hz:
        config.pitch.min_pitch_hz = MIN_PITCH_HZ
        config.pitch.max_pitch_hz = MAX_PITCH_HZ
    _clamped_float(config.pitch, "smoothing_weight", 0.4, 0.0, 1.0)

    _clamped_float(config.tone, "gain", 0.2, 0.0, 1.0)
    if config.tone.max_freq_hz <= config.tone.min_freq_hz:
        config.tone.min_freq_hz = MIN_TONE_HZ
        config.tone.max_freq_hz = MAX_TONE_HZ

    if not _is_power_of_two(int(config.audio.buffer_size)):
        log_event("WARN", "Config", "buffer_size must be a power of two, using default",
                  buffer_size=config.audio.buffer_size)
        config.audio.buffer_size = defaults.audio.buffer_size

    if int(config.capture.resample_target) < 1:
        config.capture.resample_target = defaults.capture.resample_target

    config.version = CURRENT_CONFIG_VERSION
