"""
Fourier Drawings - Session State Machine
Owns the mode, the captured path, the decomposed signal and the playback
clock. Every mutation goes through a transition method; the frame loop
calls tick() once per frame.
"""

from concurrent.futures import Future
from dataclasses import dataclass
from typing import Iterator

from config import Config, Mode
from epicycles import QUARTER_TURN, Epicycle, PlaybackState, advance, combine, iter_epicycles
from harmonics import DecomposedSignal, HarmonicSet, decompose_path
from logging_utils import log_event
from path_sampler import Point, has_enough_points, resample
from pitch_tracker import PitchEstimate, PitchTracker
from signal_mapper import PitchSmoother, pitch_to_vertical_position, vertical_position_to_frequency


@dataclass(frozen=True)
class CanvasGeometry:
    """Drawable area supplied by the host window"""
    width: float = 880.0
    height: float = 760.0
    compact: bool = False     # Narrow layout: smaller record step and chain margin


@dataclass(frozen=True)
class RecordFrame:
    """Voice capture progress for one frame"""
    progress: float           # Fraction of the horizontal sweep covered (0.0-1.0)
    volume: float             # Level meter value (0.0-1.0)
    pitch: float | None       # Smoothed pitch appended this frame, if any


@dataclass(frozen=True)
class AnimationFrame:
    """Playback state for one frame; chains are walked lazily on request."""
    time: float
    x_center: Point
    y_center: Point
    x_set: HarmonicSet
    y_set: HarmonicSet
    x_tip: Point
    y_tip: Point
    point: Point
    traced_path: tuple[Point, ...]
    frequency_hz: float

    def x_epicycles(self) -> Iterator[Epicycle]:
        return iter_epicycles(self.x_center, 0.0, self.time, self.x_set)

    def y_epicycles(self) -> Iterator[Epicycle]:
        return iter_epicycles(self.y_center, QUARTER_TURN, self.time, self.y_set)


@dataclass(frozen=True)
class FrameSnapshot:
    """Read-only view handed to the renderer after each tick"""
    mode: Mode
    drawing: tuple[Point, ...]
    acquisition_pending: bool = False
    record: RecordFrame | None = None
    animation: AnimationFrame | None = None


class SessionStateMachine:
    """
    Draw -> Record -> Animate lifecycle.

    ``capture`` provides acquire_async() / poll() / release() and a
    ``sample_rate``; ``output`` provides start_tone() / set_frequency() /
    stop_tone() / close().
    """

    def __init__(self, config: Config, capture, output, geometry: CanvasGeometry | None = None):
        self.config = config
        self.capture = capture
        self.output = output
        self.geometry = geometry or CanvasGeometry()

        self._mode = Mode.DRAW
        self._drawing: list[Point] = []
        self._decomposed: DecomposedSignal | None = None
        self._playback: PlaybackState | None = None

        self._pending_acquire: Future | None = None
        self._tracker: PitchTracker | None = None
        self._smoother = PitchSmoother(config.pitch.smoothing_weight)
        self._record_x = config.capture.record_margin
        self._volume = 0.0

        self._reset_capture_stats()

        self._tick_handlers = {
            Mode.DRAW: self._tick_draw,
            Mode.RECORD: self._tick_record,
            Mode.ANIMATE: self._tick_animate,
        }

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------
    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def drawing(self) -> tuple[Point, ...]:
        return tuple(self._drawing)

    @property
    def decomposed(self) -> DecomposedSignal | None:
        return self._decomposed

    @property
    def playback(self) -> PlaybackState | None:
        return self._playback

    @property
    def acquisition_pending(self) -> bool:
        return self._pending_acquire is not None

    @property
    def record_x(self) -> float:
        return self._record_x

    @property
    def progress(self) -> float:
        margin = self.config.capture.record_margin
        span = self.geometry.width - 2.0 * margin
        if span <= 0:
            return 1.0
        return max(0.0, min(1.0, (self._record_x - margin) / span))

    @property
    def volume(self) -> float:
        return self._volume

    def resize(self, width: float, height: float, compact: bool = False) -> None:
        self.geometry = CanvasGeometry(width=float(width), height=float(height), compact=compact)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def _set_mode(self, mode: Mode) -> None:
        if mode is self._mode:
            return
        log_event("INFO", "Session", "Mode changed", old=self._mode.name, new=mode.name)
        self._mode = mode

    def request_recording(self) -> bool:
        """Start acquiring the microphone. The mode stays DRAW until it resolves."""
        if self._mode is not Mode.DRAW or self._pending_acquire is not None:
            return False

        self.output.stop_tone()
        self._drawing.clear()
        self._decomposed = None
        self._playback = None
        self._smoother.reset()
        self._record_x = self.config.capture.record_margin
        self._volume = 0.0
        self._reset_capture_stats()

        self._pending_acquire = self.capture.acquire_async()
        log_event("INFO", "Session", "Microphone requested")
        return True

    def toggle_recording(self) -> None:
        """Record from DRAW; stop while recording or while the microphone request is pending."""
        if self._mode is Mode.DRAW and self._pending_acquire is not None:
            self._cancel_pending_acquire()
        elif self._mode is Mode.DRAW:
            self.request_recording()
        elif self._mode is Mode.RECORD:
            self.stop_recording()

    def stop_recording(self) -> None:
        """Release the microphone and animate the capture, or drop it when too short."""
        if self._mode is not Mode.RECORD:
            return

        self.capture.release()
        self._tracker = None
        self._log_capture_summary()

        if has_enough_points(self._drawing, self.config.capture.min_points):
            self._start_animation()
        else:
            log_event("INFO", "Session", "Not enough points captured, back to draw",
                      points=len(self._drawing))
            self._drawing.clear()
            self._set_mode(Mode.DRAW)

    def begin_stroke(self) -> None:
        """Pointer pressed on the canvas."""
        if self._mode is Mode.ANIMATE:
            self.reset_to_draw()
        elif self._mode is Mode.RECORD:
            self.stop_recording()

    def add_stroke_point(self, x: float, y: float) -> None:
        """Pointer dragged to canvas pixel (x, y)."""
        if self._mode is not Mode.DRAW or self._pending_acquire is not None:
            return
        self._drawing.append(Point(x - self.geometry.width / 2.0, y - self.geometry.height / 2.0))

    def finish_stroke(self) -> None:
        """Pointer released: animate once the freehand drawing is long enough."""
        if self._mode is not Mode.DRAW or self._pending_acquire is not None:
            return
        if has_enough_points(self._drawing, self.config.capture.min_points):
            self._start_animation()

    def clear(self) -> None:
        """Drop the drawing and playback; active devices stop and the mode returns to DRAW."""
        self._cancel_pending_acquire()
        self._drawing.clear()
        if self._mode is Mode.ANIMATE:
            self.output.stop_tone()
        elif self._mode is Mode.RECORD:
            self.capture.release()
            self._tracker = None
        self._decomposed = None
        self._playback = None
        self._set_mode(Mode.DRAW)

    def reset_to_draw(self) -> None:
        """Stop everything. Idempotent."""
        self._cancel_pending_acquire()
        self.output.stop_tone()
        self.capture.release()
        self._tracker = None
        self._drawing.clear()
        self._decomposed = None
        self._playback = None
        self._set_mode(Mode.DRAW)

    def shutdown(self) -> None:
        self.reset_to_draw()
        self.output.close()
        close = getattr(self.capture, 'close', None)
        if callable(close):
            close()

    def _start_animation(self) -> None:
        capture_cfg = self.config.capture
        samples = resample(self._drawing, capture_cfg.resample_target)
        self._decomposed = decompose_path(samples)
        self._playback = PlaybackState(frames_per_revolution=self._decomposed.frames_per_revolution)
        log_event("INFO", "Session", "Drawing decomposed",
                  raw_points=len(self._drawing), harmonics=len(samples))
        self._set_mode(Mode.ANIMATE)
        self.output.start_tone(self.config.tone.initial_freq_hz)

    def _cancel_pending_acquire(self) -> None:
        future = self._pending_acquire
        if future is None:
            return
        self._pending_acquire = None
        future.add_done_callback(self._release_if_acquired)
        log_event("INFO", "Session", "Microphone request cancelled")

    def _release_if_acquired(self, future: Future) -> None:
        if future.cancelled() or future.exception() is not None:
            return
        if future.result():
            self.capture.release()

    def _resolve_pending_acquire(self) -> None:
        future = self._pending_acquire
        if future is None or not future.done():
            return
        self._pending_acquire = None

        try:
            acquired = bool(future.result())
        except Exception as e:
            log_event("ERROR", "Session", "Microphone request failed", error=e)
            acquired = False

        if not acquired:
            log_event("WARN", "Session", "Microphone unavailable, staying in draw mode")
            return

        self._tracker = PitchTracker(self.capture.sample_rate, self.config.pitch)
        self._set_mode(Mode.RECORD)

    # ------------------------------------------------------------------
    # Frame loop
    # ------------------------------------------------------------------
    def tick(self) -> FrameSnapshot:
        """One unit of work for the current mode."""
        return self._tick_handlers[self._mode]()

    def _tick_draw(self) -> FrameSnapshot:
        self._resolve_pending_acquire()
        if self._mode is Mode.RECORD:
            return self._snapshot(record=RecordFrame(progress=0.0, volume=0.0, pitch=None))
        return self._snapshot()

    def _tick_record(self) -> FrameSnapshot:
        geo = self.geometry
        capture_cfg = self.config.capture
        pitch_cfg = self.config.pitch

        buffer = self.capture.poll()
        estimate = self._tracker.analyse(buffer)
        self._volume = estimate.volume
        self._update_capture_stats(estimate)

        pitch = None
        if estimate.frequency is not None:
            pitch = self._smoother.update(estimate.frequency)
            y = pitch_to_vertical_position(
                pitch,
                geo.height,
                min_pitch_hz=pitch_cfg.min_pitch_hz,
                max_pitch_hz=pitch_cfg.max_pitch_hz,
                band_top=capture_cfg.band_top,
                band_span=capture_cfg.band_span,
            )
            self._drawing.append(Point(self._record_x - geo.width / 2.0, y - geo.height / 2.0))

        frame = RecordFrame(progress=self.progress, volume=estimate.volume, pitch=pitch)

        step = capture_cfg.record_step_compact if geo.compact else capture_cfg.record_step
        self._record_x += step
        if self._record_x > geo.width - capture_cfg.record_margin:
            log_event("INFO", "Session", "Reached end of canvas, stopping capture")
            self.stop_recording()

        return self._snapshot(record=frame)

    def _tick_animate(self) -> FrameSnapshot:
        geo = self.geometry
        signal = self._decomposed
        playback = self._playback
        playback_cfg = self.config.playback
        tone_cfg = self.config.tone

        margin = playback_cfg.margin_compact if geo.compact else playback_cfg.margin
        x_center = Point(geo.width / 2.0, margin + 20.0)
        y_center = Point(margin, geo.height / 2.0)
        time = playback.elapsed_angle

        x_tip = advance(x_center, 0.0, time, signal.x_set)
        y_tip = advance(y_center, QUARTER_TURN, time, signal.y_set)
        point = combine(x_tip, y_tip)
        playback.record(point)

        frequency = vertical_position_to_frequency(
            point.y,
            geo.height,
            min_freq_hz=tone_cfg.min_freq_hz,
            max_freq_hz=tone_cfg.max_freq_hz,
        )
        self.output.set_frequency(frequency)

        frame = AnimationFrame(
            time=time,
            x_center=x_center,
            y_center=y_center,
            x_set=signal.x_set,
            y_set=signal.y_set,
            x_tip=x_tip,
            y_tip=y_tip,
            point=point,
            traced_path=tuple(playback.traced_path),
            frequency_hz=frequency,
        )
        if playback.step():
            log_event("DEBUG", "Playback", "Revolution complete, path cleared")
        return self._snapshot(animation=frame)

    def _snapshot(self, record: RecordFrame | None = None,
                  animation: AnimationFrame | None = None) -> FrameSnapshot:
        return FrameSnapshot(
            mode=self._mode,
            drawing=tuple(self._drawing),
            acquisition_pending=self._pending_acquire is not None,
            record=record,
            animation=animation,
        )

    # ------------------------------------------------------------------
    # Capture statistics
    # ------------------------------------------------------------------
    def _reset_capture_stats(self) -> None:
        self._stats_polls = 0
        self._stats_voiced = 0
        self._stats_volume_min: float | None = None
        self._stats_volume_max: float | None = None
        self._stats_volume_sum = 0.0
        self._stats_pitch_min: float | None = None
        self._stats_pitch_max: float | None = None

    def _update_capture_stats(self, estimate: PitchEstimate) -> None:
        self._stats_polls += 1
        volume = estimate.volume
        self._stats_volume_sum += volume
        if self._stats_volume_min is None or volume < self._stats_volume_min:
            self._stats_volume_min = volume
        if self._stats_volume_max is None or volume > self._stats_volume_max:
            self._stats_volume_max = volume

        pitch = estimate.frequency
        if pitch is None:
            return
        self._stats_voiced += 1
        if self._stats_pitch_min is None or pitch < self._stats_pitch_min:
            self._stats_pitch_min = pitch
        if self._stats_pitch_max is None or pitch > self._stats_pitch_max:
            self._stats_pitch_max = pitch

    def _log_capture_summary(self) -> None:
        polls = self._stats_polls
        if polls <= 0:
            return
        log_event(
            "INFO",
            "Capture",
            "Capture summary",
            polls=polls,
            voiced=self._stats_voiced,
            points=len(self._drawing),
            volume_min=f"{float(self._stats_volume_min or 0.0):.4f}",
            volume_max=f"{float(self._stats_volume_max or 0.0):.4f}",
            volume_mean=f"{self._stats_volume_sum / polls:.4f}",
            pitch_min=f"{float(self._stats_pitch_min or 0.0):.1f}",
            pitch_max=f"{float(self._stats_pitch_max or 0.0):.1f}",
        )
