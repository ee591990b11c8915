"""
Fourier Drawings - Audio Engine
Microphone capture for voice drawing and a gliding sine tone for playback.
Uses sounddevice (PortAudio) streams with callbacks.
"""

import math
import threading
from concurrent.futures import Future, ThreadPoolExecutor

import numpy as np

from config import AudioConfig, ToneConfig
from logging_utils import log_event


def _default_backend():
    # Imported on first use; PortAudio loads with the module
    import sounddevice as sd
    return sd


def list_devices(backend=None) -> list[dict]:
    """Return available audio devices with their channel counts."""
    backend = backend or _default_backend()
    devices = []
    for i, d in enumerate(backend.query_devices()):
        devices.append({
            'index': i,
            'name': d['name'],
            'inputs': d['max_input_channels'],
            'outputs': d['max_output_channels'],
            'default_samplerate': d['default_samplerate'],
        })
    return devices


class MicrophoneCapture:
    """
    Capture device: keeps the latest ``buffer_size`` mono samples.

    The PortAudio callback writes into a ring buffer under a lock and
    ``poll()`` hands out a copy, so the frame loop never sees a buffer
    that is being written.
    """

    def __init__(self, config: AudioConfig, backend=None):
        self.config = config
        self._backend = backend or _default_backend()
        self.stream = None
        self.sample_rate = int(config.sample_rate)
        self._buffer = np.zeros(int(config.buffer_size), dtype=np.float32)
        self._lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None

    @property
    def running(self) -> bool:
        return self.stream is not None

    def acquire(self) -> bool:
        """Open and start the input stream. Returns False when the device is unavailable."""
        if self.stream is not None:
            return True

        try:
            stream = self._backend.InputStream(
                device=self.config.input_device_index,
                channels=self.config.channels,
                samplerate=self.config.sample_rate,
                dtype='float32',
                callback=self._audio_callback,
            )
            stream.start()
        except Exception as e:
            log_event("ERROR", "Capture", "Failed to open microphone", error=e)
            return False

        with self._lock:
            self._buffer.fill(0.0)
        self.sample_rate = int(getattr(stream, 'samplerate', self.config.sample_rate))
        self.stream = stream
        log_event("INFO", "Capture", "Microphone started",
                  sample_rate=self.sample_rate, buffer=len(self._buffer))
        return True

    def acquire_async(self) -> Future:
        """Acquire on a worker thread; the returned future resolves to the acquire() result."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="capture-acquire")
        return self._executor.submit(self.acquire)

    def _audio_callback(self, indata, frames, time_info, status):
        if status:
            log_event("DEBUG", "Capture", "Stream status", status=status)

        if indata.ndim > 1 and indata.shape[1] > 1:
            mono = np.mean(indata, axis=1)
        else:
            mono = indata.reshape(-1)

        size = len(self._buffer)
        count = len(mono)
        with self._lock:
            if count >= size:
                self._buffer[:] = mono[-size:]
            else:
                self._buffer[:-count] = self._buffer[count:]
                self._buffer[-count:] = mono

    def poll(self) -> np.ndarray:
        """Snapshot of the most recent samples."""
        with self._lock:
            return self._buffer.copy()

    def release(self) -> None:
        """Stop and close the input stream. Safe to call when never acquired."""
        stream = self.stream
        if stream is None:
            return
        self.stream = None
        try:
            stream.stop()
            stream.close()
        except Exception as e:
            log_event("WARN", "Capture", "Error while closing microphone", error=e)
        log_event("INFO", "Capture", "Microphone stopped")

    def close(self) -> None:
        self.release()
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None


class ToneOutput:
    """
    Output device: one sine oscillator.

    ``set_frequency`` glides exponentially toward the target, start and stop
    ramp the gain linearly over ``fade_ms``. After a stop has faded out the
    callback ends the stream, so an idle tone holds no device.
    """

    def __init__(self, audio_config: AudioConfig, tone_config: ToneConfig, backend=None):
        self.audio_config = audio_config
        self.tone_config = tone_config
        self._backend = backend or _default_backend()
        self.stream = None
        self.sample_rate = int(audio_config.sample_rate)
        self._lock = threading.Lock()
        self._phase = 0.0
        self._freq = float(tone_config.initial_freq_hz)
        self._target_freq = self._freq
        self._gain = 0.0
        self._target_gain = 0.0
        self._playing = False
        self._stream_finished = False
        # Bumped by start_tone; render drops state computed before a restart
        self._generation = 0

    @property
    def playing(self) -> bool:
        return self._playing

    @property
    def target_frequency(self) -> float:
        with self._lock:
            return self._target_freq

    def start_tone(self, initial_frequency_hz: float) -> bool:
        """Fade in a tone at ``initial_frequency_hz``. Returns False when no output device opens."""
        with self._lock:
            self._phase = 0.0
            self._freq = float(initial_frequency_hz)
            self._target_freq = self._freq
            self._gain = 0.0
            self._target_gain = float(self.tone_config.gain)
            self._playing = True
            self._generation += 1
            needs_stream = self.stream is None or self._stream_finished

        if needs_stream:
            self._close_stream()
            try:
                stream = self._backend.OutputStream(
                    device=self.audio_config.output_device_index,
                    channels=1,
                    samplerate=self.audio_config.sample_rate,
                    blocksize=self.audio_config.output_block_size,
                    dtype='float32',
                    callback=self._audio_callback,
                )
                with self._lock:
                    self._stream_finished = False
                stream.start()
            except Exception as e:
                log_event("ERROR", "Tone", "Failed to open output", error=e)
                with self._lock:
                    self._playing = False
                    self._target_gain = 0.0
                return False
            self.sample_rate = int(getattr(stream, 'samplerate', self.audio_config.sample_rate))
            self.stream = stream

        log_event("INFO", "Tone", "Tone started", freq_hz=f"{initial_frequency_hz:.1f}")
        return True

    def set_frequency(self, hz: float) -> None:
        """Glide toward ``hz``. Ignored when no tone is playing."""
        with self._lock:
            if self._playing:
                self._target_freq = float(hz)

    def stop_tone(self) -> None:
        """Fade out. Safe to call when no tone was started."""
        with self._lock:
            if not self._playing:
                return
            self._playing = False
            self._target_gain = 0.0
        log_event("INFO", "Tone", "Tone stopping", fade_ms=self.tone_config.fade_ms)

    def close(self) -> None:
        with self._lock:
            self._playing = False
            self._target_gain = 0.0
        self._close_stream()

    def _close_stream(self) -> None:
        stream = self.stream
        if stream is None:
            return
        self.stream = None
        try:
            stream.stop()
            stream.close()
        except Exception as e:
            log_event("WARN", "Tone", "Error while closing output", error=e)

    def render(self, frames: int) -> np.ndarray:
        """Produce the next ``frames`` samples and advance oscillator state."""
        cfg = self.tone_config
        sr = float(self.sample_rate)
        generation, phase, freq, target_freq, gain, target_gain = self._read_state()

        steps = np.arange(1, frames + 1, dtype=np.float64)

        # Exponential approach toward the target frequency
        tau = max(cfg.glide_time_constant_s, 1e-6)
        decay = math.exp(-1.0 / (sr * tau))
        freqs = target_freq + (freq - target_freq) * decay ** steps
        phases = phase + np.cumsum(2.0 * np.pi * freqs / sr)

        # Linear gain ramp over fade_ms
        fade_samples = max(1.0, cfg.fade_ms / 1000.0 * sr)
        ramp_step = max(cfg.gain, 1e-6) / fade_samples
        if target_gain >= gain:
            gains = np.minimum(target_gain, gain + ramp_step * steps)
        else:
            gains = np.maximum(target_gain, gain - ramp_step * steps)

        samples = (np.sin(phases) * gains).astype(np.float32)

        with self._lock:
            if frames and generation == self._generation:
                self._phase = float(phases[-1] % (2.0 * np.pi))
                self._freq = float(freqs[-1])
                self._gain = float(gains[-1])
        return samples

    def _read_state(self):
        with self._lock:
            return (self._generation, self._phase, self._freq,
                    self._target_freq, self._gain, self._target_gain)

    def _audio_callback(self, outdata, frames, time_info, status):
        if status:
            log_event("DEBUG", "Tone", "Stream status", status=status)
        outdata[:, 0] = self.render(frames)

        with self._lock:
            faded_out = not self._playing and self._gain <= 0.0
            if faded_out:
                self._stream_finished = True
        if faded_out:
            raise self._backend.CallbackStop()
