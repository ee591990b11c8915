import math
import unittest
from concurrent.futures import Future
from unittest import mock

import numpy as np

from config import Config, Mode
from pitch_tracker import PitchEstimate
from session import CanvasGeometry, SessionStateMachine


def _voiced_buffer(freq=220.0, count=2048, sample_rate=44100):
    t = np.arange(count) / sample_rate
    return (0.5 * np.sin(2 * np.pi * freq * t)).astype(np.float32)


class FakeCapture:
    def __init__(self, acquire_result=True, auto_resolve=True, buffer=None):
        self.sample_rate = 44100
        self.acquire_result = acquire_result
        self.auto_resolve = auto_resolve
        self.buffer = _voiced_buffer() if buffer is None else buffer
        self.futures = []
        self.release_calls = 0
        self.closed = False

    def acquire_async(self):
        future = Future()
        self.futures.append(future)
        if self.auto_resolve:
            self.resolve(future)
        return future

    def resolve(self, future):
        if isinstance(self.acquire_result, Exception):
            future.set_exception(self.acquire_result)
        else:
            future.set_result(self.acquire_result)

    def poll(self):
        return self.buffer.copy()

    def release(self):
        self.release_calls += 1

    def close(self):
        self.closed = True


class FakeOutput:
    def __init__(self):
        self.started = []
        self.frequencies = []
        self.stop_calls = 0
        self.closed = False

    def start_tone(self, hz):
        self.started.append(hz)
        return True

    def set_frequency(self, hz):
        self.frequencies.append(hz)

    def stop_tone(self):
        self.stop_calls += 1

    def close(self):
        self.closed = True


def _session(capture=None, width=400.0, height=400.0):
    capture = capture or FakeCapture()
    output = FakeOutput()
    session = SessionStateMachine(
        Config(), capture, output, CanvasGeometry(width=width, height=height)
    )
    return session, capture, output


def _start_recording(session):
    session.request_recording()
    session.tick()


def _draw(session, count, radius=80.0):
    session.begin_stroke()
    for i in range(count):
        angle = 2 * math.pi * i / count
        session.add_stroke_point(200.0 + radius * math.cos(angle), 200.0 + radius * math.sin(angle))
    session.finish_stroke()


class TestAcquisition(unittest.TestCase):
    def test_starts_in_draw(self):
        session, _, _ = _session()
        self.assertIs(session.mode, Mode.DRAW)
        self.assertIs(session.tick().mode, Mode.DRAW)

    def test_pending_request_stays_in_draw(self):
        session, capture, _ = _session(FakeCapture(auto_resolve=False))

        self.assertTrue(session.request_recording())
        snapshot = session.tick()

        self.assertIs(snapshot.mode, Mode.DRAW)
        self.assertTrue(snapshot.acquisition_pending)

        capture.resolve(capture.futures[0])
        snapshot = session.tick()

        self.assertIs(snapshot.mode, Mode.RECORD)
        self.assertFalse(session.acquisition_pending)

    def test_second_request_while_pending_is_ignored(self):
        session, capture, _ = _session(FakeCapture(auto_resolve=False))
        session.request_recording()
        self.assertFalse(session.request_recording())
        self.assertEqual(len(capture.futures), 1)

    def test_unavailable_microphone_stays_in_draw(self):
        session, _, _ = _session(FakeCapture(acquire_result=False))
        _start_recording(session)

        self.assertIs(session.mode, Mode.DRAW)
        self.assertFalse(session.acquisition_pending)

    def test_acquire_error_stays_in_draw(self):
        session, _, _ = _session(FakeCapture(acquire_result=RuntimeError("denied")))
        _start_recording(session)

        self.assertIs(session.mode, Mode.DRAW)

    def test_cancelled_request_releases_late_device(self):
        session, capture, _ = _session(FakeCapture(auto_resolve=False))
        session.request_recording()

        session.reset_to_draw()
        released_before = capture.release_calls
        capture.resolve(capture.futures[0])

        self.assertEqual(capture.release_calls, released_before + 1)
        session.tick()
        self.assertIs(session.mode, Mode.DRAW)

    def test_toggle_while_pending_cancels_request(self):
        session, capture, _ = _session(FakeCapture(auto_resolve=False))
        session.toggle_recording()
        self.assertTrue(session.acquisition_pending)

        session.toggle_recording()

        self.assertFalse(session.acquisition_pending)
        capture.resolve(capture.futures[0])
        self.assertEqual(capture.release_calls, 1)
        session.tick()
        self.assertIs(session.mode, Mode.DRAW)

        # A fresh toggle asks again
        session.toggle_recording()
        self.assertEqual(len(capture.futures), 2)

    def test_request_clears_previous_drawing_and_tone(self):
        session, _, output = _session()
        session.add_stroke_point(10.0, 10.0)

        session.request_recording()

        self.assertEqual(session.drawing, ())
        self.assertEqual(output.stop_calls, 1)


class TestRecording(unittest.TestCase):
    def test_voiced_ticks_append_points(self):
        session, _, _ = _session()
        _start_recording(session)

        snapshot = session.tick()

        self.assertIs(snapshot.mode, Mode.RECORD)
        self.assertEqual(len(session.drawing), 1)
        self.assertAlmostEqual(snapshot.record.pitch, 220.0, delta=5.0)
        self.assertEqual(snapshot.record.volume, 1.0)
        # First point sits at the left margin, relative to the canvas centre
        self.assertEqual(session.drawing[0].x, 30.0 - 200.0)
        self.assertEqual(session.record_x, 32.0)

    def test_silent_ticks_append_nothing(self):
        session, _, _ = _session(FakeCapture(buffer=np.zeros(2048, dtype=np.float32)))
        _start_recording(session)

        for _ in range(5):
            snapshot = session.tick()

        self.assertEqual(session.drawing, ())
        self.assertIsNone(snapshot.record.pitch)
        self.assertEqual(session.record_x, 40.0)

    def test_ten_points_returns_to_draw(self):
        session, capture, output = _session()
        _start_recording(session)
        for _ in range(10):
            session.tick()

        session.stop_recording()

        self.assertIs(session.mode, Mode.DRAW)
        self.assertEqual(session.drawing, ())
        self.assertEqual(output.started, [])
        self.assertEqual(capture.release_calls, 1)

    def test_eleven_points_animates(self):
        session, capture, output = _session()
        _start_recording(session)
        for _ in range(11):
            session.tick()

        session.toggle_recording()

        self.assertIs(session.mode, Mode.ANIMATE)
        self.assertEqual(session.decomposed.frames_per_revolution, 11)
        self.assertEqual(output.started, [200.0])
        self.assertEqual(capture.release_calls, 1)

    def test_reaching_right_margin_stops_recording(self):
        session, capture, _ = _session(width=100.0)
        _start_recording(session)

        for _ in range(20):
            session.tick()
        self.assertIs(session.mode, Mode.RECORD)

        session.tick()

        self.assertIs(session.mode, Mode.ANIMATE)
        self.assertEqual(len(session.drawing), 21)
        self.assertEqual(capture.release_calls, 1)

    def test_compact_canvas_uses_smaller_step(self):
        session, _, _ = _session()
        session.resize(400, 400, compact=True)
        _start_recording(session)
        session.tick()
        self.assertEqual(session.record_x, 31.5)

    def test_pointer_press_stops_recording(self):
        session, _, _ = _session()
        _start_recording(session)
        for _ in range(12):
            session.tick()

        session.begin_stroke()

        self.assertIs(session.mode, Mode.ANIMATE)

    def test_strokes_are_ignored_while_recording(self):
        session, _, _ = _session(FakeCapture(buffer=np.zeros(2048, dtype=np.float32)))
        _start_recording(session)
        session.add_stroke_point(1.0, 1.0)
        self.assertEqual(session.drawing, ())


class TestFreehand(unittest.TestCase):
    def test_points_are_stored_relative_to_centre(self):
        session, _, _ = _session()
        session.add_stroke_point(250.0, 150.0)
        self.assertEqual((session.drawing[0].x, session.drawing[0].y), (50.0, -50.0))

    def test_short_stroke_stays_in_draw(self):
        session, _, output = _session()
        _draw(session, 10)

        self.assertIs(session.mode, Mode.DRAW)
        self.assertEqual(len(session.drawing), 10)
        self.assertEqual(output.started, [])

    def test_long_stroke_animates(self):
        session, _, output = _session()
        _draw(session, 40)

        self.assertIs(session.mode, Mode.ANIMATE)
        self.assertEqual(session.playback.frames_per_revolution, 40)
        self.assertEqual(output.started, [200.0])

    def test_long_stroke_is_resampled(self):
        session, _, _ = _session()
        _draw(session, 250)
        self.assertEqual(session.decomposed.frames_per_revolution, 125)


class TestAnimation(unittest.TestCase):
    def test_playback_loops_after_n_frames(self):
        session, _, _ = _session()
        _draw(session, 20)

        for expected in range(1, 20):
            snapshot = session.tick()
            self.assertEqual(len(snapshot.animation.traced_path), expected)
        self.assertEqual(len(session.playback.traced_path), 19)

        snapshot = session.tick()
        self.assertEqual(len(snapshot.animation.traced_path), 20)
        self.assertEqual(session.playback.frame, 0)
        self.assertEqual(session.playback.traced_path, [])

        snapshot = session.tick()
        self.assertEqual(snapshot.animation.time, 0.0)
        self.assertEqual(len(snapshot.animation.traced_path), 1)

    def test_circle_is_retraced_around_chain_anchors(self):
        session, _, _ = _session()
        session.begin_stroke()
        for i in range(100):
            angle = 2 * math.pi * i / 100
            session.add_stroke_point(200.0 + 50.0 * math.cos(angle), 200.0 + 50.0 * math.sin(angle))
        session.finish_stroke()

        for _ in range(100):
            frame = session.tick().animation
            dx = frame.point.x - frame.x_center.x
            dy = frame.point.y - frame.y_center.y
            self.assertAlmostEqual(math.hypot(dx, dy), 50.0, places=6)

    def test_chain_anchors_follow_layout(self):
        session, _, _ = _session()
        _draw(session, 20)

        frame = session.tick().animation

        self.assertEqual((frame.x_center.x, frame.x_center.y), (200.0, 100.0))
        self.assertEqual((frame.y_center.x, frame.y_center.y), (80.0, 200.0))
        self.assertEqual(len(list(frame.x_epicycles())), 20)
        self.assertEqual(list(frame.y_epicycles())[-1].tip, frame.y_tip)

    def test_tone_follows_traced_height(self):
        session, _, output = _session()
        _draw(session, 20)

        for _ in range(20):
            frame = session.tick().animation
            self.assertEqual(output.frequencies[-1], frame.frequency_hz)
            self.assertGreaterEqual(frame.frequency_hz, 100.0)
            self.assertLessEqual(frame.frequency_hz, 400.0)

    def test_pointer_press_returns_to_draw(self):
        session, _, output = _session()
        _draw(session, 20)

        session.begin_stroke()

        self.assertIs(session.mode, Mode.DRAW)
        self.assertEqual(session.drawing, ())
        self.assertIsNone(session.decomposed)
        self.assertGreaterEqual(output.stop_calls, 1)

    def test_record_toggle_ignored_while_animating(self):
        session, capture, _ = _session()
        _draw(session, 20)
        session.toggle_recording()
        self.assertIs(session.mode, Mode.ANIMATE)
        self.assertEqual(capture.futures, [])


class TestClearAndReset(unittest.TestCase):
    def test_clear_is_idempotent(self):
        session, _, output = _session()
        _draw(session, 20)

        session.clear()
        session.clear()

        self.assertIs(session.mode, Mode.DRAW)
        self.assertEqual(session.drawing, ())
        self.assertIsNone(session.playback)
        self.assertEqual(output.stop_calls, 1)

    def test_clear_while_recording_releases_microphone(self):
        session, capture, _ = _session()
        _start_recording(session)

        session.clear()

        self.assertIs(session.mode, Mode.DRAW)
        self.assertEqual(capture.release_calls, 1)

    def test_reset_to_draw_is_idempotent(self):
        session, _, _ = _session()
        _draw(session, 20)

        session.reset_to_draw()
        session.reset_to_draw()

        self.assertIs(session.mode, Mode.DRAW)
        self.assertIsNone(session.decomposed)

    def test_shutdown_closes_devices(self):
        session, capture, output = _session()
        session.shutdown()
        self.assertTrue(output.closed)
        self.assertTrue(capture.closed)


class TestCaptureSummary(unittest.TestCase):
    def test_summary_logs_ranges(self):
        session, _, _ = _session()
        session._update_capture_stats(PitchEstimate(frequency=220.0, volume=0.2))
        session._update_capture_stats(PitchEstimate(frequency=None, volume=0.1))
        session._update_capture_stats(PitchEstimate(frequency=330.0, volume=0.3))

        with mock.patch("session.log_event") as log_event_mock:
            session._log_capture_summary()

        self.assertTrue(log_event_mock.called)
        _, kwargs = log_event_mock.call_args
        self.assertEqual(kwargs["polls"], 3)
        self.assertEqual(kwargs["voiced"], 2)
        self.assertEqual(kwargs["volume_min"], "0.1000")
        self.assertEqual(kwargs["volume_max"], "0.3000")
        self.assertEqual(kwargs["volume_mean"], "0.2000")
        self.assertEqual(kwargs["pitch_min"], "220.0")
        self.assertEqual(kwargs["pitch_max"], "330.0")

    def test_summary_without_polls_does_not_log(self):
        session, _, _ = _session()

        with mock.patch("session.log_event") as log_event_mock:
            session._log_capture_summary()

        log_event_mock.assert_not_called()

    def test_stop_recording_logs_summary(self):
        session, _, _ = _session()
        _start_recording(session)
        for _ in range(3):
            session.tick()

        with mock.patch("session.log_event") as log_event_mock:
            session.stop_recording()

        messages = [c.args[2] for c in log_event_mock.call_args_list]
        self.assertIn("Capture summary", messages)


if __name__ == "__main__":
    unittest.main()
