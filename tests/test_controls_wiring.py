import unittest

from config import Mode
from controls_wiring import (
    KEY_ACTIONS,
    advance_hue,
    controls_ui_state,
    dispatch_key,
    meter_is_hot,
    mode_badge_text,
    record_button_text,
)


class DummySession:
    def __init__(self):
        self.calls = []

    def toggle_recording(self):
        self.calls.append("toggle_recording")

    def clear(self):
        self.calls.append("clear")

    def reset_to_draw(self):
        self.calls.append("reset_to_draw")


class TestControlsWiring(unittest.TestCase):
    def test_record_button_text(self):
        self.assertEqual(record_button_text(Mode.RECORD), "■ Stop")
        self.assertEqual(record_button_text(Mode.DRAW), "● Record")
        self.assertEqual(record_button_text(Mode.ANIMATE), "● Record")

    def test_mode_badge_text(self):
        self.assertEqual(mode_badge_text(Mode.DRAW), "DRAW")
        self.assertEqual(mode_badge_text(Mode.RECORD), "REC")
        self.assertEqual(mode_badge_text(Mode.ANIMATE), "PLAY")

    def test_ui_state_draw(self):
        state = controls_ui_state(Mode.DRAW)
        self.assertEqual(state.headline, "Draw something")
        self.assertTrue(state.draw_checked)
        self.assertFalse(state.record_checked)

    def test_ui_state_waiting_for_microphone(self):
        state = controls_ui_state(Mode.DRAW, acquisition_pending=True)
        self.assertEqual(state.headline, "Waiting for microphone...")
        self.assertEqual(state.record_text, "■ Stop")
        self.assertTrue(state.record_checked)

    def test_ui_state_record(self):
        state = controls_ui_state(Mode.RECORD)
        self.assertEqual(state.headline, "Sing or hum!")
        self.assertEqual(state.record_text, "■ Stop")
        self.assertTrue(state.record_checked)
        self.assertFalse(state.draw_checked)

    def test_ui_state_animate(self):
        state = controls_ui_state(Mode.ANIMATE)
        self.assertEqual(state.hint, "Playing - Click Draw to restart")
        self.assertFalse(state.record_checked)
        self.assertFalse(state.draw_checked)

    def test_dispatch_key_is_case_insensitive(self):
        session = DummySession()
        self.assertTrue(dispatch_key(session, "r"))
        self.assertTrue(dispatch_key(session, "C"))
        self.assertTrue(dispatch_key(session, "d"))
        self.assertEqual(session.calls, ["toggle_recording", "clear", "reset_to_draw"])

    def test_dispatch_unbound_key(self):
        session = DummySession()
        self.assertFalse(dispatch_key(session, "x"))
        self.assertFalse(dispatch_key(session, ""))
        self.assertEqual(session.calls, [])

    def test_key_actions_cover_three_keys(self):
        self.assertEqual(sorted(KEY_ACTIONS), ["C", "D", "R"])

    def test_meter_is_hot(self):
        self.assertFalse(meter_is_hot(0.6))
        self.assertTrue(meter_is_hot(0.61))

    def test_advance_hue_wraps(self):
        self.assertAlmostEqual(advance_hue(10.0), 10.1)
        self.assertAlmostEqual(advance_hue(359.95), 0.05, places=6)


if __name__ == "__main__":
    unittest.main()
