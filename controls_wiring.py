from dataclasses import dataclass

from config import Mode


@dataclass(frozen=True)
class ControlsUiState:
    record_text: str
    record_checked: bool
    draw_checked: bool
    mode_badge: str
    headline: str
    hint: str


# Single-key shortcuts -> session method names
KEY_ACTIONS = {
    "R": "toggle_recording",
    "C": "clear",
    "D": "reset_to_draw",
}

# Volume above this paints the level meter red
METER_HOT_LEVEL = 0.6


def record_button_text(mode: Mode) -> str:
    """Return Record button text for the current mode."""
    return "■ Stop" if mode is Mode.RECORD else "● Record"


def mode_badge_text(mode: Mode) -> str:
    return {Mode.DRAW: "DRAW", Mode.RECORD: "REC", Mode.ANIMATE: "PLAY"}[mode]


def controls_ui_state(mode: Mode, acquisition_pending: bool = False) -> ControlsUiState:
    """Return button and banner state for the current mode."""
    if mode is Mode.RECORD:
        return ControlsUiState(
            record_text=record_button_text(mode),
            record_checked=True,
            draw_checked=False,
            mode_badge=mode_badge_text(mode),
            headline="Sing or hum!",
            hint="Click Stop when done",
        )

    if mode is Mode.ANIMATE:
        return ControlsUiState(
            record_text=record_button_text(mode),
            record_checked=False,
            draw_checked=False,
            mode_badge=mode_badge_text(mode),
            headline="",
            hint="Playing - Click Draw to restart",
        )

    if acquisition_pending:
        return ControlsUiState(
            record_text="■ Stop",
            record_checked=True,
            draw_checked=True,
            mode_badge=mode_badge_text(mode),
            headline="Waiting for microphone...",
            hint="Allow microphone access to record",
        )

    return ControlsUiState(
        record_text=record_button_text(mode),
        record_checked=False,
        draw_checked=True,
        mode_badge=mode_badge_text(mode),
        headline="Draw something",
        hint="Drag to draw, or click Record for voice input",
    )


def dispatch_key(session, key_text: str) -> bool:
    """Run the session action bound to a key. Returns True when the key was handled."""
    action = KEY_ACTIONS.get((key_text or "").strip().upper())
    if action is None:
        return False
    getattr(session, action)()
    return True


def meter_is_hot(volume: float) -> bool:
    return volume > METER_HOT_LEVEL


def advance_hue(hue: float, step: float = 0.1) -> float:
    """Slow colour drift applied once per frame."""
    return (hue + step) % 360.0
