#!/usr/bin/env python3
"""
Fourier Drawings - draw or sing a curve, replay it with epicycles

Freehand strokes or a sung pitch trace are decomposed into per-axis
harmonics and redrawn by two chains of rotating circles while a sine
tone follows the traced height.
"""

import argparse
import cProfile
import sys
import time

# Import ONLY PyQt6 essentials first (fast)
t_pyqt = time.perf_counter()
from PyQt6.QtWidgets import QApplication

print(
    f"[Startup] GUI framework loaded (+{(time.perf_counter() - t_pyqt) * 1000:.0f} ms). "
    "Initializing application...",
    flush=True,
)


def list_audio_devices() -> int:
    """Print the audio devices sounddevice can see."""
    from audio_engine import list_devices

    try:
        devices = list_devices()
    except Exception as e:
        print(f"[Startup] Could not query audio devices: {e}", flush=True)
        return 1

    for d in devices:
        print(
            f"  [{d['index']:>2}] {d['name']}  "
            f"(in: {d['inputs']}, out: {d['outputs']}, {d['default_samplerate']:.0f} Hz)"
        )
    return 0


def run_app(app_argv: list[str], log_level: str | None = None) -> int:
    app = QApplication(app_argv)
    app.setStyle("Fusion")

    print("[Startup] Loading audio engine and drawing modules...", flush=True)
    t_main = time.perf_counter()

    # Import heavy modules (numpy, sounddevice, pyqtgraph) after the Qt app exists
    from main import FourierDrawingsWindow
    from config_persistence import load_config

    print(
        f"[Startup] Loaded main module (+{(time.perf_counter() - t_main) * 1000:.0f} ms)",
        flush=True,
    )

    config = load_config()
    if log_level:
        config.log_level = log_level.upper()

    print("[Startup] Creating main window...", flush=True)
    window = FourierDrawingsWindow(config)

    print("\nInitialization complete. Starting GUI...\n", flush=True)
    window.show()

    return app.exec()


def main() -> None:
    parser = argparse.ArgumentParser(description="Run Fourier Drawings")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARN", "WARNING", "ERROR"],
        type=str.upper,
        default=None,
        help="Override the saved log level for this run",
    )
    parser.add_argument(
        "--list-devices",
        action="store_true",
        help="Print available audio devices and exit",
    )
    parser.add_argument(
        "--profile",
        action="store_true",
        help="Enable cProfile and save stats to --profile-out",
    )
    parser.add_argument(
        "--profile-out",
        default="profile.prof",
        help="Path to save cProfile stats (default: profile.prof)",
    )
    args = parser.parse_args()

    if args.list_devices:
        sys.exit(list_audio_devices())

    # Keep Qt argument list clean; avoid passing our flags downstream
    app_argv = [sys.argv[0]]

    if args.profile:
        profiler = cProfile.Profile()
        profiler.enable()
        exit_code = run_app(app_argv, args.log_level)
        profiler.disable()
        profiler.dump_stats(args.profile_out)
    else:
        exit_code = run_app(app_argv, args.log_level)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
