"""
Fourier Drawings - Main Application
Qt GUI: freehand / voice drawing, epicycle playback and harmonic spectrum.
"""

import math
import random
import sys

from PyQt6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QLabel, QPushButton, QComboBox, QGroupBox, QSizePolicy,
)
from PyQt6.QtCore import Qt, QTimer, QPointF, QRectF
from PyQt6.QtGui import QColor, QPainter, QPen, QBrush, QFont, QPolygonF

# PyQtGraph for the harmonic amplitude plot
import pyqtgraph as pg
pg.setConfigOptions(antialias=True, useOpenGL=False)

from audio_engine import MicrophoneCapture, ToneOutput, list_devices
from close_persist_wiring import persist_runtime_ui_to_config
from config import Config, Mode
from config_persistence import load_config, save_config
from controls_wiring import advance_hue, controls_ui_state, dispatch_key, meter_is_hot
from harmonics import DecomposedSignal
from logging_utils import log_event, set_log_level
from session import FrameSnapshot, SessionStateMachine


def hsb(hue: float, sat: float, bri: float, alpha: float = 100.0) -> QColor:
    """Colour from hue 0-360 and saturation/brightness/alpha 0-100."""
    return QColor.fromHsvF((hue % 360.0) / 360.0, sat / 100.0, bri / 100.0, alpha / 100.0)


def _polygon(points, dx: float = 0.0, dy: float = 0.0) -> QPolygonF:
    return QPolygonF([QPointF(p.x + dx, p.y + dy) for p in points])


class EpicycleCanvas(QWidget):
    """Paints the latest FrameSnapshot and forwards pointer input to the session."""

    def __init__(self, session: SessionStateMachine, compact_width: int, parent=None):
        super().__init__(parent)
        self.session = session
        self.compact_width = compact_width
        self.snapshot: FrameSnapshot | None = None
        self.hue = random.uniform(0.0, 360.0)
        self.frame_count = 0
        self.setMinimumSize(320, 240)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

    @property
    def compact(self) -> bool:
        return self.width() < self.compact_width

    def set_snapshot(self, snapshot: FrameSnapshot) -> None:
        self.snapshot = snapshot
        self.hue = advance_hue(self.hue)
        self.frame_count += 1
        self.update()

    def new_palette(self) -> None:
        self.hue = random.uniform(0.0, 360.0)

    # -------------------------
    # Input
    # -------------------------
    def resizeEvent(self, event):
        self.session.resize(self.width(), self.height(), compact=self.compact)
        super().resizeEvent(event)

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            was_animating = self.session.mode is Mode.ANIMATE
            self.session.begin_stroke()
            if was_animating:
                self.new_palette()

    def mouseMoveEvent(self, event):
        if event.buttons() & Qt.MouseButton.LeftButton:
            pos = event.position()
            self.session.add_stroke_point(pos.x(), pos.y())
            self.update()

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            mode_before = self.session.mode
            self.session.finish_stroke()
            if mode_before is not Mode.ANIMATE and self.session.mode is Mode.ANIMATE:
                self.new_palette()

    # -------------------------
    # Painting
    # -------------------------
    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.fillRect(self.rect(), hsb(220, 20, 8))

        snapshot = self.snapshot
        if snapshot is not None:
            if snapshot.mode is Mode.RECORD:
                self._paint_record(painter, snapshot)
            elif snapshot.mode is Mode.ANIMATE and snapshot.animation is not None:
                self._paint_animate(painter, snapshot)
            else:
                self._paint_draw(painter, snapshot)

        painter.end()

    def _text(self, painter: QPainter, text: str, y: float, size: int, color: QColor) -> None:
        font = QFont()
        font.setPixelSize(size)
        painter.setFont(font)
        painter.setPen(color)
        painter.drawText(QRectF(0, y - size, self.width(), size * 2), Qt.AlignmentFlag.AlignCenter, text)

    def _paint_banner(self, painter: QPainter, snapshot: FrameSnapshot, top: float) -> None:
        ui = controls_ui_state(snapshot.mode, snapshot.acquisition_pending)
        if ui.headline:
            self._text(painter, ui.headline, top, 18 if self.compact else 22, hsb(0, 0, 100))
        self._text(painter, ui.hint, top + 25, 11 if self.compact else 13, hsb(0, 0, 60))

    def _paint_path(self, painter: QPainter, points, color: QColor, width: float) -> None:
        if len(points) < 2:
            return
        painter.setPen(QPen(color, width))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawPolyline(_polygon(points, self.width() / 2.0, self.height() / 2.0))

    def _paint_draw(self, painter: QPainter, snapshot: FrameSnapshot) -> None:
        self._paint_banner(painter, snapshot, 35)
        self._paint_path(painter, snapshot.drawing, hsb(50, 80, 100), 3)

    def _paint_record(self, painter: QPainter, snapshot: FrameSnapshot) -> None:
        w, h = self.width(), self.height()

        pulse = math.sin(self.frame_count * 0.15) * 0.3 + 0.7
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QBrush(hsb(0, 90, 90, pulse * 100)))
        painter.drawEllipse(QPointF(w / 2.0, 30), 6, 6)

        self._paint_banner(painter, snapshot, 55)
        self._paint_path(painter, snapshot.drawing, hsb(0, 70, 100), 3)

        record = snapshot.record
        volume = record.volume if record else 0.0
        progress = record.progress if record else 0.0

        # Level meter on the right
        meter_h = 80 if self.compact else 120
        meter_x = w - 30
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QBrush(hsb(0, 0, 20)))
        painter.drawRoundedRect(QRectF(meter_x, h / 2 - meter_h / 2, 12, meter_h), 4, 4)
        level_h = volume * meter_h
        meter_color = hsb(0, 80, 100) if meter_is_hot(volume) else hsb(120, 70, 80)
        painter.setBrush(QBrush(meter_color))
        painter.drawRoundedRect(QRectF(meter_x, h / 2 + meter_h / 2 - level_h, 12, level_h), 4, 4)

        # Progress bar along the bottom
        bar_y = h - 30
        painter.setBrush(QBrush(hsb(0, 0, 25)))
        painter.drawRoundedRect(QRectF(30, bar_y, w - 60, 6), 3, 3)
        painter.setBrush(QBrush(hsb(0, 70, 100)))
        painter.drawRoundedRect(QRectF(30, bar_y, (w - 60) * progress, 6), 3, 3)

    def _paint_chain(self, painter: QPainter, epicycles) -> None:
        circle_pen = QPen(hsb(0, 0, 100, 15), 1)
        arm_pen = QPen(hsb(self.hue, 60, 100, 50), 1.5)
        tip = None
        painter.setBrush(Qt.BrushStyle.NoBrush)
        for epicycle in epicycles:
            center = QPointF(epicycle.center.x, epicycle.center.y)
            tip = QPointF(epicycle.tip.x, epicycle.tip.y)
            painter.setPen(circle_pen)
            painter.drawEllipse(center, epicycle.radius, epicycle.radius)
            painter.setPen(arm_pen)
            painter.drawLine(center, tip)
        if tip is not None:
            painter.setPen(Qt.PenStyle.NoPen)
            painter.setBrush(QBrush(hsb(self.hue, 80, 100)))
            painter.drawEllipse(tip, 3, 3)

    def _paint_animate(self, painter: QPainter, snapshot: FrameSnapshot) -> None:
        frame = snapshot.animation
        self._paint_banner(painter, snapshot, 20)

        # Faint original drawing for reference
        self._paint_path(painter, snapshot.drawing, hsb(0, 0, 100, 8), 1)

        self._paint_chain(painter, frame.x_epicycles())
        self._paint_chain(painter, frame.y_epicycles())

        # Guides from each chain tip to the traced point
        point = QPointF(frame.point.x, frame.point.y)
        painter.setPen(QPen(hsb(self.hue, 30, 50, 25), 1))
        painter.drawLine(QPointF(frame.x_tip.x, frame.x_tip.y), point)
        painter.drawLine(QPointF(frame.y_tip.x, frame.y_tip.y), point)

        if len(frame.traced_path) > 1:
            painter.setPen(QPen(hsb(self.hue, 80, 100), 2))
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawPolyline(_polygon(frame.traced_path))

        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QBrush(hsb(self.hue, 80, 100)))
        painter.drawEllipse(point, 4, 4)

        self._text(painter, f"{frame.frequency_hz:.0f} Hz", self.height() - 20, 11, hsb(0, 0, 60))


class HarmonicSpectrumPlot(pg.PlotWidget):
    """Amplitudes of the strongest harmonics of each axis, in drawing order."""

    def __init__(self, parent=None, max_terms: int = 24):
        super().__init__(parent)
        self.max_terms = max_terms
        self.setBackground('#1b1d24')
        self.setMouseEnabled(x=False, y=False)
        self.setMenuEnabled(False)
        self.hideButtons()
        self.showGrid(x=False, y=True, alpha=0.15)
        self.setLabel('bottom', 'rank')
        self.getAxis('left').setWidth(32)
        self.setMinimumHeight(140)

        self.x_curve = self.plot(pen=pg.mkPen('#4fc3f7', width=1), symbol='o',
                                 symbolSize=5, symbolBrush='#4fc3f7', name='x')
        self.y_curve = self.plot(pen=pg.mkPen('#ffb74d', width=1), symbol='t',
                                 symbolSize=5, symbolBrush='#ffb74d', name='y')

    def set_signal(self, signal: DecomposedSignal | None) -> None:
        if signal is None:
            self.x_curve.setData([], [])
            self.y_curve.setData([], [])
            return
        x_amps = [t.amplitude for t in signal.x_set[:self.max_terms]]
        y_amps = [t.amplitude for t in signal.y_set[:self.max_terms]]
        self.x_curve.setData(list(range(len(x_amps))), x_amps)
        self.y_curve.setData(list(range(len(y_amps))), y_amps)


class FourierDrawingsWindow(QMainWindow):
    """Main application window"""

    def __init__(self, config: Config | None = None):
        super().__init__()

        self.config = config or load_config()
        set_log_level(getattr(self.config, 'log_level', 'INFO'))

        self.setWindowTitle("Fourier Drawings")
        self.setMinimumSize(480, 360)
        self.resize(self.config.window_width, self.config.window_height)
        self.setStyleSheet(self._get_stylesheet())

        self.capture = MicrophoneCapture(self.config.audio)
        self.output = ToneOutput(self.config.audio, self.config.tone)
        self.session = SessionStateMachine(self.config, self.capture, self.output)
        self._shown_signal: DecomposedSignal | None = None

        self._setup_ui()
        self._populate_audio_devices()

        self.frame_timer = QTimer(self)
        self.frame_timer.timeout.connect(self._on_frame)
        self.frame_timer.start(max(1, int(1000 / max(1, self.config.playback.frame_rate))))

    def _setup_ui(self):
        central = QWidget()
        layout = QHBoxLayout(central)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        self.canvas = EpicycleCanvas(self.session, self.config.playback.compact_width)
        layout.addWidget(self.canvas, 1)

        panel = QWidget()
        panel.setObjectName("infoPanel")
        panel.setFixedWidth(240)
        panel_layout = QVBoxLayout(panel)
        panel_layout.setContentsMargins(15, 12, 15, 12)

        title_row = QHBoxLayout()
        title = QLabel("Fourier Drawings")
        title.setObjectName("title")
        self.mode_badge = QLabel("DRAW")
        self.mode_badge.setObjectName("modeBadge")
        title_row.addWidget(title)
        title_row.addStretch(1)
        title_row.addWidget(self.mode_badge)
        panel_layout.addLayout(title_row)

        buttons = QHBoxLayout()
        self.record_btn = self._make_button("● Record", "R", self._on_record_clicked)
        self.record_btn.setCheckable(True)
        self.clear_btn = self._make_button("Clear", "C", self.session.clear)
        self.draw_btn = self._make_button("Draw", "D", self.session.reset_to_draw)
        self.draw_btn.setCheckable(True)
        for btn in (self.record_btn, self.clear_btn, self.draw_btn):
            buttons.addWidget(btn)
        panel_layout.addLayout(buttons)

        for heading, body in (
            ("WHAT IS THIS?",
             "Draw any shape and watch it rebuilt by spinning circles (epicycles)."),
            ("THE SCIENCE",
             "The Fourier transform splits a signal into rotating vectors. "
             "Each circle is one frequency component."),
            ("SOUND + DRAWING",
             "Draw → Sound: Y position controls pitch.\n"
             "Voice → Draw: your pitch becomes Y position."),
            ("KEYBOARD", "R - Record\nC - Clear\nD - Draw mode"),
        ):
            label = QLabel(heading)
            label.setObjectName("heading")
            text = QLabel(body)
            text.setWordWrap(True)
            text.setObjectName("body")
            panel_layout.addWidget(label)
            panel_layout.addWidget(text)

        devices_group = QGroupBox("Audio devices")
        devices_layout = QVBoxLayout(devices_group)
        self.input_device_combo = QComboBox()
        self.input_device_combo.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        self.input_device_combo.currentIndexChanged.connect(self._on_input_device_changed)
        self.output_device_combo = QComboBox()
        self.output_device_combo.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        self.output_device_combo.currentIndexChanged.connect(self._on_output_device_changed)
        devices_layout.addWidget(QLabel("Microphone"))
        devices_layout.addWidget(self.input_device_combo)
        devices_layout.addWidget(QLabel("Output"))
        devices_layout.addWidget(self.output_device_combo)
        panel_layout.addWidget(devices_group)

        heading = QLabel("HARMONICS")
        heading.setObjectName("heading")
        panel_layout.addWidget(heading)
        self.spectrum_plot = HarmonicSpectrumPlot()
        panel_layout.addWidget(self.spectrum_plot, 1)

        layout.addWidget(panel)
        self.setCentralWidget(central)

    def _make_button(self, label: str, key: str, action) -> QPushButton:
        btn = QPushButton(f"{label}\n{key}")
        btn.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        btn.setMinimumHeight(40)
        btn.clicked.connect(lambda _checked=False: action())
        return btn

    def _populate_audio_devices(self):
        """Fill device dropdowns; index None = system default."""
        audio = self.config.audio
        self.input_device_combo.blockSignals(True)
        self.output_device_combo.blockSignals(True)
        self.input_device_combo.clear()
        self.output_device_combo.clear()
        self.input_device_combo.addItem("System default", None)
        self.output_device_combo.addItem("System default", None)

        try:
            devices = list_devices()
        except Exception as e:
            log_event("WARN", "UI", "Could not query audio devices", error=e)
            devices = []

        for d in devices:
            if d['inputs'] > 0:
                self.input_device_combo.addItem(d['name'], d['index'])
                if d['index'] == audio.input_device_index:
                    self.input_device_combo.setCurrentIndex(self.input_device_combo.count() - 1)
            if d['outputs'] > 0:
                self.output_device_combo.addItem(d['name'], d['index'])
                if d['index'] == audio.output_device_index:
                    self.output_device_combo.setCurrentIndex(self.output_device_combo.count() - 1)

        self.input_device_combo.blockSignals(False)
        self.output_device_combo.blockSignals(False)

    def _on_input_device_changed(self, _index: int):
        self.config.audio.input_device_index = self.input_device_combo.currentData()
        log_event("INFO", "UI", "Microphone selected", device=self.input_device_combo.currentText())

    def _on_output_device_changed(self, _index: int):
        self.config.audio.output_device_index = self.output_device_combo.currentData()
        log_event("INFO", "UI", "Output selected", device=self.output_device_combo.currentText())

    def _on_record_clicked(self):
        self.session.toggle_recording()
        self._apply_ui_state(self.session.mode, self.session.acquisition_pending)

    def _apply_ui_state(self, mode: Mode, pending: bool):
        ui = controls_ui_state(mode, pending)
        self.record_btn.setText(f"{ui.record_text}\nR")
        self.record_btn.setChecked(ui.record_checked)
        self.draw_btn.setChecked(ui.draw_checked)
        self.mode_badge.setText(ui.mode_badge)

    def _on_frame(self):
        snapshot = self.session.tick()
        self._apply_ui_state(snapshot.mode, snapshot.acquisition_pending)

        signal = self.session.decomposed
        if signal is not self._shown_signal:
            self._shown_signal = signal
            self.spectrum_plot.set_signal(signal)

        self.canvas.set_snapshot(snapshot)

    def keyPressEvent(self, event):
        if not event.isAutoRepeat() and dispatch_key(self.session, event.text()):
            self._apply_ui_state(self.session.mode, self.session.acquisition_pending)
            return
        super().keyPressEvent(event)

    def closeEvent(self, event):
        """Stop devices, then persist window state and config"""
        self.frame_timer.stop()
        self.session.shutdown()

        persist_runtime_ui_to_config(self, self.config)
        save_config(self.config)

        event.accept()

    def _get_stylesheet(self) -> str:
        return """
            QMainWindow { background-color: #121419; }
            QWidget#infoPanel { background-color: #1b1d24; border-left: 1px solid #2a2d36; }
            QLabel { color: #b3b3b3; font-size: 11px; }
            QLabel#title { color: #ffffff; font-size: 16px; font-weight: bold; }
            QLabel#modeBadge { color: #6fa8dc; font-size: 10px; }
            QLabel#heading { color: #7fd1c7; font-size: 11px; font-weight: bold; margin-top: 6px; }
            QLabel#body { color: #9a9a9a; font-size: 10px; }
            QPushButton {
                background-color: #2d3340; color: #ffffff; border: 1px solid #444;
                border-radius: 6px; font-size: 11px; padding: 2px 6px;
            }
            QPushButton:hover { background-color: #3a4252; }
            QPushButton:checked { background-color: #b03a3a; border-color: #ff6b6b; }
            QGroupBox { color: #b3b3b3; border: 1px solid #2a2d36; border-radius: 4px; margin-top: 10px; }
            QGroupBox::title { subcontrol-origin: margin; left: 6px; }
            QComboBox { background-color: #2d3340; color: #ffffff; border: 1px solid #444; }
        """


def main():
    """Main entry point - backup if not launched via run.py"""
    app = QApplication(sys.argv)
    app.setStyle('Fusion')
    window = FourierDrawingsWindow()
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
