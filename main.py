"""
ringweave - Main Application
Qt GUI with live lattice preview, keyframe timeline and GIF/PNG/SVG export.
"""

# Heavy imports - splash is already showing by this point when launched via run.py
import sys
from contextlib import contextmanager
import time

_import_t0 = time.perf_counter()
print("\n[Startup] main.py loading heavy modules...", flush=True)

import random
from pathlib import Path
from typing import List, Optional

import numpy as np

from PyQt6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QGroupBox, QLabel, QSlider, QComboBox, QPushButton, QCheckBox,
    QSpinBox, QLineEdit, QTabWidget, QListWidget, QListWidgetItem,
    QMessageBox, QFileDialog, QSplashScreen, QProgressBar, QSplitter,
    QFormLayout,
)
from PyQt6.QtCore import Qt, QTimer, pyqtSignal, QObject
from PyQt6.QtGui import QPixmap

# PyQtGraph for the live preview
import pyqtgraph as pg
pg.setConfigOptions(antialias=True, useOpenGL=False)

from config import (
    INTEGER_FIELDS,
    SETTING_RANGE_LIMITS,
    STRUCTURAL_FIELDS,
    ArtSettings,
    ExportOptions,
    LoopMode,
    Strategy,
    clamp_connection_range,
)
from logging_utils import log_event, set_log_level, timed
from config_persistence import get_config_dir, load_config, save_config
from close_persist_wiring import persist_runtime_ui_to_config
from art_generator import GridPoint, Line, generate_geometry
from frame_renderer import curve_control_point, quadratic_points, save_png, save_svg
from keyframe_manager import (
    Keyframe,
    KeyframeImportError,
    duplicate_keyframe,
    insert_keyframe,
    normalize_timestamps,
    remove_keyframe,
    update_keyframe,
)
from keyframe_wiring import (
    add_snapshot_keyframe,
    default_export_filename,
    get_keyframes_file_path,
    load_keyframes_file,
    save_keyframes_file,
)
from animation_engine import AnimationEngine, NoKeyframesError
from gif_exporter import ExportInProgressError, GifExporter
from tick_scheduler import QtTickScheduler
from transport_wiring import (
    loop_mode_label,
    next_loop_mode,
    slider_to_time,
    state_summary,
    time_label_text,
    time_to_slider,
    transport_ui_state,
)

print(f"[Startup] main.py imports ready (+{(time.perf_counter()-_import_t0)*1000:.0f} ms)", flush=True)


TIMELINE_STEPS = 1000
GENERATION_SHARE = 0.5  # Export progress fraction for frame generation


class SignalBridge(QObject):
    """Bridge for thread-safe signal emission from the export worker"""
    export_progress = pyqtSignal(float)
    export_finished = pyqtSignal(str)
    export_failed = pyqtSignal(str)


class ArtCanvas(pg.PlotWidget):
    """Lattice preview using PyQtGraph - black ink on a white square"""

    def __init__(self, canvas_size: int = 1000, parent=None):
        super().__init__(parent)

        self.canvas_size = canvas_size
        self.setBackground('w')
        self.setMouseEnabled(x=False, y=False)
        self.setMenuEnabled(False)
        self.setAspectLocked(True)
        self.hideAxis('left')
        self.hideAxis('bottom')
        self.getPlotItem().invertY(True)  # Screen coordinates: y grows downward
        self.setXRange(0, canvas_size, padding=0.02)
        self.setYRange(0, canvas_size, padding=0.02)

        self.line_curve = pg.PlotCurveItem(pen=pg.mkPen('k', width=2), connect='finite')
        self.addItem(self.line_curve)

        self.dot_scatter = pg.ScatterPlotItem(size=8, brush=pg.mkBrush('k'), pen=None)
        self.addItem(self.dot_scatter)

    def update_art(self, points: List[GridPoint], lines: List[Line], settings: ArtSettings):
        """Redraw edges and dots. Edges are NaN-separated segments of one curve item."""
        by_id = {p.id: p for p in points}
        chunks = []
        nan_row = np.array([[np.nan, np.nan]])
        for id1, id2 in lines:
            p1, p2 = by_id.get(id1), by_id.get(id2)
            if p1 is None or p2 is None:
                continue
            control = curve_control_point(p1, p2, settings.curvature)
            if control is None:
                chunks.append(np.array([(p1.x, p1.y), (p2.x, p2.y)]))
            else:
                chunks.append(quadratic_points((p1.x, p1.y), control, (p2.x, p2.y), segments=16))
            chunks.append(nan_row)

        if chunks and settings.line_width > 0:
            path = np.vstack(chunks)
            self.line_curve.setPen(pg.mkPen('k', width=max(settings.line_width * self._pixel_scale(), 0.5)))
            self.line_curve.setData(path[:, 0], path[:, 1])
        else:
            self.line_curve.setData([], [])

        if points and settings.dot_size > 0:
            self.dot_scatter.setSize(max(2.0, settings.dot_size * 2 * self._pixel_scale()))
            self.dot_scatter.setData([p.x for p in points], [p.y for p in points])
        else:
            self.dot_scatter.setData([], [])

    def _pixel_scale(self) -> float:
        side = min(self.width(), self.height())
        return side / self.canvas_size if side > 0 else 0.5


class SliderWithLabel(QWidget):
    """Slider with label showing current value"""

    valueChanged = pyqtSignal(float)

    def __init__(self, name: str, min_val: float, max_val: float,
                 default: float, decimals: int = 2, parent=None):
        super().__init__(parent)

        self.min_val = min_val
        self.max_val = max_val
        self.decimals = decimals
        self.multiplier = 10 ** decimals

        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self.label = QLabel(name)
        self.label.setFixedWidth(120)
        self.label.setStyleSheet("color: #aaa;")

        self.slider = QSlider(Qt.Orientation.Horizontal)
        self.slider.setMinimum(int(round(min_val * self.multiplier)))
        self.slider.setMaximum(int(round(max_val * self.multiplier)))
        self.slider.setValue(int(round(default * self.multiplier)))
        self.slider.valueChanged.connect(self._on_change)

        self.value_label = QLabel(f"{default:.{decimals}f}")
        self.value_label.setFixedWidth(50)
        self.value_label.setStyleSheet("color: #0af;")

        layout.addWidget(self.label)
        layout.addWidget(self.slider)
        layout.addWidget(self.value_label)

    def _on_change(self, value: int):
        real_value = value / self.multiplier
        self.value_label.setText(f"{real_value:.{self.decimals}f}")
        self.valueChanged.emit(real_value)

    def value(self) -> float:
        return self.slider.value() / self.multiplier

    def setValue(self, value: float):
        self.slider.setValue(int(round(value * self.multiplier)))
        self.value_label.setText(f"{self.value():.{self.decimals}f}")


# (field, label, tab) for every slider-driven setting
SLIDER_FIELDS = [
    ("grid_start_ring", "Grid Start Ring", "Grid"),
    ("grid_end_ring", "Grid End Ring", "Grid"),
    ("symmetry_sides", "Symmetry Sides", "Grid"),
    ("chaos", "Chaos", "Grid"),
    ("connection_start_ring", "Connect From Ring", "Connections"),
    ("connection_end_ring", "Connect To Ring", "Connections"),
    ("tangential_step", "Tangential Step", "Connections"),
    ("radial_twist", "Radial Twist", "Connections"),
    ("cluster_count", "Cluster Count", "Connections"),
    ("max_connections", "Max Connections", "Connections"),
    ("line_width", "Line Width", "Appearance"),
    ("dot_size", "Dot Size", "Appearance"),
    ("curvature", "Curvature", "Appearance"),
]


class RingweaveWindow(QMainWindow):
    """Main application window"""

    def __init__(self):
        super().__init__()

        self.setWindowTitle("ringweave")
        self.setMinimumSize(400, 300)
        self.resize(1200, 900)
        self.setStyleSheet(self._get_stylesheet())

        # Initialize config from saved file (or defaults)
        self.config = load_config()
        set_log_level(getattr(self.config, 'log_level', 'INFO'))
        self.signals = SignalBridge()

        self.current_settings: ArtSettings = clamp_connection_range(self.config.settings)
        self.keyframes: List[Keyframe] = []
        self.selected_keyframe_id: Optional[str] = None
        self.is_exporting = False

        if self.config.last_keyframes_file:
            self.keyframes_file = Path(self.config.last_keyframes_file)
        else:
            self.keyframes_file = get_keyframes_file_path(
                frozen=getattr(sys, 'frozen', False),
                executable_path=sys.executable,
                source_file=__file__,
            )

        self.scheduler = QtTickScheduler()
        self.engine = AnimationEngine(on_update=self._on_engine_update, scheduler=self.scheduler)
        self.engine.set_loop_mode(self.config.animation.loop_mode)
        self.exporter = GifExporter(self.config.canvas_size)

        self._setup_ui()
        self._apply_settings_to_controls(self.current_settings)
        self._regenerate()

        self.signals.export_progress.connect(self._on_export_progress)
        self.signals.export_finished.connect(self._on_export_finished)
        self.signals.export_failed.connect(self._on_export_failed)

        # Status line refresh
        self.status_timer = QTimer(self)
        self.status_timer.timeout.connect(self._update_status)
        self.status_timer.start(250)

        self._load_keyframes_from(self.keyframes_file, quiet=True)
        log_event("INFO", "UI", "Window ready", config_dir=get_config_dir())

    def _get_stylesheet(self) -> str:
        """Dark theme with #3d3d3d background"""
        return """
            QMainWindow, QWidget {
                background-color: #3d3d3d;
                color: #e0e0e0;
            }
            QMenuBar {
                background-color: #4d4d4d;
                color: #e0e0e0;
                border-bottom: 1px solid #5d5d5d;
            }
            QMenuBar::item:selected, QMenu::item:selected {
                background-color: #565d7f;
                color: #ffffff;
            }
            QMenu {
                background-color: #4d4d4d;
                color: #e0e0e0;
                border: 1px solid #5d5d5d;
            }
            QPushButton {
                background-color: #565d7f;
                color: #ffffff;
                border: none;
                border-radius: 4px;
                padding: 5px 15px;
            }
            QPushButton:hover {
                background-color: #6d6d8f;
            }
            QPushButton:pressed {
                background-color: #4a4d6f;
            }
            QPushButton:disabled {
                background-color: #424242;
                color: #757575;
            }
            QGroupBox {
                border: 1px solid #5d5d5d;
                border-radius: 4px;
                margin-top: 12px;
                padding-top: 6px;
            }
            QGroupBox::title {
                subcontrol-origin: margin;
                left: 8px;
                padding: 0 4px;
                color: #0af;
            }
            QListWidget, QLineEdit, QSpinBox, QComboBox {
                background-color: #2d2d2d;
                border: 1px solid #5d5d5d;
                border-radius: 3px;
                padding: 2px;
            }
            QListWidget::item:selected {
                background-color: #565d7f;
            }
            QProgressBar {
                border: 1px solid #5d5d5d;
                border-radius: 3px;
                text-align: center;
            }
            QProgressBar::chunk {
                background-color: #0af;
            }
        """

    # ------------------------------------------------------------------
    # UI construction
    # ------------------------------------------------------------------

    def _setup_ui(self):
        """Build the user interface"""
        self._create_menu_bar()

        central = QWidget()
        self.setCentralWidget(central)
        main_layout = QVBoxLayout(central)
        main_layout.setSpacing(10)

        splitter = QSplitter(Qt.Orientation.Horizontal)
        splitter.setChildrenCollapsible(False)

        self.canvas = ArtCanvas(self.config.canvas_size)
        self.canvas.setMinimumSize(360, 360)
        splitter.addWidget(self.canvas)
        splitter.addWidget(self._create_settings_tabs())
        splitter.setStretchFactor(0, 3)
        splitter.setStretchFactor(1, 2)
        main_layout.addWidget(splitter, stretch=1)

        bottom_layout = QHBoxLayout()
        bottom_layout.addWidget(self._create_keyframe_panel(), stretch=2)
        bottom_layout.addWidget(self._create_transport_panel(), stretch=3)
        bottom_layout.addWidget(self._create_export_panel(), stretch=2)
        main_layout.addLayout(bottom_layout)

        self.status_label = QLabel("")
        self.status_label.setStyleSheet("color: #aaa;")
        main_layout.addWidget(self.status_label)

    def _create_menu_bar(self):
        """Create menu bar with File, Options, and Help"""
        menubar = self.menuBar()
        assert menubar is not None

        file_menu = menubar.addMenu("File")
        assert file_menu is not None
        for text, handler in (
            ("Load Keyframes...", self._on_load_keyframes),
            ("Save Keyframes...", self._on_save_keyframes),
            (None, None),
            ("Export PNG...", self._on_export_png),
            ("Export SVG...", self._on_export_svg),
            ("Export GIF...", self._on_export_gif),
            (None, None),
            ("Quit", self.close),
        ):
            if text is None:
                file_menu.addSeparator()
                continue
            action = file_menu.addAction(text)
            assert action is not None
            action.triggered.connect(handler)

        options_menu = menubar.addMenu("Options")
        assert options_menu is not None
        log_menu = options_menu.addMenu("Log Level")
        assert log_menu is not None
        self._log_level_actions = []
        for level in ("DEBUG", "INFO", "WARNING", "ERROR"):
            action = log_menu.addAction(level)
            assert action is not None
            action.setCheckable(True)
            action.triggered.connect(lambda _checked, lvl=level: self._on_log_level_change(lvl))
            self._log_level_actions.append(action)
        self._sync_log_level_menu(self.config.log_level)

        help_menu = menubar.addMenu("Help")
        assert help_menu is not None
        about_action = help_menu.addAction("About")
        assert about_action is not None
        about_action.triggered.connect(self._on_about)

    def _create_settings_tabs(self) -> QTabWidget:
        tabs = QTabWidget()
        pages = {name: QVBoxLayout() for name in ("Grid", "Connections", "Appearance")}

        self.setting_sliders = {}
        for name, label, tab in SLIDER_FIELDS:
            low, high = SETTING_RANGE_LIMITS[name]
            decimals = 0 if name in INTEGER_FIELDS else 2
            slider = SliderWithLabel(label, low, high, getattr(self.current_settings, name), decimals)
            slider.valueChanged.connect(lambda value, field=name: self._on_setting_changed(field, value))
            pages[tab].addWidget(slider)
            self.setting_sliders[name] = slider

        strategy_row = QHBoxLayout()
        strategy_label = QLabel("Strategy")
        strategy_label.setFixedWidth(120)
        strategy_label.setStyleSheet("color: #aaa;")
        self.strategy_combo = QComboBox()
        for strategy in Strategy:
            self.strategy_combo.addItem(strategy.value)
        self.strategy_combo.currentTextChanged.connect(lambda text: self._on_setting_changed("strategy", Strategy(text)))
        strategy_row.addWidget(strategy_label)
        strategy_row.addWidget(self.strategy_combo)
        pages["Connections"].insertLayout(0, strategy_row)

        seed_row = QHBoxLayout()
        seed_label = QLabel("Seed")
        seed_label.setFixedWidth(120)
        seed_label.setStyleSheet("color: #aaa;")
        self.seed_spin = QSpinBox()
        seed_low, seed_high = SETTING_RANGE_LIMITS['seed']
        self.seed_spin.setRange(int(seed_low), int(seed_high))
        self.seed_spin.valueChanged.connect(lambda value: self._on_setting_changed("seed", value))
        randomize_btn = QPushButton("Randomize")
        randomize_btn.clicked.connect(lambda: self.seed_spin.setValue(random.randint(int(seed_low), int(seed_high))))
        seed_row.addWidget(seed_label)
        seed_row.addWidget(self.seed_spin)
        seed_row.addWidget(randomize_btn)
        pages["Grid"].addLayout(seed_row)

        for name, layout in pages.items():
            layout.addStretch()
            page = QWidget()
            page.setLayout(layout)
            tabs.addTab(page, name)
        return tabs

    def _create_keyframe_panel(self) -> QGroupBox:
        group = QGroupBox("Keyframes")
        layout = QVBoxLayout(group)

        self.keyframe_list = QListWidget()
        self.keyframe_list.currentItemChanged.connect(self._on_keyframe_selected)
        layout.addWidget(self.keyframe_list)

        buttons = QHBoxLayout()
        self.add_kf_btn = QPushButton("Add")
        self.add_kf_btn.setToolTip("Snapshot the current settings at the timeline position")
        self.add_kf_btn.clicked.connect(self._on_add_keyframe)
        self.dup_kf_btn = QPushButton("Duplicate")
        self.dup_kf_btn.clicked.connect(self._on_duplicate_keyframe)
        self.del_kf_btn = QPushButton("Delete")
        self.del_kf_btn.clicked.connect(self._on_delete_keyframe)
        self.clear_kf_btn = QPushButton("Clear")
        self.clear_kf_btn.clicked.connect(self._on_clear_keyframes)
        for btn in (self.add_kf_btn, self.dup_kf_btn, self.del_kf_btn, self.clear_kf_btn):
            buttons.addWidget(btn)
        layout.addLayout(buttons)

        edit_form = QFormLayout()
        self.kf_name_edit = QLineEdit()
        self.kf_name_edit.editingFinished.connect(self._on_keyframe_name_edited)
        self.duration_spin = QSpinBox()
        self.duration_spin.setRange(0, 60000)
        self.duration_spin.setSingleStep(100)
        self.duration_spin.setSuffix(" ms")
        self.duration_spin.setValue(int(self.config.animation.default_duration_ms))
        self.duration_spin.valueChanged.connect(self._on_keyframe_duration_changed)
        edit_form.addRow("Name", self.kf_name_edit)
        edit_form.addRow("Duration", self.duration_spin)
        layout.addLayout(edit_form)

        normalize_btn = QPushButton("Normalize Timestamps")
        normalize_btn.clicked.connect(lambda: self._set_keyframes(normalize_timestamps(self.keyframes)))
        layout.addWidget(normalize_btn)
        return group

    def _create_transport_panel(self) -> QGroupBox:
        group = QGroupBox("Playback")
        layout = QVBoxLayout(group)

        buttons = QHBoxLayout()
        self.play_btn = QPushButton("▶ Play")
        self.play_btn.clicked.connect(self._on_play_toggle)
        self.stop_btn = QPushButton("■ Stop")
        self.stop_btn.clicked.connect(self.engine.stop)
        self.loop_btn = QPushButton(loop_mode_label(self.engine.loop_mode))
        self.loop_btn.setToolTip("Cycle loop mode: once / loop / ping-pong")
        self.loop_btn.clicked.connect(self._on_loop_mode_cycle)
        buttons.addWidget(self.play_btn)
        buttons.addWidget(self.stop_btn)
        buttons.addWidget(self.loop_btn)
        layout.addLayout(buttons)

        self.timeline_slider = QSlider(Qt.Orientation.Horizontal)
        self.timeline_slider.setRange(0, TIMELINE_STEPS)
        self.timeline_slider.sliderMoved.connect(self._on_timeline_moved)
        layout.addWidget(self.timeline_slider)

        self.time_label = QLabel(time_label_text(0, 0))
        self.time_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.time_label.setStyleSheet("color: #0af; font-family: monospace;")
        layout.addWidget(self.time_label)
        layout.addStretch()
        return group

    def _create_export_panel(self) -> QGroupBox:
        group = QGroupBox("Export")
        form = QFormLayout(group)
        export = self.config.export

        self.fps_spin = QSpinBox()
        self.fps_spin.setRange(1, 120)
        self.fps_spin.setValue(int(self.config.animation.fps))
        self.export_width_spin = QSpinBox()
        self.export_width_spin.setRange(16, 4096)
        self.export_width_spin.setValue(int(export.width))
        self.export_height_spin = QSpinBox()
        self.export_height_spin.setRange(16, 4096)
        self.export_height_spin.setValue(int(export.height))
        self.quality_slider = QSlider(Qt.Orientation.Horizontal)
        self.quality_slider.setRange(0, 100)
        self.quality_slider.setValue(int(round(export.quality * 100)))
        self.alpha_checkbox = QCheckBox("Transparent background")
        self.alpha_checkbox.setChecked(bool(export.with_alpha))

        form.addRow("FPS", self.fps_spin)
        form.addRow("Width", self.export_width_spin)
        form.addRow("Height", self.export_height_spin)
        form.addRow("Quality", self.quality_slider)
        form.addRow(self.alpha_checkbox)

        self.export_gif_btn = QPushButton("Export GIF")
        self.export_gif_btn.clicked.connect(self._on_export_gif)
        self.export_progress = QProgressBar()
        self.export_progress.setRange(0, 100)
        self.export_progress.setValue(0)
        form.addRow(self.export_gif_btn)
        form.addRow(self.export_progress)
        return group

    # ------------------------------------------------------------------
    # Settings <-> controls
    # ------------------------------------------------------------------

    @contextmanager
    def _signals_blocked(self, *widgets):
        """Temporarily block signals on provided widgets."""
        blocked = []
        for w in widgets:
            if w is not None and hasattr(w, 'blockSignals'):
                w.blockSignals(True)
                blocked.append(w)
        try:
            yield
        finally:
            for w in blocked:
                w.blockSignals(False)

    def _apply_settings_to_controls(self, settings: ArtSettings):
        sliders = [s.slider for s in self.setting_sliders.values()]
        with self._signals_blocked(self.strategy_combo, self.seed_spin, *sliders):
            for name, slider in self.setting_sliders.items():
                slider.setValue(getattr(settings, name))
            self.strategy_combo.setCurrentText(Strategy(settings.strategy).value)
            self.seed_spin.setValue(int(settings.seed))

    def _on_setting_changed(self, name: str, value):
        if name in INTEGER_FIELDS:
            value = int(round(value))
        updated = self.current_settings.copy()
        setattr(updated, name, value)
        self.current_settings = clamp_connection_range(updated)
        if self.current_settings != updated:
            # Range clamp moved a bound; reflect it back into the sliders
            self._apply_settings_to_controls(self.current_settings)
        self._regenerate(structural=name in STRUCTURAL_FIELDS)

    def _regenerate(self, structural: bool = True):
        with timed("UI", "Preview regenerated", structural=structural):
            points, lines = generate_geometry(self.current_settings, self.config.canvas_size)
            self.canvas.update_art(points, lines, self.current_settings)

    def _on_engine_update(self, settings: ArtSettings):
        self.current_settings = settings
        self._apply_settings_to_controls(settings)
        self._regenerate()
        self._update_transport()

    # ------------------------------------------------------------------
    # Keyframes
    # ------------------------------------------------------------------

    def _set_keyframes(self, keyframes: List[Keyframe]):
        if self.engine.is_playing():
            self.engine.pause()
        self.keyframes = list(keyframes)
        self.engine.set_keyframes(self.keyframes)
        self._refresh_keyframe_list()
        self._update_transport()

    def _refresh_keyframe_list(self):
        with self._signals_blocked(self.keyframe_list):
            self.keyframe_list.clear()
            for kf in self.keyframes:
                item = QListWidgetItem(f"{kf.name}  ({kf.duration:.0f} ms)")
                item.setData(Qt.ItemDataRole.UserRole, kf.id)
                self.keyframe_list.addItem(item)
                if kf.id == self.selected_keyframe_id:
                    self.keyframe_list.setCurrentItem(item)

    def _selected_keyframe(self) -> Optional[Keyframe]:
        for kf in self.keyframes:
            if kf.id == self.selected_keyframe_id:
                return kf
        return None

    def _on_keyframe_selected(self, current: Optional[QListWidgetItem], _previous=None):
        if current is None:
            self.selected_keyframe_id = None
            return
        self.selected_keyframe_id = current.data(Qt.ItemDataRole.UserRole)
        kf = self._selected_keyframe()
        if kf is None:
            return
        with self._signals_blocked(self.kf_name_edit, self.duration_spin):
            self.kf_name_edit.setText(kf.name)
            self.duration_spin.setValue(int(kf.duration))
        self.current_settings = kf.settings.copy()
        self._apply_settings_to_controls(self.current_settings)
        self._regenerate()

    def _on_add_keyframe(self):
        self._set_keyframes(add_snapshot_keyframe(
            self.keyframes,
            self.current_settings,
            at_time_ms=self.engine.current_time,
            duration=float(self.duration_spin.value()),
        ))

    def _on_duplicate_keyframe(self):
        kf = self._selected_keyframe()
        if kf is None:
            return
        self._set_keyframes(insert_keyframe(self.keyframes, duplicate_keyframe(kf)))

    def _on_delete_keyframe(self):
        if self.selected_keyframe_id is None:
            return
        self._set_keyframes(remove_keyframe(self.keyframes, self.selected_keyframe_id))
        self.selected_keyframe_id = None

    def _on_clear_keyframes(self):
        if not self.keyframes:
            return
        reply = QMessageBox.question(self, "Clear Keyframes", "Are you sure you want to clear all keyframes?")
        if reply != QMessageBox.StandardButton.Yes:
            return
        self.engine.stop()
        self.selected_keyframe_id = None
        self._set_keyframes([])

    def _on_keyframe_name_edited(self):
        if self.selected_keyframe_id is None:
            return
        self._set_keyframes(update_keyframe(self.keyframes, self.selected_keyframe_id,
                                            {"name": self.kf_name_edit.text()}))

    def _on_keyframe_duration_changed(self, value: int):
        if self.selected_keyframe_id is None:
            return
        self._set_keyframes(update_keyframe(self.keyframes, self.selected_keyframe_id,
                                            {"duration": float(value)}))

    def _load_keyframes_from(self, path: Path, quiet: bool = False):
        try:
            keyframes = load_keyframes_file(
                path,
                frozen=getattr(sys, 'frozen', False),
                meipass=getattr(sys, '_MEIPASS', None),
            )
        except (OSError, KeyframeImportError) as e:
            log_event("ERROR", "UI", "Failed to load keyframes", path=path, error=e)
            if not quiet:
                QMessageBox.warning(self, "Load Keyframes", f"Failed to load keyframes: {e}")
            return
        self.keyframes_file = Path(path)
        self.selected_keyframe_id = None
        self._set_keyframes(keyframes)

    def _on_load_keyframes(self):
        path, _ = QFileDialog.getOpenFileName(self, "Load Keyframes", str(self.keyframes_file.parent),
                                              "Keyframes (*.json)")
        if path:
            self._load_keyframes_from(Path(path))

    def _on_save_keyframes(self):
        default = self.keyframes_file.parent / default_export_filename("keyframes")
        path, _ = QFileDialog.getSaveFileName(self, "Save Keyframes", str(default), "Keyframes (*.json)")
        if not path:
            return
        try:
            save_keyframes_file(Path(path), self.keyframes)
        except OSError as e:
            QMessageBox.warning(self, "Save Keyframes", f"Failed to save keyframes: {e}")
            return
        self.keyframes_file = Path(path)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _on_play_toggle(self):
        if self.engine.is_playing():
            self.engine.pause()
        else:
            self.engine.play()
        self._update_transport()

    def _on_loop_mode_cycle(self):
        mode = next_loop_mode(self.engine.loop_mode)
        self.engine.set_loop_mode(mode)
        self.loop_btn.setText(loop_mode_label(mode))

    def _on_timeline_moved(self, value: int):
        self.engine.seek_to(slider_to_time(value, TIMELINE_STEPS, self.engine.total_duration))

    def _update_transport(self):
        progress = self.engine.get_progress()
        ui = transport_ui_state(len(self.keyframes), progress.is_playing, self.is_exporting)
        self.play_btn.setText(ui.play_text)
        self.play_btn.setEnabled(ui.stop_enabled)
        self.stop_btn.setEnabled(ui.stop_enabled)
        self.timeline_slider.setEnabled(ui.seek_enabled)
        self.export_gif_btn.setEnabled(ui.export_enabled)
        if not self.timeline_slider.isSliderDown():
            with self._signals_blocked(self.timeline_slider):
                self.timeline_slider.setValue(time_to_slider(progress.current_time, progress.total_duration, TIMELINE_STEPS))
        self.time_label.setText(time_label_text(progress.current_time, progress.total_duration))

    def _update_status(self):
        self._update_transport()
        self.status_label.setText(state_summary(self.engine.get_progress()))

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def _export_options(self) -> ExportOptions:
        mode = self.engine.loop_mode
        return ExportOptions(
            width=self.export_width_spin.value(),
            height=self.export_height_spin.value(),
            fps=self.fps_spin.value(),
            quality=self.quality_slider.value() / 100.0,
            with_alpha=self.alpha_checkbox.isChecked(),
            loop_mode=LoopMode.NONE if mode is LoopMode.NONE else LoopMode.LOOP,
        )

    def _on_export_png(self):
        path, _ = QFileDialog.getSaveFileName(self, "Export PNG", default_export_filename("png"), "PNG (*.png)")
        if path:
            try:
                save_png(self.current_settings, path, self.config.canvas_size)
            except OSError as e:
                QMessageBox.warning(self, "Export PNG", f"Export failed: {e}")

    def _on_export_svg(self):
        path, _ = QFileDialog.getSaveFileName(self, "Export SVG", default_export_filename("svg"), "SVG (*.svg)")
        if path:
            try:
                save_svg(self.current_settings, path, self.config.canvas_size)
            except OSError as e:
                QMessageBox.warning(self, "Export SVG", f"Export failed: {e}")

    def _on_export_gif(self):
        if self.is_exporting:
            return
        if not self.keyframes:
            QMessageBox.information(self, "Export GIF", "No animation to export - add keyframes first.")
            return
        path, _ = QFileDialog.getSaveFileName(self, "Export GIF", default_export_filename("gif"), "GIF (*.gif)")
        if not path:
            return

        if self.engine.is_playing():
            self.engine.pause()
        options = self._export_options()

        def on_frame(index: int, frame_count: int):
            fraction = index / frame_count if frame_count else 1.0
            self.export_progress.setValue(int(fraction * GENERATION_SHARE * 100))
            QApplication.processEvents()

        # Export controls stay disabled while frames are generated
        self.is_exporting = True
        self._update_transport()
        try:
            frames = self.engine.generate_frames(options.fps, on_frame)
            self.exporter.start_export(
                frames,
                options,
                path,
                on_progress=self.signals.export_progress.emit,
                on_finished=self.signals.export_finished.emit,
                on_error=lambda e: self.signals.export_failed.emit(str(e)),
            )
        except (NoKeyframesError, ExportInProgressError) as e:
            self.is_exporting = False
            self.export_progress.setValue(0)
            self._update_transport()
            QMessageBox.warning(self, "Export GIF", str(e))

    def _on_export_progress(self, fraction: float):
        self.export_progress.setValue(int((GENERATION_SHARE + fraction * (1 - GENERATION_SHARE)) * 100))

    def _on_export_finished(self, path: str):
        self.is_exporting = False
        self.export_progress.setValue(0)
        self._update_transport()
        self.status_label.setText(f"GIF saved: {path}")

    def _on_export_failed(self, message: str):
        self.is_exporting = False
        self.export_progress.setValue(0)
        self._update_transport()
        QMessageBox.warning(self, "Export GIF", f"Export failed: {message}")

    # ------------------------------------------------------------------
    # Options / help
    # ------------------------------------------------------------------

    def _on_log_level_change(self, level: str):
        """Set global log level and persist selection."""
        set_log_level(level)
        self.config.log_level = level.upper()
        self._sync_log_level_menu(self.config.log_level)

    def _sync_log_level_menu(self, active_level: str):
        """Update log level menu checkmarks."""
        if not hasattr(self, '_log_level_actions'):
            return
        lvl_upper = (active_level or "INFO").upper()
        for action in self._log_level_actions:
            action.blockSignals(True)
            action.setChecked(action.text().upper() == lvl_upper)
            action.blockSignals(False)

    def _on_about(self):
        QMessageBox.about(self, "About ringweave",
                          "ringweave v1.0\n\nRing-lattice art generator with keyframe animation.")

    def closeEvent(self, event):
        """Cleanup on close - stop playback and any running export, then persist"""
        self.status_timer.stop()
        if self.engine.is_playing():
            self.engine.pause()
        self.exporter.abort()
        self.exporter.wait(timeout=5.0)

        persist_runtime_ui_to_config(self, self.config)
        save_config(self.config)

        if self.keyframes:
            try:
                save_keyframes_file(self.keyframes_file, self.keyframes)
            except OSError as e:
                log_event("ERROR", "UI", "Failed to save keyframes on close", path=self.keyframes_file, error=e)

        event.accept()


def main():
    """Main entry point - backup if not launched via run.py"""
    app = QApplication(sys.argv)
    app.setStyle('Fusion')

    if getattr(sys, 'frozen', False):
        resource_dir = Path(getattr(sys, '_MEIPASS', Path(__file__).parent))
    else:
        resource_dir = Path(__file__).parent

    splash_path = resource_dir / 'splash_screen.png'
    if splash_path.exists():
        splash = QSplashScreen(QPixmap(str(splash_path)))
        splash.show()
        app.processEvents()
    else:
        splash = None

    window = RingweaveWindow()

    print("\nInitialization complete. Starting GUI...\n")
    if sys.stdout:
        sys.stdout.flush()

    if splash:
        splash.finish(window)

    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
