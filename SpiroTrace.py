import argparse
import logging
import sys
from typing import Dict, List, Optional, Tuple

from PySide6.QtCore import QByteArray, QEvent, QPointF, Qt, QTimer
from PySide6.QtGui import QColor, QPainter
from PySide6.QtWidgets import (
    QApplication,
    QCheckBox,
    QColorDialog,
    QComboBox,
    QFormLayout,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QScrollArea,
    QSizePolicy,
    QSlider,
    QVBoxLayout,
    QWidget,
)

from colors import PALETTE
from drawing import TraceLayer, composite, theme_for
from localisation import (
    DEFAULT_LANGUAGE,
    language_display_name,
    next_language,
    orbit_label,
    resolve_language,
    shape_label,
    tr,
)
from shape_geometry import ShapeKind
from spirotrace_core import SpiroSession
from spirotrace_math import (
    ConfigError,
    OrbitMode,
    SpiroParams,
    get_backend_name,
    list_backends,
    set_backend,
)
from storage import (
    PresetStore,
    load_app_state,
    params_from_dict,
    params_to_dict,
    save_app_state,
)
from url_params import build_share_url

_LOGGER = logging.getLogger(__name__)

FRAME_INTERVAL_MS = 16
WHEEL_ZOOM_STEP = 1.1
SHARE_BASE_URL = "https://spirotrace.local/"

# field -> (min, max, step) des contrôles
PARAM_RANGES = {
    "fixed_scale": (30.0, 200.0, 1.0),
    "elongation": (0.0, 5.0, 0.1),
    "moving_radius": (2.0, 150.0, 1.0),
    "pen_offset": (0.0, 150.0, 1.0),
    "stroke_width": (0.5, 20.0, 0.5),
    "speed": (1.0, 50.0, 1.0),
}
PARAM_LABEL_KEYS = {
    "fixed_scale": "fixed_radius",
    "elongation": "elongation",
    "moving_radius": "moving_radius",
    "pen_offset": "pen_offset",
    "stroke_width": "thickness",
    "speed": "speed",
}


class SpiroCanvas(QWidget):
    """
    Zone de dessin : l'horloge d'images fait avancer la session, le
    paintEvent compose le tracé conservé et les guides.
    """

    def __init__(self, session: SpiroSession, parent=None):
        super().__init__(parent)
        self.session = session
        self.dark_mode = True
        self.layer = TraceLayer()
        self._drag_last: Optional[QPointF] = None
        self._pinch_last: Optional[Tuple[Tuple[float, float], Tuple[float, float]]] = None

        self.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Expanding)
        self.setMinimumSize(320, 320)
        self.setMouseTracking(False)
        self.setAttribute(Qt.WA_AcceptTouchEvents, True)

        self._timer = QTimer(self)
        self._timer.setInterval(FRAME_INTERVAL_MS)
        self._timer.timeout.connect(self._on_frame)

    def _viewport(self) -> Tuple[float, float]:
        return float(self.width()), float(self.height())

    # ----- Horloge -----

    def sync_clock(self):
        if self.session.is_playing:
            if not self._timer.isActive():
                self._timer.start()
        else:
            self._timer.stop()

    def _on_frame(self):
        self.session.tick()
        if not self.session.is_playing:
            self._timer.stop()
        self.update()

    # ----- Rendu -----

    def paintEvent(self, event):
        self.layer.sync(
            self.session.trace,
            scale=self.session.view.zoom * self.devicePixelRatioF(),
        )
        painter = QPainter(self)
        try:
            composite(
                painter,
                layer=self.layer,
                overlay=self.session.overlay(),
                view=self.session.view,
                viewport=self._viewport(),
                pen_color=self.session.params.color,
                theme=theme_for(self.dark_mode),
            )
        finally:
            painter.end()

    # ----- Navigation -----

    def mousePressEvent(self, event):
        if event.button() == Qt.LeftButton:
            self._drag_last = event.position()
            self.setCursor(Qt.ClosedHandCursor)
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        if self._drag_last is not None:
            pos = event.position()
            self.session.view.pan_by(pos.x() - self._drag_last.x(), pos.y() - self._drag_last.y())
            self._drag_last = pos
            self.update()
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.LeftButton:
            self._drag_last = None
            self.unsetCursor()
        super().mouseReleaseEvent(event)

    def wheelEvent(self, event):
        steps = event.angleDelta().y() / 120.0
        if steps:
            pos = event.position()
            self.session.view.zoom_by(
                WHEEL_ZOOM_STEP ** steps,
                anchor=(pos.x(), pos.y()),
                viewport=self._viewport(),
            )
            self.update()
        event.accept()

    def event(self, event):
        if event.type() == QEvent.NativeGesture and event.gestureType() == Qt.ZoomNativeGesture:
            pos = event.position()
            self.session.view.zoom_by(
                1.0 + event.value(),
                anchor=(pos.x(), pos.y()),
                viewport=self._viewport(),
            )
            self.update()
            return True
        if event.type() in (
            QEvent.TouchBegin,
            QEvent.TouchUpdate,
            QEvent.TouchEnd,
            QEvent.TouchCancel,
        ):
            self._on_touch(event)
            return True
        return super().event(event)

    def _on_touch(self, event):
        """Un doigt fait glisser la vue, deux doigts zooment."""
        points = event.points()
        if event.type() in (QEvent.TouchEnd, QEvent.TouchCancel) or len(points) > 2:
            self._pinch_last = None
        elif len(points) == 2:
            current = tuple((p.position().x(), p.position().y()) for p in points)
            if self._pinch_last is not None:
                self.session.view.pinch(self._pinch_last, current, self._viewport())
                self.update()
            self._pinch_last = current
        elif len(points) == 1 and event.type() == QEvent.TouchUpdate:
            self._pinch_last = None
            delta = points[0].position() - points[0].lastPosition()
            self.session.view.pan_by(delta.x(), delta.y())
            self.update()
        event.accept()

    def reset_view(self):
        self.session.view.reset()
        self.update()


class _ParamSlider(QWidget):
    """Curseur entier mis à l'échelle pour un champ flottant, avec sa valeur."""

    def __init__(self, minimum: float, maximum: float, step: float, parent=None):
        super().__init__(parent)
        self.step = step
        self.slider = QSlider(Qt.Horizontal)
        self.slider.setRange(round(minimum / step), round(maximum / step))
        self.value_label = QLabel()
        self.value_label.setMinimumWidth(36)
        self.value_label.setAlignment(Qt.AlignRight | Qt.AlignVCenter)
        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self.slider, 1)
        layout.addWidget(self.value_label)
        self.slider.valueChanged.connect(self._refresh_label)

    def value(self) -> float:
        return round(self.slider.value() * self.step, 6)

    def set_value(self, value: float):
        self.slider.blockSignals(True)
        self.slider.setValue(round(value / self.step))
        self.slider.blockSignals(False)
        self._show(value)

    def _refresh_label(self, _raw: int):
        self._show(self.value())

    def _show(self, value: float):
        self.value_label.setText(f"{value:g}")


class SpiroWindow(QWidget):
    def __init__(
        self,
        language: Optional[str] = None,
        query: Optional[str] = None,
        state_path: Optional[str] = None,
        presets_path: Optional[str] = None,
    ):
        super().__init__()
        self.language = DEFAULT_LANGUAGE
        self.dark_mode = True
        self._state_path = state_path
        self._geometry_restored = False
        self.session = SpiroSession()
        self.preset_store = PresetStore(presets_path)
        self._presets = []

        self.canvas = SpiroCanvas(self.session)
        self._build_ui()

        self._apply_state_dict(load_app_state(state_path))
        if language:
            self.language = resolve_language(language)
        if query:
            self.session.apply_query(query)

        self._reload_presets()
        self._sync_controls()
        self.apply_language()
        self._apply_theme()

    # ----- Construction -----

    def _build_ui(self):
        main_layout = QHBoxLayout(self)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)
        main_layout.addWidget(self.canvas, 1)

        panel = QWidget()
        panel_layout = QVBoxLayout(panel)

        # Barre d'actions
        actions = QGridLayout()
        self.auto_btn = QPushButton()
        self.push_btn = QPushButton()
        self.clear_btn = QPushButton()
        self.guides_btn = QPushButton()
        self.guides_btn.setCheckable(True)
        self.theme_btn = QPushButton()
        self.lang_btn = QPushButton()
        self.reset_view_btn = QPushButton()
        self.share_btn = QPushButton()
        for i, btn in enumerate(
            (
                self.auto_btn,
                self.push_btn,
                self.clear_btn,
                self.guides_btn,
                self.theme_btn,
                self.lang_btn,
                self.reset_view_btn,
                self.share_btn,
            )
        ):
            actions.addWidget(btn, i // 2, i % 2)
        panel_layout.addLayout(actions)

        self.auto_btn.clicked.connect(self._toggle_auto)
        self.push_btn.pressed.connect(self._push_start)
        self.push_btn.released.connect(self._push_end)
        self.clear_btn.clicked.connect(self._clear)
        self.guides_btn.toggled.connect(self._set_guides)
        self.theme_btn.clicked.connect(self._toggle_theme)
        self.lang_btn.clicked.connect(self._switch_language)
        self.reset_view_btn.clicked.connect(self.canvas.reset_view)
        self.share_btn.clicked.connect(self._share)

        # Paramètres
        form = QFormLayout()
        self._form_labels: Dict[str, QLabel] = {}

        self.shape_combo = QComboBox()
        for kind in ShapeKind:
            self.shape_combo.addItem(kind.value, kind.value)
        self.shape_combo.currentIndexChanged.connect(
            lambda _i: self._on_param_changed("shape", ShapeKind(self.shape_combo.currentData()))
        )
        self._add_form_row(form, "shape", self.shape_combo)

        self.mode_combo = QComboBox()
        for mode in OrbitMode:
            self.mode_combo.addItem(mode.value, mode.value)
        self.mode_combo.currentIndexChanged.connect(
            lambda _i: self._on_param_changed("orbit_mode", OrbitMode(self.mode_combo.currentData()))
        )
        self._add_form_row(form, "gear_type", self.mode_combo)

        self.param_sliders: Dict[str, _ParamSlider] = {}
        for field, (lo, hi, step) in PARAM_RANGES.items():
            slider = _ParamSlider(lo, hi, step)
            slider.slider.valueChanged.connect(
                lambda _raw, f=field, s=slider: self._on_param_changed(f, s.value())
            )
            self.param_sliders[field] = slider
            self._add_form_row(form, PARAM_LABEL_KEYS[field], slider)

        self.reverse_check = QCheckBox()
        self.reverse_check.toggled.connect(
            lambda checked: self._on_param_changed("reverse_rotation", checked)
        )
        form.addRow(self.reverse_check)
        panel_layout.addLayout(form)

        # Couleur
        self.color_label = QLabel()
        panel_layout.addWidget(self.color_label)
        palette_layout = QHBoxLayout()
        palette_layout.setSpacing(2)
        self.palette_buttons: List[QPushButton] = []
        for color in PALETTE:
            btn = QPushButton()
            btn.setFixedSize(24, 24)
            btn.setStyleSheet(f"background-color: {color}; border: 1px solid #888;")
            btn.clicked.connect(lambda _c=False, value=color: self._on_param_changed("color", value))
            palette_layout.addWidget(btn)
            self.palette_buttons.append(btn)
        self.custom_color_btn = QPushButton()
        self.custom_color_btn.clicked.connect(self._pick_custom_color)
        palette_layout.addWidget(self.custom_color_btn)
        panel_layout.addLayout(palette_layout)

        # Aléatoire
        self.random_title = QLabel()
        self.random_desc = QLabel()
        self.random_desc.setWordWrap(True)
        self.surprise_btn = QPushButton()
        self.surprise_btn.clicked.connect(self._surprise)
        panel_layout.addWidget(self.random_title)
        panel_layout.addWidget(self.random_desc)
        panel_layout.addWidget(self.surprise_btn)

        # Bibliothèque
        self.library_label = QLabel()
        panel_layout.addWidget(self.library_label)
        save_row = QHBoxLayout()
        self.preset_name_edit = QLineEdit()
        self.preset_save_btn = QPushButton()
        self.preset_save_btn.clicked.connect(self._save_preset)
        self.preset_name_edit.returnPressed.connect(self._save_preset)
        save_row.addWidget(self.preset_name_edit, 1)
        save_row.addWidget(self.preset_save_btn)
        panel_layout.addLayout(save_row)
        self.preset_list = QListWidget()
        self.preset_list.itemDoubleClicked.connect(lambda _item: self._load_preset())
        panel_layout.addWidget(self.preset_list, 1)
        preset_btns = QHBoxLayout()
        self.preset_load_btn = QPushButton()
        self.preset_delete_btn = QPushButton()
        self.preset_load_btn.clicked.connect(self._load_preset)
        self.preset_delete_btn.clicked.connect(self._delete_preset)
        preset_btns.addWidget(self.preset_load_btn)
        preset_btns.addWidget(self.preset_delete_btn)
        panel_layout.addLayout(preset_btns)

        self.status_label = QLabel()
        self.status_label.setWordWrap(True)
        self.status_label.setStyleSheet("color: #d33;")
        panel_layout.addWidget(self.status_label)

        scroll = QScrollArea()
        scroll.setWidget(panel)
        scroll.setWidgetResizable(True)
        scroll.setFixedWidth(340)
        main_layout.addWidget(scroll)

    def _add_form_row(self, form: QFormLayout, key: str, widget: QWidget):
        label = QLabel()
        self._form_labels[key] = label
        form.addRow(label, widget)

    # ----- Langue / thème -----

    def apply_language(self):
        lang = self.language
        self.setWindowTitle(tr(lang, "app_title"))
        self.push_btn.setText(tr(lang, "push_draw"))
        self.clear_btn.setText(tr(lang, "clear"))
        self.guides_btn.setText(tr(lang, "guides"))
        self.theme_btn.setText(tr(lang, "theme"))
        self.lang_btn.setText(language_display_name(next_language(lang)))
        self.reset_view_btn.setText(tr(lang, "reset_view"))
        self.share_btn.setText(tr(lang, "share"))
        for key, label in self._form_labels.items():
            label.setText(tr(lang, key))
        for i in range(self.shape_combo.count()):
            self.shape_combo.setItemText(i, shape_label(self.shape_combo.itemData(i), lang))
        for i in range(self.mode_combo.count()):
            self.mode_combo.setItemText(i, orbit_label(self.mode_combo.itemData(i), lang))
        self.reverse_check.setText(tr(lang, "reverse_rotation"))
        self.color_label.setText(tr(lang, "pen_color"))
        self.custom_color_btn.setText(tr(lang, "custom_color"))
        self.random_title.setText(tr(lang, "random_title"))
        self.random_desc.setText(tr(lang, "random_desc"))
        self.surprise_btn.setText(tr(lang, "surprise"))
        self.library_label.setText(tr(lang, "library"))
        self.preset_name_edit.setPlaceholderText(tr(lang, "save_placeholder"))
        self.preset_save_btn.setText(tr(lang, "save"))
        self.preset_load_btn.setText(tr(lang, "load"))
        self.preset_delete_btn.setText(tr(lang, "delete"))
        self._refresh_auto_button()

    def _switch_language(self):
        self.language = next_language(self.language)
        _LOGGER.info("Language switched to %s", self.language)
        self.apply_language()

    def _toggle_theme(self):
        self.dark_mode = not self.dark_mode
        self._apply_theme()

    def _apply_theme(self):
        self.canvas.dark_mode = self.dark_mode
        self.canvas.update()

    # ----- Synchronisation contrôles <-> session -----

    def _sync_controls(self):
        params = self.session.params
        for combo, value in (
            (self.shape_combo, ShapeKind(params.shape).value),
            (self.mode_combo, OrbitMode(params.orbit_mode).value),
        ):
            combo.blockSignals(True)
            combo.setCurrentIndex(combo.findData(value))
            combo.blockSignals(False)
        for field, slider in self.param_sliders.items():
            slider.set_value(getattr(params, field))
        self.reverse_check.blockSignals(True)
        self.reverse_check.setChecked(params.reverse_rotation)
        self.reverse_check.blockSignals(False)
        self.guides_btn.blockSignals(True)
        self.guides_btn.setChecked(self.session.show_guides)
        self.guides_btn.blockSignals(False)
        self.custom_color_btn.setStyleSheet(f"border: 2px solid {params.color};")
        self._refresh_auto_button()

    def _show_error(self, exc: Optional[ConfigError]):
        if exc is None:
            self.status_label.clear()
        else:
            self.status_label.setText(f"{tr(self.language, 'invalid_setting')} {exc}")

    def _on_param_changed(self, field: str, value):
        error = self.session.try_update_params(**{field: value})
        self._show_error(error)
        # une valeur refusée fait revenir le contrôle à l'état accepté
        self._sync_controls()
        self.canvas.update()

    def _pick_custom_color(self):
        color = QColorDialog.getColor(QColor(self.session.params.color), self)
        if color.isValid():
            self._on_param_changed("color", color.name())

    # ----- Lecture -----

    def _refresh_auto_button(self):
        key = "auto_stop" if self.session.auto_playing else "auto_draw"
        self.auto_btn.setText(tr(self.language, key))

    def _toggle_auto(self):
        self.session.toggle_auto()
        self.canvas.sync_clock()
        self._refresh_auto_button()

    def _push_start(self):
        self.session.push_start()
        self.canvas.sync_clock()

    def _push_end(self):
        self.session.push_end()
        self.canvas.sync_clock()

    def _clear(self):
        self.session.clear()
        self.canvas.sync_clock()
        self._refresh_auto_button()
        self.canvas.update()

    def _set_guides(self, checked: bool):
        self.session.show_guides = checked
        self.canvas.update()

    def _share(self):
        url = build_share_url(SHARE_BASE_URL, self.session.params)
        QApplication.clipboard().setText(url)
        self.status_label.setText(tr(self.language, "copied"))
        QTimer.singleShot(2000, self.status_label.clear)

    def _surprise(self):
        self.session.randomize()
        self._show_error(None)
        self._sync_controls()
        self.canvas.update()

    # ----- Bibliothèque -----

    def _reload_presets(self, presets=None):
        self._presets = self.preset_store.load() if presets is None else presets
        self.preset_list.clear()
        for preset in self._presets:
            item = QListWidgetItem(preset.name)
            item.setData(Qt.UserRole, preset.id)
            self.preset_list.addItem(item)

    def _selected_preset(self):
        item = self.preset_list.currentItem()
        if item is None:
            return None
        preset_id = item.data(Qt.UserRole)
        for preset in self._presets:
            if preset.id == preset_id:
                return preset
        return None

    def _save_preset(self):
        presets = self.preset_store.save(self.preset_name_edit.text(), self.session.params)
        self.preset_name_edit.clear()
        self._reload_presets(presets)

    def _load_preset(self):
        preset = self._selected_preset()
        if preset is None:
            return
        # la vitesse courante n'est pas écrasée par un motif
        params = preset.params.with_changes(speed=self.session.params.speed)
        try:
            self.session.set_params(params)
        except ConfigError as exc:
            _LOGGER.warning("Preset %s rejected: %s", preset.id, exc)
            self._show_error(exc)
            return
        self._show_error(None)
        self._sync_controls()
        self.canvas.update()

    def _delete_preset(self):
        preset = self._selected_preset()
        if preset is not None:
            self._reload_presets(self.preset_store.delete(preset.id))

    # ----- Persistance -----

    def _gather_state_dict(self) -> dict:
        data = {
            "language": self.language,
            "dark_mode": self.dark_mode,
            "show_guides": self.session.show_guides,
            "params": params_to_dict(self.session.params),
        }
        geom = self.saveGeometry()
        if geom and not geom.isEmpty():
            data["window_geometry"] = bytes(geom.toBase64()).decode("ascii")
        return data

    def _apply_state_dict(self, data: dict):
        if isinstance(data.get("language"), str):
            self.language = resolve_language(data["language"])
        if isinstance(data.get("dark_mode"), bool):
            self.dark_mode = data["dark_mode"]
        if isinstance(data.get("show_guides"), bool):
            self.session.show_guides = data["show_guides"]
        if "params" in data:
            params = params_from_dict(data["params"], SpiroParams())
            try:
                self.session.set_params(params)
            except ConfigError as exc:
                _LOGGER.warning("Saved parameters rejected, using defaults: %s", exc)
        geom_b64 = data.get("window_geometry")
        if isinstance(geom_b64, str) and geom_b64:
            geom_bytes = QByteArray.fromBase64(geom_b64.encode("ascii"))
            if not geom_bytes.isEmpty() and self.restoreGeometry(geom_bytes):
                self._geometry_restored = True

    def _save_persisted_state(self):
        try:
            save_app_state(self._gather_state_dict(), self._state_path)
        except OSError as exc:
            _LOGGER.warning("Cannot save application state: %s", exc)

    def closeEvent(self, event):
        try:
            self.session.stop_auto()
            self.canvas.sync_clock()
            self._save_persisted_state()
        finally:
            super().closeEvent(event)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="spirotrace", description="Interactive gear-trace drawing")
    parser.add_argument("--lang", default=None, help="interface language (en, zh)")
    parser.add_argument(
        "--backend",
        default=None,
        help="math backend: " + ", ".join(b.name for b in list_backends()),
    )
    parser.add_argument("--params", default=None, help="shared query string or URL to start from")
    parser.add_argument("--log-level", default="WARNING", help="logging level (DEBUG, INFO, ...)")
    return parser


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    args, qt_args = build_arg_parser().parse_known_args(argv)

    level = getattr(logging, str(args.log_level).upper(), None)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.backend:
        try:
            set_backend(args.backend)
        except ValueError as exc:
            _LOGGER.error("%s; keeping %s backend", exc, get_backend_name())

    app = QApplication([sys.argv[0]] + qt_args)
    window = SpiroWindow(language=args.lang, query=args.params)
    if not window._geometry_restored:
        window.resize(1200, 800)
    window.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
