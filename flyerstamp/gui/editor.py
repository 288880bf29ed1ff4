from __future__ import annotations

import logging
import sys
from pathlib import Path

from PyQt6.QtGui import QAction, QKeySequence
from PyQt6.QtWidgets import (
    QApplication,
    QComboBox,
    QDoubleSpinBox,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QScrollArea,
    QVBoxLayout,
    QWidget,
)

from flyerstamp.config import font_dirs, load_config
from flyerstamp.constants import (
    ALIGN_OPTIONS_HORIZONTAL,
    FONT_STYLE_OPTIONS,
    HOLE_SHAPE_OPTIONS,
    PLACEHOLDER_KIND_IMAGE,
    PLACEHOLDER_KIND_TEXT,
    TEXT_TRANSFORM_OPTIONS,
)
from flyerstamp.decoders.image_decoder import decode_image
from flyerstamp.editor import EditorLimits, EditorSession
from flyerstamp.geometry import compute_render_target
from flyerstamp.gui.editor_canvas import PlaceholderCanvas
from flyerstamp.models import ImagePlaceholder, TextPlaceholder
from flyerstamp.scene import SceneRenderer
from flyerstamp.template_loader import load_template, save_template

LOGGER = logging.getLogger(__name__)


class FlyerStampEditorWindow(QMainWindow):
    def __init__(self, template_path: Path, background_path: Path) -> None:
        super().__init__()
        self.setWindowTitle(f"FlyerStamp Editor - {template_path.name}")
        self.resize(1280, 860)

        self.cfg = load_config()
        self.template_path = template_path
        self.background = decode_image(background_path)
        self.target = compute_render_target(
            float(self.cfg.get("editor_container_width", 800)),
            self.background.width,
            self.background.height,
            policy=str(self.cfg.get("editor_scale_policy")),
            max_height=float(self.cfg.get("preview_max_height") or 600),
        )
        self.limits = EditorLimits.from_config(self.cfg)
        self.session = EditorSession(load_template(template_path), self.target, self.limits)

        self._setup_ui()
        self._setup_shortcuts()
        self._sync_style_panel()
        self._set_status(f"Scale {self.target.scale:.3f}. Click a placeholder to edit it.")

    def _setup_ui(self) -> None:
        root = QWidget()
        self.setCentralWidget(root)
        root_layout = QHBoxLayout(root)
        root_layout.setContentsMargins(10, 10, 10, 10)

        left_panel = QWidget()
        left_panel.setMaximumWidth(360)
        left_layout = QVBoxLayout(left_panel)

        self.add_image_button = QPushButton("Add Image")
        self.add_image_button.setCheckable(True)
        self.add_image_button.toggled.connect(lambda on: self._set_add_mode(PLACEHOLDER_KIND_IMAGE, on))
        left_layout.addWidget(self.add_image_button)

        self.add_text_button = QPushButton("Add Text")
        self.add_text_button.setCheckable(True)
        self.add_text_button.toggled.connect(lambda on: self._set_add_mode(PLACEHOLDER_KIND_TEXT, on))
        left_layout.addWidget(self.add_text_button)

        delete_button = QPushButton("Delete")
        delete_button.clicked.connect(self.delete_selected)
        left_layout.addWidget(delete_button)

        self._build_style_group(left_layout)
        left_layout.addStretch(1)

        save_button = QPushButton("Save")
        save_button.clicked.connect(self.save)
        left_layout.addWidget(save_button)

        cancel_button = QPushButton("Cancel")
        cancel_button.clicked.connect(self.close)
        left_layout.addWidget(cancel_button)

        self.canvas = PlaceholderCanvas(self.session, self.background, SceneRenderer(font_dirs(self.cfg)))
        self.canvas.on_selection_changed = self._sync_style_panel
        scroll = QScrollArea()
        scroll.setWidget(self.canvas)

        root_layout.addWidget(left_panel)
        root_layout.addWidget(scroll, stretch=1)
        self.setStatusBar(self.statusBar())

    def _build_style_group(self, parent_layout: QVBoxLayout) -> None:
        group = QGroupBox("Placeholder")
        form = QFormLayout(group)

        self.label_edit = QLineEdit()
        form.addRow("Label", self.label_edit)

        self.hole_shape_combo = QComboBox()
        self.hole_shape_combo.addItems(HOLE_SHAPE_OPTIONS)
        form.addRow("Shape", self.hole_shape_combo)

        self.sample_text_edit = QLineEdit()
        form.addRow("Sample text", self.sample_text_edit)

        self.font_family_edit = QLineEdit()
        form.addRow("Font", self.font_family_edit)

        self.font_size_spin = QDoubleSpinBox()
        self.font_size_spin.setRange(self.limits.min_font_size, 999.0)
        form.addRow("Font size", self.font_size_spin)

        self.font_style_combo = QComboBox()
        self.font_style_combo.addItems(FONT_STYLE_OPTIONS)
        form.addRow("Style", self.font_style_combo)

        self.align_combo = QComboBox()
        self.align_combo.addItems(ALIGN_OPTIONS_HORIZONTAL)
        form.addRow("Align", self.align_combo)

        self.transform_combo = QComboBox()
        self.transform_combo.addItems(TEXT_TRANSFORM_OPTIONS)
        form.addRow("Transform", self.transform_combo)

        self.color_edit = QLineEdit()
        form.addRow("Color", self.color_edit)

        apply_button = QPushButton("Apply")
        apply_button.clicked.connect(self.apply_style)
        form.addRow(apply_button)

        self.style_group = group
        parent_layout.addWidget(group)

    def _setup_shortcuts(self) -> None:
        action_save = QAction(self)
        action_save.setShortcut(QKeySequence("Ctrl+S"))
        action_save.triggered.connect(self.save)
        self.addAction(action_save)

        action_delete = QAction(self)
        action_delete.setShortcut(QKeySequence.StandardKey.Delete)
        action_delete.triggered.connect(self.delete_selected)
        self.addAction(action_delete)

    def _set_status(self, message: str) -> None:
        self.statusBar().showMessage(message)

    def _set_add_mode(self, kind: str, enabled: bool) -> None:
        other = self.add_text_button if kind == PLACEHOLDER_KIND_IMAGE else self.add_image_button
        if enabled:
            other.blockSignals(True)
            other.setChecked(False)
            other.blockSignals(False)
            self.session.set_add_mode(kind)
            if not self.session.can_add(kind):
                self._set_status(f"Limit reached for {kind} placeholders.")
            else:
                self._set_status(f"Click the canvas to add a {kind} placeholder.")
        elif self.session.add_mode == kind:
            self.session.set_add_mode(None)

    def _sync_style_panel(self) -> None:
        placeholder = self.session.selected
        self.style_group.setEnabled(placeholder is not None)
        if placeholder is None:
            return
        is_text = isinstance(placeholder, TextPlaceholder)
        self.label_edit.setText(placeholder.label_text)
        self.hole_shape_combo.setEnabled(isinstance(placeholder, ImagePlaceholder))
        for widget in (
            self.sample_text_edit,
            self.font_family_edit,
            self.font_size_spin,
            self.font_style_combo,
            self.align_combo,
            self.transform_combo,
            self.color_edit,
        ):
            widget.setEnabled(is_text)
        if isinstance(placeholder, ImagePlaceholder):
            self.hole_shape_combo.setCurrentText(placeholder.hole_shape)
            return
        self.sample_text_edit.setText(placeholder.sample_text)
        self.font_family_edit.setText(placeholder.font_family)
        # 控件里显示的是屏幕像素
        self.font_size_spin.setValue(placeholder.font_size * self.session.scale)
        self.font_style_combo.setCurrentText(placeholder.font_style)
        self.align_combo.setCurrentText(placeholder.text_align)
        self.transform_combo.setCurrentText(placeholder.text_transform)
        self.color_edit.setText(placeholder.color)

    def apply_style(self) -> None:
        placeholder = self.session.selected
        if placeholder is None:
            return
        if isinstance(placeholder, ImagePlaceholder):
            self.session.update_style(
                label_text=self.label_edit.text(),
                hole_shape=self.hole_shape_combo.currentText(),
            )
        else:
            self.session.update_style(
                label_text=self.label_edit.text(),
                sample_text=self.sample_text_edit.text(),
                font_family=self.font_family_edit.text(),
                font_size=self.font_size_spin.value(),
                font_style=self.font_style_combo.currentText(),
                text_align=self.align_combo.currentText(),
                text_transform=self.transform_combo.currentText(),
                color=self.color_edit.text(),
            )
        self.canvas.refresh()
        self._sync_style_panel()

    def delete_selected(self) -> None:
        if self.session.delete_selected():
            self.canvas.refresh()
            self._sync_style_panel()

    def save(self) -> None:
        template = self.session.commit()
        try:
            save_template(template, self.template_path)
        except OSError as exc:
            QMessageBox.critical(self, "Save Error", str(exc))
            self._set_status(f"Template save failed: {exc}")
        else:
            self._set_status(f"Template saved: {self.template_path}")
        # 继续编辑：基于已提交的模板开新会话
        self.session = EditorSession(template, self.target, self.limits)
        self.session.set_add_mode(
            PLACEHOLDER_KIND_IMAGE
            if self.add_image_button.isChecked()
            else PLACEHOLDER_KIND_TEXT
            if self.add_text_button.isChecked()
            else None
        )
        self.canvas.set_session(self.session)
        self._sync_style_panel()

    def closeEvent(self, event) -> None:  # type: ignore[override]
        if not self.session.closed:
            self.session.cancel()
            LOGGER.info("editor session cancelled")
        super().closeEvent(event)


def launch_gui(template_path: Path, background_path: Path) -> None:
    app = QApplication.instance() or QApplication(sys.argv)
    window = FlyerStampEditorWindow(template_path=template_path, background_path=background_path)
    window.show()
    app.exec()
