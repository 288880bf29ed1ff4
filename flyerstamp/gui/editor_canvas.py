"""editor_canvas.py – PlaceholderCanvas widget driving an EditorSession."""
from __future__ import annotations

from typing import Callable

from PIL import Image
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QImage, QPixmap
from PyQt6.QtWidgets import QLabel, QWidget

from flyerstamp.constants import RENDER_MODE_EDIT
from flyerstamp.editor import STATE_DRAGGING, STATE_RESIZING, EditorSession
from flyerstamp.scene import SceneRenderer

_HANDLE_CURSORS = {
    "nw": Qt.CursorShape.SizeFDiagCursor,
    "se": Qt.CursorShape.SizeFDiagCursor,
    "ne": Qt.CursorShape.SizeBDiagCursor,
    "sw": Qt.CursorShape.SizeBDiagCursor,
    "n": Qt.CursorShape.SizeVerCursor,
    "s": Qt.CursorShape.SizeVerCursor,
    "e": Qt.CursorShape.SizeHorCursor,
    "w": Qt.CursorShape.SizeHorCursor,
}


def pil_to_qpixmap(image: Image.Image) -> QPixmap:
    """Convert a PIL Image to a QPixmap (RGBA round-trip)."""
    rgba = image.convert("RGBA")
    data = rgba.tobytes("raw", "RGBA")
    q_image = QImage(data, rgba.width, rgba.height, QImage.Format.Format_RGBA8888)
    return QPixmap.fromImage(q_image.copy())


class PlaceholderCanvas(QLabel):
    def __init__(
        self,
        session: EditorSession,
        background: Image.Image,
        renderer: SceneRenderer | None = None,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.setAlignment(Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop)
        self.setMouseTracking(True)
        self.session = session
        self.background = background
        self.renderer = renderer or SceneRenderer()
        self.on_selection_changed: Callable[[], None] | None = None
        self.refresh()

    def set_session(self, session: EditorSession) -> None:
        self.session = session
        self.refresh()

    def refresh(self) -> None:
        target = self.session.target
        if target is None:
            width = max(1, int(round(self.background.width * self.session.scale)))
            height = max(1, int(round(self.background.height * self.session.scale)))
        else:
            width, height = target.width, target.height
        surface = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        selected = self.session.selected
        self.renderer.render(
            surface,
            self.session.template,
            self.session.scale,
            {},
            background=self.background,
            mode=RENDER_MODE_EDIT,
            selected_id=selected.id if selected is not None else None,
        )
        self.setPixmap(pil_to_qpixmap(surface))
        self.setFixedSize(width, height)

    def _notify(self) -> None:
        if self.on_selection_changed is not None:
            self.on_selection_changed()

    def _update_cursor(self, point: tuple[float, float]) -> None:
        handle = self.session.handle_at(point)
        if handle is not None:
            self.setCursor(_HANDLE_CURSORS[handle])
        elif self.session.hit_test(point) is not None:
            self.setCursor(Qt.CursorShape.SizeAllCursor)
        elif self.session.add_mode is not None:
            self.setCursor(Qt.CursorShape.CrossCursor)
        else:
            self.unsetCursor()

    def mousePressEvent(self, event) -> None:  # type: ignore[override]
        if event.button() != Qt.MouseButton.LeftButton or self.session.closed:
            super().mousePressEvent(event)
            return
        pos = event.position()
        point = (pos.x(), pos.y())
        handle = self.session.handle_at(point)
        if handle is not None:
            self.session.begin_resize(handle, point)
        elif not self.session.begin_drag(point):
            self.session.select_at(point)
        self.refresh()
        self._notify()
        event.accept()

    def mouseMoveEvent(self, event) -> None:  # type: ignore[override]
        pos = event.position()
        point = (pos.x(), pos.y())
        if self.session.state == STATE_DRAGGING:
            if self.session.drag_to(point):
                self.refresh()
        elif self.session.state == STATE_RESIZING:
            if self.session.resize_to(point):
                self.refresh()
        else:
            self._update_cursor(point)
        event.accept()

    def mouseReleaseEvent(self, event) -> None:  # type: ignore[override]
        if event.button() != Qt.MouseButton.LeftButton:
            super().mouseReleaseEvent(event)
            return
        pos = event.position()
        point = (pos.x(), pos.y())
        if self.session.state == STATE_DRAGGING:
            self.session.end_drag(point)
        elif self.session.state == STATE_RESIZING:
            self.session.end_resize(point)
        self.refresh()
        self._notify()
        event.accept()
