"""Drawing area canvas widget for measuring shapes."""

from __future__ import annotations

import logging
import math
from typing import List, Optional

from PyQt6.QtCore import Qt, QPointF, QRectF, QSize, pyqtSignal
from PyQt6.QtGui import (
    QPainter, QColor, QPen, QPolygonF, QPixmap, QImage,
    QMouseEvent, QKeyEvent, QWheelEvent, QKeySequence
)
from PyQt6.QtWidgets import QWidget

from ..core.config import AppConfig
from ..core.editor import EditorMode, ShapeEditor
from ..core.handles import Handle, HandleKind, handles_for, top_anchor
from ..core.models import (
    SHAPE_COLORS, EllipseGeometry, PolygonGeometry, RectangleGeometry, Shape, ShapeType
)

logger = logging.getLogger(__name__)

SELECTED_COLOR = QColor("#3b82f6")
SCALE_BAR_COLOR = QColor("#f59e0b")
HANDLE_COLOR = QColor("#ffffff")
HANDLE_HOVER_COLOR = QColor("#fbbf24")


class DrawingArea(QWidget):
    """
    Canvas widget showing the image and the measured shapes.

    Maps Qt mouse and key events to image coordinates and forwards them
    to the owned :class:`ShapeEditor`; paints whatever the editor holds.
    """

    # Signals
    zoom_changed = pyqtSignal(float)
    cursor_moved = pyqtSignal(QPointF)  # Image coordinates
    cursor_left = pyqtSignal()

    # Constants
    MIN_ZOOM = 0.2
    MAX_ZOOM = 5.0
    ZOOM_FACTOR = 1.1

    def __init__(self, config: Optional[AppConfig] = None, parent: Optional[QWidget] = None) -> None:
        """Initialize the drawing area."""
        super().__init__(parent)

        self.config = config or AppConfig()
        self.editor = ShapeEditor(self.config, self)
        self.scale_factor = 1.0
        self._pixmap: Optional[QPixmap] = None

        self.editor.shapes_changed.connect(self.update)
        self.editor.selection_changed.connect(lambda _: self.update())
        self.editor.scale_changed.connect(self.update)
        self.editor.mode_changed.connect(lambda _: self._update_cursor())

        # Widget setup
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

    # === Image ===

    def pixmap(self) -> Optional[QPixmap]:
        """Return the current pixmap."""
        return self._pixmap

    def set_image(self, pixmap: QPixmap) -> None:
        """Show a new image and reset the editor for it."""
        self._pixmap = pixmap
        self.editor.load_image(pixmap.width(), pixmap.height())
        self._update_size()
        self.update()

    def clear(self) -> None:
        """Remove the image and all shapes."""
        self._pixmap = None
        self.editor.reset()
        self._update_size()
        self.update()

    # === Zoom ===

    def set_scale_factor(self, factor: float) -> None:
        """
        Set the zoom scale factor.

        Args:
            factor: Scale factor (0.2 to 5.0)
        """
        self.scale_factor = max(min(factor, self.MAX_ZOOM), self.MIN_ZOOM)
        self._update_size()
        self.update()
        self.zoom_changed.emit(self.scale_factor)

    def fit_to(self, size: QSize) -> None:
        """Zoom so the whole image fits into ``size``."""
        if not self._pixmap or self._pixmap.isNull():
            return
        factor = min(
            size.width() / self._pixmap.width(),
            size.height() / self._pixmap.height()
        )
        self.set_scale_factor(factor)

    def _update_size(self) -> None:
        if self._pixmap and not self._pixmap.isNull():
            self.setFixedSize(
                int(self._pixmap.width() * self.scale_factor),
                int(self._pixmap.height() * self.scale_factor)
            )
        else:
            self.setFixedSize(0, 0)

    # === Coordinate Transform Methods ===

    def _transform_pos(self, pos: QPointF) -> QPointF:
        """Transform widget position to image coordinates."""
        return QPointF(pos.x() / self.scale_factor, pos.y() / self.scale_factor)

    # === Event Handlers ===

    def wheelEvent(self, event: QWheelEvent) -> None:
        """Handle mouse wheel for zooming."""
        if event.modifiers() == Qt.KeyboardModifier.ControlModifier:
            delta = event.angleDelta().y()
            zoom_factor = self.ZOOM_FACTOR if delta > 0 else 1 / self.ZOOM_FACTOR
            self.set_scale_factor(self.scale_factor * zoom_factor)
            event.accept()
        else:
            super().wheelEvent(event)

    def mousePressEvent(self, event: QMouseEvent) -> None:
        """Handle mouse press events."""
        self.setFocus()
        if event.button() != Qt.MouseButton.LeftButton:
            return
        self.editor.pointer_down(self._transform_pos(event.position()))
        self._update_cursor()
        self.update()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        """Handle mouse move events."""
        pos = self._transform_pos(event.position())
        self.editor.pointer_move(pos)
        self._update_cursor()
        self.update()
        self.cursor_moved.emit(pos)

    def leaveEvent(self, event) -> None:
        """Notify listeners that the cursor left the canvas."""
        self.cursor_left.emit()
        super().leaveEvent(event)

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        """Handle mouse release events."""
        if event.button() != Qt.MouseButton.LeftButton:
            return
        self.editor.pointer_up(self._transform_pos(event.position()))
        self._update_cursor()
        self.update()

    def mouseDoubleClickEvent(self, event: QMouseEvent) -> None:
        """Handle double-click to close a polygon."""
        if event.button() != Qt.MouseButton.LeftButton:
            return
        self.editor.double_click(self._transform_pos(event.position()))
        self.update()

    def keyPressEvent(self, event: QKeyEvent) -> None:
        """Handle key press events."""
        if self.config.cancel_key and self._matches_key_sequence(event, self.config.cancel_key):
            self.editor.cancel()
            self.update()
            event.accept()
            return
        if any(self._matches_key_sequence(event, key) for key in self.config.delete_shape_keys):
            if self.editor.delete_selected():
                event.accept()
                return
        super().keyPressEvent(event)

    def _matches_key_sequence(self, event: QKeyEvent, key_sequence_str: str) -> bool:
        """Check if a key event matches a configured key sequence string."""
        if not key_sequence_str:
            return False

        key = event.key()
        modifiers = event.modifiers()

        # Ignore pure modifier key presses
        if key in (Qt.Key.Key_Control, Qt.Key.Key_Shift, Qt.Key.Key_Alt, Qt.Key.Key_Meta):
            return False

        combined = key
        if modifiers & Qt.KeyboardModifier.ControlModifier:
            combined |= Qt.KeyboardModifier.ControlModifier.value
        if modifiers & Qt.KeyboardModifier.ShiftModifier:
            combined |= Qt.KeyboardModifier.ShiftModifier.value
        if modifiers & Qt.KeyboardModifier.AltModifier:
            combined |= Qt.KeyboardModifier.AltModifier.value
        if modifiers & Qt.KeyboardModifier.MetaModifier:
            combined |= Qt.KeyboardModifier.MetaModifier.value

        return QKeySequence(combined) == QKeySequence(key_sequence_str)

    def _update_cursor(self) -> None:
        """Pick the cursor from the editor's hover state and mode."""
        editor = self.editor
        mode = editor.mode
        handle = editor.active_handle if mode != EditorMode.IDLE else editor.hover_handle

        if mode == EditorMode.ROTATING or (handle and handle.kind == HandleKind.ROTATION):
            cursor = Qt.CursorShape.ClosedHandCursor if mode == EditorMode.ROTATING else Qt.CursorShape.OpenHandCursor
        elif mode == EditorMode.DRAGGING_SHAPE or (handle and handle.kind == HandleKind.CENTER):
            cursor = Qt.CursorShape.SizeAllCursor
        elif handle is not None:
            cursor = Qt.CursorShape.PointingHandCursor
        elif editor.hover_shape_id is not None and mode == EditorMode.IDLE:
            cursor = Qt.CursorShape.SizeAllCursor
        elif mode in (EditorMode.DRAWING, EditorMode.DRAWING_POLYGON,
                      EditorMode.SETTING_SCALE_1, EditorMode.SETTING_SCALE_2):
            cursor = Qt.CursorShape.CrossCursor
        else:
            cursor = Qt.CursorShape.ArrowCursor
        self.setCursor(cursor)

    # === Painting ===

    def paintEvent(self, event) -> None:
        """Paint the image, scale bar, shapes and previews."""
        if not self._pixmap or self._pixmap.isNull():
            return

        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.scale(self.scale_factor, self.scale_factor)
        self._paint_scene(painter, self.scale_factor, show_selection=True)
        self._draw_previews(painter, self.scale_factor)
        painter.end()

    def render_annotated_image(self) -> Optional[QImage]:
        """
        Render the image with scale bar and shapes at full resolution.

        Selection highlight and handles are left out.
        """
        if not self._pixmap or self._pixmap.isNull():
            return None

        image = QImage(self._pixmap.size(), QImage.Format.Format_ARGB32)
        image.fill(Qt.GlobalColor.transparent)
        painter = QPainter(image)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        self._paint_scene(painter, 1.0, show_selection=False)
        painter.end()
        return image

    def render_region(self, center: QPointF, size: float) -> Optional[QImage]:
        """
        Render a square of the canvas centered on an image point.

        Includes selection handles and draw previews, at one output pixel
        per image pixel. Areas beyond the image are left black.

        Args:
            center: Region center in image coordinates
            size: Side of the region in image pixels
        """
        if not self._pixmap or self._pixmap.isNull():
            return None

        side = max(1, int(round(size)))
        image = QImage(side, side, QImage.Format.Format_ARGB32)
        image.fill(Qt.GlobalColor.black)
        painter = QPainter(image)
        painter.translate(side / 2 - center.x(), side / 2 - center.y())
        self._paint_scene(painter, 1.0, show_selection=True)
        self._draw_previews(painter, 1.0)
        painter.end()
        return image

    def _paint_scene(self, painter: QPainter, zoom: float, show_selection: bool) -> None:
        painter.drawPixmap(0, 0, self._pixmap)
        self._draw_scale_bar(painter, zoom)

        selected_id = self.editor.selected_shape_id if show_selection else None
        for shape in self.editor.shapes:
            self._draw_shape(painter, shape, shape.id == selected_id, zoom)

        selected = self.editor.selected_shape if show_selection else None
        if selected is not None:
            self._draw_handles(painter, selected, zoom)

    def _draw_scale_bar(self, painter: QPainter, zoom: float) -> None:
        scale = self.editor.scale
        radius = 4 / zoom
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(SCALE_BAR_COLOR)
        if scale.p1 is not None:
            painter.drawEllipse(scale.p1, radius, radius)
        if scale.p1 is not None and scale.p2 is not None:
            painter.setPen(QPen(SCALE_BAR_COLOR, 2 / zoom))
            painter.drawLine(scale.p1, scale.p2)
            painter.setPen(Qt.PenStyle.NoPen)
            painter.drawEllipse(scale.p2, radius, radius)

    def _draw_shape(self, painter: QPainter, shape: Shape, selected: bool, zoom: float) -> None:
        """Draw a single shape outline with translucent fill."""
        color = SELECTED_COLOR if selected else shape.color
        thickness = self.config.line_thickness + (1 if selected else 0)

        painter.save()
        painter.setPen(QPen(color, thickness / zoom))
        painter.setBrush(QColor(color.red(), color.green(), color.blue(), 26))

        geo = shape.geometry
        if isinstance(geo, EllipseGeometry):
            painter.translate(geo.center)
            painter.rotate(math.degrees(geo.rotation))
            painter.drawEllipse(QPointF(0, 0), geo.rx, geo.ry)
        elif isinstance(geo, RectangleGeometry):
            painter.translate(geo.center)
            painter.rotate(math.degrees(geo.rotation))
            painter.drawRect(QRectF(-geo.w / 2, -geo.h / 2, geo.w, geo.h))
        elif isinstance(geo, PolygonGeometry) and geo.points:
            if geo.closed:
                painter.drawPolygon(QPolygonF(geo.points))
            else:
                painter.drawPolyline(QPolygonF(geo.points))
        painter.restore()

    def _draw_handles(self, painter: QPainter, shape: Shape, zoom: float) -> None:
        """Draw the control handles of the selected shape."""
        size = self.config.handle_size / zoom
        hovered = self.editor.hover_handle
        handles: List[Handle] = handles_for(shape, self.config.rotation_handle_distance)

        for handle in handles:
            is_hover = hovered is not None and hovered.name == handle.name
            color = HANDLE_HOVER_COLOR if is_hover else HANDLE_COLOR
            pos = handle.position

            if handle.kind == HandleKind.ROTATION:
                anchor = top_anchor(shape)
                if anchor is not None:
                    painter.setPen(QPen(color, 1 / zoom, Qt.PenStyle.DashLine))
                    painter.drawLine(anchor, pos)
                painter.setPen(QPen(Qt.GlobalColor.black, 2 / zoom))
                painter.setBrush(color)
                painter.drawEllipse(pos, size, size)
            elif handle.kind == HandleKind.CENTER:
                painter.setPen(QPen(color, 2 / zoom))
                painter.drawLine(QPointF(pos.x() - size, pos.y()), QPointF(pos.x() + size, pos.y()))
                painter.drawLine(QPointF(pos.x(), pos.y() - size), QPointF(pos.x(), pos.y() + size))
            elif handle.kind == HandleKind.VERTEX:
                painter.setPen(QPen(Qt.GlobalColor.black, 1.5 / zoom))
                painter.setBrush(color)
                painter.drawEllipse(pos, 5 / zoom, 5 / zoom)
            else:
                painter.setPen(QPen(Qt.GlobalColor.black, 2 / zoom))
                painter.setBrush(color)
                painter.drawRect(QRectF(pos.x() - size / 2, pos.y() - size / 2, size, size))

    def _draw_previews(self, painter: QPainter, zoom: float) -> None:
        """Draw the rubber band or polygon under construction."""
        editor = self.editor
        color = QColor(SHAPE_COLORS[editor.next_color_index()])
        pen = QPen(color, 2 / zoom, Qt.PenStyle.DashLine)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)

        box = editor.preview_box()
        if box is not None:
            if editor.drawing_type == ShapeType.ELLIPSE:
                painter.drawEllipse(box)
            else:
                painter.drawRect(box)
            return

        if editor.mode == EditorMode.DRAWING_POLYGON:
            points = editor.polygon_points
            if not points:
                return
            if editor.last_pointer is not None:
                painter.drawPolyline(QPolygonF(points + [editor.last_pointer]))
            painter.setPen(Qt.PenStyle.NoPen)
            painter.setBrush(color)
            radius = 4 / zoom
            for point in points:
                painter.drawEllipse(point, radius, radius)
