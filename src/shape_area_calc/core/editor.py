"""Interactive shape editor: the pointer-driven state machine."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from PyQt6.QtCore import QObject, QPointF, QRectF, pyqtSignal

from .config import AppConfig
from .geometry import to_local
from .handles import Handle, HandleKind, handle_at
from .models import (
    SHAPE_COLORS, EllipseGeometry, Geometry, PolygonGeometry,
    RectangleGeometry, Shape, ShapeType
)
from .scale import ScaleCalibration

logger = logging.getLogger(__name__)


class EditorMode(str, Enum):
    """Current interaction mode."""

    IDLE = "idle"
    SETTING_SCALE_1 = "setting_scale_1"
    SETTING_SCALE_2 = "setting_scale_2"
    DRAWING = "drawing"
    DRAWING_POLYGON = "drawing_polygon"
    DRAGGING_SHAPE = "dragging_shape"
    RESIZING_HANDLE = "resizing_handle"
    DRAGGING_VERTEX = "dragging_vertex"
    ROTATING = "rotating"


# Modes that manipulate an existing shape between pointer-down and pointer-up
GESTURE_MODES = frozenset({
    EditorMode.DRAGGING_SHAPE,
    EditorMode.RESIZING_HANDLE,
    EditorMode.DRAGGING_VERTEX,
    EditorMode.ROTATING,
})


@dataclass
class InteractionContext:
    """
    Transient state of the gesture in progress.

    ``snapshot`` is a value copy of the shape's geometry at gesture start;
    every move is computed from it rather than from the live shape.
    ``shape_type`` is the kind armed by "add shape" for the draw in progress.
    """

    shape_type: Optional[ShapeType] = None
    drag_origin: Optional[QPointF] = None
    snapshot: Optional[Geometry] = None
    active_handle: Optional[Handle] = None
    polygon_points: List[QPointF] = field(default_factory=list)


class ShapeEditor(QObject):
    """
    Owns the shape list, selection, scale calibration and interaction mode.

    All positions are image-pixel coordinates; mapping from widget space
    is the caller's job. Policy rejections (tiny shapes, short polygons,
    unknown ids) are silent no-ops reported through ``status_message``.
    """

    shapes_changed = pyqtSignal()
    selection_changed = pyqtSignal(object)  # Emits shape id or None
    mode_changed = pyqtSignal(str)
    scale_changed = pyqtSignal()
    status_message = pyqtSignal(str)

    def __init__(self, config: Optional[AppConfig] = None, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.config = config or AppConfig()

        self.scale = ScaleCalibration(
            real_length=self.config.default_real_length,
            unit=self.config.default_unit,
        )
        try:
            self.shape_type = ShapeType(self.config.default_shape_type)
        except ValueError:
            logger.warning(f"Unknown default shape type: {self.config.default_shape_type}")
            self.shape_type = ShapeType.ELLIPSE

        self.image_size: Optional[tuple[int, int]] = None
        self._shapes: List[Shape] = []
        self._next_id = 1
        self._selected_id: Optional[int] = None
        self._mode = EditorMode.IDLE
        self._context = InteractionContext()

        self.hover_handle: Optional[Handle] = None
        self.hover_shape_id: Optional[int] = None
        self.last_pointer: Optional[QPointF] = None

    # === State Access ===

    @property
    def mode(self) -> EditorMode:
        return self._mode

    @property
    def has_image(self) -> bool:
        return self.image_size is not None

    @property
    def shapes(self) -> List[Shape]:
        """Shapes in z-order (last is topmost)."""
        return list(self._shapes)

    @property
    def selected_shape_id(self) -> Optional[int]:
        return self._selected_id

    @property
    def selected_shape(self) -> Optional[Shape]:
        if self._selected_id is None:
            return None
        return self.find_shape(self._selected_id)

    @property
    def active_handle(self) -> Optional[Handle]:
        return self._context.active_handle

    @property
    def polygon_points(self) -> List[QPointF]:
        """Vertices placed so far while drawing a polygon."""
        return [QPointF(p) for p in self._context.polygon_points]

    @property
    def drawing_type(self) -> Optional[ShapeType]:
        """Shape kind of the draw in progress, fixed when drawing was armed."""
        if self._mode not in (EditorMode.DRAWING, EditorMode.DRAWING_POLYGON):
            return None
        return self._context.shape_type

    @property
    def pick_radius(self) -> float:
        return self.config.pick_radius

    def find_shape(self, shape_id: int) -> Optional[Shape]:
        for shape in self._shapes:
            if shape.id == shape_id:
                return shape
        return None

    def shape_at(self, pos: QPointF) -> Optional[Shape]:
        """Topmost shape containing a point."""
        for shape in reversed(self._shapes):
            if shape.contains(pos):
                return shape
        return None

    def handle_at(self, pos: QPointF, shape: Shape) -> Optional[Handle]:
        return handle_at(pos, shape, self.pick_radius, self.config.rotation_handle_distance)

    def preview_box(self) -> Optional[QRectF]:
        """Rubber-band box of an ellipse/rectangle being drawn."""
        if (self._mode != EditorMode.DRAWING or self._context.drag_origin is None
                or self.last_pointer is None):
            return None
        return QRectF(self._context.drag_origin, self.last_pointer).normalized()

    def next_color_index(self) -> int:
        """Palette index the next created shape will receive."""
        return (self._next_id - 1) % len(SHAPE_COLORS)

    # === Areas ===

    def area(self, shape: Shape) -> Optional[float]:
        """Calibrated area of a shape, or None if undefined."""
        return shape.area(self.scale.factor)

    def total_area(self) -> Optional[float]:
        """Sum of all defined shape areas, or None without a usable scale."""
        if self.scale.factor is None:
            return None
        return sum(a for a in (self.area(s) for s in self._shapes) if a is not None)

    # === Lifecycle ===

    def load_image(self, width: int, height: int) -> None:
        """
        Attach a new image and reset all shapes and calibration.

        Args:
            width: Image width in pixels
            height: Image height in pixels
        """
        self.image_size = (int(width), int(height))
        self._reset_state()
        logger.info(f"Image loaded ({width}x{height})")
        self.status_message.emit("Image loaded. Set Scale first.")

    def reset(self) -> None:
        """Detach the image and reset everything."""
        self.image_size = None
        self._reset_state()
        logger.info("Editor reset")
        self.status_message.emit("Reset complete.")

    def _reset_state(self) -> None:
        self.scale.begin()
        self._shapes = []
        self._next_id = 1
        self._selected_id = None
        self._context = InteractionContext()
        self.hover_handle = None
        self.hover_shape_id = None
        self.last_pointer = None
        self._set_mode(EditorMode.IDLE)
        self.scale_changed.emit()
        self.selection_changed.emit(None)
        self.shapes_changed.emit()

    # === Explicit Actions ===

    def set_shape_type(self, shape_type: Union[ShapeType, str]) -> None:
        """Choose the kind of shape the next "add shape" action draws."""
        self.shape_type = ShapeType(shape_type)

    def begin_calibration(self) -> bool:
        """
        Arm the two-click scale capture.

        Returns:
            True if calibration started
        """
        if not self.has_image or self._mode in GESTURE_MODES:
            return False

        self._context = InteractionContext()
        self.scale.begin()
        self._set_mode(EditorMode.SETTING_SCALE_1)
        self.scale_changed.emit()
        self.shapes_changed.emit()
        self.status_message.emit("Click first point for scale bar.")
        return True

    def set_real_length(self, value: float) -> None:
        self.scale.set_real_length(value)
        self._on_scale_inputs_changed()

    def set_unit(self, unit: str) -> None:
        self.scale.set_unit(unit)
        self._on_scale_inputs_changed()

    def _on_scale_inputs_changed(self) -> None:
        self.scale_changed.emit()
        if self.scale.defined:
            self.shapes_changed.emit()

    def begin_add_shape(self) -> bool:
        """
        Arm drawing of the currently selected shape type.

        Requires a loaded image and a placed calibration.

        Returns:
            True if drawing mode was entered
        """
        if not self.has_image or not self.scale.defined:
            logger.debug("Add shape ignored: image or scale missing")
            return False
        if self._mode in GESTURE_MODES:
            return False

        self._context = InteractionContext(shape_type=self.shape_type)
        if self.shape_type == ShapeType.POLYGON:
            self._set_mode(EditorMode.DRAWING_POLYGON)
            self.status_message.emit("Click to add polygon vertices. Double-click to close.")
        else:
            self._set_mode(EditorMode.DRAWING)
            self.status_message.emit(f"Click & drag to draw {self.shape_type.value}.")
        return True

    def select_shape(self, shape_id: Optional[int]) -> None:
        """Select a shape by id, or clear the selection with None."""
        if shape_id is not None and self.find_shape(shape_id) is None:
            return
        self._set_selection(shape_id)

    def delete_shape(self, shape_id: int) -> bool:
        """
        Delete a shape by id.

        Unknown ids are ignored. The selection is cleared only if the
        deleted shape was selected.

        Returns:
            True if a shape was removed
        """
        shape = self.find_shape(shape_id)
        if shape is None:
            return False

        if self._mode in GESTURE_MODES and shape_id == self._selected_id:
            self._end_gesture()

        self._shapes.remove(shape)
        if self.hover_shape_id == shape_id:
            self.hover_shape_id = None
        if self._selected_id == shape_id:
            self.hover_handle = None
            self._set_selection(None)

        logger.info(f"Deleted {shape.label}")
        self.shapes_changed.emit()
        self.status_message.emit("Shape deleted.")
        return True

    def delete_selected(self) -> bool:
        """Delete the selected shape; only honored while idle."""
        if self._mode != EditorMode.IDLE or self._selected_id is None:
            return False
        return self.delete_shape(self._selected_id)

    def cancel(self) -> None:
        """
        Abort whatever is in progress and clear the selection.

        In-progress drawings are discarded; a shape being dragged,
        resized, rotated or reshaped returns to its pre-gesture geometry.
        """
        if self._mode in (EditorMode.DRAWING, EditorMode.DRAWING_POLYGON):
            self.status_message.emit("Drawing cancelled.")
        elif self._mode in GESTURE_MODES:
            shape = self.selected_shape
            if shape is not None and self._context.snapshot is not None:
                shape.restore(self._context.snapshot)
                self.shapes_changed.emit()
        elif self._mode in (EditorMode.SETTING_SCALE_1, EditorMode.SETTING_SCALE_2):
            self.scale.begin()
            self.scale_changed.emit()
            self.status_message.emit("Scale setting cancelled.")

        self._context = InteractionContext()
        self._set_mode(EditorMode.IDLE)
        self.hover_handle = None
        self._set_selection(None)

    # === Pointer Events ===

    def pointer_down(self, pos: QPointF) -> None:
        """Handle a primary-button press at an image position."""
        if not self.has_image:
            return

        pos = QPointF(pos)
        self.last_pointer = pos

        if self._mode == EditorMode.SETTING_SCALE_1:
            self.scale.place_first_point(pos)
            self._set_mode(EditorMode.SETTING_SCALE_2)
            self.scale_changed.emit()
            self.status_message.emit("Click second point.")
            return

        if self._mode == EditorMode.SETTING_SCALE_2:
            self.scale.place_second_point(pos)
            self._set_mode(EditorMode.IDLE)
            self.scale_changed.emit()
            self.shapes_changed.emit()
            if self.scale.factor is None:
                self.status_message.emit("Scale points coincide. Scale is undefined.")
            else:
                self.status_message.emit("Scale set. Click 'Add Shape' to draw.")
            return

        if self._mode == EditorMode.DRAWING_POLYGON:
            self._context.polygon_points.append(pos)
            return

        if self._mode == EditorMode.DRAWING:
            self._context.drag_origin = pos
            return

        if self._mode != EditorMode.IDLE:
            return

        selected = self.selected_shape
        if selected is not None:
            handle = self.handle_at(pos, selected)
            if handle is not None:
                self._begin_gesture(selected, handle, pos)
                return

        clicked = self.shape_at(pos)
        if clicked is not None:
            self._set_selection(clicked.id)
            self._begin_gesture(clicked, Handle(HandleKind.CENTER, QPointF(pos)), pos)
            return

        self._set_selection(None)

    def pointer_move(self, pos: QPointF) -> None:
        """Handle pointer motion, with or without a button held."""
        if not self.has_image:
            return

        pos = QPointF(pos)
        self.last_pointer = pos

        if self._mode in GESTURE_MODES:
            shape = self.selected_shape
            if shape is None or self._context.snapshot is None:
                self._end_gesture()
                return
            self._apply_gesture(shape, pos)
            self.shapes_changed.emit()
            return

        if self._mode == EditorMode.DRAWING and self._context.drag_origin is not None:
            return

        self._update_hover(pos)

    def pointer_up(self, pos: QPointF) -> None:
        """Handle a primary-button release."""
        if not self.has_image:
            return

        pos = QPointF(pos)
        self.last_pointer = pos

        if self._mode == EditorMode.DRAWING and self._context.drag_origin is not None:
            self._finish_box(self._context.drag_origin, pos)
            return

        if self._mode in GESTURE_MODES:
            self._end_gesture()
            self.shapes_changed.emit()

    def double_click(self, pos: QPointF) -> None:
        """Close the polygon being drawn; needs at least 3 vertices."""
        if self._mode != EditorMode.DRAWING_POLYGON:
            return

        points = self._context.polygon_points
        if len(points) < 3:
            logger.debug(f"Polygon finalize ignored: {len(points)} vertices")
            return

        self._create_shape(PolygonGeometry(points, closed=True))
        self._context = InteractionContext()
        self._set_mode(EditorMode.IDLE)
        self.status_message.emit("Polygon added.")

    # === Gesture Helpers ===

    def _begin_gesture(self, shape: Shape, handle: Handle, pos: QPointF) -> None:
        if handle.kind == HandleKind.CENTER:
            mode = EditorMode.DRAGGING_SHAPE
        elif handle.kind == HandleKind.ROTATION:
            mode = EditorMode.ROTATING
        elif handle.kind == HandleKind.VERTEX:
            mode = EditorMode.DRAGGING_VERTEX
        else:
            mode = EditorMode.RESIZING_HANDLE

        self._context = InteractionContext(
            drag_origin=QPointF(pos),
            snapshot=shape.snapshot(),
            active_handle=handle,
        )
        self._set_mode(mode)

    def _end_gesture(self) -> None:
        self._context = InteractionContext()
        self._set_mode(EditorMode.IDLE)

    def _apply_gesture(self, shape: Shape, pos: QPointF) -> None:
        """Recompute the shape from the gesture snapshot and cursor."""
        snapshot = self._context.snapshot
        handle = self._context.active_handle
        origin = self._context.drag_origin

        if self._mode == EditorMode.DRAGGING_SHAPE:
            shape.move_by(pos.x() - origin.x(), pos.y() - origin.y(), origin=snapshot)

        elif self._mode == EditorMode.DRAGGING_VERTEX:
            shape.move_vertex(handle.index, pos)

        elif self._mode == EditorMode.RESIZING_HANDLE:
            shape.geometry = self._resized(snapshot, handle, pos)

        elif self._mode == EditorMode.ROTATING:
            if isinstance(snapshot, (EllipseGeometry, RectangleGeometry)):
                geo = snapshot.copy()
                center = snapshot.center
                geo.rotation = math.atan2(pos.y() - center.y(), pos.x() - center.x()) + math.pi / 2
                shape.geometry = geo

    def _resized(self, snapshot: Geometry, handle: Handle, pos: QPointF) -> Geometry:
        geo = snapshot.copy()
        if not isinstance(geo, (EllipseGeometry, RectangleGeometry)):
            return geo

        local = to_local(pos, snapshot.center, snapshot.rotation)
        min_half = self.config.min_half_extent

        if isinstance(geo, EllipseGeometry):
            if handle.kind.is_horizontal:
                geo.rx = max(min_half, abs(local.x()))
            else:
                geo.ry = max(min_half, abs(local.y()))
        else:
            if handle.kind.is_horizontal:
                geo.w = max(2 * min_half, abs(local.x()) * 2)
            else:
                geo.h = max(2 * min_half, abs(local.y()) * 2)
        return geo

    def _finish_box(self, start: QPointF, end: QPointF) -> None:
        x = min(start.x(), end.x())
        y = min(start.y(), end.y())
        w = abs(end.x() - start.x())
        h = abs(end.y() - start.y())
        min_extent = self.config.min_draw_extent
        shape_type = self._context.shape_type or self.shape_type

        if w > min_extent and h > min_extent:
            center = QPointF(x + w / 2, y + h / 2)
            if shape_type == ShapeType.ELLIPSE:
                geometry: Geometry = EllipseGeometry(center, w / 2, h / 2, 0.0)
            else:
                geometry = RectangleGeometry(center, w, h, 0.0)
            self._create_shape(geometry)
            self.status_message.emit(f"{shape_type.display_name} added.")
        else:
            logger.debug(f"Rejected {w:.1f}x{h:.1f} px box below minimum size")
            self.status_message.emit("Shape too small. Try again.")

        self._context = InteractionContext()
        self._set_mode(EditorMode.IDLE)

    def _create_shape(self, geometry: Geometry) -> Shape:
        shape_id = self._next_id
        self._next_id += 1
        shape = Shape(
            id=shape_id,
            geometry=geometry,
            color_index=(shape_id - 1) % len(SHAPE_COLORS),
        )
        self._shapes.append(shape)
        logger.info(f"Created {shape.label}")
        self.shapes_changed.emit()
        self._set_selection(shape.id)
        return shape

    def _update_hover(self, pos: QPointF) -> None:
        self.hover_handle = None
        self.hover_shape_id = None

        selected = self.selected_shape
        if selected is not None:
            self.hover_handle = self.handle_at(pos, selected)
        if self.hover_handle is None:
            hovered = self.shape_at(pos)
            if hovered is not None:
                self.hover_shape_id = hovered.id

    def _set_selection(self, shape_id: Optional[int]) -> None:
        if shape_id == self._selected_id:
            return
        self._selected_id = shape_id
        self.selection_changed.emit(shape_id)

    def _set_mode(self, mode: EditorMode) -> None:
        if mode == self._mode:
            return
        logger.debug(f"Mode {self._mode.value} -> {mode.value}")
        self._mode = mode
        self.mode_changed.emit(mode.value)
