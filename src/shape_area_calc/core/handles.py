"""Control handles for manipulating a selected shape."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from PyQt6.QtCore import QPointF

from .geometry import distance, rotate_around
from .models import EllipseGeometry, PolygonGeometry, RectangleGeometry, Shape

# Distance of the rotation handle beyond the top extent (pixels)
ROTATION_HANDLE_DISTANCE = 30.0
HANDLE_SIZE = 8.0
HANDLE_MARGIN = 4.0
PICK_RADIUS = HANDLE_SIZE + HANDLE_MARGIN


class HandleKind(str, Enum):
    """Kind of control handle."""

    CENTER = "center"
    AXIS_RIGHT = "axis-right"
    AXIS_LEFT = "axis-left"
    AXIS_BOTTOM = "axis-bottom"
    AXIS_TOP = "axis-top"
    ROTATION = "rotation"
    VERTEX = "vertex"

    @property
    def is_horizontal(self) -> bool:
        """True for handles that resize along the local x axis."""
        return self in (HandleKind.AXIS_RIGHT, HandleKind.AXIS_LEFT)


@dataclass
class Handle:
    """A handle position on a shape, with the vertex index for polygons."""

    kind: HandleKind
    position: QPointF
    index: Optional[int] = None

    @property
    def name(self) -> str:
        """Stable identifier such as ``axis-top`` or ``vertex-2``."""
        if self.kind == HandleKind.VERTEX:
            return f"vertex-{self.index}"
        return self.kind.value


def _box_handles(
    center: QPointF,
    half_w: float,
    half_h: float,
    rotation: float,
    rotation_distance: float
) -> List[Handle]:
    cx, cy = center.x(), center.y()
    handles = [Handle(HandleKind.CENTER, QPointF(center))]

    offsets = [
        (HandleKind.AXIS_RIGHT, half_w, 0.0),
        (HandleKind.AXIS_LEFT, -half_w, 0.0),
        (HandleKind.AXIS_BOTTOM, 0.0, half_h),
        (HandleKind.AXIS_TOP, 0.0, -half_h),
    ]
    for kind, dx, dy in offsets:
        handles.append(Handle(kind, rotate_around(QPointF(cx + dx, cy + dy), center, rotation)))

    rest = QPointF(cx, cy - half_h - rotation_distance)
    handles.append(Handle(HandleKind.ROTATION, rotate_around(rest, center, rotation)))
    return handles


def handles_for(shape: Shape, rotation_distance: float = ROTATION_HANDLE_DISTANCE) -> List[Handle]:
    """
    Derive the handles of a shape from its current geometry.

    Ellipses and rectangles get center, four axis handles (right, left,
    bottom, top) and a rotation handle, in that order. Polygons get one
    handle per vertex.

    Args:
        shape: Shape to derive handles for
        rotation_distance: Offset of the rotation handle beyond the top extent

    Returns:
        Handles in priority order
    """
    geo = shape.geometry
    if isinstance(geo, EllipseGeometry):
        return _box_handles(geo.center, geo.rx, geo.ry, geo.rotation, rotation_distance)
    if isinstance(geo, RectangleGeometry):
        return _box_handles(geo.center, geo.w / 2, geo.h / 2, geo.rotation, rotation_distance)
    if isinstance(geo, PolygonGeometry):
        return [
            Handle(HandleKind.VERTEX, QPointF(p), i)
            for i, p in enumerate(geo.points)
        ]
    return []


def handle_at(
    point: QPointF,
    shape: Shape,
    pick_radius: float = PICK_RADIUS,
    rotation_distance: float = ROTATION_HANDLE_DISTANCE
) -> Optional[Handle]:
    """
    Find the handle under a cursor position.

    The first handle in declaration order within ``pick_radius``
    (inclusive) wins.
    """
    for handle in handles_for(shape, rotation_distance):
        if distance(point, handle.position) <= pick_radius:
            return handle
    return None


def top_anchor(shape: Shape) -> Optional[QPointF]:
    """Point on the top extent that the rotation handle is tethered to."""
    geo = shape.geometry
    if isinstance(geo, EllipseGeometry):
        half_h = geo.ry
    elif isinstance(geo, RectangleGeometry):
        half_h = geo.h / 2
    else:
        return None
    top = QPointF(geo.center.x(), geo.center.y() - half_h)
    return rotate_around(top, geo.center, geo.rotation)
