"""Data models for measured shapes."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from PyQt6.QtCore import QPointF
from PyQt6.QtGui import QColor

from .geometry import point_in_ellipse, point_in_polygon, point_in_rectangle, polygon_area

logger = logging.getLogger(__name__)

# Fixed palette, assigned cyclically in creation order
SHAPE_COLORS = [
    "#10b981",
    "#ef4444",
    "#3b82f6",
    "#f59e0b",
    "#8b5cf6",
    "#ec4899",
    "#14b8a6",
    "#f97316",
]

# A drawn bounding box must exceed this on both axes (pixels)
MIN_DRAW_EXTENT = 5.0
# Resize clamp for semi-axes; rectangle extents clamp at twice this
MIN_HALF_EXTENT = 5.0


class ShapeType(str, Enum):
    """Kind of measured shape."""

    ELLIPSE = "ellipse"
    RECTANGLE = "rectangle"
    POLYGON = "polygon"

    @property
    def display_name(self) -> str:
        """Capitalized name for lists and reports."""
        return self.value.capitalize()


@dataclass
class EllipseGeometry:
    """Ellipse given by its center, semi-axes and rotation."""

    center: QPointF
    rx: float
    ry: float
    rotation: float = 0.0

    def copy(self) -> EllipseGeometry:
        return EllipseGeometry(QPointF(self.center), self.rx, self.ry, self.rotation)


@dataclass
class RectangleGeometry:
    """Rectangle given by its center, full extents and rotation."""

    center: QPointF
    w: float
    h: float
    rotation: float = 0.0

    def copy(self) -> RectangleGeometry:
        return RectangleGeometry(QPointF(self.center), self.w, self.h, self.rotation)


@dataclass
class PolygonGeometry:
    """
    Free-form polygon.

    Only a closed polygon is hit-testable and has an area. Closing
    happens once, when drawing is finalized.
    """

    points: List[QPointF] = field(default_factory=list)
    closed: bool = False

    def __post_init__(self) -> None:
        self.points = [QPointF(p) for p in self.points]

    def copy(self) -> PolygonGeometry:
        return PolygonGeometry([QPointF(p) for p in self.points], self.closed)


Geometry = Union[EllipseGeometry, RectangleGeometry, PolygonGeometry]


@dataclass
class Shape:
    """
    A measured region on the image.

    Identity and color are shared by all kinds; the geometry variant
    decides how the shape is hit-tested, manipulated and measured.
    """

    id: int
    geometry: Geometry
    color_index: int = 0

    @property
    def type(self) -> ShapeType:
        """Shape kind derived from the geometry variant."""
        if isinstance(self.geometry, EllipseGeometry):
            return ShapeType.ELLIPSE
        if isinstance(self.geometry, RectangleGeometry):
            return ShapeType.RECTANGLE
        if isinstance(self.geometry, PolygonGeometry):
            return ShapeType.POLYGON
        raise TypeError(f"Unknown geometry: {type(self.geometry).__name__}")

    @property
    def color(self) -> QColor:
        """Palette color for this shape."""
        return QColor(SHAPE_COLORS[self.color_index % len(SHAPE_COLORS)])

    @property
    def label(self) -> str:
        """Display name, e.g. ``Ellipse #3``."""
        return f"{self.type.display_name} #{self.id}"

    def snapshot(self) -> Geometry:
        """Deep copy of the current geometry."""
        return self.geometry.copy()

    def restore(self, geometry: Geometry) -> None:
        """Replace the geometry with a copy of ``geometry``."""
        self.geometry = geometry.copy()

    def contains(self, point: QPointF) -> bool:
        """
        Check if a point is inside the shape.

        Args:
            point: Point in image-pixel coordinates

        Returns:
            True if the point is inside; always False for open polygons
        """
        geo = self.geometry
        if isinstance(geo, EllipseGeometry):
            return point_in_ellipse(point, geo.center, geo.rx, geo.ry, geo.rotation)
        if isinstance(geo, RectangleGeometry):
            return point_in_rectangle(point, geo.center, geo.w, geo.h, geo.rotation)
        if isinstance(geo, PolygonGeometry):
            return geo.closed and point_in_polygon(point, geo.points)
        return False

    def move_by(self, dx: float, dy: float, origin: Optional[Geometry] = None) -> None:
        """
        Translate the shape.

        Args:
            dx: Horizontal offset
            dy: Vertical offset
            origin: Geometry to translate from; defaults to the current one
        """
        base = (origin or self.geometry).copy()
        if isinstance(base, PolygonGeometry):
            base.points = [QPointF(p.x() + dx, p.y() + dy) for p in base.points]
        else:
            base.center = QPointF(base.center.x() + dx, base.center.y() + dy)
        self.geometry = base

    def move_vertex(self, index: int, pos: QPointF) -> bool:
        """
        Move a polygon vertex to a new position.

        Returns:
            True if the vertex was moved, False otherwise
        """
        geo = self.geometry
        if not isinstance(geo, PolygonGeometry):
            logger.warning("Cannot move vertices of non-polygon shapes")
            return False
        if not (0 <= index < len(geo.points)):
            return False
        geo.points[index] = QPointF(pos)
        return True

    def area(self, factor: Optional[float]) -> Optional[float]:
        """
        Calibrated area in physical units squared.

        Args:
            factor: Physical units per pixel, or None if not calibrated

        Returns:
            The area, or None when it is undefined
        """
        if factor is None:
            return None

        geo = self.geometry
        if isinstance(geo, EllipseGeometry):
            return math.pi * (geo.rx * factor) * (geo.ry * factor)
        if isinstance(geo, RectangleGeometry):
            return (geo.w * factor) * (geo.h * factor)
        if isinstance(geo, PolygonGeometry):
            if not geo.closed or len(geo.points) < 3:
                return None
            scaled = [QPointF(p.x() * factor, p.y() * factor) for p in geo.points]
            return polygon_area(scaled)
        return None
