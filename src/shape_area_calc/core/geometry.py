"""Pure geometry helpers for hit-testing and area measurement.

All functions work in image-pixel space and never touch editor state.
Angles are in radians; the y axis points down, as on screen.
"""

from __future__ import annotations

import math
from typing import Sequence

from PyQt6.QtCore import QPointF


def distance(a: QPointF, b: QPointF) -> float:
    """Euclidean distance between two points."""
    return math.hypot(a.x() - b.x(), a.y() - b.y())


def rotate_around(point: QPointF, center: QPointF, angle: float) -> QPointF:
    """
    Rotate a point about an arbitrary center.

    Args:
        point: Point to rotate
        center: Center of rotation
        angle: Rotation angle in radians

    Returns:
        New rotated point
    """
    c = math.cos(angle)
    s = math.sin(angle)
    dx = point.x() - center.x()
    dy = point.y() - center.y()
    return QPointF(center.x() + dx * c - dy * s, center.y() + dx * s + dy * c)


def to_local(point: QPointF, center: QPointF, rotation: float) -> QPointF:
    """
    Express a point in a shape's unrotated local frame.

    The returned point is relative to ``center`` (the origin of the frame).
    """
    c = math.cos(-rotation)
    s = math.sin(-rotation)
    dx = point.x() - center.x()
    dy = point.y() - center.y()
    return QPointF(dx * c - dy * s, dx * s + dy * c)


def point_in_ellipse(
    point: QPointF,
    center: QPointF,
    rx: float,
    ry: float,
    rotation: float = 0.0
) -> bool:
    """Check if a point lies inside (or on) a rotated ellipse."""
    if rx <= 0 or ry <= 0:
        return False
    local = to_local(point, center, rotation)
    return (local.x() / rx) ** 2 + (local.y() / ry) ** 2 <= 1


def point_in_rectangle(
    point: QPointF,
    center: QPointF,
    w: float,
    h: float,
    rotation: float = 0.0
) -> bool:
    """Check if a point lies inside (or on) a rotated rectangle."""
    local = to_local(point, center, rotation)
    return abs(local.x()) <= w / 2 and abs(local.y()) <= h / 2


def point_in_polygon(point: QPointF, vertices: Sequence[QPointF]) -> bool:
    """
    Even-odd ray casting test.

    The closing edge from the last vertex back to the first is included.
    Fewer than 3 vertices never contain anything.
    """
    if len(vertices) < 3:
        return False

    px, py = point.x(), point.y()
    inside = False
    j = len(vertices) - 1
    for i in range(len(vertices)):
        xi, yi = vertices[i].x(), vertices[i].y()
        xj, yj = vertices[j].x(), vertices[j].y()
        if (yi > py) != (yj > py) and px < (xj - xi) * (py - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def signed_polygon_area(vertices: Sequence[QPointF]) -> float:
    """
    Shoelace sum over consecutive edges, halved.

    Positive for vertices ordered clockwise on screen (y down),
    negative for the reverse order.
    """
    if len(vertices) < 3:
        return 0.0

    total = 0.0
    j = len(vertices) - 1
    for i in range(len(vertices)):
        total += vertices[j].x() * vertices[i].y() - vertices[i].x() * vertices[j].y()
        j = i
    return total / 2


def polygon_area(vertices: Sequence[QPointF]) -> float:
    """
    Absolute polygon area.

    Exact for simple polygons; self-intersecting outlines give the
    shoelace value, where oppositely wound lobes cancel.
    """
    return abs(signed_polygon_area(vertices))
