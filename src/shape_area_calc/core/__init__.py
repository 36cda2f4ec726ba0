"""Core geometry, model and editing logic for Shape Area Calc."""

from .models import Shape, ShapeType, EllipseGeometry, RectangleGeometry, PolygonGeometry
from .config import AppConfig, ConfigManager
from .scale import ScaleCalibration
from .handles import Handle, HandleKind, handles_for, handle_at
from .editor import EditorMode, ShapeEditor

__all__ = [
    "Shape",
    "ShapeType",
    "EllipseGeometry",
    "RectangleGeometry",
    "PolygonGeometry",
    "AppConfig",
    "ConfigManager",
    "ScaleCalibration",
    "Handle",
    "HandleKind",
    "handles_for",
    "handle_at",
    "EditorMode",
    "ShapeEditor",
]
