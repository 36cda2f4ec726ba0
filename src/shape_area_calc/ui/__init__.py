"""UI components for Shape Area Calc."""

from .drawing_area import DrawingArea
from .main_window import MainWindow

__all__ = [
    "DrawingArea",
    "MainWindow",
]
