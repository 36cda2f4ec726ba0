"""Pixel magnifier lens for precise point placement."""

from __future__ import annotations

import logging
from typing import Optional

from PyQt6.QtCore import Qt, QPointF, QRectF
from PyQt6.QtGui import QColor, QImage, QPainter, QPen
from PyQt6.QtWidgets import QWidget

logger = logging.getLogger(__name__)

CROSSHAIR_COLOR = QColor(255, 255, 255, 128)
BACKGROUND_COLOR = QColor("#1f2937")


class MagnifierLens(QWidget):
    """
    Fixed-size lens showing the canvas around the cursor, enlarged.

    The canvas renders a square region of ``source_size`` image pixels
    centered on the cursor; the lens scales it up without smoothing so
    individual pixels stay crisp, and draws a crosshair at the center.
    """

    LENS_SIZE = 240

    def __init__(self, zoom: float = 5.0, parent: Optional[QWidget] = None) -> None:
        """Initialize the lens."""
        super().__init__(parent)

        if zoom <= 0:
            logger.warning(f"Invalid magnifier zoom {zoom}, using 1.0")
            zoom = 1.0
        self.zoom = zoom
        self._image: Optional[QImage] = None

        self.setFixedSize(self.LENS_SIZE, self.LENS_SIZE)
        self.setToolTip("Magnified view around the cursor")

    @property
    def source_size(self) -> float:
        """Side of the image region shown, in image pixels."""
        return self.LENS_SIZE / self.zoom

    def image(self) -> Optional[QImage]:
        """Return the region currently shown."""
        return self._image

    def set_image(self, image: Optional[QImage]) -> None:
        """Show a rendered region, or nothing with None."""
        self._image = image
        self.update()

    def clear(self) -> None:
        self.set_image(None)

    def paintEvent(self, event) -> None:
        """Paint the enlarged region and the crosshair."""
        painter = QPainter(self)
        size = self.LENS_SIZE
        painter.fillRect(0, 0, size, size, BACKGROUND_COLOR)

        if self._image is None or self._image.isNull():
            painter.end()
            return

        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, False)
        painter.drawImage(QRectF(0, 0, size, size), self._image)

        painter.setPen(QPen(CROSSHAIR_COLOR, 1))
        half = size / 2
        painter.drawLine(QPointF(half, 0), QPointF(half, size))
        painter.drawLine(QPointF(0, half), QPointF(size, half))
        painter.setPen(QPen(Qt.GlobalColor.black, 1))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(0, 0, size - 1, size - 1)
        painter.end()
