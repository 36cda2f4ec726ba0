"""Pixel-to-physical-unit scale calibration."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from PyQt6.QtCore import QPointF

from .geometry import distance

logger = logging.getLogger(__name__)

DEFAULT_UNIT = "µm"
FALLBACK_UNIT = "units"


@dataclass
class ScaleCalibration:
    """
    Two-point scale calibration.

    The factor is derived on every read, so changing the real length or
    unit after both points are placed takes effect immediately.
    """

    real_length: float = 1.0
    unit: str = DEFAULT_UNIT
    p1: Optional[QPointF] = None
    p2: Optional[QPointF] = None

    @property
    def defined(self) -> bool:
        """True once both calibration points are placed."""
        return self.p1 is not None and self.p2 is not None

    @property
    def pixel_distance(self) -> float:
        """Pixel length of the calibration bar (0 when undefined)."""
        if not self.defined:
            return 0.0
        return distance(self.p1, self.p2)

    @property
    def factor(self) -> Optional[float]:
        """
        Physical units per pixel.

        None until calibrated, and for a zero-length bar or a real length
        that does not give a finite positive factor.
        """
        pixels = self.pixel_distance
        if pixels <= 0:
            return None
        factor = self.real_length / pixels
        if not math.isfinite(factor) or factor <= 0:
            return None
        return factor

    def begin(self) -> None:
        """Discard the calibration points before a new capture."""
        self.p1 = None
        self.p2 = None

    def place_first_point(self, point: QPointF) -> None:
        self.p1 = QPointF(point)
        self.p2 = None

    def place_second_point(self, point: QPointF) -> None:
        if self.p1 is None:
            logger.warning("Second calibration point placed before the first")
            return
        self.p2 = QPointF(point)
        if self.factor is None:
            logger.warning("Calibration bar has no usable length; scale is undefined")
        else:
            logger.info(f"Scale calibrated: {self.describe()}")

    def set_real_length(self, value: float) -> None:
        """Set the real-world length of the calibration bar."""
        try:
            self.real_length = float(value)
        except (TypeError, ValueError):
            logger.warning(f"Invalid real length: {value!r}")
            self.real_length = 0.0

    def set_unit(self, unit: str) -> None:
        """Set the unit label; empty input falls back to a generic label."""
        self.unit = unit.strip() if unit and unit.strip() else FALLBACK_UNIT

    def describe(self) -> str:
        """Human-readable scale summary."""
        factor = self.factor
        if factor is None:
            return "Scale not defined"
        return f"1 px = {format_significant(factor)} {self.unit}"


def format_significant(value: float, digits: int = 4) -> str:
    """
    Format a number to a fixed count of significant digits.

    Trailing zeros are kept (``0.5`` gives ``0.5000``) but a bare trailing
    decimal point is not (``2000`` gives ``2000``).
    """
    text = f"{value:#.{digits}g}"
    mantissa, sep, exponent = text.partition("e")
    return mantissa.rstrip(".") + sep + exponent
