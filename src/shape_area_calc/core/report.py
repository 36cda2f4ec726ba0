"""Plain-text area report export."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from .models import Shape
from .scale import ScaleCalibration

logger = logging.getLogger(__name__)

REPORT_TITLE = "ShapeAreaCalc - Area Report"
UNDEFINED = "—"


def format_area(value: Optional[float]) -> str:
    """Two decimals with thousands separators, or a dash if undefined."""
    if value is None:
        return UNDEFINED
    return f"{value:,.2f}"


def format_area_with_unit(value: Optional[float], unit: str) -> str:
    if value is None:
        return UNDEFINED
    return f"{format_area(value)} {unit}²"


def build_area_report(
    shapes: Iterable[Shape],
    scale: ScaleCalibration,
    image_name: Optional[str] = None
) -> str:
    """
    Build the area report text.

    Args:
        shapes: Shapes in list order
        scale: Calibration used for the areas
        image_name: Source image file name, if any

    Returns:
        Report text without a trailing newline
    """
    factor = scale.factor
    lines: List[str] = [REPORT_TITLE, "=" * len(REPORT_TITLE)]

    if factor is not None:
        lines.append(f"Scale: {scale.real_length:g} {scale.unit}  ({scale.describe()})")
    if image_name:
        lines.append(f"Image: {image_name}")
    lines.append("")

    total = 0.0
    for shape in shapes:
        area = shape.area(factor)
        if area is not None:
            total += area
        lines.append(
            f"#{shape.id}  {shape.type.display_name:<10} {format_area_with_unit(area, scale.unit)}"
        )

    lines.append("-" * len(REPORT_TITLE))
    total_text = format_area_with_unit(total if factor is not None else None, scale.unit)
    lines.append(f"Total:      {total_text}")
    return "\n".join(lines)


def write_area_report(
    path: Path,
    shapes: Iterable[Shape],
    scale: ScaleCalibration,
    image_name: Optional[str] = None
) -> bool:
    """
    Write the area report to a UTF-8 text file.

    Returns:
        True if the file was written
    """
    try:
        Path(path).write_text(build_area_report(shapes, scale, image_name), encoding="utf-8")
        logger.info(f"Wrote area report to {path}")
        return True
    except OSError as e:
        logger.error(f"Error writing area report {path}: {e}")
        return False
