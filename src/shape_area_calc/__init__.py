"""
Shape Area Calc - measure calibrated areas of regions drawn on an image.

Built with PyQt6. Calibrate a pixel scale from two points, then draw,
move, resize and rotate ellipses, rectangles and polygons to read their
physical areas.
"""

__version__ = "1.0.0"
__author__ = "Shape Area Calc Team"
