"""Pytest configuration and fixtures."""

import os
import sys
from pathlib import Path

import pytest
from PyQt6.QtCore import QPointF

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Headless Qt for widget tests
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from shape_area_calc.core.editor import ShapeEditor  # noqa: E402


@pytest.fixture(scope="session")
def qapp():
    """Create a QApplication for tests that need it."""
    from PyQt6.QtWidgets import QApplication

    app = QApplication.instance()
    if app is None:
        app = QApplication([])

    yield app


@pytest.fixture
def temp_dir(tmp_path):
    """Provide a temporary directory for tests."""
    return tmp_path


@pytest.fixture
def editor():
    """An editor with a 1000x800 image loaded and no scale."""
    editor = ShapeEditor()
    editor.load_image(1000, 800)
    return editor


@pytest.fixture
def calibrated_editor(editor):
    """An editor calibrated to 0.5 units per pixel (100 px = 50 units)."""
    editor.set_real_length(50)
    editor.begin_calibration()
    editor.pointer_down(QPointF(0, 0))
    editor.pointer_down(QPointF(100, 0))
    return editor


@pytest.fixture
def sample_config_yaml(tmp_path):
    """Create a sample config.yaml file."""
    yaml_path = tmp_path / "config.yaml"
    yaml_path.write_text(
        "handleSize: 10\n"
        "handleMargin: 2\n"
        "defaultUnit: mm\n"
        "defaultShapeType: polygon\n"
        "deleteShapeKeys: Delete, Ctrl+D\n",
        encoding="utf-8"
    )
    return yaml_path
