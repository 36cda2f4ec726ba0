"""Tests for the interactive shape editor."""

import math

import pytest
from PyQt6.QtCore import QPointF

from shape_area_calc.core.config import AppConfig
from shape_area_calc.core.editor import EditorMode, ShapeEditor
from shape_area_calc.core.models import (
    EllipseGeometry,
    PolygonGeometry,
    RectangleGeometry,
    ShapeType,
)


def drag(editor, start, end, steps=3):
    """Press at start, move towards end and release there."""
    editor.pointer_down(QPointF(*start))
    for i in range(1, steps + 1):
        t = i / steps
        editor.pointer_move(QPointF(start[0] + (end[0] - start[0]) * t,
                                    start[1] + (end[1] - start[1]) * t))
    editor.pointer_up(QPointF(*end))


def draw_box(editor, shape_type, start, end):
    editor.set_shape_type(shape_type)
    assert editor.begin_add_shape()
    drag(editor, start, end)
    return editor.shapes[-1] if editor.shapes else None


@pytest.fixture
def rect_editor(calibrated_editor):
    """Calibrated editor holding one selected 100x50 rectangle at (60, 35)."""
    draw_box(calibrated_editor, ShapeType.RECTANGLE, (10, 10), (110, 60))
    return calibrated_editor


class TestCalibration:
    """Tests for the two-click scale capture."""

    def test_calibration_flow(self, editor):
        """Test the mode sequence of a scale capture."""
        assert editor.begin_calibration()
        assert editor.mode == EditorMode.SETTING_SCALE_1

        editor.pointer_down(QPointF(0, 0))
        assert editor.mode == EditorMode.SETTING_SCALE_2

        editor.pointer_down(QPointF(0, 40))
        assert editor.mode == EditorMode.IDLE
        assert editor.scale.factor == pytest.approx(1 / 40)

    def test_calibrated_fixture(self, calibrated_editor):
        """Test that 100 px for 50 units gives 0.5 units per pixel."""
        assert calibrated_editor.scale.factor == pytest.approx(0.5)

    def test_requires_image(self):
        """Test that calibration needs an image."""
        editor = ShapeEditor()

        assert not editor.begin_calibration()
        assert editor.mode == EditorMode.IDLE

    def test_zero_distance_calibration(self, editor):
        """Test that clicking the same point twice leaves areas undefined."""
        editor.begin_calibration()
        editor.pointer_down(QPointF(5, 5))
        editor.pointer_down(QPointF(5, 5))

        assert editor.scale.factor is None
        assert editor.total_area() is None

    def test_recalibration_clears_scale(self, calibrated_editor):
        """Test that starting a new capture drops the old one."""
        calibrated_editor.begin_calibration()

        assert calibrated_editor.scale.factor is None
        assert not calibrated_editor.scale.defined

    def test_cancel_during_calibration(self, editor):
        """Test that cancel abandons a half-placed scale bar."""
        editor.begin_calibration()
        editor.pointer_down(QPointF(10, 10))
        editor.cancel()

        assert editor.mode == EditorMode.IDLE
        assert not editor.scale.defined

    def test_length_change_recomputes_areas(self, rect_editor):
        """Test that areas follow a new real length without new clicks."""
        shape = rect_editor.shapes[0]
        assert rect_editor.area(shape) == pytest.approx(5000 * 0.25)

        rect_editor.set_real_length(100)

        assert rect_editor.area(shape) == pytest.approx(5000)
        assert rect_editor.total_area() == pytest.approx(5000)

    def test_unit_change(self, calibrated_editor):
        """Test that the unit label updates the scale summary."""
        calibrated_editor.set_unit("mm")

        assert calibrated_editor.scale.describe() == "1 px = 0.5000 mm"

    def test_scale_changed_signal(self, calibrated_editor):
        """Test that changing the real length notifies listeners."""
        calls = []
        calibrated_editor.scale_changed.connect(lambda: calls.append(True))

        calibrated_editor.set_real_length(10)

        assert calls


class TestDrawing:
    """Tests for drawing new shapes."""

    def test_add_requires_scale(self, editor):
        """Test that drawing cannot start before calibration."""
        assert not editor.begin_add_shape()
        assert editor.mode == EditorMode.IDLE

    def test_draw_rectangle(self, rect_editor):
        """Test the rectangle produced by a drag."""
        shape = rect_editor.shapes[0]

        assert isinstance(shape.geometry, RectangleGeometry)
        assert shape.geometry.center == QPointF(60, 35)
        assert shape.geometry.w == 100
        assert shape.geometry.h == 50
        assert shape.geometry.rotation == 0
        assert rect_editor.selected_shape_id == shape.id
        assert rect_editor.mode == EditorMode.IDLE

    def test_draw_reversed_drag(self, calibrated_editor):
        """Test that dragging up-left gives the same box."""
        shape = draw_box(calibrated_editor, ShapeType.RECTANGLE, (110, 60), (10, 10))

        assert shape.geometry.center == QPointF(60, 35)
        assert shape.geometry.w == 100

    def test_draw_ellipse_area(self, calibrated_editor):
        """Test the area of a drawn 40x20 px ellipse at 0.5 units/px."""
        shape = draw_box(calibrated_editor, ShapeType.ELLIPSE, (100, 100), (140, 120))

        assert isinstance(shape.geometry, EllipseGeometry)
        assert shape.geometry.rx == 20
        assert shape.geometry.ry == 10
        assert calibrated_editor.area(shape) == pytest.approx(157.08, abs=0.01)

    def test_tiny_drag_rejected(self, calibrated_editor):
        """Test that a box not exceeding the minimum on both axes is dropped."""
        draw_box(calibrated_editor, ShapeType.RECTANGLE, (10, 10), (13, 40))

        assert calibrated_editor.shapes == []
        assert calibrated_editor.mode == EditorMode.IDLE

    def test_small_square_drag_rejected(self, calibrated_editor):
        """Test that a 2x2 px drag creates nothing."""
        draw_box(calibrated_editor, ShapeType.RECTANGLE, (10, 10), (12, 12))

        assert calibrated_editor.shapes == []

    def test_exact_minimum_rejected(self, calibrated_editor):
        """Test that an extent equal to the minimum is still too small."""
        draw_box(calibrated_editor, ShapeType.ELLIPSE, (10, 10), (15, 40))

        assert calibrated_editor.shapes == []

    def test_preview_box(self, calibrated_editor):
        """Test the rubber-band box while drawing."""
        calibrated_editor.set_shape_type("rectangle")
        calibrated_editor.begin_add_shape()
        calibrated_editor.pointer_down(QPointF(50, 50))
        calibrated_editor.pointer_move(QPointF(20, 70))

        box = calibrated_editor.preview_box()

        assert (box.x(), box.y(), box.width(), box.height()) == (20, 50, 30, 20)

    def test_armed_type_survives_type_change(self, calibrated_editor):
        """Test that changing the type mid-draw keeps the armed kind."""
        calibrated_editor.set_shape_type(ShapeType.ELLIPSE)
        assert calibrated_editor.begin_add_shape()
        calibrated_editor.set_shape_type(ShapeType.POLYGON)

        assert calibrated_editor.mode == EditorMode.DRAWING
        assert calibrated_editor.drawing_type == ShapeType.ELLIPSE

        drag(calibrated_editor, (10, 10), (110, 60))

        shape = calibrated_editor.shapes[0]
        assert shape.type == ShapeType.ELLIPSE
        assert isinstance(shape.geometry, EllipseGeometry)
        assert shape.geometry.rx == pytest.approx(50)
        assert shape.geometry.ry == pytest.approx(25)
        assert calibrated_editor.drawing_type is None

    def test_cancel_discards_drawing(self, calibrated_editor):
        """Test that cancel drops an in-progress box."""
        calibrated_editor.begin_add_shape()
        calibrated_editor.pointer_down(QPointF(10, 10))
        calibrated_editor.pointer_move(QPointF(100, 100))
        calibrated_editor.cancel()
        calibrated_editor.pointer_up(QPointF(100, 100))

        assert calibrated_editor.shapes == []
        assert calibrated_editor.mode == EditorMode.IDLE

    def test_palette_cycles(self, calibrated_editor):
        """Test that the ninth shape reuses the first color."""
        for i in range(9):
            draw_box(calibrated_editor, ShapeType.RECTANGLE, (10 + i * 20, 10), (25 + i * 20, 30))

        shapes = calibrated_editor.shapes
        assert [s.id for s in shapes] == list(range(1, 10))
        assert [s.color_index for s in shapes] == [0, 1, 2, 3, 4, 5, 6, 7, 0]
        assert shapes[8].color == shapes[0].color

    def test_ids_not_reused(self, rect_editor):
        """Test that ids keep increasing after a delete."""
        rect_editor.delete_shape(1)
        shape = draw_box(rect_editor, ShapeType.RECTANGLE, (200, 200), (260, 260))

        assert shape.id == 2


class TestPolygonDrawing:
    """Tests for polygon drawing."""

    def test_needs_three_vertices(self, calibrated_editor):
        """Test that closing with two vertices is ignored."""
        calibrated_editor.set_shape_type(ShapeType.POLYGON)
        calibrated_editor.begin_add_shape()
        calibrated_editor.pointer_down(QPointF(0, 0))
        calibrated_editor.pointer_down(QPointF(100, 0))
        calibrated_editor.double_click(QPointF(100, 0))

        assert calibrated_editor.shapes == []
        assert calibrated_editor.mode == EditorMode.DRAWING_POLYGON
        assert len(calibrated_editor.polygon_points) == 2

    def test_finalize_polygon(self, calibrated_editor):
        """Test closing a triangle and measuring it."""
        calibrated_editor.set_shape_type(ShapeType.POLYGON)
        calibrated_editor.begin_add_shape()
        for x, y in [(0, 0), (100, 0), (50, 80)]:
            calibrated_editor.pointer_down(QPointF(x, y))
        calibrated_editor.double_click(QPointF(50, 80))

        shape = calibrated_editor.shapes[0]
        assert isinstance(shape.geometry, PolygonGeometry)
        assert shape.geometry.closed
        assert len(shape.geometry.points) == 3
        assert calibrated_editor.area(shape) == pytest.approx(4000 * 0.25)
        assert calibrated_editor.selected_shape_id == shape.id
        assert calibrated_editor.mode == EditorMode.IDLE


class TestSelection:
    """Tests for selection and deletion."""

    def test_click_empty_clears_selection(self, rect_editor):
        """Test that clicking empty space deselects."""
        rect_editor.pointer_down(QPointF(500, 500))
        rect_editor.pointer_up(QPointF(500, 500))

        assert rect_editor.selected_shape_id is None

    def test_topmost_shape_selected(self, rect_editor):
        """Test that the most recently drawn shape wins on overlap."""
        draw_box(rect_editor, ShapeType.RECTANGLE, (50, 30), (150, 80))
        rect_editor.select_shape(None)

        rect_editor.pointer_down(QPointF(100, 50))
        rect_editor.pointer_up(QPointF(100, 50))

        assert rect_editor.selected_shape_id == 2

    def test_select_unknown_id_ignored(self, rect_editor):
        """Test that selecting a missing id keeps the current selection."""
        rect_editor.select_shape(42)

        assert rect_editor.selected_shape_id == 1

    def test_delete_other_keeps_selection(self, rect_editor):
        """Test that deleting an unselected shape keeps the selection."""
        draw_box(rect_editor, ShapeType.ELLIPSE, (200, 200), (260, 240))
        assert rect_editor.selected_shape_id == 2

        assert rect_editor.delete_shape(1)

        assert rect_editor.selected_shape_id == 2
        assert [s.id for s in rect_editor.shapes] == [2]

    def test_delete_selected_clears_selection(self, rect_editor):
        """Test that deleting the selected shape clears the selection."""
        assert rect_editor.delete_selected()

        assert rect_editor.shapes == []
        assert rect_editor.selected_shape_id is None

    def test_delete_unknown_id(self, rect_editor):
        """Test that an unknown id is a no-op."""
        assert not rect_editor.delete_shape(99)
        assert len(rect_editor.shapes) == 1

    def test_delete_selected_ignored_mid_gesture(self, rect_editor):
        """Test that the delete key does nothing during a drag."""
        rect_editor.pointer_down(QPointF(60, 35))

        assert not rect_editor.delete_selected()
        assert len(rect_editor.shapes) == 1

    def test_selection_signal(self, rect_editor):
        """Test that selection changes are announced with the id."""
        received = []
        rect_editor.selection_changed.connect(received.append)

        rect_editor.select_shape(None)
        rect_editor.select_shape(1)

        assert received == [None, 1]


class TestGestures:
    """Tests for moving, resizing, rotating and reshaping."""

    def test_move_shape(self, rect_editor):
        """Test dragging a shape by its body."""
        drag(rect_editor, (70, 40), (90, 50))

        shape = rect_editor.shapes[0]
        assert shape.geometry.center == QPointF(80, 45)
        assert shape.geometry.w == 100
        assert rect_editor.mode == EditorMode.IDLE

    def test_move_unselected_shape(self, rect_editor):
        """Test that pressing on an unselected shape selects and drags it."""
        rect_editor.select_shape(None)

        rect_editor.pointer_down(QPointF(30, 20))

        assert rect_editor.selected_shape_id == 1
        assert rect_editor.mode == EditorMode.DRAGGING_SHAPE

    def test_resize_axis_right(self, rect_editor):
        """Test that the right handle changes only the width."""
        rect_editor.pointer_down(QPointF(110, 35))
        assert rect_editor.mode == EditorMode.RESIZING_HANDLE
        assert rect_editor.active_handle.name == "axis-right"

        rect_editor.pointer_move(QPointF(130, 40))
        rect_editor.pointer_up(QPointF(130, 40))

        geo = rect_editor.shapes[0].geometry
        assert geo.w == pytest.approx(140)
        assert geo.h == 50
        assert geo.center == QPointF(60, 35)

    def test_resize_clamped(self, rect_editor):
        """Test that resizing cannot collapse the shape."""
        rect_editor.pointer_down(QPointF(60, 10))
        rect_editor.pointer_move(QPointF(60, 34))

        assert rect_editor.shapes[0].geometry.h == pytest.approx(10)

    def test_resize_ellipse_past_center(self, calibrated_editor):
        """Test that dragging past the center mirrors into a positive radius."""
        draw_box(calibrated_editor, ShapeType.ELLIPSE, (100, 100), (140, 120))

        calibrated_editor.pointer_down(QPointF(100, 110))
        assert calibrated_editor.active_handle.name == "axis-left"
        calibrated_editor.pointer_move(QPointF(150, 110))

        assert calibrated_editor.shapes[0].geometry.rx == pytest.approx(30)

    def test_rotate(self, rect_editor):
        """Test that the rotation handle follows the cursor."""
        rect_editor.pointer_down(QPointF(60, 10 - rect_editor.config.rotation_handle_distance))
        assert rect_editor.mode == EditorMode.ROTATING

        rect_editor.pointer_move(QPointF(160, 35))
        rect_editor.pointer_up(QPointF(160, 35))

        geo = rect_editor.shapes[0].geometry
        assert geo.rotation == pytest.approx(math.pi / 2)
        assert geo.center == QPointF(60, 35)
        assert rect_editor.area(rect_editor.shapes[0]) == pytest.approx(1250)

    def test_drag_vertex(self, calibrated_editor):
        """Test reshaping a polygon by one vertex."""
        calibrated_editor.set_shape_type(ShapeType.POLYGON)
        calibrated_editor.begin_add_shape()
        for x, y in [(0, 0), (100, 0), (50, 80)]:
            calibrated_editor.pointer_down(QPointF(x, y))
        calibrated_editor.double_click(QPointF(50, 80))

        calibrated_editor.pointer_down(QPointF(100, 0))
        assert calibrated_editor.mode == EditorMode.DRAGGING_VERTEX
        calibrated_editor.pointer_move(QPointF(120, 10))
        calibrated_editor.pointer_up(QPointF(120, 10))

        points = calibrated_editor.shapes[0].geometry.points
        assert points == [QPointF(0, 0), QPointF(120, 10), QPointF(50, 80)]

    def test_cancel_reverts_drag(self, rect_editor):
        """Test that cancel mid-drag restores the pre-gesture geometry."""
        rect_editor.pointer_down(QPointF(60, 35))
        rect_editor.pointer_move(QPointF(200, 200))
        assert rect_editor.shapes[0].geometry.center == QPointF(200, 200)

        rect_editor.cancel()

        assert rect_editor.shapes[0].geometry.center == QPointF(60, 35)
        assert rect_editor.mode == EditorMode.IDLE
        assert rect_editor.selected_shape_id is None

    def test_resize_rotated_shape(self, rect_editor):
        """Test that resizing a rotated shape works in its own frame."""
        drag(rect_editor, (60, 10 - rect_editor.config.rotation_handle_distance), (160, 35))
        assert rect_editor.shapes[0].geometry.rotation == pytest.approx(math.pi / 2)

        rect_editor.pointer_down(QPointF(60, 85))
        assert rect_editor.mode == EditorMode.RESIZING_HANDLE
        assert rect_editor.active_handle.name == "axis-right"
        rect_editor.pointer_move(QPointF(60, 95))
        rect_editor.pointer_up(QPointF(60, 95))

        geo = rect_editor.shapes[0].geometry
        assert geo.w == pytest.approx(120)
        assert geo.h == pytest.approx(50)
        assert geo.center == QPointF(60, 35)
        assert geo.rotation == pytest.approx(math.pi / 2)

    def test_cancel_reverts_resize(self, rect_editor):
        """Test that cancel mid-resize restores the original size."""
        rect_editor.pointer_down(QPointF(110, 35))
        rect_editor.pointer_move(QPointF(150, 35))
        assert rect_editor.shapes[0].geometry.w == pytest.approx(180)

        rect_editor.cancel()

        geo = rect_editor.shapes[0].geometry
        assert geo.w == 100
        assert geo.h == 50
        assert rect_editor.mode == EditorMode.IDLE

    def test_cancel_reverts_rotate(self, rect_editor):
        """Test that cancel mid-rotation restores the original angle."""
        rect_editor.pointer_down(QPointF(60, 10 - rect_editor.config.rotation_handle_distance))
        rect_editor.pointer_move(QPointF(160, 35))
        assert rect_editor.shapes[0].geometry.rotation == pytest.approx(math.pi / 2)

        rect_editor.cancel()

        assert rect_editor.shapes[0].geometry.rotation == 0
        assert rect_editor.mode == EditorMode.IDLE

    def test_cancel_reverts_vertex_drag(self, calibrated_editor):
        """Test that cancel mid-reshape restores the polygon."""
        calibrated_editor.set_shape_type(ShapeType.POLYGON)
        calibrated_editor.begin_add_shape()
        for x, y in [(0, 0), (100, 0), (50, 80)]:
            calibrated_editor.pointer_down(QPointF(x, y))
        calibrated_editor.double_click(QPointF(50, 80))

        calibrated_editor.pointer_down(QPointF(100, 0))
        calibrated_editor.pointer_move(QPointF(140, 30))
        calibrated_editor.cancel()

        points = calibrated_editor.shapes[0].geometry.points
        assert points == [QPointF(0, 0), QPointF(100, 0), QPointF(50, 80)]
        assert calibrated_editor.mode == EditorMode.IDLE

    def test_move_does_not_drift(self, rect_editor):
        """Test that many intermediate moves leave no accumulated error."""
        rect_editor.pointer_down(QPointF(60, 35))
        for i in range(200):
            jitter = 0.1 * ((i % 7) - 3)
            rect_editor.pointer_move(QPointF(60 + i * 0.37 + jitter, 35 - i * 0.13 + jitter))
        rect_editor.pointer_move(QPointF(80, 45))
        rect_editor.pointer_up(QPointF(80, 45))

        geo = rect_editor.shapes[0].geometry
        assert geo.center == QPointF(80, 45)
        assert (geo.w, geo.h) == (100, 50)

    def test_hover_reports_handle(self, rect_editor):
        """Test that idle motion tracks the handle under the cursor."""
        rect_editor.pointer_move(QPointF(110, 36))

        assert rect_editor.hover_handle.name == "axis-right"


class TestLifecycle:
    """Tests for image load and reset."""

    def test_pointer_ignored_without_image(self):
        """Test that pointer input is ignored with no image."""
        editor = ShapeEditor()
        editor.pointer_down(QPointF(10, 10))

        assert editor.last_pointer is None

    def test_load_image_resets(self, rect_editor):
        """Test that a new image clears shapes and calibration."""
        rect_editor.load_image(640, 480)

        assert rect_editor.shapes == []
        assert rect_editor.scale.factor is None
        assert rect_editor.selected_shape_id is None
        assert rect_editor.image_size == (640, 480)

    def test_reset(self, rect_editor):
        """Test the full reset."""
        rect_editor.reset()

        assert not rect_editor.has_image
        assert rect_editor.shapes == []

    def test_config_thresholds(self):
        """Test that a configured minimum extent is honored."""
        editor = ShapeEditor(AppConfig(min_draw_extent=50))
        editor.load_image(500, 500)
        editor.begin_calibration()
        editor.pointer_down(QPointF(0, 0))
        editor.pointer_down(QPointF(10, 0))

        draw_box(editor, ShapeType.RECTANGLE, (10, 10), (50, 100))

        assert editor.shapes == []

    def test_default_shape_type_from_config(self):
        """Test the configured default drawing type."""
        editor = ShapeEditor(AppConfig(default_shape_type="polygon"))

        assert editor.shape_type == ShapeType.POLYGON
