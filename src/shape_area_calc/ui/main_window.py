"""Main application window for Shape Area Calc."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

from PyQt6.QtCore import Qt, QMimeData, QPointF
from PyQt6.QtGui import (
    QAction, QColor, QIcon, QImageReader, QPixmap, QDragEnterEvent, QDropEvent
)
from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QScrollArea, QStatusBar,
    QLabel, QDockWidget, QToolBar, QListWidget, QListWidgetItem, QPushButton,
    QComboBox, QDoubleSpinBox, QLineEdit, QGroupBox, QFileDialog, QMessageBox
)

from ..core.config import AppConfig, ConfigManager
from ..core.editor import EditorMode, ShapeEditor
from ..core.models import ShapeType
from ..core.report import format_area_with_unit, write_area_report
from .drawing_area import DrawingArea
from .magnifier import MagnifierLens

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".bmp", ".gif", ".webp", ".tif", ".tiff")
IMAGE_FILTER = f"Images ({' '.join('*' + ext for ext in IMAGE_EXTENSIONS)})"

TYPE_LABELS: Dict[ShapeType, str] = {
    ShapeType.ELLIPSE: "⬮ Ellipse",
    ShapeType.RECTANGLE: "▭ Rectangle",
    ShapeType.POLYGON: "⬠ Polygon",
}

DRAW_HINTS: Dict[ShapeType, str] = {
    ShapeType.ELLIPSE: "Click & drag on image to draw ellipse",
    ShapeType.RECTANGLE: "Click & drag on image to draw rectangle",
    ShapeType.POLYGON: "Click to add vertices, double-click to close",
}

STATUS_TIMEOUT_MS = 4000


def increase_image_allocation_limit() -> None:
    """Remove image allocation limit for large images."""
    QImageReader.setAllocationLimit(0)


class MainWindow(QMainWindow):
    """
    Main application window for Shape Area Calc.

    Provides image loading, scale calibration controls, the shape type
    selector, the shape list with areas, and report/image export.
    """

    def __init__(self, config_manager: Optional[ConfigManager] = None) -> None:
        """Initialize the main window."""
        super().__init__()

        increase_image_allocation_limit()

        self.config_manager = config_manager or ConfigManager()
        self.current_image: Optional[Path] = None

        # UI elements (initialized in _init_ui)
        self.drawing_area: Optional[DrawingArea] = None
        self.scroll_area: Optional[QScrollArea] = None
        self.shape_list: Optional[QListWidget] = None
        self.status_bar: Optional[QStatusBar] = None
        self.file_label: Optional[QLabel] = None
        self.zoom_label: Optional[QLabel] = None
        self.magnifier: Optional[MagnifierLens] = None

        self._init_ui()
        self._setup_connections()
        self._update_scale_info()
        self._update_shape_list()

        logger.info("MainWindow initialization complete")

    @property
    def config(self) -> AppConfig:
        """Get the current configuration."""
        return self.config_manager.config

    @property
    def editor(self) -> ShapeEditor:
        return self.drawing_area.editor

    # === UI Construction ===

    def _init_ui(self) -> None:
        """Initialize the user interface."""
        self.setWindowTitle("Shape Area Calc")
        self.resize(1280, 860)

        self.drawing_area = DrawingArea(self.config)
        self.scroll_area = QScrollArea()
        self.scroll_area.setWidget(self.drawing_area)
        self.scroll_area.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setCentralWidget(self.scroll_area)
        self.setAcceptDrops(True)

        self._create_toolbar()
        self._create_dock_widgets()
        self._create_status_bar()

    def _create_toolbar(self) -> None:
        """Create the main toolbar."""
        toolbar = QToolBar("Main")
        toolbar.setObjectName("mainToolbar")
        self.addToolBar(toolbar)

        self.open_action = QAction("Open Image...", self)
        self.open_action.setShortcut("Ctrl+O")
        self.reset_action = QAction("Reset", self)
        self.fit_action = QAction("Fit to View", self)
        self.export_image_action = QAction("Export PNG...", self)
        self.export_txt_action = QAction("Export TXT...", self)

        for action in (
            self.open_action, self.reset_action, self.fit_action,
            self.export_image_action, self.export_txt_action
        ):
            toolbar.addAction(action)

    def _create_dock_widgets(self) -> None:
        """Create the measurement side panel."""
        panel = QWidget()
        layout = QVBoxLayout(panel)

        # Scale calibration
        scale_group = QGroupBox("Scale")
        scale_layout = QVBoxLayout(scale_group)
        self.set_scale_button = QPushButton("Set Scale")
        self.set_scale_button.setCheckable(True)
        scale_layout.addWidget(self.set_scale_button)

        inputs = QHBoxLayout()
        self.length_input = QDoubleSpinBox()
        self.length_input.setDecimals(4)
        self.length_input.setRange(0.0, 1e9)
        self.length_input.setValue(self.config.default_real_length)
        self.unit_input = QLineEdit(self.config.default_unit)
        self.unit_input.setMaximumWidth(80)
        inputs.addWidget(self.length_input)
        inputs.addWidget(self.unit_input)
        scale_layout.addLayout(inputs)

        self.scale_info_label = QLabel("Scale not defined")
        scale_layout.addWidget(self.scale_info_label)
        layout.addWidget(scale_group)

        # Shape drawing
        shape_group = QGroupBox("Shapes")
        shape_layout = QVBoxLayout(shape_group)
        self.shape_type_combo = QComboBox()
        for shape_type in ShapeType:
            self.shape_type_combo.addItem(TYPE_LABELS[shape_type], shape_type.value)
        index = self.shape_type_combo.findData(self.editor.shape_type.value)
        self.shape_type_combo.setCurrentIndex(max(index, 0))
        shape_layout.addWidget(self.shape_type_combo)

        self.add_shape_button = QPushButton("Add Shape")
        self.add_shape_button.setCheckable(True)
        shape_layout.addWidget(self.add_shape_button)

        self.draw_hint_label = QLabel()
        self.draw_hint_label.setWordWrap(True)
        shape_layout.addWidget(self.draw_hint_label)

        self.shape_list = QListWidget()
        shape_layout.addWidget(self.shape_list)

        self.delete_shape_button = QPushButton("Delete Shape")
        shape_layout.addWidget(self.delete_shape_button)

        self.total_label = QLabel()
        shape_layout.addWidget(self.total_label)
        layout.addWidget(shape_group)

        # Magnifier
        magnifier_group = QGroupBox("Magnifier")
        magnifier_layout = QVBoxLayout(magnifier_group)
        self.magnifier = MagnifierLens(self.config.magnifier_zoom)
        magnifier_layout.addWidget(self.magnifier, alignment=Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(magnifier_group)

        dock = QDockWidget("Measurement", self)
        dock.setObjectName("measurementDock")
        dock.setWidget(panel)
        dock.setFeatures(QDockWidget.DockWidgetFeature.DockWidgetMovable)
        self.addDockWidget(Qt.DockWidgetArea.LeftDockWidgetArea, dock)

    def _create_status_bar(self) -> None:
        """Create the status bar."""
        self.status_bar = QStatusBar()
        self.setStatusBar(self.status_bar)
        self.file_label = QLabel("No file selected")
        self.status_bar.addPermanentWidget(self.file_label)
        self.zoom_label = QLabel("100%")
        self.status_bar.addPermanentWidget(self.zoom_label)

    def _setup_connections(self) -> None:
        """Connect signals to slots."""
        self.open_action.triggered.connect(self._open_image)
        self.reset_action.triggered.connect(self._reset_all)
        self.fit_action.triggered.connect(self._fit_to_view)
        self.export_image_action.triggered.connect(self._export_image)
        self.export_txt_action.triggered.connect(self._export_txt)

        self.drawing_area.zoom_changed.connect(self._on_zoom_changed)
        self.drawing_area.cursor_moved.connect(self._update_magnifier)
        self.drawing_area.cursor_left.connect(self.magnifier.clear)

        self.set_scale_button.clicked.connect(self._start_scale_setting)
        self.length_input.valueChanged.connect(self.editor.set_real_length)
        self.unit_input.textChanged.connect(self.editor.set_unit)
        self.shape_type_combo.currentIndexChanged.connect(self._on_shape_type_changed)
        self.add_shape_button.clicked.connect(self._start_add_shape)
        self.delete_shape_button.clicked.connect(self._delete_selected_shape_from_list)
        self.shape_list.itemClicked.connect(self._on_shape_list_item_clicked)

        self.editor.shapes_changed.connect(self._update_shape_list)
        self.editor.selection_changed.connect(self._on_selection_changed)
        self.editor.scale_changed.connect(self._update_scale_info)
        self.editor.mode_changed.connect(lambda _: self._update_controls())
        self.editor.status_message.connect(self._show_status_message)

        self._update_draw_hint()

    # === Image Handling ===

    def _open_image(self) -> None:
        """Ask for an image file and load it."""
        file_path, _ = QFileDialog.getOpenFileName(
            self, "Open Image", self.config.last_directory, IMAGE_FILTER
        )
        if file_path:
            self.load_image(Path(file_path))

    def load_image(self, path: Path) -> bool:
        """
        Load an image file and reset the measurement state.

        Args:
            path: Image file path

        Returns:
            True if the image was loaded
        """
        reader = QImageReader(str(path))
        reader.setAutoTransform(True)
        image = reader.read()
        if image.isNull():
            logger.error(f"Failed to load image {path}: {reader.errorString()}")
            QMessageBox.warning(self, "Open Image", f"Could not load image:\n{reader.errorString()}")
            return False

        self.current_image = path
        self.drawing_area.set_image(QPixmap.fromImage(image))
        self.drawing_area.fit_to(self.scroll_area.viewport().size())
        self.file_label.setText(path.name)
        self.config_manager.update(last_directory=str(path.parent))
        logger.info(f"Opened {path}")
        self._update_controls()
        return True

    def _reset_all(self) -> None:
        """Unload the image and clear everything."""
        self.current_image = None
        self.drawing_area.clear()
        self.file_label.setText("No file selected")
        self.magnifier.clear()
        self._update_controls()

    def _fit_to_view(self) -> None:
        self.drawing_area.fit_to(self.scroll_area.viewport().size())

    def _on_zoom_changed(self, factor: float) -> None:
        self.zoom_label.setText(f"{round(factor * 100)}%")

    def _update_magnifier(self, pos: QPointF) -> None:
        """Show the canvas region under the cursor in the magnifier."""
        self.magnifier.set_image(
            self.drawing_area.render_region(pos, self.magnifier.source_size)
        )

    # === Drag & Drop ===

    @staticmethod
    def _dropped_image_path(mime: QMimeData) -> Optional[Path]:
        """
        Get the image file carried by drag-and-drop data.

        Only the first URL is considered; it must be a local file with a
        supported image extension.
        """
        if not mime.hasUrls() or not mime.urls():
            return None
        url = mime.urls()[0]
        if not url.isLocalFile():
            return None
        path = Path(url.toLocalFile())
        if path.suffix.lower() not in IMAGE_EXTENSIONS:
            return None
        return path

    def dragEnterEvent(self, event: QDragEnterEvent) -> None:
        """Accept drags carrying an image file."""
        if self._dropped_image_path(event.mimeData()) is not None:
            event.acceptProposedAction()
        else:
            event.ignore()

    def dropEvent(self, event: QDropEvent) -> None:
        """Load a dropped image file."""
        path = self._dropped_image_path(event.mimeData())
        if path is None:
            self._show_status_message("Please drop an image file.")
            event.ignore()
            return
        event.acceptProposedAction()
        self.load_image(path)

    # === Scale & Shapes ===

    def _start_scale_setting(self) -> None:
        if not self.editor.begin_calibration():
            self.set_scale_button.setChecked(False)
        self._update_controls()
        self.drawing_area.setFocus()

    def _on_shape_type_changed(self, index: int) -> None:
        self.editor.set_shape_type(self.shape_type_combo.itemData(index))
        self._update_draw_hint()

    def _start_add_shape(self) -> None:
        if not self.editor.begin_add_shape():
            self.add_shape_button.setChecked(False)
        self._update_controls()
        self.drawing_area.setFocus()

    def _update_draw_hint(self) -> None:
        self.draw_hint_label.setText(DRAW_HINTS.get(self.editor.shape_type, ""))

    def _update_scale_info(self) -> None:
        """Refresh the scale summary label."""
        scale = self.editor.scale
        self.scale_info_label.setText(scale.describe())
        color = "palette(text)" if scale.factor is not None else "#f59e0b"
        self.scale_info_label.setStyleSheet(f"color: {color};")
        self._update_controls()

    def _update_controls(self) -> None:
        """Enable actions according to the editor state."""
        editor = self.editor
        has_shapes = bool(editor.shapes)
        mode = editor.mode

        self.set_scale_button.setEnabled(editor.has_image)
        self.set_scale_button.setChecked(
            mode in (EditorMode.SETTING_SCALE_1, EditorMode.SETTING_SCALE_2)
        )
        self.add_shape_button.setEnabled(editor.has_image and editor.scale.defined)
        self.add_shape_button.setChecked(
            mode in (EditorMode.DRAWING, EditorMode.DRAWING_POLYGON)
        )
        self.delete_shape_button.setEnabled(editor.selected_shape_id is not None)
        self.export_image_action.setEnabled(has_shapes)
        self.export_txt_action.setEnabled(has_shapes)

    def _update_shape_list(self) -> None:
        """Rebuild the shape list with current areas."""
        editor = self.editor
        unit = editor.scale.unit

        self.shape_list.blockSignals(True)
        self.shape_list.clear()
        for shape in editor.shapes:
            area_text = format_area_with_unit(editor.area(shape), unit)
            item = QListWidgetItem(f"{TYPE_LABELS[shape.type]} #{shape.id}    {area_text}")
            item.setData(Qt.ItemDataRole.UserRole, shape.id)
            item.setIcon(self._color_icon(shape.color))
            self.shape_list.addItem(item)
            if shape.id == editor.selected_shape_id:
                item.setSelected(True)
        self.shape_list.blockSignals(False)

        if editor.shapes:
            self.total_label.setText(f"Total: {format_area_with_unit(editor.total_area(), unit)}")
        else:
            self.total_label.setText("No shapes yet")
        self._update_controls()

    @staticmethod
    def _color_icon(color: QColor, size: int = 12) -> QIcon:
        pixmap = QPixmap(size, size)
        pixmap.fill(color)
        return QIcon(pixmap)

    def _on_shape_list_item_clicked(self, item: QListWidgetItem) -> None:
        self.editor.select_shape(item.data(Qt.ItemDataRole.UserRole))

    def _on_selection_changed(self, shape_id: Optional[int]) -> None:
        """Mirror the canvas selection in the shape list."""
        self.shape_list.blockSignals(True)
        for row in range(self.shape_list.count()):
            item = self.shape_list.item(row)
            item.setSelected(item.data(Qt.ItemDataRole.UserRole) == shape_id)
        self.shape_list.blockSignals(False)
        self._update_controls()

    def _delete_selected_shape_from_list(self) -> None:
        item = self.shape_list.currentItem()
        shape_id = item.data(Qt.ItemDataRole.UserRole) if item else self.editor.selected_shape_id
        if shape_id is not None:
            self.editor.delete_shape(shape_id)

    # === Export ===

    def _export_txt(self) -> None:
        """Save the area report as a text file."""
        if not self.editor.shapes:
            return
        file_path, _ = QFileDialog.getSaveFileName(
            self, "Export Area Report", "shapes_area_report.txt", "Text files (*.txt)"
        )
        if not file_path:
            return

        image_name = self.current_image.name if self.current_image else None
        if write_area_report(Path(file_path), self.editor.shapes, self.editor.scale, image_name):
            self._show_status_message("TXT exported.")
        else:
            QMessageBox.warning(self, "Export TXT", f"Could not write {file_path}")

    def _export_image(self) -> None:
        """Save the annotated image as PNG."""
        if not self.editor.shapes:
            return
        file_path, _ = QFileDialog.getSaveFileName(
            self, "Export Image", "shapes_export.png", "PNG images (*.png)"
        )
        if not file_path:
            return

        image = self.drawing_area.render_annotated_image()
        if image is not None and image.save(file_path, "PNG"):
            logger.info(f"Exported annotated image to {file_path}")
            self._show_status_message("Image exported.")
        else:
            logger.error(f"Failed to export image to {file_path}")
            QMessageBox.warning(self, "Export PNG", f"Could not write {file_path}")

    def _show_status_message(self, message: str) -> None:
        """Show a transient status bar message."""
        self.status_bar.showMessage(message, STATUS_TIMEOUT_MS)
