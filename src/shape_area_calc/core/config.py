"""Configuration management for Shape Area Calc."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .handles import HANDLE_MARGIN, HANDLE_SIZE, ROTATION_HANDLE_DISTANCE
from .models import MIN_DRAW_EXTENT, MIN_HALF_EXTENT

logger = logging.getLogger(__name__)

# Default configuration file path
DEFAULT_CONFIG_PATH = Path("config.yaml")


@dataclass
class AppConfig:
    """
    Application configuration settings.

    Holds the editor's geometric thresholds, calibration defaults
    and key bindings.
    """

    handle_size: float = HANDLE_SIZE  # Visual handle size in image pixels
    handle_margin: float = HANDLE_MARGIN  # Extra pick tolerance around a handle
    rotation_handle_distance: float = ROTATION_HANDLE_DISTANCE  # Offset beyond the top extent
    min_draw_extent: float = MIN_DRAW_EXTENT  # Drawn boxes must exceed this on both axes
    min_half_extent: float = MIN_HALF_EXTENT  # Resize clamp for semi-axes / half-extents
    default_real_length: float = 1.0
    default_unit: str = "µm"
    default_shape_type: str = "ellipse"  # ellipse, rectangle, polygon
    line_thickness: int = 2
    magnifier_zoom: float = 5.0  # Magnification of the cursor lens
    cancel_key: str = "Escape"  # Key/combination to cancel (empty to disable)
    delete_shape_keys: list[str] = field(default_factory=lambda: ["Delete", "Backspace"])
    last_directory: str = ""

    @property
    def pick_radius(self) -> float:
        """Cursor distance within which a handle is picked."""
        return self.handle_size + self.handle_margin

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for serialization."""
        return {
            "handleSize": self.handle_size,
            "handleMargin": self.handle_margin,
            "rotationHandleDistance": self.rotation_handle_distance,
            "minDrawExtent": self.min_draw_extent,
            "minHalfExtent": self.min_half_extent,
            "defaultRealLength": self.default_real_length,
            "defaultUnit": self.default_unit,
            "defaultShapeType": self.default_shape_type,
            "lineThickness": self.line_thickness,
            "magnifierZoom": self.magnifier_zoom,
            "cancelKey": self.cancel_key,
            "deleteShapeKeys": self.delete_shape_keys,
            "lastDirectory": self.last_directory,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> AppConfig:
        """Create config from dictionary."""
        delete_keys = data.get("deleteShapeKeys", ["Delete", "Backspace"])
        if isinstance(delete_keys, str):
            delete_keys = [k.strip() for k in delete_keys.split(",") if k.strip()]

        return cls(
            handle_size=data.get("handleSize", HANDLE_SIZE),
            handle_margin=data.get("handleMargin", HANDLE_MARGIN),
            rotation_handle_distance=data.get("rotationHandleDistance", ROTATION_HANDLE_DISTANCE),
            min_draw_extent=data.get("minDrawExtent", MIN_DRAW_EXTENT),
            min_half_extent=data.get("minHalfExtent", MIN_HALF_EXTENT),
            default_real_length=data.get("defaultRealLength", 1.0),
            default_unit=data.get("defaultUnit", "µm"),
            default_shape_type=data.get("defaultShapeType", "ellipse"),
            line_thickness=data.get("lineThickness", 2),
            magnifier_zoom=data.get("magnifierZoom", 5.0),
            cancel_key=data.get("cancelKey", "Escape"),
            delete_shape_keys=delete_keys,
            last_directory=data.get("lastDirectory", ""),
        )


class ConfigManager:
    """
    Manager for loading and saving application configuration.

    Handles YAML serialization and provides a clean interface
    for configuration access.
    """

    def __init__(self, config_path: Path = DEFAULT_CONFIG_PATH) -> None:
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file
        """
        self.config_path = Path(config_path)
        self._config: Optional[AppConfig] = None

    @property
    def config(self) -> AppConfig:
        """Get the current configuration, loading if necessary."""
        if self._config is None:
            self._config = self.load()
        return self._config

    def load(self) -> AppConfig:
        """
        Load configuration from file.

        Returns:
            AppConfig instance with loaded or default values
        """
        if not self.config_path.exists():
            logger.info(f"Config file not found at {self.config_path}, using defaults")
            return AppConfig()

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            logger.info(f"Loaded configuration from {self.config_path}")
            return AppConfig.from_dict(data)
        except yaml.YAMLError as e:
            logger.error(f"Error parsing config file: {e}")
            return AppConfig()
        except Exception as e:
            logger.error(f"Error loading config: {e}")
            return AppConfig()

    def save(self, config: Optional[AppConfig] = None) -> bool:
        """
        Save configuration to file.

        Args:
            config: Configuration to save, or use current config

        Returns:
            True if save was successful
        """
        if config is not None:
            self._config = config

        if self._config is None:
            logger.warning("No configuration to save")
            return False

        try:
            with open(self.config_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(
                    self._config.to_dict(), f,
                    default_flow_style=False, allow_unicode=True
                )
            logger.info(f"Saved configuration to {self.config_path}")
            return True
        except Exception as e:
            logger.error(f"Error saving config: {e}")
            return False

    def update(self, **kwargs: Any) -> None:
        """
        Update configuration with new values.

        Args:
            **kwargs: Key-value pairs to update
        """
        config = self.config
        for key, value in kwargs.items():
            if hasattr(config, key):
                setattr(config, key, value)
            else:
                logger.warning(f"Unknown config key: {key}")
        self.save()
