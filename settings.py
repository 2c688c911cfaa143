"""
settings.py

Persistent settings management for PipeSync.

Handles cross-platform settings storage using TOML format with platformdirs
for proper user config directory detection.

Settings file location:
    - Windows: %APPDATA%/pipesync/settings.toml
    - macOS: ~/Library/Application Support/pipesync/settings.toml
    - Linux: ~/.config/pipesync/settings.toml

Default values are documented in comments throughout this file.
If settings.toml is corrupted, these defaults will be used.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs

# TOML reading - use tomllib for Python 3.11+, tomli for earlier versions
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

APP_NAME = "pipesync"

# Global settings manager instance (singleton)
_settings_manager: Optional["SettingsManager"] = None


def get_settings() -> "SettingsManager":
    """Get the global settings manager instance.

    Returns:
        The singleton SettingsManager instance.
    """
    global _settings_manager
    if _settings_manager is None:
        _settings_manager = SettingsManager()
    return _settings_manager


# =============================================================================
# Layout Settings
# =============================================================================

@dataclass
class LayoutSettings:
    """Fallback placement of nodes that carry no coordinates.

    Defaults:
        mode: "vertical"
        step: 250
        band: 100
        node_extent: 64
        vertical_margin: 1450
        horizontal_margin: 1000
        canvas_width: 2000
        canvas_height: 2000
    """
    mode: str = "vertical"        # Default: "vertical" (or "horizontal")
    step: int = 250               # Default: 250 pixels between stacked nodes
    band: int = 100               # Default: 100 pixels, the pinned column/row
    node_extent: int = 64         # Default: 64 pixels added per node to the extent
    vertical_margin: int = 1450   # Default: 1450 pixels subtracted in vertical mode
    horizontal_margin: int = 1000 # Default: 1000 pixels subtracted in horizontal mode
    canvas_width: int = 2000      # Default: 2000 pixels initial canvas width
    canvas_height: int = 2000     # Default: 2000 pixels initial canvas height


# =============================================================================
# Graph Settings
# =============================================================================

@dataclass
class GraphSettings:
    """Diagram construction settings.

    Defaults:
        receiver_x: 600
        receiver_y: 400
        preview_length: 15
    """
    receiver_x: int = 600      # Default: 600 pixels
    receiver_y: int = 400      # Default: 400 pixels
    preview_length: int = 15   # Default: 15 characters before "..."


# =============================================================================
# Sync Settings
# =============================================================================

@dataclass
class SyncSettings:
    """Text -> diagram synchronization settings.

    Defaults:
        debounce_ms: 250
    """
    debounce_ms: int = 250  # Default: 250 milliseconds after the last keystroke


# =============================================================================
# Stage Settings
# =============================================================================

@dataclass
class StageSettings:
    """Defaults for stages added from the diagram.

    Defaults:
        default_kind: "CustomPipe"
    """
    default_kind: str = "CustomPipe"  # Default: "CustomPipe"


# =============================================================================
# Main App Settings
# =============================================================================

@dataclass
class AppSettings:
    """Application settings with default values.

    Attributes:
        layout: Fallback layout settings.
        graph: Diagram construction settings.
        sync: Synchronization settings.
        stages: New-stage defaults.
    """
    layout: LayoutSettings = field(default_factory=LayoutSettings)
    graph: GraphSettings = field(default_factory=GraphSettings)
    sync: SyncSettings = field(default_factory=SyncSettings)
    stages: StageSettings = field(default_factory=StageSettings)


# =============================================================================
# Settings Manager
# =============================================================================

class SettingsManager:
    """Manages loading, saving, and accessing application settings.

    Settings are stored in a TOML file at the platform-appropriate location.
    If the settings file doesn't exist, defaults are used and the file is
    created on first save.

    Args:
        app_name: Application name used for the config directory.
        settings_dir: Override for the config directory (tests use a tmp dir).
    """

    def __init__(self, app_name: str = APP_NAME, settings_dir: Optional[Path] = None):
        if settings_dir is None:
            settings_dir = Path(platformdirs.user_config_dir(app_name))
        self.settings_dir = Path(settings_dir)
        self.settings_file = self.settings_dir / "settings.toml"
        self.settings = self.load()
        self._needs_save = not self.settings_file.exists()  # Save if file didn't exist

    def ensure_file_complete(self) -> None:
        """Ensure settings file exists with all sections. Call once at startup."""
        if self._needs_save or not self.settings_file.exists():
            self.save()
            self._needs_save = False

    def load(self) -> AppSettings:
        """Load settings from the TOML file.

        Returns:
            AppSettings instance with values from file or defaults if file
            doesn't exist or is invalid.
        """
        if not self.settings_file.exists():
            return AppSettings()

        try:
            with open(self.settings_file, "rb") as f:
                data = tomllib.load(f)

            return self._parse_toml(data)
        except (OSError, tomllib.TOMLDecodeError, AttributeError):
            # If file is corrupted or invalid, return defaults
            return AppSettings()

    def _parse_toml(self, data: Dict[str, Any]) -> AppSettings:
        """Parse TOML data into AppSettings.

        Args:
            data: Parsed TOML dictionary.

        Returns:
            AppSettings instance populated from TOML data.
        """
        settings = AppSettings()

        layout = data.get("layout", {})
        settings.layout.mode = layout.get("mode", settings.layout.mode)
        settings.layout.step = layout.get("step", settings.layout.step)
        settings.layout.band = layout.get("band", settings.layout.band)
        settings.layout.node_extent = layout.get("node_extent", settings.layout.node_extent)
        settings.layout.vertical_margin = layout.get("vertical_margin", settings.layout.vertical_margin)
        settings.layout.horizontal_margin = layout.get("horizontal_margin", settings.layout.horizontal_margin)
        settings.layout.canvas_width = layout.get("canvas_width", settings.layout.canvas_width)
        settings.layout.canvas_height = layout.get("canvas_height", settings.layout.canvas_height)

        graph = data.get("graph", {})
        settings.graph.receiver_x = graph.get("receiver_x", settings.graph.receiver_x)
        settings.graph.receiver_y = graph.get("receiver_y", settings.graph.receiver_y)
        settings.graph.preview_length = graph.get("preview_length", settings.graph.preview_length)

        sync = data.get("sync", {})
        settings.sync.debounce_ms = sync.get("debounce_ms", settings.sync.debounce_ms)

        stages = data.get("stages", {})
        settings.stages.default_kind = stages.get("default_kind", settings.stages.default_kind)

        return settings

    def save(self) -> None:
        """Save current settings to the TOML file.

        Creates the settings directory if it doesn't exist.
        """
        self.settings_dir.mkdir(parents=True, exist_ok=True)

        data = self._to_toml_dict()

        with open(self.settings_file, "wb") as f:
            tomli_w.dump(data, f)

    def _to_toml_dict(self) -> Dict[str, Any]:
        """Convert settings to a TOML-compatible dictionary structure.

        Returns:
            Dictionary organized by TOML sections.
        """
        s = self.settings
        return {
            "layout": {
                "mode": s.layout.mode,
                "step": s.layout.step,
                "band": s.layout.band,
                "node_extent": s.layout.node_extent,
                "vertical_margin": s.layout.vertical_margin,
                "horizontal_margin": s.layout.horizontal_margin,
                "canvas_width": s.layout.canvas_width,
                "canvas_height": s.layout.canvas_height,
            },
            "graph": {
                "receiver_x": s.graph.receiver_x,
                "receiver_y": s.graph.receiver_y,
                "preview_length": s.graph.preview_length,
            },
            "sync": {
                "debounce_ms": s.sync.debounce_ms,
            },
            "stages": {
                "default_kind": s.stages.default_kind,
            },
        }

    def to_toml(self) -> str:
        """Convert current settings to a TOML-formatted string.

        Returns:
            TOML representation of the current settings.
        """
        data = self._to_toml_dict()
        return tomli_w.dumps(data)

    def get_settings_path(self) -> Path:
        """Get the path to the settings file.

        Returns:
            Path object pointing to the settings file location.
        """
        return self.settings_file
