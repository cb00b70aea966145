"""
Centralized configuration manager.
Loads YAML configs and provides typed access with defaults.

    - Schema validation for critical config fields (warnings, never fatal)
    - Dot-path access: config.get("physics.noise_scale", 0.3)
    - Reset support for testing
"""

import os
import yaml
import logging

logger = logging.getLogger(__name__)

_PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
_BASE_DIR = os.path.dirname(_PACKAGE_DIR)
_CONFIG_DIR = os.path.join(_BASE_DIR, "config")

# Schema: required sections and their expected types
_CONFIG_SCHEMA = {
    "particles": {
        "pattern": str,
        "count": int,
        "scale": float,
        "strict_names": bool,
    },
    "physics": {
        "attraction_strength": float,
        "turbulence_intensity": float,
        "velocity_damping": float,
        "noise_scale": float,
        "return_strength": float,
    },
    "transition": {
        "profile": str,
    },
    "recognition": {
        "sensitivity": float,
        "finger_mode": str,
    },
    "camera": {
        "device_id": int,
        "width": int,
        "height": int,
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base dict."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Singleton configuration manager."""

    _instance = None
    _data = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def load(self, config_path=None, gestures_path=None):
        """Load configuration from YAML files."""
        config_path = config_path or os.path.join(_CONFIG_DIR, "config.yaml")
        gestures_path = gestures_path or os.path.join(_CONFIG_DIR, "gestures.yaml")

        try:
            with open(config_path, "r") as f:
                self._data = yaml.safe_load(f) or {}
            logger.info("Loaded config from %s", config_path)
        except FileNotFoundError:
            logger.warning("Config file not found: %s, using defaults", config_path)
            self._data = {}

        try:
            with open(gestures_path, "r") as f:
                gesture_data = yaml.safe_load(f) or {}
            self._data["gestures"] = gesture_data
            logger.info("Loaded gestures from %s", gestures_path)
        except FileNotFoundError:
            logger.warning("Gestures file not found: %s", gestures_path)

        self._validate()

        return self

    def update(self, overrides: dict):
        """Deep-merge overrides (e.g. from CLI flags) into the loaded data."""
        self._data = _deep_merge(self._data, overrides)
        return self

    def _validate(self):
        """Validate critical config fields against schema."""
        warnings = []
        for section_name, fields in _CONFIG_SCHEMA.items():
            section = self._data.get(section_name)
            if section is None:
                warnings.append(f"Missing config section: '{section_name}'")
                continue
            if not isinstance(section, dict):
                warnings.append(f"Section '{section_name}' should be a dict, got {type(section).__name__}")
                continue
            for field_name, expected_type in fields.items():
                if field_name in section:
                    value = section[field_name]
                    # Allow int where float is expected
                    if expected_type is float and isinstance(value, (int, float)) \
                            and not isinstance(value, bool):
                        continue
                    if not isinstance(value, expected_type):
                        warnings.append(
                            f"{section_name}.{field_name}: expected {expected_type.__name__}, "
                            f"got {type(value).__name__} ({value!r})"
                        )

        if warnings:
            for w in warnings:
                logger.warning("Config validation: %s", w)
        else:
            logger.debug("Config validation passed")
        return warnings

    def get(self, key_path: str, default=None):
        """Get nested config value using dot notation: 'camera.width'."""
        keys = key_path.split(".")
        value = self._data
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def get_section(self, section: str) -> dict:
        """Get an entire config section."""
        return self._data.get(section, {}) or {}

    @property
    def particles(self) -> dict:
        return self.get_section("particles")

    @property
    def physics(self) -> dict:
        return self.get_section("physics")

    @property
    def transition(self) -> dict:
        return self.get_section("transition")

    @property
    def recognition(self) -> dict:
        return self.get_section("recognition")

    @property
    def orientation(self) -> dict:
        return self.get_section("orientation")

    @property
    def display(self) -> dict:
        return self.get_section("display")

    @property
    def camera(self) -> dict:
        return self.get_section("camera")

    @property
    def hand_tracking(self) -> dict:
        return self.get_section("hand_tracking")

    @property
    def gestures(self) -> dict:
        return self.get_section("gestures")

    @property
    def gesture_patterns(self) -> dict:
        return self.gestures.get("gesture_patterns", {}) or {}

    @property
    def base_dir(self) -> str:
        return _BASE_DIR

    @classmethod
    def reset(cls):
        """Reset singleton instance (for testing)."""
        cls._instance = None
        cls._data = {}
