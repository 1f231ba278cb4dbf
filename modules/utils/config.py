"""
Centralized configuration manager.

Built-in defaults are overlaid with config/config.yaml (or a file given on
the command line), so a partial YAML file only needs the keys it changes.
Relative resource and model paths are resolved against the project root.
"""

import os
import copy
import yaml
import logging

logger = logging.getLogger(__name__)

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
_CONFIG_DIR = os.path.join(_BASE_DIR, "config")

_DEFAULTS = {
    "analysis": {
        "frames_per_sign": 7,
        "concurrent_preds_required": 4,
        "frame_rate_window": 8,
        "signs_to_display": 6,
        "background_class": 0,
    },
    "resources": {
        "vocabulary": "assets/stream_cnn_3d_vocab.csv",
        "normalization": "assets/stream_cnn_3d_norm_stats.csv",
    },
    "detector": {
        "model_path": "models/hand_landmarker.task",
        "max_num_hands": 2,
        "min_detection_confidence": 0.5,
        "min_presence_confidence": 0.5,
        "min_tracking_confidence": 0.5,
        "use_gpu": False,
    },
    "classifier": {
        "model_path": "models/stream_cnn_3d.pt",
        "device": "cpu",
    },
    "camera": {
        "device_id": 0,
        "rotation_degrees": 0,
    },
}

# Value types checked after loading; int is accepted where float is expected
_TYPES = {
    "analysis.frames_per_sign": int,
    "analysis.concurrent_preds_required": int,
    "analysis.frame_rate_window": int,
    "analysis.signs_to_display": int,
    "analysis.background_class": int,
    "resources.vocabulary": str,
    "resources.normalization": str,
    "detector.model_path": str,
    "detector.max_num_hands": int,
    "detector.min_detection_confidence": float,
    "detector.min_tracking_confidence": float,
    "classifier.model_path": str,
    "camera.device_id": int,
    "camera.rotation_degrees": int,
}

_PATH_KEYS = (
    "resources.vocabulary",
    "resources.normalization",
    "detector.model_path",
    "classifier.model_path",
)


def _overlay(base: dict, override: dict) -> dict:
    """Recursively apply override on top of base (neither is modified)."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _overlay(merged[key], value)
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

    def load(self, config_path=None):
        """Load defaults, then the YAML file on top of them."""
        config_path = config_path or os.path.join(_CONFIG_DIR, "config.yaml")

        overrides = {}
        try:
            with open(config_path, "r") as f:
                overrides = yaml.safe_load(f) or {}
            logger.info("Loaded config from %s", config_path)
        except FileNotFoundError:
            logger.warning("Config file not found: %s, using defaults", config_path)

        if not isinstance(overrides, dict):
            logger.warning("Ignoring %s: top level is %s, not a mapping",
                           config_path, type(overrides).__name__)
            overrides = {}

        self._data = _overlay(copy.deepcopy(_DEFAULTS), overrides)
        for problem in self._type_problems():
            logger.warning("Config validation: %s", problem)
        self._resolve_paths()
        return self

    def _type_problems(self):
        for key_path, expected in _TYPES.items():
            value = self.get(key_path)
            if value is None:
                continue
            if expected is float and isinstance(value, (int, float)) and not isinstance(value, bool):
                continue
            if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
                yield "%s: expected %s, got %r" % (key_path, expected.__name__, value)

    def _resolve_paths(self):
        for key_path in _PATH_KEYS:
            path = self.get(key_path)
            if not isinstance(path, str):
                continue
            path = os.path.expanduser(path)
            if not os.path.isabs(path):
                path = os.path.join(_BASE_DIR, path)
            self.set(key_path, path)

    def get(self, key_path: str, default=None):
        """Get nested config value using dot notation: 'analysis.frames_per_sign'."""
        value = self._data
        for key in key_path.split("."):
            if not isinstance(value, dict) or key not in value:
                return default
            value = value[key]
        return value

    def set(self, key_path: str, value):
        """Override a nested config value (e.g. from the command line)."""
        *parents, leaf = key_path.split(".")
        section = self._data
        for key in parents:
            section = section.setdefault(key, {})
        section[leaf] = value

    def get_section(self, section: str) -> dict:
        return self._data.get(section, {})

    @property
    def analysis(self) -> dict:
        return self.get_section("analysis")

    @property
    def resources(self) -> dict:
        return self.get_section("resources")

    @property
    def detector(self) -> dict:
        return self.get_section("detector")

    @property
    def classifier(self) -> dict:
        return self.get_section("classifier")

    @property
    def camera(self) -> dict:
        return self.get_section("camera")

    @property
    def logging(self) -> dict:
        return self.get_section("logging")

    @property
    def base_dir(self) -> str:
        return _BASE_DIR

    @classmethod
    def reset(cls):
        """Reset singleton instance (for testing)."""
        cls._instance = None
        cls._data = {}
