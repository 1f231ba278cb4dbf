"""
Tests for Configuration Loading
================================
"""

import os
import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from modules.utils.config import Config


@pytest.fixture(autouse=True)
def fresh_config():
    Config.reset()
    yield
    Config.reset()


class TestConfig:
    """YAML config with dot-path access."""

    def test_default_file_loads(self):
        config = Config().load()

        assert config.get("analysis.frames_per_sign") == 7
        assert config.get("analysis.concurrent_preds_required") == 4
        assert config.get("analysis.frame_rate_window") == 8
        assert config.analysis["background_class"] == 0

    def test_relative_paths_resolved(self):
        config = Config().load()

        vocab_path = config.get("resources.vocabulary")
        assert os.path.isabs(vocab_path)
        assert vocab_path.startswith(config.base_dir)

    def test_custom_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "analysis:\n"
            "  frames_per_sign: 5\n"
            "resources:\n"
            "  vocabulary: /data/vocab.csv\n"
        )

        config = Config().load(str(path))

        assert config.get("analysis.frames_per_sign") == 5
        assert config.get("resources.vocabulary") == "/data/vocab.csv"

    def test_partial_file_keeps_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("analysis:\n  concurrent_preds_required: 2\n")

        config = Config().load(str(path))

        assert config.get("analysis.concurrent_preds_required") == 2
        assert config.get("analysis.frames_per_sign") == 7
        assert config.get("detector.max_num_hands") == 2

    def test_missing_file_gives_defaults(self, tmp_path):
        config = Config().load(str(tmp_path / "missing.yaml"))

        assert config.get("analysis.frames_per_sign") == 7
        assert config.analysis["signs_to_display"] == 6
        assert os.path.isabs(config.get("classifier.model_path"))

    def test_defaults_not_mutated_between_loads(self, tmp_path):
        config = Config().load(str(tmp_path / "missing.yaml"))
        config.set("analysis.frames_per_sign", 11)

        Config.reset()
        config = Config().load(str(tmp_path / "missing.yaml"))

        assert config.get("analysis.frames_per_sign") == 7

    def test_bad_type_still_loads(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("analysis:\n  frames_per_sign: many\n")

        config = Config().load(str(path))

        assert config.get("analysis.frames_per_sign") == "many"

    def test_set_override(self):
        config = Config().load()
        config.set("camera.device_id", 3)
        assert config.camera["device_id"] == 3

    def test_singleton(self):
        assert Config() is Config()

    def test_missing_key_default(self):
        config = Config().load()
        assert config.get("analysis.nope", "fallback") == "fallback"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
