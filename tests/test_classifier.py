"""
Tests for the TorchScript Sign Classifier
==========================================
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

torch = pytest.importorskip("torch")

from core.errors import ClassificationError
from modules.recognition.sign_classifier import SignClassifier


class WindowSum(torch.nn.Module):
    """Scores class c with the sum of the window's axis-c coordinates, plus fixed extras."""

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        x = x.reshape(1, 1, 7, 3, 42)
        per_axis = torch.sum(x, dim=[0, 1, 2, 4])
        return torch.cat([per_axis, torch.zeros(2)]).unsqueeze(0)


@pytest.fixture
def model_path(tmp_path):
    path = tmp_path / "stream_cnn_3d.pt"
    torch.jit.script(WindowSum()).save(str(path))
    return str(path)


@pytest.fixture
def window():
    return np.zeros((1, 1, 7, 3, 42), dtype=np.float32)


class TestSignClassifier:
    """Load, predict, release."""

    def test_predict_scores(self, model_path, window):
        window[0, 0, :, 1, :] = 1.0

        with SignClassifier({"model_path": model_path, "num_classes": 5}) as classifier:
            scores = classifier.predict(window)

        assert scores.shape == (5,)
        assert scores[1] == pytest.approx(7 * 42)
        assert int(np.argmax(scores)) == 1

    def test_missing_model(self, tmp_path):
        classifier = SignClassifier({"model_path": str(tmp_path / "missing.pt")})
        with pytest.raises(FileNotFoundError):
            classifier.start()

    def test_predict_before_start(self, model_path, window):
        with pytest.raises(ClassificationError):
            SignClassifier({"model_path": model_path}).predict(window)

    def test_wrong_class_count(self, model_path, window):
        with SignClassifier({"model_path": model_path, "num_classes": 9}) as classifier:
            with pytest.raises(ClassificationError):
                classifier.predict(window)

    def test_shape_mismatch(self, model_path):
        with SignClassifier({"model_path": model_path}) as classifier:
            with pytest.raises(ClassificationError):
                classifier.predict(np.zeros((1, 1, 5, 3, 42), dtype=np.float32))

    def test_close_releases(self, model_path):
        classifier = SignClassifier({"model_path": model_path})
        classifier.start()
        assert classifier.is_loaded
        classifier.close()
        assert not classifier.is_loaded


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
