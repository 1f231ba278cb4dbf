"""
Tests for Prediction History, Debouncer and Top-Class Selection
================================================================
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import ClassificationError
from modules.recognition.prediction_debouncer import PredictionDebouncer, PredictionHistory
from modules.recognition.scores import top_class
from modules.resources.store import Vocabulary


@pytest.fixture
def vocab():
    return Vocabulary({0: "", 1: "hello", 2: "thanks", 3: "please"})


class TestPredictionHistory:
    """Bounded FIFO of top-class indices."""

    def test_never_exceeds_capacity(self):
        history = PredictionHistory(capacity=4)
        for i in range(10):
            history.push(i)
            assert len(history) <= 4

    def test_evicts_oldest_first(self):
        history = PredictionHistory(capacity=3)
        for i in (1, 2, 3, 4):
            history.push(i)
        assert list(history) == [2, 3, 4]

    def test_unanimous_requires_full_history(self):
        history = PredictionHistory(capacity=3)
        history.push(2)
        history.push(2)
        assert history.unanimous() is None
        history.push(2)
        assert history.unanimous() == 2

    def test_disagreement(self):
        history = PredictionHistory(capacity=3)
        for i in (2, 2, 1):
            history.push(i)
        assert history.unanimous() is None

    def test_empty(self):
        assert PredictionHistory(capacity=2).unanimous() is None


class TestPredictionDebouncer:
    """Sticky, edge-triggered output updates."""

    @pytest.fixture
    def debouncer(self, vocab):
        return PredictionDebouncer(vocab, concurrent_preds_required=4)

    def test_output_starts_empty(self, debouncer):
        assert debouncer.output == ""

    def test_label_after_four_agreeing_frames(self, debouncer):
        changes = [debouncer.update(3) for _ in range(4)]

        assert changes == [False, False, False, True]
        assert debouncer.output == "please"

    def test_background_never_displayed(self, debouncer):
        for _ in range(6):
            debouncer.update(0)
        assert debouncer.output == ""

    def test_background_keeps_previous_label(self, debouncer):
        for _ in range(4):
            debouncer.update(1)
        for _ in range(4):
            debouncer.update(0)
        assert debouncer.output == "hello"

    def test_disagreement_is_sticky(self, debouncer):
        for _ in range(4):
            debouncer.update(1)
        for index in (2, 3, 1, 2):
            debouncer.update(index)
        assert debouncer.output == "hello"

    def test_new_sign_replaces_old(self, debouncer):
        for _ in range(4):
            debouncer.update(1)
        for _ in range(4):
            debouncer.update(2)
        assert debouncer.output == "thanks"
        assert debouncer.recent_signs == ["hello", "thanks"]

    def test_repeated_agreement_changes_once(self, debouncer):
        changes = [debouncer.update(1) for _ in range(10)]
        assert changes.count(True) == 1

    def test_unknown_index_keeps_output(self, debouncer):
        for _ in range(4):
            debouncer.update(1)
        for _ in range(4):
            debouncer.update(42)
        assert debouncer.output == "hello"

    def test_recent_signs_bounded(self, vocab):
        debouncer = PredictionDebouncer(vocab, concurrent_preds_required=1, signs_to_display=2)
        for index in (1, 2, 3):
            debouncer.update(index)
        assert debouncer.recent_signs == ["thanks", "please"]

    def test_reset(self, debouncer):
        for _ in range(4):
            debouncer.update(1)
        debouncer.reset()
        assert debouncer.output == ""
        assert debouncer.history == []


class TestTopClass:
    """Arg-max with first-occurrence ties."""

    def test_picks_max(self):
        assert top_class([0.1, 0.7, 0.2]) == 1

    def test_ties_first_occurrence(self):
        assert top_class([0.5, 0.9, 0.9]) == 1

    def test_negative_scores(self):
        assert top_class(np.array([-5.0, -1.0, -3.0])) == 1

    def test_nan_never_wins(self):
        assert top_class([np.nan, 0.2, 0.1]) == 1

    def test_empty_raises(self):
        with pytest.raises(ClassificationError):
            top_class([])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
