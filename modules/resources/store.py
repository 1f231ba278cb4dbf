"""
Vocabulary and normalization tables loaded from static CSV resources.

Both tables are read once at startup and are immutable afterwards, so
they can be shared read-only across frames and threads.

Formats:
    vocabulary     one ``index,label`` pair per line
    normalization  two lines of comma-separated floats: means, then scales
"""

import logging
from types import MappingProxyType
from typing import Dict, Iterable, Optional

import numpy as np

from core.errors import ResourceLoadError
from core.types import NUM_DIMS, NUMBER_OF_COORDS

logger = logging.getLogger(__name__)


class Vocabulary:
    """Read-only mapping from class index to sign label."""

    def __init__(self, labels: Dict[int, str]):
        self._labels = MappingProxyType(dict(labels))

    def __len__(self):
        return len(self._labels)

    def __contains__(self, index):
        return index in self._labels

    def __getitem__(self, index: int) -> str:
        return self._labels[index]

    def get(self, index: int, default: Optional[str] = None) -> Optional[str]:
        return self._labels.get(index, default)

    @property
    def labels(self):
        return self._labels

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> "Vocabulary":
        labels = {}
        for line_no, line in enumerate(lines, start=1):
            line = line.strip()
            if not line:
                continue
            key, sep, value = line.partition(",")
            if not sep:
                raise ResourceLoadError("Vocabulary line %d has no ',': %r" % (line_no, line))
            try:
                index = int(key)
            except ValueError:
                raise ResourceLoadError(
                    "Vocabulary line %d has a non-integer index: %r" % (line_no, key)
                ) from None
            if index < 0:
                raise ResourceLoadError("Vocabulary line %d has a negative index" % line_no)
            labels[index] = value.strip()
        if not labels:
            raise ResourceLoadError("Vocabulary is empty")
        return cls(labels)


class NormalizationTable:
    """Per-coordinate mean and scale, indexed by ``landmark * 3 + axis``.

    Both hands share the same statistics.
    """

    __slots__ = ("_means", "_scales")

    def __init__(self, means, scales):
        means = np.array(means, dtype=np.float32)
        scales = np.array(scales, dtype=np.float32)
        if means.shape != (NUMBER_OF_COORDS,) or scales.shape != (NUMBER_OF_COORDS,):
            raise ResourceLoadError(
                "Normalization stats need %d means and %d scales, got %d and %d"
                % (NUMBER_OF_COORDS, NUMBER_OF_COORDS, means.size, scales.size)
            )
        if np.any(scales == 0):
            raise ResourceLoadError("Normalization scales contain zero")
        means.flags.writeable = False
        scales.flags.writeable = False
        self._means = means
        self._scales = scales

    @property
    def means(self) -> np.ndarray:
        return self._means

    @property
    def scales(self) -> np.ndarray:
        return self._scales

    def hand_stats(self, num_landmarks: int):
        """Mean and scale arrays of shape (num_landmarks, 3) for one hand."""
        count = num_landmarks * NUM_DIMS
        return (
            self._means[:count].reshape(num_landmarks, NUM_DIMS),
            self._scales[:count].reshape(num_landmarks, NUM_DIMS),
        )

    @classmethod
    def identity(cls) -> "NormalizationTable":
        """Table with mean 0 and scale 1 everywhere."""
        return cls(np.zeros(NUMBER_OF_COORDS), np.ones(NUMBER_OF_COORDS))

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> "NormalizationTable":
        rows = []
        for line_no, line in enumerate(lines, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                rows.append([float(v) for v in line.split(",")])
            except ValueError as e:
                raise ResourceLoadError(
                    "Normalization line %d is not a list of floats: %s" % (line_no, e)
                ) from None
        if len(rows) != 2:
            raise ResourceLoadError(
                "Normalization stats need exactly 2 lines (means, scales), got %d" % len(rows)
            )
        return cls(rows[0], rows[1])


def _read_lines(path: str, what: str) -> list:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.readlines()
    except OSError as e:
        raise ResourceLoadError("Cannot read %s file %s: %s" % (what, path, e)) from e


def load_vocabulary(path: str) -> Vocabulary:
    """Load the class-index to label table."""
    vocab = Vocabulary.from_lines(_read_lines(path, "vocabulary"))
    logger.info("Read vocab file, we have %d signs", len(vocab))
    return vocab


def load_normalization_stats(path: str) -> NormalizationTable:
    """Load the per-coordinate (mean, scale) table."""
    table = NormalizationTable.from_lines(_read_lines(path, "normalization"))
    logger.info("Loaded normalization stats from %s", path)
    return table
