"""
Per-stage latency tracking for the analysis pipeline.

Stages are timed either with ``measure()`` around a block or with
``record()`` when the start and end happen on different threads (the
extraction stage starts on the camera thread and ends in the detector
callback). Each stage keeps a rolling window of its last samples.
"""

import time
import threading
import logging
from collections import deque
from contextlib import contextmanager

import numpy as np

logger = logging.getLogger(__name__)

STAGE_NAMES = ("extraction", "classification", "total")

_EMPTY_STATS = {"avg": 0.0, "p95": 0.0, "max": 0.0, "samples": 0}


class PerformanceMonitor:
    """Rolling per-stage latencies plus analyzed/skipped/failed frame counters."""

    def __init__(self, window_size=100):
        self._window_size = window_size
        self._lock = threading.Lock()
        self._samples = {name: deque(maxlen=window_size) for name in STAGE_NAMES}
        self._counts = {"analyzed": 0, "skipped": 0, "dropped": 0, "failed": 0}
        self._started = time.monotonic()

    # =========================================================================
    # Recording
    # =========================================================================

    @contextmanager
    def measure(self, stage_name: str):
        """Time the enclosed block, recording it even if it raises."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record(stage_name, (time.perf_counter() - start) * 1000)

    def record(self, stage_name: str, elapsed_ms: float):
        with self._lock:
            samples = self._samples.get(stage_name)
            if samples is None:
                samples = self._samples[stage_name] = deque(maxlen=self._window_size)
            samples.append(float(elapsed_ms))

    def _bump(self, counter: str):
        with self._lock:
            self._counts[counter] += 1

    def record_frame(self):
        self._bump("analyzed")

    def record_skip(self):
        self._bump("skipped")

    def record_drop(self):
        """Frame accepted for analysis but dropped by the landmarker."""
        self._bump("dropped")

    def record_failure(self):
        self._bump("failed")

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def frame_count(self) -> int:
        with self._lock:
            return self._counts["analyzed"]

    @property
    def skipped_frames(self) -> int:
        with self._lock:
            return self._counts["skipped"]

    @property
    def dropped_frames(self) -> int:
        with self._lock:
            return self._counts["dropped"]

    @property
    def classification_failures(self) -> int:
        with self._lock:
            return self._counts["failed"]

    def get_stage_stats(self, stage_name: str) -> dict:
        """Mean, 95th percentile and max latency (ms) over the rolling window."""
        with self._lock:
            samples = np.array(self._samples.get(stage_name, ()), dtype=np.float64)
        if samples.size == 0:
            return dict(_EMPTY_STATS)
        return {
            "avg": float(samples.mean()),
            "p95": float(np.percentile(samples, 95)),
            "max": float(samples.max()),
            "samples": int(samples.size),
        }

    def get_stage_latency(self, stage_name: str) -> float:
        """Average latency of one stage in ms (0.0 when never recorded)."""
        return self.get_stage_stats(stage_name)["avg"]

    def get_all_latencies(self) -> dict:
        with self._lock:
            names = list(self._samples)
        return {name: self.get_stage_latency(name) for name in names}

    def get_report(self, fps: float = 0.0) -> dict:
        with self._lock:
            names = list(self._samples)
            counts = dict(self._counts)
        seen = counts["analyzed"] + counts["skipped"]
        stats = {name: self.get_stage_stats(name) for name in names}
        return {
            "fps": round(fps, 1),
            "analyzed_frames": counts["analyzed"],
            "skipped_frames": counts["skipped"],
            "skip_ratio": round(counts["skipped"] / seen, 3) if seen else 0.0,
            "dropped_frames": counts["dropped"],
            "classification_failures": counts["failed"],
            "uptime_seconds": round(time.monotonic() - self._started, 1),
            "latencies_ms": {name: round(s["avg"], 2) for name, s in stats.items()},
            "p95_ms": {name: round(s["p95"], 2) for name, s in stats.items()},
        }

    def print_report(self, fps: float = 0.0):
        report = self.get_report(fps)
        logger.info("=" * 60)
        logger.info("ANALYSIS PERFORMANCE (uptime %.0fs)", report["uptime_seconds"])
        logger.info("  fps %.1f | analyzed %d | skipped %d (%.1f%%) | dropped %d | failed %d",
                    report["fps"], report["analyzed_frames"], report["skipped_frames"],
                    report["skip_ratio"] * 100, report["dropped_frames"],
                    report["classification_failures"])
        for stage, avg in report["latencies_ms"].items():
            logger.info("  %-16s avg %7.2f ms   p95 %7.2f ms",
                        stage, avg, report["p95_ms"][stage])
        logger.info("=" * 60)

    def reset(self):
        with self._lock:
            for samples in self._samples.values():
                samples.clear()
            for counter in self._counts:
                self._counts[counter] = 0
            self._started = time.monotonic()
