#!/usr/bin/env python3
"""
Sign Translate - real-time sign language recognition from a webcam.
Main application entry point.

Architecture:
    - CameraManager delivers frames serially on a worker thread
    - core.SignAnalyzer runs extraction -> window -> classifier -> debounce
    - core.EventBus publishes the output text to subscribers

Usage:
    python main.py                       # Default config
    python main.py --config my.yaml      # Custom config
    python main.py --camera 1            # Other camera device
    python main.py --rotation 90         # Rotate frames before extraction
"""

import sys
import os
import time
import signal
import argparse
import logging

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_ROOT)

from modules.utils.config import Config
from modules.utils.logger import setup_logging, SignLogger
from modules.utils.performance_monitor import PerformanceMonitor
from modules.capture.camera_manager import CameraManager
from modules.detection.hand_detector import HandLandmarkExtractor
from modules.recognition.sign_classifier import SignClassifier
from modules.resources.store import load_vocabulary, load_normalization_stats

from core.errors import SignAnalysisError
from core.events import EventBus, Events
from core.pipeline import SignAnalyzer

logger = logging.getLogger(__name__)


class SignTranslateApp:
    """Wires the camera, analyzer and output logging together."""

    def __init__(self, config: Config):
        self._config = config
        self._running = False
        self._last_text = None

        self._bus = EventBus()
        self._perf = PerformanceMonitor(
            window_size=config.get("performance.metrics_window", 100)
        )
        self._sign_logger = SignLogger()

        # Resource failures are fatal: no analyzer without both tables
        vocabulary = load_vocabulary(config.get("resources.vocabulary"))
        normalization = load_normalization_stats(config.get("resources.normalization"))

        classifier_cfg = dict(config.classifier)
        classifier_cfg.setdefault("num_classes", len(vocabulary))

        self._camera = CameraManager(config.camera)
        self._analyzer = SignAnalyzer(
            vocabulary=vocabulary,
            normalization=normalization,
            extractor=HandLandmarkExtractor(config.detector),
            classifier=SignClassifier(classifier_cfg),
            config=config.analysis,
            event_bus=self._bus,
            performance_monitor=self._perf,
        )

        # --- Wire Event Callbacks ---
        self._analyzer.subscribe(self._on_output)
        self._bus.subscribe(Events.SIGN_RECOGNIZED, self._sign_logger.log_sign)

        logger.info("SignTranslateApp initialized")

    def _on_output(self, text: str):
        """Output subscriber: log only when the displayed text changes."""
        if text != self._last_text:
            self._last_text = text
            logger.info("Output: %s", text or "<none>")

    def start(self) -> bool:
        """Run until interrupted."""
        if not self._camera.open():
            logger.error("Failed to open camera. Check connection and permissions.")
            return False

        try:
            self._analyzer.start()
        except FileNotFoundError:
            self._camera.stop()
            raise
        self._camera.start(self._analyzer.analyze)
        self._running = True
        logger.info("Analyzing frames, press Ctrl+C to stop")

        report_every = self._config.get("performance.report_interval_s", 30)
        last_report = time.time()
        while self._running:
            time.sleep(0.1)
            if report_every and time.time() - last_report >= report_every:
                self._perf.print_report(self._analyzer.frames_per_second)
                last_report = time.time()

        self._shutdown()
        return True

    def _shutdown(self):
        """Clean shutdown of all modules."""
        logger.info("Shutting down...")
        self._running = False
        self._camera.stop()
        fps = self._analyzer.frames_per_second
        recent = self._analyzer.recent_signs
        self._analyzer.close()

        self._perf.print_report(fps)
        logger.info("Signs recognized: %d (recent: %s)",
                    self._sign_logger.total_signs, ", ".join(recent) or "-")
        logger.info("Shutdown complete.")

    def handle_signal(self, signum, frame):
        """Handle SIGINT/SIGTERM for graceful shutdown."""
        logger.info("Signal %d received, shutting down...", signum)
        self._running = False


def parse_args():
    parser = argparse.ArgumentParser(
        description="Sign Translate - real-time sign language recognition"
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to config.yaml"
    )
    parser.add_argument(
        "--camera", type=int, default=None,
        help="Camera device ID"
    )
    parser.add_argument(
        "--rotation", type=int, choices=[0, 90, 180, 270], default=None,
        help="Clockwise rotation applied to frames before extraction"
    )
    parser.add_argument(
        "--log-level", type=str, default=None,
        help="Logging level (DEBUG, INFO, ...)"
    )
    return parser.parse_args()


def main():
    args = parse_args()

    # Load configuration
    config = Config()
    config.load(config_path=args.config)

    if args.camera is not None:
        config.set("camera.device_id", args.camera)
    if args.rotation is not None:
        config.set("camera.rotation_degrees", args.rotation)

    # Setup logging
    log_cfg = config.get_section("logging")
    setup_logging(
        level=args.log_level or log_cfg.get("level", "INFO"),
        log_file=log_cfg.get("file"),
        max_size_mb=log_cfg.get("max_size_mb", 10),
        backup_count=log_cfg.get("backup_count", 3),
    )

    logger.info("=" * 60)
    logger.info("  SIGN TRANSLATE")
    logger.info("  Version: %s", config.get("system.version", "1.0.0"))
    logger.info("=" * 60)

    try:
        app = SignTranslateApp(config)
    except (SignAnalysisError, FileNotFoundError) as e:
        logger.error("Cannot start analysis: %s", e)
        return 1

    # Register signal handlers
    signal.signal(signal.SIGINT, app.handle_signal)
    signal.signal(signal.SIGTERM, app.handle_signal)

    try:
        ok = app.start()
    except FileNotFoundError as e:
        logger.error("Cannot start analysis: %s", e)
        return 1
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
