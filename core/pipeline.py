"""
Per-frame sign analysis orchestrator.

Architecture:
    CameraFrame -> FrameRateTracker -> HandLandmarkExtractor (async)
    -> assign_hands -> frame_vector -> CoordinateWindow
    -> SignClassifier -> PredictionDebouncer -> EventBus (OUTPUT_TEXT)

Frames are delivered serially by the camera source. The analyzer copies
the pixels, releases the frame straight away and submits the copy for
extraction; everything after that runs in the extraction callback. All
session state is written under one lock, whichever thread the callback
arrives on.
"""

import time
import logging
import threading
from typing import Callable, List, Optional

from core.errors import ClassificationError
from core.events import EventBus, Events
from core.types import AnalysisState, HandObservation
from modules.detection.hand_assignment import assign_hands
from modules.recognition.coordinate_window import CoordinateWindow
from modules.recognition.coordinates import empty_frame_vector, frame_vector, hand_present
from modules.recognition.prediction_debouncer import PredictionDebouncer
from modules.recognition.scores import top_class
from modules.utils.frame_rate_tracker import FrameRateTracker, now_ms
from modules.utils.performance_monitor import PerformanceMonitor

logger = logging.getLogger(__name__)

OutputListener = Callable[[str], None]


class AnalysisSession:
    """Mutable state for one camera session.

    Owned exclusively by SignAnalyzer; created on start(), dropped on close().
    """

    def __init__(self, vocabulary, config: dict):
        self.window = CoordinateWindow(config.get("frames_per_sign", 7))
        self.debouncer = PredictionDebouncer(
            vocabulary,
            concurrent_preds_required=config.get("concurrent_preds_required", 4),
            background_class=config.get("background_class", 0),
            signs_to_display=config.get("signs_to_display", 6),
        )
        self.frame_rate = FrameRateTracker(config.get("frame_rate_window", 8))
        self.state = AnalysisState.IDLE
        self.last_analyzed_timestamp: Optional[int] = None
        self.frames_analyzed = 0
        self.frames_dropped = 0
        # Submitted to the extractor, callback not yet run
        self.in_flight = 0

    @property
    def output(self) -> str:
        return self.debouncer.output


class SignAnalyzer:
    """Turns a stream of camera frames into a debounced sign label.

    The extractor and classifier are injected capability objects; the
    analyzer starts them in start() and releases them in close().
    """

    def __init__(
        self,
        vocabulary,
        normalization,
        extractor,
        classifier,
        config: Optional[dict] = None,
        event_bus: Optional[EventBus] = None,
        performance_monitor: Optional[PerformanceMonitor] = None,
    ):
        self._vocab = vocabulary
        self._norm = normalization
        self._extractor = extractor
        self._classifier = classifier
        self._config = config or {}
        self._bus = event_bus or EventBus()
        self._perf = performance_monitor or PerformanceMonitor()

        self._lock = threading.Lock()
        self._session: Optional[AnalysisSession] = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self):
        """Start the collaborators and open a fresh analysis session."""
        if self._session is not None:
            return
        self._extractor.start()
        self._classifier.start()
        with self._lock:
            self._session = AnalysisSession(self._vocab, self._config)
        logger.info("Analysis session started (frames_per_sign=%d, preds_required=%d)",
                    self._config.get("frames_per_sign", 7),
                    self._config.get("concurrent_preds_required", 4))
        self._bus.emit(Events.SESSION_STARTED)

    def close(self):
        """End the session; results still in flight are dropped."""
        with self._lock:
            session, self._session = self._session, None
        if session is None:
            return
        self._extractor.close()
        self._classifier.close()
        logger.info("Analysis session closed after %d frames", session.frames_analyzed)
        self._bus.emit(Events.SESSION_CLOSED)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # =========================================================================
    # Subscribers
    # =========================================================================

    def subscribe(self, listener: OutputListener):
        """Receive the output string once per analyzed frame (weakly held)."""
        self._bus.subscribe(Events.OUTPUT_TEXT, listener)

    def unsubscribe(self, listener: OutputListener):
        self._bus.unsubscribe(Events.OUTPUT_TEXT, listener)

    # =========================================================================
    # Per-frame analysis
    # =========================================================================

    def analyze(self, frame):
        """Analyze one camera frame.

        The frame is always released before this returns.
        """
        session = self._session
        if session is None or not self._bus.has_listeners(Events.OUTPUT_TEXT):
            frame.close()
            self._perf.record_skip()
            return

        started = time.perf_counter()
        timestamp = now_ms()
        with self._lock:
            fps = session.frame_rate.record(timestamp)
            session.last_analyzed_timestamp = timestamp
            session.in_flight += 1
            session.state = AnalysisState.AWAITING_EXTRACTION
        logger.debug("Frames per second analyzed: %.1f", fps)

        def on_hands(observations, result_timestamp):
            self._on_hands(session, started, observations, result_timestamp)

        try:
            try:
                pixels = frame.copy_pixels()
            finally:
                # Lets the camera deliver the next frame
                frame.close()
            self._extractor.detect_async(pixels, timestamp, on_hands)
        except Exception:
            with self._lock:
                session.in_flight -= 1
                session.state = self._settled_state(session)
            raise

    def _on_hands(self, session: AnalysisSession, started: float,
                  observations: Optional[List[HandObservation]], timestamp: int):
        """Extraction callback; ``observations`` is None for a dropped frame."""
        extraction_ms = (time.perf_counter() - started) * 1000

        failure = None
        changed = False
        index = None
        with self._lock:
            if self._session is not session:
                logger.debug("Dropping result for frame %d, session closed", timestamp)
                return
            session.in_flight -= 1

            if observations is None:
                # No landmarks to add; the window and history stay as they are
                session.frames_dropped += 1
            else:
                self._perf.record("extraction", extraction_ms)
                assignment = assign_hands(observations)
                if hand_present(assignment):
                    vector = frame_vector(observations, assignment, self._norm)
                else:
                    vector = empty_frame_vector()
                session.window.push(vector)

            if observations:
                session.state = AnalysisState.CLASSIFYING
                try:
                    with self._perf.measure("classification"):
                        scores = self._classifier.predict(session.window.as_tensor())
                    index = top_class(scores)
                except ClassificationError as e:
                    failure = e
                else:
                    logger.debug("Prediction from frame %d is %d", timestamp, index)
                    changed = session.debouncer.update(index)

            session.state = AnalysisState.PUBLISHING
            session.frames_analyzed += 1
            output = session.output
            fps = session.frame_rate.fps

        if observations is None:
            logger.debug("Frame %d dropped before extraction, publishing current output",
                         timestamp)
            self._perf.record_drop()
        if failure is not None:
            logger.error("Classification failed for frame %d: %s", timestamp, failure)
            self._perf.record_failure()
            self._bus.emit(Events.CLASSIFICATION_FAILED, timestamp=timestamp, error=failure)
        if changed:
            self._bus.emit(Events.SIGN_RECOGNIZED, label=output, index=index, fps=fps)

        self._bus.emit(Events.OUTPUT_TEXT, output)

        with self._lock:
            if session.state is AnalysisState.PUBLISHING:
                session.state = self._settled_state(session)
        self._perf.record_frame()
        self._perf.record("total", (time.perf_counter() - started) * 1000)

    @staticmethod
    def _settled_state(session: AnalysisSession) -> AnalysisState:
        if session.in_flight > 0:
            return AnalysisState.AWAITING_EXTRACTION
        return AnalysisState.IDLE
    # =========================================================================
    # Read-only views
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._session is not None

    @property
    def state(self) -> AnalysisState:
        session = self._session
        return session.state if session is not None else AnalysisState.IDLE

    @property
    def output(self) -> str:
        session = self._session
        return session.output if session is not None else ""

    @property
    def recent_signs(self) -> list:
        session = self._session
        return session.debouncer.recent_signs if session is not None else []

    @property
    def prediction_history(self) -> list:
        session = self._session
        return session.debouncer.history if session is not None else []

    @property
    def window(self) -> Optional[CoordinateWindow]:
        session = self._session
        return session.window if session is not None else None

    @property
    def frames_per_second(self) -> float:
        session = self._session
        return session.frame_rate.fps if session is not None else 0.0

    @property
    def last_analyzed_timestamp(self) -> Optional[int]:
        session = self._session
        return session.last_analyzed_timestamp if session is not None else None

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def performance(self) -> PerformanceMonitor:
        return self._perf
