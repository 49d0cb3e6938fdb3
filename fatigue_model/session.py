"""
Monitoring Session
Explicit per-session value composed of the metrics, detectors, presence
tracker, event log, shared face buffer and published state. The
orchestrator's loops receive it by reference; nothing here is global.
"""

import logging
import threading
from typing import Dict, List, Optional

from .config import FatigueConfig
from .detectors import EyeClosureDetector, HeadTurnDetector, YawnDetector
from .event_tracker import EventTracker
from .events import DetectionEvent, EventAction, EventType
from .landmarks import FaceObservation, select_nearest_face
from .metrics import DriverMetrics
from .presence import PresenceTracker
from .state import MonitoringState

logger = logging.getLogger("drowsyguard.core.session")


class FaceBuffer:
    """
    Hand-off between the detection loop (writer) and the capture loop
    (reader). The lock is only held for the swap.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._faces: List[FaceObservation] = []

    def publish(self, faces: List[FaceObservation]) -> None:
        with self._lock:
            self._faces = list(faces)

    def take(self) -> List[FaceObservation]:
        with self._lock:
            faces, self._faces = self._faces, []
        return faces

    def clear(self) -> None:
        with self._lock:
            self._faces = []


class MonitoringSession:

    def __init__(self, config: FatigueConfig = FatigueConfig()):
        self.config = config
        self.metrics = DriverMetrics.for_config(config)
        self.eye_detector = EyeClosureDetector(config)
        self.yawn_detector = YawnDetector(config)
        self.head_detector = HeadTurnDetector(config)
        self.presence = PresenceTracker(config)
        self.event_tracker = EventTracker(config.SUMMARY_WINDOW_SECONDS)
        self.face_buffer = FaceBuffer()
        self.state = MonitoringState()
        self._recent_event_times: Dict[EventType, float] = {}

    # ──────────────────────────────────────────────────────
    # Frame processing
    # ──────────────────────────────────────────────────────

    def process_faces(self, faces: List[FaceObservation], now: float) -> List[DetectionEvent]:
        nearest = select_nearest_face(faces)
        if nearest is None:
            return []
        if len(faces) > 1:
            logger.debug("Multiple faces detected (%d), processing the nearest one", len(faces))
        return self.process_face(nearest, now)

    def process_face(self, face: FaceObservation, now: float) -> List[DetectionEvent]:
        events: List[DetectionEvent] = []
        for detector in (self.eye_detector, self.yawn_detector, self.head_detector):
            event = detector.process(self.metrics, face, now)
            if event is not None:
                self._record(event)
                events.append(event)
        return events

    def face_lost(self, now: float) -> Optional[DetectionEvent]:
        event = self.presence.face_lost(now)
        if event is not None:
            self._record(event)
        return event

    def face_seen(self, now: float) -> Optional[DetectionEvent]:
        return self.presence.face_seen(now)

    def _record(self, event: DetectionEvent) -> None:
        if event.action is EventAction.CALIBRATED:
            self.state.is_calibrated = True
            self.state.calibration_message = event.message
        elif event.action is EventAction.DETECTED:
            self.event_tracker.log_event(event.event_type, event.message, event.timestamp)
            self.add_recent_event(event.event_type, event.message, event.timestamp)

    # ──────────────────────────────────────────────────────
    # Published state
    # ──────────────────────────────────────────────────────

    def add_recent_event(self, event_type: EventType, text: str, now: float) -> bool:
        """Newest first, capped; one entry per kind per display cooldown."""
        last = self._recent_event_times.get(event_type)
        if last is not None and now - last < self.config.EVENT_DISPLAY_COOLDOWN_SECONDS:
            return False
        self._recent_event_times[event_type] = now
        self.state.recent_events.insert(0, text)
        del self.state.recent_events[self.config.RECENT_EVENTS_LIMIT:]
        return True

    def set_coaching_advice(self, advice: str) -> None:
        self.state.last_coaching_advice = advice

    def summary(self, now: float) -> str:
        return self.event_tracker.generate_summary(now)

    def snapshot(self, now: float, frame_jpeg: Optional[bytes] = None) -> MonitoringState:
        m = self.metrics
        state = self.state
        state.blink_count = m.blink_count
        state.sleepy_count = m.sleepy_count
        state.yawn_count = m.yawn_count
        state.is_calibrated = m.is_calibrated
        state.is_head_turned = m.head_turned
        state.is_face_visible = self.presence.is_face_visible
        state.is_driver_sleepy = (
            m.eyes_closed
            and m.eye_closed_duration(now) >= self.config.SLEEPY_THRESHOLD_SECONDS
        )
        if frame_jpeg is not None:
            state.current_frame_jpeg = frame_jpeg
        return state

    def reset(self) -> None:
        self.metrics.reset()
        self.presence.reset()
        self.event_tracker.reset()
        self.face_buffer.clear()
        self.state = MonitoringState()
        self._recent_event_times.clear()
