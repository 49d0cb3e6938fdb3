"""
Fatigue Detectors
Eye closure / sleepiness, yawn and head-turn decision logic.

Each detector reads one face observation plus the shared ``DriverMetrics``,
mutates the metrics, and returns at most one ``DetectionEvent`` per frame.
Frames with missing landmark data are skipped without touching state.
"""

import logging
from datetime import datetime
from typing import Optional

from .config import FatigueConfig
from .events import DetectionEvent, EventAction, EventType
from .landmarks import FaceLandmarks, FaceObservation, Point, distance
from .metrics import DriverMetrics

logger = logging.getLogger("drowsyguard.core.detectors")


def _clock_label(now: float) -> str:
    return datetime.fromtimestamp(now).strftime("%H:%M:%S")


def eye_aspect_ratio(top: Point, bottom: Point, inner: Point, outer: Point) -> Optional[float]:
    """
    EAR for one eye = vertical opening / horizontal width.
    Returns None when the eye has no width.
    """
    horizontal = distance(inner, outer)
    if horizontal == 0.0:
        return None
    return distance(top, bottom) / horizontal


def average_ear(landmarks: FaceLandmarks) -> Optional[float]:
    """Mean EAR across both eyes, or None if any eye point is missing."""
    left_points = (
        landmarks.eye_left_top, landmarks.eye_left_bottom,
        landmarks.eye_left_inner, landmarks.eye_left_outer,
    )
    right_points = (
        landmarks.eye_right_top, landmarks.eye_right_bottom,
        landmarks.eye_right_inner, landmarks.eye_right_outer,
    )
    if any(p is None for p in left_points + right_points):
        return None

    left = eye_aspect_ratio(*left_points)
    right = eye_aspect_ratio(*right_points)
    if left is None or right is None:
        return None
    return (left + right) / 2.0


# ============================================================================
# EYE CLOSURE / SLEEPY
# ============================================================================

class EyeClosureDetector:
    """
    Calibrates a per-driver EAR baseline, then classifies each frame as
    eyes open or closed. Short closures count as blinks; closures held past
    the sleepy threshold raise debounced ``Sleepy`` events.
    """

    def __init__(self, config: FatigueConfig = FatigueConfig()):
        self.config = config

    def process(self, metrics: DriverMetrics, face: FaceObservation, now: float) -> Optional[DetectionEvent]:
        if face.landmarks is None:
            return None
        ear = average_ear(face.landmarks)
        if ear is None:
            return None
        return self.process_ear(metrics, ear, now)

    def process_ear(self, metrics: DriverMetrics, ear: float, now: float) -> Optional[DetectionEvent]:
        """Feed one averaged EAR sample through smoothing, calibration and classification."""
        metrics.ear_buffer.append(ear)
        smoothed = sum(metrics.ear_buffer) / len(metrics.ear_buffer)

        if not metrics.is_calibrated:
            if len(metrics.ear_buffer) == self.config.CALIBRATION_SAMPLES:
                metrics.baseline_ear = smoothed
                metrics.is_calibrated = True
                message = f"Calibrated EAR: {metrics.baseline_ear:.3f}"
                logger.info(message)
                return DetectionEvent(
                    event_type=EventType.CALIBRATION,
                    action=EventAction.CALIBRATED,
                    timestamp=now,
                    message=message,
                )
            return None

        rate = self.config.EAR_BASELINE_ADAPTATION_RATE
        metrics.baseline_ear = metrics.baseline_ear * (1 - rate) + smoothed * rate

        if smoothed < metrics.baseline_ear * self.config.EYE_CLOSED_RATIO:
            return self._eyes_closed(metrics, now)
        return self._eyes_opened(metrics, now)

    def _eyes_closed(self, metrics: DriverMetrics, now: float) -> Optional[DetectionEvent]:
        if not metrics.eyes_closed:
            metrics.eyes_closed = True
            metrics.eye_closure_start = now
            logger.debug("Eyes closed at %s", _clock_label(now))

        closed_for = now - metrics.eye_closure_start
        if closed_for < self.config.SLEEPY_THRESHOLD_SECONDS:
            return None

        if (metrics.last_sleepy_time is not None
                and now - metrics.last_sleepy_time < self.config.SLEEPY_DEBOUNCE_SECONDS):
            return None

        metrics.sleepy_count += 1
        metrics.last_sleepy_time = now

        severity = min(closed_for / self.config.SLEEPY_SEVERITY_DURATION, 1.0)
        severity = min(severity + metrics.sleepy_count / 10.0, 1.0)

        logger.warning(
            "[ALERT] Driver looks sleepy! Eyes closed for %.1fs - Total count: %d",
            closed_for, metrics.sleepy_count,
        )
        return DetectionEvent(
            event_type=EventType.SLEEPY,
            action=EventAction.DETECTED,
            timestamp=now,
            severity=severity,
            intervene=True,
            message=f"Sleepy at {_clock_label(now)}",
        )

    def _eyes_opened(self, metrics: DriverMetrics, now: float) -> Optional[DetectionEvent]:
        if not metrics.eyes_closed:
            return None

        closed_for = now - metrics.eye_closure_start
        metrics.eyes_closed = False
        metrics.eye_closure_start = None

        if closed_for < self.config.SLEEPY_THRESHOLD_SECONDS:
            metrics.blink_count += 1
            logger.debug("Blink detected at %s", _clock_label(now))
            return DetectionEvent(
                event_type=EventType.BLINK,
                action=EventAction.COUNTED,
                timestamp=now,
            )

        logger.debug("Eyes opened after %.1f seconds", closed_for)
        return DetectionEvent(
            event_type=EventType.SLEEPY,
            action=EventAction.RECOVERED,
            timestamp=now,
        )


# ============================================================================
# YAWN
# ============================================================================

class YawnDetector:
    """
    Mouth-open ratio relative to face height. A mouth held open past the
    hold duration is one yawn; the episode ends when the mouth closes.
    """

    def __init__(self, config: FatigueConfig = FatigueConfig()):
        self.config = config

    @staticmethod
    def mouth_open_ratio(face: FaceObservation) -> Optional[float]:
        landmarks, rect = face.landmarks, face.rectangle
        if landmarks is None or rect is None:
            return None
        if landmarks.upper_lip_top is None or landmarks.under_lip_bottom is None:
            return None
        if rect.height <= 0:
            return None
        return (landmarks.under_lip_bottom.y - landmarks.upper_lip_top.y) / rect.height

    def process(self, metrics: DriverMetrics, face: FaceObservation, now: float) -> Optional[DetectionEvent]:
        ratio = self.mouth_open_ratio(face)
        if ratio is None:
            return None
        return self.process_ratio(metrics, ratio, now)

    def process_ratio(self, metrics: DriverMetrics, ratio: float, now: float) -> Optional[DetectionEvent]:
        if ratio > self.config.MOUTH_YAWN_THRESHOLD_RATIO:
            return self._mouth_open(metrics, now)

        event = None
        if metrics.mouth_held_open and metrics.yawn_in_progress:
            logger.info("Mouth closed after yawn (ratio %.3f)", ratio)
            event = DetectionEvent(
                event_type=EventType.YAWN,
                action=EventAction.RECOVERED,
                timestamp=now,
            )
        metrics.mouth_held_open = False
        metrics.mouth_open_start = None
        metrics.yawn_in_progress = False
        return event

    def _mouth_open(self, metrics: DriverMetrics, now: float) -> Optional[DetectionEvent]:
        if not metrics.mouth_held_open:
            metrics.mouth_held_open = True
            metrics.mouth_open_start = now
            return None

        held_for = now - metrics.mouth_open_start
        if held_for < self.config.YAWN_HOLD_SECONDS or metrics.yawn_in_progress:
            return None

        metrics.yawn_in_progress = True
        metrics.yawn_count += 1
        severity = min(0.4 + metrics.yawn_count * 0.1, 0.9)

        logger.info("Yawn detected at %s (count %d)", _clock_label(now), metrics.yawn_count)
        return DetectionEvent(
            event_type=EventType.YAWN,
            action=EventAction.DETECTED,
            timestamp=now,
            severity=severity,
            # Only repeated yawns intervene
            intervene=metrics.yawn_count >= self.config.YAWN_INTERVENTION_MIN_COUNT,
            message=f"Yawn at {_clock_label(now)}",
        )


# ============================================================================
# HEAD TURN
# ============================================================================

class HeadTurnDetector:
    """Fires every HEAD_TURN_DURATION_SECONDS while yaw stays past the threshold."""

    def __init__(self, config: FatigueConfig = FatigueConfig()):
        self.config = config

    def process(self, metrics: DriverMetrics, face: FaceObservation, now: float) -> Optional[DetectionEvent]:
        if face.head_yaw is None:
            return None
        return self.process_yaw(metrics, face.head_yaw, now)

    def process_yaw(self, metrics: DriverMetrics, yaw: float, now: float) -> Optional[DetectionEvent]:
        if abs(yaw) > self.config.HEAD_TURN_THRESHOLD_DEGREES:
            return self._head_turned(metrics, now)

        event = None
        if metrics.head_turned:
            event = DetectionEvent(
                event_type=EventType.HEAD_TURN,
                action=EventAction.RECOVERED,
                timestamp=now,
            )
        metrics.head_turned = False
        metrics.head_turn_start = None
        return event

    def _head_turned(self, metrics: DriverMetrics, now: float) -> Optional[DetectionEvent]:
        if not metrics.head_turned:
            metrics.head_turned = True
            metrics.head_turn_start = now
            return None

        turned_for = now - metrics.head_turn_start
        if turned_for < self.config.HEAD_TURN_DURATION_SECONDS:
            return None

        severity = min(turned_for / self.config.HEAD_TURN_DURATION_SECONDS, 1.0)
        # Restart the timer so a continuous turn re-fires every period
        metrics.head_turn_start = now

        logger.warning(
            "Head turn detected for more than %.0f seconds at %s",
            self.config.HEAD_TURN_DURATION_SECONDS, _clock_label(now),
        )
        return DetectionEvent(
            event_type=EventType.HEAD_TURN,
            action=EventAction.DETECTED,
            timestamp=now,
            severity=severity,
            intervene=True,
            message=f"HeadTurn at {_clock_label(now)}",
        )
