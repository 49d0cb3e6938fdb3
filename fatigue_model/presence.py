"""No-face presence tracking with a cooldown that survives brief reappearances."""

import logging
from datetime import datetime
from typing import Optional

from .config import FatigueConfig
from .events import DetectionEvent, EventAction, EventType

logger = logging.getLogger("drowsyguard.core.presence")


class PresenceTracker:
    """
    Driven by the detection loop, which is the only place that knows
    authoritatively whether the provider saw a face this cycle.
    """

    def __init__(self, config: FatigueConfig = FatigueConfig()):
        self.config = config
        self.is_face_visible = True
        self.no_face_start: Optional[float] = None
        self.last_face_visible_time: Optional[float] = None
        self.is_alerted = False
        # Not cleared by face_seen()
        self.last_alert_time: Optional[float] = None

    def in_cooldown(self, now: float) -> bool:
        if self.last_alert_time is None:
            return False
        return now - self.last_alert_time < self.config.NO_FACE_ALERT_COOLDOWN_SECONDS

    def face_lost(self, now: float) -> Optional[DetectionEvent]:
        self.is_face_visible = False
        if self.no_face_start is None:
            self.no_face_start = now

        duration = now - self.no_face_start
        if duration < self.config.NO_FACE_THRESHOLD_SECONDS:
            return None

        if self.in_cooldown(now):
            logger.debug(
                "No face still not detected but within cooldown period. Next alert at: %s",
                datetime.fromtimestamp(
                    self.last_alert_time + self.config.NO_FACE_ALERT_COOLDOWN_SECONDS
                ).strftime("%H:%M:%S"),
            )
            return None

        severity = min(duration / (self.config.NO_FACE_THRESHOLD_SECONDS * 1.5), 1.0)
        self.last_alert_time = now
        self.is_alerted = True

        label = datetime.fromtimestamp(now).strftime("%H:%M:%S")
        message = f"NoFaceDetected for {self.config.NO_FACE_THRESHOLD_SECONDS:.0f}s at {label}"
        logger.warning(message)
        return DetectionEvent(
            event_type=EventType.NO_FACE,
            action=EventAction.DETECTED,
            timestamp=now,
            severity=severity,
            intervene=True,
            message=message,
        )

    def face_seen(self, now: float) -> Optional[DetectionEvent]:
        event = None
        if not self.is_face_visible and self.is_alerted:
            event = DetectionEvent(
                event_type=EventType.NO_FACE,
                action=EventAction.RECOVERED,
                timestamp=now,
            )

        self.is_face_visible = True
        self.last_face_visible_time = now
        self.no_face_start = None
        self.is_alerted = False
        return event

    def reset(self) -> None:
        self.is_face_visible = True
        self.no_face_start = None
        self.last_face_visible_time = None
        self.is_alerted = False
        self.last_alert_time = None
