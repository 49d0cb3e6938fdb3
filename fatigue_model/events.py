"""
Event objects emitted by detectors.

Detectors stay synchronous and side-effect free towards the outside world:
they return a ``DetectionEvent`` and the orchestrator decides what to do
with it (log, broadcast, intervene, score).
"""

from dataclasses import dataclass
from enum import Enum


class EventType(str, Enum):
    """Event types, valued with the names stored in driver profiles"""
    SLEEPY = "Sleepy"
    YAWN = "Yawn"
    HEAD_TURN = "HeadTurn"
    NO_FACE = "NoFaceDetected"
    COACHING = "Coaching"
    BLINK = "Blink"
    CALIBRATION = "Calibration"


class EventAction(str, Enum):
    DETECTED = "detected"      # fatigue/distraction signal fired
    RECOVERED = "recovered"    # driver corrected; report to the scorer
    COUNTED = "counted"        # counter only (blinks)
    CALIBRATED = "calibrated"  # EAR baseline established


@dataclass
class DetectionEvent:
    """Represents a single detector output for one frame"""
    event_type: EventType
    action: EventAction
    timestamp: float
    severity: float = 0.0
    intervene: bool = False    # forward to the intervention engine
    message: str = ""
