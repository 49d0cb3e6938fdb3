"""
Detection thresholds and loop timing.
Centralized here so tuning never touches detector code.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class FatigueConfig:
    """Immutable configuration for fatigue detection thresholds and parameters"""

    # Eye closure / sleepiness (EAR = Eye Aspect Ratio)
    SLEEPY_THRESHOLD_SECONDS: float = 1.5
    EYE_CLOSED_RATIO: float = 0.7          # closed when EAR < baseline * ratio
    SLEEPY_DEBOUNCE_SECONDS: float = 3.0
    EAR_BUFFER_SIZE: int = 5
    CALIBRATION_SAMPLES: int = 5
    EAR_BASELINE_ADAPTATION_RATE: float = 0.01
    SLEEPY_SEVERITY_DURATION: float = 5.0  # seconds closed for max severity

    # Yawn
    MOUTH_YAWN_THRESHOLD_RATIO: float = 0.11
    YAWN_HOLD_SECONDS: float = 1.5
    YAWN_INTERVENTION_MIN_COUNT: int = 3

    # Head turn
    HEAD_TURN_THRESHOLD_DEGREES: float = 20.0
    HEAD_TURN_DURATION_SECONDS: float = 5.0

    # Face presence
    NO_FACE_THRESHOLD_SECONDS: float = 15.0
    NO_FACE_ALERT_COOLDOWN_SECONDS: float = 10.0

    # Event summary / published state
    SUMMARY_WINDOW_SECONDS: float = 60.0
    EVENT_DISPLAY_COOLDOWN_SECONDS: float = 10.0
    RECENT_EVENTS_LIMIT: int = 10

    # Loop timing
    FRAME_INTERVAL_SECONDS: float = 0.033          # ~30 fps
    FACE_DETECTION_INTERVAL_SECONDS: float = 0.1
    FACE_DETECTION_MIN_PERIOD_SECONDS: float = 1.0
    COACHING_INTERVAL_SECONDS: float = 60.0
    COACHING_SEVERITY: float = 0.6
