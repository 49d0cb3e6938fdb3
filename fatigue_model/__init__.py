"""
DrowsyGuard Fatigue Model Package
Headless fatigue-signal state machine and adaptive intervention engine.

Usage:
    from fatigue_model import MonitoringSession, InterventionEngine, SystemClock

    clock = SystemClock()
    session = MonitoringSession()
    events = session.process_faces(faces, clock.now())
    state = session.snapshot(clock.now())
    print(state.to_dict())
"""

from .clock import SystemClock
from .config import FatigueConfig
from .detectors import EyeClosureDetector, HeadTurnDetector, YawnDetector
from .event_tracker import EventTracker
from .events import DetectionEvent, EventAction, EventType
from .interventions import (
    DEFAULT_CATALOG,
    EffectivenessScorer,
    InterventionDecision,
    InterventionDefinition,
    InterventionEngine,
    InterventionSelector,
    compute_escalation_level,
)
from .landmarks import FaceLandmarks, FaceObservation, FaceRectangle, Point, select_nearest_face
from .metrics import DriverMetrics
from .presence import PresenceTracker
from .profile import DriverProfile, InterventionRecord
from .session import FaceBuffer, MonitoringSession
from .state import MonitoringState

__all__ = [
    "SystemClock",
    "FatigueConfig",
    "EyeClosureDetector",
    "HeadTurnDetector",
    "YawnDetector",
    "EventTracker",
    "DetectionEvent",
    "EventAction",
    "EventType",
    "DEFAULT_CATALOG",
    "EffectivenessScorer",
    "InterventionDecision",
    "InterventionDefinition",
    "InterventionEngine",
    "InterventionSelector",
    "compute_escalation_level",
    "FaceLandmarks",
    "FaceObservation",
    "FaceRectangle",
    "Point",
    "select_nearest_face",
    "DriverMetrics",
    "PresenceTracker",
    "DriverProfile",
    "InterventionRecord",
    "FaceBuffer",
    "MonitoringSession",
    "MonitoringState",
]
