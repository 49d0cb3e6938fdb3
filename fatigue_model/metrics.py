"""Per-session numeric state mutated by the detectors."""

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional

from .config import FatigueConfig


@dataclass
class DriverMetrics:
    """
    Session-scoped detector state. Only the orchestrator's loops touch it,
    and only through the detectors.
    """
    ear_buffer: Deque[float] = field(
        default_factory=lambda: deque(maxlen=FatigueConfig.EAR_BUFFER_SIZE)
    )
    baseline_ear: float = 0.0
    is_calibrated: bool = False

    # Eyes
    eyes_closed: bool = False
    eye_closure_start: Optional[float] = None
    last_sleepy_time: Optional[float] = None

    # Mouth
    mouth_held_open: bool = False
    mouth_open_start: Optional[float] = None
    yawn_in_progress: bool = False

    # Head
    head_turned: bool = False
    head_turn_start: Optional[float] = None

    # Counters
    blink_count: int = 0
    sleepy_count: int = 0
    yawn_count: int = 0

    @classmethod
    def for_config(cls, config: FatigueConfig) -> "DriverMetrics":
        return cls(ear_buffer=deque(maxlen=config.EAR_BUFFER_SIZE))

    def eye_closed_duration(self, now: float) -> float:
        if not self.eyes_closed or self.eye_closure_start is None:
            return 0.0
        return now - self.eye_closure_start

    def reset(self) -> None:
        self.ear_buffer.clear()
        self.baseline_ear = 0.0
        self.is_calibrated = False

        self.eyes_closed = False
        self.eye_closure_start = None
        self.last_sleepy_time = None

        self.mouth_held_open = False
        self.mouth_open_start = None
        self.yawn_in_progress = False

        self.head_turned = False
        self.head_turn_start = None

        self.blink_count = 0
        self.sleepy_count = 0
        self.yawn_count = 0
