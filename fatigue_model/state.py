"""Published monitoring snapshot."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class MonitoringState:
    """
    Derived view of a session, rebuilt every capture cycle.
    Never the source of truth; the detectors' metrics are.
    """
    blink_count: int = 0
    sleepy_count: int = 0
    yawn_count: int = 0
    is_calibrated: bool = False
    calibration_message: Optional[str] = None
    is_face_visible: bool = True
    is_driver_sleepy: bool = False
    is_head_turned: bool = False
    last_coaching_advice: Optional[str] = None
    recent_events: List[str] = field(default_factory=list)  # newest first
    current_frame_jpeg: Optional[bytes] = None

    @property
    def has_frame(self) -> bool:
        return bool(self.current_frame_jpeg)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready state; frame bytes travel out of band."""
        return {
            "blink_count": self.blink_count,
            "sleepy_count": self.sleepy_count,
            "yawn_count": self.yawn_count,
            "is_calibrated": self.is_calibrated,
            "calibration_message": self.calibration_message,
            "is_face_visible": self.is_face_visible,
            "is_driver_sleepy": self.is_driver_sleepy,
            "is_head_turned": self.is_head_turned,
            "last_coaching_advice": self.last_coaching_advice,
            "recent_events": list(self.recent_events),
            "has_frame": self.has_frame,
        }
