"""
Pydantic Schemas for API request/response validation
"""

from pydantic import BaseModel
from typing import Optional, List


# ── Monitoring Schemas ───────────────────────────────────
class MonitoringStateResponse(BaseModel):
    blink_count: int = 0
    sleepy_count: int = 0
    yawn_count: int = 0
    is_calibrated: bool = False
    calibration_message: Optional[str] = None
    is_face_visible: bool = True
    is_driver_sleepy: bool = False
    is_head_turned: bool = False
    last_coaching_advice: Optional[str] = None
    recent_events: List[str] = []
    has_frame: bool = False


class ActionResponse(BaseModel):
    success: bool
    message: str
