"""
Driver Profile Models
Persisted per-driver document: event counts, learned intervention
effectiveness, and the intervention history.
"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


def _default_event_counts() -> Dict[str, int]:
    return {"Sleepy": 0, "Yawn": 0, "HeadTurn": 0, "NoFaceDetected": 0}


class InterventionRecord(BaseModel):
    """One delivered intervention. Only the outcome fields change after creation."""
    intervention_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_type: str
    intervention_type: str
    intervention_content: str
    timestamp: datetime = Field(default_factory=datetime.now)
    fatigue_severity: float = 0.5
    response_time: Optional[float] = None
    was_effective: Optional[bool] = None
    session_id: int = 0

    @property
    def is_resolved(self) -> bool:
        return self.was_effective is not None


class DriverProfile(BaseModel):
    driver_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "Default Driver"
    first_seen: datetime = Field(default_factory=datetime.now)
    last_seen: datetime = Field(default_factory=datetime.now)
    intervention_type_effectiveness: Dict[str, float] = Field(default_factory=dict)
    intervention_history: List[InterventionRecord] = Field(default_factory=list)
    average_recovery_time: float = 3.0  # seconds
    total_driving_session_count: int = 0
    fatigue_event_counts: Dict[str, int] = Field(default_factory=_default_event_counts)

    def increment_event(self, event_type: str) -> int:
        self.fatigue_event_counts[event_type] = self.fatigue_event_counts.get(event_type, 0) + 1
        return self.fatigue_event_counts[event_type]

    def find_record(self, intervention_id: str) -> Optional[InterventionRecord]:
        for record in self.intervention_history:
            if record.intervention_id == intervention_id:
                return record
        return None

    def refresh_recovery_time(self) -> None:
        """Average response time over interventions that worked."""
        times = [
            r.response_time for r in self.intervention_history
            if r.was_effective and r.response_time is not None
        ]
        if times:
            self.average_recovery_time = sum(times) / len(times)
