"""Rolling one-minute event log feeding the coaching summary."""

from collections import deque
from typing import Deque, NamedTuple

from .config import FatigueConfig
from .events import EventType


class LoggedEvent(NamedTuple):
    timestamp: float
    event_type: EventType
    text: str


class EventTracker:
    """Append-only queue of timestamped events, trimmed on every summary."""

    def __init__(self, window_seconds: float = FatigueConfig.SUMMARY_WINDOW_SECONDS):
        self.window_seconds = window_seconds
        self._events: Deque[LoggedEvent] = deque()

    def __len__(self) -> int:
        return len(self._events)

    def log_event(self, event_type: EventType, text: str, now: float) -> None:
        self._events.append(LoggedEvent(now, event_type, text))

    def _trim(self, now: float) -> None:
        while self._events and now - self._events[0].timestamp > self.window_seconds:
            self._events.popleft()

    def count(self, event_type: EventType) -> int:
        return sum(1 for e in self._events if e.event_type is event_type)

    def generate_summary(self, now: float) -> str:
        """
        Tally of the last minute, or an empty string when nothing happened
        (meaning no advisory is needed).
        """
        self._trim(now)
        if not self._events:
            return ""

        return (
            "In the last minute: "
            f"{self.count(EventType.YAWN)} yawns, "
            f"{self.count(EventType.HEAD_TURN)} times driver wasn't looking ahead 5+ seconds, "
            f"Found sleepy {self.count(EventType.SLEEPY)} times, "
            f"{self.count(EventType.NO_FACE)} times no face detected for 15s."
        )

    def reset(self) -> None:
        self._events.clear()
