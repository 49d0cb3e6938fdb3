"""
DrowsyGuard Driver Monitoring Service
Runs one monitoring session as three cooperating asyncio tasks:

  capture    (~33 ms)  read frame → process buffered faces → push state
  detection  (100 ms)  call the face provider at most once per second
  advisory   (60 s)    summarise the last minute → coaching advice

Each loop body is a single ``run_*_cycle`` coroutine so one iteration can
be driven directly. A failing iteration is logged and the loop carries on;
only ``stop()`` ends the tasks.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from fatigue_model.clock import SystemClock
from fatigue_model.config import FatigueConfig
from fatigue_model.events import DetectionEvent, EventAction, EventType
from fatigue_model.session import MonitoringSession
from fatigue_model.state import MonitoringState

from app.services.camera import Camera
from app.services.coaching_service import CoachingService, get_coaching_service
from app.services.face_client import FaceClient, get_face_client
from app.services.intervention_manager import InterventionManager, get_intervention_manager
from app.services.websocket_manager import ConnectionManager, ws_manager

logger = logging.getLogger("drowsyguard.monitoring")

# Push event sent when a detector fires
DETECTION_EVENT_NAMES: Dict[EventType, str] = {
    EventType.SLEEPY: "DriverSleepy",
    EventType.YAWN: "YawnDetected",
    EventType.HEAD_TURN: "HeadTurnDetected",
    EventType.NO_FACE: "NoFaceDetected",
}


class DriverMonitoringService:

    _instance: Optional["DriverMonitoringService"] = None

    @classmethod
    def get_instance(cls) -> "DriverMonitoringService":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def __init__(
        self,
        camera: Optional[Camera] = None,
        face_client: Optional[FaceClient] = None,
        coaching: Optional[CoachingService] = None,
        interventions: Optional[InterventionManager] = None,
        broadcaster: Optional[ConnectionManager] = None,
        clock=None,
        config: FatigueConfig = FatigueConfig(),
    ):
        self.camera = camera or Camera()
        self.face_client = face_client or get_face_client()
        self.coaching = coaching or get_coaching_service()
        self.interventions = interventions or get_intervention_manager()
        self.broadcaster = broadcaster or ws_manager
        self.clock = clock or SystemClock()
        self.config = config

        self.session = MonitoringSession(config)
        self.is_running = False
        self._stop_event = asyncio.Event()
        self._tasks: List[asyncio.Task] = []
        self._latest_jpeg: Optional[bytes] = None
        self._last_detection_time: Optional[float] = None

    # ──────────────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────────────

    async def start(self) -> bool:
        if self.is_running:
            logger.warning("Monitoring is already running")
            return False

        self.session.reset()
        self._latest_jpeg = None
        self._last_detection_time = None
        self._stop_event = asyncio.Event()

        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(None, self.camera.open)
        except Exception as e:
            logger.error(f"Error starting driver monitoring: {e}")
            raise

        await self.interventions.start_session()
        self.is_running = True
        self._tasks = [
            asyncio.ensure_future(self._detection_loop()),
            asyncio.ensure_future(self._advisory_loop()),
            asyncio.ensure_future(self._capture_loop()),
        ]

        logger.info("Driver monitoring started successfully")
        await self.broadcaster.send_event("MonitoringStarted")
        return True

    async def stop(self) -> bool:
        if not self.is_running:
            return False

        self._stop_event.set()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self.is_running = False

        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, self.camera.release)

        logger.info("Driver monitoring stopped")
        await self.broadcaster.send_event("MonitoringStopped")
        return True

    # ──────────────────────────────────────────────────────
    # Published state
    # ──────────────────────────────────────────────────────

    @property
    def state(self) -> MonitoringState:
        return self.session.state

    @property
    def current_frame(self) -> Optional[bytes]:
        return self.session.state.current_frame_jpeg

    def state_dict(self) -> dict:
        return self.session.state.to_dict()

    # ──────────────────────────────────────────────────────
    # Loop bodies
    # ──────────────────────────────────────────────────────

    async def run_capture_cycle(self) -> bool:
        """Read one frame, process buffered faces, push the snapshot"""
        loop = asyncio.get_event_loop()
        frame = await loop.run_in_executor(None, self.camera.read)
        if frame is None:
            logger.warning("Empty frame captured")
            return False

        now = self.clock.now()
        faces = self.session.face_buffer.take()
        if faces:
            events = self.session.process_faces(faces, now)
            await self._handle_events(events)

        jpeg = await loop.run_in_executor(None, self.camera.encode_jpeg, frame)
        if jpeg:
            self._latest_jpeg = jpeg

        state = self.session.snapshot(now, jpeg)
        await self.broadcaster.send_state(state.to_dict())
        return True

    async def run_detection_cycle(self) -> bool:
        """Send the latest frame to the face provider if the period has elapsed"""
        if not self._latest_jpeg:
            logger.debug("Waiting for frame...")
            return False

        now = self.clock.now()
        if (
            self._last_detection_time is not None
            and now - self._last_detection_time < self.config.FACE_DETECTION_MIN_PERIOD_SECONDS
        ):
            return False
        self._last_detection_time = now

        faces = await self.face_client.detect(self._latest_jpeg)
        now = self.clock.now()

        if not faces:
            logger.debug("No faces detected")
            was_visible = self.session.presence.is_face_visible
            event = self.session.face_lost(now)
            if was_visible:
                await self.broadcaster.send_event("FaceLost")
            if event is not None:
                await self._handle_event(event)
        else:
            was_visible = self.session.presence.is_face_visible
            event = self.session.face_seen(now)
            if not was_visible:
                await self.broadcaster.send_event("FaceRegained")
            if event is not None:
                await self._handle_event(event)
            self.session.face_buffer.publish(faces)
        return True

    async def run_advisory_cycle(self) -> Optional[str]:
        """Summarise the last minute and forward any advice as a Coaching event"""
        summary = self.session.summary(self.clock.now())
        logger.info(f"[Summary] {summary}")
        if not summary:
            logger.info("No significant events in the last minute")
            return None

        coaching = await self.coaching.get_advice(summary)
        logger.info(f"[Coaching] {coaching}")
        if not coaching:
            return None

        await self.interventions.handle_fatigue_event(
            EventType.COACHING.value, self.config.COACHING_SEVERITY, coaching
        )
        self.session.set_coaching_advice(coaching)
        return coaching

    # ──────────────────────────────────────────────────────
    # Event routing
    # ──────────────────────────────────────────────────────

    async def _handle_events(self, events: List[DetectionEvent]) -> None:
        for event in events:
            await self._handle_event(event)

    async def _handle_event(self, event: DetectionEvent) -> None:
        if event.action is EventAction.DETECTED:
            name = DETECTION_EVENT_NAMES.get(event.event_type)
            if name:
                await self.broadcaster.send_event(name, {
                    "message": event.message,
                    "severity": event.severity,
                    "timestamp": event.timestamp,
                })
            if event.intervene:
                await self.interventions.handle_fatigue_event(event.event_type.value, event.severity)

        elif event.action is EventAction.RECOVERED:
            await self.interventions.record_response(event.event_type.value, True)

    # ──────────────────────────────────────────────────────
    # Loops
    # ──────────────────────────────────────────────────────

    async def _capture_loop(self):
        logger.info("Starting main capture loop")
        while not self._stop_event.is_set():
            try:
                await self.run_capture_cycle()
            except Exception as e:
                logger.error(f"Error in main capture loop: {e}")
            await self.clock.sleep(self.config.FRAME_INTERVAL_SECONDS)

    async def _detection_loop(self):
        while not self._stop_event.is_set():
            try:
                await self.run_detection_cycle()
            except Exception as e:
                logger.error(f"Error in face detection: {e}")
            await self.clock.sleep(self.config.FACE_DETECTION_INTERVAL_SECONDS)

    async def _advisory_loop(self):
        while not self._stop_event.is_set():
            await self.clock.sleep(self.config.COACHING_INTERVAL_SECONDS)
            if self._stop_event.is_set():
                break
            try:
                await self.run_advisory_cycle()
            except Exception as e:
                logger.error(f"Error in advisory loop: {e}")


def get_monitoring_service() -> DriverMonitoringService:
    return DriverMonitoringService.get_instance()
