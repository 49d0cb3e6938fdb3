"""
DrowsyGuard Intervention Manager
Binds the adaptive intervention engine to the current driver's stored
profile and delivers each decision over the right channels:

  Audio_*         speak + FatigueAlert (tagged with the audio level)
  Visual_Alert    FatigueAlert only
  Coaching        speak + CoachingReceived
  NoFaceDetected  speak + FatigueAlert styled as Audio_Moderate

Speech runs in the background; if it fails, a FatigueAlert carrying
``"[<type>] <message>"`` and ``is_fallback: true`` is pushed instead.
"""

import asyncio
import logging
import random
from typing import Any, Dict, List, Optional, Sequence, Set

from fatigue_model.clock import SystemClock
from fatigue_model.events import EventType
from fatigue_model.interventions import (
    DEFAULT_CATALOG,
    InterventionDecision,
    InterventionDefinition,
    InterventionEngine,
)
from fatigue_model.profile import DriverProfile, InterventionRecord

from app.core.config import settings
from app.services.profile_storage import DriverProfileStorage, get_profile_storage
from app.services.speech_service import SpeechService, get_speech_service
from app.services.websocket_manager import ConnectionManager, ws_manager

logger = logging.getLogger("drowsyguard.interventions")

AUDIO_TYPES = ("Audio_Mild", "Audio_Moderate", "Audio_Urgent")
VISUAL_TYPE = "Visual_Alert"


def new_session_id(rng: Optional[random.Random] = None) -> int:
    """Random 5-digit id stamped on every record of this process"""
    return (rng or random).randint(10000, 99999)


class InterventionManager:

    _instance: Optional["InterventionManager"] = None

    @classmethod
    def get_instance(cls) -> "InterventionManager":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def __init__(
        self,
        storage: Optional[DriverProfileStorage] = None,
        speech: Optional[SpeechService] = None,
        broadcaster: Optional[ConnectionManager] = None,
        clock=None,
        driver_id: Optional[str] = None,
        catalog: Sequence[InterventionDefinition] = DEFAULT_CATALOG,
        rng: Optional[random.Random] = None,
        session_id: Optional[int] = None,
    ):
        self.storage = storage or get_profile_storage()
        self.speech = speech or get_speech_service()
        self.broadcaster = broadcaster or ws_manager
        self.clock = clock or SystemClock()
        self.driver_id = driver_id or settings.DEFAULT_DRIVER_ID
        self.session_id = session_id if session_id is not None else new_session_id(rng)
        self.engine = InterventionEngine(catalog, session_id=self.session_id, rng=rng)
        self._speech_tasks: Set[asyncio.Task] = set()

        logger.info(f"Intervention manager ready (driver: {self.driver_id}, session: {self.session_id})")

    # ──────────────────────────────────────────────────────
    # Profile
    # ──────────────────────────────────────────────────────

    def get_profile(self) -> DriverProfile:
        return self.storage.get_profile(self.driver_id)

    async def start_session(self) -> DriverProfile:
        """Count a new driving session and forget undelivered outcomes"""
        self.engine.clear_open()
        profile = self.get_profile()
        profile.total_driving_session_count += 1
        await self._save(profile)
        return profile

    async def _save(self, profile: DriverProfile) -> None:
        # File write stays off the event loop
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, self.storage.save_profile, profile)

    def reset_effectiveness(self, driver_id: Optional[str] = None) -> DriverProfile:
        return self.storage.reset_intervention_effectiveness(driver_id or self.driver_id)

    # ──────────────────────────────────────────────────────
    # Events and outcomes
    # ──────────────────────────────────────────────────────

    async def handle_fatigue_event(
        self,
        event_type: str,
        severity: float = 0.5,
        custom_message: Optional[str] = None,
    ) -> Optional[InterventionDecision]:
        try:
            profile = self.get_profile()
            decision = self.engine.handle_event(
                profile, event_type, severity, self.clock.now(), custom_message
            )
            if decision is not None:
                await self.deliver(decision, event_type, severity)
                logger.info(
                    f"Executed {decision.definition.type} for {event_type} with content: {decision.message}"
                )
            await self._save(profile)
            return decision
        except Exception as e:
            logger.error(f"Error handling fatigue event {event_type}: {e}")
            return None

    async def record_response(self, event_type: str, was_effective: bool = True) -> List[InterventionRecord]:
        try:
            profile = self.get_profile()
            resolved = self.engine.record_response(profile, event_type, was_effective, self.clock.now())
            if resolved:
                await self._save(profile)
            return resolved
        except Exception as e:
            logger.error(f"Error recording intervention response for {event_type}: {e}")
            return []

    # ──────────────────────────────────────────────────────
    # Delivery
    # ──────────────────────────────────────────────────────

    async def deliver(self, decision: InterventionDecision, event_type: str, severity: float) -> None:
        intervention_type = decision.definition.type
        message = decision.message
        alert: Dict[str, Any] = {
            "type": event_type,
            "message": message,
            "severity": severity,
        }

        try:
            if intervention_type in AUDIO_TYPES:
                logger.debug(f"Executing audio intervention: {intervention_type} - {message}")
                self._speak_in_background(decision, event_type, severity)
                await self.broadcaster.send_event("FatigueAlert", {**alert, "audio_type": intervention_type})

            elif intervention_type == VISUAL_TYPE:
                logger.debug(f"Executing visual intervention: {intervention_type} - {message}")
                await self.broadcaster.send_event("FatigueAlert", alert)

            elif intervention_type == EventType.COACHING.value:
                logger.debug(f"Executing coaching intervention: {message}")
                self._speak_in_background(decision, event_type, severity)
                await self.broadcaster.send_event("CoachingReceived", message)

            elif intervention_type == EventType.NO_FACE.value:
                logger.debug(f"Executing no face detected intervention: {message}")
                self._speak_in_background(decision, event_type, severity)
                await self.broadcaster.send_event("FatigueAlert", {**alert, "audio_type": "Audio_Moderate"})

            else:
                logger.warning(f"No delivery route for intervention type {intervention_type}")
        except Exception as e:
            logger.error(f"Error executing intervention {intervention_type}: {e}")
            await self._send_fallback(intervention_type, message, event_type, severity)

    def _speak_in_background(self, decision: InterventionDecision, event_type: str, severity: float) -> None:
        task = asyncio.ensure_future(self._speak(decision, event_type, severity))
        self._speech_tasks.add(task)
        task.add_done_callback(self._speech_tasks.discard)

    async def _speak(self, decision: InterventionDecision, event_type: str, severity: float) -> None:
        try:
            await self.speech.speak(decision.message)
        except Exception as e:
            logger.error(f"Speech delivery failed for {decision.definition.type}: {e}")
            await self._send_fallback(decision.definition.type, decision.message, event_type, severity)

    async def _send_fallback(self, intervention_type: str, message: str, event_type: str, severity: float) -> None:
        try:
            await self.broadcaster.send_event("FatigueAlert", {
                "type": event_type,
                "message": f"[{intervention_type}] {message}",
                "severity": severity,
                "is_fallback": True,
            })
        except Exception as e:
            logger.error(f"Failed to send fallback alert: {e}")

    async def wait_for_speech(self) -> None:
        """Await speech still in flight (used on shutdown and in tests)"""
        if self._speech_tasks:
            await asyncio.gather(*list(self._speech_tasks), return_exceptions=True)


def get_intervention_manager() -> InterventionManager:
    return InterventionManager.get_instance()
