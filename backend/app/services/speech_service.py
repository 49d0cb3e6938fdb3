"""
DrowsyGuard Speech Service
Speaks intervention messages through the local TTS engine (pyttsx3).
The engine blocks while talking, so it always runs in the default executor.
"""

import asyncio
import logging
import threading
from typing import Optional

import pyttsx3

from app.core.config import settings

logger = logging.getLogger("drowsyguard.speech")


class SpeechUnavailableError(RuntimeError):
    """The TTS engine could not be created or failed while speaking"""


class SpeechService:

    _instance: Optional["SpeechService"] = None

    @classmethod
    def get_instance(cls) -> "SpeechService":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def __init__(self, enabled: Optional[bool] = None, rate: Optional[int] = None):
        self.enabled = settings.SPEECH_ENABLED if enabled is None else enabled
        self.rate = rate or settings.SPEECH_RATE
        self._engine = None
        self._lock = threading.Lock()

        if self.enabled:
            logger.info("Speech output enabled (pyttsx3)")
        else:
            logger.info("Speech output disabled (set SPEECH_ENABLED=true in .env)")

    def _get_engine(self):
        if self._engine is None:
            try:
                engine = pyttsx3.init()
                engine.setProperty("rate", self.rate)
                engine.setProperty("volume", 1.0)
            except Exception as e:
                raise SpeechUnavailableError(f"TTS engine init failed: {e}") from e
            self._engine = engine
        return self._engine

    def speak_sync(self, text: str) -> bool:
        if not self.enabled or not text:
            return False

        with self._lock:
            engine = self._get_engine()
            try:
                engine.say(text)
                engine.runAndWait()
            except Exception as e:
                # Engine may be in a bad state; rebuild on next call
                self._engine = None
                raise SpeechUnavailableError(f"TTS playback failed: {e}") from e

        logger.debug(f"Spoke: {text[:60]}")
        return True

    async def speak(self, text: str) -> bool:
        """Speak ``text``; raises SpeechUnavailableError when the engine fails"""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self.speak_sync, text)


def get_speech_service() -> SpeechService:
    return SpeechService.get_instance()
