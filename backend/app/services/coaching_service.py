"""
DrowsyGuard Coaching Service
Turns the one-minute event summary into short spoken advice using a chat
completion (Azure OpenAI deployment, or plain OpenAI when only an API key
is configured).
"""

import logging
from typing import Optional

from openai import AsyncAzureOpenAI, AsyncOpenAI

from app.core.config import settings

logger = logging.getLogger("drowsyguard.coaching")

COACHING_FALLBACK_MESSAGE = "I'm unable to provide coaching advice at the moment."

SYSTEM_PROMPT = """You are a professional driver fatigue advisor.
Only speak if there are clear signs of driver fatigue (sleepiness, frequent yawning)
or lack of concentration (driver not looking forward for 5+ seconds).
If both issues exist, combine into one calm advisory.
If repeated fatigue signals persist, escalate (suggest pulling over).
If no issues, respond with an empty string."""


class CoachingService:

    _instance: Optional["CoachingService"] = None

    @classmethod
    def get_instance(cls) -> "CoachingService":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def __init__(self, client=None, model: Optional[str] = None):
        self.client = client if client is not None else self._build_client()
        self.model = model or settings.AZURE_OPENAI_DEPLOYMENT
        self.max_tokens = settings.COACHING_MAX_TOKENS
        self.temperature = settings.COACHING_TEMPERATURE

        if self.client is None:
            logger.info("Coaching disabled (set AZURE_OPENAI_ENDPOINT/AZURE_OPENAI_API_KEY or OPENAI_API_KEY in .env)")

    @staticmethod
    def _build_client():
        if settings.openai_base_endpoint and settings.AZURE_OPENAI_API_KEY:
            logger.info(f"Coaching via Azure OpenAI deployment {settings.AZURE_OPENAI_DEPLOYMENT}")
            return AsyncAzureOpenAI(
                azure_endpoint=settings.openai_base_endpoint,
                api_key=settings.AZURE_OPENAI_API_KEY,
                api_version=settings.AZURE_OPENAI_API_VERSION,
            )
        if settings.OPENAI_API_KEY:
            logger.info("Coaching via OpenAI")
            return AsyncOpenAI(api_key=settings.OPENAI_API_KEY, timeout=10.0)
        return None

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def get_advice(self, summary: str) -> str:
        """
        Ask for advice on ``summary``. Returns "" when coaching is not
        configured (or the model chose silence) and the fallback message when
        the provider call fails.
        """
        if not self.enabled:
            return ""

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": f"Driver status: {summary}"},
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
            coaching = (response.choices[0].message.content or "").strip()
            logger.debug(f"Received coaching response: {coaching}")
            return coaching
        except Exception as e:
            logger.error(f"Error getting coaching advice: {e}")
            return COACHING_FALLBACK_MESSAGE


def get_coaching_service() -> CoachingService:
    return CoachingService.get_instance()
