"""
DrowsyGuard Configuration
Central configuration loaded from environment variables.
"""

from pathlib import Path
from pydantic_settings import BaseSettings
from typing import List, Optional
from urllib.parse import urlparse


class Settings(BaseSettings):
    # App
    APP_NAME: str = "DrowsyGuard"
    APP_ENV: str = "development"
    DEBUG: bool = True

    # CORS
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000,http://localhost:8000"

    # Azure Face API (landmarks + head pose)
    AZURE_FACE_ENDPOINT: str = "https://face-api-hackathon.cognitiveservices.azure.com/"
    AZURE_FACE_API_KEY: str = ""
    AZURE_FACE_TIMEOUT: float = 10.0

    # Coaching advice (Azure OpenAI preferred, plain OpenAI as fallback)
    AZURE_OPENAI_ENDPOINT: str = ""
    AZURE_OPENAI_API_KEY: str = ""
    AZURE_OPENAI_DEPLOYMENT: str = "gpt-4.1"
    AZURE_OPENAI_API_VERSION: str = "2024-06-01"
    OPENAI_API_KEY: str = ""
    COACHING_MAX_TOKENS: int = 100
    COACHING_TEMPERATURE: float = 0.7

    # Camera
    CAMERA_INDEX: int = 0
    FRAME_WIDTH: int = 640
    FRAME_HEIGHT: int = 480
    JPEG_QUALITY: int = 80

    # Driver profiles
    PROFILE_DIR: str = "data"
    DEFAULT_DRIVER_ID: str = "default"
    RESET_PROFILE_ON_STARTUP: bool = True

    # Speech
    SPEECH_ENABLED: bool = True
    SPEECH_RATE: int = 180

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",")]

    @property
    def base_dir(self) -> Path:
        return Path(__file__).resolve().parent.parent.parent

    @property
    def profile_path(self) -> Path:
        p = Path(self.PROFILE_DIR)
        if not p.is_absolute():
            p = self.base_dir / p
        return p / "Profiles"

    @property
    def openai_base_endpoint(self) -> Optional[str]:
        """Scheme + host only; deployments configured with query strings still work."""
        if not self.AZURE_OPENAI_ENDPOINT:
            return None
        parsed = urlparse(self.AZURE_OPENAI_ENDPOINT)
        return f"{parsed.scheme}://{parsed.netloc}/"

    class Config:
        env_file = Path(__file__).resolve().parent.parent.parent / ".env"
        extra = "allow"


settings = Settings()
