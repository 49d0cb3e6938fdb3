"""
DrowsyGuard Driver Profile Storage
One JSON document per driver under ``<PROFILE_DIR>/Profiles``.

Unreadable or invalid documents are treated as "no profile": a fresh
default profile is used and overwrites the file on the next save.
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Sequence

from pydantic import ValidationError

from fatigue_model.interventions import DEFAULT_CATALOG, InterventionDefinition, default_scores
from fatigue_model.profile import DriverProfile

from app.core.config import settings

logger = logging.getLogger("drowsyguard.profiles")

DRIVER_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


def validate_driver_id(driver_id: str) -> str:
    """Driver ids become file names, so only letters, digits, "_" and "-" pass"""
    if not isinstance(driver_id, str) or not DRIVER_ID_PATTERN.fullmatch(driver_id):
        raise ValueError(f"Invalid driver id: {driver_id!r}")
    return driver_id


class DriverProfileStorage:
    """File-backed profile store with an in-memory cache"""

    _instance: Optional["DriverProfileStorage"] = None

    @classmethod
    def get_instance(cls) -> "DriverProfileStorage":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def __init__(
        self,
        directory: Optional[Path] = None,
        catalog: Sequence[InterventionDefinition] = DEFAULT_CATALOG,
    ):
        self.directory = Path(directory) if directory is not None else settings.profile_path
        self.directory.mkdir(parents=True, exist_ok=True)
        self.catalog = tuple(catalog)
        self._cache: Dict[str, DriverProfile] = {}
        logger.info(f"Profile storage initialized at {self.directory}")

    def _path(self, driver_id: str) -> Path:
        validate_driver_id(driver_id)
        return self.directory / f"{driver_id}.json"

    def _write(self, profile: DriverProfile) -> None:
        self._path(profile.driver_id).write_text(
            profile.model_dump_json(indent=2), encoding="utf-8"
        )

    # ── Read ─────────────────────────────────────────────────

    def get_profile(self, driver_id: str) -> DriverProfile:
        """Get a driver profile by ID, creating a new one if it doesn't exist"""
        cached = self._cache.get(driver_id)
        if cached is not None:
            return cached

        path = self._path(driver_id)
        if not path.exists():
            logger.info(f"Creating new driver profile for ID: {driver_id}")
            return self._create_profile(driver_id)

        try:
            profile = DriverProfile.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"Failed to read profile for driver {driver_id}, creating new one: {e}")
            return self._create_profile(driver_id)

        self._cache[driver_id] = profile
        return profile

    # ── Write ────────────────────────────────────────────────

    def save_profile(self, profile: DriverProfile) -> None:
        self._cache[profile.driver_id] = profile
        profile.last_seen = datetime.now()
        try:
            self._write(profile)
            logger.debug(f"Saved profile for driver {profile.driver_id}")
        except OSError as e:
            logger.error(f"Error saving driver profile for {profile.driver_id}: {e}")

    def reset_intervention_effectiveness(self, driver_id: str) -> DriverProfile:
        """Reset every intervention type to its catalog starting score"""
        profile = self.get_profile(driver_id)
        profile.intervention_type_effectiveness.update(default_scores(self.catalog))
        self.save_profile(profile)
        logger.info(f"Reset intervention effectiveness scores for driver {driver_id}")
        return profile

    def delete_profile(self, driver_id: str) -> bool:
        path = self._path(driver_id)
        self._cache.pop(driver_id, None)
        try:
            if path.exists():
                path.unlink()
                logger.info(f"Deleted profile for driver {driver_id}")
                return True
        except OSError as e:
            logger.error(f"Error deleting profile for {driver_id}: {e}")
        return False

    # ── Helpers ──────────────────────────────────────────────

    def _create_profile(self, driver_id: str) -> DriverProfile:
        profile = DriverProfile(
            driver_id=driver_id,
            intervention_type_effectiveness=default_scores(self.catalog),
        )
        self._cache[driver_id] = profile
        try:
            self._write(profile)
        except OSError as e:
            logger.error(f"Error writing new profile for {driver_id}: {e}")
        return profile


# Singleton accessor
def get_profile_storage() -> DriverProfileStorage:
    return DriverProfileStorage.get_instance()
