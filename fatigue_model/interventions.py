"""
Adaptive Intervention Engine
=============================
Chooses a response for each fatigue event and learns, per driver, which
intervention types actually bring the driver back.

Selection:
  1. escalation level from lifetime event count and current severity
  2. eligible definitions at exactly that level (else every level below it)
  3. highest learned effectiveness score wins, catalog order breaks ties
  4. a random message from the winner (or a pre-authored coaching text)

Scoring is a single-step reinforcement rule clamped to [0.1, 0.9].
"""

import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .events import EventType
from .profile import DriverProfile, InterventionRecord

logger = logging.getLogger("drowsyguard.core.interventions")


MIN_SCORE = 0.1
MAX_SCORE = 0.9
FAST_RESPONSE_SECONDS = 2.0
SLOW_RESPONSE_SECONDS = 5.0


@dataclass(frozen=True)
class InterventionDefinition:
    """Static catalog entry"""
    type: str
    name: str
    escalation_level: int
    messages: Tuple[str, ...]
    initial_effectiveness_score: float = 0.5


DEFAULT_CATALOG: Tuple[InterventionDefinition, ...] = (
    InterventionDefinition(
        type="Audio_Mild",
        name="Gentle voice alert",
        escalation_level=1,
        messages=(
            "I notice you appear to be getting sleepy. Please stay alert.",
            "You seem tired. Try to stay focused on the road.",
            "Your alertness might be decreasing. Please be careful.",
        ),
        initial_effectiveness_score=0.5,
    ),
    InterventionDefinition(
        type="Audio_Moderate",
        name="Firm voice alert",
        escalation_level=2,
        messages=(
            "Alert! You need to pay more attention. Your eyes are closing too frequently.",
            "Warning! You're showing clear signs of fatigue. Focus on the road.",
            "Caution! You're yawning frequently. Consider taking a break soon.",
        ),
        initial_effectiveness_score=0.6,
    ),
    InterventionDefinition(
        type="Audio_Urgent",
        name="Urgent voice alert",
        escalation_level=3,
        messages=(
            "URGENT! You appear very drowsy! Pull over safely as soon as possible!",
            "DANGER! Multiple signs of severe fatigue detected! Please stop driving!",
            "IMMEDIATE ACTION NEEDED! You are at high risk of falling asleep! Pull over now!",
        ),
        initial_effectiveness_score=0.7,
    ),
    InterventionDefinition(
        type="Visual_Alert",
        name="Visual dashboard alert",
        escalation_level=2,
        messages=(
            "FATIGUE DETECTED",
            "DROWSINESS WARNING",
            "ATTENTION REQUIRED",
            "TAKE A BREAK",
        ),
        initial_effectiveness_score=0.5,
    ),
    InterventionDefinition(
        type="Coaching",
        name="AI coaching advice",
        escalation_level=2,
        messages=(
            "I've noticed several signs of fatigue. Consider opening a window for fresh air and adjusting your posture.",
            "Your alertness is decreasing. Try taking some deep breaths and consider stopping for a short walk if possible.",
            "Multiple yawns detected. This is a clear sign that you need rest. Consider finding a safe place to stop.",
        ),
        initial_effectiveness_score=0.6,
    ),
    InterventionDefinition(
        type="NoFaceDetected",
        name="No face visible alert",
        escalation_level=2,
        messages=(
            "Your face is not visible to the camera.",
            "Please adjust your position so the camera can see your face.",
            "The system cannot detect your face. Please check your position.",
        ),
        initial_effectiveness_score=0.6,
    ),
)

# Event types served by exactly one catalog entry of the same name
DEDICATED_EVENT_TYPES = (EventType.NO_FACE.value, EventType.COACHING.value)


def default_scores(catalog: Sequence[InterventionDefinition] = DEFAULT_CATALOG) -> Dict[str, float]:
    return {d.type: d.initial_effectiveness_score for d in catalog}


def compute_escalation_level(event_count: int, severity: float) -> int:
    level = 1

    if 3 <= event_count < 7:
        level = max(level, 2)
    elif event_count >= 7:
        level = 3

    if severity >= 0.6:
        level = max(level, 2)
    if severity >= 0.8:
        level = 3

    return level


# ============================================================================
# SELECTION
# ============================================================================

@dataclass(frozen=True)
class Selection:
    definition: InterventionDefinition
    message: str


class InterventionSelector:
    """Picks (definition, message) for an event given a driver profile."""

    def __init__(
        self,
        catalog: Sequence[InterventionDefinition] = DEFAULT_CATALOG,
        rng: Optional[random.Random] = None,
    ):
        self.catalog = tuple(catalog)
        self.rng = rng or random.Random()

    def find(self, intervention_type: str) -> Optional[InterventionDefinition]:
        for definition in self.catalog:
            if definition.type == intervention_type:
                return definition
        return None

    def score_of(self, profile: DriverProfile, definition: InterventionDefinition) -> float:
        return profile.intervention_type_effectiveness.get(
            definition.type, definition.initial_effectiveness_score
        )

    def eligible(self, level: int) -> List[InterventionDefinition]:
        exact = [d for d in self.catalog if d.escalation_level == level]
        if exact:
            return exact
        return [d for d in self.catalog if d.escalation_level <= level]

    def _random_message(self, definition: InterventionDefinition) -> str:
        return self.rng.choice(definition.messages)

    def select(
        self,
        profile: DriverProfile,
        event_type: str,
        severity: float,
        custom_message: Optional[str] = None,
    ) -> Optional[Selection]:
        if event_type in DEDICATED_EVENT_TYPES:
            definition = self.find(event_type)
            if definition is not None:
                if event_type == EventType.COACHING.value and custom_message:
                    logger.info("Using custom coaching message: %s", custom_message)
                    return Selection(definition, custom_message)
                return Selection(definition, self._random_message(definition))

        event_count = profile.fatigue_event_counts.get(event_type, 0)
        level = compute_escalation_level(event_count, severity)
        logger.info(
            "Determined escalation level %d for %s (count: %d, severity: %.2f)",
            level, event_type, event_count, severity,
        )

        candidates = self.eligible(level)
        if not candidates:
            logger.warning("No eligible interventions found for event type %s", event_type)
            return None

        for definition in candidates:
            logger.debug(
                "Eligible intervention: %s, Level: %d, Score: %.2f",
                definition.type, definition.escalation_level, self.score_of(profile, definition),
            )

        # max() keeps the first of equal scores, i.e. catalog order
        chosen = max(candidates, key=lambda d: self.score_of(profile, d))
        logger.info("Selected intervention: %s, Level: %d", chosen.type, chosen.escalation_level)
        return Selection(chosen, self._random_message(chosen))


# ============================================================================
# SCORING
# ============================================================================

class EffectivenessScorer:

    def __init__(self, catalog: Sequence[InterventionDefinition] = DEFAULT_CATALOG):
        self._defaults = default_scores(catalog)

    @staticmethod
    def adjust(current: float, was_effective: bool, response_time: float) -> float:
        adjustment = 0.1 if was_effective else -0.1
        if was_effective:
            if response_time < FAST_RESPONSE_SECONDS:
                adjustment += 0.05
            elif response_time > SLOW_RESPONSE_SECONDS:
                adjustment -= 0.03
        return min(max(current + adjustment, MIN_SCORE), MAX_SCORE)

    def update(
        self,
        profile: DriverProfile,
        intervention_type: str,
        was_effective: bool,
        response_time: float,
    ) -> float:
        scores = profile.intervention_type_effectiveness
        current = scores.get(intervention_type, self._defaults.get(intervention_type, 0.5))
        new_score = self.adjust(current, was_effective, response_time)
        logger.debug(
            "Updating effectiveness score for %s: %.2f -> %.2f",
            intervention_type, current, new_score,
        )
        scores[intervention_type] = new_score
        return new_score


# ============================================================================
# ENGINE
# ============================================================================

@dataclass(frozen=True)
class InterventionDecision:
    definition: InterventionDefinition
    message: str
    record: InterventionRecord


class InterventionEngine:
    """
    Ties selection and scoring to a profile and keeps the ledger of open
    (delivered, not yet resolved) interventions for the current session.
    """

    def __init__(
        self,
        catalog: Sequence[InterventionDefinition] = DEFAULT_CATALOG,
        session_id: int = 0,
        rng: Optional[random.Random] = None,
    ):
        self.selector = InterventionSelector(catalog, rng)
        self.scorer = EffectivenessScorer(catalog)
        self.session_id = session_id
        self._open: Dict[str, float] = {}  # intervention_id -> delivery time

    @property
    def catalog(self) -> Tuple[InterventionDefinition, ...]:
        return self.selector.catalog

    @property
    def open_interventions(self) -> Dict[str, float]:
        return dict(self._open)

    def handle_event(
        self,
        profile: DriverProfile,
        event_type: str,
        severity: float,
        now: float,
        custom_message: Optional[str] = None,
    ) -> Optional[InterventionDecision]:
        profile.increment_event(event_type)

        selection = self.selector.select(profile, event_type, severity, custom_message)
        if selection is None:
            return None

        record = InterventionRecord(
            event_type=event_type,
            intervention_type=selection.definition.type,
            intervention_content=selection.message,
            fatigue_severity=severity,
            session_id=self.session_id,
        )
        profile.intervention_history.append(record)
        # Nothing ever resolves Coaching
        if event_type != EventType.COACHING.value:
            self._open[record.intervention_id] = now
        return InterventionDecision(selection.definition, selection.message, record)

    def record_response(
        self,
        profile: DriverProfile,
        event_type: str,
        was_effective: bool,
        now: float,
    ) -> List[InterventionRecord]:
        """Resolve every open intervention of ``event_type`` with one outcome."""
        resolved: List[InterventionRecord] = []
        for intervention_id, started in list(self._open.items()):
            record = profile.find_record(intervention_id)
            if record is None or record.event_type != event_type:
                continue

            response_time = now - started
            record.response_time = response_time
            record.was_effective = was_effective
            self.scorer.update(profile, record.intervention_type, was_effective, response_time)
            del self._open[intervention_id]
            resolved.append(record)

            logger.info(
                "Recorded response for intervention %s of type %s: effective=%s, response time=%.1fs",
                intervention_id, record.intervention_type, was_effective, response_time,
            )

        if resolved:
            profile.refresh_recovery_time()
        else:
            logger.debug("No active interventions found for event type: %s", event_type)
        return resolved

    def clear_open(self) -> None:
        self._open.clear()
