"""Intervention selection, effectiveness scoring and engine tests"""

import random

import pytest
from hypothesis import given, strategies as st
from fatigue_model.interventions import (
    DEFAULT_CATALOG,
    EffectivenessScorer,
    InterventionDefinition,
    InterventionEngine,
    InterventionSelector,
    compute_escalation_level,
    default_scores,
)
from fatigue_model.profile import DriverProfile


def _profile(**counts):
    profile = DriverProfile(driver_id="test", intervention_type_effectiveness=default_scores())
    profile.fatigue_event_counts.update(counts)
    return profile


@pytest.fixture
def selector():
    return InterventionSelector(rng=random.Random(0))


# --- Escalation ---

class TestEscalationLevel:
    @pytest.mark.parametrize("count, severity, level", [
        (0, 0.0, 1),
        (2, 0.59, 1),
        (3, 0.0, 2),
        (6, 0.0, 2),
        (7, 0.0, 3),
        (0, 0.6, 2),
        (0, 0.8, 3),
        (4, 0.85, 3),
    ])
    def test_table(self, count, severity, level):
        assert compute_escalation_level(count, severity) == level

    @given(st.integers(0, 100), st.floats(0.0, 1.0))
    def test_level_range(self, count, severity):
        assert compute_escalation_level(count, severity) in (1, 2, 3)

    @given(st.integers(0, 100), st.floats(0.0, 1.0), st.floats(0.0, 1.0))
    def test_monotone_in_severity(self, count, a, b):
        low, high = sorted((a, b))
        assert compute_escalation_level(count, low) <= compute_escalation_level(count, high)


# --- Selection ---

class TestInterventionSelector:
    def test_level_one_is_mild_audio(self, selector):
        selection = selector.select(_profile(Sleepy=1), "Sleepy", 0.2)
        assert selection.definition.type == "Audio_Mild"
        assert selection.message in selection.definition.messages

    def test_level_two_tie_goes_to_catalog_order(self, selector):
        selection = selector.select(_profile(Yawn=3), "Yawn", 0.5)
        assert selection.definition.type == "Audio_Moderate"

    def test_level_three_is_urgent(self, selector):
        selection = selector.select(_profile(Sleepy=8), "Sleepy", 0.9)
        assert selection.definition.type == "Audio_Urgent"

    def test_learned_score_wins(self, selector):
        profile = _profile(HeadTurn=4)
        profile.intervention_type_effectiveness["Visual_Alert"] = 0.9
        selection = selector.select(profile, "HeadTurn", 0.5)
        assert selection.definition.type == "Visual_Alert"

    def test_unseen_type_uses_catalog_default(self, selector):
        profile = DriverProfile(driver_id="blank")
        selection = selector.select(profile, "Sleepy", 0.7)
        assert selection.definition.type == "Audio_Moderate"

    def test_coaching_custom_message_verbatim(self, selector):
        selection = selector.select(_profile(), "Coaching", 0.6, custom_message="Open a window.")
        assert selection.definition.type == "Coaching"
        assert selection.message == "Open a window."

    def test_coaching_without_message(self, selector):
        selection = selector.select(_profile(), "Coaching", 0.6)
        assert selection.definition.type == "Coaching"
        assert selection.message in selection.definition.messages

    def test_no_face_is_dedicated(self, selector):
        selection = selector.select(_profile(NoFaceDetected=9), "NoFaceDetected", 1.0)
        assert selection.definition.type == "NoFaceDetected"

    def test_falls_back_to_lower_levels(self):
        catalog = [d for d in DEFAULT_CATALOG if d.escalation_level < 3]
        selector = InterventionSelector(catalog, random.Random(0))
        assert selector.eligible(3) == catalog
        selection = selector.select(_profile(Sleepy=10), "Sleepy", 0.9)
        assert selection.definition.type == "Audio_Moderate"

    def test_empty_catalog(self):
        selector = InterventionSelector(catalog=[])
        assert selector.select(_profile(), "Sleepy", 0.5) is None


# --- Scoring ---

class TestEffectivenessScorer:
    @pytest.mark.parametrize("current, effective, response_time, expected", [
        (0.5, True, 1.0, 0.65),
        (0.5, True, 3.0, 0.6),
        (0.5, True, 6.0, 0.57),
        (0.5, False, 1.0, 0.4),
        (0.88, True, 1.0, 0.9),
        (0.15, False, 10.0, 0.1),
    ])
    def test_adjust(self, current, effective, response_time, expected):
        assert EffectivenessScorer.adjust(current, effective, response_time) == pytest.approx(expected)

    @given(st.floats(0.1, 0.9), st.booleans(), st.floats(0.0, 60.0))
    def test_score_stays_in_bounds(self, current, effective, response_time):
        assert 0.1 <= EffectivenessScorer.adjust(current, effective, response_time) <= 0.9

    def test_update_starts_from_catalog_default(self):
        profile = DriverProfile(driver_id="blank")
        new_score = EffectivenessScorer().update(profile, "Audio_Urgent", True, 3.0)
        assert new_score == pytest.approx(0.8)
        assert profile.intervention_type_effectiveness["Audio_Urgent"] == pytest.approx(0.8)


# --- Engine ---

class TestInterventionEngine:
    def test_handle_event_counts_and_records(self):
        engine = InterventionEngine(session_id=42, rng=random.Random(1))
        profile = _profile(Sleepy=2)

        decision = engine.handle_event(profile, "Sleepy", 0.2, now=100.0)

        # Third event: count includes the current one, so level 2
        assert profile.fatigue_event_counts["Sleepy"] == 3
        assert decision.definition.type == "Audio_Moderate"
        assert decision.record in profile.intervention_history
        assert decision.record.session_id == 42
        assert decision.record.intervention_content == decision.message
        assert decision.record.was_effective is None
        assert engine.open_interventions == {decision.record.intervention_id: 100.0}

    def test_unknown_event_type_starts_count(self):
        engine = InterventionEngine(rng=random.Random(1))
        profile = _profile()
        engine.handle_event(profile, "Distraction", 0.1, now=0.0)
        assert profile.fatigue_event_counts["Distraction"] == 1

    def test_record_response_resolves_open_interventions(self):
        engine = InterventionEngine(rng=random.Random(1))
        profile = _profile()
        first = engine.handle_event(profile, "Sleepy", 0.2, now=100.0)
        engine.handle_event(profile, "Yawn", 0.7, now=100.5)

        resolved = engine.record_response(profile, "Sleepy", True, now=101.0)

        assert [r.intervention_id for r in resolved] == [first.record.intervention_id]
        assert first.record.response_time == pytest.approx(1.0)
        assert first.record.was_effective is True
        assert profile.intervention_type_effectiveness["Audio_Mild"] == pytest.approx(0.65)
        assert profile.average_recovery_time == pytest.approx(1.0)
        assert len(engine.open_interventions) == 1

        assert engine.record_response(profile, "Sleepy", True, now=102.0) == []

    def test_coaching_is_recorded_but_not_left_open(self):
        engine = InterventionEngine(rng=random.Random(1))
        profile = _profile()
        decision = engine.handle_event(profile, "Coaching", 0.6, now=0.0, custom_message="Take a break.")

        assert decision.record in profile.intervention_history
        assert engine.open_interventions == {}
        assert engine.record_response(profile, "Coaching", True, now=1.0) == []

    def test_ineffective_response_lowers_score(self):
        engine = InterventionEngine(rng=random.Random(1))
        profile = _profile()
        engine.handle_event(profile, "Sleepy", 0.2, now=0.0)
        engine.record_response(profile, "Sleepy", False, now=8.0)
        assert profile.intervention_type_effectiveness["Audio_Mild"] == pytest.approx(0.4)
        assert profile.average_recovery_time == pytest.approx(3.0)

    def test_custom_catalog_definition(self):
        catalog = [InterventionDefinition("Chime", "Soft chime", 1, ("ding",), 0.5)]
        engine = InterventionEngine(catalog, rng=random.Random(0))
        decision = engine.handle_event(_profile(), "Sleepy", 0.1, now=0.0)
        assert decision.definition.type == "Chime"
        assert decision.message == "ding"
