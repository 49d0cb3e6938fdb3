"""InterventionManager delivery routing and persistence tests"""

import asyncio
import threading

import pytest
from fatigue_model.profile import DriverProfile


def _run(manager, coro):
    async def scenario():
        result = await coro
        await manager.wait_for_speech()
        return result
    return asyncio.run(scenario())


def _stored(storage, driver_id="default"):
    return DriverProfile.model_validate_json((storage.directory / f"{driver_id}.json").read_text())


class TestDelivery:
    def test_audio_speaks_and_alerts(self, manager, broadcaster, speech, storage):
        decision = _run(manager, manager.handle_fatigue_event("Sleepy", 0.2))

        assert decision.definition.type == "Audio_Mild"
        assert speech.spoken == [decision.message]
        assert broadcaster.named("FatigueAlert") == [{
            "type": "Sleepy",
            "message": decision.message,
            "severity": 0.2,
            "audio_type": "Audio_Mild",
        }]

        stored = _stored(storage)
        assert stored.fatigue_event_counts["Sleepy"] == 1
        assert stored.intervention_history[0].session_id == 12345

    def test_speech_failure_sends_fallback(self, manager, broadcaster, speech):
        speech.fail = True
        decision = _run(manager, manager.handle_fatigue_event("Sleepy", 0.2))

        fallback = [a for a in broadcaster.named("FatigueAlert") if a.get("is_fallback")]
        assert fallback == [{
            "type": "Sleepy",
            "message": f"[Audio_Mild] {decision.message}",
            "severity": 0.2,
            "is_fallback": True,
        }]

    def test_visual_alert_is_silent(self, manager, broadcaster, speech):
        profile = manager.get_profile()
        profile.intervention_type_effectiveness["Visual_Alert"] = 0.9
        profile.fatigue_event_counts["HeadTurn"] = 2

        decision = _run(manager, manager.handle_fatigue_event("HeadTurn", 0.5))

        assert decision.definition.type == "Visual_Alert"
        assert speech.spoken == []
        assert broadcaster.named("FatigueAlert") == [{
            "type": "HeadTurn", "message": decision.message, "severity": 0.5,
        }]

    def test_coaching_uses_custom_text(self, manager, broadcaster, speech):
        advice = "You have yawned twice. Consider a short break."
        decision = _run(manager, manager.handle_fatigue_event("Coaching", 0.6, advice))

        assert decision.definition.type == "Coaching"
        assert broadcaster.named("CoachingReceived") == [advice]
        assert speech.spoken == [advice]

    def test_no_face_styled_as_moderate(self, manager, broadcaster):
        _run(manager, manager.handle_fatigue_event("NoFaceDetected", 0.7))
        (alert,) = broadcaster.named("FatigueAlert")
        assert alert["audio_type"] == "Audio_Moderate"
        assert alert["type"] == "NoFaceDetected"


class TestOutcomes:
    def test_response_updates_and_persists(self, manager, clock, storage):
        async def scenario():
            await manager.handle_fatigue_event("Sleepy", 0.2)
            clock.advance(1.0)
            resolved = await manager.record_response("Sleepy", True)
            await manager.wait_for_speech()
            return resolved

        resolved = asyncio.run(scenario())

        assert len(resolved) == 1
        stored = _stored(storage)
        assert stored.intervention_type_effectiveness["Audio_Mild"] == pytest.approx(0.65)
        assert stored.intervention_history[0].was_effective is True
        assert stored.average_recovery_time == pytest.approx(1.0)

    def test_response_without_open_intervention(self, manager):
        assert asyncio.run(manager.record_response("Yawn", True)) == []

    def test_start_session_counts_sessions(self, manager, storage):
        async def scenario():
            await manager.start_session()
            await manager.start_session()

        asyncio.run(scenario())
        assert _stored(storage).total_driving_session_count == 2

    def test_reset_effectiveness(self, manager):
        manager.get_profile().intervention_type_effectiveness["Audio_Urgent"] = 0.2
        profile = manager.reset_effectiveness()
        assert profile.intervention_type_effectiveness["Audio_Urgent"] == pytest.approx(0.7)

    def test_profile_writes_run_off_the_event_loop(self, manager, storage, monkeypatch):
        writer_threads = []
        save = storage.save_profile

        def recording_save(profile):
            writer_threads.append(threading.get_ident())
            save(profile)

        monkeypatch.setattr(storage, "save_profile", recording_save)

        async def scenario():
            loop_thread = threading.get_ident()
            await manager.start_session()
            await manager.handle_fatigue_event("Sleepy", 0.2)
            await manager.record_response("Sleepy", True)
            await manager.wait_for_speech()
            return loop_thread

        loop_thread = asyncio.run(scenario())

        assert len(writer_threads) == 3
        assert loop_thread not in writer_threads
        assert _stored(storage).total_driving_session_count == 1
