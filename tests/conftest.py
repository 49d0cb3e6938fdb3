import asyncio
import sys
import os
import random

# Add project root and backend/ to sys.path so tests can import fatigue_model and app.*
_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _ROOT)
sys.path.insert(0, os.path.join(_ROOT, "backend"))

import numpy as np
import pytest
from hypothesis import settings

from fatigue_model.landmarks import FaceLandmarks, FaceObservation, FaceRectangle, Point

# CI profile: more examples for thorough testing
settings.register_profile("ci", max_examples=200)
# Dev profile: fewer examples for faster iteration
settings.register_profile("dev", max_examples=100)
# Default to dev profile
settings.load_profile("dev")


# --- Clock ---

class ManualClock:
    """Time only moves when told to. sleep() advances instead of waiting."""

    def __init__(self, start=1_700_000_000.0):
        self._now = start

    def now(self):
        return self._now

    def advance(self, seconds):
        self._now += seconds
        return self._now

    async def sleep(self, seconds):
        self._now += seconds
        await asyncio.sleep(0)


# --- Face builder ---

FACE_HEIGHT = 200.0


def make_face(ear=0.3, mouth_ratio=0.05, yaw=0.0, size=FACE_HEIGHT, landmarks=True):
    """Face whose eyes have exactly ``ear`` and whose mouth opens ``mouth_ratio`` of the face height"""
    lm = None
    if landmarks:
        lm = FaceLandmarks(
            eye_left_top=Point(5.0, 0.0),
            eye_left_bottom=Point(5.0, ear * 10.0),
            eye_left_inner=Point(0.0, 0.0),
            eye_left_outer=Point(10.0, 0.0),
            eye_right_top=Point(25.0, 0.0),
            eye_right_bottom=Point(25.0, ear * 10.0),
            eye_right_inner=Point(20.0, 0.0),
            eye_right_outer=Point(30.0, 0.0),
            upper_lip_top=Point(0.0, 100.0),
            under_lip_bottom=Point(0.0, 100.0 + mouth_ratio * size),
        )
    return FaceObservation(
        rectangle=FaceRectangle(left=100.0, top=100.0, width=size, height=size),
        landmarks=lm,
        head_yaw=yaw,
    )


@pytest.fixture
def face_factory():
    return make_face


@pytest.fixture
def clock():
    return ManualClock()


# --- Fakes for external collaborators ---

class FakeBroadcaster:
    def __init__(self):
        self.events = []
        self.states = []

    async def send_event(self, name, data=None):
        self.events.append((name, data))

    async def send_state(self, state):
        self.states.append(state)

    def named(self, name):
        return [data for event_name, data in self.events if event_name == name]


class FakeSpeech:
    def __init__(self):
        self.spoken = []
        self.fail = False

    async def speak(self, text):
        from app.services.speech_service import SpeechUnavailableError
        if self.fail:
            raise SpeechUnavailableError("no audio device")
        self.spoken.append(text)
        return True


class FakeCamera:
    def __init__(self):
        self.opened = False
        self.released = False
        self.frame = np.zeros((480, 640, 3), dtype=np.uint8)

    def open(self):
        self.opened = True

    def read(self):
        return self.frame

    def encode_jpeg(self, frame):
        return b"\xff\xd8fake-jpeg"

    def release(self):
        self.released = True


class FakeFaceClient:
    def __init__(self):
        self.responses = []
        self.calls = 0

    async def detect(self, jpeg):
        self.calls += 1
        if self.responses:
            return self.responses.pop(0)
        return []


class FakeCoaching:
    def __init__(self, advice=""):
        self.advice = advice
        self.summaries = []

    async def get_advice(self, summary):
        self.summaries.append(summary)
        return self.advice


@pytest.fixture
def broadcaster():
    return FakeBroadcaster()


@pytest.fixture
def speech():
    return FakeSpeech()


@pytest.fixture
def camera():
    return FakeCamera()


@pytest.fixture
def face_client():
    return FakeFaceClient()


@pytest.fixture
def coaching():
    return FakeCoaching()


@pytest.fixture
def storage(tmp_path):
    from app.services.profile_storage import DriverProfileStorage
    return DriverProfileStorage(directory=tmp_path / "Profiles")


@pytest.fixture
def manager(storage, speech, broadcaster, clock):
    from app.services.intervention_manager import InterventionManager
    return InterventionManager(
        storage=storage,
        speech=speech,
        broadcaster=broadcaster,
        clock=clock,
        driver_id="default",
        rng=random.Random(0),
        session_id=12345,
    )


@pytest.fixture
def service(camera, face_client, coaching, manager, broadcaster, clock):
    from app.services.monitoring_service import DriverMonitoringService
    return DriverMonitoringService(
        camera=camera,
        face_client=face_client,
        coaching=coaching,
        interventions=manager,
        broadcaster=broadcaster,
        clock=clock,
    )
