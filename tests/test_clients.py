"""Face provider, coaching and speech client tests (no network, no audio)"""

import asyncio
import json
from types import SimpleNamespace

import httpx
import pytest
from app.core.config import settings
from app.services import speech_service
from app.services.coaching_service import COACHING_FALLBACK_MESSAGE, SYSTEM_PROMPT, CoachingService
from app.services.face_client import FaceClient, FaceDetectionError, parse_faces
from app.services.speech_service import SpeechService, SpeechUnavailableError
from fatigue_model.landmarks import Point


def _azure_face(width=120, yaw=-12.5):
    return {
        "faceRectangle": {"top": 80, "left": 200, "width": width, "height": 150},
        "faceLandmarks": {
            "eyeLeftTop": {"x": 230.0, "y": 120.0},
            "eyeLeftBottom": {"x": 230.0, "y": 126.0},
            "eyeLeftInner": {"x": 240.0, "y": 123.0},
            "eyeLeftOuter": {"x": 220.0, "y": 123.0},
            "eyeRightTop": {"x": 280.0, "y": 120.0},
            "eyeRightBottom": {"x": 280.0, "y": 126.0},
            "eyeRightInner": {"x": 270.0, "y": 123.0},
            "eyeRightOuter": {"x": 290.0, "y": 123.0},
            "upperLipTop": {"x": 255.0, "y": 190.0},
            "underLipBottom": {"x": 255.0, "y": 205.0},
            "noseTip": {"x": 255.0, "y": 160.0},
        },
        "faceAttributes": {"headPose": {"pitch": 1.0, "roll": 0.5, "yaw": yaw}},
    }


# --- Face provider ---

class TestParseFaces:
    def test_maps_rectangle_landmarks_and_yaw(self):
        (face,) = parse_faces([_azure_face()])
        assert face.rectangle.width == 120.0
        assert face.area == 120.0 * 150.0
        assert face.landmarks.eye_left_top == Point(230.0, 120.0)
        assert face.landmarks.under_lip_bottom == Point(255.0, 205.0)
        assert face.head_yaw == pytest.approx(-12.5)

    def test_missing_parts_become_none(self):
        (face,) = parse_faces([{"faceRectangle": {"top": 0, "left": 0, "width": 10, "height": 10}}])
        assert face.landmarks.eye_left_top is None
        assert face.head_yaw is None

    def test_rejects_non_list_payload(self):
        with pytest.raises(FaceDetectionError):
            parse_faces({"error": {"code": "Unauthorized"}})


class TestFaceClient:
    def test_detect_posts_jpeg(self):
        seen = {}

        def handler(request):
            seen["key"] = request.headers["Ocp-Apim-Subscription-Key"]
            seen["params"] = dict(request.url.params)
            seen["body"] = request.content
            return httpx.Response(200, json=[_azure_face(), _azure_face(width=60)])

        client = FaceClient(
            endpoint="https://face.example.com/", api_key="secret",
            transport=httpx.MockTransport(handler),
        )
        faces = asyncio.run(client.detect(b"jpeg-bytes"))

        assert len(faces) == 2
        assert client.detect_url == "https://face.example.com/face/v1.0/detect"
        assert seen["key"] == "secret"
        assert seen["params"]["returnFaceLandmarks"] == "true"
        assert seen["params"]["returnFaceAttributes"] == "headPose"
        assert seen["body"] == b"jpeg-bytes"

    def test_error_status_raises(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(401, text="Access denied"))
        client = FaceClient(endpoint="https://face.example.com", api_key="bad", transport=transport)
        with pytest.raises(FaceDetectionError):
            asyncio.run(client.detect(b"jpeg"))

    def test_empty_result(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=json.dumps([])))
        client = FaceClient(endpoint="https://face.example.com", api_key="k", transport=transport)
        assert asyncio.run(client.detect(b"jpeg")) == []


# --- Coaching ---

class _Completions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _chat_client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


class TestCoachingService:
    def test_returns_trimmed_advice(self):
        completions = _Completions(content="  Pull over for a short rest.  ")
        service = CoachingService(client=_chat_client(completions), model="gpt-4.1")

        advice = asyncio.run(service.get_advice("In the last minute: 3 yawns"))

        assert advice == "Pull over for a short rest."
        messages = completions.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
        assert messages[1]["content"] == "Driver status: In the last minute: 3 yawns"
        assert completions.kwargs["model"] == "gpt-4.1"
        assert completions.kwargs["max_tokens"] == settings.COACHING_MAX_TOKENS

    def test_provider_error_returns_fallback(self):
        completions = _Completions(error=RuntimeError("503 Service Unavailable"))
        service = CoachingService(client=_chat_client(completions))
        assert asyncio.run(service.get_advice("summary")) == COACHING_FALLBACK_MESSAGE

    def test_unconfigured_returns_empty(self, monkeypatch):
        monkeypatch.setattr(settings, "AZURE_OPENAI_ENDPOINT", "")
        monkeypatch.setattr(settings, "AZURE_OPENAI_API_KEY", "")
        monkeypatch.setattr(settings, "OPENAI_API_KEY", "")
        service = CoachingService()
        assert service.enabled is False
        assert asyncio.run(service.get_advice("summary")) == ""


# --- Speech ---

class _Engine:
    def __init__(self):
        self.said = []
        self.properties = {}

    def setProperty(self, name, value):
        self.properties[name] = value

    def say(self, text):
        self.said.append(text)

    def runAndWait(self):
        pass


class TestSpeechService:
    def test_disabled_is_silent(self):
        assert SpeechService(enabled=False).speak_sync("hello") is False

    def test_speaks_through_engine(self, monkeypatch):
        engine = _Engine()
        monkeypatch.setattr(speech_service.pyttsx3, "init", lambda: engine)
        service = SpeechService(enabled=True, rate=150)

        assert asyncio.run(service.speak("Stay alert")) is True
        assert engine.said == ["Stay alert"]
        assert engine.properties["rate"] == 150

    def test_missing_engine_raises(self, monkeypatch):
        def broken():
            raise OSError("no audio driver")
        monkeypatch.setattr(speech_service.pyttsx3, "init", broken)

        with pytest.raises(SpeechUnavailableError):
            asyncio.run(SpeechService(enabled=True).speak("Stay alert"))
