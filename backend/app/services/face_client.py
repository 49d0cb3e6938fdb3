"""
DrowsyGuard Face Client
Calls the Azure Face ``detect`` REST endpoint with a JPEG frame and maps the
response (face rectangle, the landmarks we use, head yaw) onto
``FaceObservation`` values.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from fatigue_model.landmarks import FaceLandmarks, FaceObservation, FaceRectangle, Point

from app.core.config import settings

logger = logging.getLogger("drowsyguard.face")

DETECT_PARAMS = {
    "detectionModel": "detection_03",
    "recognitionModel": "recognition_04",
    "returnFaceId": "false",
    "returnFaceLandmarks": "true",
    "returnFaceAttributes": "headPose",
    "returnRecognitionModel": "false",
}

# FaceLandmarks attribute -> Azure landmark name
LANDMARK_KEYS = {
    "eye_left_top": "eyeLeftTop",
    "eye_left_bottom": "eyeLeftBottom",
    "eye_left_inner": "eyeLeftInner",
    "eye_left_outer": "eyeLeftOuter",
    "eye_right_top": "eyeRightTop",
    "eye_right_bottom": "eyeRightBottom",
    "eye_right_inner": "eyeRightInner",
    "eye_right_outer": "eyeRightOuter",
    "upper_lip_top": "upperLipTop",
    "under_lip_bottom": "underLipBottom",
}


class FaceDetectionError(RuntimeError):
    """Provider returned an error status or an unreadable payload"""


def _point(raw: Optional[Dict[str, Any]]) -> Optional[Point]:
    if not raw:
        return None
    try:
        return Point(float(raw["x"]), float(raw["y"]))
    except (KeyError, TypeError, ValueError):
        return None


def parse_face(raw: Dict[str, Any]) -> FaceObservation:
    rect = raw.get("faceRectangle")
    rectangle = None
    if rect:
        rectangle = FaceRectangle(
            left=float(rect.get("left", 0)),
            top=float(rect.get("top", 0)),
            width=float(rect.get("width", 0)),
            height=float(rect.get("height", 0)),
        )

    raw_landmarks = raw.get("faceLandmarks") or {}
    landmarks = FaceLandmarks(**{
        attr: _point(raw_landmarks.get(key)) for attr, key in LANDMARK_KEYS.items()
    })

    head_pose = (raw.get("faceAttributes") or {}).get("headPose") or {}
    yaw = head_pose.get("yaw")

    return FaceObservation(
        rectangle=rectangle,
        landmarks=landmarks,
        head_yaw=float(yaw) if yaw is not None else None,
    )


def parse_faces(payload: Any) -> List[FaceObservation]:
    if not isinstance(payload, list):
        raise FaceDetectionError(f"Unexpected detect payload: {type(payload).__name__}")
    return [parse_face(item) for item in payload if isinstance(item, dict)]


class FaceClient:
    """Async Azure Face API client"""

    _instance: Optional["FaceClient"] = None

    @classmethod
    def get_instance(cls) -> "FaceClient":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def __init__(
        self,
        endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = (endpoint or settings.AZURE_FACE_ENDPOINT).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.AZURE_FACE_API_KEY
        self.timeout = timeout or settings.AZURE_FACE_TIMEOUT
        self._transport = transport

        if not self.api_key:
            logger.warning("AZURE_FACE_API_KEY is not set; face detection requests will be rejected")

    @property
    def detect_url(self) -> str:
        return f"{self.endpoint}/face/v1.0/detect"

    async def detect(self, jpeg: bytes) -> List[FaceObservation]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            resp = await client.post(
                self.detect_url,
                params=DETECT_PARAMS,
                headers={
                    "Ocp-Apim-Subscription-Key": self.api_key,
                    "Content-Type": "application/octet-stream",
                },
                content=jpeg,
            )

        if resp.status_code != 200:
            raise FaceDetectionError(f"Face API error {resp.status_code}: {resp.text}")

        try:
            payload = resp.json()
        except ValueError as e:
            raise FaceDetectionError(f"Face API returned invalid JSON: {e}") from e

        faces = parse_faces(payload)
        logger.debug(f"Face API returned {len(faces)} face(s)")
        return faces


def get_face_client() -> FaceClient:
    return FaceClient.get_instance()
