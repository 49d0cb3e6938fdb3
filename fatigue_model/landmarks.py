"""
Landmark data handed to the core by the face provider.

One ``FaceObservation`` belongs to exactly one detection cycle.
"""

import math
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Point:
    x: float
    y: float


def distance(p1: Point, p2: Point) -> float:
    return math.hypot(p1.x - p2.x, p1.y - p2.y)


@dataclass(frozen=True)
class FaceRectangle:
    left: float
    top: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height


@dataclass(frozen=True)
class FaceLandmarks:
    """Subset of landmarks the detectors use. Any point may be missing."""
    eye_left_top: Optional[Point] = None
    eye_left_bottom: Optional[Point] = None
    eye_left_inner: Optional[Point] = None
    eye_left_outer: Optional[Point] = None
    eye_right_top: Optional[Point] = None
    eye_right_bottom: Optional[Point] = None
    eye_right_inner: Optional[Point] = None
    eye_right_outer: Optional[Point] = None
    upper_lip_top: Optional[Point] = None
    under_lip_bottom: Optional[Point] = None


@dataclass(frozen=True)
class FaceObservation:
    """A single face returned by the provider for one frame."""
    rectangle: Optional[FaceRectangle] = None
    landmarks: Optional[FaceLandmarks] = None
    head_yaw: Optional[float] = None

    @property
    def area(self) -> float:
        return self.rectangle.area if self.rectangle is not None else 0.0


def select_nearest_face(faces: List[FaceObservation]) -> Optional[FaceObservation]:
    """
    Pick the face closest to the camera, i.e. the largest bounding box.
    Ties resolve to the first face returned by the provider.
    """
    if not faces:
        return None
    if len(faces) == 1:
        return faces[0]
    return max(faces, key=lambda face: face.area)
