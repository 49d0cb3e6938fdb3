"""
DrowsyGuard Camera
OpenCV frame source: opens the webcam, hands out resized frames and encodes
them as JPEG. Every method blocks; the monitoring service calls them from
the default executor.
"""

import logging
import platform
import threading
from typing import Optional

import cv2
import numpy as np

from app.core.config import settings

logger = logging.getLogger("drowsyguard.camera")


class CameraUnavailableError(RuntimeError):
    """No capture backend could open the configured camera"""


def _open_camera(index: int = 0) -> cv2.VideoCapture:
    """Try multiple backends to open camera reliably (especially on Windows)"""
    if platform.system() == "Windows":
        backends = [
            (cv2.CAP_DSHOW, "DirectShow"),
            (cv2.CAP_MSMF, "MSMF"),
            (cv2.CAP_ANY, "Any"),
        ]
    else:
        backends = [
            (cv2.CAP_V4L2, "V4L2"),
            (cv2.CAP_ANY, "Any"),
        ]

    for backend, name in backends:
        logger.info(f"Trying camera {index} with backend {name} ({backend})")
        cap = cv2.VideoCapture(index, backend)
        if cap.isOpened():
            cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
            logger.info(f"Camera opened successfully with {name}")
            return cap
        cap.release()
        logger.warning(f"Failed to open camera with {name}")

    logger.info(f"Trying plain VideoCapture({index}) as final fallback")
    return cv2.VideoCapture(index)


class Camera:

    def __init__(
        self,
        index: Optional[int] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        jpeg_quality: Optional[int] = None,
    ):
        self.index = settings.CAMERA_INDEX if index is None else index
        self.width = width or settings.FRAME_WIDTH
        self.height = height or settings.FRAME_HEIGHT
        self.jpeg_quality = jpeg_quality or settings.JPEG_QUALITY
        self._cap: Optional[cv2.VideoCapture] = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def open(self) -> None:
        with self._lock:
            if self.is_open:
                return
            cap = _open_camera(self.index)
            if not cap.isOpened():
                cap.release()
                raise CameraUnavailableError(
                    f"Cannot access camera {self.index}. Make sure a webcam is connected "
                    "and not in use by another application."
                )
            self._cap = cap

    def read(self) -> Optional[np.ndarray]:
        """Next frame resized to the configured size, or None if empty"""
        with self._lock:
            if self._cap is None:
                return None
            success, frame = self._cap.read()
        if not success or frame is None or frame.size == 0:
            return None
        return cv2.resize(frame, (self.width, self.height))

    def encode_jpeg(self, frame: np.ndarray) -> Optional[bytes]:
        ret, buffer = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, self.jpeg_quality])
        if not ret:
            return None
        return buffer.tobytes()

    def release(self) -> None:
        with self._lock:
            if self._cap is not None:
                self._cap.release()
                self._cap = None
                logger.info("Camera released")
