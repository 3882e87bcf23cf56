"""
Webcam acquisition via OpenCV. Failing to open the camera ends the session.
"""

from typing import Optional

import cv2
import numpy as np

CAMERA_INDEX: int = 0
CAPTURE_WIDTH: int = 1280
CAPTURE_HEIGHT: int = 720


class CameraUnavailable(RuntimeError):
    """Camera missing, busy or access denied."""


class Camera:
    def __init__(self, index: int = CAMERA_INDEX,
                 width: int = CAPTURE_WIDTH, height: int = CAPTURE_HEIGHT):
        self.index = index
        self.width = width
        self.height = height
        self._cap = None

    def open(self) -> None:
        cap = cv2.VideoCapture(self.index)
        if not cap.isOpened():
            raise CameraUnavailable(f"could not open camera {self.index}")

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)

        ok, frame = cap.read()
        if not ok:
            cap.release()
            raise CameraUnavailable(f"camera {self.index} returned no frame")

        self._cap = cap
        h, w = frame.shape[:2]
        print(f"[CAM] Camera {self.index} opened: {w}x{h}")

    def read(self) -> Optional[np.ndarray]:
        if self._cap is None:
            return None
        ok, frame = self._cap.read()
        return frame if ok else None

    def release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
