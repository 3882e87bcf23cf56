"""
Face detection adapter.

The controller only needs "where is the head in this frame, if anywhere".
HaarFaceDetector answers that with OpenCV's bundled frontal-face cascade; any
object with an ``async detect(frame) -> Detection | None`` method can stand in
for it (tests use scripted fakes).
"""

import asyncio
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, Tuple

import cv2
import numpy as np

CASCADE_FILE = "haarcascade_frontalface_default.xml"

# Fixed confidence configuration: permissive so the head does not flicker out.
SCALE_FACTOR: float = 1.1
MIN_NEIGHBORS: int = 3
MIN_FACE_SIZE: Tuple[int, int] = (60, 60)

HEAD_CENTER_LIFT: float = 0.2  # face boxes sit low on the skull; raise the center by 20% of box height


class DetectorError(RuntimeError):
    """Detection model could not be loaded."""


@dataclass(frozen=True)
class FaceBox:
    top: float
    left: float
    width: float
    height: float

    def rescale(self, source_size: Tuple[float, float],
                target_size: Tuple[float, float]) -> "FaceBox":
        """Map from source-frame (w, h) pixels to target (w, h) pixels."""
        sx = target_size[0] / source_size[0]
        sy = target_size[1] / source_size[1]
        return FaceBox(top=self.top * sy, left=self.left * sx,
                       width=self.width * sx, height=self.height * sy)


@dataclass(frozen=True)
class Detection:
    box: FaceBox
    frame_size: Tuple[float, float]  # (width, height) of the source frame


class Detector(Protocol):
    async def detect(self, frame) -> Optional[Detection]:
        ...


def head_target_point(box: FaceBox, scene_width: float) -> Tuple[np.ndarray, float]:
    """Raw head center and radius for a playfield-space box.

    The camera image is mirrored so the player moves the head the way they
    see themselves moving.
    """
    cx = scene_width - box.left - box.height / 2
    cy = box.top + box.height / 2 - box.height * HEAD_CENTER_LIFT
    return np.array([cx, cy]), box.width / 2


class ReplayDetector:
    """Hands out recorded detections in order, one per call, then None."""

    def __init__(self, detections: Iterable[Optional[Detection]]):
        self._detections = iter(detections)

    async def detect(self, frame) -> Optional[Detection]:
        return next(self._detections, None)


class HaarFaceDetector:
    """Single-face detector backed by an OpenCV Haar cascade."""

    def __init__(self, cascade_path: Optional[str] = None):
        self.cascade_path = cascade_path or (cv2.data.haarcascades + CASCADE_FILE)
        self._cascade = None

    def load(self) -> None:
        try:
            cascade = cv2.CascadeClassifier(self.cascade_path)
        except cv2.error as exc:
            raise DetectorError(f"could not load face cascade from '{self.cascade_path}'") from exc
        if cascade.empty():
            raise DetectorError(f"could not load face cascade from '{self.cascade_path}'")
        self._cascade = cascade
        print(f"[DET] Cascade loaded ← {self.cascade_path}")

    def _detect_sync(self, frame: np.ndarray) -> Optional[Detection]:
        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        faces = self._cascade.detectMultiScale(
            gray,
            scaleFactor=SCALE_FACTOR,
            minNeighbors=MIN_NEIGHBORS,
            minSize=MIN_FACE_SIZE,
        )
        if len(faces) == 0:
            return None
        # Largest face wins: the player is usually closest to the camera.
        x, y, w, h = max(faces, key=lambda f: f[2] * f[3])
        frame_h, frame_w = frame.shape[:2]
        return Detection(
            box=FaceBox(top=float(y), left=float(x), width=float(w), height=float(h)),
            frame_size=(float(frame_w), float(frame_h)),
        )

    async def detect(self, frame) -> Optional[Detection]:
        if frame is None or self._cascade is None:
            return None
        return await asyncio.to_thread(self._detect_sync, frame)
