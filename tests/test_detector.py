import sys
import os
import asyncio
import numpy as np
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from detector import (
    FaceBox, Detection, HaarFaceDetector, DetectorError, head_target_point,
)


class FakeCascade:
    def __init__(self, faces):
        self.faces = faces
        self.kwargs = None

    def detectMultiScale(self, gray, **kwargs):
        self.kwargs = kwargs
        return self.faces


class TestFaceBox:

    def test_rescale(self):
        box = FaceBox(top=10, left=20, width=30, height=40)
        scaled = box.rescale((320, 240), (960, 720))
        assert scaled == FaceBox(top=30, left=60, width=90, height=120)

    def test_head_target_is_mirrored_and_lifted(self):
        point, radius = head_target_point(FaceBox(top=100, left=200, width=80, height=100), 960)
        np.testing.assert_allclose(point, [960 - 200 - 50, 100 + 50 - 20])
        assert radius == 40


class TestHaarFaceDetector:

    def test_picks_largest_face(self):
        det = HaarFaceDetector()
        det._cascade = FakeCascade([(10, 20, 30, 40), (100, 50, 120, 110)])
        frame = np.zeros((360, 480, 3), dtype=np.uint8)
        result = asyncio.run(det.detect(frame))
        assert result == Detection(FaceBox(top=50, left=100, width=120, height=110), (480.0, 360.0))
        assert det._cascade.kwargs["minNeighbors"] == 3

    def test_no_face(self):
        det = HaarFaceDetector()
        det._cascade = FakeCascade([])
        frame = np.zeros((360, 480, 3), dtype=np.uint8)
        assert asyncio.run(det.detect(frame)) is None

    def test_missing_frame(self):
        det = HaarFaceDetector()
        det._cascade = FakeCascade([(0, 0, 10, 10)])
        assert asyncio.run(det.detect(None)) is None

    def test_not_loaded(self):
        det = HaarFaceDetector()
        assert det._cascade is None
        assert asyncio.run(det.detect(np.zeros((10, 10, 3), dtype=np.uint8))) is None

    def test_bundled_cascade_loads(self):
        det = HaarFaceDetector()
        det.load()
        assert det._cascade is not None
        blank = np.zeros((240, 320, 3), dtype=np.uint8)
        assert asyncio.run(det.detect(blank)) is None

    def test_missing_cascade_raises(self, tmp_path):
        det = HaarFaceDetector(str(tmp_path / "nope.xml"))
        with pytest.raises(DetectorError):
            det.load()
        assert det._cascade is None
