import sys
import os
import numpy as np
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import camera as camera_mod
from camera import Camera, CameraUnavailable


class FakeCapture:
    opened = True
    frames = True

    def __init__(self, index):
        self.index = index
        self.props = {}
        self.released = False

    def isOpened(self):
        return self.opened

    def set(self, prop, value):
        self.props[prop] = value

    def read(self):
        if not self.frames:
            return False, None
        return True, np.zeros((720, 1280, 3), dtype=np.uint8)

    def release(self):
        self.released = True


@pytest.fixture
def fake_capture(monkeypatch):
    FakeCapture.opened = True
    FakeCapture.frames = True
    monkeypatch.setattr(camera_mod.cv2, "VideoCapture", FakeCapture)
    return FakeCapture


class TestCamera:

    def test_read_before_open(self):
        assert Camera().read() is None

    def test_open_and_read(self, fake_capture):
        cam = Camera()
        cam.open()
        frame = cam.read()
        assert frame.shape == (720, 1280, 3)
        cam.release()
        assert cam.read() is None

    def test_denied(self, fake_capture):
        fake_capture.opened = False
        with pytest.raises(CameraUnavailable):
            Camera().open()

    def test_no_first_frame(self, fake_capture):
        fake_capture.frames = False
        cam = Camera()
        with pytest.raises(CameraUnavailable):
            cam.open()
        assert cam.read() is None
