import numpy as np
import pytest

from medscan.core.errors import CameraUnavailable, CaptureUnavailable
from medscan.services import camera as camera_module
from medscan.services.camera import CV2Camera


class FakeVideoCapture:
    instances = []

    def __init__(self, index, opened=True, frame=None):
        self.index = index
        self.opened = opened
        self.frame = frame
        self.released = False
        FakeVideoCapture.instances.append(self)

    def isOpened(self):
        return self.opened and not self.released

    def read(self):
        if self.frame is None:
            return False, None
        return True, self.frame

    def release(self):
        self.released = True


@pytest.fixture
def fake_cv2(monkeypatch):
    FakeVideoCapture.instances = []
    settings = {"opened": True, "frame": np.zeros((24, 32, 3), dtype=np.uint8)}

    def factory(index):
        return FakeVideoCapture(index, **settings)

    monkeypatch.setattr(camera_module.cv2, "VideoCapture", factory)
    return settings


def test_open_failure_raises_camera_unavailable(fake_cv2):
    fake_cv2["opened"] = False

    with pytest.raises(CameraUnavailable):
        CV2Camera(index=3).open_stream()
    assert FakeVideoCapture.instances[0].index == 3


def test_capture_frame_encodes_jpeg(fake_cv2):
    cam = CV2Camera(index=0, jpeg_quality=90)

    with cam.stream() as handle:
        payload = cam.capture_frame(handle)

    assert payload.mime_type == "image/jpeg"
    assert payload.data[:2] == b"\xff\xd8"
    assert handle.closed
    assert FakeVideoCapture.instances[0].released


def test_capture_without_frame_is_unavailable(fake_cv2):
    fake_cv2["frame"] = None
    cam = CV2Camera(index=0)
    handle = cam.open_stream()

    with pytest.raises(CaptureUnavailable):
        cam.capture_frame(handle)
    cam.close_stream(handle)


def test_capture_after_close_is_unavailable(fake_cv2):
    cam = CV2Camera(index=0)
    handle = cam.open_stream()
    cam.close_stream(handle)
    cam.close_stream(handle)

    with pytest.raises(CaptureUnavailable):
        cam.capture_frame(handle)


def test_single_channel_frame_is_unavailable(fake_cv2):
    fake_cv2["frame"] = np.zeros((24, 32), dtype=np.uint8)
    cam = CV2Camera(index=0)

    with cam.stream() as handle:
        with pytest.raises(CaptureUnavailable):
            cam.capture_frame(handle)
    assert handle.closed


def test_encode_failure_is_unavailable(fake_cv2, monkeypatch):
    def broken_encode(img, quality=None, format="JPEG"):
        raise ValueError("Image has zero dimensions")

    monkeypatch.setattr(camera_module.ImageProcessor, "encode_image", broken_encode)
    cam = CV2Camera(index=0)

    with cam.stream() as handle:
        with pytest.raises(CaptureUnavailable):
            cam.capture_frame(handle)
