"""
Camera capture adapters.

CAMERA_INDEX env var (default 0) selects the OpenCV device. A stream holds the
device exclusively until close_stream() is called.
"""
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

import cv2
from PIL import Image

from medscan.core.config import Config
from medscan.core.errors import CameraUnavailable, CaptureUnavailable
from medscan.services.image_processor import ImageProcessor
from medscan.types.medicine import ImagePayload

logger = logging.getLogger(__name__)


@dataclass
class StreamHandle:
    device: int
    capture: Any = field(repr=False, default=None)
    closed: bool = False


class CameraAdapter(ABC):
    @abstractmethod
    def open_stream(self) -> StreamHandle:
        """Acquire the camera. Raises CameraUnavailable."""
        ...

    @abstractmethod
    def close_stream(self, handle: StreamHandle) -> None:
        """Release the camera. Safe to call more than once."""
        ...

    @abstractmethod
    def capture_frame(self, handle: StreamHandle) -> ImagePayload:
        """Grab and encode the current frame. Raises CaptureUnavailable."""
        ...

    @contextmanager
    def stream(self) -> Iterator[StreamHandle]:
        handle = self.open_stream()
        try:
            yield handle
        finally:
            self.close_stream(handle)


class CV2Camera(CameraAdapter):
    def __init__(self, index: Optional[int] = None, jpeg_quality: Optional[int] = None):
        self._index = index if index is not None else Config.CAMERA_INDEX
        self._quality = jpeg_quality or Config.get("camera", "jpeg_quality", default=90)

    def open_stream(self) -> StreamHandle:
        cap = cv2.VideoCapture(self._index)
        if not cap.isOpened():
            cap.release()
            logger.warning("cv2_camera: failed to open device %s", self._index)
            raise CameraUnavailable()
        logger.info("cv2_camera: opened device %s", self._index)
        return StreamHandle(device=self._index, capture=cap)

    def close_stream(self, handle: StreamHandle) -> None:
        if handle.closed:
            return
        handle.closed = True
        if handle.capture is not None and handle.capture.isOpened():
            handle.capture.release()
        logger.info("cv2_camera: released device %s", handle.device)

    def capture_frame(self, handle: StreamHandle) -> ImagePayload:
        if handle.closed or handle.capture is None or not handle.capture.isOpened():
            raise CaptureUnavailable("The camera stream was closed.")
        ret, frame = handle.capture.read()
        if not ret or frame is None or frame.size == 0:
            logger.warning("cv2_camera: frame capture failed on device %s", handle.device)
            raise CaptureUnavailable()

        try:
            rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            return ImageProcessor.encode_image(Image.fromarray(rgb), quality=self._quality)
        except (cv2.error, ValueError) as e:
            logger.warning("cv2_camera: could not encode frame from device %s: %s", handle.device, e)
            raise CaptureUnavailable() from e
