import asyncio
import json
import os
import tempfile
from types import SimpleNamespace

_TMP_DIR = tempfile.mkdtemp(prefix="medscan-tests-")
os.environ.setdefault("GEMINI_API_KEY", "test-key")
os.environ["OUTPUT_DIR"] = os.path.join(_TMP_DIR, "results")
os.environ["LOG_DIR"] = os.path.join(_TMP_DIR, "logs")

import pytest

from medscan.core.errors import CameraUnavailable, CaptureUnavailable
from medscan.core.gemini_service import GeminiService
from medscan.services.camera import CameraAdapter, StreamHandle
from medscan.types.medicine import ImagePayload


def medicine_json(**overrides) -> str:
    data = {
        "brandName": "Panadol",
        "genericName": "Paracetamol",
        "ingredients": ["Paracetamol 500 mg"],
        "purpose": "Relieves mild to moderate pain and fever",
        "reasonsForUse": ["Headache", "Fever"],
        "sideEffects": ["Nausea"],
        "relatedMedicines": ["Tylenol", "Calpol", "Ibuprofen"],
        "isMedicine": True,
        "confidence": 0.93,
    }
    data.update(overrides)
    return json.dumps(data)


class FakeResponse:
    def __init__(self, text=None, parts=None):
        self._text = text
        self.candidates = [SimpleNamespace(content=SimpleNamespace(parts=parts or []))]

    @property
    def text(self):
        if self._text is None:
            raise ValueError("response has no text parts")
        return self._text


def image_part(data: bytes = b"fake-png", mime_type: str = "image/png"):
    return SimpleNamespace(text="", inline_data=SimpleNamespace(data=data, mime_type=mime_type))


class FakeModel:
    """Stands in for genai.GenerativeModel; replays queued responses or exceptions"""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self.gate = None

    async def generate_content_async(self, contents, **kwargs):
        self.calls.append((contents, kwargs))
        if self.gate is not None:
            await self.gate.wait()
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, str):
            return FakeResponse(text=item)
        return item


class FakeCamera(CameraAdapter):
    def __init__(self, payload: ImagePayload = None, fail_open: bool = False, fail_capture: bool = False):
        self.payload = payload or ImagePayload(data=b"\xff\xd8frame", mime_type="image/jpeg")
        self.fail_open = fail_open
        self.fail_capture = fail_capture
        self.opened = 0
        self.closed = 0

    def open_stream(self) -> StreamHandle:
        if self.fail_open:
            raise CameraUnavailable()
        self.opened += 1
        return StreamHandle(device=0)

    def close_stream(self, handle: StreamHandle) -> None:
        if not handle.closed:
            handle.closed = True
            self.closed += 1

    def capture_frame(self, handle: StreamHandle) -> ImagePayload:
        if handle.closed or self.fail_capture:
            raise CaptureUnavailable()
        return self.payload


@pytest.fixture
def service():
    svc = GeminiService(api_key="test-key")
    svc.model = FakeModel(medicine_json())
    svc.image_model = FakeModel(RuntimeError("image model unavailable"))
    return svc


@pytest.fixture
def payload():
    return ImagePayload(data=b"\xff\xd8captured", mime_type="image/jpeg")


def run(coro):
    return asyncio.run(coro)
