"""Application state controller: sequences user intents into analysis calls"""
import asyncio
import logging
import time
from typing import Optional

from medscan.core.config import Config
from medscan.core.debounce import Debouncer
from medscan.core.errors import CameraUnavailable, CaptureUnavailable, MedScanError
from medscan.core.gemini_service import GeminiService
from medscan.services.camera import CameraAdapter, StreamHandle
from medscan.types.medicine import MedicineRecord
from medscan.types.state import AppState, Mode

logger = logging.getLogger(__name__)

CAPTURE_FALLBACK_ERROR = "Identification failed. Ensure clear text visibility."
SEARCH_FALLBACK_ERROR = "Medicine not found in clinical database."


class MedScanController:
    """
    Owns the single AppState and drives it through IDLE, LOADING, RESULT and
    CAMERA_ACTIVE.

    Only one primary analysis (capture or search) runs at a time; intents that
    arrive while LOADING are refused and return False. Suggestion fetches are
    debounced and dropped when the input changed or a primary analysis began
    before they returned.
    """

    def __init__(
        self,
        service: GeminiService,
        camera: Optional[CameraAdapter] = None,
        debounce_ms: Optional[int] = None
    ):
        self.service = service
        self.camera = camera
        self.state = AppState()
        self.min_query_length = Config.get("suggestions", "min_query_length", default=2)
        if debounce_ms is None:
            debounce_ms = Config.get("suggestions", "debounce_ms", default=400)
        self._suggestions = Debouncer(debounce_ms / 1000)
        self._stream: Optional[StreamHandle] = None
        # Bumped whenever a primary analysis starts
        self._analysis_generation = 0

    # -- search & suggestions -------------------------------------------------

    def set_query(self, text: str) -> None:
        """Record a keystroke and restart the suggestion timer"""
        self.state.query_text = text
        self._suggestions.arm(self._refresh_suggestions, text)

    async def _refresh_suggestions(self, query: str) -> None:
        if len(query.strip()) < self.min_query_length or self.state.is_busy:
            self._hide_suggestions()
            return

        generation = self._analysis_generation
        names = await self.service.suggest(query)

        if (
            query != self.state.query_text
            or self.state.is_busy
            or generation != self._analysis_generation
        ):
            logger.debug("Discarding stale suggestions for %r", query)
            return
        self.state.suggestions = names
        self.state.suggestions_visible = bool(names)

    async def settle_suggestions(self) -> None:
        """Wait for the pending suggestion fetch, if any, to land"""
        await self._suggestions.settle()

    async def submit_query(self, text: Optional[str] = None) -> bool:
        """Look up a medicine by name; uses the current query text by default"""
        if self.state.is_busy:
            logger.info("Search ignored: an analysis is already running")
            return False

        target = (text if text is not None else self.state.query_text).strip()
        if not target:
            return False

        self._release_camera()
        self._begin_loading()
        start_time = time.time()
        try:
            record = await self.service.lookup_by_name(target)
        except MedScanError as e:
            logger.info("Search for %r failed: %s", target, e.message)
            self._fail(e.message)
            return True
        except Exception:
            logger.exception("Search for %r failed unexpectedly", target)
            self._fail(SEARCH_FALLBACK_ERROR)
            return True
        else:
            logger.info("Search for %r resolved to %s in %.2fs", target, record.brand_name, time.time() - start_time)
            self.state.query_text = ""
            self._show(record)
            return True
        finally:
            # Cancelled mid-flight
            if self.state.is_busy:
                self._fail(SEARCH_FALLBACK_ERROR)

    async def pick_suggestion(self, name: str) -> bool:
        return await self.submit_query(name)

    async def search_related(self, name: str) -> bool:
        """Look up a medicine listed as related on the shown result"""
        if self.state.active_record is None:
            logger.info("Related search ignored: no result is shown")
            return False
        return await self.submit_query(name)

    # -- camera ---------------------------------------------------------------

    async def toggle_camera(self) -> bool:
        """Open the camera from IDLE/RESULT, or close it back to IDLE"""
        if self.state.is_busy:
            return False

        if self.state.camera_open:
            self._release_camera()
            self.state.camera_error = None
            self.state.mode = Mode.IDLE
            return True

        self.state.record = None
        self.state.last_error = None
        self._hide_suggestions()
        self.state.mode = Mode.CAMERA_ACTIVE
        await self._open_camera()
        return True

    async def retry_camera(self) -> bool:
        """Re-request the camera after a permission or device failure"""
        if not self.state.camera_open or self._stream is not None:
            return False
        await self._open_camera()
        return self._stream is not None

    async def capture(self) -> bool:
        """Grab the current frame and identify the medicine in it"""
        if not self.state.camera_open or self._stream is None:
            logger.info("Capture ignored: camera is not streaming")
            return False

        try:
            payload = self.camera.capture_frame(self._stream)
        except CaptureUnavailable as e:
            self.state.camera_error = e.message
            return False

        self._release_camera()
        self._begin_loading()
        start_time = time.time()
        try:
            record = await self.service.analyze_image(payload)
        except MedScanError as e:
            logger.info("Image analysis failed: %s", e.message)
            self._fail(e.message)
            return True
        except Exception:
            logger.exception("Image analysis failed unexpectedly")
            self._fail(CAPTURE_FALLBACK_ERROR)
            return True
        else:
            logger.info("Captured frame identified as %s in %.2fs", record.brand_name, time.time() - start_time)
            self._show(record)
            return True
        finally:
            if self.state.is_busy:
                self._fail(CAPTURE_FALLBACK_ERROR)

    async def _open_camera(self) -> None:
        if self.camera is None:
            self.state.camera_error = CameraUnavailable.default_message
            return
        try:
            handle = await asyncio.to_thread(self.camera.open_stream)
        except CameraUnavailable as e:
            self.state.camera_error = e.message
            return

        # The user may have closed the camera while it was opening
        if not self.state.camera_open or self._stream is not None:
            self.camera.close_stream(handle)
            return
        self._stream = handle
        self.state.camera_error = None

    def _release_camera(self) -> None:
        if self._stream is not None:
            self.camera.close_stream(self._stream)
            self._stream = None

    # -- reset ----------------------------------------------------------------

    def clear(self) -> bool:
        """Drop the shown record, errors and query and return to IDLE"""
        if self.state.is_busy:
            return False
        self._suggestions.cancel()
        self._release_camera()
        self.state.mode = Mode.IDLE
        self.state.record = None
        self.state.last_error = None
        self.state.camera_error = None
        self.state.query_text = ""
        self._hide_suggestions()
        return True

    async def aclose(self) -> None:
        await self._suggestions.aclose()
        self._release_camera()

    # -- transitions ----------------------------------------------------------

    def _begin_loading(self) -> None:
        self._analysis_generation += 1
        self._suggestions.cancel()
        self.state.mode = Mode.LOADING
        self.state.record = None
        self.state.last_error = None
        self.state.camera_error = None
        self._hide_suggestions()

    def _show(self, record: MedicineRecord) -> None:
        if not record.is_medicine:
            self._fail(CAPTURE_FALLBACK_ERROR)
            return
        self.state.record = record
        self.state.mode = Mode.RESULT

    def _fail(self, message: str) -> None:
        self.state.record = None
        self.state.last_error = message
        self.state.mode = Mode.IDLE

    def _hide_suggestions(self) -> None:
        self.state.suggestions = []
        self.state.suggestions_visible = False
