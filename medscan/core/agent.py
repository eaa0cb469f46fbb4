"""One-shot identification agent used by the API and the batch CLI"""
import logging
import time
from pathlib import Path
from typing import Optional, Union

from medscan.core.errors import MedScanError
from medscan.core.gemini_service import GeminiService
from medscan.services.image_processor import ImageProcessor
from medscan.types.medicine import AnalysisResult, ImagePayload

logger = logging.getLogger(__name__)


class MedicineAgent:
    """Wraps GeminiService calls into AnalysisResult objects with timing"""

    def __init__(self, gemini_api_key: str = None, model: str = None, service: GeminiService = None):
        """Initialize the agent"""
        self.gemini_service = service or GeminiService(gemini_api_key, model)

    async def identify_file(self, image_path: Union[Path, str]) -> AnalysisResult:
        """
        Identify the medicine shown in an image file

        Args:
            image_path: Path to the image file

        Returns:
            AnalysisResult with the record or the error message
        """
        image_path = Path(image_path)
        start_time = time.time()
        try:
            payload = ImageProcessor.load_payload(image_path)
        except ValueError as e:
            return AnalysisResult(
                success=False,
                error=str(e),
                source=image_path.name,
                processing_time=time.time() - start_time
            )
        return await self.identify_payload(payload, image_path.name, start_time)

    async def identify_payload(
        self,
        payload: ImagePayload,
        source: Optional[str] = None,
        start_time: Optional[float] = None
    ) -> AnalysisResult:
        start_time = start_time or time.time()
        try:
            record = await self.gemini_service.analyze_image(payload)
        except MedScanError as e:
            logger.info("Identification of %s failed: %s", source, e.message)
            return AnalysisResult(
                success=False,
                error=e.message,
                source=source,
                processing_time=time.time() - start_time
            )

        return AnalysisResult(
            success=True,
            record=record,
            source=source,
            processing_time=time.time() - start_time
        )

    async def lookup(self, name: str) -> AnalysisResult:
        """Look up a medicine by name"""
        start_time = time.time()
        try:
            record = await self.gemini_service.lookup_by_name(name)
        except (MedScanError, ValueError) as e:
            message = e.message if isinstance(e, MedScanError) else str(e)
            logger.info("Lookup of %r failed: %s", name, message)
            return AnalysisResult(
                success=False,
                error=message,
                source=name,
                processing_time=time.time() - start_time
            )

        return AnalysisResult(
            success=True,
            record=record,
            source=name,
            processing_time=time.time() - start_time
        )
