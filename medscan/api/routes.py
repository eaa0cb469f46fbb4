"""FastAPI routes"""
from functools import lru_cache
from pathlib import Path
from fastapi import APIRouter, Depends, UploadFile, File, HTTPException, Query

from medscan.core.agent import MedicineAgent
from medscan.core.config import Config
from medscan.services.image_processor import ImageProcessor
from medscan.api.schemas import AnalysisResponse, HealthResponse, LookupRequest, SuggestResponse

router = APIRouter()

# Load endpoint paths from config
_health_endpoint = Config.get("api", "endpoints", "health", default="/health")
_identify_endpoint = Config.get("api", "endpoints", "identify", default="/api/v1/identify")
_lookup_endpoint = Config.get("api", "endpoints", "lookup", default="/api/v1/lookup")
_suggest_endpoint = Config.get("api", "endpoints", "suggest", default="/api/v1/suggest")


@lru_cache(maxsize=1)
def get_agent() -> MedicineAgent:
    """Shared agent, created on first use"""
    return MedicineAgent()


@router.get(_health_endpoint, response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    return HealthResponse(
        status=Config.get("api", "health_status", default="ok"),
        model=Config.GEMINI_MODEL,
        image_model=Config.GEMINI_IMAGE_MODEL
    )


@router.post(_identify_endpoint, response_model=AnalysisResponse)
async def identify_image(file: UploadFile = File(...), agent: MedicineAgent = Depends(get_agent)):
    """
    Identify the medicine in an uploaded photo

    Args:
        file: Image of medicine packaging or a tablet

    Returns:
        Identified medicine record, or the reason identification failed
    """
    if not ImageProcessor.is_image_file(Path(file.filename or "")):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type. Supported: {', '.join(Config.SUPPORTED_FORMATS)}"
        )

    content = await file.read()
    size_mb = len(content) / (1024 * 1024)
    if size_mb > Config.MAX_IMAGE_SIZE_MB:
        raise HTTPException(
            status_code=400,
            detail=f"File too large: {size_mb:.2f}MB (max: {Config.MAX_IMAGE_SIZE_MB}MB)"
        )

    try:
        payload = ImageProcessor.payload_from_bytes(content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    result = await agent.identify_payload(payload, file.filename)
    return AnalysisResponse(
        success=result.success,
        record=result.record,
        error=result.error,
        processing_time=result.processing_time
    )


@router.post(_lookup_endpoint, response_model=AnalysisResponse)
async def lookup_medicine(request: LookupRequest, agent: MedicineAgent = Depends(get_agent)):
    """Look up a medicine by brand or generic name"""
    if not request.name.strip():
        raise HTTPException(status_code=400, detail="Medicine name must not be empty")

    result = await agent.lookup(request.name)
    return AnalysisResponse(
        success=result.success,
        record=result.record,
        error=result.error,
        processing_time=result.processing_time
    )


@router.get(_suggest_endpoint, response_model=SuggestResponse)
async def suggest_names(q: str = Query("", description="Partial medicine name"), agent: MedicineAgent = Depends(get_agent)):
    """Autocomplete medicine names; empty list when unavailable"""
    suggestions = await agent.gemini_service.suggest(q)
    return SuggestResponse(query=q, suggestions=suggestions)
