"""Pydantic schemas for API requests/responses"""
from typing import List, Optional
from pydantic import BaseModel, Field

from medscan.types.medicine import MedicineRecord


class LookupRequest(BaseModel):
    """Name lookup request"""
    name: str = Field(..., description="Brand or generic medicine name")


class AnalysisResponse(BaseModel):
    """Response for image identification and name lookup"""
    success: bool
    record: Optional[MedicineRecord] = None
    error: Optional[str] = None
    processing_time: Optional[float] = None


class SuggestResponse(BaseModel):
    """Autocomplete response"""
    query: str
    suggestions: List[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    model: str
    image_model: str
    version: str = None

    def __init__(self, **data):
        from medscan.core.config import Config
        if "version" not in data or data["version"] is None:
            data["version"] = Config.get("api", "version", default="1.0.0")
        super().__init__(**data)
