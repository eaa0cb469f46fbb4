"""Medicine data models"""
import base64
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class MedicineRecord(BaseModel):
    """Structured clinical information about one medicine"""
    model_config = ConfigDict(populate_by_name=True)

    brand_name: str = Field("", alias="brandName", description="Brand name shown on the packaging")
    generic_name: str = Field("", alias="genericName", description="International non-proprietary name")
    ingredients: List[str] = Field(default_factory=list, description="Active ingredients")
    purpose: str = Field("", description="One-line clinical purpose")
    reasons_for_use: List[str] = Field(default_factory=list, alias="reasonsForUse", description="Indications")
    side_effects: List[str] = Field(default_factory=list, alias="sideEffects", description="Common side effects")
    related_medicines: List[str] = Field(
        default_factory=list,
        alias="relatedMedicines",
        description="Similar medicines, alternatives or same-class drugs (usually 3-5)"
    )
    is_medicine: bool = Field(..., alias="isMedicine", description="False when the subject is not a recognized medicine")
    confidence: Optional[float] = Field(None, description="Model-reported confidence, passed through unchecked")
    image_url: Optional[str] = Field(None, alias="imageUrl", description="Data URI of the captured photo or an illustration")

    @field_validator("ingredients", "reasons_for_use", "side_effects", "related_medicines", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return [] if value is None else value

    @field_validator("brand_name", "generic_name", "purpose", mode="before")
    @classmethod
    def _none_to_blank(cls, value):
        return "" if value is None else value

    @model_validator(mode="after")
    def _require_brand_name(self) -> "MedicineRecord":
        if self.is_medicine and not self.brand_name.strip():
            raise ValueError("brandName must be non-empty for a recognized medicine")
        return self


class ImagePayload(BaseModel):
    """Encoded still image ready to send to the backend"""
    data: bytes
    mime_type: str = "image/jpeg"

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"


class AnalysisResult(BaseModel):
    """Outcome of one identification or lookup outside the interactive controller"""
    success: bool
    record: Optional[MedicineRecord] = None
    error: Optional[str] = None
    source: Optional[str] = Field(None, description="Image filename or queried name")
    processing_time: Optional[float] = None  # seconds
