"""Application state models"""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

from medscan.types.medicine import MedicineRecord


class Mode(str, Enum):
    """Which single screen the application is on"""
    IDLE = "idle"
    LOADING = "loading"
    RESULT = "result"
    CAMERA_ACTIVE = "camera_active"


class AppState(BaseModel):
    """Everything the views read; mutated only by the controller"""
    mode: Mode = Mode.IDLE
    record: Optional[MedicineRecord] = None
    last_error: Optional[str] = None
    camera_error: Optional[str] = None
    query_text: str = ""
    suggestions: List[str] = Field(default_factory=list)
    suggestions_visible: bool = False

    @property
    def is_busy(self) -> bool:
        return self.mode is Mode.LOADING

    @property
    def camera_open(self) -> bool:
        return self.mode is Mode.CAMERA_ACTIVE

    @property
    def active_record(self) -> Optional[MedicineRecord]:
        return self.record if self.mode is Mode.RESULT else None
