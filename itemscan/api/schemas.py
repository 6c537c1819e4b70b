from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ServiceType(str, Enum):
    GOOGLE_VISION = "googleVision"
    AMAZON_REKOGNITION = "amazonRekognition"
    OPENAI = "openai"  # summarization provider


class BoundingBox(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float
    height: float


class DetectedItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    confidence: float = Field(ge=0, le=1)
    category: str
    description: str = ""
    bounding_box: Optional[BoundingBox] = None


class AnalysisOutcome(BaseModel):
    """Result of one provider call. Never mutated once produced."""
    model_config = ConfigDict(frozen=True)

    success: bool
    items: List[DetectedItem] = Field(default_factory=list)
    processing_time: float = 0.0  # seconds
    analyzed_at: Optional[datetime] = None
    error: Optional[str] = None


class SummarizedResult(BaseModel):
    name: str
    description: str
    confidence: float = Field(ge=0, le=1)
    reasoning: str


class CombinedAnalysisResult(BaseModel):
    success: bool
    google_vision_results: Optional[AnalysisOutcome] = None
    amazon_rekognition_results: Optional[AnalysisOutcome] = None
    summarized_result: Optional[SummarizedResult] = None
    total_processing_time: float
    error: Optional[str] = None


class MergedAnalysis(BaseModel):
    items: List[DetectedItem]
    processing_time: float
    success: bool
    analyzed_at: datetime


class UsageStats(BaseModel):
    google_vision: int = 0
    amazon_rekognition: int = 0
    openai: int = 0
    total: int = 0
