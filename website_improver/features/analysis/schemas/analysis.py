"""
Analysis Schemas

Request and response models for the analysis API endpoints, plus the message
published on the analysis queue.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from website_improver.features.analysis.schemas.site import CamelModel, Improvement, SiteSnapshot
from website_improver.platform.utils.url_validator import validate_url


def _check_url(value: str) -> str:
    is_valid, error_message = validate_url(value)
    if not is_valid:
        raise ValueError(error_message)
    return value.strip()


# ============================================================================
# Requests
# ============================================================================

class AnalysisOptions(CamelModel):
    include_screenshots: bool = True
    mobile_analysis: bool = True
    performance_analysis: bool = True
    seo_analysis: bool = True
    accessibility_analysis: bool = True


class AnalysisRequest(BaseModel):
    """Request to start a website analysis."""
    url: str
    options: Optional[AnalysisOptions] = None

    @field_validator("url")
    @classmethod
    def validate_analysis_url(cls, value: str) -> str:
        return _check_url(value)

    class Config:
        json_schema_extra = {
            "example": {
                "url": "https://example.com",
                "options": {"includeScreenshots": True, "seoAnalysis": True},
            }
        }


class AccessibilityCheckRequest(BaseModel):
    """Request to check whether a URL can be fetched."""
    url: str
    timeout: int = Field(default=10000, ge=1000, le=30000)  # milliseconds

    @field_validator("url")
    @classmethod
    def validate_check_url(cls, value: str) -> str:
        return _check_url(value)


# ============================================================================
# Queue message
# ============================================================================

class AnalysisJobDescriptor(BaseModel):
    """Everything a worker needs to process one job."""
    job_id: str
    user_id: str
    url: str
    options: Dict[str, Any] = Field(default_factory=dict)

    @property
    def analysis_options(self) -> AnalysisOptions:
        return AnalysisOptions.model_validate(self.options or {})


# ============================================================================
# Responses
# ============================================================================

class AnalysisJobSummary(CamelModel):
    job_id: str
    status: str
    url: str
    created_at: datetime
    estimated_completion_time: Optional[datetime] = None


class JobStatusResponse(CamelModel):
    job_id: str
    status: str
    progress: int
    url: str
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    estimated_completion_time: Optional[datetime] = None


class ScoreSummary(CamelModel):
    seo: Optional[int] = None
    performance: Optional[int] = None
    accessibility: Optional[int] = None
    ux: Optional[int] = None


class ResultMetadata(CamelModel):
    analysis_time: Optional[int] = None
    pages_analyzed: Optional[int] = None
    credits_used: Optional[float] = None


class JobResultsResponse(CamelModel):
    job_id: str
    status: str
    url: str
    original_site: Optional[SiteSnapshot] = None
    improvements: List[Improvement] = Field(default_factory=list)
    scores: ScoreSummary = Field(default_factory=ScoreSummary)
    metadata: ResultMetadata = Field(default_factory=ResultMetadata)
    created_at: datetime
    completed_at: Optional[datetime] = None


class AccessibilityCheckResult(CamelModel):
    accessible: bool
    status_code: Optional[int] = None
    response_time: Optional[int] = None  # milliseconds
    content_type: Optional[str] = None
    server: Optional[str] = None
    error: Optional[str] = None
