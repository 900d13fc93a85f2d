"""
Pydantic models for request/response schemas
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any, Literal
from enum import Enum


QUALITY_CHOICES = ("144", "240", "360", "480", "720", "1080", "1440", "2160", "audio")
DEFAULT_QUALITY = "720"


class ErrorCode(str, Enum):
    """Error code classifications"""
    INVALID_REQUEST = "INVALID_REQUEST"
    STREAM_NOT_FOUND = "STREAM_NOT_FOUND"
    DIRECT_DOWNLOAD_UNAVAILABLE = "DIRECT_DOWNLOAD_UNAVAILABLE"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    UPSTREAM_MISCONFIGURED = "UPSTREAM_MISCONFIGURED"
    SERVER_ERROR = "SERVER_ERROR"


# HTTP status returned for each error code
ERROR_STATUS = {
    ErrorCode.INVALID_REQUEST: 400,
    ErrorCode.STREAM_NOT_FOUND: 404,
    ErrorCode.DIRECT_DOWNLOAD_UNAVAILABLE: 422,
    ErrorCode.UPSTREAM_UNAVAILABLE: 502,
    ErrorCode.UPSTREAM_MISCONFIGURED: 503,
    ErrorCode.SERVER_ERROR: 500,
}


class StreamDescriptor(BaseModel):
    """A candidate media stream reported by an upstream provider"""
    url: str
    mime_type: Optional[str] = Field(None, alias="mimeType")
    quality_label: Optional[str] = Field(None, alias="qualityLabel")
    quality: Optional[str] = None
    bitrate: Optional[int] = None
    height: Optional[int] = None
    has_audio: Optional[bool] = Field(None, alias="hasAudio")

    model_config = ConfigDict(populate_by_name=True)


class ResolutionRequest(BaseModel):
    """Request schema for /resolve"""
    video_id: str = Field(..., alias="videoId", description="11-character YouTube video ID")
    quality: str = Field(DEFAULT_QUALITY, description="Target height (144-2160) or 'audio'")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "videoId": "dQw4w9WgXcQ",
                "quality": "720",
            }
        },
    )


class ResolutionResult(BaseModel):
    """Success response for /resolve"""
    url: str
    mime_type: Optional[str] = Field(None, alias="mimeType")
    type: Literal["audio", "video"]
    quality: Optional[str] = None
    video_only: Optional[bool] = Field(None, alias="videoOnly")
    audio_url: Optional[str] = Field(None, alias="audioUrl", description="Separate audio track for video-only streams")
    provider: Optional[str] = Field(None, description="Upstream that supplied the streams")

    model_config = ConfigDict(populate_by_name=True)


class ErrorDetail(BaseModel):
    """Error details"""
    code: ErrorCode
    message: str
    fallback_url: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    @property
    def status_code(self) -> int:
        return ERROR_STATUS[self.code]


class ErrorResponse(BaseModel):
    """Error body returned by every failing endpoint"""
    error: str
    code: ErrorCode
    fallback_url: Optional[str] = Field(None, alias="fallbackUrl")
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_detail(cls, detail: ErrorDetail) -> "ErrorResponse":
        # The client keys its redirect on this literal error string
        if detail.code == ErrorCode.DIRECT_DOWNLOAD_UNAVAILABLE:
            error = "direct_download_unavailable"
        else:
            error = detail.message
        return cls(
            error=error,
            code=detail.code,
            fallback_url=detail.fallback_url,
            details=detail.details,
        )


class VideoInfo(BaseModel):
    """oEmbed metadata shown before a download"""
    video_id: str = Field(..., alias="videoId")
    title: str
    author: str
    thumbnail: str

    model_config = ConfigDict(populate_by_name=True)


class ProviderInfo(BaseModel):
    num: int
    name: str
    kind: str


class HealthStats(BaseModel):
    """Statistics for health check"""
    total_resolutions: int
    active_resolutions: int
    failed_resolutions: int


class HealthResponse(BaseModel):
    """Response schema for /api/v1/health"""
    status: str
    version: str
    uptime_seconds: float
    stats: HealthStats
    providers: int
