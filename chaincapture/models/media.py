"""
Pydantic models for captured media and the IP metadata submitted with it.
"""

from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, Field, validator
from enum import Enum

MAX_TAGS = 5

class MediaType(str, Enum):
    """Enumeration of supported capture types."""
    IMAGE = "image"
    VIDEO = "video"

def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

class IPMetadata(BaseModel):
    """User-supplied description of a capture; immutable once submitted."""
    title: str = Field(..., min_length=1, description="Title of the IP Asset")
    description: str = Field(default="", description="Free-form description")
    ip_type: MediaType = Field(..., alias="ipType", description="Media type of the asset")
    creators: List[str] = Field(default_factory=list, description="Creator names or wallet addresses")
    capture_date: str = Field(default_factory=_utc_now_iso, alias="captureDate", description="ISO-8601 capture date")
    device_info: Optional[str] = Field(None, alias="deviceInfo", description="Capturing device")
    location: Optional[str] = Field(None, description="Capture location")
    tags: Optional[List[str]] = Field(None, description=f"Up to {MAX_TAGS} tags")

    class Config:
        use_enum_values = True
        populate_by_name = True
        frozen = True

    @validator('title')
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError('Title cannot be blank')
        return v.strip()

    @validator('tags')
    def validate_tags(cls, v):
        if v is None:
            return v
        tags = [tag.strip() for tag in v if tag and tag.strip()]
        if len(tags) > MAX_TAGS:
            raise ValueError(f'At most {MAX_TAGS} tags are allowed')
        return tags

    def to_document(self) -> dict:
        """JSON document as stored on IPFS and hashed for registration."""
        return self.model_dump(by_alias=True, exclude_none=True)

class CapturedMedia(BaseModel):
    """A single browser capture held in memory for the duration of a request."""
    id: str = Field(..., description="Capture identifier (photo-<ms> / video-<ms>)")
    type: MediaType = Field(..., description="Capture type")
    payload: bytes = Field(..., repr=False, description="Raw media bytes")
    content_type: str = Field(..., description="MIME type of the payload")
    timestamp: int = Field(..., ge=0, description="Capture time in milliseconds since epoch")
    width: Optional[int] = Field(None, description="Width in pixels (images)")
    height: Optional[int] = Field(None, description="Height in pixels (images)")

    class Config:
        use_enum_values = True

    @property
    def size(self) -> int:
        return len(self.payload)
