from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import datetime

from .models import LogStatus
from .security import validate_target_url


class CheckRequest(BaseModel):
    """Request schema for validating an access code."""

    code: Optional[str] = Field(None, max_length=255, description="The access code to check")
    browser: Optional[str] = Field(None, max_length=100, description="Client-reported browser (optional)")
    device_type: Optional[str] = Field(None, max_length=50, description="Client-reported device type (optional)")


class CheckResponse(BaseModel):
    """Response schema for a code check."""
    valid: bool
    url: Optional[str] = None


class AddCodeRequest(BaseModel):
    """Request schema for adding an access code."""

    code: str = Field(..., min_length=1, max_length=255, description="Plaintext access code")
    url: str = Field(..., min_length=1, description="Destination returned on a successful check")

    @field_validator('code')
    @classmethod
    def validate_code(cls, v):
        if not v.strip():
            raise ValueError('Code must not be blank')
        return v

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        is_valid, error = validate_target_url(v)
        if not is_valid:
            raise ValueError(error or 'Invalid URL')
        return v.strip()


class AddCodeResponse(BaseModel):
    added: bool = True
    id: int


class DeleteCodeRequest(BaseModel):
    """Request schema for deleting an access code."""
    id: int = Field(..., ge=1)


class DeleteCodeResponse(BaseModel):
    deleted: bool = True
    id: int


class AccessCodeResponse(BaseModel):
    """Admin view of an access code. The hash is never exposed."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    target_url: str
    created_at: Optional[datetime] = None
    success_count: int = 0
    fail_count: int = 0


class LogEntryResponse(BaseModel):
    """Admin view of an audit log entry."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    url: Optional[str] = None
    status: LogStatus
    ip: str
    user_agent: Optional[str] = None
    referer: Optional[str] = None
    device_type: Optional[str] = None
    os: Optional[str] = None
    browser_name: Optional[str] = None
    languages: Optional[str] = None
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    attempt_number: int
    response_ms: int
    created_at: Optional[datetime] = None


class ErrorResponse(BaseModel):
    """Error response schema."""
    error: Optional[str] = None
    detail: Optional[str] = None
