"""Pydantic schemas for licensing endpoints."""

from datetime import date, datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, Field

ExpiryInput = Union[datetime, date, str]


# ── Licenses ──

class LicenseCreate(BaseModel):
    product_name: str = Field(..., max_length=255)
    max_usage: Optional[int] = None
    expires_at: Optional[ExpiryInput] = None
    notes: Optional[str] = None
    user_email: Optional[str] = Field(default=None, max_length=255)


class LicenseUpdate(BaseModel):
    notes: Optional[str] = None
    max_usage: Optional[int] = None
    expires_at: Optional[ExpiryInput] = None
    user_email: Optional[str] = Field(default=None, max_length=255)


class StatusUpdate(BaseModel):
    status: str


class LicenseResponse(BaseModel):
    id: str
    key: str
    product_name: str
    seller_id: str
    status: str
    effective_status: str
    user_email: Optional[str] = None
    usage_count: int
    max_usage: Optional[int] = None
    expires_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


# ── Redemption ──

class RedemptionRequest(BaseModel):
    key: str
    user_email: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class RedemptionLicense(BaseModel):
    """License info as returned to end users (no seller details)."""
    id: str
    key: str
    product_name: str
    effective_status: str
    usage_count: int
    max_usage: Optional[int] = None
    expires_at: Optional[datetime] = None


class RedemptionResponse(BaseModel):
    accepted: bool
    code: str
    message: str
    remaining: Optional[int] = None
    license: Optional[RedemptionLicense] = None
