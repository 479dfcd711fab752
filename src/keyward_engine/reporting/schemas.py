"""Pydantic schemas for reporting endpoints."""

from datetime import datetime

from pydantic import BaseModel


class LicenseSummaryReport(BaseModel):
    seller_id: str
    generated_at: datetime
    total: int
    active_count: int
    expired_count: int
    banned_count: int
    pending_count: int
    this_period_count: int
    total_redemptions: int
