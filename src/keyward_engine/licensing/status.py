"""Stored vs. effective license status.

The stored status is what a seller (or an exhausting redemption) last wrote.
The effective status layers time and quota on top of it and is recomputed on
every read, so no background job has to flip keys to expired.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from keyward_engine.common.models import ensure_utc


class LicenseStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    BANNED = "banned"
    PENDING = "pending"


class RedemptionCode(str, Enum):
    ACCEPTED = "ACCEPTED"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    EXPIRED = "EXPIRED"
    BANNED = "BANNED"
    NOT_YET_ACTIVE = "NOT_YET_ACTIVE"
    NOT_FOUND = "NOT_FOUND"


REJECTION_MESSAGES = {
    RedemptionCode.QUOTA_EXCEEDED: "License usage limit reached",
    RedemptionCode.EXPIRED: "License has expired",
    RedemptionCode.BANNED: "License has been banned",
    RedemptionCode.NOT_YET_ACTIVE: "License is not active yet",
    RedemptionCode.NOT_FOUND: "License not found",
}


def parse_status(value) -> LicenseStatus:
    """Coerce a status string; raises ValueError on unknown values."""
    if isinstance(value, LicenseStatus):
        return value
    return LicenseStatus(str(value).strip().lower())


def quota_exhausted(record) -> bool:
    return record.max_usage is not None and record.usage_count >= record.max_usage


def is_past_expiry(record, now: datetime) -> bool:
    expires = ensure_utc(record.expires_at)
    return expires is not None and now > expires


def compute_effective_status(record, now: Optional[datetime] = None) -> LicenseStatus:
    """Derive the status a record has at ``now``.

    banned always wins; then date expiry; then quota exhaustion; otherwise the
    stored value stands.
    """
    now = ensure_utc(now) or datetime.now(timezone.utc)
    stored = parse_status(record.status)

    if stored is LicenseStatus.BANNED:
        return LicenseStatus.BANNED
    if is_past_expiry(record, now):
        return LicenseStatus.EXPIRED
    if quota_exhausted(record):
        return LicenseStatus.EXPIRED
    return stored


def rejection_code(record, now: datetime) -> Optional[RedemptionCode]:
    """Return the reason a redemption at ``now`` is refused, or None.

    An expired key whose quota is used up reports QUOTA_EXCEEDED unless its
    expiry date has also passed.
    """
    now = ensure_utc(now)
    effective = compute_effective_status(record, now)

    if effective is LicenseStatus.BANNED:
        return RedemptionCode.BANNED
    if effective is LicenseStatus.PENDING:
        return RedemptionCode.NOT_YET_ACTIVE
    if is_past_expiry(record, now):
        return RedemptionCode.EXPIRED
    if quota_exhausted(record):
        return RedemptionCode.QUOTA_EXCEEDED
    if effective is LicenseStatus.EXPIRED:
        return RedemptionCode.EXPIRED
    return None
