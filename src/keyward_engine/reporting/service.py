"""Reporting service — dashboard counters over a seller's licenses."""

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from keyward_engine.common.models import ensure_utc
from keyward_engine.licensing.status import LicenseStatus, compute_effective_status
from keyward_engine.licensing.store import LicenseStore


@dataclass
class LicenseAggregates:
    total: int = 0
    active_count: int = 0
    expired_count: int = 0
    banned_count: int = 0
    pending_count: int = 0
    this_period_count: int = 0
    total_redemptions: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def in_same_month(moment: datetime, now: datetime) -> bool:
    moment = ensure_utc(moment).astimezone(timezone.utc)
    now = ensure_utc(now).astimezone(timezone.utc)
    return (moment.year, moment.month) == (now.year, now.month)


def compute_aggregates(records: Iterable, now: datetime | None = None) -> LicenseAggregates:
    """Count records by effective status and by issue month.

    Pure function; nothing is cached between calls.
    """
    now = ensure_utc(now) or datetime.now(timezone.utc)
    agg = LicenseAggregates()
    counters = {
        LicenseStatus.ACTIVE: "active_count",
        LicenseStatus.EXPIRED: "expired_count",
        LicenseStatus.BANNED: "banned_count",
        LicenseStatus.PENDING: "pending_count",
    }

    for record in records:
        agg.total += 1
        attr = counters[compute_effective_status(record, now)]
        setattr(agg, attr, getattr(agg, attr) + 1)
        if record.created_at is not None and in_same_month(record.created_at, now):
            agg.this_period_count += 1
        agg.total_redemptions += record.usage_count or 0

    return agg


class ReportingService:
    """Aggregate reporting for the seller dashboard."""

    def __init__(self, store: LicenseStore | None = None):
        self.store = store or LicenseStore()

    async def report(
        self,
        session: AsyncSession,
        seller_id: str,
        now: datetime | None = None,
    ) -> LicenseAggregates:
        records = await self.store.list_by_owner(session, seller_id)
        return compute_aggregates(records, now)
