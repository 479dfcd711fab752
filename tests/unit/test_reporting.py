"""Tests for reporting — aggregate counters over a seller's licenses."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from keyward_engine.reporting.service import (
    LicenseAggregates,
    ReportingService,
    compute_aggregates,
    in_same_month,
)
from tests.conftest import SELLER_A, SELLER_B


NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def record(status="active", created_at=NOW, usage_count=0, max_usage=None, expires_at=None):
    return SimpleNamespace(
        status=status, created_at=created_at, usage_count=usage_count,
        max_usage=max_usage, expires_at=expires_at,
    )


class TestInSameMonth:
    def test_same_month(self):
        assert in_same_month(datetime(2026, 3, 1, tzinfo=timezone.utc), NOW)

    def test_same_month_previous_year(self):
        assert not in_same_month(datetime(2025, 3, 20, tzinfo=timezone.utc), NOW)

    def test_previous_month(self):
        assert not in_same_month(datetime(2026, 2, 28, 23, 59, tzinfo=timezone.utc), NOW)

    def test_naive_is_utc(self):
        assert in_same_month(datetime(2026, 3, 31, 23, 0), NOW)


class TestComputeAggregates:
    def test_empty(self):
        assert compute_aggregates([], NOW) == LicenseAggregates()

    def test_counts_by_status(self):
        agg = compute_aggregates([
            record("active"), record("active"), record("expired"), record("banned"),
        ], NOW)
        assert agg.total == 4
        assert agg.active_count == 2
        assert agg.expired_count == 1
        assert agg.banned_count == 1
        assert agg.pending_count == 0

    def test_uses_effective_status(self):
        agg = compute_aggregates([
            record("active", expires_at=NOW - timedelta(days=1)),
            record("active", max_usage=2, usage_count=2),
            record("pending"),
        ], NOW)
        assert agg.active_count == 0
        assert agg.expired_count == 2
        assert agg.pending_count == 1

    def test_this_period(self):
        agg = compute_aggregates([
            record(created_at=NOW),
            record(created_at=datetime(2026, 3, 1, tzinfo=timezone.utc)),
            record(created_at=datetime(2026, 2, 28, tzinfo=timezone.utc)),
            record(created_at=datetime(2025, 3, 15, tzinfo=timezone.utc)),
        ], NOW)
        assert agg.this_period_count == 2

    def test_total_redemptions(self):
        agg = compute_aggregates([
            record(usage_count=3), record(usage_count=0), record(usage_count=4),
        ], NOW)
        assert agg.total_redemptions == 7

    def test_to_dict(self):
        data = compute_aggregates([record()], NOW).to_dict()
        assert data["total"] == 1
        assert data["active_count"] == 1
        assert set(data) == {
            "total", "active_count", "expired_count", "banned_count",
            "pending_count", "this_period_count", "total_redemptions",
        }


class TestReportingService:
    async def test_report_scoped_to_seller(self, db, svc):
        async with db.get_session() as session:
            a1 = await svc.create_license(session, SELLER_A, "Photo Suite")
            a2 = await svc.create_license(session, SELLER_A, "Photo Suite", max_usage=1)
            await svc.create_license(session, SELLER_B, "Other App")
            await svc.set_status(session, a1.id, SELLER_A, "banned")
            await svc.redeem(session, a2.key)

        reporting = ReportingService(svc.store)
        async with db.get_session() as session:
            agg = await reporting.report(session, SELLER_A)

        assert agg.total == 2
        assert agg.banned_count == 1
        assert agg.expired_count == 1
        assert agg.active_count == 0
        assert agg.this_period_count == 2
        assert agg.total_redemptions == 1

    async def test_report_for_unknown_seller(self, db):
        reporting = ReportingService()
        async with db.get_session() as session:
            agg = await reporting.report(session, "nobody")
        assert agg.total == 0
