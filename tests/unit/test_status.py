"""Tests for effective status derivation and redemption rejection codes."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from keyward_engine.licensing.status import (
    LicenseStatus,
    RedemptionCode,
    compute_effective_status,
    parse_status,
    rejection_code,
)


NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def record(status="active", expires_at=None, max_usage=None, usage_count=0):
    return SimpleNamespace(
        status=status, expires_at=expires_at,
        max_usage=max_usage, usage_count=usage_count,
    )


class TestComputeEffectiveStatus:
    def test_active_stays_active(self):
        assert compute_effective_status(record(), NOW) is LicenseStatus.ACTIVE

    def test_past_expiry_is_expired(self):
        r = record(expires_at=NOW - timedelta(days=1))
        assert compute_effective_status(r, NOW) is LicenseStatus.EXPIRED

    def test_future_expiry_is_active(self):
        r = record(expires_at=NOW + timedelta(days=1))
        assert compute_effective_status(r, NOW) is LicenseStatus.ACTIVE

    def test_expiry_instant_itself_not_expired(self):
        r = record(expires_at=NOW)
        assert compute_effective_status(r, NOW) is LicenseStatus.ACTIVE

    def test_banned_overrides_future_expiry(self):
        r = record(status="banned", expires_at=NOW + timedelta(days=30))
        assert compute_effective_status(r, NOW) is LicenseStatus.BANNED

    def test_banned_overrides_past_expiry_and_quota(self):
        r = record(status="banned", expires_at=NOW - timedelta(days=1),
                   max_usage=1, usage_count=5)
        assert compute_effective_status(r, NOW) is LicenseStatus.BANNED

    def test_quota_exhausted_is_expired(self):
        r = record(max_usage=3, usage_count=3)
        assert compute_effective_status(r, NOW) is LicenseStatus.EXPIRED

    def test_quota_remaining_is_active(self):
        r = record(max_usage=3, usage_count=2)
        assert compute_effective_status(r, NOW) is LicenseStatus.ACTIVE

    def test_unlimited_quota(self):
        r = record(max_usage=None, usage_count=10_000)
        assert compute_effective_status(r, NOW) is LicenseStatus.ACTIVE

    def test_pending_kept(self):
        assert compute_effective_status(record(status="pending"), NOW) is LicenseStatus.PENDING

    def test_pending_but_past_expiry(self):
        r = record(status="pending", expires_at=NOW - timedelta(seconds=1))
        assert compute_effective_status(r, NOW) is LicenseStatus.EXPIRED

    def test_stored_expired_stays_expired(self):
        assert compute_effective_status(record(status="expired"), NOW) is LicenseStatus.EXPIRED

    def test_naive_expiry_treated_as_utc(self):
        r = record(expires_at=(NOW - timedelta(hours=1)).replace(tzinfo=None))
        assert compute_effective_status(r, NOW) is LicenseStatus.EXPIRED


class TestParseStatus:
    def test_case_insensitive(self):
        assert parse_status(" Banned ") is LicenseStatus.BANNED

    def test_unknown_raises(self):
        with pytest.raises(ValueError):
            parse_status("suspended")


class TestRejectionCode:
    def test_active_has_no_rejection(self):
        assert rejection_code(record(), NOW) is None

    def test_banned(self):
        assert rejection_code(record(status="banned"), NOW) is RedemptionCode.BANNED

    def test_pending(self):
        assert rejection_code(record(status="pending"), NOW) is RedemptionCode.NOT_YET_ACTIVE

    def test_date_expired(self):
        r = record(expires_at=NOW - timedelta(days=1))
        assert rejection_code(r, NOW) is RedemptionCode.EXPIRED

    def test_quota_exhausted(self):
        r = record(status="expired", max_usage=1, usage_count=1)
        assert rejection_code(r, NOW) is RedemptionCode.QUOTA_EXCEEDED

    def test_quota_guard_on_active_stored_status(self):
        r = record(status="active", max_usage=2, usage_count=2)
        assert rejection_code(r, NOW) is RedemptionCode.QUOTA_EXCEEDED

    def test_date_expiry_wins_over_quota(self):
        r = record(expires_at=NOW - timedelta(days=1), max_usage=1, usage_count=1)
        assert rejection_code(r, NOW) is RedemptionCode.EXPIRED

    def test_seller_marked_expired(self):
        assert rejection_code(record(status="expired"), NOW) is RedemptionCode.EXPIRED
