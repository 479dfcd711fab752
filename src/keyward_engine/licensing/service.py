"""Licensing service — key lifecycle: create, redeem, status, CRUD."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from keyward_engine.common.config import KeywardSettings
from keyward_engine.common.exceptions import (
    ConflictError,
    DuplicateKeyError,
    KeyGenerationExhaustedError,
    LicenseNotFoundError,
    ValidationError,
)
from keyward_engine.common.logging import key_tail
from keyward_engine.common.models import ensure_utc
from keyward_engine.keygen.generator import generate_key
from keyward_engine.keygen.validator import is_valid_key
from keyward_engine.licensing.models import LicenseKeyModel
from keyward_engine.licensing.status import (
    REJECTION_MESSAGES,
    LicenseStatus,
    RedemptionCode,
    compute_effective_status,
    parse_status,
    rejection_code,
)
from keyward_engine.licensing.store import LicenseStore

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("notes", "max_usage", "expires_at", "user_email")


@dataclass
class RedemptionContext:
    """Who is redeeming, as reported by the caller."""

    user_email: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class RedemptionResult:
    """Outcome of a redeem() or check_license() call."""

    accepted: bool
    code: RedemptionCode
    message: str
    license: Optional[LicenseKeyModel] = None

    @property
    def remaining(self) -> Optional[int]:
        if self.license is None or self.license.max_usage is None:
            return None
        return max(0, self.license.max_usage - self.license.usage_count)

    @classmethod
    def rejected(
        cls, code: RedemptionCode, license: Optional[LicenseKeyModel] = None
    ) -> "RedemptionResult":
        return cls(False, code, REJECTION_MESSAGES[code], license)


# ── Input validation ──


def _require_text(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} must be a non-empty string")
    return value.strip()


def validate_max_usage(value: Any) -> Optional[int]:
    """None means unlimited; otherwise a positive integer (digit strings allowed)."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError("max_usage must be a positive integer")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value < 1:
        raise ValidationError("max_usage must be a positive integer")
    return value


def parse_expiry(value: Any) -> Optional[datetime]:
    """Normalize an expiry to an aware UTC datetime.

    A bare date means midnight UTC at the start of that date.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return ensure_utc(datetime.fromisoformat(text))
        except ValueError:
            pass
    raise ValidationError(f"expires_at is not a valid date: {value!r}")


def _optional_text(value: Any, name: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    return value.strip() or None


class LicensingService:
    """Core license key lifecycle operations."""

    def __init__(self, settings: KeywardSettings, store: LicenseStore | None = None):
        self.settings = settings
        self.store = store or LicenseStore()

    # ── Creation ──

    async def insert_with_fresh_key(
        self, session: AsyncSession, **fields: Any
    ) -> LicenseKeyModel:
        """Insert a record under a newly generated, unused key.

        A candidate can collide either at the pre-check or, when another
        writer takes the same key in between, at the insert itself. Both
        count against ``key_generation_attempts``. Each insert runs in a
        savepoint so a rejected one leaves the surrounding transaction usable.
        """
        attempts = self.settings.key_generation_attempts
        for attempt in range(1, attempts + 1):
            candidate = generate_key()
            if await self.store.key_exists(session, candidate):
                logger.warning(
                    "Generated key %s already exists (attempt %d/%d)",
                    key_tail(candidate), attempt, attempts,
                )
                continue

            record = LicenseKeyModel(key=candidate, **fields)
            try:
                async with session.begin_nested():
                    await self.store.insert(session, record)
            except DuplicateKeyError:
                logger.warning(
                    "Key %s was taken concurrently (attempt %d/%d)",
                    key_tail(candidate), attempt, attempts,
                )
                continue
            return record

        raise KeyGenerationExhaustedError(
            f"Could not allocate a unique license key after {attempts} attempts"
        )

    async def create_license(
        self,
        session: AsyncSession,
        seller_id: str,
        product_name: str,
        max_usage: int | None = None,
        expires_at: date | datetime | str | None = None,
        notes: str | None = None,
        user_email: str | None = None,
    ) -> LicenseKeyModel:
        """Create an active license with a fresh key owned by seller_id."""
        seller_id = _require_text(seller_id, "seller_id")
        product_name = _require_text(product_name, "product_name")
        max_usage = validate_max_usage(max_usage)
        expires = parse_expiry(expires_at)
        notes = _optional_text(notes, "notes")
        user_email = _optional_text(user_email, "user_email")

        record = await self.insert_with_fresh_key(
            session,
            product_name=product_name,
            seller_id=seller_id,
            status=LicenseStatus.ACTIVE.value,
            usage_count=0,
            max_usage=max_usage,
            expires_at=expires,
            notes=notes,
            user_email=user_email,
        )

        logger.info(
            "License %s created for seller %s (product=%s)",
            record.id, seller_id, product_name,
        )
        return record

    # ── Reads ──

    async def get_license(
        self, session: AsyncSession, license_id: str, seller_id: str
    ) -> LicenseKeyModel:
        return await self.store.get_owned(session, license_id, seller_id)

    async def get_license_by_key(
        self, session: AsyncSession, key: str
    ) -> LicenseKeyModel:
        return await self.store.fetch_by_key(session, key)

    async def list_licenses(
        self,
        session: AsyncSession,
        seller_id: str,
        status: str | None = None,
        offset: int = 0,
        limit: int | None = None,
        now: datetime | None = None,
    ) -> list[LicenseKeyModel]:
        """Seller's licenses, newest first, optionally filtered by effective status."""
        if not status:
            return await self.store.list_by_owner(
                session, seller_id, offset=offset, limit=limit
            )

        try:
            wanted = parse_status(status)
        except ValueError as exc:
            raise ValidationError(f"Unknown status: {status!r}") from exc

        now = now or datetime.now(timezone.utc)
        records = [
            r for r in await self.store.list_by_owner(session, seller_id)
            if compute_effective_status(r, now) is wanted
        ]
        end = None if limit is None else offset + limit
        return records[offset:end]

    # ── Seller edits ──

    async def set_status(
        self,
        session: AsyncSession,
        license_id: str,
        seller_id: str,
        new_status: str | LicenseStatus,
    ) -> LicenseKeyModel:
        """Seller override: ban, unban, reactivate, park as pending."""
        try:
            status = parse_status(new_status)
        except ValueError as exc:
            raise ValidationError(f"Unknown status: {new_status!r}") from exc

        record = await self.store.update(
            session, license_id, seller_id, status=status.value
        )
        logger.info("License %s status set to %s by %s", license_id, status.value, seller_id)
        return record

    async def update_license(
        self,
        session: AsyncSession,
        license_id: str,
        seller_id: str,
        **changes: Any,
    ) -> LicenseKeyModel:
        """Edit notes, quota, expiry or bound email. An explicit None clears."""
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}")

        fields: dict[str, Any] = {}
        if "notes" in changes:
            fields["notes"] = _optional_text(changes["notes"], "notes")
        if "user_email" in changes:
            fields["user_email"] = _optional_text(changes["user_email"], "user_email")
        if "max_usage" in changes:
            fields["max_usage"] = validate_max_usage(changes["max_usage"])
        if "expires_at" in changes:
            fields["expires_at"] = parse_expiry(changes["expires_at"])

        record = await self.store.update(session, license_id, seller_id, **fields)
        logger.info("License %s updated (%s)", license_id, ", ".join(sorted(fields)))
        return record

    async def delete_license(
        self, session: AsyncSession, license_id: str, seller_id: str
    ) -> bool:
        """Delete an owned license. Returns False if it was already gone."""
        try:
            await self.store.delete(session, license_id, seller_id)
        except LicenseNotFoundError:
            logger.info("License %s already absent, nothing to delete", license_id)
            return False
        logger.info("License %s deleted by %s", license_id, seller_id)
        return True

    # ── Redemption ──

    async def check_license(
        self, session: AsyncSession, key: str, now: datetime | None = None
    ) -> RedemptionResult:
        """Report whether a key would be accepted, without consuming usage."""
        if not is_valid_key(key):
            return RedemptionResult.rejected(RedemptionCode.NOT_FOUND)
        try:
            record = await self.store.fetch_by_key(session, key)
        except LicenseNotFoundError:
            return RedemptionResult.rejected(RedemptionCode.NOT_FOUND)

        code = rejection_code(record, now or datetime.now(timezone.utc))
        if code is not None:
            return RedemptionResult.rejected(code, record)
        return RedemptionResult(True, RedemptionCode.ACCEPTED, "License is valid", record)

    async def redeem(
        self,
        session: AsyncSession,
        key: str,
        context: RedemptionContext | None = None,
        now: datetime | None = None,
    ) -> RedemptionResult:
        """
        Consume one usage of a key.

        1. Format check (malformed keys are simply not found)
        2. Fresh store read + effective status / quota check
        3. Compare-and-set increment; exhausting the quota stores 'expired'
        4. On a lost race, start over from step 2

        Raises ConflictError when every attempt loses the race.
        """
        context = context or RedemptionContext()
        if not is_valid_key(key):
            return RedemptionResult.rejected(RedemptionCode.NOT_FOUND)

        now = now or datetime.now(timezone.utc)
        attempts = self.settings.redeem_conflict_attempts
        for attempt in range(1, attempts + 1):
            try:
                record = await self.store.fetch_by_key(session, key)
            except LicenseNotFoundError:
                logger.info("Redemption rejected for unknown key %s", key_tail(key))
                return RedemptionResult.rejected(RedemptionCode.NOT_FOUND)

            code = rejection_code(record, now)
            if code is not None:
                logger.info("Redemption of license %s rejected: %s", record.id, code.value)
                return RedemptionResult.rejected(code, record)

            new_count = record.usage_count + 1
            new_status = None
            if record.max_usage is not None and new_count >= record.max_usage:
                new_status = LicenseStatus.EXPIRED.value
            bind_email = None
            if context.user_email and not record.user_email:
                bind_email = context.user_email

            won = await self.store.increment_usage(
                session,
                record.id,
                expected_count=record.usage_count,
                expected_status=record.status,
                new_status=new_status,
                user_email=bind_email,
            )
            if won:
                record = await self.store.fetch_by_key(session, key)
                logger.info(
                    "License %s redeemed (usage %d/%s)",
                    record.id, record.usage_count,
                    record.max_usage if record.max_usage is not None else "unlimited",
                )
                return RedemptionResult(
                    True, RedemptionCode.ACCEPTED, "Redemption accepted", record
                )

            logger.warning(
                "Concurrent update on license %s (attempt %d/%d)",
                record.id, attempt, attempts,
            )

        raise ConflictError(
            f"License {key_tail(key)} kept changing during redemption, gave up after {attempts} attempts"
        )
