"""Store adapter for license records — owner-scoped CRUD over SQLAlchemy."""

import logging
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import or_, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from keyward_engine.common.exceptions import (
    AuthorizationError,
    DuplicateKeyError,
    LicenseNotFoundError,
    StoreUnavailableError,
)
from keyward_engine.common.logging import key_tail
from keyward_engine.common.models import utcnow
from keyward_engine.licensing.models import LicenseKeyModel

logger = logging.getLogger(__name__)

# Fields a seller may change after creation. id, key, seller_id, created_at
# and usage_count are immutable through this path.
MUTABLE_FIELDS = ("status", "user_email", "max_usage", "expires_at", "notes")


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Translate driver failures and timeouts into StoreUnavailableError."""
    try:
        yield
    except (OperationalError, DBAPIError, PoolTimeoutError, TimeoutError) as exc:
        logger.error("Store %s failed: %s", operation, exc.__class__.__name__)
        raise StoreUnavailableError(f"License store unavailable during {operation}") from exc


class LicenseStore:
    """Persistence operations for LicenseKeyModel rows."""

    # ── Create ──

    async def insert(
        self, session: AsyncSession, record: LicenseKeyModel
    ) -> LicenseKeyModel:
        with store_errors("insert"):
            session.add(record)
            try:
                await session.flush()
            except IntegrityError as exc:
                raise DuplicateKeyError(
                    f"License key {key_tail(record.key)} already exists"
                ) from exc
        return record

    # ── Read ──

    async def key_exists(self, session: AsyncSession, key: str) -> bool:
        with store_errors("key lookup"):
            result = await session.execute(
                select(LicenseKeyModel.id).where(LicenseKeyModel.key == key)
            )
            return result.scalar_one_or_none() is not None

    async def fetch_by_key(
        self, session: AsyncSession, key: str
    ) -> LicenseKeyModel:
        """Unscoped lookup by key string, always re-read from the store."""
        with store_errors("fetch"):
            result = await session.execute(
                select(LicenseKeyModel)
                .where(LicenseKeyModel.key == key)
                .execution_options(populate_existing=True)
            )
            record = result.scalar_one_or_none()
        if record is None:
            raise LicenseNotFoundError()
        return record

    async def get_by_id(
        self, session: AsyncSession, license_id: str
    ) -> LicenseKeyModel | None:
        with store_errors("fetch"):
            result = await session.execute(
                select(LicenseKeyModel)
                .where(LicenseKeyModel.id == license_id)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()

    async def get_owned(
        self, session: AsyncSession, license_id: str, seller_id: str
    ) -> LicenseKeyModel:
        record = await self.get_by_id(session, license_id)
        if record is None:
            raise LicenseNotFoundError()
        if record.seller_id != seller_id:
            logger.warning(
                "Seller %s denied access to license %s", seller_id, license_id
            )
            raise AuthorizationError()
        return record

    async def list_by_owner(
        self,
        session: AsyncSession,
        seller_id: str,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[LicenseKeyModel]:
        """Seller's records, newest created_at first."""
        query = select(LicenseKeyModel).where(LicenseKeyModel.seller_id == seller_id)
        query = query.order_by(
            LicenseKeyModel.created_at.desc(), LicenseKeyModel.id.desc()
        ).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        with store_errors("list"):
            result = await session.execute(query)
            return list(result.scalars().all())

    # ── Update / delete ──

    async def update(
        self, session: AsyncSession, license_id: str, seller_id: str, **fields: Any
    ) -> LicenseKeyModel:
        record = await self.get_owned(session, license_id, seller_id)
        unknown = set(fields) - set(MUTABLE_FIELDS)
        if unknown:
            raise ValueError(f"Fields not updatable: {', '.join(sorted(unknown))}")

        for name, value in fields.items():
            setattr(record, name, value)
        with store_errors("update"):
            await session.flush()
        return record

    async def delete(
        self, session: AsyncSession, license_id: str, seller_id: str
    ) -> None:
        record = await self.get_owned(session, license_id, seller_id)
        with store_errors("delete"):
            await session.delete(record)
            await session.flush()

    async def increment_usage(
        self,
        session: AsyncSession,
        license_id: str,
        expected_count: int,
        expected_status: str,
        new_status: str | None = None,
        user_email: str | None = None,
    ) -> bool:
        """Compare-and-set usage_count from expected_count to expected_count + 1.

        The row only changes if neither usage_count nor status moved since the
        caller read it and the quota, as stored now, still has a free slot.
        Returns False when a concurrent writer got there first.
        """
        values: dict[str, Any] = {
            "usage_count": expected_count + 1,
            "updated_at": utcnow(),
        }
        if new_status is not None:
            values["status"] = new_status
        if user_email is not None:
            values["user_email"] = user_email

        stmt = (
            update(LicenseKeyModel)
            .where(
                LicenseKeyModel.id == license_id,
                LicenseKeyModel.usage_count == expected_count,
                LicenseKeyModel.status == expected_status,
                or_(
                    LicenseKeyModel.max_usage.is_(None),
                    LicenseKeyModel.usage_count < LicenseKeyModel.max_usage,
                ),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        with store_errors("usage update"):
            result = await session.execute(stmt)
        return result.rowcount == 1
