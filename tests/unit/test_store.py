"""Tests for the license store adapter."""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from keyward_engine.common.exceptions import (
    AuthorizationError,
    DuplicateKeyError,
    LicenseNotFoundError,
    StoreUnavailableError,
)
from keyward_engine.licensing.models import LicenseKeyModel
from keyward_engine.licensing.store import LicenseStore, store_errors
from tests.conftest import SELLER_A, SELLER_B


def _record(key="AAAA-BBBB-CCCC-DDDD", seller_id=SELLER_A):
    return LicenseKeyModel(key=key, product_name="Photo Suite", seller_id=seller_id)


@pytest.fixture
def store():
    return LicenseStore()


class TestStoreErrors:
    def test_operational_error_translated(self):
        with pytest.raises(StoreUnavailableError) as exc_info:
            with store_errors("fetch"):
                raise OperationalError("SELECT 1", {}, Exception("database is locked"))
        assert exc_info.value.code == "STORE_UNAVAILABLE"
        assert "fetch" in exc_info.value.message

    def test_timeout_translated(self):
        with pytest.raises(StoreUnavailableError):
            with store_errors("list"):
                raise TimeoutError()

    def test_other_errors_pass_through(self):
        with pytest.raises(KeyError):
            with store_errors("fetch"):
                raise KeyError("x")

    async def test_fetch_maps_driver_failure(self, db, store):
        async with db.get_session() as session:
            with patch.object(
                session, "execute",
                new=AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("gone"))),
            ):
                with pytest.raises(StoreUnavailableError):
                    await store.fetch_by_key(session, "AAAA-BBBB-CCCC-DDDD")


class TestInsert:
    async def test_defaults(self, db, store):
        async with db.get_session() as session:
            rec = await store.insert(session, _record())
            assert rec.id
            assert rec.status == "active"
            assert rec.usage_count == 0
            assert rec.created_at is not None

    async def test_duplicate_key(self, db, store):
        async with db.get_session() as session:
            await store.insert(session, _record())
        with pytest.raises(DuplicateKeyError):
            async with db.get_session() as session:
                await store.insert(session, _record())

    async def test_key_exists(self, db, store):
        async with db.get_session() as session:
            await store.insert(session, _record())
            assert await store.key_exists(session, "AAAA-BBBB-CCCC-DDDD") is True
            assert await store.key_exists(session, "ZZZZ-ZZZZ-ZZZZ-ZZZZ") is False


class TestOwnership:
    async def test_get_owned(self, db, store):
        async with db.get_session() as session:
            rec = await store.insert(session, _record())
            assert (await store.get_owned(session, rec.id, SELLER_A)).id == rec.id

    async def test_other_seller_denied(self, db, store):
        async with db.get_session() as session:
            rec = await store.insert(session, _record())
            with pytest.raises(AuthorizationError):
                await store.get_owned(session, rec.id, SELLER_B)

    async def test_missing(self, db, store):
        async with db.get_session() as session:
            with pytest.raises(LicenseNotFoundError):
                await store.get_owned(session, "no-such-id", SELLER_A)

    async def test_fetch_by_key_missing(self, db, store):
        async with db.get_session() as session:
            with pytest.raises(LicenseNotFoundError):
                await store.fetch_by_key(session, "ZZZZ-ZZZZ-ZZZZ-ZZZZ")


class TestUpdate:
    async def test_update_mutable_fields(self, db, store):
        async with db.get_session() as session:
            rec = await store.insert(session, _record())
            updated = await store.update(session, rec.id, SELLER_A, notes="vip", max_usage=3)
            assert updated.notes == "vip"
            assert updated.max_usage == 3

    @pytest.mark.parametrize("field", ["key", "usage_count", "id", "created_at"])
    async def test_immutable_fields_rejected(self, db, store, field):
        async with db.get_session() as session:
            rec = await store.insert(session, _record())
            with pytest.raises(ValueError):
                await store.update(session, rec.id, SELLER_A, **{field: "x"})

    async def test_other_seller_cannot_update(self, db, store):
        async with db.get_session() as session:
            rec = await store.insert(session, _record())
            with pytest.raises(AuthorizationError):
                await store.update(session, rec.id, SELLER_B, notes="taken over")
            assert (await store.get_by_id(session, rec.id)).notes is None

    async def test_delete(self, db, store):
        async with db.get_session() as session:
            rec = await store.insert(session, _record())
            await store.delete(session, rec.id, SELLER_A)
            assert await store.get_by_id(session, rec.id) is None


class TestListByOwner:
    async def test_scoped_and_paged(self, db, store):
        async with db.get_session() as session:
            for i in range(3):
                await store.insert(session, _record(key=f"AAAA-BBBB-CCCC-000{i}"))
            await store.insert(session, _record(key="ZZZZ-ZZZZ-ZZZZ-ZZZZ", seller_id=SELLER_B))

            assert len(await store.list_by_owner(session, SELLER_A)) == 3
            assert len(await store.list_by_owner(session, SELLER_A, offset=2, limit=5)) == 1
            assert len(await store.list_by_owner(session, SELLER_B)) == 1
