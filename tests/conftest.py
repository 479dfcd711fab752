"""Shared test fixtures for Keyward-Engine."""

import os
import pytest
from httpx import ASGITransport, AsyncClient

from keyward_engine.common.config import KeywardSettings
from keyward_engine.common.database import DatabaseManager
from keyward_engine.licensing.service import LicensingService


SELLER_A = "seller-a"
SELLER_B = "seller-b"


def make_settings(**overrides) -> KeywardSettings:
    defaults = {"db_url": "sqlite+aiosqlite://"}
    defaults.update(overrides)
    return KeywardSettings(**defaults)


@pytest.fixture
async def db():
    """In-memory SQLite database for service tests."""
    manager = DatabaseManager(make_settings())
    await manager.init()
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
def svc():
    return LicensingService(make_settings())


@pytest.fixture
def app():
    """Create a test app with in-memory DB."""
    os.environ["KEYWARD_DB_URL"] = "sqlite+aiosqlite://"
    os.environ["KEYWARD_ENVIRONMENT"] = "development"

    # Clear caches and singletons so new env vars take effect
    from keyward_engine.common.config import get_settings
    get_settings.cache_clear()

    from keyward_engine.deps import reset_singletons
    reset_singletons()

    from keyward_engine.app import create_app
    return create_app()


@pytest.fixture
async def client(app):
    # Manually init DB since ASGITransport doesn't run lifespan
    from keyward_engine.deps import get_db
    db = get_db()
    await db.init()
    await db.create_all()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await db.close()


@pytest.fixture
def seller_headers():
    return {"X-Seller-Id": SELLER_A, "X-Seller-Email": "a@seller.test"}


@pytest.fixture
def other_seller_headers():
    return {"X-Seller-Id": SELLER_B, "X-Seller-Email": "b@seller.test"}
