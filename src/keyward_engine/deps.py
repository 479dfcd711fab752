"""Dependency injection singletons for Keyward-Engine."""

from keyward_engine.common.config import get_settings
from keyward_engine.common.database import DatabaseManager
from keyward_engine.licensing.service import LicensingService
from keyward_engine.licensing.store import LicenseStore
from keyward_engine.reporting.service import ReportingService

_db: DatabaseManager | None = None
_store: LicenseStore | None = None
_licensing: LicensingService | None = None
_reporting: ReportingService | None = None


def get_db() -> DatabaseManager:
    global _db
    if _db is None:
        _db = DatabaseManager(get_settings())
    return _db


def get_license_store() -> LicenseStore:
    global _store
    if _store is None:
        _store = LicenseStore()
    return _store


def get_licensing_service() -> LicensingService:
    global _licensing
    if _licensing is None:
        _licensing = LicensingService(get_settings(), store=get_license_store())
    return _licensing


def get_reporting_service() -> ReportingService:
    global _reporting
    if _reporting is None:
        _reporting = ReportingService(store=get_license_store())
    return _reporting


def reset_singletons() -> None:
    """Reset all singletons (for testing)."""
    global _db, _store, _licensing, _reporting
    _db = None
    _store = None
    _licensing = None
    _reporting = None
