"""Keyward-Engine: License key issuing and lifecycle engine."""

from keyward_engine.client import LicenseClient
from keyward_engine.keygen.generator import generate_key
from keyward_engine.keygen.validator import is_valid_key, validate_format
from keyward_engine.licensing.status import LicenseStatus, compute_effective_status

__all__ = [
    "LicenseClient",
    "LicenseStatus",
    "compute_effective_status",
    "generate_key",
    "is_valid_key",
    "validate_format",
]
__version__ = "0.1.0"
