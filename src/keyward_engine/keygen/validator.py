"""
Offline license key format validation.

Validates structure only; whether the key exists is a store question.
"""

import re

from keyward_engine.keygen.generator import (
    KEY_ALPHABET,
    KEY_LENGTH,
    SEGMENT_LEN,
    SEGMENTS,
    SEPARATOR,
)

KEY_PATTERN = re.compile(
    "^" + SEPARATOR.join([f"[{KEY_ALPHABET}]{{{SEGMENT_LEN}}}"] * SEGMENTS) + "$"
)
SEGMENT_PATTERN = re.compile(f"^[{KEY_ALPHABET}]{{{SEGMENT_LEN}}}$")


class FormatResult:
    """Result of offline key format validation."""

    __slots__ = ("valid", "code", "message")

    def __init__(self, valid: bool, code: str = "", message: str = ""):
        self.valid = valid
        self.code = code
        self.message = message


def is_valid_key(key: str) -> bool:
    return isinstance(key, str) and KEY_PATTERN.fullmatch(key) is not None


def validate_format(key: str) -> FormatResult:
    """
    Validate the structural format of a license key.

    Checks:
    - Exactly 19 characters
    - 4 segments separated by '-'
    - Every segment is 4 chars of A-Z0-9 (case-sensitive)

    Returns:
        FormatResult with format check outcome
    """
    if not key or not isinstance(key, str):
        return FormatResult(False, "INVALID_FORMAT", "Key is empty or not a string")

    if len(key) != KEY_LENGTH:
        return FormatResult(
            False,
            "INVALID_LENGTH",
            f"Expected {KEY_LENGTH} characters, got {len(key)}",
        )

    parts = key.split(SEPARATOR)
    if len(parts) != SEGMENTS:
        return FormatResult(
            False,
            "INVALID_FORMAT",
            f"Expected {SEGMENTS} segments, got {len(parts)}",
        )

    for i, segment in enumerate(parts, start=1):
        if not SEGMENT_PATTERN.fullmatch(segment):
            return FormatResult(
                False,
                "INVALID_SEGMENT",
                f"Segment {i} must be {SEGMENT_LEN} characters of A-Z0-9 (got '{segment}')",
            )

    return FormatResult(True, "FORMAT_OK", "Key format is valid")
