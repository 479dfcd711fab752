"""
License key generator.

Format: {AAAA}-{BBBB}-{CCCC}-{DDDD}
- 4 segments x 4 chars = 16 random chars over A-Z0-9 (36^16 ≈ 8 x 10^24 keys)
- Keys are opaque tokens; uniqueness is enforced against the store, not here.
"""

import secrets
import string

KEY_ALPHABET = string.ascii_uppercase + string.digits
SEGMENT_LEN = 4
SEGMENTS = 4
SEPARATOR = "-"
KEY_LENGTH = SEGMENT_LEN * SEGMENTS + (SEGMENTS - 1)


def _random_segment() -> str:
    """Generate a random 4-char segment."""
    return "".join(secrets.choice(KEY_ALPHABET) for _ in range(SEGMENT_LEN))


def generate_key() -> str:
    """
    Generate a license key.

    Every character is drawn independently and uniformly from KEY_ALPHABET
    using the OS CSPRNG. No state is kept between calls.

    Returns:
        Formatted license key string, e.g. 'Q7ZK-2MXA-90LD-RT4B'
    """
    return SEPARATOR.join(_random_segment() for _ in range(SEGMENTS))
