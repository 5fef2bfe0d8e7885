"""ULID generation utility.

Provides ``generate_ulid()``, used as the per-request correlation id
(X-Request-ID response header and ``request_id`` log field).

Uses the `python-ulid` library — do NOT hand-roll ULID generation.
"""

from __future__ import annotations

from ulid import ULID


def generate_ulid() -> str:
    """Generate a new ULID as a 26-character uppercase Crockford Base32 string."""
    return str(ULID())
