from __future__ import annotations

import hashlib
import hmac
import re
from typing import Any

from .encoder import canonical_bytes

DIGEST_ALGORITHM = "sha256"
DIGEST_HEX_LENGTH = 64

_DIGEST_RE = re.compile(r"^[0-9a-f]{64}$")


def sha256_hex(data: bytes) -> str:
    """Compute SHA-256 lowercase hex digest.

    Security notes:
    - SHA-256 provides strong collision resistance for integrity.
    - This is integrity-only; it does not provide authenticity.

    """

    h = hashlib.sha256()
    h.update(data)
    return h.hexdigest()


def canonical_digest(obj: Any) -> str:
    """SHA-256 over the canonical bytes of obj."""

    return sha256_hex(canonical_bytes(obj))


def is_digest_hex(value: Any) -> bool:
    """True for a 64-character lowercase hex string."""

    return isinstance(value, str) and _DIGEST_RE.match(value) is not None


def digests_equal(a: str, b: str) -> bool:
    """Constant-time digest comparison."""

    return hmac.compare_digest(a.encode("ascii", "replace"), b.encode("ascii", "replace"))
