"""Canonical encoding and digests.

Any JSON-shaped Python value is rewritten into one byte string that does not
depend on map key order, on the order of sequence elements, or on how a number
happened to be represented. SHA-256 over those bytes is the record digest.

Rules:
- Maps: keys sorted by UTF-8 bytes; duplicate keys are rejected.
- Sequences of scalars: sorted by the UTF-8 bytes of each element's text.
- Sequences holding a map or sequence: sorted by each element's encoding.
- Scalars: JSON literals; numbers in shortest round-tripping form.
"""

from .digest import (
    DIGEST_ALGORITHM,
    DIGEST_HEX_LENGTH,
    canonical_digest,
    digests_equal,
    is_digest_hex,
    sha256_hex,
)
from .encoder import canonical_bytes, canonical_encode, encode_canonical
from .scalars import format_number, quote_string
from .values import (
    CanonicalBool,
    CanonicalMap,
    CanonicalNull,
    CanonicalNumber,
    CanonicalSequence,
    CanonicalString,
    CanonicalValue,
    ValueKind,
    to_canonical_value,
)

CANONICALIZATION_ID = "notamper.canonical@1"

__all__ = [
    "CANONICALIZATION_ID",
    "DIGEST_ALGORITHM",
    "DIGEST_HEX_LENGTH",
    "CanonicalBool",
    "CanonicalMap",
    "CanonicalNull",
    "CanonicalNumber",
    "CanonicalSequence",
    "CanonicalString",
    "CanonicalValue",
    "ValueKind",
    "canonical_bytes",
    "canonical_digest",
    "canonical_encode",
    "digests_equal",
    "encode_canonical",
    "format_number",
    "is_digest_hex",
    "quote_string",
    "sha256_hex",
    "to_canonical_value",
]
