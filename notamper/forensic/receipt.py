from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Dict, Mapping, Optional

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from notamper.core.canonical import CANONICALIZATION_ID, DIGEST_ALGORITHM, digests_equal
from notamper.core.engine import HashingPolicy, HashResult, hash_payload
from notamper.core.errors import InputShapeError

from .signing import sign_detached_ed25519, verify_detached_ed25519

RECEIPT_SCHEMA = {"name": "notamper.hash_receipt", "version": "1.0"}
SIGNATURE_KEY = "signature"


def build_hash_receipt(
    result: HashResult,
    *,
    metadata: Optional[Mapping[str, Any]] = None,
    created_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """A small JSON document recording that a digest was produced.

    The receipt names the algorithm and canonicalization so a verifier knows
    which rules to recompute with. It never contains record contents.
    """

    return {
        "schema": dict(RECEIPT_SCHEMA),
        "digest": result.digest,
        "algorithm": DIGEST_ALGORITHM,
        "canonicalization": CANONICALIZATION_ID,
        "record_count": result.record_count,
        "created_at": (created_at or datetime.now(UTC)).isoformat(),
        "metadata": dict(metadata or {}),
    }


def _unsigned_view(receipt: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in receipt.items() if k != SIGNATURE_KEY}


def sign_receipt(
    receipt: Mapping[str, Any], private_key_path: str, *, signer_id: Optional[str] = None
) -> Dict[str, Any]:
    """Return a copy of receipt with a detached Ed25519 signature attached.

    Only the receipt body is signed, not the signature block itself.
    """

    body = _unsigned_view(receipt)
    out = dict(body)
    out[SIGNATURE_KEY] = {
        "algorithm": "Ed25519",
        "signer_id": signer_id,
        "signed_at": datetime.now(UTC).isoformat(),
        "value": sign_detached_ed25519(private_key_path, body),
    }
    return out


@dataclass(frozen=True)
class ReceiptVerification:
    """Verification report for a receipt.

    digest_ok is None when no records were supplied; signature_ok is None
    when no public key was supplied or the receipt is unsigned.
    """

    digest_ok: Optional[bool]
    signature_present: bool
    signature_ok: Optional[bool]

    @property
    def ok(self) -> bool:
        return self.digest_ok is not False and self.signature_ok is not False


def verify_receipt(
    receipt: Mapping[str, Any],
    *,
    public_key: Optional[Ed25519PublicKey] = None,
    data: Any = None,
    policy: Optional[HashingPolicy] = None,
) -> ReceiptVerification:
    """Check a receipt's signature and, given the records, its digest."""

    if receipt.get("canonicalization") != CANONICALIZATION_ID:
        raise InputShapeError(
            f"unsupported canonicalization: {receipt.get('canonicalization')!r}"
        )

    digest_ok: Optional[bool] = None
    if data is not None:
        digest_ok = digests_equal(hash_payload(data, policy).digest, str(receipt.get("digest", "")))

    sig = receipt.get(SIGNATURE_KEY)
    signature_present = isinstance(sig, Mapping) and isinstance(sig.get("value"), str)
    signature_ok: Optional[bool] = None
    if signature_present and public_key is not None:
        signature_ok = verify_detached_ed25519(public_key, _unsigned_view(receipt), sig["value"])

    return ReceiptVerification(
        digest_ok=digest_ok, signature_present=signature_present, signature_ok=signature_ok
    )
