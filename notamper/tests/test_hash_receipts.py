from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

from notamper.core.canonical import CANONICALIZATION_ID
from notamper.core.engine import hash_payload
from notamper.core.errors import InputShapeError
from notamper.forensic import (
    RECEIPT_SCHEMA,
    build_hash_receipt,
    generate_ed25519_keypair,
    load_public_key_pem,
    sign_receipt,
    verify_receipt,
)

DATA = {"records": [{"fields": [{"title": "Q", "value": "A"}]}]}


def test_receipt_contents():
    result = hash_payload(DATA)
    created = datetime(2024, 3, 1, tzinfo=UTC)
    r = build_hash_receipt(result, metadata={"formId": "f"}, created_at=created)
    assert r["schema"] == RECEIPT_SCHEMA
    assert r["digest"] == result.digest
    assert r["algorithm"] == "sha256"
    assert r["canonicalization"] == CANONICALIZATION_ID
    assert r["record_count"] == 1
    assert r["created_at"] == created.isoformat()
    assert r["metadata"] == {"formId": "f"}
    assert "records" not in json.dumps(r)


def test_signed_receipt_verifies(tmp_path):
    kp = generate_ed25519_keypair(str(tmp_path / "keys"), prefix="test")
    receipt = sign_receipt(build_hash_receipt(hash_payload(DATA)), kp.private_key_path, signer_id="unit-test")
    assert receipt["signature"]["signer_id"] == "unit-test"

    report = verify_receipt(receipt, public_key=load_public_key_pem(kp.public_key_path), data=DATA)
    assert report.ok
    assert report.digest_ok is True
    assert report.signature_present is True
    assert report.signature_ok is True


def test_tampered_receipt_fails(tmp_path):
    """Changing any signed field breaks the signature.

    Security notes:
    - Receipts are public artifacts; only the signature binds them.

    """

    kp = generate_ed25519_keypair(str(tmp_path / "keys"), prefix="test")
    pub = load_public_key_pem(kp.public_key_path)
    receipt = sign_receipt(build_hash_receipt(hash_payload(DATA)), kp.private_key_path)

    forged = dict(receipt)
    forged["record_count"] = 2
    report = verify_receipt(forged, public_key=pub)
    assert report.signature_ok is False
    assert not report.ok


def test_changed_records_fail_digest_check():
    receipt = build_hash_receipt(hash_payload(DATA))
    changed = {"records": [{"fields": [{"title": "Q", "value": "B"}]}]}
    report = verify_receipt(receipt, data=changed)
    assert report.digest_ok is False
    assert report.signature_present is False
    assert report.signature_ok is None
    assert not report.ok


def test_unknown_canonicalization_is_rejected():
    receipt = build_hash_receipt(hash_payload(DATA))
    receipt["canonicalization"] = "something-else@9"
    with pytest.raises(InputShapeError):
        verify_receipt(receipt)
