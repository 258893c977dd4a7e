"""Hashing engine facade.

raw record(s) -> value normalizer -> standardizer (policy) -> canonical bytes
-> SHA-256 hex.

Everything here is pure: no I/O, no logging, no global state. A call either
returns a complete digest or raises a CanonicalizationError.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional

from notamper.core.canonical import canonical_bytes, digests_equal, is_digest_hex, sha256_hex
from notamper.core.errors import InputShapeError
from notamper.core.records import Batch, Record, normalize_record, standardize


@dataclass(frozen=True, slots=True)
class HashingPolicy:
    """Request-scoped hashing options.

    include_titles / exclude_titles select which fields take part in the
    digest. When include_titles is set only those titles are kept; then
    exclude_titles removes titles.
    """

    standardize: bool = True
    include_titles: Optional[FrozenSet[str]] = None
    exclude_titles: FrozenSet[str] = frozenset()

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "HashingPolicy":
        if not data:
            return cls()
        include = data.get("include_titles")
        return cls(
            standardize=bool(data.get("standardize", True)),
            include_titles=frozenset(str(t) for t in include) if include is not None else None,
            exclude_titles=frozenset(str(t) for t in (data.get("exclude_titles") or ())),
        )

    def keeps(self, title: str) -> bool:
        if self.include_titles is not None and title not in self.include_titles:
            return False
        return title not in self.exclude_titles

    @property
    def filters_fields(self) -> bool:
        return self.include_titles is not None or bool(self.exclude_titles)


DEFAULT_POLICY = HashingPolicy()


@dataclass(frozen=True)
class HashResult:
    """Digest plus the intermediate forms it was computed from."""

    digest: str
    canonical: bytes
    hashed: Any
    record_count: int


def _select_fields(record: Record, policy: HashingPolicy) -> Record:
    if not policy.filters_fields:
        return record
    return replace(record, fields=tuple(f for f in record.fields if policy.keeps(f.title)))


def _prepare_record(record: Record, policy: HashingPolicy) -> Record:
    return normalize_record(_select_fields(record, policy))


def _record_tree(record: Record) -> Dict[str, Any]:
    # Unstandardized view: every attribute, volatile ones included.
    return {
        "record_id": record.record_id,
        "timestamp": record.timestamp,
        "fields": [
            {
                "field_id": f.field_id,
                "title": f.title,
                "kind": f.kind.value,
                "value": f.value,
            }
            for f in record.fields
        ],
    }


def _digest_of(obj: Any, record_count: int) -> HashResult:
    data = canonical_bytes(obj)
    return HashResult(digest=sha256_hex(data), canonical=data, hashed=obj, record_count=record_count)


def create_deterministic_hash(obj: Any) -> str:
    """Digest of any JSON-shaped value, without any record-level processing."""

    return sha256_hex(canonical_bytes(obj))


def hash_standardized_data(obj: Any) -> str:
    """Digest of a value that is already standardized."""

    return create_deterministic_hash(obj)


def hash_batch(batch: Batch, policy: Optional[HashingPolicy] = None) -> HashResult:
    policy = policy or DEFAULT_POLICY
    prepared = Batch(
        records=tuple(_prepare_record(r, policy) for r in batch.records),
        source_id=batch.source_id,
    )
    if policy.standardize:
        return _digest_of(standardize(prepared), len(prepared.records))
    tree = {
        "record_count": len(prepared.records),
        "records": [_record_tree(r) for r in prepared.records],
    }
    return _digest_of(tree, len(prepared.records))


def hash_record(record: Record, policy: Optional[HashingPolicy] = None) -> HashResult:
    """A bare record hashes exactly like a one-record batch."""

    return hash_batch(Batch(records=(record,)), policy)


def hash_payload(data: Any, policy: Optional[HashingPolicy] = None) -> HashResult:
    """Hash a Batch, a Record, or their mapping forms."""

    if isinstance(data, Batch):
        return hash_batch(data, policy)
    if isinstance(data, Record):
        return hash_record(data, policy)
    if isinstance(data, Mapping):
        return hash_batch(Batch.from_mapping(data), policy)
    raise InputShapeError(f"cannot hash {type(data).__name__} as records")


def verify_digest(data: Any, expected: str, policy: Optional[HashingPolicy] = None) -> bool:
    """Recompute the digest of data and compare it with expected.

    Raises:
      InputShapeError: expected is not a 64-character lowercase hex digest.
    """

    if not is_digest_hex(expected):
        raise InputShapeError("expected digest must be 64 lowercase hex characters")
    return digests_equal(hash_payload(data, policy).digest, expected)


def policy_from_titles(
    *,
    standardize_first: bool = True,
    include: Optional[Iterable[str]] = None,
    exclude: Optional[Iterable[str]] = None,
) -> HashingPolicy:
    return HashingPolicy(
        standardize=standardize_first,
        include_titles=frozenset(include) if include is not None else None,
        exclude_titles=frozenset(exclude or ()),
    )
