from __future__ import annotations

from pydantic import BaseModel, Field
from typing import Any, List, Optional


class ApiError(BaseModel):
    """Standard API error payload."""

    error: str
    detail: Optional[str] = None


class PolicyIn(BaseModel):
    """Per-request hashing options."""

    standardize: bool = True
    include_titles: Optional[List[str]] = None
    exclude_titles: List[str] = Field(default_factory=list)


class CanonicalizeIn(BaseModel):
    data: Any = None


class CanonicalizeOut(BaseModel):
    canonical: str
    digest: str


class RecordsIn(BaseModel):
    """A batch or record mapping plus optional policy."""

    data: Any = None
    policy: Optional[PolicyIn] = None


class StandardizeOut(BaseModel):
    standardized: Any


class HashOut(BaseModel):
    digest: str
    algorithm: str
    canonicalization: str
    record_count: int


class VerifyIn(RecordsIn):
    digest: str


class VerifyOut(BaseModel):
    ok: bool
    expected: str
    actual: str
